import socket
import logging
from http.cookiejar import DefaultCookiePolicy
from typing import Optional

import requests
from urllib3.util import SKIP_HEADER

from .headers import client_response_headers, upstream_request_headers
from .models import HTTPRequest, HTTPResponse

logger = logging.getLogger(__name__)

# Methods whose inbound body is forwarded upstream
BODY_METHODS = frozenset({'POST'})

# Headers the HTTP stack would add on its own when the client sent none
STACK_DEFAULT_HEADERS = ('User-Agent', 'Accept-Encoding')


class UpstreamForwarder:
    """Sends requests to the upstream server and relays its responses."""

    def __init__(self, target_server: str, timeout: float = 30.0,
                 scheme: str = "https", session: Optional[requests.Session] = None,
                 buffer_size: int = 8192):
        """
        Initialize the forwarder.

        Args:
            target_server: Upstream host, optionally with port, without scheme
            timeout: Upstream connect and read timeout in seconds
            scheme: URL scheme used to reach the upstream
            session: HTTP session to share; a new one is created when omitted
            buffer_size: Chunk size used when streaming the response body
        """
        self._target_server = target_server
        self._timeout = timeout
        self._scheme = scheme
        self._buffer_size = buffer_size
        self._session = session or self._create_session()

    @staticmethod
    def _create_session() -> requests.Session:
        session = requests.Session()
        # Only the client's own headers go upstream
        session.headers.clear()
        # Requests are independent; nothing carries over between clients
        session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
        return session

    @property
    def target_server(self) -> str:
        """Get the upstream host."""
        return self._target_server

    @property
    def session(self) -> requests.Session:
        """Get the shared HTTP session."""
        return self._session

    def upstream_url(self, request: HTTPRequest) -> str:
        """Build the upstream URL, keeping path and query untouched."""
        return f"{self._scheme}://{self._target_server}{request.uri}"

    def forward(self, request: HTTPRequest) -> requests.Response:
        """
        Send the request upstream, following redirects.

        Args:
            request: Request received from the client

        Returns:
            Upstream response with its body not yet consumed
        """
        headers = upstream_request_headers(request.headers)
        data = None
        if request.method in BODY_METHODS:
            data = request.body
            content_type = request.header('Content-Type')
            if content_type:
                headers['Content-Type'] = content_type

        for name in STACK_DEFAULT_HEADERS:
            if request.header(name) is None:
                headers[name] = SKIP_HEADER

        return self._session.request(
            request.method,
            self.upstream_url(request),
            headers=headers,
            data=data,
            allow_redirects=True,
            stream=True,
            timeout=self._timeout
        )

    def relay(self, response: requests.Response, client_socket: socket.socket,
              method: str = "GET") -> int:
        """
        Stream an upstream response back to the client and close it.

        Returns:
            Status code relayed
        """
        try:
            upstream_headers = response.raw.headers
            location = upstream_headers.get('Location')
            if location:
                logger.debug(f"Passing through Location: {location}")

            head = HTTPResponse(
                status_code=response.status_code,
                status_message=response.reason or "",
                headers=client_response_headers(
                    upstream_headers.items(),
                    content_type=upstream_headers.get('Content-Type'),
                    content_length=upstream_headers.get('Content-Length')
                )
            )
            client_socket.sendall(head.head_bytes())

            if method != "HEAD":
                # Body is relayed as received, still content-encoded
                for chunk in response.raw.stream(self._buffer_size, decode_content=False):
                    client_socket.sendall(chunk)

            return response.status_code
        finally:
            response.close()

    def close(self) -> None:
        """Release pooled upstream connections."""
        self._session.close()
