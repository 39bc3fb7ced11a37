import socket
import select
import logging
from typing import Optional, Tuple

from .config import ProxyConfig
from .forwarder import UpstreamForwarder
from .models import HTTPRequest, Outcome, RequestOutcome, chunked_body_end
from .substitution import SubstitutionResolver, serve_file

logger = logging.getLogger(__name__)

HEADER_END = b'\r\n\r\n'


class RequestHandler:
    """Runs each client request through substitution or forwarding."""

    def __init__(self, resolver: SubstitutionResolver, forwarder: UpstreamForwarder,
                 timeout: int = 5, buffer_size: int = 4096):
        """
        Initialize the request handler.

        Args:
            resolver: Decides which requests are answered from local files
            forwarder: Sends everything else to the upstream server
            timeout: Client socket timeout in seconds
            buffer_size: Size of socket reads and file chunks
        """
        self._resolver = resolver
        self._forwarder = forwarder
        self._timeout = timeout
        self._buffer_size = buffer_size

    @classmethod
    def from_config(cls, config: ProxyConfig, scheme: str = "https") -> 'RequestHandler':
        """Build a handler with its resolver and forwarder from configuration."""
        return cls(
            SubstitutionResolver(config.substitution_dir),
            UpstreamForwarder(config.target_server, timeout=config.timeout, scheme=scheme)
        )

    @property
    def forwarder(self) -> UpstreamForwarder:
        return self._forwarder

    def handle_client(self, client_socket: socket.socket,
                      client_address: Tuple[str, int]) -> RequestOutcome:
        """
        Handle an individual client connection.

        Any error ends the request without a response; it never reaches
        the accept loop.

        Args:
            client_socket: Socket object for client connection
            client_address: Tuple of client's IP and port

        Returns:
            Outcome of the request
        """
        client_socket.settimeout(self._timeout)
        path = None

        try:
            request_data = self._read_request(client_socket)
            if not request_data:
                return RequestOutcome(Outcome.DROPPED)

            request = HTTPRequest.from_raw_data(request_data)
            if not request:
                logger.warning(f"Dropping unparseable request from {client_address}")
                return RequestOutcome(Outcome.DROPPED)

            path = request.path
            return self._dispatch(request, client_socket)

        except Exception as e:
            logger.exception(f"Error handling client {client_address} for {path}: {e}")
            return RequestOutcome(Outcome.FAILED, path=path, error=e)
        finally:
            client_socket.close()

    def _dispatch(self, request: HTTPRequest, client_socket: socket.socket) -> RequestOutcome:
        """Serve the override file when one exists, otherwise proxy."""
        path = request.path
        file_path = self._resolver.resolve(path)
        if file_path:
            logger.info(f"substitution for {path}")
            status = serve_file(file_path, client_socket, request.method, self._buffer_size)
            return RequestOutcome(Outcome.SUBSTITUTED, path=path, status_code=status)

        logger.info(f"Proxy for {path}")
        response = self._forwarder.forward(request)
        status = self._forwarder.relay(response, client_socket, request.method)
        return RequestOutcome(Outcome.PROXIED, path=path, status_code=status)

    def _recv(self, client_socket: socket.socket) -> bytes:
        """Read one chunk, or nothing once the client goes quiet."""
        ready = select.select([client_socket], [], [], self._timeout)
        if not ready[0]:  # Timeout
            return b''
        return client_socket.recv(self._buffer_size)

    def _read_request(self, client_socket: socket.socket) -> Optional[bytes]:
        """Read the complete HTTP request from the client socket."""
        request_data = bytearray()

        while HEADER_END not in request_data:
            chunk = self._recv(client_socket)
            if not chunk:
                return bytes(request_data) if request_data else None
            request_data.extend(chunk)

        head, _, _ = bytes(request_data).partition(HEADER_END)
        request = HTTPRequest.from_head(head)
        if not request:
            return bytes(request_data)

        if request.is_chunked:
            body_start = len(head) + len(HEADER_END)
            while chunked_body_end(request_data, body_start) == -1:
                chunk = self._recv(client_socket)
                if not chunk:  # Connection closed
                    break
                request_data.extend(chunk)
            return bytes(request_data)

        content_length = request.header('Content-Length')
        if content_length:
            total_length = len(head) + len(HEADER_END) + int(content_length)
            # Keep reading until we have the complete message
            while len(request_data) < total_length:
                chunk = self._recv(client_socket)
                if not chunk:  # Connection closed
                    break
                request_data.extend(chunk)

        return bytes(request_data)
