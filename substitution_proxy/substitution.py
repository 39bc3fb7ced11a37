import os
import socket
import logging
import mimetypes
from typing import Optional

from .models import HTTPResponse

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


class SubstitutionResolver:
    """Decides whether a local file replaces the upstream response."""

    def __init__(self, substitution_dir: str, base_dir: str = "."):
        """
        Initialize the resolver.

        Args:
            substitution_dir: Directory holding override files, relative to base_dir
            base_dir: Directory the substitution directory is resolved against
        """
        self._substitution_dir = substitution_dir
        self._base_dir = base_dir

    @property
    def substitution_dir(self) -> str:
        """Get the substitution directory."""
        return self._substitution_dir

    def candidate_path(self, path: str) -> str:
        """Map a request path onto a file under the substitution directory."""
        return f"{self._base_dir}/{self._substitution_dir}{path}"

    def resolve(self, path: str) -> Optional[str]:
        """
        Find the override file for a request path.

        Args:
            path: Request path without query string

        Returns:
            Path of the file to serve, or None when the request is proxied
        """
        if path == "/":
            return None

        candidate = self.candidate_path(path)
        root = os.path.realpath(os.path.join(self._base_dir, self._substitution_dir))
        if os.path.commonpath([root, os.path.realpath(candidate)]) != root:
            logger.warning(f"Ignoring substitution outside {self._substitution_dir} for {path}")
            return None

        if os.path.isfile(candidate):
            return candidate
        return None


def serve_file(file_path: str, client_socket: socket.socket,
               method: str = "GET", buffer_size: int = 4096) -> int:
    """
    Send a local file to the client as a 200 response.

    Returns:
        Status code sent
    """
    content_type, _ = mimetypes.guess_type(file_path)
    with open(file_path, 'rb') as f:
        size = os.fstat(f.fileno()).st_size
        response = HTTPResponse(
            status_code=200,
            status_message="OK",
            headers=[
                ('Content-Type', content_type or DEFAULT_CONTENT_TYPE),
                ('Content-Length', str(size)),
                ('Connection', 'close')
            ]
        )
        client_socket.sendall(response.head_bytes())
        if method == "HEAD":
            return response.status_code

        while True:
            chunk = f.read(buffer_size)
            if not chunk:
                break
            client_socket.sendall(chunk)

    return response.status_code
