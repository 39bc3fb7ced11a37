import socket
import threading
import logging

from .config import ProxyConfig
from .handler import RequestHandler

logger = logging.getLogger(__name__)


class ProxyServer:
    """Core server implementation for the substitution proxy."""

    def __init__(self, config: ProxyConfig, upstream_scheme: str = "https"):
        """
        Initialize the proxy server.

        Args:
            config: Proxy configuration
            upstream_scheme: URL scheme used to reach the upstream server
        """
        self._config = config
        self._host = config.host
        self._port = config.port

        # Initialize server socket
        self._server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Initialize request handler
        self._handler = RequestHandler.from_config(config, scheme=upstream_scheme)

        self._running = False
        self._ready = threading.Event()

    @property
    def config(self) -> ProxyConfig:
        """Get the proxy configuration."""
        return self._config

    @property
    def host(self) -> str:
        """Get the host address."""
        return self._host

    @property
    def port(self) -> int:
        """Get the port number, the bound one once listening."""
        return self._port

    @property
    def server_socket(self) -> socket.socket:
        """Get the server socket."""
        return self._server_socket

    def wait_until_ready(self, timeout: float = None) -> bool:
        """Block until the server is listening."""
        return self._ready.wait(timeout)

    def start(self) -> None:
        """Start the proxy server."""
        self._running = True
        try:
            self._server_socket.bind((self._host, self._port))
            self._server_socket.listen(128)
            self._port = self._server_socket.getsockname()[1]
            self._ready.set()
            logger.info(f"Proxy started on {self._host}:{self._port} for {self._config.target_server}")

            while self._running:
                try:
                    client_socket, client_address = self._server_socket.accept()
                    if not self._running:
                        client_socket.close()
                        break

                    # Handle each client in a separate thread
                    thread = threading.Thread(
                        target=self._handler.handle_client,
                        args=(client_socket, client_address)
                    )
                    thread.daemon = True
                    thread.start()
                except Exception as e:
                    if self._running:  # Only log if we're still meant to be running
                        logger.error(f"Server error: {e}")

        finally:
            self._running = False
            self._server_socket.close()
            self._handler.forwarder.close()

    def shutdown(self) -> None:
        """Shutdown the proxy server gracefully."""
        self._running = False
        # Create a dummy connection to unblock accept()
        host = "127.0.0.1" if self._host in ("0.0.0.0", "") else self._host
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.connect((host, self._port))
        except OSError as e:
            logger.debug(f"Accept loop already stopped: {e}")
        self._server_socket.close()
