from typing import List, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum

HeaderList = List[Tuple[str, str]]

HEADER_ENCODING = 'iso-8859-1'


def decode_chunked(data: bytes) -> bytes:
    """Decode a body sent with chunked transfer coding."""
    body = bytearray()
    pos = 0
    while True:
        line_end = data.index(b'\r\n', pos)
        # Chunk extensions follow a semicolon
        size = int(data[pos:line_end].split(b';')[0].strip(), 16)
        if size == 0:
            return bytes(body)
        start = line_end + 2
        body.extend(data[start:start + size])
        pos = start + size + 2


def chunked_body_end(data: bytes, pos: int = 0) -> int:
    """
    Find where a chunked body starting at `pos` ends.

    Chunk sizes are walked rather than searching for the last-chunk
    marker, since chunk data may contain the same bytes.

    Returns:
        Offset just past the body and its trailers, or -1 while incomplete
    """
    while True:
        line_end = data.find(b'\r\n', pos)
        if line_end == -1:
            return -1
        size = int(data[pos:line_end].split(b';')[0].strip(), 16)
        pos = line_end + 2
        if size == 0:
            break
        pos += size + 2
        if pos > len(data):
            return -1

    # Trailer fields, then an empty line
    while True:
        line_end = data.find(b'\r\n', pos)
        if line_end == -1:
            return -1
        if line_end == pos:
            return pos + 2
        pos = line_end + 2


@dataclass
class HTTPRequest:
    """Model representing an incoming HTTP request."""
    method: str
    uri: str
    protocol: str
    headers: HeaderList
    body: bytes = b''

    @property
    def path(self) -> str:
        """Request path with any query string stripped."""
        return self.uri.split('?', 1)[0]

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive lookup of the first header named `name`."""
        name = name.lower()
        for key, value in self.headers:
            if key.lower() == name:
                return value
        return None

    @property
    def is_chunked(self) -> bool:
        transfer_encoding = self.header('Transfer-Encoding')
        return bool(transfer_encoding) and 'chunked' in transfer_encoding.lower()

    @classmethod
    def from_head(cls, head: bytes) -> Optional['HTTPRequest']:
        """Parse request line and headers, leaving the body empty."""
        try:
            lines = head.decode(HEADER_ENCODING).split('\r\n')

            # Parse request line
            method, uri, protocol = lines[0].strip().split()

            # Parse headers
            headers = []
            for line in lines[1:]:
                if not line.strip():
                    break
                key, value = line.split(':', 1)
                headers.append((key.strip(), value.strip()))

            return cls(
                method=method.upper(),
                uri=uri,
                protocol=protocol,
                headers=headers
            )
        except ValueError:
            return None

    @classmethod
    def from_raw_data(cls, request_data: bytes) -> Optional['HTTPRequest']:
        """Create HTTPRequest instance from raw request bytes."""
        head, _, body = request_data.partition(b'\r\n\r\n')
        request = cls.from_head(head)
        if not request:
            return None

        try:
            if request.is_chunked:
                request.body = decode_chunked(body)
            else:
                content_length = request.header('Content-Length')
                request.body = body[:int(content_length)] if content_length else body
        except ValueError:
            return None

        return request


@dataclass
class HTTPResponse:
    """Status line and headers of a response sent back to the client."""
    status_code: int
    status_message: str
    headers: HeaderList = field(default_factory=list)

    def head_bytes(self) -> bytes:
        """Render status line and headers, terminated by an empty line."""
        lines = [f"HTTP/1.1 {self.status_code} {self.status_message}"]
        lines.extend(f"{k}: {v}" for k, v in self.headers)
        return ('\r\n'.join(lines) + '\r\n\r\n').encode(HEADER_ENCODING)


class Outcome(Enum):
    """How a single request ended."""
    SUBSTITUTED = "substituted"
    PROXIED = "proxied"
    FAILED = "failed"
    DROPPED = "dropped"


@dataclass(frozen=True)
class RequestOutcome:
    """Result of running one request through the pipeline."""
    kind: Outcome
    path: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.kind in (Outcome.SUBSTITUTED, Outcome.PROXIED)
