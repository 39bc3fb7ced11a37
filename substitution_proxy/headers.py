"""
Header policy for both legs of a proxied request.

Framing headers belong to a single connection leg and are recomputed by
the HTTP layer on the other side, so they are never copied across.
"""

from typing import Dict, Iterable, Optional, Tuple

from .models import HeaderList

EXCLUDED_REQUEST_HEADERS = frozenset({
    'content-type', 'content-length', 'host', 'transfer-encoding'
})

EXCLUDED_RESPONSE_HEADERS = frozenset({
    'content-type', 'content-length', 'transfer-encoding'
})

# The listener serves one request per connection and owns its lifetime
CONNECTION_HEADERS = frozenset({'connection', 'keep-alive'})


def upstream_request_headers(headers: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """
    Copy inbound request headers for the upstream request.

    Args:
        headers: Header pairs received from the client

    Returns:
        Header dictionary for the upstream request, repeated headers joined
    """
    result: Dict[str, str] = {}
    seen: Dict[str, str] = {}
    for key, value in headers:
        lower = key.lower()
        if lower in EXCLUDED_REQUEST_HEADERS:
            continue
        if lower in seen:
            original = seen[lower]
            # Cookie pairs use their own separator (RFC 6265 5.4)
            separator = "; " if lower == 'cookie' else ", "
            result[original] = f"{result[original]}{separator}{value}"
        else:
            seen[lower] = key
            result[key] = value
    return result


def client_response_headers(headers: Iterable[Tuple[str, str]],
                            content_type: Optional[str] = None,
                            content_length: Optional[str] = None) -> HeaderList:
    """
    Build the header list relayed to the client from an upstream response.

    Content-Type and Content-Length are set explicitly when present; every
    other upstream header is passed through unmodified, Location included.
    """
    result: HeaderList = []
    if content_type is not None:
        result.append(('Content-Type', content_type))
    if content_length is not None:
        result.append(('Content-Length', content_length))

    for key, value in headers:
        lower = key.lower()
        if lower in EXCLUDED_RESPONSE_HEADERS or lower in CONNECTION_HEADERS:
            continue
        result.append((key, value))

    result.append(('Connection', 'close'))
    return result
