"""
=============================================================================
HTTP REQUEST PARSING
=============================================================================

Tiny reads exactly two things from a request:

    GET /cgi-bin/adder?15&20 HTTP/1.0\\r\\n     ← request line: parsed
    Host: localhost:8000\\r\\n                  ┐
    User-Agent: curl/8.0\\r\\n                  ├ headers: read and dropped
    \\r\\n                                      ┘ blank line: end of request

=============================================================================
REQUEST LINE
=============================================================================

    METHOD SP TARGET SP VERSION CRLF

The line is split on whitespace. Missing tokens leave the later fields
empty and extra tokens are ignored, so a sloppy request line degrades
instead of being rejected. Only the method is validated, by a
case-insensitive comparison with "GET"; anything else (including an
empty line) is a 501.

Tokens are decoded as UTF-8 with surrogateescape, the same way Python
turns file names into str, so a target names exactly the bytes the
client sent even when they are not valid UTF-8.

=============================================================================
HEADERS
=============================================================================

No header changes what Tiny does, but they still have to be consumed:
the response must not be written while the client is mid-request. Lines
are drained until the blank line, with an upper bound on how many so a
client that never sends one cannot hold the server.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .errors import ProtocolError
from ..core.connection import Connection


logger = logging.getLogger(__name__)

SUPPORTED_METHOD = "GET"

# Header block terminators. CRLF is the protocol; a bare LF is tolerated.
_BLANK_LINES = (b"\r\n", b"\n")


class HeaderLimitError(ConnectionError):
    """The client sent more header lines than the server drains."""


@dataclass(frozen=True)
class Request:
    """
    A parsed request line.

    Immutable once parsed; lives only for the duration of one request.

    Attributes:
        method: As sent by the client (case preserved).
        target: The raw request URI, query string included.
        version: Protocol token, e.g. "HTTP/1.0". May be empty.
    """

    method: str
    target: str
    version: str = ""

    @property
    def request_line(self) -> str:
        return " ".join(part for part in (self.method, self.target, self.version) if part)


def parse_request_line(line: Union[bytes, str]) -> Request:
    """
    Parse the first line of a request.

    Args:
        line: The raw line, with or without its CRLF terminator.

    Returns:
        The parsed Request.

    Raises:
        ProtocolError: The method is not GET (compared case-insensitively).

    Examples:
        >>> parse_request_line(b"GET / HTTP/1.0\\r\\n")
        Request(method='GET', target='/', version='HTTP/1.0')

        >>> parse_request_line("get /home.html")
        Request(method='get', target='/home.html', version='')
    """
    if isinstance(line, bytes):
        # Split on ASCII whitespace only, then decode each token so that the
        # target's raw bytes come back unchanged from os.fsencode()
        tokens = [token.decode("utf-8", "surrogateescape") for token in line.split()]
    else:
        tokens = line.split()
    method, target, version = (tokens + ["", "", ""])[:3]

    if method.upper() != SUPPORTED_METHOD:
        raise ProtocolError(cause=method)

    return Request(method=method, target=target, version=version)


def skip_headers(conn: Connection, max_lines: Optional[int] = None) -> List[str]:
    """
    Drain header lines up to and including the blank line.

    Nothing is interpreted; the lines are returned only so the caller can
    log them.

    Args:
        conn: Connection positioned just after the request line.
        max_lines: Most header lines to accept. None means no limit.

    Returns:
        The header lines that were read, terminators stripped.

    Raises:
        HeaderLimitError: More than `max_lines` lines without a blank line.
        TimeoutError: The client stopped sending before the blank line.
    """
    headers: List[str] = []

    while True:
        line = conn.read_line()
        if line in _BLANK_LINES:
            return headers

        if not line:
            # End of stream: nothing more is coming, so nothing is left to drain
            logger.debug(f"[{conn.id}] Client closed before the end of the headers")
            return headers

        headers.append(line.decode("iso-8859-1").rstrip("\r\n"))
        if max_lines is not None and len(headers) > max_lines:
            raise HeaderLimitError(f"More than {max_lines} header lines")
