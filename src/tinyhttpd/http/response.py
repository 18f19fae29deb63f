"""
=============================================================================
HTTP RESPONSE BUILDING
=============================================================================

Tiny writes three shapes of response, and the header set of each is
fixed (names, casing and order all matter on the wire):

    STATIC                          DYNAMIC                 ERROR
    ──────                          ───────                 ─────
    HTTP/1.0 200 OK                 HTTP/1.0 200 OK         HTTP/1.0 404 Not found
    Server: Tiny Web Server         Server: Tiny Web Server Content-type: text/html
    Connection: close               <child output...>       Content-length: 143
    Content-length: 2048
    Content-type: text/html                                 <html><title>Tiny Error...

    <file bytes...>

The dynamic head is left OPEN: no blank line is written, so
the CGI program can add its own headers (Content-type, Content-length)
and then terminate the block itself before its body.

=============================================================================
"""

import html
from dataclasses import dataclass, field
from typing import Dict, Union

from .errors import HTTPError
from .status_codes import HTTPStatus


SERVER_NAME = "Tiny Web Server"
HTTP_VERSION = "HTTP/1.0"

ERROR_PAGE_TEMPLATE = (
    "<html><title>Tiny Error</title>"
    "<body bgcolor=ffffff>\r\n"
    "{status}: {short_message}\r\n"
    "<p>{long_message}: {cause}\r\n"
    "<hr><em>The Tiny Web server</em>\r\n"
)


@dataclass
class HTTPResponse:
    """
    An HTTP response ready to be serialized.

    Headers are a plain dict, which preserves insertion order; they are
    written in exactly the order they were set. Once the first byte has
    been sent the response is not touched again.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        handler builds           head_bytes()/to_bytes()     Connection
        HTTPResponse   ─────►    serializes        ─────►    send_all()

    =========================================================================
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = HTTP_VERSION

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE

        Example: "HTTP/1.0 404 Not found"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def set_header(self, name: str, value: Union[str, int]) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = str(value)
        return self

    def set_body(self, body: Union[str, bytes]) -> "HTTPResponse":
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.body = body
        return self

    def head_bytes(self, terminate: bool = True) -> bytes:
        """
        Serialize the status line and headers.

        Args:
            terminate: Append the blank line that ends the header block.
                       False leaves the block open for a CGI program.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")

        head = "".join(f"{line}\r\n" for line in lines)
        if terminate:
            head += "\r\n"
        return head.encode("iso-8859-1")

    def to_bytes(self) -> bytes:
        """Serialize the complete response, body included."""
        return self.head_bytes() + self.body


# =============================================================================
# RESPONSE FACTORIES
# =============================================================================

def static_response(
    content_length: int,
    content_type: str,
    server_name: str = SERVER_NAME,
) -> HTTPResponse:
    """
    Head of a static file response.

    The body is not attached: file bytes are streamed by the static
    handler after the head has been sent.
    """
    return (HTTPResponse(HTTPStatus.OK)
        .set_header("Server", server_name)
        .set_header("Connection", "close")
        .set_header("Content-length", content_length)
        .set_header("Content-type", content_type))


def dynamic_response(server_name: str = SERVER_NAME) -> HTTPResponse:
    """Head of a dynamic response; send with head_bytes(terminate=False)."""
    return HTTPResponse(HTTPStatus.OK).set_header("Server", server_name)


def render_error_page(
    status: HTTPStatus,
    short_message: str,
    long_message: str,
    cause: str,
) -> str:
    """
    Fill in the fixed error page template.

    The cause comes straight from the request, so it is HTML-escaped
    before being embedded.
    """
    return ERROR_PAGE_TEMPLATE.format(
        status=int(status),
        short_message=short_message,
        long_message=long_message,
        cause=html.escape(cause, quote=False),
    )


def error_response(error: HTTPError) -> HTTPResponse:
    """
    Complete error response for an HTTPError.

    Example:
        >>> resp = error_response(ResourceError(cause="./missing.html"))
        >>> resp.status_line
        'HTTP/1.0 404 Not found'
    """
    page = render_error_page(
        error.status,
        error.short_message,
        error.long_message,
        error.cause,
    )
    # surrogateescape gives back the exact bytes of a cause taken from the request
    body = page.encode("utf-8", "surrogateescape")
    return (HTTPResponse(error.status)
        .set_header("Content-type", "text/html")
        .set_header("Content-length", len(body))
        .set_body(body))
