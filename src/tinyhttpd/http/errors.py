"""
=============================================================================
REQUEST ERRORS
=============================================================================

Every failure the pipeline can report to a client is an HTTPError.
Raising one ends request handling; the server catches it at the top of
the pipeline and writes exactly one error page.

    HTTPError
    ├── ProtocolError       501  method is not GET
    ├── ResourceError       404  path does not resolve to anything
    └── AccessDeniedError   403  exists, but read/execute bit is missing
                                 or it lies outside the document root

Transport failures (a client that hangs up mid-transfer, a read
deadline) are NOT HTTPErrors. They surface as the builtin
ConnectionError / TimeoutError, and the request is abandoned without an
error page since there is nobody left to read it.

=============================================================================
"""

from .status_codes import HTTPStatus


READ_DENIED = "Tiny couldn't read the file"
EXECUTE_DENIED = "Tiny couldn't run the CGI program"


class HTTPError(Exception):
    """
    A request failure that is reported to the client as an error page.

    Attributes:
        status: HTTP status code of the error page.
        long_message: Human-readable explanation shown in the page body.
        cause: The offending resource (method name or filesystem path).
    """

    status: HTTPStatus
    long_message: str = ""

    def __init__(self, cause: str, long_message: str = ""):
        self.cause = cause
        if long_message:
            self.long_message = long_message
        super().__init__(f"{int(self.status)} {self.short_message}: {self.long_message}: {cause}")

    @property
    def short_message(self) -> str:
        return self.status.phrase


class ProtocolError(HTTPError):
    """The request method is not supported (only GET is)."""

    status = HTTPStatus.NOT_IMPLEMENTED
    long_message = "Tiny does not implement this method"


class ResourceError(HTTPError):
    """The request target does not resolve to an existing file."""

    status = HTTPStatus.NOT_FOUND
    long_message = "Tiny couldn't find this file"


class AccessDeniedError(HTTPError):
    """The file exists but may not be read (static) or run (dynamic)."""

    status = HTTPStatus.FORBIDDEN
    long_message = READ_DENIED

