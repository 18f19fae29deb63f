"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The Tiny server only ever answers with four status codes:

    ┌────────┬──────────────────┬──────────────────────────────────────┐
    │  Code  │  Phrase          │  When                                 │
    ├────────┼──────────────────┼──────────────────────────────────────┤
    │  200   │  OK              │  static file or dynamic output       │
    │  403   │  Forbidden       │  missing read / execute permission   │
    │  404   │  Not found       │  path does not exist                 │
    │  501   │  Not implemented │  any method other than GET           │
    └────────┴──────────────────┴──────────────────────────────────────┘

The phrases are the ones Tiny has always sent ("Not found", not the
RFC's "Not Found"); clients that compare status lines byte-for-byte
depend on them.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not found'
    """

    OK = 200
    FORBIDDEN = 403
    NOT_FOUND = 404
    NOT_IMPLEMENTED = 501

    @property
    def phrase(self) -> str:
        """Reason phrase written after the code on the status line."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not found",
    HTTPStatus.NOT_IMPLEMENTED: "Not implemented",
}
