"""
HTTP protocol pieces: parsing the request, classifying the target,
and building the response heads and error pages.
"""

from .errors import AccessDeniedError, HTTPError, ProtocolError, ResourceError
from .mime_types import get_content_type
from .request import Request, parse_request_line, skip_headers
from .response import HTTPResponse, dynamic_response, error_response, static_response
from .status_codes import HTTPStatus
from .uri import ResolvedResource, resolve_target

__all__ = [
    # Requests
    "Request",
    "parse_request_line",
    "skip_headers",
    "ResolvedResource",
    "resolve_target",
    # Responses
    "HTTPResponse",
    "HTTPStatus",
    "static_response",
    "dynamic_response",
    "error_response",
    "get_content_type",
    # Errors
    "HTTPError",
    "ProtocolError",
    "ResourceError",
    "AccessDeniedError",
]
