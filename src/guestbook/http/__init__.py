"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

    request.py       raw bytes → HTTPRequest (RequestParser, HTTPParseError)
    response.py      HTTPResponse, ResponseBuilder, error helpers
    status_codes.py  HTTPStatus enum
    mime_types.py    file extension → Content-Type
    dispatcher.py    (method, path) → Action

Nothing in here touches sockets, threads or the database.

=============================================================================
"""

from .dispatcher import Action, ActionKind, dispatch
from .request import HTTPParseError, HTTPRequest, RequestParser
from .response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    error_response,
    internal_error,
    method_not_allowed,
    not_found,
    service_unavailable,
)
from .status_codes import HTTPStatus
from .mime_types import get_content_type

__all__ = [
    "Action",
    "ActionKind",
    "dispatch",
    "HTTPParseError",
    "HTTPRequest",
    "RequestParser",
    "HTTPResponse",
    "ResponseBuilder",
    "bad_request",
    "error_response",
    "internal_error",
    "method_not_allowed",
    "not_found",
    "service_unavailable",
    "HTTPStatus",
    "get_content_type",
]
