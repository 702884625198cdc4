"""
=============================================================================
GUESTBOOK APPLICATION
=============================================================================

Executes the Action chosen by the dispatcher. One method per ActionKind:

    LIST_ENTRIES             200  text/css   entries fragment
    SUBMIT_ENTRY             201  text/css   entries fragment (after insert)
                             400             body missing a field
    GET_VISITOR_COUNT        200  application/json   "42"   + CORS origin
    INCREMENT_VISITOR_COUNT  200  empty body               + CORS origin
    PREFLIGHT                204  CORS origin, methods, headers, max-age
    SERVE_STATIC_FILE        200 / 304 / 404
    METHOD_NOT_ALLOWED       405  Allow: GET, POST, OPTIONS
    NOT_FOUND                404

The entries fragment goes out as ``text/css``. The deployed front end
expects exactly that content type, even though the body is HTML.

A StorageError while executing any action becomes a 500; the worker that
called handle() carries on with its next request. When the visitor
counter is disabled, every /visitor_count action answers 404.

=============================================================================
"""

import logging
from typing import Callable, Dict

from ..forms import SubmissionError, parse_submission
from ..http.dispatcher import Action, ActionKind, dispatch
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    internal_error,
    method_not_allowed,
    not_found,
)
from ..http.status_codes import HTTPStatus
from ..render import render_entries
from ..storage import StorageError, StorageGateway
from .static import StaticFileHandler


logger = logging.getLogger(__name__)


ENTRIES_CONTENT_TYPE = "text/css"
VISITOR_COUNT_CONTENT_TYPE = "application/json"

ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]

PREFLIGHT_METHODS = ["POST", "GET", "OPTIONS"]
PREFLIGHT_HEADERS = ["Content-Type"]
PREFLIGHT_MAX_AGE = 86400


ActionHandler = Callable[[HTTPRequest, Action], HTTPResponse]


class GuestbookApp:
    """
    Request handler for the whole guestbook.

    Usage:
        app = GuestbookApp(storage, StaticFileHandler("./public"))
        response = app.handle(request)
    """

    def __init__(
        self,
        storage: StorageGateway,
        static: StaticFileHandler,
        cors_origin: str = "*",
    ):
        self.storage = storage
        self.static = static
        self.cors_origin = cors_origin

        self._handlers: Dict[ActionKind, ActionHandler] = {
            ActionKind.SERVE_STATIC_FILE: self.serve_static_file,
            ActionKind.LIST_ENTRIES: self.list_entries,
            ActionKind.SUBMIT_ENTRY: self.submit_entry,
            ActionKind.GET_VISITOR_COUNT: self.get_visitor_count,
            ActionKind.INCREMENT_VISITOR_COUNT: self.increment_visitor_count,
            ActionKind.PREFLIGHT: self.preflight,
            ActionKind.METHOD_NOT_ALLOWED: self.reject_method,
            ActionKind.NOT_FOUND: self.not_found,
        }

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """Dispatch ``request`` and execute the resulting action."""
        action = dispatch(request.method, request.path)
        handler = self._handlers[action.kind]

        try:
            return handler(request, action)
        except StorageError as e:
            logger.error(f"Storage failure on {request.method} {request.path}: {e}")
            return internal_error("Storage failure")

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def _entries_fragment(self, status: HTTPStatus) -> HTTPResponse:
        fragment = render_entries(self.storage.list_public_entries())
        return (ResponseBuilder()
            .status(status)
            .text(fragment, content_type=ENTRIES_CONTENT_TYPE)
            .build())

    def list_entries(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        return self._entries_fragment(HTTPStatus.OK)

    def submit_entry(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        try:
            entry = parse_submission(request.body)
        except SubmissionError as e:
            logger.info(f"Rejected submission from {request.client_address[0]}: {e}")
            return bad_request(str(e))

        self.storage.insert_entry(entry)
        return self._entries_fragment(HTTPStatus.CREATED)

    # =========================================================================
    # VISITOR COUNTER
    # =========================================================================

    def get_visitor_count(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        if not self.storage.visitor_count_enabled:
            return not_found()

        count = self.storage.read_visitor_count()
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .text(str(count), content_type=VISITOR_COUNT_CONTENT_TYPE)
            .cors(self.cors_origin)
            .build())

    def increment_visitor_count(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        if not self.storage.visitor_count_enabled:
            return not_found()

        self.storage.increment_visitor_count()
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .cors(self.cors_origin)
            .build())

    def preflight(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        if not self.storage.visitor_count_enabled:
            return not_found()

        return (ResponseBuilder()
            .status(HTTPStatus.NO_CONTENT)
            .cors(
                self.cors_origin,
                methods=PREFLIGHT_METHODS,
                headers=PREFLIGHT_HEADERS,
                max_age=PREFLIGHT_MAX_AGE,
            )
            .build())

    # =========================================================================
    # EVERYTHING ELSE
    # =========================================================================

    def serve_static_file(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        return self.static.handle(action.path, request)

    def reject_method(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        return method_not_allowed(ALLOWED_METHODS)

    def not_found(self, request: HTTPRequest, action: Action) -> HTTPResponse:
        return not_found()
