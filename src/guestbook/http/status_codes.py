"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The subset of RFC 7231 status codes the guestbook server actually emits.

=============================================================================
WHERE EACH CODE COMES FROM
=============================================================================

    200 OK                  static files, entries fragment, visitor count
    201 Created             accepted guestbook submission
    204 No Content          CORS preflight on /visitor_count
    400 Bad Request         malformed HTTP or a submission missing a field
    404 Not Found           missing static file, OPTIONS outside /visitor_count
    405 Method Not Allowed  anything but GET / POST / OPTIONS
    408 Request Timeout     client connected but never sent a request
    413 Payload Too Large   request bigger than max_request_size
    500 Internal Error      storage failure or handler bug
    503 Unavailable         pending queue full, or server stopped first
    505 Version Unsupported anything but HTTP/1.0 and HTTP/1.1

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes as an IntEnum.

    Members compare equal to plain integers, so ``response.status == 404``
    works in tests and logs, while ``.phrase`` supplies the reason phrase
    for the status line.
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 3xx REDIRECTION
    NOT_MODIFIED = 304

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line (``HTTP/1.1 404 Not Found``)."""
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def allows_body(self) -> bool:
        """
        Whether a response with this status may carry a body.

        RFC 7230 section 3.3: 1xx, 204 and 304 responses never have a body,
        so they must not advertise a Content-Length either.
        """
        return self >= 200 and self not in (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}
