"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them for Connection.send_response().

=============================================================================
BUILDER PATTERN
=============================================================================

Handlers describe a response with a fluent builder instead of a long
constructor call:

    (ResponseBuilder()
        .status(HTTPStatus.OK)
        .text(str(count), content_type="application/json")
        .cors(origin="*")
        .build())

Every builder method returns ``self`` except build(), which produces the
HTTPResponse that the worker serializes with to_bytes().

=============================================================================
HEADERS ADDED AT SERIALIZATION TIME
=============================================================================

    Content-Length   always, except for 204 / 304 (which carry no body)
    Date             RFC 7231 origin servers must send it
    Server           ServerConfig.server_name

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from .status_codes import HTTPStatus


@dataclass
class HTTPResponse:
    """A response waiting to be serialized and sent."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {HTTPStatus(self.status).phrase}"

    def to_bytes(self, server_name: str = "Guestbook/1.0") -> bytes:
        """
        Serialize to the on-the-wire form:

            HTTP/1.1 201 Created\\r\\n
            Content-Type: text/css\\r\\n
            Content-Length: 412\\r\\n
            Date: Mon, 19 Oct 2026 10:00:00 GMT\\r\\n
            Server: Guestbook/1.0\\r\\n
            \\r\\n
            <div id="entries" ...
        """
        response_headers = dict(self.headers)
        body = self.body

        if HTTPStatus(self.status).allows_body:
            response_headers.setdefault("Content-Length", str(len(body)))
        else:
            response_headers.pop("Content-Length", None)
            body = b""

        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())
        lines.append("")
        return "\r\n".join(lines).encode("utf-8") + b"\r\n" + body


class ResponseBuilder:
    """Fluent builder for HTTPResponse objects."""

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain; charset=utf-8") -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def cors(
        self,
        origin: str = "*",
        methods: Optional[list[str]] = None,
        headers: Optional[list[str]] = None,
        max_age: Optional[int] = None,
    ) -> "ResponseBuilder":
        """
        Add CORS headers.

        Simple responses only need Access-Control-Allow-Origin; preflight
        responses also list the allowed methods and headers and how long
        the browser may cache the answer.
        """
        self._headers["Access-Control-Allow-Origin"] = origin
        if methods:
            self._headers["Access-Control-Allow-Methods"] = ", ".join(methods)
        if headers:
            self._headers["Access-Control-Allow-Headers"] = ", ".join(headers)
        if max_age is not None:
            self._headers["Access-Control-Max-Age"] = str(max_age)
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(status=self._status, headers=dict(self._headers), body=self._body)


def format_http_date(dt: datetime) -> str:
    """
    Format a UTC datetime as an RFC 7231 HTTP-date.

    Built by hand rather than with strftime so the output never depends
    on the process locale.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================
#
# One-liners for the error responses the workers and handlers emit.
# 404 and 405 go out with an empty body: a failed lookup must not echo
# back anything about the filesystem.
#
# =============================================================================

def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.BAD_REQUEST).json({"error": message}).build()


def not_found() -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .build())


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.INTERNAL_SERVER_ERROR).json({"error": message}).build()


def service_unavailable(message: str = "Service Unavailable") -> HTTPResponse:
    return (ResponseBuilder()
        .status(HTTPStatus.SERVICE_UNAVAILABLE)
        .json({"error": message})
        .close_connection()
        .build())


def error_response(status: int, message: str) -> HTTPResponse:
    """Build a JSON error response for an arbitrary status code."""
    return ResponseBuilder().status(HTTPStatus(status)).json({"error": message}).build()
