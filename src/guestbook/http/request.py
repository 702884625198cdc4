"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the raw bytes a worker read off a connection into an HTTPRequest.

The guestbook only needs a small slice of HTTP/1.1: a request line, a few
headers (Content-Length, Content-Type, User-Agent) and, for submissions,
a URL-encoded body. The parser still validates the whole message, because
every byte of it is attacker-controlled.

=============================================================================
WHAT GETS REJECTED (AND WITH WHICH STATUS)
=============================================================================

    request larger than max_request_size      → 413 Payload Too Large
    no blank line after the headers            → 400 Bad Request
    request line not "METHOD SP URI SP VER"    → 400 Bad Request
    method token outside the RFC 7231 set      → 405 Method Not Allowed
    version other than HTTP/1.0 or HTTP/1.1    → 505 Version Not Supported
    ".." anywhere in the decoded path          → 400 Bad Request
    body shorter than Content-Length           → 400 Bad Request

Rejections raise HTTPParseError carrying the status code, and the worker
answers with that status instead of dispatching.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import parse_qs, unquote, urlparse


class HTTPParseError(Exception):
    """
    Raised when a request cannot be parsed.

    Carries the HTTP status code the worker should answer with.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Header names are stored lowercase (they are case-insensitive per
    RFC 7230), and ``path`` never includes the query string:

        GET /entries?x=1 HTTP/1.1   →   path="/entries", query_params={"x": ["1"]}
    """

    method: str
    path: str
    version: str = "HTTP/1.1"
    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""
    client_address: tuple[str, int] = ("", 0)

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw request bytes into HTTPRequest objects.

        raw bytes
            │
            ├── size check            (413)
            ├── split at \\r\\n\\r\\n    (400)
            ├── request line          (400 / 405 / 505)
            ├── headers               (lenient: malformed lines are skipped)
            └── body by Content-Length (400 if short)
            ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    # Method is any RFC 7230 token, so "get" or "BREW" reach the 405 check.
    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+\-.^_`|~0-9A-Za-z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse one complete request.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, query_params, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        # ─────────────────────────────────────────────────────────────────
        # BODY: trust Content-Length only
        # ─────────────────────────────────────────────────────────────────
        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if content_length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            query_params=query_params,
            body=body[:content_length],
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, Dict[str, list[str]], str]:
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        parsed = urlparse(uri)
        path = unquote(parsed.path) or "/"
        query_params = parse_qs(parsed.query, keep_blank_values=True)

        # The static handler resolves paths against a root directory;
        # never let a request climb out of it.
        if ".." in path:
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, path, query_params, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        for line in lines:
            if not line:
                continue
            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip garbage header lines

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()

            # Repeated headers fold into one comma-separated value (RFC 7230 3.2.2)
            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value
        return headers

