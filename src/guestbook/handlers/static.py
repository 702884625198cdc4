"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves the guestbook's front end (index.html, scripts, styles, images)
from a root directory.

    GET /                 → <root>/index.html
    GET /js/htmx.min.js   → <root>/js/htmx.min.js
    GET /missing.png      → 404, empty body
    GET /../etc/passwd    → 404, empty body

Anything that does not resolve to a readable regular file inside the root
is a plain 404. The response never says *why* (missing, outside the root,
unreadable), so nothing about the filesystem leaks to the client.

=============================================================================
CACHING
=============================================================================

Each file gets an ETag built from its mtime and size. A request whose
If-None-Match matches gets 304 Not Modified with no body.

=============================================================================
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, ResponseBuilder, format_http_date, not_found
from ..http.status_codes import HTTPStatus
from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Maps a root-relative path to file bytes plus a Content-Type.

    Usage:
        static = StaticFileHandler("./public")
        response = static.handle("css/site.css", request)
    """

    def __init__(
        self,
        root_dir: str,
        index_file: str = "index.html",
        cache_max_age: int = 0,
    ):
        """
        Args:
            root_dir: Directory to serve from. Every served file must be
                      inside it after symlinks are resolved.
            index_file: File served for a directory path.
            cache_max_age: Cache-Control max-age in seconds (0 = revalidate).
        """
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def resolve(self, relative_path: str) -> Optional[Path]:
        """
        The file to serve for ``relative_path``, or None.

        None covers: escapes the root, does not exist, is a directory
        without an index file.
        """
        relative_path = relative_path.lstrip("/")
        try:
            full_path = (self.root_dir / relative_path).resolve()
        except (ValueError, OSError) as e:
            # e.g. an embedded NUL from a %00 in the URL
            logger.warning(f"Unresolvable path {relative_path!r}: {e}")
            return None

        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {relative_path}")
            return None

        try:
            if full_path.is_dir():
                full_path = full_path / self.index_file
            if not full_path.is_file():
                return None
        except (ValueError, OSError):
            return None
        return full_path

    def handle(self, relative_path: str, request: Optional[HTTPRequest] = None) -> HTTPResponse:
        """Serve ``relative_path`` (leading separator already stripped)."""
        path = self.resolve(relative_path)
        if path is None:
            return not_found()

        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if request is not None and request.get_header("if-none-match") == etag:
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except OSError as e:
            # Unreadable counts as missing.
            logger.warning(f"Cannot read {path}: {e}")
            return not_found()

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Content-Type", get_content_type(path))
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .header("Cache-Control", f"public, max-age={self.cache_max_age}")
            .body(content)
            .build())
