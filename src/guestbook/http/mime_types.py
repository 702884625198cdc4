"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps static file extensions to Content-Type values.

The guestbook front page is plain HTML + CSS + JavaScript with a handful of
images and web fonts, so the table only carries what a small static site
ships. Anything else is served as UTF-8 plain text, which keeps browsers
from executing or downloading files the table does not know about.

=============================================================================
CHARSET
=============================================================================

Text types get ``; charset=utf-8`` appended so browsers never have to sniff
the encoding:

    index.html  → text/html; charset=utf-8
    style.css   → text/css; charset=utf-8
    logo.png    → image/png
    notes       → text/plain; charset=utf-8     (no extension)
    data.xyz    → text/plain; charset=utf-8     (unknown extension)

=============================================================================
"""

from pathlib import Path
from typing import Union


MIME_TYPES = {
    # Documents and scripts
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".txt": "text/plain",
    ".xml": "application/xml",
    ".pdf": "application/pdf",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".otf": "font/otf",
    ".ttf": "font/ttf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
}

DEFAULT_MIME_TYPE = "text/plain"


def get_mime_type(path: Union[str, Path]) -> str:
    """
    Get the bare MIME type for a file, based on its extension.

    >>> get_mime_type("static/logo.PNG")
    'image/png'
    >>> get_mime_type("README")
    'text/plain'
    """
    suffix = Path(path).suffix.lower()
    return MIME_TYPES.get(suffix, DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """Check whether a MIME type is textual and should carry a charset."""
    return (
        mime_type.startswith("text/")
        or mime_type in ("application/json", "application/xml", "image/svg+xml")
    )


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Get the full Content-Type header value for a file.

    >>> get_content_type("index.html")
    'text/html; charset=utf-8'
    >>> get_content_type("font.otf")
    'font/otf'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
