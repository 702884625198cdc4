"""
=============================================================================
GUESTBOOK DATA MODEL
=============================================================================

One guestbook post is an Entry. Entries are append-only: once written they
are never updated or deleted, so the dataclass is frozen.

=============================================================================
SANITIZATION, NOT REJECTION
=============================================================================

Two fields are rewritten before storage instead of being validated:

    color   "#1a2B3c"    → "#1a2B3c"    (matches #RRGGBB, case-insensitive)
            "red"        → "#000000"    (anything else becomes the default)

    domain  "example.com"          → "https://example.com"
            "http://example.com"   → "http://example.com"
            ""                     → "https://"

A bad color never fails a submission; it just renders black.

=============================================================================
"""

import re
from dataclasses import dataclass
from typing import Optional


DEFAULT_COLOR = "#000000"

COLOR_PATTERN = re.compile(r"#[0-9a-fA-F]{6}")

SCHEMES = ("https://", "http://")
DEFAULT_SCHEME = "https://"


@dataclass(frozen=True)
class Entry:
    """
    A stored guestbook post.

    Attributes:
        name: Display name, untrusted.
        domain: Absolute URL, always scheme-prefixed (see normalize_domain).
        message: Free text, untrusted.
        color: ``#RRGGBB`` token (see validate_color).
        time: Seconds since the epoch. Left as None by callers; the
              StorageGateway stamps it while holding its write lock.
        public: Visibility flag; every entry is created public.
    """

    name: str
    domain: str
    message: str
    color: str
    time: Optional[int] = None
    public: bool = True

    @property
    def display_domain(self) -> str:
        """The domain without its scheme, as shown next to the name."""
        for scheme in SCHEMES:
            if self.domain.lower().startswith(scheme):
                return self.domain[len(scheme):]
        return self.domain


def validate_color(color: str) -> str:
    """
    Return ``color`` if it is a ``#RRGGBB`` hex token, else DEFAULT_COLOR.

    >>> validate_color("#ABCDEF")
    '#ABCDEF'
    >>> validate_color("#abcdeg")
    '#000000'
    """
    if isinstance(color, str) and COLOR_PATTERN.fullmatch(color):
        return color
    return DEFAULT_COLOR


def normalize_domain(domain: str) -> str:
    """
    Prefix ``https://`` unless the domain already carries an http(s) scheme.

    >>> normalize_domain("example.com")
    'https://example.com'
    >>> normalize_domain("https://example.com")
    'https://example.com'
    """
    domain = domain.strip()
    if domain.lower().startswith(SCHEMES):
        return domain
    return DEFAULT_SCHEME + domain
