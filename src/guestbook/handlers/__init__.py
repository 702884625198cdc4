"""Request handlers: the guestbook application and static files."""

from .guestbook import GuestbookApp
from .static import StaticFileHandler

__all__ = ["GuestbookApp", "StaticFileHandler"]
