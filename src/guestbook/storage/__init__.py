"""
Guestbook persistence: the Entry model and the mutex-guarded SQLite gateway.
"""

from .gateway import StorageError, StorageGateway
from .models import DEFAULT_COLOR, Entry, normalize_domain, validate_color

__all__ = [
    "StorageError",
    "StorageGateway",
    "DEFAULT_COLOR",
    "Entry",
    "normalize_domain",
    "validate_color",
]
