"""
=============================================================================
ROUTE DISPATCHER
=============================================================================

Maps ``(method, path)`` to the action a worker should perform.

The guestbook has a fixed, tiny URL space, so instead of a registration-
based router this is one pure function: no state, no handlers, nothing to
configure. Workers call dispatch() and hand the resulting Action to the
GuestbookApp, which knows how to execute each kind.

=============================================================================
ROUTING TABLE
=============================================================================

    ┌─────────┬──────────────────┬──────────────────────────────────────┐
    │ Method  │ Path             │ Action                               │
    ├─────────┼──────────────────┼──────────────────────────────────────┤
    │ GET     │ /entries         │ LIST_ENTRIES                         │
    │ GET     │ /visitor_count   │ GET_VISITOR_COUNT                    │
    │ GET     │ /                │ SERVE_STATIC_FILE("index.html")      │
    │ GET     │ /<path>          │ SERVE_STATIC_FILE("<path>")          │
    │ POST    │ /visitor_count   │ INCREMENT_VISITOR_COUNT              │
    │ POST    │ anything else    │ SUBMIT_ENTRY                         │
    │ OPTIONS │ /visitor_count   │ PREFLIGHT("/visitor_count")          │
    │ OPTIONS │ anything else    │ NOT_FOUND                            │
    │ other   │ any              │ METHOD_NOT_ALLOWED                   │
    └─────────┴──────────────────┴──────────────────────────────────────┘

First match wins, top to bottom. Note that POST to *any* path other than
/visitor_count is a guestbook submission; the front page form posts to "/".

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


ENTRIES_PATH = "/entries"
VISITOR_COUNT_PATH = "/visitor_count"
DEFAULT_DOCUMENT = "index.html"


class ActionKind(Enum):
    """What a worker should do with a request."""

    SERVE_STATIC_FILE = "serve_static_file"
    LIST_ENTRIES = "list_entries"
    SUBMIT_ENTRY = "submit_entry"
    GET_VISITOR_COUNT = "get_visitor_count"
    INCREMENT_VISITOR_COUNT = "increment_visitor_count"
    PREFLIGHT = "preflight"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Action:
    """
    Result of dispatching a request.

    ``path`` is only set for SERVE_STATIC_FILE (the file path relative to
    the static root, leading separator stripped) and PREFLIGHT (the
    request path being negotiated).
    """

    kind: ActionKind
    path: Optional[str] = None


def dispatch(method: str, path: str) -> Action:
    """
    Resolve a request to an Action.

    >>> dispatch("GET", "/")
    Action(kind=<ActionKind.SERVE_STATIC_FILE: 'serve_static_file'>, path='index.html')
    >>> dispatch("DELETE", "/entries").kind
    <ActionKind.METHOD_NOT_ALLOWED: 'method_not_allowed'>
    """
    method = method.upper()

    if method == "GET":
        if path == ENTRIES_PATH:
            return Action(ActionKind.LIST_ENTRIES)
        if path == VISITOR_COUNT_PATH:
            return Action(ActionKind.GET_VISITOR_COUNT)
        if path == "/":
            return Action(ActionKind.SERVE_STATIC_FILE, DEFAULT_DOCUMENT)
        return Action(ActionKind.SERVE_STATIC_FILE, path[1:] if path.startswith("/") else path)

    if method == "POST":
        if path == VISITOR_COUNT_PATH:
            return Action(ActionKind.INCREMENT_VISITOR_COUNT)
        return Action(ActionKind.SUBMIT_ENTRY)

    if method == "OPTIONS":
        if path == VISITOR_COUNT_PATH:
            return Action(ActionKind.PREFLIGHT, path)
        return Action(ActionKind.NOT_FOUND)

    return Action(ActionKind.METHOD_NOT_ALLOWED)
