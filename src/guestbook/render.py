"""
=============================================================================
ENTRIES FRAGMENT
=============================================================================

Renders the public entries as the HTML fragment the front end swaps in
(htmx out-of-band swap, hence ``hx-swap-oob``):

    <div id="entries" hx-swap-oob="true">
      <div class="entry">
        <div class="entry_name">
          <p style="color: #ff0000;">ada</p>
          <a href="https://ada.dev" target="_blank" style="color: lightgray;">
            <span style="font-size: 0.7em; margin: 0px;">@</span>ada.dev</a>
          <p class="time">1760868000</p>
        </div>
        <p class="entry_message">hello!</p>
      </div>
      ...
    </div>

(Whitespace added for readability; the real output has none.)

Entries arrive oldest first from storage and are rendered newest first.
Every user-supplied value is HTML-escaped, including the color that ends
up inside a style attribute.

=============================================================================
"""

from html import escape
from typing import Iterable

from .storage.models import Entry


def render_entry(entry: Entry) -> str:
    """Markup for a single ``.entry`` block."""
    link = ""
    if entry.display_domain:
        link = (
            f'<a href="{escape(entry.domain)}" target="_blank" style="color: lightgray;">'
            f'<span style="font-size: 0.7em; margin: 0px;">@</span>'
            f"{escape(entry.display_domain)}</a>"
        )

    time_text = "" if entry.time is None else str(entry.time)

    return (
        '<div class="entry">'
        '<div class="entry_name">'
        f'<p style="color: {escape(entry.color)};">{escape(entry.name)}</p>'
        f"{link}"
        f'<p class="time">{time_text}</p>'
        "</div>"
        f'<p class="entry_message">{escape(entry.message)}</p>'
        "</div>"
    )


def render_entries(entries: Iterable[Entry]) -> str:
    """The full ``#entries`` fragment, newest entry first."""
    body = "".join(render_entry(entry) for entry in reversed(list(entries)))
    return f'<div id="entries" hx-swap-oob="true">{body}</div>'
