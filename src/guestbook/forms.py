"""
=============================================================================
SUBMISSION PARSING
=============================================================================

The front-end form posts an ``application/x-www-form-urlencoded`` body:

    color=%23ff0000&name=ada&domain=ada.dev&message=hello%21

parse_submission() decodes it and returns an unsaved Entry, already
sanitized:

    color    validated; anything but #RRGGBB becomes #000000
    domain   prefixed with https:// unless it has an http(s) scheme
    time     left empty; the storage gateway stamps it on insert
    public   always True

All four fields must be present (an empty value is fine). A body without
one of them raises SubmissionError, which the handler answers with 400.

=============================================================================
"""

from urllib.parse import parse_qs

from .storage.models import Entry, normalize_domain, validate_color


REQUIRED_FIELDS = ("color", "name", "domain", "message")


class SubmissionError(ValueError):
    """A guestbook submission body is missing a field or is not decodable."""


def parse_submission(body: bytes) -> Entry:
    """
    Decode a URL-encoded submission body into an Entry.

    Raises:
        SubmissionError: A required field is missing or the body is not UTF-8.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise SubmissionError("Submission body is not valid UTF-8") from e

    fields = parse_qs(text, keep_blank_values=True)

    missing = [name for name in REQUIRED_FIELDS if name not in fields]
    if missing:
        raise SubmissionError(f"Missing field(s): {', '.join(missing)}")

    # Repeated fields: first value wins.
    values = {name: fields[name][0] for name in REQUIRED_FIELDS}

    return Entry(
        name=values["name"],
        domain=normalize_domain(values["domain"]),
        message=values["message"],
        color=validate_color(values["color"]),
    )
