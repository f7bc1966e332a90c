"""Human-readable event slugs."""

from __future__ import annotations

import re
import unicodedata

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def slugify(name: str) -> str:
    decomposed = unicodedata.normalize("NFD", name.lower())
    ascii_only = "".join(char for char in decomposed if not unicodedata.combining(char))
    cleaned = _DISALLOWED.sub("", ascii_only).strip()
    return _DASHES.sub("-", _WHITESPACE.sub("-", cleaned))


def event_slug(name: str, event_id: int) -> str:
    """Slug of a stored event; the id suffix keeps homonymous events apart."""

    return f"{slugify(name)}-{event_id}"
