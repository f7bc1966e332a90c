"""No-op suppression: keep only proposed values that differ from stored ones."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import UTC, date, datetime
from logging import getLogger
from typing import Final

log = getLogger(__name__)

_ISO_TIMESTAMP: Final = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?"
    r"(?:Z|[+-]\d{2}:?\d{2})?$"
)


def _instant(value: datetime) -> str:
    aware = value if value.tzinfo else value.replace(tzinfo=UTC)
    return aware.astimezone(UTC).isoformat()


def _canonical_json(value: object) -> str:
    return json.dumps(value, sort_keys=True, default=str, ensure_ascii=False)


def normalize(value: object) -> object:
    """Map a value to a comparable canonical form.

    Empty strings collapse to ``None``, timestamps to a UTC instant string whatever
    their input format, lists to an order-insensitive JSON string and mappings to a
    key-sorted JSON string.
    """

    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, datetime):
        return _instant(value)
    if isinstance(value, date):
        return _instant(datetime(value.year, value.month, value.day, tzinfo=UTC))
    if isinstance(value, str):
        stripped = value.strip()
        if _ISO_TIMESTAMP.match(stripped):
            try:
                return _instant(datetime.fromisoformat(stripped.replace("Z", "+00:00")))
            except ValueError:
                return value
        return value
    if isinstance(value, list | tuple | set | frozenset):
        return _canonical_json(sorted(_canonical_json(item) for item in value))
    if isinstance(value, Mapping):
        return _canonical_json(dict(value))
    return value


def values_equal(left: object, right: object) -> bool:
    a = normalize(left)
    b = normalize(right)
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def filter_changed(
    proposed: Mapping[str, object],
    current: Mapping[str, object],
) -> dict[str, object]:
    """Return the entries of ``proposed`` whose normalised value differs from ``current``."""

    changed: dict[str, object] = {}
    for field, value in proposed.items():
        stored = current.get(field)
        if values_equal(value, stored):
            log.debug("No-op change suppressed for %s", field)
            continue
        changed[field] = value
    return changed
