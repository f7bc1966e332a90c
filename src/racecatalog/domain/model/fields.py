"""Wire field names and value coercion for catalog rows.

Proposals address fields with the agents' camelCase names (``startDate``,
``countrySubdivisionNameLevel1``). Catalog dataclasses use snake_case attributes.
The helpers here translate between the two and coerce loosely typed JSON values
into the column types declared on each entity class.
"""

from __future__ import annotations

import re
from dataclasses import fields as dataclass_fields
from datetime import UTC, date, datetime
from functools import cache
from logging import getLogger
from typing import TYPE_CHECKING, ClassVar, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


class CatalogRow(Protocol):
    """Structural type shared by the catalog dataclasses."""

    DATETIME_FIELDS: ClassVar[frozenset[str]]
    FLOAT_FIELDS: ClassVar[frozenset[str]]
    INT_FIELDS: ClassVar[frozenset[str]]
    TEXT_FIELDS: ClassVar[frozenset[str]]


def attribute_name(field: str) -> str:
    """``countrySubdivisionNameLevel1`` -> ``country_subdivision_name_level1``."""

    return _CAMEL_BOUNDARY.sub(r"_\1", field).lower()


def wire_name(attribute: str) -> str:
    """Inverse of :func:`attribute_name`."""

    head, *tail = attribute.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in tail)


@cache
def assignable_attributes(entity_cls: type) -> frozenset[str]:
    return frozenset(item.name for item in dataclass_fields(entity_cls) if item.name != "id")


def parse_datetime(value: object) -> datetime | None:
    """Parse ISO-8601 strings and dates into aware UTC datetimes.

    Raises ``ValueError`` for values that are neither empty nor parseable.
    """

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        parsed = datetime.fromisoformat(normalized)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    raise ValueError(f"Cannot interpret {value!r} as a timestamp")


def parse_float(value: object) -> float | None:
    """Lenient float parsing: blanks and garbage become ``None``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", "."))
        except ValueError:
            return None
    return None


def parse_int(value: object) -> int | None:
    number = parse_float(value)
    return int(number) if number is not None else None


def coerce_value(entity_cls: type[CatalogRow], attribute: str, value: object) -> object:
    if value is None:
        return None
    if attribute in entity_cls.DATETIME_FIELDS:
        return parse_datetime(value)
    if attribute in entity_cls.FLOAT_FIELDS:
        number = parse_float(value)
        if number is None:
            raise ValueError(f"Cannot interpret {value!r} as a number")
        return number
    if attribute in entity_cls.INT_FIELDS:
        number = parse_int(value)
        if number is None:
            raise ValueError(f"Cannot interpret {value!r} as an integer")
        return number
    if attribute in entity_cls.TEXT_FIELDS:
        return str(value)
    return value


def assign_fields(entity: object, values: Mapping[str, object]) -> list[str]:
    """Set wire-named ``values`` on ``entity`` and return the keys that were skipped.

    Keys are skipped when the entity has no such attribute, when they address the
    primary key, or when the value cannot be coerced to the column type.
    """

    entity_cls = type(entity)
    allowed = assignable_attributes(entity_cls)
    skipped: list[str] = []
    for key, value in values.items():
        attribute = attribute_name(key)
        if attribute not in allowed:
            skipped.append(key)
            continue
        try:
            coerced = coerce_value(entity_cls, attribute, value)
        except ValueError as exc:
            log.warning("Skipping %s.%s: %s", entity_cls.__name__, key, exc)
            skipped.append(key)
            continue
        setattr(entity, attribute, coerced)
    return skipped


def read_fields(entity: object, names: Iterable[str]) -> dict[str, object]:
    """Return the current values of wire-named fields, ``None`` for unknown ones."""

    return {name: getattr(entity, attribute_name(name), None) for name in names}
