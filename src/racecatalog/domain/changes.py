"""Change values: the parsed shape of one proposed field change.

Agents emit loosely structured JSON mixing bare values, ``{"old", "new"}`` pairs
and nested objects. It is parsed once into :data:`ChangeValue` and every consumer
matches exhaustively on the three variants.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from logging import getLogger
from typing import Final

log = getLogger(__name__)

NEW_KEY: Final[str] = "new"
OLD_KEY: Final[str] = "old"
PROPOSED_KEY: Final[str] = "proposed"
CURRENT_KEY: Final[str] = "current"


@dataclass(frozen=True, slots=True)
class Raw:
    """Set ``value`` unconditionally."""

    value: object


@dataclass(frozen=True, slots=True)
class Diff:
    """Replace ``old`` with ``new``; ``old`` is informational and never rewritten."""

    old: object
    new: object


@dataclass(frozen=True, slots=True)
class Structured:
    """Nested object such as the race collection or the organizer block."""

    fields: Mapping[str, ChangeValue]


type ChangeValue = Raw | Diff | Structured
type ChangeSet = dict[str, ChangeValue]


def parse_change(value: object) -> ChangeValue:
    if isinstance(value, Mapping):
        if NEW_KEY in value:
            return Diff(old=value.get(OLD_KEY), new=value[NEW_KEY])
        if PROPOSED_KEY in value:
            return Diff(old=value.get(CURRENT_KEY), new=value[PROPOSED_KEY])
        return Structured(fields={str(key): parse_change(item) for key, item in value.items()})
    return Raw(value)


def parse_changes(payload: Mapping[str, object] | None) -> ChangeSet:
    if not payload:
        return {}
    return {key: parse_change(value) for key, value in payload.items()}


def extract_value(change: ChangeValue) -> object:
    """Return the value to write: ``None`` means clear the field."""

    match change:
        case Raw(value=value):
            return value
        case Diff(new=new):
            return new
        case Structured(fields=nested):
            return {key: extract_value(item) for key, item in nested.items()}


def extract_raw(value: object) -> object:
    """Like :func:`extract_value` for JSON fragments that were never parsed."""

    if isinstance(value, Mapping):
        if NEW_KEY in value:
            return value[NEW_KEY]
        if PROPOSED_KEY in value:
            return value[PROPOSED_KEY]
    return value


def to_plain(change: ChangeValue) -> object:
    match change:
        case Raw(value=value):
            return value
        case Diff(old=old, new=new):
            return {OLD_KEY: old, NEW_KEY: new}
        case Structured(fields=nested):
            return {key: to_plain(item) for key, item in nested.items()}


def to_payload(changes: ChangeSet) -> dict[str, object]:
    return {key: to_plain(value) for key, value in changes.items()}


def selected_values(changes: ChangeSet) -> dict[str, object]:
    """Flatten a change set to the values that would be written."""

    return {key: extract_value(value) for key, value in changes.items()}


def lookup(changes: ChangeSet, key: str) -> object:
    """Extracted value of ``key``, or ``None`` when the key is absent."""

    change = changes.get(key)
    return extract_value(change) if change is not None else None


# Race edit keys --------------------------------------------------------------

MANUAL_KEY_THRESHOLD: Final[int] = 1_000_000

_EXISTING_KEY = re.compile(r"^existing-(\d+)$")
_NEW_KEY = re.compile(r"^new-(\d+)$")
_PERSISTED_KEY = re.compile(r"^\d+$")


@dataclass(frozen=True, slots=True)
class ExistingRace:
    """``existing-{i}``: position ``i`` in the agent's ``racesToUpdate`` array."""

    index: int


@dataclass(frozen=True, slots=True)
class PersistedRace:
    """Bare numeric key: a stored race id."""

    race_id: int


@dataclass(frozen=True, slots=True)
class ProposedRace:
    """``new-{i}``: position ``i`` in the agent's add-list."""

    index: int


@dataclass(frozen=True, slots=True)
class ManualRace:
    """``new-{timestamp}``: a row the reviewer added by hand."""

    stamp: int


type RaceEditKey = ExistingRace | PersistedRace | ProposedRace | ManualRace


def parse_race_edit_key(key: str) -> RaceEditKey | None:
    if match := _EXISTING_KEY.match(key):
        return ExistingRace(int(match.group(1)))
    if match := _NEW_KEY.match(key):
        number = int(match.group(1))
        if number > MANUAL_KEY_THRESHOLD:
            return ManualRace(number)
        return ProposedRace(number)
    if _PERSISTED_KEY.match(key):
        return PersistedRace(int(key))
    log.debug("Unrecognised race edit key: %s", key)
    return None
