"""Three-way merge of agent changes with reviewer overrides."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from .changes import (
    NEW_KEY,
    OLD_KEY,
    Diff,
    ProposedRace,
    Raw,
    Structured,
    parse_change,
    parse_race_edit_key,
    to_plain,
)

if TYPE_CHECKING:
    from .changes import ChangeSet, ChangeValue

log = getLogger(__name__)

RACES_KEY: Final[str] = "races"
TO_UPDATE_KEY: Final[str] = "toUpdate"
TO_ADD_KEY: Final[str] = "toAdd"


def merge_changes(agent: ChangeSet, overrides: Mapping[str, object] | None) -> ChangeSet:
    """Layer reviewer ``overrides`` on top of the agent change set.

    With no overrides the agent change set is returned as is. Otherwise the result
    is a fresh copy: for a ``Diff`` only ``new`` is replaced, other values are
    replaced wholesale, and ``races`` overrides are merged into the nested
    collection.
    """

    if not overrides:
        return agent

    merged = copy.deepcopy(agent)
    for key, value in overrides.items():
        if key == RACES_KEY and isinstance(value, Mapping):
            merged[key] = _merge_races(merged.get(key), cast("Mapping[str, object]", value))
            continue
        match merged.get(key):
            case Diff(old=old):
                merged[key] = Diff(old=old, new=copy.deepcopy(value))
            case Raw() | Structured() | None:
                merged[key] = parse_change(copy.deepcopy(value))
    return merged


def _merge_races(existing: ChangeValue | None, overrides: Mapping[str, object]) -> ChangeValue:
    plain = to_plain(existing) if existing is not None else {}
    if not isinstance(plain, dict):
        log.warning("Race overrides ignored: agent races are not an object")
        return existing if existing is not None else parse_change({})

    races = cast("dict[str, object]", plain)
    to_update = _dict_entries(races.get(TO_UPDATE_KEY))
    to_add = _dict_entries(races.get(TO_ADD_KEY))

    for key, value in overrides.items():
        if not isinstance(value, Mapping):
            log.debug("Race override %s is not an object, skipped", key)
            continue
        fields = cast("Mapping[str, object]", value)
        match parse_race_edit_key(key):
            case ProposedRace(index=index) if index < len(to_add):
                to_add[index].update(copy.deepcopy(dict(fields)))
            case _:
                target = _find_race_update(to_update, key)
                if target is None:
                    log.info("Race override %s matches no proposed race, ignored", key)
                    continue
                _merge_race_updates(target, fields)

    return parse_change(races)


def _dict_entries(value: object) -> list[dict[str, object]]:
    if not isinstance(value, list):
        return []
    return [cast("dict[str, object]", item) for item in value if isinstance(item, dict)]


def _find_race_update(entries: list[dict[str, object]], key: str) -> dict[str, object] | None:
    for entry in entries:
        race_id = entry.get("raceId", entry.get("id"))
        if race_id is not None and str(race_id) == key:
            return entry
    return None


def _merge_race_updates(entry: dict[str, object], fields: Mapping[str, object]) -> None:
    updates = entry.get("updates")
    if not isinstance(updates, dict):
        updates = {}
        entry["updates"] = updates
    typed_updates = cast("dict[str, object]", updates)
    for field, value in fields.items():
        current = typed_updates.get(field)
        if isinstance(current, dict) and NEW_KEY in current:
            cast("dict[str, object]", current)[NEW_KEY] = copy.deepcopy(value)
        else:
            typed_updates[field] = {OLD_KEY: None, NEW_KEY: copy.deepcopy(value)}
