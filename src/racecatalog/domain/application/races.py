"""Race collection reconciliation for edition updates.

One proposal can add, update and delete races at the same time. Agents address
stored races by id (``races.toUpdate``) or by position (``racesToUpdate``), and
proposed additions by position in the add-list. Reviewers address rows with
synthetic keys (see :data:`~racecatalog.domain.changes.RaceEditKey`).

Writes happen in a fixed order: updates by id, positional updates, additions,
manual additions, and deletions last. The deletion set is computed up front and a
race in it is never updated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from racecatalog.domain.changes import (
    ExistingRace,
    ManualRace,
    PersistedRace,
    ProposedRace,
    extract_raw,
    lookup,
    parse_race_edit_key,
)
from racecatalog.domain.errors import EntityNotFoundError, require_id
from racecatalog.domain.model import parse_float

from .extract import (
    RACE_NUMERIC_FIELDS,
    lenient_datetime,
    normalize_race,
    route_generic_measures,
    strip_identity,
)

if TYPE_CHECKING:
    from racecatalog.domain.changes import ChangeSet, RaceEditKey
    from racecatalog.domain.model import Edition
    from racecatalog.domain.ports.persistence import CatalogRepository

    from .results import WarningLog

log = getLogger(__name__)

DELETED_FLAG: Final[str] = "_deleted"
_UPDATE_EXCLUDED: Final[frozenset[str]] = frozenset({"raceId", "raceName", "id"})


def race_id_of(value: object) -> int | None:
    """Race id from an int, a numeric string or a ``{"raceId": ...}`` object."""

    if isinstance(value, Mapping):
        entry = cast("Mapping[str, object]", value)
        value = entry.get("raceId", entry.get("id"))
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _entries(value: object) -> list[Mapping[str, object]]:
    if not isinstance(value, list):
        return []
    return [
        cast("Mapping[str, object]", item)
        for item in cast("list[object]", value)
        if isinstance(item, Mapping)
    ]


def _items(value: object) -> list[object]:
    return list(cast("list[object]", value)) if isinstance(value, list) else []


def build_race_update_data(updates: Mapping[str, object]) -> dict[str, object]:
    """Extract the written value of every field of a ``{field: {old, new}}`` map."""

    return {
        key: extract_raw(value) for key, value in updates.items() if key not in _UPDATE_EXCLUDED
    }


def reviewer_fields(edit: Mapping[str, object], *, category: object = None) -> dict[str, object]:
    """Coerce one reviewer race edit into column values.

    Blank values are ignored rather than clearing the column.
    """

    data = {
        key: value
        for key, value in edit.items()
        if key != DELETED_FLAG and value is not None and value != ""
    }
    for key in data.keys() & RACE_NUMERIC_FIELDS:
        data[key] = parse_float(data[key])
    if "startDate" in data:
        data["startDate"] = lenient_datetime(data["startDate"])
    return route_generic_measures(data, category=category)


@dataclass(slots=True)
class RaceChanges:
    """Every race instruction of one proposal, collected once."""

    updates_by_id: list[Mapping[str, object]] = field(default_factory=list)
    positional_updates: list[Mapping[str, object]] = field(default_factory=list)
    additions: list[Mapping[str, object]] = field(default_factory=list)
    agent_deletions: list[object] = field(default_factory=list)
    reviewer_deletions: list[object] = field(default_factory=list)
    removed_additions: frozenset[int] = frozenset()
    edits: dict[RaceEditKey, Mapping[str, object]] = field(default_factory=dict)

    @classmethod
    def collect(
        cls,
        changes: ChangeSet,
        overrides: Mapping[str, object] | None,
    ) -> RaceChanges:
        collected = cls()
        races = lookup(changes, "races")
        if isinstance(races, Mapping):
            nested = cast("Mapping[str, object]", races)
            collected.updates_by_id = _entries(nested.get("toUpdate"))
            collected.additions = _entries(nested.get("toAdd"))
            collected.agent_deletions.extend(_items(nested.get("toDelete")))
        elif isinstance(races, list):
            collected.updates_by_id = _entries(races)

        root_additions = lookup(changes, "racesToAdd")
        if isinstance(root_additions, list):
            collected.additions = _entries(root_additions)
        collected.positional_updates = _entries(lookup(changes, "racesToUpdate"))
        collected.agent_deletions.extend(_items(lookup(changes, "racesToDelete")))

        reviewer = overrides or {}
        collected.reviewer_deletions = _items(reviewer.get("racesToDelete"))
        collected.removed_additions = frozenset(
            index for index in _items(reviewer.get("racesToAddFiltered")) if isinstance(index, int)
        )
        raw_edits = reviewer.get("raceEdits")
        if isinstance(raw_edits, Mapping):
            for key, edit in cast("Mapping[str, object]", raw_edits).items():
                parsed = parse_race_edit_key(str(key))
                if parsed is None or not isinstance(edit, Mapping):
                    log.warning("Ignoring race edit %r", key)
                    continue
                collected.edits[parsed] = cast("Mapping[str, object]", edit)
        return collected

    def is_empty(self) -> bool:
        return not (
            self.updates_by_id
            or self.positional_updates
            or self.additions
            or self.agent_deletions
            or self.reviewer_deletions
            or self.edits
        )

    def positional_id(self, index: int) -> int | None:
        """Stored id behind ``existing-{index}``, taken from ``racesToUpdate``."""

        if 0 <= index < len(self.positional_updates):
            return race_id_of(self.positional_updates[index])
        return None

    def resolve(self, key: RaceEditKey) -> int | None:
        match key:
            case ExistingRace(index=index):
                return self.positional_id(index)
            case PersistedRace(race_id=race_id):
                return race_id
            case ProposedRace() | ManualRace():
                return None

    def deletion_set(self, warnings: WarningLog) -> set[int]:
        deleted: set[int] = set()
        for item in [*self.agent_deletions, *self.reviewer_deletions]:
            race_id = race_id_of(item)
            if race_id is None:
                warnings.add("racesToDelete", f"Invalid race reference {item!r}")
                continue
            deleted.add(race_id)
        for key, edit in self.edits.items():
            if not edit.get(DELETED_FLAG) or isinstance(key, ProposedRace | ManualRace):
                continue
            race_id = self.resolve(key)
            if race_id is None:
                warnings.add("raceEdits", f"Deleted race {key} matches no stored race")
                continue
            deleted.add(race_id)
        return deleted


@dataclass(slots=True)
class RaceReconciliation:
    created: list[int] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    deleted: list[int] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {"created": self.created, "updated": self.updated, "deleted": self.deleted}


class _Reconciler:
    def __init__(
        self,
        repository: CatalogRepository,
        edition: Edition,
        races: RaceChanges,
        warnings: WarningLog,
    ) -> None:
        self.repository = repository
        self.edition = edition
        self.races = races
        self.warnings = warnings
        self.outcome = RaceReconciliation()
        self.deleted = races.deletion_set(warnings)
        self.consumed: set[RaceEditKey] = set()

    def run(self) -> RaceReconciliation:
        self._update_by_id()
        self._update_positional()
        self._update_from_edits()
        self._add_proposed()
        self._add_manual()
        self._delete()
        return self.outcome

    def _update(self, race_id: int, data: Mapping[str, object]) -> None:
        if race_id in self.deleted:
            log.info("Race %s is being deleted, update skipped", race_id)
            return
        if not data:
            log.debug("Race %s has nothing to update", race_id)
            return
        try:
            self.repository.update_race(race_id, data)
        except EntityNotFoundError as exc:
            self.warnings.add("races", str(exc))
            return
        if race_id not in self.outcome.updated:
            self.outcome.updated.append(race_id)

    def _create(self, payload: dict[str, object]) -> None:
        payload.update(
            {
                "editionId": require_id(self.edition.id, "Edition"),
                "eventId": self.edition.event_id,
                "isActive": False,
            }
        )
        payload["timeZone"] = payload.get("timeZone") or self.edition.time_zone
        race = self.repository.create_race(payload)
        self.outcome.created.append(require_id(race.id, "Race"))

    def _update_by_id(self) -> None:
        for entry in self.races.updates_by_id:
            race_id = race_id_of(entry)
            if race_id is None:
                self.warnings.add("races", f"Invalid race id {entry.get('raceId')!r}")
                continue
            updates = entry.get("updates")
            source = (
                cast("Mapping[str, object]", updates) if isinstance(updates, Mapping) else entry
            )
            self._update(race_id, build_race_update_data(source))

    def _update_positional(self) -> None:
        for index, entry in enumerate(self.races.positional_updates):
            race_id = race_id_of(entry)
            if race_id is None:
                self.warnings.add("racesToUpdate", f"Invalid race id {entry.get('raceId')!r}")
                continue
            updates = entry.get("updates")
            data: dict[str, object] = {}
            if isinstance(updates, Mapping):
                data = {
                    key: value
                    for key, value in build_race_update_data(
                        cast("Mapping[str, object]", updates)
                    ).items()
                    if value is not None
                }
            for key in (PersistedRace(race_id), ExistingRace(index)):
                edit = self.races.edits.get(key)
                if edit is None:
                    continue
                self.consumed.add(key)
                if not edit.get(DELETED_FLAG):
                    data.update(
                        _without_identity(
                            reviewer_fields(edit, category=data.get("categoryLevel1"))
                        )
                    )
                break
            self._update(race_id, data)

    def _update_from_edits(self) -> None:
        for key, edit in self.races.edits.items():
            if key in self.consumed or edit.get(DELETED_FLAG):
                continue
            if not isinstance(key, ExistingRace | PersistedRace):
                continue
            race_id = self.races.resolve(key)
            if race_id is None:
                self.warnings.add("raceEdits", f"Race edit {key} matches no stored race")
                continue
            self._update(race_id, _without_identity(reviewer_fields(edit)))

    def _add_proposed(self) -> None:
        for index, proposed in enumerate(self.races.additions):
            if index in self.races.removed_additions:
                log.info("Proposed race new-%s removed by reviewer", index)
                continue
            edit = self.races.edits.get(ProposedRace(index), {})
            if edit.get(DELETED_FLAG):
                log.info("Proposed race new-%s deleted by reviewer", index)
                continue
            payload = normalize_race(proposed)
            payload.update(reviewer_fields(edit, category=payload.get("categoryLevel1")))
            self._create(strip_identity(payload, label=f"new-{index}", warnings=self.warnings))

    def _add_manual(self) -> None:
        for key, edit in self.races.edits.items():
            if not isinstance(key, ManualRace) or edit.get(DELETED_FLAG):
                continue
            payload = normalize_race(reviewer_fields(edit))
            self._create(strip_identity(payload, label=f"new-{key.stamp}", warnings=self.warnings))

    def _delete(self) -> None:
        for race_id in sorted(self.deleted):
            try:
                self.repository.delete_race(race_id)
            except EntityNotFoundError as exc:
                self.warnings.add("racesToDelete", str(exc))
                continue
            self.outcome.deleted.append(race_id)


def _without_identity(data: dict[str, object]) -> dict[str, object]:
    return {key: value for key, value in data.items() if key not in _UPDATE_EXCLUDED}


def reconcile_races(
    repository: CatalogRepository,
    *,
    edition: Edition,
    races: RaceChanges,
    warnings: WarningLog,
) -> RaceReconciliation:
    """Apply every race instruction of a proposal to one edition."""

    outcome = _Reconciler(repository, edition, races, warnings).run()
    log.info(
        "Races reconciled for edition %s: created=%s updated=%s deleted=%s",
        edition.id,
        outcome.created,
        outcome.updated,
        outcome.deleted,
    )
    return outcome
