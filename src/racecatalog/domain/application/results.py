"""Structured outcome of applying a proposal."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from logging import getLogger

from racecatalog.domain.model import Severity

log = getLogger(__name__)


def jsonable(value: object) -> object:
    """Convert written values (dates, tuples, sets) into JSON-compatible ones."""

    match value:
        case date():
            return value.isoformat()
        case Mapping():
            return {str(key): jsonable(item) for key, item in value.items()}
        case list() | tuple() | set() | frozenset():
            return [jsonable(item) for item in value]
        case _:
            return value


@dataclass(frozen=True, slots=True)
class ResultEntry:
    field: str
    message: str
    severity: Severity = Severity.ERROR

    def to_payload(self) -> dict[str, object]:
        return {"field": self.field, "message": self.message, "severity": str(self.severity)}


@dataclass(slots=True)
class CreatedIds:
    event_id: int | None = None
    edition_id: int | None = None
    race_ids: list[int] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"raceIds": list(self.race_ids)}
        if self.event_id is not None:
            payload["eventId"] = self.event_id
        if self.edition_id is not None:
            payload["editionId"] = self.edition_id
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, object] | None) -> CreatedIds:
        if not payload:
            return cls()
        raw_race_ids = payload.get("raceIds")
        race_ids: list[int] = []
        if isinstance(raw_race_ids, list):
            for item in raw_race_ids:
                race_id = _as_id(item)
                if race_id is not None:
                    race_ids.append(race_id)
        return cls(
            event_id=_as_id(payload.get("eventId")),
            edition_id=_as_id(payload.get("editionId")),
            race_ids=race_ids,
        )


def _as_id(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


@dataclass(slots=True)
class FilteredChanges:
    """Fields dropped by approval filtering, for display in the review UI."""

    removed: list[str]
    approved_blocks: dict[str, bool]

    def to_payload(self) -> dict[str, object]:
        return {"removed": list(self.removed), "approvedBlocks": dict(self.approved_blocks)}


@dataclass(slots=True)
class WarningLog:
    """Collects non-fatal problems so callers can assert on them."""

    entries: list[ResultEntry] = field(default_factory=list)

    def add(self, field: str, message: str) -> None:
        log.warning("%s: %s", field, message)
        self.entries.append(ResultEntry(field=field, message=message, severity=Severity.WARNING))


@dataclass(slots=True)
class ApplicationResult:
    success: bool
    applied_changes: dict[str, object] = field(default_factory=dict)
    created_ids: CreatedIds = field(default_factory=CreatedIds)
    errors: list[ResultEntry] = field(default_factory=list)
    warnings: list[ResultEntry] = field(default_factory=list)
    filtered_changes: FilteredChanges | None = None
    dry_run: bool = False

    @classmethod
    def failure(
        cls,
        field: str,
        message: str,
        *,
        warnings: list[ResultEntry] | None = None,
    ) -> ApplicationResult:
        return cls(
            success=False,
            errors=[ResultEntry(field=field, message=message)],
            warnings=list(warnings or []),
        )

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "success": self.success,
            "appliedChanges": jsonable(self.applied_changes),
            "createdIds": self.created_ids.to_payload(),
            "errors": [entry.to_payload() for entry in self.errors],
            "warnings": [entry.to_payload() for entry in self.warnings],
        }
        if self.filtered_changes is not None:
            payload["filteredChanges"] = self.filtered_changes.to_payload()
        if self.dry_run:
            payload["dryRun"] = True
        return payload
