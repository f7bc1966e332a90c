"""In-memory doubles for the catalog and proposal ports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal

from racecatalog.domain.errors import EntityNotFoundError
from racecatalog.domain.model import (
    Edition,
    Event,
    Organizer,
    Proposal,
    ProposalApplication,
    ProposalKind,
    ProposalStatus,
    Race,
    assign_fields,
)
from racecatalog.domain.ports.unit_of_work import CatalogRepositories, ProposalRepositories

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=UTC)


def _next_id(rows: Mapping[int, object]) -> int:
    return max(rows, default=0) + 1


class FakeCatalogRepository:
    """Dict-backed catalog store that mirrors the SQL adapter's write rules."""

    def __init__(self) -> None:
        self.events: dict[int, Event] = {}
        self.editions: dict[int, Edition] = {}
        self.organizers: dict[int, Organizer] = {}
        self.races: dict[int, Race] = {}
        self.writes: list[tuple[str, int, dict[str, object]]] = []

    # Seeding ----------------------------------------------------------------

    def add_event(self, **values: object) -> Event:
        event = Event(**values)  # type: ignore[arg-type]
        assert event.id is not None
        self.events[event.id] = event
        return event

    def add_edition(self, **values: object) -> Edition:
        edition = Edition(**values)  # type: ignore[arg-type]
        assert edition.id is not None
        self.editions[edition.id] = edition
        return edition

    def add_race(self, **values: object) -> Race:
        race = Race(**values)  # type: ignore[arg-type]
        assert race.id is not None
        self.races[race.id] = race
        return race

    def calls(self, operation: str) -> list[tuple[int, dict[str, object]]]:
        return [(row_id, data) for name, row_id, data in self.writes if name == operation]

    # Helpers ----------------------------------------------------------------

    def _insert[TRow: (Event, Edition, Organizer, Race)](
        self,
        rows: dict[int, TRow],
        entity: TRow,
        data: Mapping[str, object],
        operation: str,
    ) -> TRow:
        assign_fields(entity, {key: value for key, value in data.items() if value is not None})
        entity.id = _next_id(rows)
        rows[entity.id] = entity
        self.writes.append((operation, entity.id, dict(data)))
        return entity

    def _update[TRow: (Event, Edition, Organizer, Race)](
        self,
        rows: dict[int, TRow],
        row_id: int,
        data: Mapping[str, object],
        operation: str,
    ) -> TRow:
        entity = rows.get(row_id)
        if entity is None:
            raise EntityNotFoundError(f"{operation.split('_')[1].title()} {row_id} not found")
        assign_fields(entity, data)
        self.writes.append((operation, row_id, dict(data)))
        return entity

    # Port -------------------------------------------------------------------

    def create_event(self, data: Mapping[str, object]) -> Event:
        return self._insert(self.events, Event(name=""), data, "create_event")

    def update_event(self, event_id: int, data: Mapping[str, object]) -> Event:
        event = self._update(self.events, event_id, data, "update_event")
        event.to_update = True
        event.algolia_object_to_update = True
        return event

    def find_event(self, event_id: int) -> Event | None:
        return self.events.get(event_id)

    def touch_event(self, event_id: int) -> None:
        self.update_event(event_id, {})

    def find_editions(self, event_id: int) -> list[Edition]:
        return [
            self.editions[key]
            for key in sorted(self.editions)
            if self.editions[key].event_id == event_id
        ]

    def create_edition(self, data: Mapping[str, object]) -> Edition:
        edition = Edition(event_id=0, year="")
        return self._insert(self.editions, edition, data, "create_edition")

    def update_edition(self, edition_id: int, data: Mapping[str, object]) -> Edition:
        return self._update(self.editions, edition_id, data, "update_edition")

    def find_edition(self, edition_id: int) -> Edition | None:
        return self.editions.get(edition_id)

    def upsert_organizer(self, edition_id: int, data: Mapping[str, object]) -> Organizer:
        existing = self.find_organizers(edition_id)
        if existing and existing[0].id is not None:
            return self._update(self.organizers, existing[0].id, data, "update_organizer")
        organizer = Organizer(edition_id=edition_id)
        return self._insert(self.organizers, organizer, data, "create_organizer")

    def find_organizers(self, edition_id: int) -> list[Organizer]:
        return [item for item in self.organizers.values() if item.edition_id == edition_id]

    def create_race(self, data: Mapping[str, object]) -> Race:
        race = Race(edition_id=0, event_id=0, name="")
        return self._insert(self.races, race, data, "create_race")

    def update_race(self, race_id: int, data: Mapping[str, object]) -> Race:
        return self._update(self.races, race_id, data, "update_race")

    def find_race(self, race_id: int) -> Race | None:
        return self.races.get(race_id)

    def find_races(self, edition_id: int) -> list[Race]:
        return [
            self.races[key]
            for key in sorted(self.races)
            if self.races[key].edition_id == edition_id and not self.races[key].is_archived
        ]

    def delete_race(self, race_id: int) -> None:
        self._update(self.races, race_id, {"isArchived": True, "isActive": False}, "delete_race")


class FakeProposalRepository:
    def __init__(self, *proposals: Proposal) -> None:
        self.proposals = {proposal.id: proposal for proposal in proposals}
        self.applications: list[ProposalApplication] = []

    def get(self, proposal_id: str) -> Proposal | None:
        return self.proposals.get(proposal_id)

    def applications_for(self, proposal_id: str) -> list[ProposalApplication]:
        return [item for item in self.applications if item.proposal_id == proposal_id]

    def add_application(self, application: ProposalApplication) -> None:
        application.id = len(self.applications) + 1
        self.applications.append(application)


@dataclass
class FakeUnitOfWork[TRepositories: (CatalogRepositories, ProposalRepositories)]:
    repositories: TRepositories
    commits: int = 0
    rollbacks: int = 0

    def __enter__(self) -> FakeUnitOfWork[TRepositories]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1


@dataclass
class FakeConnections:
    """Connection resolver handing out one shared catalog unit of work."""

    catalog: FakeCatalogRepository = field(default_factory=FakeCatalogRepository)
    opened: list[tuple[str | None, str]] = field(default_factory=list)
    clocks: list[Callable[[], datetime] | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.unit_of_work = FakeUnitOfWork(CatalogRepositories(catalog=self.catalog))

    def __call__(
        self,
        connection_id: str | None = None,
        *,
        audit_user: str,
        clock: Callable[[], datetime] | None = None,
    ) -> FakeUnitOfWork[CatalogRepositories]:
        self.opened.append((connection_id, audit_user))
        self.clocks.append(clock)
        return self.unit_of_work


def make_proposal(
    kind: ProposalKind,
    changes: dict[str, object] | None = None,
    *,
    proposal_id: str = "proposal-1",
    status: ProposalStatus = ProposalStatus.APPROVED,
    **values: object,
) -> Proposal:
    return Proposal(
        id=proposal_id,
        kind=kind,
        status=status,
        changes=changes or {},
        **values,  # type: ignore[arg-type]
    )
