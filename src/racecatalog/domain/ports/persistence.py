"""Ports for reading and writing the catalog and the proposal store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from racecatalog.domain.model import (
        Edition,
        Event,
        Organizer,
        Proposal,
        ProposalApplication,
        Race,
    )


@runtime_checkable
class CatalogRepository(Protocol):
    """Data-access boundary of the catalog store.

    Write operations take wire-named (camelCase) field mappings. Updates stamp the
    audit columns; event updates and touches also raise the reindex flags.
    """

    def create_event(self, data: Mapping[str, object]) -> Event: ...

    def update_event(self, event_id: int, data: Mapping[str, object]) -> Event: ...

    def find_event(self, event_id: int) -> Event | None: ...

    def touch_event(self, event_id: int) -> None: ...

    def find_editions(self, event_id: int) -> list[Edition]: ...

    def create_edition(self, data: Mapping[str, object]) -> Edition: ...

    def update_edition(self, edition_id: int, data: Mapping[str, object]) -> Edition: ...

    def find_edition(self, edition_id: int) -> Edition | None: ...

    def upsert_organizer(self, edition_id: int, data: Mapping[str, object]) -> Organizer: ...

    def find_organizers(self, edition_id: int) -> list[Organizer]: ...

    def create_race(self, data: Mapping[str, object]) -> Race: ...

    def update_race(self, race_id: int, data: Mapping[str, object]) -> Race: ...

    def find_race(self, race_id: int) -> Race | None: ...

    def find_races(self, edition_id: int) -> list[Race]: ...

    def delete_race(self, race_id: int) -> None: ...


@runtime_checkable
class ProposalRepository(Protocol):
    """Proposal lookup plus the audit trail of application attempts."""

    def get(self, proposal_id: str) -> Proposal | None: ...

    def applications_for(self, proposal_id: str) -> list[ProposalApplication]: ...

    def add_application(self, application: ProposalApplication) -> None: ...
