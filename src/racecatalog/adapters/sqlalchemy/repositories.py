"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, cast

from sqlalchemy import select

from racecatalog.adapters.sqlalchemy.mappings import (
    edition_partner_table,
    edition_table,
    proposal_application_table,
    race_table,
)
from racecatalog.domain.errors import EntityNotFoundError
from racecatalog.domain.model import (
    Edition,
    Event,
    Organizer,
    PartnerRole,
    Proposal,
    ProposalApplication,
    Race,
    assign_fields,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from sqlalchemy.orm import Session

log = getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyCatalogRepository:
    """Catalog writes that stamp the audit columns with ``audit_user``."""

    def __init__(
        self,
        session: Session,
        *,
        audit_user: str,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.audit_user = audit_user
        self._clock = clock

    # Shared helpers --------------------------------------------------------

    def _stamp_created(self, entity: Event | Edition | Organizer | Race) -> None:
        now = self._clock()
        entity.created_by = entity.updated_by = self.audit_user
        entity.created_at = entity.updated_at = now

    def _stamp_updated(self, entity: Event | Edition | Organizer | Race) -> None:
        entity.updated_by = self.audit_user
        entity.updated_at = self._clock()

    def _insert[TEntity: (Event, Edition, Organizer, Race)](
        self,
        entity: TEntity,
        data: Mapping[str, object],
    ) -> TEntity:
        values = {key: value for key, value in data.items() if value is not None}
        skipped = assign_fields(entity, values)
        if skipped:
            log.warning("%s: ignored fields %s", type(entity).__name__, sorted(skipped))
        self._stamp_created(entity)
        self.session.add(entity)
        self.session.flush()
        return entity

    def _apply[TEntity: (Event, Edition, Organizer, Race)](
        self,
        entity: TEntity,
        data: Mapping[str, object],
    ) -> TEntity:
        skipped = assign_fields(entity, data)
        if skipped:
            log.warning(
                "%s %s: ignored fields %s", type(entity).__name__, entity.id, sorted(skipped)
            )
        self._stamp_updated(entity)
        self.session.flush()
        return entity

    def _require[TEntity: (Event, Edition, Organizer, Race)](
        self,
        entity_cls: type[TEntity],
        entity_id: int,
    ) -> TEntity:
        entity = self.session.get(entity_cls, entity_id)
        if entity is None:
            raise EntityNotFoundError(f"{entity_cls.__name__} {entity_id} not found")
        return entity

    # Events ----------------------------------------------------------------

    def create_event(self, data: Mapping[str, object]) -> Event:
        return self._insert(Event(name=str(data.get("name") or "")), data)

    def update_event(self, event_id: int, data: Mapping[str, object]) -> Event:
        event = self._require(Event, event_id)
        event.to_update = True
        event.algolia_object_to_update = True
        return self._apply(event, data)

    def find_event(self, event_id: int) -> Event | None:
        return self.session.get(Event, event_id)

    def touch_event(self, event_id: int) -> None:
        self.update_event(event_id, {})

    # Editions --------------------------------------------------------------

    def find_editions(self, event_id: int) -> list[Edition]:
        stmt = (
            select(Edition)
            .where(edition_table.c.event_id == event_id)
            .order_by(edition_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def create_edition(self, data: Mapping[str, object]) -> Edition:
        edition = Edition(event_id=cast("int", data.get("eventId")), year=str(data.get("year")))
        return self._insert(edition, data)

    def update_edition(self, edition_id: int, data: Mapping[str, object]) -> Edition:
        return self._apply(self._require(Edition, edition_id), data)

    def find_edition(self, edition_id: int) -> Edition | None:
        return self.session.get(Edition, edition_id)

    # Organizer -------------------------------------------------------------

    def find_organizers(self, edition_id: int) -> list[Organizer]:
        stmt = (
            select(Organizer)
            .where(edition_partner_table.c.edition_id == edition_id)
            .where(edition_partner_table.c.role == PartnerRole.ORGANIZER)
            .order_by(edition_partner_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def upsert_organizer(self, edition_id: int, data: Mapping[str, object]) -> Organizer:
        existing = self.find_organizers(edition_id)
        if existing:
            return self._apply(existing[0], data)
        return self._insert(Organizer(edition_id=edition_id), data)

    # Races -----------------------------------------------------------------

    def create_race(self, data: Mapping[str, object]) -> Race:
        race = Race(
            edition_id=cast("int", data.get("editionId")),
            event_id=cast("int", data.get("eventId")),
            name=str(data.get("name") or ""),
        )
        return self._insert(race, data)

    def update_race(self, race_id: int, data: Mapping[str, object]) -> Race:
        return self._apply(self._require(Race, race_id), data)

    def find_race(self, race_id: int) -> Race | None:
        return self.session.get(Race, race_id)

    def find_races(self, edition_id: int) -> list[Race]:
        """Races of an edition that are not archived, in creation order."""

        stmt = (
            select(Race)
            .where(race_table.c.edition_id == edition_id)
            .where(race_table.c.is_archived.is_(False))
            .order_by(race_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def delete_race(self, race_id: int) -> None:
        self.update_race(race_id, {"isArchived": True, "isActive": False})


class SqlAlchemyProposalRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, proposal: Proposal) -> None:
        self.session.add(proposal)

    def get(self, proposal_id: str) -> Proposal | None:
        return self.session.get(Proposal, proposal_id)

    def applications_for(self, proposal_id: str) -> list[ProposalApplication]:
        stmt = (
            select(ProposalApplication)
            .where(proposal_application_table.c.proposal_id == proposal_id)
            .order_by(proposal_application_table.c.id)
        )
        return list(self.session.execute(stmt).scalars())

    def add_application(self, application: ProposalApplication) -> None:
        self.session.add(application)
        self.session.flush()
