"""Collapse a duplicate catalog event into the event that is kept.

The kept event records the duplicate's id as its redirect pointer (``old_slug_id``)
so links to the duplicate keep resolving. The duplicate is soft-deleted and
flagged for removal from the search index. Editions that exist only on the
duplicate can be copied over together with their races.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from racecatalog.domain.errors import (
    EntityNotFoundError,
    MergeConflictError,
    ProposalValidationError,
    require_id,
)
from racecatalog.domain.model import EventStatus, parse_int, wire_name
from racecatalog.domain.model.fields import assignable_attributes

from .main_race import mark_main_race

if TYPE_CHECKING:
    from collections.abc import Mapping

    from racecatalog.domain.model import Edition, Event
    from racecatalog.domain.ports.persistence import CatalogRepository

    from .results import WarningLog

log = getLogger(__name__)

_AUDIT_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    {"created_by", "updated_by", "created_at", "updated_at"}
)
_EDITION_LINKS: Final[frozenset[str]] = frozenset({"event_id", "current_edition_event_id"})
_RACE_LINKS: Final[frozenset[str]] = frozenset({"edition_id", "event_id", "main_race_edition_id"})


@dataclass(frozen=True, slots=True)
class MergeRequest:
    keep_event_id: int
    duplicate_event_id: int
    new_name: str | None = None
    copy_missing_editions: bool = True
    force_overwrite: bool = False

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> MergeRequest:
        """Build a request from the ``merge`` object of a proposal."""

        keep = parse_int(payload.get("keepEventId"))
        duplicate = parse_int(payload.get("duplicateEventId"))
        if keep is None or duplicate is None:
            raise ProposalValidationError(
                "Merge proposals need keepEventId and duplicateEventId", field="merge"
            )
        new_name = payload.get("newEventName")
        return cls(
            keep_event_id=keep,
            duplicate_event_id=duplicate,
            new_name=new_name if isinstance(new_name, str) else None,
            copy_missing_editions=payload.get("copyMissingEditions") is not False,
            force_overwrite=payload.get("forceOverwrite") is True,
        )


@dataclass(frozen=True, slots=True)
class CopiedEdition:
    original_id: int
    new_id: int
    year: str


@dataclass(slots=True)
class MergeOutcome:
    keep_event_id: int
    previous_name: str
    new_name: str
    old_slug_id: int
    duplicate_event_id: int
    duplicate_name: str
    previous_status: str
    new_status: str = EventStatus.DELETED
    copied_editions: list[CopiedEdition] = field(default_factory=list)

    def to_payload(self) -> dict[str, object]:
        return {
            "keepEvent": {
                "id": self.keep_event_id,
                "previousName": self.previous_name,
                "newName": self.new_name,
                "oldSlugId": self.old_slug_id,
            },
            "duplicateEvent": {
                "id": self.duplicate_event_id,
                "name": self.duplicate_name,
                "previousStatus": str(self.previous_status),
                "newStatus": str(self.new_status),
            },
            "copiedEditions": [
                {"originalId": item.original_id, "newId": item.new_id, "year": item.year}
                for item in self.copied_editions
            ],
        }


def _copyable(entity: object, excluded: frozenset[str]) -> dict[str, object]:
    return {
        wire_name(attribute): getattr(entity, attribute)
        for attribute in sorted(assignable_attributes(type(entity)))
        if attribute not in excluded and attribute not in _AUDIT_ATTRIBUTES
    }


def _load_event(repository: CatalogRepository, event_id: int) -> Event:
    event = repository.find_event(event_id)
    if event is None:
        raise EntityNotFoundError(f"Event {event_id} not found", field="merge")
    return event


def _check_redirect(repository: CatalogRepository, keep: Event, request: MergeRequest) -> None:
    pointer = keep.old_slug_id
    if pointer is None or pointer == request.duplicate_event_id:
        return
    target = repository.find_event(pointer)
    if target is None:
        log.info("Event %s redirects to missing event %s, overwriting", keep.id, pointer)
        return
    if not request.force_overwrite:
        raise MergeConflictError(
            f"Event {keep.id} ({keep.name}) already redirects to event {target.id} "
            f"({target.name}); set forceOverwrite to replace it"
        )
    log.warning("Overwriting redirect of event %s to event %s", keep.id, target.id)


def _copy_edition(
    repository: CatalogRepository,
    source: Edition,
    source_id: int,
    keep_event_id: int,
) -> int:
    data = _copyable(source, _EDITION_LINKS)
    data["eventId"] = keep_event_id
    copy_id = require_id(repository.create_edition(data).id, "Copied edition")

    races = repository.find_races(source_id)
    for race in races:
        race_data = _copyable(race, _RACE_LINKS)
        race_data.update({"editionId": copy_id, "eventId": keep_event_id})
        repository.create_race(race_data)
    mark_main_race(repository, copy_id)
    log.info(
        "Copied edition %s (%s) to %s with %s races", source_id, source.year, copy_id, len(races)
    )
    return copy_id


def _promote_latest_edition(repository: CatalogRepository, event_id: int) -> None:
    editions = {
        edition.id: edition
        for edition in repository.find_editions(event_id)
        if edition.id is not None
    }
    if not editions:
        return
    latest_id = max(editions, key=lambda edition_id: parse_int(editions[edition_id].year) or 0)
    for edition_id, edition in editions.items():
        if edition_id != latest_id and edition.current_edition_event_id == event_id:
            repository.update_edition(edition_id, {"currentEditionEventId": None})
    if editions[latest_id].current_edition_event_id != event_id:
        repository.update_edition(latest_id, {"currentEditionEventId": event_id})


def merge_events(
    repository: CatalogRepository,
    request: MergeRequest,
    warnings: WarningLog,
) -> MergeOutcome:
    if request.keep_event_id == request.duplicate_event_id:
        raise ProposalValidationError("Cannot merge an event into itself", field="merge")

    keep = _load_event(repository, request.keep_event_id)
    duplicate = _load_event(repository, request.duplicate_event_id)
    _check_redirect(repository, keep, request)

    previous_name = keep.name
    new_name = (request.new_name or "").strip() or previous_name
    update: dict[str, object] = {"oldSlugId": request.duplicate_event_id}
    if new_name != previous_name:
        update["name"] = new_name
    repository.update_event(request.keep_event_id, update)

    previous_status = duplicate.status
    repository.update_event(
        request.duplicate_event_id,
        {"status": EventStatus.DELETED, "algoliaObjectToDelete": True},
    )

    outcome = MergeOutcome(
        keep_event_id=request.keep_event_id,
        previous_name=previous_name,
        new_name=new_name,
        old_slug_id=request.duplicate_event_id,
        duplicate_event_id=request.duplicate_event_id,
        duplicate_name=duplicate.name,
        previous_status=previous_status,
    )

    if request.copy_missing_editions:
        kept_years = {edition.year for edition in repository.find_editions(request.keep_event_id)}
        for candidate in repository.find_editions(request.duplicate_event_id):
            if candidate.year in kept_years or candidate.id is None:
                continue
            source = repository.find_edition(candidate.id)
            if source is None:
                warnings.add("merge", f"Edition {candidate.id} could not be loaded, not copied")
                continue
            copy_id = _copy_edition(repository, source, candidate.id, request.keep_event_id)
            kept_years.add(source.year)
            outcome.copied_editions.append(
                CopiedEdition(original_id=candidate.id, new_id=copy_id, year=str(source.year))
            )
        if outcome.copied_editions:
            _promote_latest_edition(repository, request.keep_event_id)

    log.info(
        "Merged event %s into %s (%s editions copied)",
        request.duplicate_event_id,
        request.keep_event_id,
        len(outcome.copied_editions),
    )
    return outcome
