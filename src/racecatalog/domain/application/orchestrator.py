"""Apply reviewed proposals to the catalog.

:class:`ProposalApplicationService` is the only entry point that decides success.
It merges reviewer overrides into the agent changes, restricts them to the
approved blocks, routes the result by proposal kind and commits the catalog
writes in one unit of work per call. Every failure is reported as a structured
:class:`ApplicationResult`; nothing is raised to the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Final, cast

from racecatalog.domain.approval import (
    approved_scope,
    filter_by_approval,
    filter_by_block,
    recover_created_ids,
    removed_fields,
    require_parents,
)
from racecatalog.domain.blocks import (
    EVENT_FIELDS,
    ORGANIZER_FIELDS,
    RACE_FIELD_PREFIX,
    RACE_FIELDS,
    Block,
    BlockApplication,
    classify,
    explain_execution_order,
    sort_blocks,
    validate_required_blocks,
)
from racecatalog.domain.changes import (
    extract_value,
    lookup,
    parse_changes,
    selected_values,
)
from racecatalog.domain.errors import (
    DependencyNotSatisfiedError,
    EntityNotFoundError,
    ProposalApplicationError,
    ProposalValidationError,
    require_id,
)
from racecatalog.domain.field_filter import filter_changed
from racecatalog.domain.merge import RACES_KEY, merge_changes
from racecatalog.domain.model import (
    ApplicationStatus,
    CalendarStatus,
    ProposalApplication,
    ProposalKind,
    ProposalStatus,
    read_fields,
)

from .dedup import MergeRequest, merge_events
from .extract import (
    extract_editions_data,
    extract_event_data,
    extract_organizer_data,
    extract_races_data,
)
from .geography import country_name, region_code, resolve_department
from .main_race import mark_main_race
from .races import RaceChanges, reconcile_races
from .results import (
    ApplicationResult,
    CreatedIds,
    FilteredChanges,
    WarningLog,
)
from .slug import event_slug

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from racecatalog.domain.changes import ChangeSet
    from racecatalog.domain.model import Edition, Event, Proposal
    from racecatalog.domain.ports.geocoding import Geocoder
    from racecatalog.domain.ports.persistence import CatalogRepository
    from racecatalog.domain.ports.unit_of_work import (
        CatalogConnectionResolver,
        ProposalUnitOfWork,
    )

log = getLogger(__name__)

DEFAULT_AUDIT_USER: Final[str] = "data-agents"
APPLICABLE_STATUSES: Final[frozenset[ProposalStatus]] = frozenset(
    {ProposalStatus.APPROVED, ProposalStatus.PARTIALLY_APPROVED}
)
ORGANIZER_KEY: Final[str] = "organizer"
MERGE_KEY: Final[str] = "merge"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ApplyOptions:
    """Per-call switches.

    ``block`` selects chunked mode: only that block is written, and parent ids come
    from earlier applications of the same proposal.
    """

    force: bool = False
    block: Block | None = None
    dry_run: bool = False
    connection_id: str | None = None
    user_email: str | None = None


def build_update_data(
    changes: ChangeSet,
    exclude: frozenset[str] = frozenset(),
) -> dict[str, object]:
    """Values to write for every present key; ``None`` clears the column."""

    return {key: extract_value(value) for key, value in changes.items() if key not in exclude}


def stamp_confirmation(data: dict[str, object], now: datetime) -> dict[str, object]:
    if data.get("calendarStatus") == CalendarStatus.CONFIRMED and not data.get("confirmedAt"):
        data["confirmedAt"] = now
    return data


def _is_race_field(key: str) -> bool:
    return key in RACE_FIELDS or key.startswith(RACE_FIELD_PREFIX)


def _resolve_location_aliases(event_data: dict[str, object]) -> None:
    """Replace the agents' ``department``/``countrySubdivision`` shorthands by columns."""

    department = event_data.pop("department", None)
    region = event_data.pop("countrySubdivision", None)
    if department and "countrySubdivisionNameLevel2" not in event_data:
        code, name = resolve_department(str(department))
        if name:
            event_data["countrySubdivisionNameLevel2"] = name
            event_data["countrySubdivisionDisplayCodeLevel2"] = code
    if region and "countrySubdivisionNameLevel1" not in event_data:
        event_data["countrySubdivisionNameLevel1"] = region


def _race_source(agent: ChangeSet, merged: ChangeSet) -> ChangeSet:
    """Agent race instructions, with the reviewer-merged nested ``races`` collection."""

    source = {key: value for key, value in agent.items() if classify(key) is Block.RACES}
    if RACES_KEY in merged:
        source[RACES_KEY] = merged[RACES_KEY]
    return source


@dataclass(slots=True)
class _Application:
    """State of one apply call, threaded through the per-kind handlers."""

    proposal: Proposal
    race_source: ChangeSet
    selected: ChangeSet
    scope: frozenset[Block]
    block: Block | None
    created: CreatedIds
    now: datetime
    warnings: WarningLog = field(default_factory=WarningLog)

    @property
    def overrides(self) -> Mapping[str, object]:
        return self.proposal.user_modified_changes or {}

    def writes(self, block: Block) -> bool:
        if self.block is not None:
            return self.block is block
        return block in self.scope


class ProposalApplicationService:
    """Apply proposals through the catalog and proposal ports."""

    def __init__(
        self,
        *,
        connections: CatalogConnectionResolver,
        proposals: Callable[[], ProposalUnitOfWork],
        geocoder: Geocoder | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._connections = connections
        self._proposals = proposals
        self._geocoder = geocoder
        self._clock = clock

    # Entry points ----------------------------------------------------------

    def apply_proposal(
        self,
        proposal_id: str,
        options: ApplyOptions | None = None,
    ) -> ApplicationResult:
        options = options or ApplyOptions()
        try:
            return self._apply(proposal_id, options)
        except Exception as exc:  # noqa: BLE001
            log.exception("Applying proposal %s failed", proposal_id)
            return ApplicationResult.failure("application", str(exc))

    def apply_blocks(
        self,
        proposal_id: str,
        blocks: Sequence[Block | str],
        options: ApplyOptions | None = None,
    ) -> list[ApplicationResult]:
        """Apply ``blocks`` one committed call at a time, parents first.

        Stops at the first failing block; the results list ends with that failure.
        """

        options = options or ApplyOptions()
        entries: list[BlockApplication] = []
        for name in blocks:
            try:
                block = Block(name)
            except ValueError:
                return [ApplicationResult.failure("block", f"Unknown block '{name}'")]
            entries.append(BlockApplication(id=f"{proposal_id}:{block}", block=block))

        ordered = sort_blocks(entries)
        log.info("Applying proposal %s as %s", proposal_id, explain_execution_order(ordered))
        try:
            proposal = self._load(proposal_id)
        except Exception as exc:  # noqa: BLE001
            log.exception("Loading proposal %s failed", proposal_id)
            return [ApplicationResult.failure("application", str(exc))]
        if proposal is not None:
            for missing in validate_required_blocks(ordered, proposal.kind):
                log.warning(
                    "Proposal %s: block '%s' is not part of this request", proposal_id, missing
                )

        results: list[ApplicationResult] = []
        for entry in ordered:
            result = self.apply_proposal(proposal_id, replace(options, block=entry.block))
            results.append(result)
            if not result.success:
                log.warning("Stopping after failed block '%s' of %s", entry.block, proposal_id)
                break
        return results

    def rollback_proposal(self, proposal_id: str) -> ApplicationResult:
        # TODO: restore the snapshot recorded with the last ProposalApplication.
        log.warning("Rollback requested for proposal %s but is not supported", proposal_id)
        return ApplicationResult.failure(
            "rollback", f"Rolling back proposal {proposal_id} is not supported"
        )

    # Pipeline --------------------------------------------------------------

    def _load(self, proposal_id: str) -> Proposal | None:
        with self._proposals() as uow:
            return uow.repositories.proposals.get(proposal_id)

    def _prior_created_ids(self, proposal_id: str) -> CreatedIds:
        with self._proposals() as uow:
            return recover_created_ids(uow.repositories.proposals.applications_for(proposal_id))

    def _apply(self, proposal_id: str, options: ApplyOptions) -> ApplicationResult:
        proposal = self._load(proposal_id)
        if proposal is None:
            return ApplicationResult.failure("proposal", f"Proposal {proposal_id} not found")
        if proposal.status not in APPLICABLE_STATUSES and not options.force:
            return ApplicationResult.failure(
                "status",
                f"Proposal {proposal_id} is {proposal.status}, it must be approved first",
            )

        agent = parse_changes(proposal.changes)
        merged = merge_changes(agent, proposal.user_modified_changes)
        if options.block is not None:
            selected = filter_by_block(merged, options.block)
            scope = frozenset({options.block})
        else:
            selected = filter_by_approval(merged, proposal.approved_blocks)
            scope = approved_scope(proposal.approved_blocks)
        filtered = FilteredChanges(
            removed=removed_fields(merged, selected),
            approved_blocks=dict(proposal.approved_blocks),
        )
        if filtered.removed:
            log.info(
                "Proposal %s: fields outside the approved blocks: %s", proposal_id, filtered.removed
            )

        if options.dry_run:
            log.info("Dry run of proposal %s, nothing written", proposal_id)
            return ApplicationResult(
                success=True,
                applied_changes=selected_values(selected),
                filtered_changes=filtered,
                dry_run=True,
            )

        application = _Application(
            proposal=proposal,
            race_source=_race_source(agent, merged),
            selected=selected,
            scope=scope,
            block=options.block,
            created=(
                self._prior_created_ids(proposal_id) if options.block is not None else CreatedIds()
            ),
            now=self._clock(),
        )
        audit_user = options.user_email or proposal.agent_name or DEFAULT_AUDIT_USER
        result = self._write(application, options.connection_id, audit_user)
        result.filtered_changes = filtered
        self._record(application, result, audit_user)
        return result

    def _write(
        self,
        application: _Application,
        connection_id: str | None,
        audit_user: str,
    ) -> ApplicationResult:
        proposal = application.proposal
        log.info(
            "Applying %s proposal %s (block=%s) as %s",
            proposal.kind,
            proposal.id,
            application.block or "all",
            audit_user,
        )
        try:
            with self._connections(
                connection_id, audit_user=audit_user, clock=self._clock
            ) as uow:
                try:
                    applied = self._route(uow.repositories.catalog, application)
                except Exception:
                    uow.rollback()
                    raise
                uow.commit()
        except ProposalApplicationError as exc:
            log.warning("Proposal %s not applied: %s", proposal.id, exc)
            return ApplicationResult.failure(
                exc.field, str(exc), warnings=application.warnings.entries
            )
        except Exception as exc:  # noqa: BLE001
            log.exception("Proposal %s not applied", proposal.id)
            return ApplicationResult.failure(
                "application", str(exc), warnings=application.warnings.entries
            )

        return ApplicationResult(
            success=True,
            applied_changes=applied,
            created_ids=application.created,
            warnings=application.warnings.entries,
        )

    def _record(
        self,
        application: _Application,
        result: ApplicationResult,
        audit_user: str,
    ) -> None:
        payload = result.to_payload()
        record = ProposalApplication(
            proposal_id=application.proposal.id,
            block=str(application.block) if application.block is not None else None,
            status=ApplicationStatus.APPLIED if result.success else ApplicationStatus.FAILED,
            applied_changes=cast("dict[str, object]", payload["appliedChanges"]),
            created_ids=result.created_ids.to_payload(),
            errors=[entry.to_payload() for entry in result.errors],
            warnings=[entry.to_payload() for entry in result.warnings],
            applied_by=audit_user,
            applied_at=application.now,
        )
        with self._proposals() as uow:
            uow.repositories.proposals.add_application(record)
            uow.commit()

    def _route(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        proposal = application.proposal
        match proposal.kind:
            case ProposalKind.NEW_EVENT:
                return self._new_event(repository, application)
            case ProposalKind.EVENT_UPDATE:
                return self._event_update(repository, application)
            case ProposalKind.EDITION_UPDATE:
                return self._edition_update(repository, application)
            case ProposalKind.RACE_UPDATE:
                return self._race_update(repository, application)
            case ProposalKind.EVENT_MERGE:
                return self._event_merge(repository, application)
            case _:
                raise ProposalValidationError(
                    f"Unsupported proposal type {proposal.kind!r}", field="type"
                )

    # NEW_EVENT -------------------------------------------------------------

    def _new_event(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        block = application.block
        created = application.created
        if block is None:
            present = [BlockApplication(id=str(item), block=item) for item in application.scope]
            missing = validate_required_blocks(present, ProposalKind.NEW_EVENT)
            if missing:
                raise ProposalValidationError(
                    f"New events need the {', '.join(missing)} block(s) approved",
                    field="approvedBlocks",
                )
        else:
            require_parents(block, created)

        if block in (None, Block.EVENT):
            event = self._create_event(repository, application)
            if block is Block.EVENT:
                return {"event": {"id": event.id, "name": event.name, "slug": event.slug}}
        else:
            if created.event_id is None:
                raise DependencyNotSatisfiedError(Block.EVENT, requested=block)
            event = self._existing_event(repository, created.event_id)

        if block in (None, Block.EDITION):
            editions = self._create_editions(repository, application, event)
            if block is Block.EDITION:
                return {
                    "editions": [{"id": item.id, "year": item.year} for item in editions]
                }

        if created.edition_id is None:
            raise DependencyNotSatisfiedError(Block.EDITION, requested=block)
        edition = self._existing_edition(repository, created.edition_id)

        organizer: dict[str, object] | None = None
        if application.writes(Block.ORGANIZER):
            organizer = extract_organizer_data(application.selected)
            if organizer:
                repository.upsert_organizer(created.edition_id, organizer)
            if block is Block.ORGANIZER:
                return {"organizer": organizer}

        if application.writes(Block.RACES):
            races = RaceChanges.collect({}, application.overrides)
            races.additions = list(extract_races_data(application.selected))
            outcome = reconcile_races(
                repository, edition=edition, races=races, warnings=application.warnings
            )
            created.race_ids.extend(outcome.created)
            mark_main_race(repository, created.edition_id)
            if block is Block.RACES:
                return {
                    "races": [
                        {"id": race.id, "name": race.name}
                        for race in repository.find_races(created.edition_id)
                        if race.id in outcome.created
                    ]
                }

        return selected_values(application.selected)

    def _existing_event(self, repository: CatalogRepository, event_id: int) -> Event:
        event = repository.find_event(event_id)
        if event is None:
            raise EntityNotFoundError(f"Event {event_id} not found", field="eventId")
        return event

    def _existing_edition(self, repository: CatalogRepository, edition_id: int) -> Edition:
        edition = repository.find_edition(edition_id)
        if edition is None:
            raise EntityNotFoundError(f"Edition {edition_id} not found", field="editionId")
        return edition

    def _create_event(self, repository: CatalogRepository, application: _Application) -> Event:
        data = extract_event_data(
            application.selected,
            agent_name=application.proposal.agent_name,
            warnings=application.warnings,
        )
        if not data["name"]:
            raise ProposalValidationError("A new event needs a name", field="name")
        if data["latitude"] is None or data["longitude"] is None:
            self._geocode(data, application.warnings)

        event = repository.create_event(data)
        event_id = require_id(event.id, "Event")
        repository.update_event(event_id, {"slug": event_slug(event.name, event_id)})
        application.created.event_id = event_id
        log.info("Created event %s (%s)", event.id, event.slug)
        return event

    def _geocode(self, data: dict[str, object], warnings: WarningLog) -> None:
        if self._geocoder is None:
            warnings.add("geocoding", "No geocoder configured, event created without coordinates")
            return
        city = str(data.get("city") or "")
        if not city:
            warnings.add("geocoding", "No city to geocode, event created without coordinates")
            return
        query = f"{city}, {country_name(str(data.get('country') or ''))}"
        try:
            coordinates = self._geocoder.geocode(query)
        except Exception as exc:  # noqa: BLE001
            warnings.add("geocoding", f"Geocoding {query!r} failed: {exc}")
            return
        if coordinates is None:
            warnings.add("geocoding", f"No coordinates found for {query!r}")
            return
        data["latitude"] = coordinates.latitude
        data["longitude"] = coordinates.longitude

    def _create_editions(
        self,
        repository: CatalogRepository,
        application: _Application,
        event: Event,
    ) -> list[Edition]:
        event_id = require_id(event.id, "Event")
        payloads = extract_editions_data(
            application.selected,
            agent_name=application.proposal.agent_name,
            today=application.now.date(),
        )
        current_year = max(str(payload.get("year") or "") for payload in payloads)
        editions: list[Edition] = []
        current_marked = False
        for payload in payloads:
            payload["eventId"] = event_id
            if not current_marked and str(payload.get("year") or "") == current_year:
                payload["currentEditionEventId"] = event_id
                current_marked = True
            editions.append(repository.create_edition(payload))
        application.created.edition_id = editions[0].id
        log.info("Created %s edition(s) for event %s", len(editions), event_id)
        return editions

    # Updates ---------------------------------------------------------------

    def _event_update(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        event_id = application.proposal.event_id
        if event_id is None:
            raise ProposalValidationError("Event update without an event id", field="eventId")
        data = stamp_confirmation(build_update_data(application.selected), application.now)
        repository.update_event(event_id, data)
        log.info("Updated event %s: %s", event_id, sorted(data))
        return data

    def _race_update(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        race_id = application.proposal.race_id
        if race_id is None:
            raise ProposalValidationError("Race update without a race id", field="raceId")
        data = stamp_confirmation(build_update_data(application.selected), application.now)
        race = repository.update_race(race_id, data)
        if race.event_id is not None:
            repository.touch_event(race.event_id)
        log.info("Updated race %s: %s", race_id, sorted(data))
        return data

    def _edition_update(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        edition_id = application.proposal.edition_id
        if edition_id is None:
            raise ProposalValidationError("Edition update without an edition id", field="editionId")
        edition = self._existing_edition(repository, edition_id)
        event_id = edition.event_id or application.proposal.event_id
        if event_id is None:
            raise ProposalValidationError("Edition has no parent event", field="eventId")
        event = self._existing_event(repository, event_id)

        edition_data: dict[str, object] = {"calendarStatus": CalendarStatus.CONFIRMED}
        event_data: dict[str, object] = {}
        for key, value in application.selected.items():
            if _is_race_field(key) or key in ORGANIZER_FIELDS:
                continue
            if key in EVENT_FIELDS and key != "dataSource":
                event_data[key] = extract_value(value)
            else:
                edition_data[key] = extract_value(value)
        stamp_confirmation(edition_data, application.now)
        _resolve_location_aliases(event_data)

        event_diff = filter_changed(event_data, read_fields(event, event_data))
        region = event_diff.get("countrySubdivisionNameLevel1")
        if region and "countrySubdivisionDisplayCodeLevel1" not in event_data:
            code = region_code(str(region))
            if code:
                event_diff["countrySubdivisionDisplayCodeLevel1"] = code
        edition_diff = filter_changed(edition_data, read_fields(edition, edition_data))

        if event_diff:
            repository.update_event(event_id, event_diff)
        if edition_diff:
            repository.update_edition(edition_id, edition_diff)
        applied: dict[str, object] = {"event": event_diff, "edition": edition_diff}

        if application.writes(Block.ORGANIZER):
            organizer = lookup(application.selected, ORGANIZER_KEY)
            if isinstance(organizer, Mapping):
                organizer_data = {
                    key: value
                    for key, value in cast("Mapping[str, object]", organizer).items()
                    if key in ("name", "websiteUrl", "facebookUrl", "instagramUrl")
                }
                if organizer_data:
                    repository.upsert_organizer(edition_id, organizer_data)
                    applied["organizer"] = organizer_data

        repository.touch_event(event_id)

        if application.writes(Block.RACES):
            races = RaceChanges.collect(application.race_source, application.overrides)
            if not races.is_empty():
                outcome = reconcile_races(
                    repository, edition=edition, races=races, warnings=application.warnings
                )
                application.created.race_ids.extend(outcome.created)
                applied["races"] = outcome.to_payload()

        log.info(
            "Updated edition %s: event fields %s, edition fields %s",
            edition_id,
            sorted(event_diff),
            sorted(edition_diff),
        )
        return applied

    # EVENT_MERGE -----------------------------------------------------------

    def _event_merge(
        self,
        repository: CatalogRepository,
        application: _Application,
    ) -> dict[str, object]:
        payload = lookup(application.selected, MERGE_KEY)
        if not isinstance(payload, Mapping):
            raise ProposalValidationError("Merge proposals need a merge object", field="merge")
        request = MergeRequest.from_payload(cast("Mapping[str, object]", payload))
        outcome = merge_events(repository, request, application.warnings)
        return outcome.to_payload()

