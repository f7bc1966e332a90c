"""Restrict a change set to what the reviewer approved.

Whole-proposal mode keeps the fields of approved blocks. Chunked mode keeps the
fields of a single block and resumes from the ids created by earlier calls.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from racecatalog.domain.application.results import CreatedIds
from racecatalog.domain.blocks import Block, belongs_to_block, classify
from racecatalog.domain.errors import DependencyNotSatisfiedError
from racecatalog.domain.model import ApplicationStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from racecatalog.domain.changes import ChangeSet
    from racecatalog.domain.model import ProposalApplication

log = getLogger(__name__)


def approved_scope(approved_blocks: Mapping[str, bool] | None) -> frozenset[Block]:
    """Blocks a whole-proposal apply may write; no decision at all approves everything."""

    if not approved_blocks:
        return frozenset(Block)
    scope: set[Block] = set()
    for name, approved in approved_blocks.items():
        try:
            block = Block(name)
        except ValueError:
            log.warning("Ignoring approval for unknown block %r", name)
            continue
        if approved:
            scope.add(block)
    return frozenset(scope)


def filter_by_approval(
    changes: ChangeSet,
    approved_blocks: Mapping[str, bool] | None,
) -> ChangeSet:
    scope = approved_scope(approved_blocks)
    return {field: value for field, value in changes.items() if classify(field) in scope}


def filter_by_block(changes: ChangeSet, block: Block) -> ChangeSet:
    return {field: value for field, value in changes.items() if belongs_to_block(field, block)}


def removed_fields(before: Mapping[str, object], after: Mapping[str, object]) -> list[str]:
    return [field for field in before if field not in after]


def recover_created_ids(applications: Iterable[ProposalApplication]) -> CreatedIds:
    """Merge the ids created by earlier successful applications of one proposal.

    Later applications win for the event and edition ids; race ids accumulate.
    """

    recovered = CreatedIds()
    for application in sorted(applications, key=lambda item: item.id or 0):
        if application.status != ApplicationStatus.APPLIED:
            continue
        created = CreatedIds.from_payload(application.created_ids)
        if created.event_id is not None:
            recovered.event_id = created.event_id
        if created.edition_id is not None:
            recovered.edition_id = created.edition_id
        recovered.race_ids.extend(
            race_id for race_id in created.race_ids if race_id not in recovered.race_ids
        )
    return recovered


def require_parents(block: Block, created: CreatedIds) -> None:
    """Raise when ``block`` needs a parent row that no earlier call created."""

    needs_event = block is not Block.EVENT
    needs_edition = block in (Block.ORGANIZER, Block.RACES)
    if needs_event and created.event_id is None:
        raise DependencyNotSatisfiedError(Block.EVENT, requested=block)
    if needs_edition and created.edition_id is None:
        raise DependencyNotSatisfiedError(Block.EDITION, requested=block)
