"""Block classification and dependency ordering.

A block is a group of fields that reviewers approve independently. This module
owns the single field-to-block table used by approval filtering and by the
application paths.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from racecatalog.domain.model import ProposalKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence


class Block(StrEnum):
    EVENT = "event"
    EDITION = "edition"
    ORGANIZER = "organizer"
    RACES = "races"


BLOCK_DEPENDENCIES: Final[Mapping[Block, tuple[Block, ...]]] = {
    Block.EVENT: (),
    Block.EDITION: (Block.EVENT,),
    Block.ORGANIZER: (Block.EDITION,),
    Block.RACES: (Block.EDITION,),
}

VISIT_ORDER: Final[tuple[Block, ...]] = (Block.EVENT, Block.EDITION, Block.ORGANIZER, Block.RACES)

EVENT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "name",
        "city",
        "country",
        "websiteUrl",
        "facebookUrl",
        "instagramUrl",
        "twitterUrl",
        "countrySubdivisionNameLevel1",
        "countrySubdivisionNameLevel2",
        "countrySubdivisionDisplayCodeLevel1",
        "countrySubdivisionDisplayCodeLevel2",
        "countrySubdivision",
        "department",
        "fullAddress",
        "latitude",
        "longitude",
        "coverImage",
        "images",
        "peyceReview",
        "isPrivate",
        "isFeatured",
        "isRecommended",
        "toUpdate",
        "dataSource",
    }
)

ORGANIZER_FIELDS: Final[frozenset[str]] = frozenset({"organizer", "organizerId"})

RACE_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "races",
        "racesToAdd",
        "racesToUpdate",
        "racesToDelete",
        "raceEdits",
        "racesToAddFiltered",
    }
)
RACE_FIELD_PREFIX: Final[str] = "race_"

NESTED_EDITION_FIELD: Final[str] = "edition"
_NESTED_EDITION_BLOCKS: Final[frozenset[Block]] = frozenset(
    {Block.EDITION, Block.ORGANIZER, Block.RACES}
)

REQUIRED_BLOCKS: Final[Mapping[ProposalKind, tuple[Block, ...]]] = {
    ProposalKind.NEW_EVENT: (Block.EVENT, Block.EDITION),
    ProposalKind.EDITION_UPDATE: (Block.EDITION,),
}


def classify(field: str) -> Block:
    """Block owning ``field``; anything not listed belongs to the edition."""

    if field in EVENT_FIELDS:
        return Block.EVENT
    if field in ORGANIZER_FIELDS:
        return Block.ORGANIZER
    if field in RACE_FIELDS or field.startswith(RACE_FIELD_PREFIX):
        return Block.RACES
    return Block.EDITION


def belongs_to_block(field: str, block: Block) -> bool:
    """Chunked-mode membership test.

    The nested ``edition`` payload of a new event carries the edition, its organizer
    and its races, so it belongs to all three blocks.
    """

    if field == NESTED_EDITION_FIELD:
        return block in _NESTED_EDITION_BLOCKS
    return classify(field) is block


@dataclass(frozen=True, slots=True)
class BlockApplication:
    """One requested application; ``block`` is ``None`` for untagged legacy calls."""

    id: str
    block: Block | None = None


def sort_blocks(entries: Sequence[BlockApplication]) -> list[BlockApplication]:
    """Order block applications so that parents come before children.

    Dependencies absent from ``entries`` are not synthesised, the first entry of a
    duplicated block wins, and untagged entries keep their relative order at the end.
    """

    by_block: dict[Block, BlockApplication] = {}
    untagged: list[BlockApplication] = []
    for entry in entries:
        if entry.block is None:
            untagged.append(entry)
        else:
            by_block.setdefault(entry.block, entry)

    ordered: list[BlockApplication] = []
    visited: set[Block] = set()

    def visit(block: Block) -> None:
        if block in visited or block not in by_block:
            return
        visited.add(block)
        for dependency in BLOCK_DEPENDENCIES[block]:
            visit(dependency)
        ordered.append(by_block[block])

    for block in VISIT_ORDER:
        visit(block)
    return ordered + untagged


def dependencies_of(block: Block) -> list[Block]:
    """Transitive dependencies of ``block``, root first."""

    result: list[Block] = []
    for dependency in BLOCK_DEPENDENCIES[block]:
        for transitive in dependencies_of(dependency):
            if transitive not in result:
                result.append(transitive)
        if dependency not in result:
            result.append(dependency)
    return result


def dependents_of(block: Block) -> list[Block]:
    return [other for other in VISIT_ORDER if block in dependencies_of(other)]


def validate_required_blocks(
    entries: Iterable[BlockApplication],
    kind: ProposalKind,
) -> list[Block]:
    """Return the blocks ``kind`` requires that are missing from ``entries``."""

    present = {entry.block for entry in entries if entry.block is not None}
    return [block for block in REQUIRED_BLOCKS.get(kind, ()) if block not in present]


def explain_execution_order(entries: Sequence[BlockApplication]) -> str:
    return " → ".join(str(entry.block or "legacy") for entry in sort_blocks(entries))
