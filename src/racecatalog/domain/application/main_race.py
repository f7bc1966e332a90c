"""Pick the headline race of an edition."""

from __future__ import annotations

import re
from logging import getLogger
from typing import TYPE_CHECKING, Final

from racecatalog.domain.errors import require_id
from racecatalog.domain.model import parse_float, read_fields

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from racecatalog.domain.ports.persistence import CatalogRepository

log = getLogger(__name__)

TEAM_RACE_PATTERN: Final = re.compile(
    r"(duo|relais|trio|quatuor|équipe|equipe|team|à [234]|a [234])",
    re.IGNORECASE,
)


def is_team_race(name: object) -> bool:
    return isinstance(name, str) and TEAM_RACE_PATTERN.search(name) is not None


def _longest_distance(race: Mapping[str, object]) -> float:
    run = parse_float(race.get("runDistance")) or 0.0
    bike = parse_float(race.get("bikeDistance")) or 0.0
    return max(run, bike)


def select_main_race(races: Sequence[Mapping[str, object]]) -> int | None:
    """Index of the main race: longest run or bike distance, solo before team.

    Ties keep the lowest index. Returns ``None`` for an empty list.
    """

    if not races:
        return None
    ranked = sorted(
        range(len(races)),
        key=lambda index: (
            -_longest_distance(races[index]),
            is_team_race(races[index].get("name")),
            index,
        ),
    )
    return ranked[0]


def mark_main_race(repository: CatalogRepository, edition_id: int) -> int | None:
    """Flag the main race of a stored edition and return its id."""

    races = [race for race in repository.find_races(edition_id) if race.id is not None]
    index = select_main_race(
        [read_fields(race, ("name", "runDistance", "bikeDistance")) for race in races]
    )
    if index is None:
        return None
    main_id = require_id(races[index].id, "Race")
    repository.update_race(main_id, {"mainRaceEditionId": edition_id})
    log.debug("Race %s is the main race of edition %s", main_id, edition_id)
    return main_id
