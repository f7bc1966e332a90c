from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest

from racecatalog.domain.application.races import (
    RaceChanges,
    build_race_update_data,
    race_id_of,
    reconcile_races,
    reviewer_fields,
)
from racecatalog.domain.application.results import WarningLog
from racecatalog.domain.changes import (
    ExistingRace,
    ManualRace,
    PersistedRace,
    ProposedRace,
    parse_changes,
)
from tests.helpers.catalog import FakeCatalogRepository

if TYPE_CHECKING:
    from racecatalog.domain.model import Edition


@pytest.fixture
def repository() -> FakeCatalogRepository:
    repository = FakeCatalogRepository()
    repository.add_event(id=1, name="Trail des Aravis")
    repository.add_edition(id=10, event_id=1, year="2026", time_zone="Europe/Paris")
    repository.add_race(id=501, edition_id=10, event_id=1, name="12 km", price=20.0)
    repository.add_race(id=502, edition_id=10, event_id=1, name="25 km", price=28.0)
    return repository


@pytest.fixture
def edition(repository: FakeCatalogRepository) -> Edition:
    return repository.editions[10]


def _reconcile(
    repository: FakeCatalogRepository,
    edition: Edition,
    changes: dict[str, object],
    overrides: dict[str, object] | None = None,
) -> tuple[list[int], list[int], list[int], WarningLog]:
    warnings = WarningLog()
    races = RaceChanges.collect(parse_changes(changes), overrides)
    outcome = reconcile_races(repository, edition=edition, races=races, warnings=warnings)
    return outcome.created, outcome.updated, outcome.deleted, warnings


def test_race_id_of_accepts_ids_strings_and_objects() -> None:
    assert race_id_of(5) == 5
    assert race_id_of(" 12 ") == 12
    assert race_id_of({"raceId": 7}) == 7
    assert race_id_of({"id": "8"}) == 8
    assert race_id_of(True) is None
    assert race_id_of("new-1") is None


def test_build_race_update_data_drops_identity_keys() -> None:
    updates = {"raceId": 1, "raceName": "x", "price": {"old": 10, "new": 12}, "name": "Y"}

    assert build_race_update_data(updates) == {"price": 12, "name": "Y"}


def test_reviewer_fields_ignore_blank_values() -> None:
    edit = {"price": "15,5", "name": "", "startDate": "2026-06-01T07:00:00Z", "_deleted": False}

    fields = reviewer_fields(edit)

    assert fields["price"] == 15.5
    assert "name" not in fields
    assert "_deleted" not in fields
    start = fields["startDate"]
    assert isinstance(start, datetime)
    assert start.isoformat() == "2026-06-01T07:00:00+00:00"


def test_collect_reads_every_instruction() -> None:
    changes = parse_changes(
        {
            "races": {"toUpdate": [{"raceId": 1}], "toAdd": [{"name": "a"}], "toDelete": [2]},
            "racesToAdd": [{"name": "b"}, {"name": "c"}],
            "racesToUpdate": [{"raceId": 3}],
            "racesToDelete": [4],
        }
    )
    overrides = {
        "racesToDelete": [5],
        "racesToAddFiltered": [1, "x"],
        "raceEdits": {"existing-0": {"price": 1}, "nonsense": {}, "new-2": "oops"},
    }

    races = RaceChanges.collect(changes, overrides)

    assert [race["raceId"] for race in races.updates_by_id] == [1]
    assert [race["name"] for race in races.additions] == ["b", "c"]
    assert races.agent_deletions == [2, 4]
    assert races.reviewer_deletions == [5]
    assert races.removed_additions == frozenset({1})
    assert list(races.edits) == [ExistingRace(0)]
    assert races.resolve(ExistingRace(0)) == 3
    assert races.resolve(ExistingRace(4)) is None
    assert races.resolve(PersistedRace(9)) == 9
    assert races.resolve(ProposedRace(0)) is None
    assert races.resolve(ManualRace(1712345678901)) is None


def test_positional_edit_resolves_to_the_indexed_race(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {
        "racesToUpdate": [
            {"raceId": 501, "updates": {"price": {"old": 20, "new": 22}}},
            {"raceId": 502, "updates": {}},
        ]
    }
    overrides = {"raceEdits": {"existing-1": {"price": "30"}}}

    _, updated, _, warnings = _reconcile(repository, edition, changes, overrides)

    assert updated == [501, 502]
    assert repository.races[501].price == 22.0
    assert repository.races[502].price == 30.0
    assert warnings.entries == []


def test_deleted_races_are_never_updated(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {
        "racesToUpdate": [{"raceId": 502, "updates": {"price": {"old": 28, "new": 35}}}],
        "racesToDelete": [502],
    }
    overrides = {"raceEdits": {"502": {"name": "25 km renamed"}}}

    _, updated, deleted, _ = _reconcile(repository, edition, changes, overrides)

    assert updated == []
    assert deleted == [502]
    assert repository.calls("update_race") == []
    assert repository.races[502].is_archived
    assert repository.races[502].name == "25 km"
    assert [race.id for race in repository.find_races(10)] == [501]


def test_reviewer_can_delete_by_position(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {"racesToUpdate": [{"raceId": 501, "updates": {"price": {"old": 20, "new": 21}}}]}
    overrides = {"raceEdits": {"existing-0": {"_deleted": True}}}

    _, updated, deleted, _ = _reconcile(repository, edition, changes, overrides)

    assert updated == []
    assert deleted == [501]


def test_additions_honour_reviewer_filters_and_edits(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {"racesToAdd": [{"name": "5 km", "distance": 5}, {"name": "Kids"}]}
    overrides = {
        "racesToAddFiltered": [1],
        "raceEdits": {
            "new-0": {"price": "12"},
            "new-1712345678901": {
                "name": "Marche nordique",
                "categoryLevel1": "WALK",
                "distance": "8",
            },
        },
    }

    created, _, _, _ = _reconcile(repository, edition, changes, overrides)

    assert len(created) == 2
    five_k, walk = (repository.races[race_id] for race_id in created)
    assert (five_k.name, five_k.run_distance, five_k.price) == ("5 km", 5.0, 12.0)
    assert (walk.name, walk.walk_distance, walk.category_level1) == ("Marche nordique", 8.0, "WALK")
    for race in (five_k, walk):
        assert race.edition_id == 10
        assert race.event_id == 1
        assert race.is_active is False
        assert race.time_zone == "Europe/Paris"


def test_reviewer_deleted_addition_is_skipped(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {"racesToAdd": [{"name": "5 km"}]}
    overrides = {"raceEdits": {"new-0": {"_deleted": True}}}

    created, _, deleted, warnings = _reconcile(repository, edition, changes, overrides)

    assert created == []
    assert deleted == []
    assert warnings.entries == []


def test_new_rows_never_keep_a_proposed_id(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {"racesToAdd": [{"id": 501, "name": "Copy of 12 km"}]}

    created, _, _, warnings = _reconcile(repository, edition, changes)

    assert created == [503]
    assert repository.races[501].name == "12 km"
    assert [entry.field for entry in warnings.entries] == ["races"]


def test_nested_collection_updates_and_deletes(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {
        "races": {
            "toUpdate": [{"raceId": 501, "updates": {"name": {"old": "12 km", "new": "13 km"}}}],
            "toDelete": [{"raceId": 502}],
        }
    }

    _, updated, deleted, _ = _reconcile(repository, edition, changes)

    assert updated == [501]
    assert deleted == [502]
    assert repository.races[501].name == "13 km"


def test_bad_references_become_warnings(
    repository: FakeCatalogRepository, edition: Edition
) -> None:
    changes = {
        "racesToUpdate": [{"raceId": 999, "updates": {"price": 1}}],
        "racesToDelete": ["abc", 998],
    }
    overrides = {"raceEdits": {"existing-5": {"_deleted": True}, "existing-7": {"price": 3}}}

    _, updated, deleted, warnings = _reconcile(repository, edition, changes, overrides)

    assert updated == []
    assert deleted == []
    assert sorted(entry.field for entry in warnings.entries) == [
        "raceEdits",
        "raceEdits",
        "races",
        "racesToDelete",
        "racesToDelete",
    ]


def test_empty_instructions() -> None:
    assert RaceChanges.collect({}, None).is_empty()
    assert not RaceChanges.collect({}, {"racesToDelete": [1]}).is_empty()
