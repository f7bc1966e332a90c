from __future__ import annotations

from datetime import UTC, date, datetime

from racecatalog.domain.application.extract import (
    DEFAULT_RACE_NAME,
    extract_editions_data,
    extract_event_data,
    extract_organizer_data,
    extract_races_data,
    infer_data_source,
    normalize_race,
    route_generic_measures,
)
from racecatalog.domain.application.results import WarningLog
from racecatalog.domain.changes import parse_changes
from racecatalog.domain.model import CalendarStatus, DataSource, RaceCategory

TODAY = date(2025, 3, 14)


def test_infer_data_source_from_agent_name() -> None:
    assert infer_data_source("FFA calendar scraper") is DataSource.FEDERATION
    assert infer_data_source("livetrail-agent") is DataSource.TIMER
    assert infer_data_source(None) is DataSource.OTHER


def test_event_data_resolves_location_fields() -> None:
    warnings = WarningLog()
    changes = parse_changes(
        {
            "name": "Trail du Semnoz",
            "city": "Annecy",
            "department": "74",
            "countrySubdivision": "Auvergne-Rhône-Alpes",
            "latitude": "45,85",
        }
    )

    data = extract_event_data(changes, agent_name="ffa", warnings=warnings)

    assert data["countrySubdivisionNameLevel2"] == "Haute-Savoie"
    assert data["countrySubdivisionDisplayCodeLevel2"] == "74"
    assert data["countrySubdivisionDisplayCodeLevel1"] == "ARA"
    assert data["fullAddress"] == "Annecy, Haute-Savoie, France"
    assert data["latitude"] == 45.85
    assert data["longitude"] is None
    assert data["dataSource"] is DataSource.FEDERATION
    assert data["toUpdate"] is True
    assert warnings.entries == []


def test_event_data_ignores_a_proposed_id() -> None:
    warnings = WarningLog()

    changes = parse_changes({"id": 12, "name": "X"})

    data = extract_event_data(changes, agent_name=None, warnings=warnings)

    assert "id" not in data
    assert [entry.field for entry in warnings.entries] == ["id"]


def test_editions_from_the_nested_payload() -> None:
    changes = parse_changes(
        {"edition": {"year": 2026, "startDate": "2026-04-12T08:00:00Z", "races": []}}
    )

    (edition,) = extract_editions_data(changes, agent_name=None, today=TODAY)

    assert edition["year"] == "2026"
    assert edition["startDate"] == datetime(2026, 4, 12, 8, tzinfo=UTC)
    assert edition["calendarStatus"] == CalendarStatus.CONFIRMED
    assert edition["timeZone"] == "Europe/Paris"


def test_editions_from_root_fields() -> None:
    changes = parse_changes({"name": "X", "startDate": "2025-09-07", "endDate": "not a date"})

    (edition,) = extract_editions_data(changes, agent_name=None, today=TODAY)

    assert edition["year"] == "2025"
    assert edition["startDate"] == datetime(2025, 9, 7, tzinfo=UTC)
    assert edition["endDate"] is None


def test_editions_from_prefixed_objects() -> None:
    changes = parse_changes({"edition_2025": {"year": "2025"}, "edition_2026": {"year": "2026"}})

    editions = extract_editions_data(changes, agent_name=None, today=TODAY)

    assert [edition["year"] for edition in editions] == ["2025", "2026"]


def test_editions_fall_back_to_the_current_year() -> None:
    (edition,) = extract_editions_data(parse_changes({"name": "X"}), agent_name=None, today=TODAY)

    assert edition["year"] == "2025"


def test_generic_measures_follow_the_category() -> None:
    walk = route_generic_measures({"distance": "12", "elevation": 300}, category=RaceCategory.WALK)
    bike = route_generic_measures({"categoryLevel1": "CYCLING", "distance": 80})
    run = route_generic_measures({"distance": 21.1, "runDistance": 21.0975})

    assert walk == {"walkDistance": 12.0, "walkPositiveElevation": 300.0}
    assert bike == {"categoryLevel1": "CYCLING", "bikeDistance": 80.0}
    assert run == {"runDistance": 21.0975}


def test_normalize_race_fills_defaults() -> None:
    race = normalize_race({"type": "TRAIL", "distance": "25", "raceId": 4})

    assert race == {
        "name": DEFAULT_RACE_NAME,
        "categoryLevel1": "TRAIL",
        "runDistance": 25.0,
        "raceId": 4,
    }


def test_races_from_nested_and_prefixed_payloads() -> None:
    changes = parse_changes(
        {
            "edition": {"races": [{"name": "10 km", "runDistance": 10}]},
            "race_1": {"name": "Trail 30", "distance": 30, "type": "TRAIL"},
        }
    )

    races = extract_races_data(changes)

    assert [race["name"] for race in races] == ["10 km", "Trail 30"]
    assert races[1]["runDistance"] == 30.0


def test_races_from_flat_root_fields() -> None:
    changes = parse_changes({"raceName": "Semi", "runDistance": "21,1", "price": 25})

    (race,) = extract_races_data(changes)

    assert race["name"] == "Semi"
    assert race["runDistance"] == 21.1
    assert race["priceType"] == "PER_PERSON"


def test_organizer_from_root_or_nested_edition() -> None:
    root = parse_changes({"organizer": {"name": "ASPTT", "phone": "0600"}})
    nested = parse_changes({"edition": {"organizer": {"websiteUrl": "https://club.fr"}}})

    assert extract_organizer_data(root) == {"name": "ASPTT"}
    assert extract_organizer_data(nested) == {"websiteUrl": "https://club.fr"}
    assert extract_organizer_data(parse_changes({"name": "X"})) is None
