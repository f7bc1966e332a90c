from __future__ import annotations

from datetime import UTC, date, datetime

from racecatalog.domain.application.results import (
    ApplicationResult,
    CreatedIds,
    FilteredChanges,
    WarningLog,
    jsonable,
)


def test_jsonable_converts_dates_and_collections() -> None:
    value = {
        "confirmedAt": datetime(2026, 1, 2, 3, 4, tzinfo=UTC),
        "day": date(2026, 1, 2),
        "ids": (1, 2),
        "nested": [{"at": date(2026, 5, 1)}],
    }

    assert jsonable(value) == {
        "confirmedAt": "2026-01-02T03:04:00+00:00",
        "day": "2026-01-02",
        "ids": [1, 2],
        "nested": [{"at": "2026-05-01"}],
    }


def test_created_ids_payload_omits_missing_parents() -> None:
    assert CreatedIds(race_ids=[3]).to_payload() == {"raceIds": [3]}
    assert CreatedIds.from_payload({"eventId": "4", "raceIds": [1, "x", True]}) == CreatedIds(
        event_id=4, race_ids=[1]
    )
    assert CreatedIds.from_payload(None) == CreatedIds()


def test_failure_payload() -> None:
    warnings = WarningLog()
    warnings.add("geocoding", "No coordinates found")

    result = ApplicationResult.failure("status", "Proposal is PENDING", warnings=warnings.entries)
    result.filtered_changes = FilteredChanges(
        removed=["organizer"], approved_blocks={"event": True}
    )

    assert result.to_payload() == {
        "success": False,
        "appliedChanges": {},
        "createdIds": {"raceIds": []},
        "errors": [{"field": "status", "message": "Proposal is PENDING", "severity": "error"}],
        "warnings": [
            {"field": "geocoding", "message": "No coordinates found", "severity": "warning"}
        ],
        "filteredChanges": {"removed": ["organizer"], "approvedBlocks": {"event": True}},
    }
