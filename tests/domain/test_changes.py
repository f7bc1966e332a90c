from __future__ import annotations

from racecatalog.domain.changes import (
    Diff,
    ExistingRace,
    ManualRace,
    PersistedRace,
    ProposedRace,
    Raw,
    Structured,
    extract_raw,
    extract_value,
    lookup,
    parse_change,
    parse_changes,
    parse_race_edit_key,
    selected_values,
    to_payload,
)


def test_parse_change_recognises_old_new_pairs() -> None:
    assert parse_change({"old": "Lyon", "new": "Paris"}) == Diff(old="Lyon", new="Paris")
    assert parse_change({"new": "Paris"}) == Diff(old=None, new="Paris")


def test_parse_change_accepts_current_proposed_pairs() -> None:
    assert parse_change({"current": 10, "proposed": 21.1}) == Diff(old=10, new=21.1)


def test_parse_change_keeps_nested_objects_structured() -> None:
    change = parse_change({"toAdd": [{"name": "10 km"}], "toDelete": [3]})

    assert isinstance(change, Structured)
    assert change.fields["toDelete"] == Raw([3])


def test_extract_value_of_diff_is_the_new_value() -> None:
    assert extract_value(Diff(old="a", new=None)) is None
    assert extract_value(Raw("x")) == "x"


def test_extract_value_flattens_structured_changes() -> None:
    change = parse_change({"name": {"old": "A", "new": "B"}, "city": "Nice"})

    assert extract_value(change) == {"name": "B", "city": "Nice"}


def test_extract_raw_on_unparsed_fragments() -> None:
    assert extract_raw({"old": 5, "new": 10}) == 10
    assert extract_raw({"current": 5, "proposed": 8}) == 8
    assert extract_raw(42) == 42
    assert extract_raw({"label": "x"}) == {"label": "x"}


def test_parse_changes_handles_missing_payload() -> None:
    assert parse_changes(None) == {}
    assert parse_changes({}) == {}


def test_lookup_returns_none_for_absent_keys() -> None:
    changes = parse_changes({"name": {"old": "A", "new": "B"}})

    assert lookup(changes, "name") == "B"
    assert lookup(changes, "city") is None


def test_to_payload_restores_the_wire_shape() -> None:
    payload = {"name": {"old": "A", "new": "B"}, "city": "Nice", "races": {"toDelete": [1]}}

    assert to_payload(parse_changes(payload)) == payload


def test_selected_values_flattens_every_key() -> None:
    changes = parse_changes({"name": {"old": "A", "new": "B"}, "year": "2026"})

    assert selected_values(changes) == {"name": "B", "year": "2026"}


def test_parse_race_edit_keys() -> None:
    assert parse_race_edit_key("existing-1") == ExistingRace(1)
    assert parse_race_edit_key("new-0") == ProposedRace(0)
    assert parse_race_edit_key("new-1712345678901") == ManualRace(1712345678901)
    assert parse_race_edit_key("502") == PersistedRace(502)


def test_parse_race_edit_key_rejects_unknown_shapes() -> None:
    assert parse_race_edit_key("race-1") is None
    assert parse_race_edit_key("existing-") is None
    assert parse_race_edit_key("") is None
