from datetime import datetime

from taru.services.session.upsert import (
    find_by_key,
    merge_entry,
    merge_status,
    upsert_by_key,
)

NOW = datetime(2025, 1, 15, 10, 30)


def test_merge_status_only_moves_forward():
    assert merge_status(None, "in-progress") == "in-progress"
    assert merge_status("in-progress", "completed") == "completed"
    assert merge_status("completed", "in-progress") == "completed"
    assert merge_status("in-progress", "not-started") == "in-progress"
    assert merge_status("in-progress", None) == "in-progress"


def test_merge_status_replaces_unknown_stored_value():
    assert merge_status("paused", "in-progress") == "in-progress"


def test_merge_entry_creates_default_entry():
    entry = merge_entry(None, "moduleId", "M1", {}, NOW)

    assert entry == {"moduleId": "M1", "status": "not-started", "progress": 0}


def test_merge_entry_stamps_started_and_completed_once():
    started = merge_entry(
        None, "moduleId", "M1", {"status": "in-progress", "progress": 40}, NOW
    )
    assert started["startedAt"] == NOW
    assert "completedAt" not in started

    later = datetime(2025, 1, 16)
    completed = merge_entry(
        started, "moduleId", "M1", {"status": "completed", "progress": 100}, later
    )
    assert completed["startedAt"] == NOW, "startedAt must not move"
    assert completed["completedAt"] == later

    again = merge_entry(completed, "moduleId", "M1", {"progress": 100}, NOW)
    assert again["completedAt"] == later


def test_merge_entry_keeps_unmentioned_fields():
    existing = {"moduleId": "M1", "status": "in-progress", "progress": 50, "xp": 10}
    entry = merge_entry(existing, "moduleId", "M1", {"progress": 60}, NOW)

    assert entry["xp"] == 10
    assert entry["progress"] == 60
    assert existing["progress"] == 50, "Input entry must not be mutated"


def test_upsert_by_key_replaces_in_place():
    items = [
        {"moduleId": "M1", "status": "in-progress", "progress": 10},
        {"moduleId": "M2", "status": "not-started", "progress": 0},
    ]
    result, merged = upsert_by_key(
        items, "moduleId", "M1", {"status": "completed", "progress": 100}, NOW
    )

    assert [item["moduleId"] for item in result] == ["M1", "M2"]
    assert merged["status"] == "completed"
    assert result[0] is merged


def test_upsert_by_key_appends_new_key():
    result, merged = upsert_by_key(None, "pathId", "P1", {"progress": 5}, NOW)

    assert result == [merged]
    assert merged["pathId"] == "P1"


def test_upsert_by_key_collapses_duplicates():
    items = [
        {"moduleId": "M1", "status": "completed", "progress": 100},
        {"moduleId": "M2", "status": "not-started", "progress": 0},
        {"moduleId": "M1", "status": "in-progress", "progress": 20},
    ]
    result, merged = upsert_by_key(items, "moduleId", "M1", {"progress": 100}, NOW)

    assert [item["moduleId"] for item in result] == ["M1", "M2"]
    assert merged["status"] == "completed"


def test_find_by_key():
    items = [{"moduleId": "M1"}, {"moduleId": "M2"}]

    assert find_by_key(items, "moduleId", "M2") == {"moduleId": "M2"}
    assert find_by_key(items, "moduleId", "M3") is None
    assert find_by_key(None, "moduleId", "M1") is None
