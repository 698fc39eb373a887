import json

import pytest

from jpreview.models import StudyEvent
from jpreview.ranking import rank_events
from jpreview.repositories import PENDING_QUIZ_KEY, STUDY_LOG_KEY
from jpreview.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueEventLog,
    KeyValuePendingQuiz,
    SqliteKeyValueStore,
    open_store,
)

from conftest import make_event


def test_events_persist_with_browser_keys(store, event_log):
    event_log.append(make_event("D1W1", "wrong", 1700))
    [record] = json.loads(store.get(STUDY_LOG_KEY))
    assert record == {"itemId": "D1W1", "itemType": "word", "outcome": "wrong", "ts": 1700}


def test_append_preserves_insertion_order(event_log):
    event_log.append(make_event("D1W1", "view", 3))
    event_log.append(make_event("D1W2", "view", 1))
    assert [e.item_id for e in event_log.load_events()] == ["D1W1", "D1W2"]


def test_reloaded_log_ranks_like_in_memory_events(store):
    events = [
        make_event("D1W1", "correct", 30),
        make_event("D1P", "wrong", 20, item_type="pattern"),
        make_event("D2W1", "view", 10),
        make_event("D1W1", "wrong", 40),
    ]
    writer = KeyValueEventLog(store)
    for event in events:
        writer.append(event)
    reloaded = KeyValueEventLog(store).load_events()
    assert reloaded == events
    assert rank_events(reloaded) == rank_events(events)


def test_malformed_log_reads_as_empty():
    for raw in ("{not json", '{"itemId": "D1W1"}', "42"):
        log = KeyValueEventLog(InMemoryKeyValueStore({STUDY_LOG_KEY: raw}))
        assert log.load_events() == []


def test_malformed_entries_are_skipped():
    raw = json.dumps(
        [
            {"itemId": "D1W1", "itemType": "word", "outcome": "view", "ts": 5},
            {"itemId": "D1W2"},
            "garbage",
            {"itemId": "D1P", "itemType": "pattern", "outcome": "mystery", "ts": 6},
        ]
    )
    log = KeyValueEventLog(InMemoryKeyValueStore({STUDY_LOG_KEY: raw}))
    assert [(e.item_id, e.outcome) for e in log.load_events()] == [("D1W1", "view"), ("D1P", "mystery")]


def test_append_to_malformed_log_starts_fresh():
    store = InMemoryKeyValueStore({STUDY_LOG_KEY: "oops"})
    log = KeyValueEventLog(store)
    log.append(make_event("D1W1", "view", 1))
    assert len(log.load_events()) == 1


def test_pending_item_ids_round_trip(store, pending):
    assert pending.load_item_ids() == []
    pending.save_item_ids(["D1W1", "D1P"])
    assert json.loads(store.get(PENDING_QUIZ_KEY)) == ["D1W1", "D1P"]
    assert pending.load_item_ids() == ["D1W1", "D1P"]


def test_pending_ignores_malformed_value():
    pending = KeyValuePendingQuiz(InMemoryKeyValueStore({PENDING_QUIZ_KEY: "[1, \"D1W1\""}))
    assert pending.load_item_ids() == []
    pending = KeyValuePendingQuiz(InMemoryKeyValueStore({PENDING_QUIZ_KEY: '[1, "D1W1"]'}))
    assert pending.load_item_ids() == ["D1W1"]


def test_json_file_store_survives_reopen(tmp_path):
    path = tmp_path / "state" / "store.json"
    KeyValueEventLog(JsonFileKeyValueStore(path)).append(make_event("D1W1", "wrong", 9))
    reopened = KeyValueEventLog(JsonFileKeyValueStore(path))
    assert [e.item_id for e in reopened.load_events()] == ["D1W1"]


def test_json_file_store_with_corrupt_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("not json", encoding="utf-8")
    store = JsonFileKeyValueStore(path)
    assert store.get(STUDY_LOG_KEY) is None
    store.set("k", "v")
    assert store.get("k") == "v"


def test_sqlite_store_survives_reopen(tmp_path):
    path = tmp_path / "store.db"
    store = SqliteKeyValueStore(path)
    assert store.get("missing") is None
    KeyValuePendingQuiz(store).save_item_ids(["D2P"])
    store.close()

    reopened = SqliteKeyValueStore(path)
    assert KeyValuePendingQuiz(reopened).load_item_ids() == ["D2P"]
    reopened.close()


def test_open_store_picks_backend(tmp_path):
    assert isinstance(open_store(None), InMemoryKeyValueStore)
    assert isinstance(open_store(tmp_path / "log.json"), JsonFileKeyValueStore)
    sqlite_store = open_store(tmp_path / "log.sqlite")
    assert isinstance(sqlite_store, SqliteKeyValueStore)
    sqlite_store.close()


def test_events_accept_field_names_and_aliases():
    by_name = StudyEvent(item_id="D1W1", item_type="word", outcome="view", timestamp=5)
    by_alias = StudyEvent.parse_obj({"itemId": "D1W1", "itemType": "word", "outcome": "view", "ts": 5})
    assert by_name == by_alias
    assert by_name.item_id == "D1W1"
    assert by_name.timestamp == 5


def test_json_file_store_replaces_file_atomically(tmp_path, monkeypatch):
    path = tmp_path / "store.json"
    store = JsonFileKeyValueStore(path)
    store.set("k", "old")
    assert list(tmp_path.iterdir()) == [path]

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("jpreview.storage.os.replace", fail_replace)
    with pytest.raises(OSError):
        store.set("k", "new")
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "old"}
    assert store.get("k") == "old"
