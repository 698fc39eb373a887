"""Concrete key-value stores and the log/handoff repositories built on them."""
from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .models import StudyEvent
from .repositories import (
    PENDING_QUIZ_KEY,
    STUDY_LOG_KEY,
    EventLogRepository,
    KeyValueStore,
    PendingQuizRepository,
)


logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore(KeyValueStore):
    """Keeps every key in a single JSON object on the local filesystem."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> Dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Store file %s is not valid JSON; starting empty", self._path)
            return {}
        if not isinstance(payload, dict):
            logger.warning("Store file %s does not hold a JSON object; starting empty", self._path)
            return {}
        return {str(key): value for key, value in payload.items() if isinstance(value, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        values = self._read_all()
        values[key] = value
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(values, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, self._path)


class SqliteKeyValueStore(KeyValueStore):
    """Stores values in a single SQLite table."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._initialise_schema()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _initialise_schema(self) -> None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.executescript(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );
                """
            )
            self._conn.commit()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            cursor = self._conn.cursor()
            row = cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if not row:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute(
                """
                INSERT OR REPLACE INTO kv_store (key, value)
                VALUES (?, ?)
                """,
                (key, value),
            )
            self._conn.commit()


def _load_json_list(store: KeyValueStore, key: str) -> list:
    raw = store.get(key)
    if not raw:
        return []
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored value for %r is not valid JSON; treating it as empty", key)
        return []
    if not isinstance(payload, list):
        logger.warning("Stored value for %r is not a JSON array; treating it as empty", key)
        return []
    return payload


class KeyValueEventLog(EventLogRepository):
    """Study log persisted as one JSON array under a single key.

    Appends are read-modify-write; concurrent writers are not coordinated and
    the last write wins.
    """

    def __init__(self, store: KeyValueStore, key: str = STUDY_LOG_KEY) -> None:
        self._store = store
        self._key = key

    def _load_records(self) -> list:
        return _load_json_list(self._store, self._key)

    def load_events(self) -> List[StudyEvent]:
        events: List[StudyEvent] = []
        for position, record in enumerate(self._load_records()):
            try:
                events.append(StudyEvent.parse_obj(record))
            except (ValidationError, TypeError) as exc:
                logger.warning("Skipping malformed study event #%d: %s", position, exc)
        return events

    def append(self, event: StudyEvent) -> None:
        records = self._load_records()
        records.append(event.to_record())
        self._store.set(self._key, json.dumps(records, ensure_ascii=False))


class KeyValuePendingQuiz(PendingQuizRepository):
    """Pending quiz item ids stored as a JSON array of strings."""

    def __init__(self, store: KeyValueStore, key: str = PENDING_QUIZ_KEY) -> None:
        self._store = store
        self._key = key

    def load_item_ids(self) -> List[str]:
        return [item_id for item_id in _load_json_list(self._store, self._key) if isinstance(item_id, str)]

    def save_item_ids(self, item_ids: List[str]) -> None:
        self._store.set(self._key, json.dumps(list(item_ids)))


def open_store(path: Optional[Path]) -> KeyValueStore:
    """Pick a store for ``path``: memory when unset, SQLite for .db/.sqlite, JSON otherwise."""

    if path is None:
        return InMemoryKeyValueStore()
    path = Path(path)
    if path.suffix in {".db", ".sqlite", ".sqlite3"}:
        path.parent.mkdir(parents=True, exist_ok=True)
        return SqliteKeyValueStore(path)
    return JsonFileKeyValueStore(path)


__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueEventLog",
    "KeyValuePendingQuiz",
    "SqliteKeyValueStore",
    "open_store",
]
