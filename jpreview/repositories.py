"""Repository interfaces for jpreview persistent state."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import StudyEvent


STUDY_LOG_KEY = "studyLog"
PENDING_QUIZ_KEY = "quizItems"


class KeyValueStore(ABC):
    """Minimal string key-value store the host environment provides."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored text for ``key`` or ``None`` when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class EventLogRepository(ABC):
    """Append-only log of study events."""

    @abstractmethod
    def load_events(self) -> List[StudyEvent]:
        """Return every recorded event in insertion order."""

    @abstractmethod
    def append(self, event: StudyEvent) -> None:
        """Append a single event to the log."""


class PendingQuizRepository(ABC):
    """Holds the item ids handed from review selection to quiz construction."""

    @abstractmethod
    def load_item_ids(self) -> List[str]:
        """Return the pending item ids, or an empty list."""

    @abstractmethod
    def save_item_ids(self, item_ids: List[str]) -> None:
        """Persist the item ids for the next quiz session."""


__all__ = [
    "EventLogRepository",
    "KeyValueStore",
    "PENDING_QUIZ_KEY",
    "PendingQuizRepository",
    "STUDY_LOG_KEY",
]
