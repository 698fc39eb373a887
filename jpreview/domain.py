"""Domain models shared across ranking, quiz building and services."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class SessionState(str, Enum):
    READY = "ready"
    PRESENTING = "presenting"
    COMPLETE = "complete"


class EmptyQuizError(ValueError):
    """Raised when a quiz would start with no resolvable items."""


class SessionCompleteError(RuntimeError):
    """Raised when a completed quiz session is asked for more questions."""


@dataclass
class RankedItem:
    """Per-item accumulator used while ranking study events."""

    item_id: str
    best: int = 0
    last_ts: int = 0

    def update(self, weight: int, timestamp: int) -> None:
        self.best = max(self.best, weight)
        self.last_ts = max(self.last_ts, timestamp)

    def sort_key(self) -> tuple:
        return (-self.best, self.last_ts, self.item_id)


@dataclass(frozen=True)
class QuizItem:
    """An item resolved against the catalog; prompt is Japanese, answer Korean."""

    id: str
    type: str
    prompt: str
    answer: str


@dataclass(frozen=True)
class QuizQuestion:
    """What the presentation layer needs to render one question."""

    index: int
    total: int
    item: QuizItem
    choices: List[str] = field(default_factory=list)

    @property
    def prompt(self) -> str:
        return self.item.prompt

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "total": self.total,
            "item_id": self.item.id,
            "prompt": self.item.prompt,
            "choices": list(self.choices),
        }


__all__ = [
    "EmptyQuizError",
    "QuizItem",
    "QuizQuestion",
    "RankedItem",
    "SessionCompleteError",
    "SessionState",
]
