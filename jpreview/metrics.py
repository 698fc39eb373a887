"""Simple in-process metrics registry for service instrumentation."""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, List


@dataclass
class MetricsRegistry:
    """Holds counters and histograms exposed by the application."""

    events_recorded: Counter = field(default_factory=Counter)
    review_set_sizes: DefaultDict[str, List[int]] = field(default_factory=lambda: defaultdict(list))
    empty_handoffs: int = 0
    quiz_sessions_started: int = 0
    quiz_sessions_completed: int = 0
    catalog_load_failures: int = 0

    def record_event(self, outcome: str) -> None:
        self.events_recorded[outcome] += 1

    def record_review_set(self, window: str, size: int) -> None:
        self.review_set_sizes[window].append(size)

    def record_empty_handoff(self) -> None:
        self.empty_handoffs += 1

    def record_session_started(self) -> None:
        self.quiz_sessions_started += 1

    def record_session_completed(self) -> None:
        self.quiz_sessions_completed += 1

    def record_catalog_failure(self) -> None:
        self.catalog_load_failures += 1

    @property
    def answer_accuracy(self) -> float:
        answered = self.events_recorded["correct"] + self.events_recorded["wrong"]
        if answered == 0:
            return 0.0
        return self.events_recorded["correct"] / answered


METRICS = MetricsRegistry()

__all__ = ["METRICS", "MetricsRegistry"]
