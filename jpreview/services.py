"""Core services implementing the review selection and quiz workflows."""
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
from uuid import uuid4

from .catalog import DEFAULT_CATALOG_URL, DEFAULT_TIMEOUT_SECONDS, fetch_catalog, load_catalog_file
from .domain import EmptyQuizError, SessionState
from .metrics import METRICS, MetricsRegistry
from .models import CatalogDay, StudyEvent
from .quiz import DEFAULT_CHOICE_COUNT, QUIZ_COMPLETE_MESSAGE, QuizSession, build_quiz_items
from .repositories import EventLogRepository, PendingQuizRepository
from .review_sets import (
    DEFAULT_MAX_ITEMS,
    REFERENCE_TIMEZONE,
    epoch_millis,
    last7_days_set,
    utc_now,
    yesterday_set,
)
from .validators import (
    NothingToReviewError,
    is_catalog_item_id,
    validate_item_ids,
    validate_quiz_items,
)


logger = logging.getLogger(__name__)

NO_QUIZ_ITEMS = "no quiz items"

CatalogLoader = Callable[[], Awaitable[List[CatalogDay]]]


@dataclass
class AnswerOutcome:
    """Result of one submitted answer and the state that follows it."""

    event: StudyEvent
    correct_answer: str
    next: dict


@dataclass
class ReviewConfig:
    """Tunable configuration for review selection and quiz sessions."""

    max_items: int = DEFAULT_MAX_ITEMS
    choice_count: int = DEFAULT_CHOICE_COUNT
    timezone: str = REFERENCE_TIMEZONE
    catalog_url: str = DEFAULT_CATALOG_URL
    catalog_path: Optional[Path] = None
    catalog_timeout: float = DEFAULT_TIMEOUT_SECONDS
    store_path: Optional[Path] = None


def make_catalog_loader(config: ReviewConfig) -> CatalogLoader:
    """Local file when ``catalog_path`` is set, otherwise HTTP."""

    async def load() -> List[CatalogDay]:
        if config.catalog_path is not None:
            return await asyncio.to_thread(load_catalog_file, config.catalog_path)
        return await fetch_catalog(config.catalog_url, timeout=config.catalog_timeout)

    return load


class ReviewService:
    """Records study events and derives review sets from them."""

    def __init__(
        self,
        event_log: EventLogRepository,
        pending: PendingQuizRepository,
        config: Optional[ReviewConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        metrics: MetricsRegistry = METRICS,
    ) -> None:
        self._event_log = event_log
        self._pending = pending
        self._config = config or ReviewConfig()
        self._clock = clock
        self._metrics = metrics

    def record_event(self, item_id: str, item_type: str, outcome: str) -> StudyEvent:
        event = StudyEvent(
            item_id=item_id,
            item_type=item_type,
            outcome=outcome,
            timestamp=epoch_millis(self._clock()),
        )
        self._event_log.append(event)
        self._metrics.record_event(outcome)
        return event

    def yesterday(self, max_items: Optional[int] = None) -> List[str]:
        limit = self._config.max_items if max_items is None else max_items
        item_ids = yesterday_set(
            self._event_log.load_events(), limit, now=self._clock(), tz=self._config.timezone
        )
        self._metrics.record_review_set("yesterday", len(item_ids))
        return item_ids

    def last7_days(self, max_items: Optional[int] = None) -> List[str]:
        limit = self._config.max_items if max_items is None else max_items
        item_ids = last7_days_set(
            self._event_log.load_events(), limit, now=self._clock(), tz=self._config.timezone
        )
        self._metrics.record_review_set("last7", len(item_ids))
        return item_ids

    def start_quiz(self, item_ids: Iterable[str]) -> List[str]:
        """Hand the item ids over to the quiz side; empty lists are refused."""

        try:
            cleaned = validate_item_ids(item_ids)
        except NothingToReviewError:
            self._metrics.record_empty_handoff()
            logger.info("Quiz handoff refused: nothing to review")
            raise
        unknown_shape = [item_id for item_id in cleaned if not is_catalog_item_id(item_id)]
        if unknown_shape:
            logger.debug("Handoff contains ids outside the catalog scheme: %s", unknown_shape)
        self._pending.save_item_ids(cleaned)
        return cleaned


class QuizService:
    """Builds quiz sessions from the pending handoff and drives them."""

    def __init__(
        self,
        event_log: EventLogRepository,
        pending: PendingQuizRepository,
        catalog_loader: CatalogLoader,
        config: Optional[ReviewConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        rng_factory: Callable[[], random.Random] = random.Random,
        metrics: MetricsRegistry = METRICS,
    ) -> None:
        self._event_log = event_log
        self._pending = pending
        self._catalog_loader = catalog_loader
        self._config = config or ReviewConfig()
        self._clock = clock
        self._rng_factory = rng_factory
        self._metrics = metrics
        self._sessions: Dict[str, QuizSession] = {}

    async def load_catalog(self) -> List[CatalogDay]:
        return await self._catalog_loader()

    def build_session(self, item_ids: Sequence[str], catalog: Sequence[CatalogDay]) -> QuizSession:
        items = build_quiz_items(item_ids, catalog)
        if not items:
            raise EmptyQuizError(NO_QUIZ_ITEMS)
        if len(items) != len(set(item_ids)):
            logger.debug("Resolved %d of %d requested items", len(items), len(set(item_ids)))
        validate_quiz_items(items, catalog, self._config.choice_count)
        return QuizSession(
            items,
            catalog,
            self._event_log,
            rng=self._rng_factory(),
            clock=self._clock,
            choice_count=self._config.choice_count,
        )

    async def create_session(self) -> str:
        """Start a session for the pending item ids and return its id."""

        item_ids = self._pending.load_item_ids()
        if not item_ids:
            raise EmptyQuizError(NO_QUIZ_ITEMS)
        catalog = await self.load_catalog()
        session = self.build_session(item_ids, catalog)
        session.start()
        session_id = str(uuid4())
        self._sessions[session_id] = session
        self._metrics.record_session_started()
        logger.info("Started quiz session %s with %d items", session_id, len(session))
        return session_id

    def get_session(self, session_id: str) -> QuizSession:
        try:
            return self._sessions[session_id]
        except KeyError as exc:
            raise KeyError(f"Unknown quiz session: {session_id}") from exc

    def answer(self, session_id: str, choice: str) -> AnswerOutcome:
        """Submit a choice; a session that completes is discarded."""

        session = self.get_session(session_id)
        correct_answer = session.current_question().item.answer
        event = session.submit_answer(choice)
        self._metrics.record_event(event.outcome)
        snapshot = self._snapshot(session_id, session)
        if session.state is SessionState.COMPLETE:
            del self._sessions[session_id]
            self._metrics.record_session_completed()
        return AnswerOutcome(event=event, correct_answer=correct_answer, next=snapshot)

    def describe(self, session_id: str) -> dict:
        """Snapshot of the session suitable for a presentation layer."""

        return self._snapshot(session_id, self.get_session(session_id))

    def _snapshot(self, session_id: str, session: QuizSession) -> dict:
        snapshot = {"session_id": session_id, "state": session.state.value, "question": None, "message": None}
        if session.state is SessionState.COMPLETE:
            snapshot["message"] = QUIZ_COMPLETE_MESSAGE
        else:
            snapshot["question"] = session.current_question().to_dict()
        return snapshot


__all__ = [
    "AnswerOutcome",
    "NO_QUIZ_ITEMS",
    "QuizService",
    "ReviewConfig",
    "ReviewService",
    "make_catalog_loader",
]
