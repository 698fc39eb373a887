"""Quiz construction: catalog resolution, distractor sampling and the session loop."""
from __future__ import annotations

import logging
import random
from datetime import datetime
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from .domain import EmptyQuizError, QuizItem, QuizQuestion, SessionCompleteError, SessionState
from .models import CatalogDay, StudyEvent
from .repositories import EventLogRepository
from .review_sets import epoch_millis, utc_now


logger = logging.getLogger(__name__)

DEFAULT_CHOICE_COUNT = 4
QUIZ_COMPLETE_MESSAGE = "quiz complete"


class InsufficientChoicesError(ValueError):
    """Raised when the catalog cannot supply enough distinct distractors."""


def word_item_id(day_index: int, word_index: int) -> str:
    return f"D{day_index + 1}W{word_index + 1}"


def pattern_item_id(day_index: int) -> str:
    return f"D{day_index + 1}P"


def synthesize_items(catalog: Sequence[CatalogDay]) -> Iterator[QuizItem]:
    """Yield every catalog entry as a quiz item, in catalog order."""

    for day_index, day in enumerate(catalog):
        for word_index, word in enumerate(day.words):
            yield QuizItem(
                id=word_item_id(day_index, word_index),
                type="word",
                prompt=word.jp,
                answer=word.ko,
            )
        yield QuizItem(
            id=pattern_item_id(day_index),
            type="pattern",
            prompt=day.pattern,
            answer=day.pattern_ko,
        )


def build_quiz_items(item_ids: Iterable[str], catalog: Sequence[CatalogDay]) -> List[QuizItem]:
    """Resolve requested ids against the catalog.

    The result follows catalog order, not request order. Ids missing from the
    catalog are dropped without error.
    """

    wanted = set(item_ids)
    return [item for item in synthesize_items(catalog) if item.id in wanted]


def distractor_pool(catalog: Sequence[CatalogDay], answer: str) -> List[str]:
    """Distinct word translations from the whole catalog, excluding ``answer``."""

    pool: List[str] = []
    seen = {answer}
    for day in catalog:
        for word in day.words:
            if word.ko not in seen:
                seen.add(word.ko)
                pool.append(word.ko)
    return pool


def fisher_yates_shuffle(choices: List[str], rng: random.Random) -> List[str]:
    """Runs a Fisher–Yates shuffle on answer choices using ``rng``."""

    shuffled = choices[:]
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def build_choices(
    answer: str,
    catalog: Sequence[CatalogDay],
    rng: Optional[random.Random] = None,
    choice_count: int = DEFAULT_CHOICE_COUNT,
) -> List[str]:
    """Return ``choice_count`` unique choices, one of them ``answer``, in display order."""

    rng = rng or random.Random()
    needed = choice_count - 1
    pool = distractor_pool(catalog, answer)
    if len(pool) < needed:
        raise InsufficientChoicesError(
            f"Catalog supplies {len(pool)} distinct distractors for '{answer}', need {needed}"
        )
    choices = [answer, *rng.sample(pool, needed)]
    return fisher_yates_shuffle(choices, rng)


def evaluate_answer(item: QuizItem, choice: str) -> str:
    return "correct" if choice == item.answer else "wrong"


class QuizSession:
    """Explicit Ready -> Presenting -> Complete state machine for one quiz run.

    Each submitted answer appends exactly one study event to ``event_log``
    and advances the cursor. There is no skipping and no going back.
    """

    def __init__(
        self,
        items: Sequence[QuizItem],
        catalog: Sequence[CatalogDay],
        event_log: EventLogRepository,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
        choice_count: int = DEFAULT_CHOICE_COUNT,
    ) -> None:
        if not items:
            raise EmptyQuizError("no quiz items")
        self._items = list(items)
        self._catalog = list(catalog)
        self._event_log = event_log
        self._rng = rng or random.Random()
        self._clock = clock
        self._choice_count = choice_count
        self._choices: Dict[int, List[str]] = {}
        self._cursor = 0
        self._state = SessionState.READY
        self._submitting = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def items(self) -> List[QuizItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def start(self) -> QuizQuestion:
        if self._state is SessionState.READY:
            self._state = SessionState.PRESENTING
        return self.current_question()

    def current_question(self) -> QuizQuestion:
        if self._state is SessionState.COMPLETE:
            raise SessionCompleteError(QUIZ_COMPLETE_MESSAGE)
        item = self._items[self._cursor]
        return QuizQuestion(
            index=self._cursor,
            total=len(self._items),
            item=item,
            choices=list(self._choices_for(self._cursor)),
        )

    def _choices_for(self, index: int) -> List[str]:
        if index not in self._choices:
            self._choices[index] = build_choices(
                self._items[index].answer, self._catalog, self._rng, self._choice_count
            )
        return self._choices[index]

    def submit_answer(self, choice: str) -> StudyEvent:
        """Record the learner's choice for the current question and advance."""

        if self._submitting:
            raise RuntimeError("An answer is already being processed for this session")
        if self._state is SessionState.COMPLETE:
            raise SessionCompleteError(QUIZ_COMPLETE_MESSAGE)
        self._submitting = True
        try:
            question = self.start()
            if choice not in question.choices:
                raise ValueError(f"'{choice}' is not one of the presented choices")
            item = question.item
            event = StudyEvent(
                item_id=item.id,
                item_type=item.type,
                outcome=evaluate_answer(item, choice),
                timestamp=epoch_millis(self._clock()),
            )
            self._event_log.append(event)
            self._choices.pop(self._cursor, None)
            self._cursor += 1
            if self._cursor >= len(self._items):
                self._state = SessionState.COMPLETE
                logger.info("Quiz session finished after %d questions", len(self._items))
            return event
        finally:
            self._submitting = False


__all__ = [
    "DEFAULT_CHOICE_COUNT",
    "InsufficientChoicesError",
    "QUIZ_COMPLETE_MESSAGE",
    "QuizSession",
    "build_choices",
    "build_quiz_items",
    "distractor_pool",
    "evaluate_answer",
    "fisher_yates_shuffle",
    "pattern_item_id",
    "synthesize_items",
    "word_item_id",
]
