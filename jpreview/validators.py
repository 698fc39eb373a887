"""Validation utilities applied before a quiz handoff or session start."""
from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from .domain import QuizItem
from .models import CatalogDay
from .quiz import DEFAULT_CHOICE_COUNT, InsufficientChoicesError, distractor_pool


ITEM_ID_PATTERN = re.compile(r"^D\d+(W\d+|P)$")
NOTHING_TO_REVIEW = "nothing to review"


class ValidationError(ValueError):
    """Raised when a requested item list fails validation."""


class NothingToReviewError(ValidationError):
    """Raised when a quiz handoff is attempted with no items."""


def validate_item_ids(item_ids: Iterable[str]) -> List[str]:
    """Return the ids in order with duplicates removed.

    Ids must be strings; ids that look nothing like catalog ids are still
    allowed through, since unknown ids are dropped at resolution time.
    """

    cleaned: List[str] = []
    seen = set()
    for item_id in item_ids:
        if not isinstance(item_id, str) or not item_id.strip():
            raise ValidationError(f"Invalid item id: {item_id!r}")
        if item_id in seen:
            continue
        seen.add(item_id)
        cleaned.append(item_id)
    if not cleaned:
        raise NothingToReviewError(NOTHING_TO_REVIEW)
    return cleaned


def is_catalog_item_id(item_id: str) -> bool:
    return bool(ITEM_ID_PATTERN.match(item_id))


def validate_quiz_items(
    items: Sequence[QuizItem],
    catalog: Sequence[CatalogDay],
    choice_count: int = DEFAULT_CHOICE_COUNT,
) -> None:
    """Fail fast when any item could not be given a full set of choices."""

    needed = choice_count - 1
    for item in items:
        available = len(distractor_pool(catalog, item.answer))
        if available < needed:
            raise InsufficientChoicesError(
                f"Item {item.id} has {available} distinct distractors, need {needed}"
            )


__all__ = [
    "NOTHING_TO_REVIEW",
    "NothingToReviewError",
    "ValidationError",
    "is_catalog_item_id",
    "validate_item_ids",
    "validate_quiz_items",
]
