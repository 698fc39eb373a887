"""Reduction of a study log into a review priority ordering."""
from __future__ import annotations

from typing import Dict, Iterable, List

from .domain import RankedItem
from .models import StudyEvent


OUTCOME_WEIGHTS: Dict[str, int] = {"wrong": 3, "correct": 2, "view": 1}


def outcome_weight(outcome: str) -> int:
    return OUTCOME_WEIGHTS.get(outcome, 0)


def rank_items(events: Iterable[StudyEvent]) -> List[RankedItem]:
    """Collapse events into one accumulator per item, most urgent first.

    Items are ordered by their most severe outcome (wrong > correct > view),
    then by the oldest last interaction so the item seen most recently does
    not keep resurfacing. The item id breaks any remaining tie, which keeps
    the result independent of event order.
    """

    accumulators: Dict[str, RankedItem] = {}
    for event in events:
        ranked = accumulators.get(event.item_id)
        if ranked is None:
            ranked = accumulators[event.item_id] = RankedItem(item_id=event.item_id)
        ranked.update(outcome_weight(event.outcome), event.timestamp)
    return sorted(accumulators.values(), key=RankedItem.sort_key)


def rank_events(events: Iterable[StudyEvent]) -> List[str]:
    """Return item ids in review priority order."""

    return [ranked.item_id for ranked in rank_items(events)]


__all__ = ["OUTCOME_WEIGHTS", "outcome_weight", "rank_events", "rank_items"]
