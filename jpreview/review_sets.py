"""Calendar-window selection of review sets in the learner's reference timezone."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, List, Optional, Union
from zoneinfo import ZoneInfo

from .models import StudyEvent
from .ranking import rank_events


logger = logging.getLogger(__name__)

REFERENCE_TIMEZONE = "Asia/Seoul"
DEFAULT_MAX_ITEMS = 30

Moment = Union[datetime, int]


def _zone(tz: Union[str, ZoneInfo]) -> ZoneInfo:
    return tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)


def _as_datetime(moment: Moment) -> datetime:
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            return moment.replace(tzinfo=timezone.utc)
        return moment
    return datetime.fromtimestamp(moment / 1000, tz=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def epoch_millis(moment: datetime) -> int:
    return int(_as_datetime(moment).timestamp() * 1000)


def local_date(moment: Moment, tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE) -> date:
    """Calendar date of ``moment`` (datetime or epoch milliseconds) in ``tz``."""

    return _as_datetime(moment).astimezone(_zone(tz)).date()


def kst_date(moment: Moment, tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE) -> str:
    """Format ``moment`` as ``YYYY-MM-DD`` in the reference timezone."""

    return local_date(moment, tz).isoformat()


def days_ago(n: int, now: Optional[datetime] = None, tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE) -> str:
    """The local calendar date ``n`` days before ``now`` as ``YYYY-MM-DD``."""

    today = local_date(now if now is not None else utc_now(), tz)
    return (today - timedelta(days=n)).isoformat()


def _check_max(max_items: int) -> None:
    if max_items < 0:
        raise ValueError("max_items must be zero or positive")


def events_between(
    events: Iterable[StudyEvent],
    start: str,
    end: str,
    tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE,
) -> List[StudyEvent]:
    """Events whose local date falls in the inclusive ``[start, end]`` range.

    Dates are compared as ``YYYY-MM-DD`` strings, which orders them correctly.
    Events whose timestamp has no calendar date are left out.
    """

    zone = _zone(tz)
    selected: List[StudyEvent] = []
    for event in events:
        try:
            day = kst_date(event.timestamp, zone)
        except (ValueError, OverflowError, OSError):
            logger.warning("Skipping %s event with out-of-range timestamp %d", event.item_id, event.timestamp)
            continue
        if start <= day <= end:
            selected.append(event)
    return selected


def yesterday_set(
    events: Iterable[StudyEvent],
    max_items: int = DEFAULT_MAX_ITEMS,
    now: Optional[datetime] = None,
    tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE,
) -> List[str]:
    """Ranked item ids studied on the previous local calendar day."""

    _check_max(max_items)
    target = days_ago(1, now, tz)
    return rank_events(events_between(events, target, target, tz))[:max_items]


def last7_days_set(
    events: Iterable[StudyEvent],
    max_items: int = DEFAULT_MAX_ITEMS,
    now: Optional[datetime] = None,
    tz: Union[str, ZoneInfo] = REFERENCE_TIMEZONE,
) -> List[str]:
    """Ranked item ids studied during the seven local days before today."""

    _check_max(max_items)
    if now is None:
        now = utc_now()
    start = days_ago(7, now, tz)
    end = days_ago(1, now, tz)
    return rank_events(events_between(events, start, end, tz))[:max_items]


__all__ = [
    "DEFAULT_MAX_ITEMS",
    "REFERENCE_TIMEZONE",
    "days_ago",
    "epoch_millis",
    "events_between",
    "kst_date",
    "last7_days_set",
    "local_date",
    "utc_now",
    "yesterday_set",
]
