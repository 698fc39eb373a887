from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from jpreview.metrics import MetricsRegistry
from jpreview.models import CatalogDay, StudyEvent
from jpreview.storage import InMemoryKeyValueStore, KeyValueEventLog, KeyValuePendingQuiz


KST = ZoneInfo("Asia/Seoul")

CATALOG_DOCUMENT = [
    {
        "pattern": "〜たい",
        "pattern_ko": "~하고 싶다",
        "words": [
            {"jp": "猫", "ko": "고양이"},
            {"jp": "犬", "ko": "개"},
            {"jp": "水", "ko": "물"},
        ],
    },
    {
        "pattern": "〜ながら",
        "pattern_ko": "~하면서",
        "words": [
            {"jp": "本", "ko": "책"},
            {"jp": "山", "ko": "산"},
            {"jp": "空", "ko": "하늘"},
        ],
    },
]


def kst(year, month, day, hour=12, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=KST)


def kst_ms(year, month, day, hour=12, minute=0):
    return int(kst(year, month, day, hour, minute).timestamp() * 1000)


def make_event(item_id, outcome, ts, item_type="word"):
    return StudyEvent(item_id=item_id, item_type=item_type, outcome=outcome, timestamp=ts)


@pytest.fixture
def catalog():
    return [CatalogDay.parse_obj(day) for day in CATALOG_DOCUMENT]


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def event_log(store):
    return KeyValueEventLog(store)


@pytest.fixture
def pending(store):
    return KeyValuePendingQuiz(store)


@pytest.fixture
def metrics():
    return MetricsRegistry()


@pytest.fixture
def fixed_now():
    return kst(2025, 1, 11, 9, 30)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now
