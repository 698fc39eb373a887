"""Loading the day-by-day study plan that quiz items are resolved against."""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import requests
from pydantic import ValidationError

from .metrics import METRICS
from .models import CatalogDay


logger = logging.getLogger(__name__)

DEFAULT_CATALOG_URL = "../data/daily_plan.json?v=2025-08"
DEFAULT_TIMEOUT_SECONDS = 10.0


def parse_catalog(payload: Any) -> List[CatalogDay]:
    """Validate a decoded catalog document (a list of day records)."""

    if not isinstance(payload, list):
        raise ValueError("Catalog document must be a JSON array of day records")
    return [CatalogDay.parse_obj(day) for day in payload]


def load_catalog_file(path: Path) -> List[CatalogDay]:
    """Read a catalog from disk; any failure yields an empty catalog."""

    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return parse_catalog(payload)
    except (OSError, ValueError, ValidationError) as exc:
        logger.error("Failed to load catalog from %s: %s", path, exc)
        METRICS.record_catalog_failure()
        return []


def _download(url: str, session: Optional[requests.Session], timeout: float) -> Any:
    getter = session.get if session is not None else requests.get
    response = getter(url, timeout=timeout)
    response.raise_for_status()
    return response.json()


async def fetch_catalog(
    url: str = DEFAULT_CATALOG_URL,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> List[CatalogDay]:
    """Fetch and validate the catalog over HTTP without blocking the event loop.

    Network, HTTP status, decoding and validation failures are logged and
    degrade to an empty catalog. Nothing is retried.
    """

    try:
        payload = await asyncio.to_thread(_download, url, session, timeout)
        return parse_catalog(payload)
    except requests.RequestException as exc:
        logger.error("Catalog request to %s failed: %s", url, exc)
        METRICS.record_catalog_failure()
    except (ValueError, ValidationError) as exc:
        logger.error("Catalog from %s is malformed: %s", url, exc)
        METRICS.record_catalog_failure()
    return []


__all__ = [
    "DEFAULT_CATALOG_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "fetch_catalog",
    "load_catalog_file",
    "parse_catalog",
]
