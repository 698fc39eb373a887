"""FastAPI application wiring for the jpreview review and quiz flow."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from .catalog import DEFAULT_CATALOG_URL
from .models import (
    QuizAnswerRequest,
    QuizAnswerResponse,
    QuizSessionResponse,
    QuizStartRequest,
    QuizStartResponse,
    RecordEventRequest,
    RecordEventResponse,
    ReviewSetResponse,
)
from .services import QuizService, ReviewConfig, ReviewService, make_catalog_loader
from .storage import KeyValueEventLog, KeyValuePendingQuiz, open_store


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(module)s: %(message)s"

app = FastAPI(title="jpreview", version="0.1.0")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger."""

    logger = logging.getLogger("jpreview")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)
    return logger


def _optional_path(name: str) -> Optional[Path]:
    value = os.getenv(name)
    return Path(value) if value else None


def config_from_env() -> ReviewConfig:
    return ReviewConfig(
        max_items=int(os.getenv("JPREVIEW_MAX_ITEMS", "30")),
        timezone=os.getenv("JPREVIEW_TIMEZONE", "Asia/Seoul"),
        catalog_url=os.getenv("JPREVIEW_CATALOG_URL", DEFAULT_CATALOG_URL),
        catalog_path=_optional_path("JPREVIEW_CATALOG_PATH"),
        catalog_timeout=float(os.getenv("JPREVIEW_CATALOG_TIMEOUT", "10")),
        store_path=_optional_path("JPREVIEW_STORE_PATH"),
    )


def get_review_service() -> ReviewService:
    return app.state.review_service


def get_quiz_service() -> QuizService:
    return app.state.quiz_service


@app.on_event("startup")
def startup() -> None:
    configure_logging(os.getenv("JPREVIEW_LOG_LEVEL", "INFO"))
    config = config_from_env()

    store = open_store(config.store_path)
    event_log = KeyValueEventLog(store)
    pending = KeyValuePendingQuiz(store)
    app.state.config = config
    app.state.review_service = ReviewService(event_log, pending, config=config)
    app.state.quiz_service = QuizService(
        event_log, pending, make_catalog_loader(config), config=config
    )


@app.post("/v1/events", response_model=RecordEventResponse)
def record_event(
    request: RecordEventRequest, service: ReviewService = Depends(get_review_service)
) -> RecordEventResponse:
    try:
        event = service.record_event(request.item_id, request.item_type, request.outcome)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return RecordEventResponse(item_id=event.item_id, outcome=event.outcome, timestamp=event.timestamp)


@app.get("/v1/review/yesterday", response_model=ReviewSetResponse)
def review_yesterday(
    max_items: Optional[int] = Query(None, ge=0),
    service: ReviewService = Depends(get_review_service),
) -> ReviewSetResponse:
    return ReviewSetResponse(window="yesterday", item_ids=service.yesterday(max_items))


@app.get("/v1/review/last7", response_model=ReviewSetResponse)
def review_last7(
    max_items: Optional[int] = Query(None, ge=0),
    service: ReviewService = Depends(get_review_service),
) -> ReviewSetResponse:
    return ReviewSetResponse(window="last7", item_ids=service.last7_days(max_items))


@app.post("/v1/quiz/start", response_model=QuizStartResponse)
def quiz_start(
    request: QuizStartRequest, service: ReviewService = Depends(get_review_service)
) -> QuizStartResponse:
    try:
        return QuizStartResponse(item_ids=service.start_quiz(request.item_ids))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/v1/quiz/sessions", response_model=QuizSessionResponse)
async def quiz_session_create(service: QuizService = Depends(get_quiz_service)) -> QuizSessionResponse:
    try:
        session_id = await service.create_session()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return QuizSessionResponse(**service.describe(session_id))


@app.get("/v1/quiz/sessions/{session_id}", response_model=QuizSessionResponse)
def quiz_session_status(
    session_id: str, service: QuizService = Depends(get_quiz_service)
) -> QuizSessionResponse:
    try:
        return QuizSessionResponse(**service.describe(session_id))
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown quiz session: {session_id}") from exc


@app.post("/v1/quiz/sessions/{session_id}/answer", response_model=QuizAnswerResponse)
def quiz_session_answer(
    session_id: str,
    request: QuizAnswerRequest,
    service: QuizService = Depends(get_quiz_service),
) -> QuizAnswerResponse:
    try:
        outcome = service.answer(session_id, request.choice)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown quiz session: {session_id}") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return QuizAnswerResponse(
        session_id=session_id,
        item_id=outcome.event.item_id,
        outcome=outcome.event.outcome,
        correct_answer=outcome.correct_answer,
        next=QuizSessionResponse(**outcome.next),
    )


__all__ = ["app", "config_from_env", "configure_logging"]
