"""Pydantic models for the jpreview study log, catalog and HTTP surface."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, validator


ItemType = Literal["word", "pattern"]
Outcome = Literal["view", "correct", "wrong"]


class StudyEvent(BaseModel):
    """A single learner interaction with an item.

    Persisted with the keys used by the browser log (``itemId``, ``itemType``,
    ``outcome``, ``ts``). ``outcome`` is kept as a free string because stored
    logs may carry values the ranker does not know about.
    """

    item_id: str = Field(..., alias="itemId")
    item_type: ItemType = Field(..., alias="itemType")
    outcome: str
    timestamp: int = Field(..., alias="ts")

    class Config:
        allow_population_by_field_name = True
        populate_by_name = True
        frozen = True

    @validator("item_id")
    def validate_item_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Study events require a non-empty item id")
        return value

    def to_record(self) -> dict:
        return self.dict(by_alias=True)


class CatalogWord(BaseModel):
    jp: str
    ko: str


class CatalogDay(BaseModel):
    """One day of the study plan: a grammar pattern and its vocabulary."""

    pattern: str
    pattern_ko: str
    words: List[CatalogWord] = Field(default_factory=list)


class RecordEventRequest(BaseModel):
    """Input body for /v1/events."""

    item_id: str
    item_type: ItemType
    outcome: Outcome = "view"


class RecordEventResponse(BaseModel):
    item_id: str
    outcome: str
    timestamp: int


class ReviewSetResponse(BaseModel):
    window: Literal["yesterday", "last7"]
    item_ids: List[str]


class QuizStartRequest(BaseModel):
    item_ids: List[str] = Field(default_factory=list)


class QuizStartResponse(BaseModel):
    item_ids: List[str]


class QuizQuestionPayload(BaseModel):
    index: int
    total: int
    item_id: str
    prompt: str
    choices: List[str]


class QuizSessionResponse(BaseModel):
    session_id: str
    state: Literal["ready", "presenting", "complete"]
    question: Optional[QuizQuestionPayload] = None
    message: Optional[str] = None


class QuizAnswerRequest(BaseModel):
    choice: str


class QuizAnswerResponse(BaseModel):
    session_id: str
    item_id: str
    outcome: Outcome
    correct_answer: str
    next: QuizSessionResponse


__all__ = [
    "CatalogDay",
    "CatalogWord",
    "ItemType",
    "Outcome",
    "QuizAnswerRequest",
    "QuizAnswerResponse",
    "QuizQuestionPayload",
    "QuizSessionResponse",
    "QuizStartRequest",
    "QuizStartResponse",
    "RecordEventRequest",
    "RecordEventResponse",
    "ReviewSetResponse",
    "StudyEvent",
]
