from __future__ import annotations

"""Schema constants and Pydantic models for the Parquet-backed quiz store."""

from datetime import datetime, timezone
from typing import List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator

from ..results.schema import SESSION_IN_PROGRESS

# --- Tables ---

CATEGORIES_TABLE = "category"
QUESTIONS_TABLE = "question"
ANSWERS_TABLE = "user_answer"
SESSIONS_TABLE = "quiz_session"
SESSION_ANSWERS_TABLE = "quiz_session_answer"
FAVORITES_TABLE = "user_favorite"

UTC_TS = pd.DatetimeTZDtype(tz="UTC")

DTYPES = {
    CATEGORIES_TABLE: {
        "id": "Int64",
        "name": "string",
    },
    QUESTIONS_TABLE: {
        "id": "Int64",
        "category_id": "Int64",
        "question": "string",
        "options": "object",
        "correct_index": "Int64",
    },
    ANSWERS_TABLE: {
        "id": "Int64",
        "question_id": "Int64",
        "chapter_id": "Int64",
        "is_correct": "boolean",
        "answered_at": UTC_TS,
    },
    SESSIONS_TABLE: {
        "id": "Int64",
        "mode": "string",
        "started_at": UTC_TS,
        "ended_at": UTC_TS,
        "duration_seconds": "Int64",
        "total_questions": "Int64",
        "correct_answers": "Int64",
        "points": "Int64",
        "passed": "boolean",
        "status": "string",
    },
    SESSION_ANSWERS_TABLE: {
        "id": "Int64",
        "session_id": "Int64",
        "order_index": "Int64",
        "question_id": "Int64",
        "selected_index": "Int64",
        "is_correct": "boolean",
    },
    FAVORITES_TABLE: {
        "question_id": "Int64",
    },
}

TABLES = list(DTYPES.keys())


def _to_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# --- Pydantic models ---

class CategoryRow(BaseModel):
    id: int = Field(ge=0)
    name: str


class QuestionRow(BaseModel):
    id: int = Field(ge=0)
    category_id: int = Field(ge=0)
    question: str
    options: List[str] = Field(min_length=2)
    correct_index: int = Field(ge=0)

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "QuestionRow":
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index must be a valid index into options")
        return self


class AnswerEventRow(BaseModel):
    id: int = Field(ge=1)
    question_id: int
    chapter_id: int
    is_correct: bool
    answered_at: datetime

    @field_validator("answered_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _to_utc(v)


class SessionRow(BaseModel):
    id: int = Field(ge=1)
    mode: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: int = Field(default=0, ge=0)
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(default=0, ge=0)
    points: int = Field(default=0, ge=0)
    passed: bool = False
    status: Literal["in_progress", "finished", "abandoned"] = SESSION_IN_PROGRESS

    @field_validator("started_at", "ended_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return _to_utc(v)

    @model_validator(mode="after")
    def _correct_le_total(self) -> "SessionRow":
        if self.correct_answers > self.total_questions:
            raise ValueError("correct_answers must be <= total_questions")
        return self


class SessionAnswerRow(BaseModel):
    id: int = Field(ge=1)
    session_id: int
    order_index: int = Field(ge=0)
    question_id: int
    selected_index: Optional[int] = Field(default=None, ge=0)
    is_correct: bool
