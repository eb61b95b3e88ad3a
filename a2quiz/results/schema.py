from __future__ import annotations

"""Domain records shared by the store, the quiz engine and the statistics layer."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


SESSION_IN_PROGRESS = "in_progress"
SESSION_FINISHED = "finished"
SESSION_ABANDONED = "abandoned"
SESSION_STATUSES = {SESSION_IN_PROGRESS, SESSION_FINISHED, SESSION_ABANDONED}


@dataclass(frozen=True)
class Category:
    id: int
    name: str


@dataclass(frozen=True)
class Question:
    id: int
    text: str
    options: Tuple[str, ...]
    correct_index: int
    category_id: Optional[int] = None

    def is_correct(self, selected_index: Optional[int]) -> bool:
        return selected_index is not None and selected_index == self.correct_index

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_index]


@dataclass(frozen=True)
class AnsweredEvent:
    question_id: int
    chapter_id: int
    is_correct: bool
    answered_at: datetime
    id: Optional[int] = None


@dataclass(frozen=True)
class QuizSession:
    id: int
    mode: str
    started_at: datetime
    ended_at: datetime
    duration_seconds: int
    total_questions: int
    correct_answers: int
    points: int
    passed: bool
    status: str = SESSION_IN_PROGRESS

    @property
    def score_percent(self) -> int:
        if self.total_questions <= 0:
            return 0
        return int(math.floor(self.correct_answers * 100.0 / self.total_questions + 0.5))

    @property
    def is_finished(self) -> bool:
        return self.status == SESSION_FINISHED


@dataclass(frozen=True)
class QuizSessionAnswer:
    id: int
    session_id: int
    order_index: int
    question_id: int
    selected_index: Optional[int]
    is_correct: bool


@dataclass(frozen=True)
class AnsweredQuestion:
    """One committed answer in the running session, kept for the results screen."""

    question: Question
    selected_index: Optional[int]

    @property
    def is_correct(self) -> bool:
        return self.question.is_correct(self.selected_index)


@dataclass(frozen=True)
class ChapterStats:
    chapter_id: int
    name: str
    total_questions: int
    total_answer_events: int
    unique_correct_questions: int
    total_wrong_events: int


@dataclass(frozen=True)
class ReadinessScores:
    per_chapter: Dict[int, int]
    exam_score: int


@dataclass(frozen=True)
class ExamTrendSlot:
    correct_answers: int
    total_questions: int
    ended_at: Optional[datetime]
    is_placeholder: bool = False

    @property
    def label(self) -> str:
        if self.ended_at is None:
            return "--/--"
        return self.ended_at.strftime("%d/%m")


@dataclass(frozen=True)
class ReviewItem:
    order_index: int
    question: Question
    selected_index: Optional[int]
    is_correct: bool


@dataclass(frozen=True)
class SessionReview:
    session: QuizSession
    title: str
    items: List[ReviewItem]
    score_percent: int
    correct_count: int
    wrong_count: int
    duration_text: str


@dataclass(frozen=True)
class DashboardSummary:
    total_questions: int
    total_answers: int
    total_wrong_answers: int
    accuracy: float
    mastery_percent: int
    seen_percent: int
    quizzes_taken: int
    quizzes_passed: int
    pass_ratio_percent: int
    daily_streak: int
    current_run_streak: int
    readiness: ReadinessScores
    chapters: List[ChapterStats] = field(default_factory=list)
    weekday_counts: List[int] = field(default_factory=list)
    last_days_activity: List[bool] = field(default_factory=list)
    exam_trend: List[ExamTrendSlot] = field(default_factory=list)
