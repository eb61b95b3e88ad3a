from __future__ import annotations

"""Statistics Aggregator: derived metrics from the ledger, sessions and bank.

Every call reads the store afresh; nothing is cached between calls.
"""

import math
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from ..analytics.config import ReadinessConfig
from ..analytics.metrics import compute_readiness, weighted_exam_score
from ..app.modes import EXAM_TAG, label_for_tag
from ..results.schema import (
    SESSION_FINISHED,
    ChapterStats,
    DashboardSummary,
    ExamTrendSlot,
    ReadinessScores,
    ReviewItem,
    SessionReview,
)
from ..storage.store import QuizStore
from . import activity
from .activity import TzLike


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    return int(math.floor(100.0 * part / whole + 0.5))


def format_duration(seconds: int) -> str:
    m, s = divmod(max(0, int(seconds)), 60)
    return f"{m:02d}:{s:02d}"


class StatisticsAggregator:
    def __init__(
        self,
        store: QuizStore,
        *,
        readiness: Optional[ReadinessConfig] = None,
        tz: TzLike = None,
        activity_days: int = 28,
        trend_length: int = 10,
    ) -> None:
        self.store = store
        self.readiness_cfg = readiness or ReadinessConfig()
        self.tz = tz
        self.activity_days = activity_days
        self.trend_length = trend_length

    @classmethod
    def from_config(cls, store: QuizStore, cfg: Optional[Dict[str, Any]]) -> "StatisticsAggregator":
        stats = (cfg or {}).get("stats", {}) or {}
        return cls(
            store,
            readiness=ReadinessConfig.from_config(cfg),
            tz=stats.get("timezone"),
            activity_days=int(stats.get("activity_days", 28)),
            trend_length=int(stats.get("trend_length", 10)),
        )

    # ------------------------------------------------------------- answers

    def global_accuracy(self) -> float:
        ans = self.store.load_answer_events()
        if ans.empty:
            return 0.0
        return float(ans["is_correct"].astype(bool).sum()) / float(len(ans))

    def chapter_stats(self) -> List[ChapterStats]:
        """One row per category, including chapters nobody has answered yet."""
        totals = self.store.total_questions_per_category()
        answered = self.store.answered_stats_per_category()
        names = {c.id: c.name for c in self.store.fetch_categories()}
        out = []
        for chapter_id in sorted(set(names) | set(totals)):
            total_answers, unique_correct, wrong = answered.get(chapter_id, (0, 0, 0))
            out.append(
                ChapterStats(
                    chapter_id=chapter_id,
                    name=names.get(chapter_id, f"Chapter {chapter_id}"),
                    total_questions=totals.get(chapter_id, 0),
                    total_answer_events=total_answers,
                    unique_correct_questions=unique_correct,
                    total_wrong_events=wrong,
                )
            )
        return out

    def mastery_percent(self) -> int:
        """Share of the whole bank answered correctly at least once."""
        total = self.store.total_question_count()
        unique = sum(s.unique_correct_questions for s in self.chapter_stats())
        return _percent(unique, total)

    def seen_percent(self) -> int:
        total = self.store.total_question_count()
        ans = self.store.load_answer_events()
        return _percent(ans["question_id"].nunique() if not ans.empty else 0, total)

    def readiness_frame(self, k: Optional[float] = None) -> pd.DataFrame:
        cfg = self.readiness_cfg if k is None else self.readiness_cfg.model_copy(update={"k": float(k)})
        rows = [
            {
                "chapter_id": s.chapter_id,
                "total_questions": s.total_questions,
                "attempts": s.total_answer_events,
                "unique_correct": s.unique_correct_questions,
            }
            for s in self.chapter_stats()
            if s.total_questions > 0
        ]
        df = pd.DataFrame(rows, columns=["chapter_id", "total_questions", "attempts", "unique_correct"])
        return compute_readiness(df, cfg)

    def readiness_scores(self, k: Optional[float] = None) -> ReadinessScores:
        df = self.readiness_frame(k)
        per_chapter = {int(r.chapter_id): int(r.score_int) for r in df.itertuples(index=False)}
        return ReadinessScores(per_chapter=per_chapter, exam_score=weighted_exam_score(df))

    # ------------------------------------------------------------ sessions

    def _finished_sessions(self) -> pd.DataFrame:
        df = self.store.load_sessions()
        return df[df["status"] == SESSION_FINISHED]

    def _active_days(self) -> set:
        return set(activity.local_dates(self._finished_sessions()["ended_at"], self.tz))

    def _today(self, today: Optional[date]) -> date:
        return today or activity.today_in(self.tz)

    def quizzes_taken(self) -> int:
        return int(len(self._finished_sessions()))

    def quizzes_passed(self) -> int:
        df = self._finished_sessions()
        return int(df["passed"].astype(bool).sum()) if not df.empty else 0

    def pass_ratio_percent(self) -> int:
        return _percent(self.quizzes_passed(), self.quizzes_taken())

    def daily_streak(self, today: Optional[date] = None) -> int:
        return activity.daily_streak(self._active_days(), self._today(today))

    def current_run_streak(self, today: Optional[date] = None) -> int:
        return activity.run_streak(self._active_days(), self._today(today))

    def weekday_counts(self) -> List[int]:
        return activity.weekday_counts(activity.local_dates(self._finished_sessions()["ended_at"], self.tz))

    def last_days_activity(self, days: Optional[int] = None, today: Optional[date] = None) -> List[bool]:
        return activity.activity_flags(self._active_days(), self._today(today), days or self.activity_days)

    def exam_trend(self, limit: Optional[int] = None) -> List[ExamTrendSlot]:
        """Last exams by end time, oldest first, left-padded with placeholders."""
        limit = limit or self.trend_length
        df = self._finished_sessions()
        df = df[df["mode"] == EXAM_TAG].sort_values(["ended_at", "id"]).tail(limit)
        slots = [
            ExamTrendSlot(
                correct_answers=int(r.correct_answers),
                total_questions=int(r.total_questions),
                ended_at=pd.Timestamp(r.ended_at).tz_convert(activity.resolve_tz(self.tz)).to_pydatetime(),
            )
            for r in df.itertuples(index=False)
        ]
        padding = [ExamTrendSlot(0, 0, None, is_placeholder=True) for _ in range(limit - len(slots))]
        return padding + slots

    def session_review(self, session_id: int) -> Optional[SessionReview]:
        """Replay of a stored session: answers joined to their questions."""
        session = self.store.get_session(session_id)
        if session is None:
            return None
        answers = self.store.fetch_session_answers(session_id)
        questions = {q.id: q for q in self.store.fetch_questions_by_ids({a.question_id for a in answers})}
        items = [
            ReviewItem(order_index=a.order_index, question=questions[a.question_id], selected_index=a.selected_index, is_correct=a.is_correct)
            for a in answers
            if a.question_id in questions
        ]
        correct = sum(1 for a in answers if a.is_correct)
        return SessionReview(
            session=session,
            title=label_for_tag(session.mode),
            items=items,
            score_percent=_percent(correct, max(len(answers), 1)),
            correct_count=correct,
            wrong_count=max(0, len(answers) - correct),
            duration_text=format_duration(session.duration_seconds),
        )

    # ------------------------------------------------------------- summary

    def summary(self, today: Optional[date] = None) -> DashboardSummary:
        chapters = self.chapter_stats()
        total_answers = sum(c.total_answer_events for c in chapters)
        return DashboardSummary(
            total_questions=self.store.total_question_count(),
            total_answers=total_answers,
            total_wrong_answers=sum(c.total_wrong_events for c in chapters),
            accuracy=self.global_accuracy(),
            mastery_percent=self.mastery_percent(),
            seen_percent=self.seen_percent(),
            quizzes_taken=self.quizzes_taken(),
            quizzes_passed=self.quizzes_passed(),
            pass_ratio_percent=self.pass_ratio_percent(),
            daily_streak=self.daily_streak(today),
            current_run_streak=self.current_run_streak(today),
            readiness=self.readiness_scores(),
            chapters=chapters,
            weekday_counts=self.weekday_counts(),
            last_days_activity=self.last_days_activity(today=today),
            exam_trend=self.exam_trend(),
        )


def format_summary(summary: DashboardSummary) -> str:
    """Return a human-readable summary of the dashboard numbers."""
    lines = [
        f"Questions: {summary.total_questions}  Answers: {summary.total_answers}  Wrong: {summary.total_wrong_answers}",
        f"Accuracy: {_percent(summary.accuracy, 1.0)}%  Mastery: {summary.mastery_percent}%  Seen: {summary.seen_percent}%",
        f"Quizzes: {summary.quizzes_passed}/{summary.quizzes_taken} passed ({summary.pass_ratio_percent}%)",
        f"Streak: {summary.daily_streak} days  Preparation: {summary.readiness.exam_score}/100",
    ]
    for c in summary.chapters:
        score = summary.readiness.per_chapter.get(c.chapter_id, 0)
        lines.append(
            f"  {c.chapter_id}. {c.name}: {c.unique_correct_questions}/{c.total_questions} mastered, "
            f"{c.total_answer_events} answers, {c.total_wrong_events} wrong, readiness {score}"
        )
    return "\n".join(lines)
