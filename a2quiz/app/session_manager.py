from __future__ import annotations

"""Quiz Session Engine: drives one quiz attempt from selection to scoring.

States run ``LOADING -> IN_PROGRESS -> FINISHED`` (or ``ABANDONED`` when the
user walks away). Every mutating call goes through one lock, so a timer thread
calling :meth:`QuizSessionEngine.tick` cannot race a front-end committing an
answer. Persistence is delegated to the store: one ledger event and one
session answer per commit, written as a single batch.
"""

import logging
import random
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

from ..policy.pass_rule import PassDecision, rule_for_mode
from ..results.schema import AnsweredQuestion, Question
from ..storage.store import QuizStore
from . import events
from .events import EventBus
from .explain import trace as xtrace
from .modes import QuizMode, is_timed, mode_label, serialize
from .selection import select_questions
from .settings import QuizSettings

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class SessionContext:
    session_id: Optional[int]
    mode: QuizMode
    started_at: datetime
    total_questions: int


@dataclass
class RuntimeState:
    index: int = 0
    selected_index: Optional[int] = None
    correct: int = 0
    time_remaining: int = 0
    ended_at: Optional[datetime] = None


class QuizSessionEngine:
    def __init__(
        self,
        store: QuizStore,
        mode: QuizMode,
        *,
        settings: Optional[QuizSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.store = store
        self.mode = mode
        self.settings = settings or QuizSettings()
        self.rng = rng or random.Random()
        self.clock = clock or _utcnow
        self.bus = bus or EventBus()
        self.ctx: Optional[SessionContext] = None
        self.state = SessionState.LOADING
        self.runtime = RuntimeState()
        self.questions: List[Question] = []
        self.answers: List[AnsweredQuestion] = []
        self.decision: Optional[PassDecision] = None
        self._loaded = False
        self._lock = threading.RLock()

    # ----------------------------------------------------------- lifecycle

    def load(self) -> "QuizSessionEngine":
        """Select the questions without touching the store; stays in LOADING.

        Callers check :attr:`is_empty` afterwards and skip :meth:`start` when
        there is nothing to ask.
        """
        with self._lock:
            if self.state is SessionState.LOADING and not self._loaded:
                self.questions = select_questions(self.store, self.mode, self.rng, self.settings)
                self._loaded = True
            return self

    def start(self) -> "QuizSessionEngine":
        """Open the session row and enter IN_PROGRESS.

        An empty selection opens nothing: the engine stays in LOADING and
        later commits, ticks and finishes are no-ops.
        """
        with self._lock:
            if self.state is not SessionState.LOADING:
                return self
            self.load()
            if not self.questions:
                logger.info("No questions for %s, session not started", serialize(self.mode))
                return self
            started_at = self.clock()
            session_id = self.store.start_session(serialize(self.mode), len(self.questions), started_at)
            if session_id is None:
                logger.warning("Session history unavailable; answers will only reach the ledger")
            self.ctx = SessionContext(
                session_id=session_id,
                mode=self.mode,
                started_at=started_at,
                total_questions=len(self.questions),
            )
            self.runtime = RuntimeState(
                time_remaining=self.settings.exam_time_limit_s if is_timed(self.mode) else 0,
            )
            self.state = SessionState.IN_PROGRESS
            payload = {"session_id": session_id, "mode": serialize(self.mode), "questions": len(self.questions)}
            logger.info("Quiz started: %s", payload)
            xtrace("session_started", payload)
            self.bus.emit(events.SESSION_STARTED, payload)
            return self

    def select_option(self, index: int) -> None:
        """Tentative choice for the current question; overwrites the previous one."""
        with self._lock:
            q = self.current_question
            if self.state is not SessionState.IN_PROGRESS or q is None:
                return
            if not (0 <= int(index) < len(q.options)):
                return
            self.runtime.selected_index = int(index)

    def clear_selection(self) -> None:
        with self._lock:
            self.runtime.selected_index = None

    def commit_answer(self) -> Optional[AnsweredQuestion]:
        """Record the current selection (none = unanswered, counted wrong) and advance."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS:
                return None
            q = self.current_question
            if q is None:
                self.finish()
                return None

            selected = self.runtime.selected_index
            answered = AnsweredQuestion(question=q, selected_index=selected)
            is_correct = answered.is_correct
            order_index = self.runtime.index
            at = self.clock()

            with self.store.batch():
                self.store.record_answer_event(q.id, q.category_id, is_correct, at)
                if self.ctx is not None and self.ctx.session_id is not None:
                    self.store.append_session_answer(self.ctx.session_id, order_index, q.id, selected, is_correct)

            self.answers.append(answered)
            if is_correct:
                self.runtime.correct += 1
            self.runtime.index += 1
            self.runtime.selected_index = None

            payload = {"index": order_index, "question_id": q.id, "selected": selected, "correct": is_correct}
            xtrace("answer_committed", payload)
            self.bus.emit(events.ANSWER_COMMITTED, payload)

            if self.runtime.index >= len(self.questions):
                self.finish()
            return answered

    def answer(self, index: Optional[int]) -> Optional[AnsweredQuestion]:
        """Select and commit in one step."""
        with self._lock:
            if index is None:
                self.clear_selection()
            else:
                self.select_option(index)
            return self.commit_answer()

    def tick(self) -> None:
        """One timer step: count down and force the finish when time runs out."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS or not is_timed(self.mode):
                return
            if self.runtime.time_remaining > 0:
                self.runtime.time_remaining -= 1
            self.bus.emit(events.TICK, self.runtime.time_remaining)
            if self.runtime.time_remaining <= 0:
                logger.info("Time is up with %d questions unanswered", self.remaining_questions)
                self.finish()

    def finish(self) -> Optional[PassDecision]:
        """Score the attempt and write the final values; runs once."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS or self.ctx is None:
                return self.decision
            rule = rule_for_mode(
                self.mode,
                pass_rate=self.settings.pass_rate,
                exam_min_points=self.settings.exam_min_points,
                points_per_correct=self.settings.points_per_correct,
            )
            decision = rule.decide(self.runtime.correct, self.ctx.total_questions)
            ended_at = self.clock()
            self.runtime.ended_at = ended_at
            self.decision = decision
            self.state = SessionState.FINISHED
            if self.ctx.session_id is not None:
                self.store.finish_session(
                    self.ctx.session_id,
                    ended_at,
                    self.runtime.correct,
                    decision.points,
                    decision.passed,
                )
            summary = {
                "session_id": self.ctx.session_id,
                "total": self.ctx.total_questions,
                "correct": self.runtime.correct,
                "points": decision.points,
                "passed": decision.passed,
                "duration_seconds": self.duration_seconds,
            }
            logger.info("Quiz finished: %s", summary)
            xtrace("session_finished", summary)
            self.bus.emit(events.SESSION_FINISHED, summary)
            return decision

    def abandon(self) -> None:
        """Leave the attempt unfinished, marking the stored session as abandoned."""
        with self._lock:
            if self.state is not SessionState.IN_PROGRESS or self.ctx is None:
                return
            self.runtime.ended_at = self.clock()
            self.state = SessionState.ABANDONED
            if self.ctx.session_id is not None:
                self.store.abandon_session(self.ctx.session_id, self.runtime.ended_at)
            payload = {"session_id": self.ctx.session_id, "answered": len(self.answers)}
            xtrace("session_abandoned", payload)
            self.bus.emit(events.SESSION_ABANDONED, payload)

    # -------------------------------------------------------- presentation

    @property
    def session_id(self) -> Optional[int]:
        return self.ctx.session_id if self.ctx else None

    @property
    def title(self) -> str:
        return mode_label(self.mode)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def is_empty(self) -> bool:
        return not self.questions

    @property
    def current_index(self) -> int:
        return self.runtime.index

    @property
    def current_question(self) -> Optional[Question]:
        if self.runtime.index < len(self.questions):
            return self.questions[self.runtime.index]
        return None

    @property
    def selected_index(self) -> Optional[int]:
        return self.runtime.selected_index

    @property
    def remaining_questions(self) -> int:
        return max(0, len(self.questions) - self.runtime.index)

    @property
    def time_remaining(self) -> int:
        return self.runtime.time_remaining

    @property
    def formatted_time(self) -> str:
        m, s = divmod(max(0, self.runtime.time_remaining), 60)
        return f"{m:02d}:{s:02d}"

    @property
    def correct_answers(self) -> int:
        return self.runtime.correct

    @property
    def points(self) -> int:
        return self.runtime.correct * self.settings.points_per_correct

    @property
    def pass_rate(self) -> float:
        if not self.questions:
            return 0.0
        return self.runtime.correct / len(self.questions)

    @property
    def progress(self) -> float:
        if not self.questions:
            return 1.0
        return self.runtime.index / len(self.questions)

    @property
    def is_finished(self) -> bool:
        return self.state is SessionState.FINISHED

    @property
    def passed(self) -> bool:
        return bool(self.decision and self.decision.passed)

    @property
    def duration_seconds(self) -> int:
        if self.ctx is None or self.runtime.ended_at is None:
            return 0
        return max(0, int((self.runtime.ended_at - self.ctx.started_at).total_seconds()))
