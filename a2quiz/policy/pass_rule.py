from __future__ import annotations

"""Pass rules evaluated when a quiz session finishes."""

from dataclasses import dataclass
from typing import Protocol

from ..app.modes import Chapter, Exam, Quick10, QuizMode, ReviewWrong

PASS_RATE = 0.75
EXAM_MIN_POINTS = 45
POINTS_PER_CORRECT = 2


@dataclass(frozen=True)
class PassDecision:
    passed: bool
    rate: float
    points: int


class PassRule(Protocol):
    def decide(self, correct_answers: int, total_questions: int) -> PassDecision: ...


def compute_points(correct_answers: int, points_per_correct: int = POINTS_PER_CORRECT) -> int:
    return int(correct_answers) * int(points_per_correct)


def compute_rate(correct_answers: int, total_questions: int) -> float:
    if total_questions <= 0:
        return 0.0
    return float(correct_answers) / float(total_questions)


@dataclass(frozen=True)
class RateRule:
    """Pass when the share of correct answers reaches ``pass_rate``."""

    pass_rate: float = PASS_RATE
    points_per_correct: int = POINTS_PER_CORRECT

    def decide(self, correct_answers: int, total_questions: int) -> PassDecision:
        rate = compute_rate(correct_answers, total_questions)
        points = compute_points(correct_answers, self.points_per_correct)
        return PassDecision(passed=rate >= self.pass_rate, rate=rate, points=points)


@dataclass(frozen=True)
class ExamRule:
    """Rate threshold plus a minimum number of points."""

    pass_rate: float = PASS_RATE
    min_points: int = EXAM_MIN_POINTS
    points_per_correct: int = POINTS_PER_CORRECT

    def decide(self, correct_answers: int, total_questions: int) -> PassDecision:
        rate = compute_rate(correct_answers, total_questions)
        points = compute_points(correct_answers, self.points_per_correct)
        passed = rate >= self.pass_rate and points >= self.min_points
        return PassDecision(passed=passed, rate=rate, points=points)


def rule_for_mode(
    mode: QuizMode,
    *,
    pass_rate: float = PASS_RATE,
    exam_min_points: int = EXAM_MIN_POINTS,
    points_per_correct: int = POINTS_PER_CORRECT,
) -> PassRule:
    if isinstance(mode, Exam):
        return ExamRule(pass_rate=pass_rate, min_points=exam_min_points, points_per_correct=points_per_correct)
    if isinstance(mode, (Chapter, ReviewWrong, Quick10)):
        return RateRule(pass_rate=pass_rate, points_per_correct=points_per_correct)
    raise ValueError(f"Unknown quiz mode: {mode!r}")


def evaluate(mode: QuizMode, correct_answers: int, total_questions: int) -> PassDecision:
    """Default thresholds: 75% for every mode, plus 45 points for exams."""
    return rule_for_mode(mode).decide(correct_answers, total_questions)
