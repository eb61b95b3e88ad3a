from __future__ import annotations

"""Quiz settings resolved from the ``quiz`` config section."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class QuizSettings:
    """Selection sizes, timing and pass thresholds for quiz sessions."""

    exam_chapters: List[int] = field(default_factory=lambda: [1, 2, 3])
    exam_per_chapter: int = 10
    exam_total: int = 30
    chapter_limit: int = 30
    quick_count: int = 10
    exam_time_limit_s: int = 30 * 60
    pass_rate: float = 0.75
    exam_min_points: int = 45
    points_per_correct: int = 2

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]]) -> "QuizSettings":
        quiz = (cfg or {}).get("quiz", {}) or {}
        d = cls()
        return cls(
            exam_chapters=[int(c) for c in quiz.get("exam_chapters", d.exam_chapters)],
            exam_per_chapter=int(quiz.get("exam_per_chapter", d.exam_per_chapter)),
            exam_total=int(quiz.get("exam_total", d.exam_total)),
            chapter_limit=int(quiz.get("chapter_limit", d.chapter_limit)),
            quick_count=int(quiz.get("quick_count", d.quick_count)),
            exam_time_limit_s=int(quiz.get("exam_time_limit_s", d.exam_time_limit_s)),
            pass_rate=float(quiz.get("pass_rate", d.pass_rate)),
            exam_min_points=int(quiz.get("exam_min_points", d.exam_min_points)),
            points_per_correct=int(quiz.get("points_per_correct", d.points_per_correct)),
        )
