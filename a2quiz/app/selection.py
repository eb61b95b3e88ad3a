from __future__ import annotations

"""Question selection per quiz mode."""

import logging
import random
from typing import List, Optional

from ..results.schema import Question
from ..storage.store import QuizStore
from .modes import Chapter, Exam, Quick10, QuizMode, ReviewWrong
from .settings import QuizSettings

logger = logging.getLogger(__name__)


def select_exam(store: QuizStore, rng: random.Random, settings: QuizSettings) -> List[Question]:
    """Fixed share per exam chapter, shuffled; topped up from any chapter when short."""
    picked: List[Question] = []
    for chapter_id in settings.exam_chapters:
        picked.extend(store.fetch_questions(chapter_id=chapter_id, limit=settings.exam_per_chapter, rng=rng))
    if len(picked) < settings.exam_total:
        missing = settings.exam_total - len(picked)
        logger.info("Exam selection short by %d questions, filling from the whole bank", missing)
        picked.extend(store.fetch_questions(limit=missing, rng=rng, exclude=[q.id for q in picked]))
    rng.shuffle(picked)
    return picked[: settings.exam_total]


def select_review_wrong(store: QuizStore, rng: random.Random) -> List[Question]:
    ids = store.wrong_question_ids()
    questions = store.fetch_questions_by_ids(ids)
    rng.shuffle(questions)
    return questions


def select_questions(
    store: QuizStore,
    mode: QuizMode,
    rng: Optional[random.Random] = None,
    settings: Optional[QuizSettings] = None,
) -> List[Question]:
    rng = rng or random.Random()
    settings = settings or QuizSettings()
    if isinstance(mode, Exam):
        return select_exam(store, rng, settings)
    if isinstance(mode, Chapter):
        return store.fetch_questions(chapter_id=mode.chapter_id, limit=settings.chapter_limit, rng=rng)
    if isinstance(mode, Quick10):
        return store.fetch_questions(limit=settings.quick_count, rng=rng)
    if isinstance(mode, ReviewWrong):
        return select_review_wrong(store, rng)
    raise ValueError(f"Unknown quiz mode: {mode!r}")
