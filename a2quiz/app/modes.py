from __future__ import annotations

"""Quiz modes as a small tagged union.

``QuizMode`` is one of ``Exam``, ``Chapter(chapter_id)``, ``ReviewWrong`` or
``Quick10``. The string tags are what the store keeps in ``quiz_session.mode``.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Exam:
    """Timed exam simulation: fixed number of questions per exam chapter."""


@dataclass(frozen=True)
class Chapter:
    """Practice on one chapter."""

    chapter_id: int


@dataclass(frozen=True)
class ReviewWrong:
    """Retry every question that was answered wrong and never right."""


@dataclass(frozen=True)
class Quick10:
    """Ten random questions from the whole bank."""


QuizMode = Union[Exam, Chapter, ReviewWrong, Quick10]

EXAM_TAG = "exam"
REVIEW_TAG = "reviewWrong"
QUICK_TAG = "quick10"
CHAPTER_PREFIX = "chapter:"


def _unknown(mode: object) -> ValueError:
    return ValueError(f"Unknown quiz mode: {mode!r}")


def serialize(mode: QuizMode) -> str:
    if isinstance(mode, Exam):
        return EXAM_TAG
    if isinstance(mode, Chapter):
        return f"{CHAPTER_PREFIX}{int(mode.chapter_id)}"
    if isinstance(mode, ReviewWrong):
        return REVIEW_TAG
    if isinstance(mode, Quick10):
        return QUICK_TAG
    raise _unknown(mode)


def parse_mode(text: str) -> QuizMode:
    t = str(text).strip()
    if t == EXAM_TAG:
        return Exam()
    if t == REVIEW_TAG:
        return ReviewWrong()
    if t == QUICK_TAG:
        return Quick10()
    if t.startswith(CHAPTER_PREFIX):
        try:
            return Chapter(int(t[len(CHAPTER_PREFIX):]))
        except ValueError:
            raise _unknown(text) from None
    raise _unknown(text)


def mode_label(mode: QuizMode) -> str:
    if isinstance(mode, Exam):
        return "Exam • Mixed"
    if isinstance(mode, Chapter):
        return f"Chapter {mode.chapter_id}"
    if isinstance(mode, ReviewWrong):
        return "Errors Retry"
    if isinstance(mode, Quick10):
        return "Quick Quiz • Mixed"
    raise _unknown(mode)


def label_for_tag(tag: str) -> str:
    """Display title for a stored mode tag; unknown tags are shown as-is."""
    try:
        return mode_label(parse_mode(tag))
    except ValueError:
        return tag


def is_timed(mode: QuizMode) -> bool:
    if isinstance(mode, Exam):
        return True
    if isinstance(mode, (Chapter, ReviewWrong, Quick10)):
        return False
    raise _unknown(mode)
