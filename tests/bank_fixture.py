"""Small question banks and a fixed clock shared by the test modules."""

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from a2quiz.storage.store import QuizStore

T0 = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)


def make_bank(sizes: Dict[int, int]) -> Tuple[List[dict], List[dict]]:
    """Chapter ``c`` gets questions ``c*100 + 1 .. c*100 + n``; option 0 is always right."""
    categories = [{"id": c, "name": f"Chapter {c} topic"} for c in sorted(sizes)]
    questions = []
    for c, n in sorted(sizes.items()):
        for i in range(1, n + 1):
            questions.append(
                {
                    "id": c * 100 + i,
                    "category_id": c,
                    "question": f"Question {c}.{i}?",
                    "options": ["right", "wrong a", "wrong b", "wrong c"],
                    "correct_index": 0,
                }
            )
    return categories, questions


def make_store(sizes: Optional[Dict[int, int]] = None, data_dir=None) -> QuizStore:
    store = QuizStore(data_dir)
    store.import_question_bank(*make_bank(sizes or {1: 12, 2: 12, 3: 12, 4: 5}))
    return store


class FixedClock:
    """Returns ``now``; ``advance`` moves it forward."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)

    def __call__(self) -> datetime:
        return self.now
