from __future__ import annotations

"""Question bank files: JSON or YAML documents with categories and questions.

Document shape::

    categories:
      - {id: 1, name: "Meteorology"}
    questions:
      - {id: 10, category_id: 1, question: "...", options: ["a", "b"], correct_index: 0}

``text`` is accepted as an alias of ``question`` and ``correctIndex`` of
``correct_index``. A flat list of questions under a single top-level key
(one key per chapter, as in the bundled exam bank) is also accepted; each key becomes
a category.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from .store import QuizStore

_ALIASES = {"text": "question", "correctIndex": "correct_index", "categoryId": "category_id"}


def _normalize_question(raw: Dict[str, Any], category_id: int | None = None) -> Dict[str, Any]:
    q = {(_ALIASES.get(k, k)): v for k, v in raw.items()}
    if category_id is not None:
        q.setdefault("category_id", category_id)
    return q


def parse_question_bank(doc: Any) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Return (categories, questions) as plain dicts ready for validation."""
    if not isinstance(doc, dict):
        raise ValueError("Question bank must be a mapping")
    if "questions" in doc:
        categories = list(doc.get("categories") or [])
        questions = [_normalize_question(q) for q in doc.get("questions") or []]
        return categories, questions

    categories = []
    questions = []
    for cat_id, (name, items) in enumerate(doc.items(), start=1):
        if not isinstance(items, list):
            raise ValueError(f"Expected a list of questions under '{name}'")
        categories.append({"id": cat_id, "name": str(name)})
        questions.extend(_normalize_question(q, cat_id) for q in items)
    return categories, questions


def read_question_bank(path: Path) -> Any:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        if p.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f) or {}


def load_question_bank(store: QuizStore, path: Path) -> int:
    """Read a bank file and import it into ``store``; returns the number of questions."""
    categories, questions = parse_question_bank(read_question_bank(path))
    return store.import_question_bank(categories, questions)
