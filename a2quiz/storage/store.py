from __future__ import annotations

"""Parquet-backed quiz store using pandas + pyarrow.

One Parquet file per table (question bank, answer ledger, quiz sessions,
per-session answers, favorites). Tables are held in memory and written back
after every write, or once per `batch()` block. All access goes through a
single re-entrant lock so reads and writes never interleave.

Failures are logged and degrade to empty/zero results; nothing is retried.
"""

import logging
import random
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import pandas as pd

from ..results.schema import (
    SESSION_ABANDONED,
    SESSION_FINISHED,
    SESSION_IN_PROGRESS,
    SESSION_STATUSES,
    AnsweredEvent,
    Category,
    Question,
    QuizSession,
    QuizSessionAnswer,
)
from .schema import (
    ANSWERS_TABLE,
    CATEGORIES_TABLE,
    DTYPES,
    FAVORITES_TABLE,
    QUESTIONS_TABLE,
    SESSION_ANSWERS_TABLE,
    SESSIONS_TABLE,
    TABLES,
    AnswerEventRow,
    CategoryRow,
    QuestionRow,
    SessionAnswerRow,
    SessionRow,
)

logger = logging.getLogger(__name__)

# (total_answers, unique_correct_questions, total_wrong_answers)
ChapterAnswerStats = Tuple[int, int, int]

QUESTION_TABS = ("unseen", "seen", "favorites", "wrong")


def table_path(data_dir: Path, table: str) -> Path:
    return Path(data_dir) / f"{table}.parquet"


def _empty_df(table: str) -> pd.DataFrame:
    return pd.DataFrame({k: pd.Series(dtype=v) for k, v in DTYPES[table].items()})


def _fix_dtypes(df: pd.DataFrame, table: str) -> pd.DataFrame:
    dtypes = DTYPES[table]
    for col, dt in dtypes.items():
        if col not in df.columns:
            df[col] = pd.Series([None] * len(df), index=df.index, dtype="object")
        if isinstance(dt, pd.DatetimeTZDtype):
            df[col] = pd.to_datetime(df[col], utc=True)
        elif dt != "object":
            df[col] = df[col].astype(dt)
    return df[list(dtypes.keys())]


def _concat(old: pd.DataFrame, new: pd.DataFrame, table: str) -> pd.DataFrame:
    new = _fix_dtypes(new.copy(), table)
    if old.empty:
        return new.reset_index(drop=True)
    return pd.concat([old, new], ignore_index=True)


def _next_id(df: pd.DataFrame) -> int:
    if df.empty:
        return 1
    return int(df["id"].max()) + 1


def _ts(value: Any) -> datetime:
    return pd.Timestamp(value).to_pydatetime()


def init_store(data_dir: Path) -> None:
    """Ensure the data directory and empty Parquet files with correct schema exist."""
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)
    for table in TABLES:
        f = table_path(data_dir, table)
        if not f.exists():
            _empty_df(table).to_parquet(f, engine="pyarrow", compression="zstd", index=False)


def export_ndjson(df: pd.DataFrame, out_path: Path) -> None:
    """Export a DataFrame to line-delimited JSON (NDJSON) for quick inspection."""
    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    df.to_json(out_path, orient="records", lines=True, date_format="iso")


class QuizStore:
    """Embedded storage service handed to the quiz engine and the statistics layer.

    With ``data_dir=None`` the tables live in memory only.
    """

    def __init__(self, data_dir: Optional[Path] = None) -> None:
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self._lock = threading.RLock()
        self._staged: Optional[Set[str]] = None
        self._batch_failed = False
        self._frames: Dict[str, pd.DataFrame] = {}
        if self.data_dir is not None:
            try:
                init_store(self.data_dir)
            except Exception as e:
                logger.error("Unable to initialise store at %s: %s", self.data_dir, e)
        for table in TABLES:
            self._frames[table] = self._load(table)

    # ------------------------------------------------------------------ io

    def _load(self, table: str) -> pd.DataFrame:
        if self.data_dir is None:
            return _empty_df(table)
        f = table_path(self.data_dir, table)
        if not f.exists():
            return _empty_df(table)
        try:
            df = pd.read_parquet(f, engine="pyarrow")
            return _fix_dtypes(df, table)
        except Exception as e:
            logger.error("Error reading table %s from %s: %s", table, f, e)
            return _empty_df(table)

    def _persist(self, table: str) -> None:
        if self.data_dir is None:
            return
        f = table_path(self.data_dir, table)
        try:
            self._frames[table].to_parquet(f, engine="pyarrow", compression="zstd", index=False)
        except Exception as e:
            logger.error("Error writing table %s to %s: %s", table, f, e)

    def _put(self, table: str, df: pd.DataFrame) -> None:
        self._frames[table] = df
        if self._staged is not None:
            self._staged.add(table)
        else:
            self._persist(table)

    def _reject(self, msg: str, *args: Any) -> bool:
        logger.warning(msg, *args)
        if self._staged is not None:
            self._batch_failed = True
        return False

    @contextmanager
    def batch(self) -> Iterator["QuizStore"]:
        """Group writes into one unit: flushed together, or discarded if any write fails."""
        with self._lock:
            outer = self._staged is None
            if not outer:
                yield self
                return
            snapshot = dict(self._frames)
            self._staged = set()
            self._batch_failed = False
            try:
                yield self
            except Exception:
                self._frames = snapshot
                self._staged = None
                self._batch_failed = False
                raise
            staged, failed = self._staged, self._batch_failed
            self._staged = None
            self._batch_failed = False
            if failed:
                logger.warning("Discarding batch of writes to %s after a failed write", sorted(staged))
                self._frames = snapshot
                return
            for table in sorted(staged):
                self._persist(table)

    # ------------------------------------------------------------- bank

    def import_question_bank(
        self,
        categories: Iterable[Any],
        questions: Iterable[Any],
    ) -> int:
        """Replace the question bank with validated categories and questions.

        Raises ValueError when a row is invalid, an id repeats, or a question
        points at an unknown category.
        """
        cat_rows = [CategoryRow.model_validate(c) if not isinstance(c, CategoryRow) else c for c in categories]
        q_rows = []
        for i, q in enumerate(questions):
            try:
                q_rows.append(QuestionRow.model_validate(q) if not isinstance(q, QuestionRow) else q)
            except Exception as e:
                raise ValueError(f"Invalid question at position {i}: {e}") from e

        cat_ids = [c.id for c in cat_rows]
        if len(set(cat_ids)) != len(cat_ids):
            raise ValueError("Duplicate category id in question bank")
        q_ids = [q.id for q in q_rows]
        if len(set(q_ids)) != len(q_ids):
            raise ValueError("Duplicate question id in question bank")
        unknown = sorted({q.category_id for q in q_rows} - set(cat_ids))
        if unknown:
            raise ValueError(f"Questions reference unknown categories: {unknown}")

        cats = _fix_dtypes(pd.DataFrame([c.model_dump() for c in cat_rows]), CATEGORIES_TABLE) if cat_rows else _empty_df(CATEGORIES_TABLE)
        qs = _fix_dtypes(pd.DataFrame([q.model_dump() for q in q_rows]), QUESTIONS_TABLE) if q_rows else _empty_df(QUESTIONS_TABLE)
        with self.batch():
            self._put(CATEGORIES_TABLE, cats.sort_values("id").reset_index(drop=True))
            self._put(QUESTIONS_TABLE, qs.sort_values("id").reset_index(drop=True))
        logger.info("Imported question bank: %d categories, %d questions", len(cat_rows), len(q_rows))
        return len(q_rows)

    @staticmethod
    def _row_to_question(row: Any) -> Question:
        return Question(
            id=int(row.id),
            text=str(row.question),
            options=tuple(str(o) for o in row.options),
            correct_index=int(row.correct_index),
            category_id=int(row.category_id),
        )

    def total_question_count(self) -> int:
        with self._lock:
            return int(len(self._frames[QUESTIONS_TABLE]))

    def fetch_categories(self) -> List[Category]:
        with self._lock:
            try:
                df = self._frames[CATEGORIES_TABLE].sort_values("id")
                return [Category(id=int(r.id), name=str(r.name)) for r in df.itertuples(index=False)]
            except Exception as e:
                logger.error("Error fetching categories: %s", e)
                return []

    def fetch_questions(
        self,
        chapter_id: Optional[int] = None,
        limit: Optional[int] = None,
        rng: Optional[random.Random] = None,
        exclude: Optional[Iterable[int]] = None,
    ) -> List[Question]:
        """Random selection of questions, optionally from one chapter and/or capped."""
        rng = rng or random.Random()
        with self._lock:
            try:
                df = self._frames[QUESTIONS_TABLE]
                if chapter_id is not None:
                    df = df[df["category_id"] == int(chapter_id)]
                if exclude:
                    df = df[~df["id"].isin([int(i) for i in exclude])]
                rows = list(df.itertuples(index=False))
                rng.shuffle(rows)
                if limit is not None:
                    rows = rows[: max(0, int(limit))]
                return [self._row_to_question(r) for r in rows]
            except Exception as e:
                logger.error("Error fetching questions (chapter=%s, limit=%s): %s", chapter_id, limit, e)
                return []

    def fetch_questions_by_ids(self, ids: Iterable[int]) -> List[Question]:
        ids = [int(i) for i in ids]
        if not ids:
            return []
        with self._lock:
            try:
                df = self._frames[QUESTIONS_TABLE]
                df = df[df["id"].isin(ids)].sort_values("id")
                return [self._row_to_question(r) for r in df.itertuples(index=False)]
            except Exception as e:
                logger.error("Error fetching questions by ids: %s", e)
                return []

    def chapter_for_question(self, question_id: int) -> Optional[int]:
        with self._lock:
            df = self._frames[QUESTIONS_TABLE]
            hit = df.loc[df["id"] == int(question_id), "category_id"]
            if hit.empty or pd.isna(hit.iloc[0]):
                return None
            return int(hit.iloc[0])

    def _question_exists(self, question_id: int) -> bool:
        return bool((self._frames[QUESTIONS_TABLE]["id"] == int(question_id)).any())

    def total_questions_per_category(self) -> Dict[int, int]:
        with self._lock:
            try:
                counts = self._frames[QUESTIONS_TABLE].groupby("category_id").size()
                return {int(k): int(v) for k, v in counts.items()}
            except Exception as e:
                logger.error("Error counting questions per category: %s", e)
                return {}

    # ------------------------------------------------------------ ledger

    def record_answer_event(
        self,
        question_id: int,
        chapter_id: Optional[int],
        is_correct: bool,
        at: Optional[datetime] = None,
    ) -> bool:
        """Append one answer to the ledger; the chapter is looked up when not given."""
        at = at or datetime.now(timezone.utc)
        with self._lock:
            if not self._question_exists(question_id):
                return self._reject("Skipping answer for unknown question %s", question_id)
            if chapter_id is None:
                chapter_id = self.chapter_for_question(question_id)
                if chapter_id is None:
                    return self._reject("Skipping answer for question %s: no chapter found", question_id)
            try:
                df = self._frames[ANSWERS_TABLE]
                row = AnswerEventRow(
                    id=_next_id(df),
                    question_id=int(question_id),
                    chapter_id=int(chapter_id),
                    is_correct=bool(is_correct),
                    answered_at=at,
                )
                self._put(ANSWERS_TABLE, _concat(df, pd.DataFrame([row.model_dump()]), ANSWERS_TABLE))
                return True
            except Exception as e:
                logger.error("Error recording answer for question %s: %s", question_id, e)
                if self._staged is not None:
                    self._batch_failed = True
                return False

    def load_answer_events(self) -> pd.DataFrame:
        with self._lock:
            return self._frames[ANSWERS_TABLE].copy()

    def list_answer_events(self, question_id: Optional[int] = None) -> List[AnsweredEvent]:
        """Ledger rows in insertion order, optionally for one question."""
        with self._lock:
            df = self._frames[ANSWERS_TABLE]
            if question_id is not None:
                df = df[df["question_id"] == int(question_id)]
            return [
                AnsweredEvent(
                    id=int(r.id),
                    question_id=int(r.question_id),
                    chapter_id=int(r.chapter_id),
                    is_correct=bool(r.is_correct),
                    answered_at=_ts(r.answered_at),
                )
                for r in df.sort_values("id").itertuples(index=False)
            ]

    def total_answered_count(self) -> int:
        with self._lock:
            return int(len(self._frames[ANSWERS_TABLE]))

    def answered_counts_per_chapter(self) -> Dict[int, int]:
        with self._lock:
            try:
                counts = self._frames[ANSWERS_TABLE].groupby("chapter_id").size()
                return {int(k): int(v) for k, v in counts.items()}
            except Exception as e:
                logger.error("Error counting answers per chapter: %s", e)
                return {}

    def answered_stats_per_category(self) -> Dict[int, ChapterAnswerStats]:
        """Per chapter: (total answers, distinct questions ever correct, wrong answers)."""
        with self._lock:
            try:
                ans = self._frames[ANSWERS_TABLE]
                if ans.empty:
                    return {}
                flags = ans["is_correct"].astype(bool)
                total = ans.groupby("chapter_id").size()
                unique_correct = ans[flags].groupby("chapter_id")["question_id"].nunique()
                wrong = ans[~flags].groupby("chapter_id").size()
            except Exception as e:
                logger.error("Error aggregating answer stats: %s", e)
                return {}
        out: Dict[int, ChapterAnswerStats] = {}
        for key in set(total.index) | set(unique_correct.index) | set(wrong.index):
            out[int(key)] = (
                int(total.get(key, 0)),
                int(unique_correct.get(key, 0)),
                int(wrong.get(key, 0)),
            )
        return out

    def _per_question_flags(self) -> pd.DataFrame:
        ans = self._frames[ANSWERS_TABLE]
        flags = ans["is_correct"].astype(bool)
        g = pd.DataFrame(
            {
                "question_id": ans["question_id"].astype("int64"),
                "correct": flags.astype("int64"),
                "wrong": (~flags).astype("int64"),
            }
        )
        return g.groupby("question_id")[["correct", "wrong"]].sum()

    def wrong_question_ids(self) -> List[int]:
        """Questions answered wrong at least once and never answered correctly."""
        with self._lock:
            try:
                g = self._per_question_flags()
                ids = g[(g["correct"] == 0) & (g["wrong"] > 0)].index
                return sorted(int(i) for i in ids)
            except Exception as e:
                logger.error("Error fetching wrong question ids: %s", e)
                return []

    def seen_question_ids(self, question_ids: Iterable[int]) -> Set[int]:
        wanted = {int(i) for i in question_ids}
        if not wanted:
            return set()
        with self._lock:
            seen = self._frames[ANSWERS_TABLE]["question_id"]
            return {int(i) for i in seen[seen.isin(wanted)].unique()}

    def wrong_question_ids_among(self, question_ids: Iterable[int]) -> Set[int]:
        """Questions among ``question_ids`` answered wrong at least once."""
        wanted = {int(i) for i in question_ids}
        if not wanted:
            return set()
        with self._lock:
            ans = self._frames[ANSWERS_TABLE]
            wrong = ans.loc[~ans["is_correct"].astype(bool), "question_id"]
            return {int(i) for i in wrong[wrong.isin(wanted)].unique()}

    # ---------------------------------------------------------- sessions

    def start_session(self, mode: str, total_questions: int, started_at: Optional[datetime] = None) -> Optional[int]:
        """Insert a placeholder session row and return its id (None on failure)."""
        started_at = started_at or datetime.now(timezone.utc)
        with self._lock:
            try:
                df = self._frames[SESSIONS_TABLE]
                row = SessionRow(
                    id=_next_id(df),
                    mode=str(mode),
                    started_at=started_at,
                    ended_at=started_at,
                    duration_seconds=0,
                    total_questions=int(total_questions),
                    correct_answers=0,
                    points=0,
                    passed=False,
                    status=SESSION_IN_PROGRESS,
                )
                self._put(SESSIONS_TABLE, _concat(df, pd.DataFrame([row.model_dump()]), SESSIONS_TABLE))
                logger.debug("Started session %d (%s, %d questions)", row.id, mode, total_questions)
                return row.id
            except Exception as e:
                logger.error("Error starting session (%s): %s", mode, e)
                return None

    def _session_mask(self, session_id: int) -> pd.Series:
        df = self._frames[SESSIONS_TABLE]
        return df["id"] == int(session_id)

    def _session_status(self, session_id: int) -> Optional[str]:
        df = self._frames[SESSIONS_TABLE]
        hit = df.loc[self._session_mask(session_id), "status"]
        return None if hit.empty else str(hit.iloc[0])

    def append_session_answer(
        self,
        session_id: int,
        order_index: int,
        question_id: int,
        selected_index: Optional[int],
        is_correct: bool,
    ) -> bool:
        with self._lock:
            if self._session_status(session_id) is None:
                return self._reject("Skipping answer for unknown session %s", session_id)
            if not self._question_exists(question_id):
                return self._reject("Skipping session answer for unknown question %s", question_id)
            try:
                df = self._frames[SESSION_ANSWERS_TABLE]
                row = SessionAnswerRow(
                    id=_next_id(df),
                    session_id=int(session_id),
                    order_index=int(order_index),
                    question_id=int(question_id),
                    selected_index=selected_index,
                    is_correct=bool(is_correct),
                )
                self._put(SESSION_ANSWERS_TABLE, _concat(df, pd.DataFrame([row.model_dump()]), SESSION_ANSWERS_TABLE))
                return True
            except Exception as e:
                logger.error("Error appending answer %s to session %s: %s", order_index, session_id, e)
                if self._staged is not None:
                    self._batch_failed = True
                return False

    def _close_session(self, session_id: int, ended_at: datetime, values: Dict[str, Any]) -> bool:
        status = self._session_status(session_id)
        if status is None:
            return self._reject("Cannot close unknown session %s", session_id)
        if status != SESSION_IN_PROGRESS:
            return self._reject("Session %s is already %s", session_id, status)
        df = self._frames[SESSIONS_TABLE].copy()
        mask = self._session_mask(session_id)
        started = _ts(df.loc[mask, "started_at"].iloc[0])
        ended = pd.Timestamp(ended_at)
        ended = ended.tz_localize("UTC") if ended.tzinfo is None else ended.tz_convert("UTC")
        df.loc[mask, "ended_at"] = ended
        df.loc[mask, "duration_seconds"] = max(0, int((ended.to_pydatetime() - started).total_seconds()))
        for col, val in values.items():
            df.loc[mask, col] = val
        self._put(SESSIONS_TABLE, _fix_dtypes(df, SESSIONS_TABLE))
        return True

    def finish_session(
        self,
        session_id: int,
        ended_at: datetime,
        correct_answers: int,
        points: int,
        passed: bool,
    ) -> bool:
        """Write final values into an in-progress session (once)."""
        with self._lock:
            try:
                ok = self._close_session(
                    session_id,
                    ended_at,
                    {
                        "correct_answers": int(correct_answers),
                        "points": int(points),
                        "passed": bool(passed),
                        "status": SESSION_FINISHED,
                    },
                )
                if ok:
                    logger.debug("Finished session %s: %d correct, passed=%s", session_id, correct_answers, passed)
                return ok
            except Exception as e:
                logger.error("Error finishing session %s: %s", session_id, e)
                return False

    def abandon_session(self, session_id: int, ended_at: Optional[datetime] = None) -> bool:
        with self._lock:
            try:
                return self._close_session(
                    session_id,
                    ended_at or datetime.now(timezone.utc),
                    {"status": SESSION_ABANDONED},
                )
            except Exception as e:
                logger.error("Error abandoning session %s: %s", session_id, e)
                return False

    @staticmethod
    def _row_to_session(r: Any) -> QuizSession:
        return QuizSession(
            id=int(r.id),
            mode=str(r.mode),
            started_at=_ts(r.started_at),
            ended_at=_ts(r.ended_at),
            duration_seconds=int(r.duration_seconds),
            total_questions=int(r.total_questions),
            correct_answers=int(r.correct_answers),
            points=int(r.points),
            passed=bool(r.passed),
            status=str(r.status),
        )

    def list_sessions(self, status: Optional[str] = None) -> List[QuizSession]:
        """All sessions, newest first."""
        if status is not None and status not in SESSION_STATUSES:
            raise ValueError(f"Unknown session status: {status!r}")
        with self._lock:
            try:
                df = self._frames[SESSIONS_TABLE]
                if status is not None:
                    df = df[df["status"] == status]
                df = df.sort_values("id", ascending=False)
                return [self._row_to_session(r) for r in df.itertuples(index=False)]
            except Exception as e:
                logger.error("Error listing sessions: %s", e)
                return []

    def get_session(self, session_id: int) -> Optional[QuizSession]:
        with self._lock:
            df = self._frames[SESSIONS_TABLE]
            hit = df[self._session_mask(session_id)]
            if hit.empty:
                return None
            return self._row_to_session(next(hit.itertuples(index=False)))

    def load_sessions(self) -> pd.DataFrame:
        with self._lock:
            return self._frames[SESSIONS_TABLE].copy()

    def fetch_session_answers(self, session_id: int) -> List[QuizSessionAnswer]:
        with self._lock:
            try:
                df = self._frames[SESSION_ANSWERS_TABLE]
                df = df[df["session_id"] == int(session_id)].sort_values("order_index")
                return [
                    QuizSessionAnswer(
                        id=int(r.id),
                        session_id=int(r.session_id),
                        order_index=int(r.order_index),
                        question_id=int(r.question_id),
                        selected_index=None if pd.isna(r.selected_index) else int(r.selected_index),
                        is_correct=bool(r.is_correct),
                    )
                    for r in df.itertuples(index=False)
                ]
            except Exception as e:
                logger.error("Error fetching answers of session %s: %s", session_id, e)
                return []

    # --------------------------------------------------------- favorites

    def list_favorites(self) -> Set[int]:
        with self._lock:
            return {int(i) for i in self._frames[FAVORITES_TABLE]["question_id"]}

    def is_favorite(self, question_id: int) -> bool:
        return int(question_id) in self.list_favorites()

    def add_favorite(self, question_id: int) -> bool:
        with self._lock:
            if not self._question_exists(question_id):
                return self._reject("Cannot favorite unknown question %s", question_id)
            if self.is_favorite(question_id):
                return True
            df = self._frames[FAVORITES_TABLE]
            self._put(FAVORITES_TABLE, _concat(df, pd.DataFrame([{"question_id": int(question_id)}]), FAVORITES_TABLE))
            return True

    def remove_favorite(self, question_id: int) -> bool:
        with self._lock:
            df = self._frames[FAVORITES_TABLE]
            mask = df["question_id"] == int(question_id)
            if not mask.any():
                return False
            self._put(FAVORITES_TABLE, df[~mask].reset_index(drop=True))
            return True

    def toggle_favorite(self, question_id: int) -> bool:
        """Flip the mark; returns whether the question is now a favorite."""
        with self._lock:
            if self.is_favorite(question_id):
                self.remove_favorite(question_id)
                return False
            return self.add_favorite(question_id)

    # ---------------------------------------------------------- browsing

    def chapter_questions(self, chapter_id: int, tab: str = "unseen") -> List[Question]:
        """Questions of one chapter, ordered by id, filtered by browser tab.

        ``unseen``/``seen``: never answered / answered at least once;
        ``favorites``: marked by the user; ``wrong``: answered wrong at least once.
        """
        if tab not in QUESTION_TABS:
            raise ValueError(f"Unknown question tab: {tab!r}")
        with self._lock:
            df = self._frames[QUESTIONS_TABLE]
            df = df[df["category_id"] == int(chapter_id)].sort_values("id")
            questions = [self._row_to_question(r) for r in df.itertuples(index=False)]
            ids = [q.id for q in questions]
            if tab == "favorites":
                keep = self.list_favorites()
            elif tab == "wrong":
                keep = self.wrong_question_ids_among(ids)
            else:
                seen = self.seen_question_ids(ids)
                keep = seen if tab == "seen" else set(ids) - seen
            return [q for q in questions if q.id in keep]
