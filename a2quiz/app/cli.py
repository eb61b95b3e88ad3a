from __future__ import annotations

"""Terminal front-end for a2quiz: run quizzes, browse history and stats."""

import argparse
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..analytics.plots import (
    plot_activity_grid,
    plot_chapter_readiness,
    plot_exam_trend,
    plot_weekday_activity,
)
from ..config.config import load_config, validate_config
from ..stats.stats import StatisticsAggregator, format_duration, format_summary
from ..storage.loader import load_question_bank
from ..storage.store import QUESTION_TABS, QuizStore, export_ndjson
from ..util.randomness import make_rng, seed_if_needed
from . import explain
from .modes import Chapter, Exam, Quick10, QuizMode, ReviewWrong, is_timed, label_for_tag
from .session_manager import QuizSessionEngine
from .settings import QuizSettings
from .timer import timer_for

logger = logging.getLogger(__name__)

UI = Dict[str, Callable[..., Any]]


def _build_ui() -> UI:
    def ask(prompt: str) -> str:
        return input(prompt)

    def inform(msg: str) -> None:
        print(msg)

    return {"ask": ask, "inform": inform}


def _mode_from_args(args: argparse.Namespace) -> QuizMode:
    if args.mode == "exam":
        return Exam()
    if args.mode == "quick10":
        return Quick10()
    if args.mode == "review":
        return ReviewWrong()
    if args.chapter is None:
        raise SystemExit("--chapter is required with --mode chapter")
    return Chapter(int(args.chapter))


def run_quiz(engine: QuizSessionEngine, ui: UI, *, use_timer: bool = True) -> None:
    ask, inform = ui["ask"], ui["inform"]
    engine.load()
    if engine.is_empty:
        inform("No questions available for this mode.")
        return
    engine.start()
    store = engine.store

    timer = timer_for(engine) if use_timer and is_timed(engine.mode) else None
    if timer:
        timer.start()
    try:
        while not engine.is_finished:
            q = engine.current_question
            if q is None:
                break
            header = f"Q{engine.current_index + 1}/{engine.question_count}"
            if timer:
                header += f"  [{engine.formatted_time}]"
            inform(f"\n{header}: {q.text}")
            for i, opt in enumerate(q.options, start=1):
                inform(f"  {i}. {opt}")
            mark = "saved" if store.is_favorite(q.id) else "not saved"
            ans = ask(f"Answer (number, empty to skip, 'f' to toggle saved [{mark}], 'q' to quit): ").strip().lower()
            if engine.is_finished:
                inform("Time is up.")
                break
            if ans == "q":
                engine.abandon()
                inform("Quiz abandoned.")
                return
            if ans == "f":
                saved = store.toggle_favorite(q.id)
                inform("Saved." if saved else "Removed from saved.")
                continue
            if ans.isdigit():
                engine.select_option(int(ans) - 1)
            answered = engine.commit_answer()
            if answered is None:
                continue
            if answered.is_correct:
                inform("Correct!")
            else:
                inform(f"Incorrect. Answer was {q.correct_index + 1}. {q.correct_option}")
    finally:
        if timer:
            timer.stop()

    verdict = "PASSED" if engine.passed else "FAILED"
    inform(
        f"\n{engine.title}: {engine.correct_answers}/{engine.question_count} correct, "
        f"{engine.points} points, {format_duration(engine.duration_seconds)} - {verdict}"
    )


def _cmd_stats(agg: StatisticsAggregator, ui: UI, plot_dir: Optional[str], pass_rate: float = 0.75) -> int:
    summary = agg.summary()
    ui["inform"](format_summary(summary))
    if plot_dir:
        out = Path(plot_dir)
        out.mkdir(parents=True, exist_ok=True)
        names = {c.chapter_id: c.name for c in summary.chapters}
        plot_exam_trend(summary.exam_trend, pass_rate=pass_rate, save_path=out / "exam_trend.png")
        plot_weekday_activity(summary.weekday_counts, save_path=out / "weekday_activity.png")
        plot_activity_grid(summary.last_days_activity, save_path=out / "last_days.png")
        plot_chapter_readiness(summary.readiness.per_chapter, names, save_path=out / "readiness.png")
        ui["inform"](f"Plots written to {out}")
    return 0


def _cmd_history(store: QuizStore, ui: UI, ndjson: Optional[str]) -> int:
    for s in store.list_sessions():
        verdict = "pass" if s.passed else ("fail" if s.is_finished else s.status)
        ui["inform"](
            f"#{s.id} {s.ended_at:%Y-%m-%d %H:%M} {label_for_tag(s.mode)} • {s.total_questions} Questions "
            f"{s.score_percent}% {verdict}"
        )
    if ndjson:
        export_ndjson(store.load_sessions(), Path(ndjson))
    return 0


def _cmd_session(agg: StatisticsAggregator, ui: UI, session_id: int) -> int:
    review = agg.session_review(session_id)
    if review is None:
        ui["inform"](f"Unknown session {session_id}")
        return 1
    ui["inform"](
        f"{review.title}: {review.score_percent}% ({review.correct_count} correct, "
        f"{review.wrong_count} wrong) in {review.duration_text}"
    )
    for item in review.items:
        mark = "+" if item.is_correct else "-"
        chosen = "skipped" if item.selected_index is None else item.question.options[item.selected_index]
        ui["inform"](f"{mark} {item.order_index + 1}. {item.question.text} -> {chosen}")
    return 0


def _cmd_favorites(store: QuizStore, ui: UI, add: Optional[int], remove: Optional[int]) -> int:
    if add is not None and not store.add_favorite(add):
        ui["inform"](f"Unknown question {add}")
        return 1
    if remove is not None:
        store.remove_favorite(remove)
    for q in store.fetch_questions_by_ids(sorted(store.list_favorites())):
        ui["inform"](f"* {q.id}: {q.text}")
    return 0


def _cmd_chapter(store: QuizStore, ui: UI, chapter_id: int, tab: str) -> int:
    names = {c.id: c.name for c in store.fetch_categories()}
    if chapter_id not in names:
        ui["inform"](f"Unknown chapter {chapter_id}")
        return 1
    questions = store.chapter_questions(chapter_id, tab)
    ui["inform"](f"{chapter_id}. {names[chapter_id]} [{tab}]: {len(questions)} questions")
    favorites = store.list_favorites()
    for q in questions:
        star = "*" if q.id in favorites else " "
        ui["inform"](f"{star} {q.id}: {q.text} -> {q.correct_option}")
    return 0


def main(argv: list[str] | None = None, ui: Optional[UI] = None) -> int:
    p = argparse.ArgumentParser(prog="a2quiz")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--data-dir", default=None, help="Directory holding the Parquet tables")
    p.add_argument("--explain", action="store_true", help="Trace quiz milestones")
    sub = p.add_subparsers(dest="cmd", required=True)

    ib = sub.add_parser("import-bank")
    ib.add_argument("path")

    qp = sub.add_parser("quiz")
    qp.add_argument("--mode", choices=["exam", "quick10", "review", "chapter"], default="quick10")
    qp.add_argument("--chapter", type=int, default=None)
    qp.add_argument("--no-timer", action="store_true")

    sp = sub.add_parser("stats")
    sp.add_argument("--plot-dir", default=None)

    hp = sub.add_parser("history")
    hp.add_argument("--ndjson", default=None, help="Also export sessions as NDJSON")

    dp = sub.add_parser("session")
    dp.add_argument("session_id", type=int)

    fp = sub.add_parser("favorites")
    fp.add_argument("--add", type=int, default=None)
    fp.add_argument("--remove", type=int, default=None)

    cp = sub.add_parser("chapter")
    cp.add_argument("chapter_id", type=int)
    cp.add_argument("--tab", choices=list(QUESTION_TABS), default="unseen")

    args = p.parse_args(argv)
    ui = ui or _build_ui()

    cfg = validate_config(load_config(args.config))
    logging.basicConfig(level=cfg["logging"]["level"], format="%(levelname)s %(name)s: %(message)s")
    explain.enable(args.explain)
    seed_if_needed()

    data_dir = Path(args.data_dir or cfg["storage"]["data_dir"])
    store = QuizStore(data_dir)

    if args.cmd == "import-bank":
        n = load_question_bank(store, Path(args.path))
        ui["inform"](f"Imported {n} questions into {data_dir}")
        return 0

    bank_path = cfg["storage"].get("bank_path")
    if store.total_question_count() == 0 and bank_path:
        logger.info("Question bank is empty, loading %s", bank_path)
        load_question_bank(store, Path(bank_path))

    if args.cmd == "quiz":
        engine = QuizSessionEngine(
            store,
            _mode_from_args(args),
            settings=QuizSettings.from_config(cfg),
            rng=make_rng(),
        )
        run_quiz(engine, ui, use_timer=not args.no_timer)
        return 0

    agg = StatisticsAggregator.from_config(store, cfg)
    if args.cmd == "stats":
        return _cmd_stats(agg, ui, args.plot_dir, cfg["quiz"]["pass_rate"])
    if args.cmd == "history":
        return _cmd_history(store, ui, args.ndjson)
    if args.cmd == "session":
        return _cmd_session(agg, ui, args.session_id)
    if args.cmd == "favorites":
        return _cmd_favorites(store, ui, args.add, args.remove)
    if args.cmd == "chapter":
        return _cmd_chapter(store, ui, args.chapter_id, args.tab)
    return 2
