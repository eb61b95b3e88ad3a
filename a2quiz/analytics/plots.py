from __future__ import annotations

"""Matplotlib plots for exam trend, weekday activity and chapter readiness."""

import os
from typing import Dict, List, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from ..results.schema import ExamTrendSlot

WEEKDAY_LABELS = ["S", "M", "T", "W", "T", "F", "S"]


def plot_exam_trend(
    slots: Sequence[ExamTrendSlot],
    *,
    pass_rate: float = 0.75,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    if not slots:
        return
    x = np.arange(len(slots))
    ratios = [s.correct_answers / s.total_questions if s.total_questions else 0.0 for s in slots]
    colors = ["lightgray" if s.is_placeholder else ("tab:green" if r >= pass_rate else "tab:red") for s, r in zip(slots, ratios)]
    plt.figure()
    plt.bar(x, ratios, color=colors)
    plt.axhline(pass_rate, linestyle="--", linewidth=1, color="black", label=f"pass {int(pass_rate * 100)}%")
    plt.xticks(ticks=x, labels=[s.label for s in slots], rotation=45)
    plt.ylim(0, 1)
    plt.ylabel("correct / total")
    plt.title("All Exam Results")
    plt.legend()
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()


def plot_weekday_activity(
    counts: Sequence[int],
    *,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    if len(counts) != 7:
        return
    plt.figure()
    plt.bar(np.arange(7), list(counts), color="tab:blue")
    plt.xticks(ticks=np.arange(7), labels=WEEKDAY_LABELS)
    plt.ylabel("Quizzes Completed")
    plt.title("Daily Quiz Activity")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()


def plot_activity_grid(
    flags: List[bool],
    *,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    """Last days as a week-by-week grid (7 columns), oldest top-left."""
    if not flags or len(flags) % 7:
        return
    M = np.array(flags, dtype="float32").reshape(-1, 7)
    plt.figure()
    plt.imshow(M, aspect="equal", cmap="Oranges", vmin=0, vmax=1)
    plt.xticks([])
    plt.yticks([])
    plt.title("Monthly Streak")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()


def plot_chapter_readiness(
    per_chapter: Dict[int, int],
    names: Optional[Dict[int, str]] = None,
    *,
    save_path: Optional[str | bytes | "os.PathLike[str]"] = None,
) -> None:
    if not per_chapter:
        return
    names = names or {}
    ids = sorted(per_chapter)
    plt.figure()
    plt.barh(np.arange(len(ids)), [per_chapter[i] for i in ids], color="tab:blue")
    plt.yticks(ticks=np.arange(len(ids)), labels=[names.get(i, f"Chapter {i}") for i in ids])
    plt.xlim(0, 100)
    plt.xlabel("Readiness")
    plt.title("Chapter Readiness")
    if save_path:
        plt.savefig(save_path, bbox_inches="tight", dpi=150)
    plt.close()
