from __future__ import annotations

"""Readiness metrics per chapter, computed column-wise."""

import numpy as np
import pandas as pd

from .config import ReadinessConfig


def compute_readiness(df: pd.DataFrame, cfg: ReadinessConfig) -> pd.DataFrame:
    """Compute accuracy, coverage, reliability and the 0-100 readiness score.

    Expects columns ``total_questions``, ``attempts`` and ``unique_correct``.
    Returns a copy with added columns:
    - accuracy, coverage, reliability, accuracy_adjusted, score (float), score_int
    """
    out = df.copy()
    attempts = out["attempts"].astype("float64")
    totals = out["total_questions"].astype("float64")
    unique = out["unique_correct"].astype("float64")

    out["accuracy"] = np.where(attempts > 0, unique / attempts.where(attempts > 0, 1.0), 0.0)
    out["coverage"] = np.where(totals > 0, unique / totals.where(totals > 0, 1.0), 0.0)

    # Reliability grows from 0 toward 1 as attempts accumulate
    out["reliability"] = 1.0 - np.exp(-attempts / float(cfg.k))
    floor = float(cfg.accuracy_floor)
    out["accuracy_adjusted"] = out["accuracy"] * (floor + (1.0 - floor) * out["reliability"])

    score = 100.0 * (
        cfg.w_accuracy * out["accuracy_adjusted"]
        + cfg.w_coverage * np.sqrt(out["coverage"].clip(lower=0))
        + cfg.w_reliability * out["reliability"]
    )
    out["score"] = score.clip(0, 100)
    out["score_int"] = np.floor(out["score"] + 0.5).astype("int64")
    return out


def weighted_exam_score(df: pd.DataFrame) -> int:
    """Average of chapter scores weighted by chapter size; 0 for an empty bank."""
    if df.empty:
        return 0
    weights = df["total_questions"].astype("float64")
    total = float(weights.sum())
    if total <= 0:
        return 0
    return int(np.floor(float((df["score"] * weights).sum()) / total + 0.5))
