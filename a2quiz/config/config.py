from __future__ import annotations

"""Configuration loading and validation for a2quiz.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numeric ranges are sane.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

logger = logging.getLogger(__name__)

ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        cfg = _load_yaml(Path(__file__).with_name("defaults.yml"))
    return cfg


def _positive_int(section: Dict[str, Any], key: str, default: int) -> None:
    try:
        value = int(section.get(key, default))
    except (TypeError, ValueError):
        value = -1
    if value <= 0:
        logger.warning("Invalid %s=%r, using %d", key, section.get(key), default)
        value = default
    section[key] = value


def _positive_float(section: Dict[str, Any], key: str, default: float) -> None:
    try:
        value = float(section.get(key, default))
    except (TypeError, ValueError):
        value = -1.0
    if not value > 0:
        logger.warning("Invalid %s=%r, using %s", key, section.get(key), default)
        value = default
    section[key] = value


def _check_timezone(section: Dict[str, Any]) -> None:
    tz = section.get("timezone")
    if tz is None:
        return
    try:
        ZoneInfo(str(tz))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, using the local timezone", tz)
        section["timezone"] = None


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    cfg.setdefault("storage", {})
    cfg.setdefault("quiz", {})
    cfg.setdefault("stats", {})
    cfg.setdefault("logging", {})

    storage = cfg["storage"]
    quiz = cfg["quiz"]
    stats = cfg["stats"]
    log_cfg = cfg["logging"]

    storage.setdefault("data_dir", "./data")
    storage.setdefault("bank_path", None)

    quiz.setdefault("exam_chapters", [1, 2, 3])
    quiz.setdefault("pass_rate", 0.75)
    quiz.setdefault("exam_min_points", 45)
    _positive_int(quiz, "exam_time_limit_s", 30 * 60)
    _positive_int(quiz, "exam_per_chapter", 10)
    _positive_int(quiz, "exam_total", 30)
    _positive_int(quiz, "chapter_limit", 30)
    _positive_int(quiz, "quick_count", 10)
    _positive_int(quiz, "points_per_correct", 2)

    stats.setdefault("timezone", None)
    _check_timezone(stats)
    _positive_float(stats, "readiness_k", 30.0)
    _positive_int(stats, "activity_days", 28)
    _positive_int(stats, "trend_length", 10)

    log_cfg.setdefault("level", "INFO")

    # Range validations
    try:
        rate = float(quiz["pass_rate"])
    except (TypeError, ValueError):
        rate = -1.0
    if not (0.0 < rate <= 1.0):
        logger.warning("Invalid pass_rate %r, using 0.75", quiz["pass_rate"])
        rate = 0.75
    quiz["pass_rate"] = rate

    try:
        quiz["exam_min_points"] = max(0, int(quiz["exam_min_points"]))
    except (TypeError, ValueError):
        logger.warning("Invalid exam_min_points %r, using 45", quiz["exam_min_points"])
        quiz["exam_min_points"] = 45

    chapters = quiz.get("exam_chapters") or []
    try:
        quiz["exam_chapters"] = [int(c) for c in chapters]
    except (TypeError, ValueError):
        logger.warning("Invalid exam_chapters %r, using [1, 2, 3]", chapters)
        quiz["exam_chapters"] = [1, 2, 3]

    level = str(log_cfg.get("level", "INFO")).upper()
    if level not in ALLOWED_LOG_LEVELS:
        logger.warning("Unsupported logging level '%s', using 'INFO'.", level)
        level = "INFO"
    log_cfg["level"] = level

    return cfg


def default_config() -> Dict[str, Any]:
    return validate_config(load_config())
