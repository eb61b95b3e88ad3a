from __future__ import annotations

"""Calendar helpers: local days, streaks, weekday buckets, recent activity."""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, List, Optional, Set, Union
from zoneinfo import ZoneInfo

import pandas as pd

TzLike = Union[str, tzinfo, None]


def resolve_tz(tz: TzLike) -> tzinfo:
    """``None`` means the machine's local timezone."""
    if tz is None:
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    if isinstance(tz, str):
        return ZoneInfo(tz)
    return tz


def local_dates(timestamps: pd.Series, tz: TzLike = None) -> List[date]:
    """Calendar dates of UTC timestamps in ``tz``."""
    if timestamps.empty:
        return []
    ts = pd.to_datetime(timestamps, utc=True).dt.tz_convert(resolve_tz(tz))
    return [d for d in ts.dt.date if not pd.isna(d)]


def today_in(tz: TzLike = None) -> date:
    return datetime.now(resolve_tz(tz)).date()


def daily_streak(days: Set[date], today: date) -> int:
    """Consecutive active days walking back from today (or yesterday if today is empty)."""
    if not days:
        return 0
    day = today if today in days else today - timedelta(days=1)
    streak = 0
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def run_streak(days: Set[date], today: date) -> int:
    """Consecutive active days ending exactly today; 0 when today has no activity."""
    streak = 0
    day = today
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def weekday_counts(dates: Iterable[date]) -> List[int]:
    """Seven buckets, Sunday first."""
    counts = [0] * 7
    for d in dates:
        counts[(d.weekday() + 1) % 7] += 1
    return counts


def last_days(today: date, days: int = 28) -> List[date]:
    """The last ``days`` calendar days, oldest first, ending today."""
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def activity_flags(active: Set[date], today: date, days: int = 28, window: Optional[List[date]] = None) -> List[bool]:
    window = window or last_days(today, days)
    return [d in active for d in window]
