import unittest
from datetime import date, datetime, timezone

import pandas as pd

from a2quiz.stats import activity


class ActivityHelperTests(unittest.TestCase):
    def test_weekday_counts_start_on_sunday(self) -> None:
        days = [date(2026, 10, 18), date(2026, 10, 19), date(2026, 10, 24), date(2026, 10, 25)]
        self.assertEqual(activity.weekday_counts(days), [2, 1, 0, 0, 0, 0, 1])

    def test_last_days_window(self) -> None:
        today = date(2026, 3, 2)
        window = activity.last_days(today, 28)
        self.assertEqual(len(window), 28)
        self.assertEqual(window[-1], today)
        self.assertEqual(window[0], date(2026, 2, 3))

    def test_daily_streak_allows_today_to_be_empty(self) -> None:
        today = date(2026, 10, 18)
        days = {date(2026, 10, 17), date(2026, 10, 16), date(2026, 10, 14)}
        self.assertEqual(activity.daily_streak(days, today), 2)
        self.assertEqual(activity.run_streak(days, today), 0)
        self.assertEqual(activity.daily_streak(set(), today), 0)

    def test_missing_timezone_means_local(self) -> None:
        tz = activity.resolve_tz(None)
        self.assertIsNotNone(datetime(2026, 1, 1, tzinfo=tz).utcoffset())

    def test_local_dates(self) -> None:
        ts = pd.Series(pd.to_datetime([datetime(2026, 1, 1, 23, 0, tzinfo=timezone.utc)], utc=True))
        self.assertEqual(activity.local_dates(ts, "UTC"), [date(2026, 1, 1)])
        self.assertEqual(activity.local_dates(ts, "Europe/Berlin"), [date(2026, 1, 2)])
        self.assertEqual(activity.local_dates(pd.Series([], dtype="datetime64[ns, UTC]"), "UTC"), [])


if __name__ == "__main__":
    unittest.main()
