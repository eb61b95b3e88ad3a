import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from a2quiz.app.cli import main
from a2quiz.stats.stats import StatisticsAggregator
from a2quiz.storage.store import QuizStore

from bank_fixture import make_bank


class ScriptedUI:
    def __init__(self, answers):
        self.answers = list(answers)
        self.lines = []

    def ask(self, prompt: str) -> str:
        return self.answers.pop(0) if self.answers else ""

    def inform(self, msg: str) -> None:
        self.lines.append(msg)

    def as_dict(self):
        return {"ask": self.ask, "inform": self.inform}

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        cats, qs = make_bank({1: 4, 2: 4})
        self.bank = self.tmp / "bank.json"
        self.bank.write_text(json.dumps({"categories": cats, "questions": qs}), encoding="utf-8")
        self.data = str(self.tmp / "data")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv, answers=()):
        ui = ScriptedUI(answers)
        code = main(["--data-dir", self.data, *argv], ui=ui.as_dict())
        return code, ui

    def test_import_quiz_and_review(self) -> None:
        code, ui = self._run("import-bank", str(self.bank))
        self.assertEqual(code, 0)
        self.assertIn("Imported 8 questions", ui.text)

        code, ui = self._run("quiz", "--mode", "chapter", "--chapter", "1", answers=["1"] * 4)
        self.assertEqual(code, 0)
        self.assertIn("Chapter 1: 4/4 correct, 8 points", ui.text)
        self.assertIn("PASSED", ui.text)

        code, ui = self._run("history")
        self.assertEqual(code, 0)
        self.assertIn("#1", ui.text)
        self.assertIn("Chapter 1 • 4 Questions 100% pass", ui.text)

        code, ui = self._run("session", "1")
        self.assertEqual(code, 0)
        self.assertIn("Chapter 1: 100% (4 correct, 0 wrong)", ui.text)

        code, ui = self._run("session", "7")
        self.assertEqual(code, 1)

    def test_quit_abandons(self) -> None:
        self._run("import-bank", str(self.bank))
        code, ui = self._run("quiz", "--mode", "quick10", answers=["2", "q"])
        self.assertEqual(code, 0)
        self.assertIn("Incorrect. Answer was 1. right", ui.text)
        self.assertIn("Quiz abandoned.", ui.text)
        _, ui = self._run("history")
        self.assertIn("abandoned", ui.text)

    def test_review_without_mistakes_records_nothing(self) -> None:
        self._run("import-bank", str(self.bank))
        _, ui = self._run("quiz", "--mode", "review")
        self.assertIn("No questions available", ui.text)

        store = QuizStore(Path(self.data))
        self.assertEqual(store.list_sessions(), [])
        agg = StatisticsAggregator(store, tz="UTC")
        self.assertEqual(agg.quizzes_taken(), 0)
        self.assertEqual(agg.daily_streak(datetime.now(timezone.utc).date()), 0)
        _, ui = self._run("stats")
        self.assertIn("Quizzes: 0/0 passed (0%)", ui.text)
        self.assertIn("Streak: 0 days", ui.text)

    def test_toggle_saved_during_quiz(self) -> None:
        self._run("import-bank", str(self.bank))
        _, ui = self._run("quiz", "--mode", "chapter", "--chapter", "2", answers=["f", "1", "f", "f", "1", "q"])
        self.assertEqual(ui.text.count("Saved."), 2)
        self.assertEqual(ui.text.count("Removed from saved."), 1)
        self.assertEqual(len(QuizStore(Path(self.data)).list_favorites()), 1)

    def test_chapter_browser_tabs(self) -> None:
        self._run("import-bank", str(self.bank))
        self._run("favorites", "--add", "103")
        self._run("quiz", "--mode", "chapter", "--chapter", "1", answers=["2", "q"])

        _, ui = self._run("chapter", "1", "--tab", "wrong")
        self.assertIn("[wrong]: 1 questions", ui.text)
        _, ui = self._run("chapter", "1", "--tab", "seen")
        self.assertIn("[seen]: 1 questions", ui.text)
        _, ui = self._run("chapter", "1")
        self.assertIn("[unseen]: 3 questions", ui.text)
        _, ui = self._run("chapter", "1", "--tab", "favorites")
        self.assertIn("* 103: Question 1.3? -> right", ui.text)
        code, _ = self._run("chapter", "9")
        self.assertEqual(code, 1)

    def test_trend_plot_uses_configured_pass_rate(self) -> None:
        self._run("import-bank", str(self.bank))
        cfg = self.tmp / "cfg.yml"
        cfg.write_text("quiz:\n  pass_rate: 0.6\n", encoding="utf-8")
        with mock.patch("a2quiz.app.cli.plot_exam_trend") as plot:
            code, _ = self._run("--config", str(cfg), "stats", "--plot-dir", str(self.tmp / "plots"))
        self.assertEqual(code, 0)
        self.assertEqual(plot.call_args.kwargs["pass_rate"], 0.6)

    def test_stats_with_plots_and_exports(self) -> None:
        self._run("import-bank", str(self.bank))
        self._run("quiz", "--mode", "chapter", "--chapter", "2", answers=["1", "2", "1", "1"])
        plots = self.tmp / "plots"
        code, ui = self._run("stats", "--plot-dir", str(plots))
        self.assertEqual(code, 0)
        self.assertIn("Quizzes: 1/1 passed (100%)", ui.text)
        self.assertTrue((plots / "readiness.png").exists())
        self.assertTrue((plots / "weekday_activity.png").exists())

        out = self.tmp / "sessions.ndjson"
        self._run("history", "--ndjson", str(out))
        self.assertTrue(out.exists())

    def test_favorites(self) -> None:
        self._run("import-bank", str(self.bank))
        code, ui = self._run("favorites", "--add", "101")
        self.assertEqual(code, 0)
        self.assertIn("* 101: Question 1.1?", ui.text)
        code, _ = self._run("favorites", "--add", "999")
        self.assertEqual(code, 1)
        _, ui = self._run("favorites", "--remove", "101")
        self.assertNotIn("101", ui.text)


if __name__ == "__main__":
    unittest.main()
