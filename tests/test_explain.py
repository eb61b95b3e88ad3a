import io
import random
import unittest

from a2quiz.app import explain
from a2quiz.app.modes import Chapter
from a2quiz.app.session_manager import QuizSessionEngine

from bank_fixture import FixedClock, make_store


class ExplainTraceTests(unittest.TestCase):
    def tearDown(self) -> None:
        explain.enable(False)

    def test_silent_by_default(self) -> None:
        buf = io.StringIO()
        explain.enable(False, stream=buf)
        explain.trace("session_started", {"mode": "exam"})
        self.assertEqual(buf.getvalue(), "")
        self.assertFalse(explain.enabled())

    def test_engine_milestones(self) -> None:
        buf = io.StringIO()
        explain.enable(True, stream=buf)
        engine = QuizSessionEngine(make_store({1: 2}), Chapter(1), rng=random.Random(1), clock=FixedClock()).start()
        engine.answer(0)
        engine.answer(0)
        lines = buf.getvalue().splitlines()
        self.assertEqual(len(lines), 4)
        self.assertTrue(all(line.startswith("[EXPLAIN] +00:00 ") for line in lines))
        self.assertIn("session_started :: ", lines[0])
        self.assertIn('"mode":"chapter:1"', lines[0])
        self.assertIn("session_finished", lines[-1])


if __name__ == "__main__":
    unittest.main()
