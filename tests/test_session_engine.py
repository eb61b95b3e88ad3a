import random
import unittest

from a2quiz.app import events
from a2quiz.app.events import EventBus
from a2quiz.app.modes import Chapter, Exam, Quick10, ReviewWrong
from a2quiz.app.session_manager import QuizSessionEngine, SessionState
from a2quiz.app.settings import QuizSettings
from a2quiz.results.schema import SESSION_ABANDONED, SESSION_FINISHED

from bank_fixture import FixedClock, make_store


class QuizSessionEngineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = make_store()
        self.clock = FixedClock()

    def _engine(self, mode, **kwargs) -> QuizSessionEngine:
        kwargs.setdefault("rng", random.Random(11))
        return QuizSessionEngine(self.store, mode, clock=self.clock, **kwargs)

    def test_chapter_all_correct(self) -> None:
        self.store = make_store({1: 12, 2: 5, 3: 12})
        engine = self._engine(Chapter(2)).start()
        self.assertEqual(engine.state, SessionState.IN_PROGRESS)
        self.assertEqual(engine.question_count, 5)
        self.assertEqual(engine.title, "Chapter 2")

        while not engine.is_finished:
            self.clock.advance(12)
            engine.answer(engine.current_question.correct_index)

        self.assertEqual(engine.correct_answers, 5)
        self.assertEqual(engine.points, 10)
        self.assertTrue(engine.passed)
        self.assertEqual(engine.duration_seconds, 60)

        session = self.store.get_session(engine.session_id)
        self.assertEqual(session.status, SESSION_FINISHED)
        self.assertEqual(session.mode, "chapter:2")
        self.assertEqual((session.total_questions, session.correct_answers, session.points), (5, 5, 10))
        self.assertTrue(session.passed)
        self.assertEqual(session.duration_seconds, 60)

        answers = self.store.fetch_session_answers(engine.session_id)
        self.assertEqual([a.order_index for a in answers], [0, 1, 2, 3, 4])
        self.assertTrue(all(a.is_correct for a in answers))
        self.assertEqual(self.store.total_answered_count(), 5)

    def test_selection_is_tentative_until_commit(self) -> None:
        engine = self._engine(Chapter(1)).start()
        q = engine.current_question
        engine.select_option(2)
        engine.select_option(q.correct_index)
        self.assertEqual(engine.selected_index, q.correct_index)
        self.assertEqual(self.store.total_answered_count(), 0)

        engine.select_option(99)
        self.assertEqual(engine.selected_index, q.correct_index)

        answered = engine.commit_answer()
        self.assertTrue(answered.is_correct)
        self.assertIsNone(engine.selected_index)
        self.assertEqual(engine.current_index, 1)

    def test_unanswered_commit_counts_wrong(self) -> None:
        engine = self._engine(Chapter(1)).start()
        answered = engine.commit_answer()
        self.assertIsNone(answered.selected_index)
        self.assertFalse(answered.is_correct)
        stored = self.store.fetch_session_answers(engine.session_id)
        self.assertIsNone(stored[0].selected_index)
        self.assertEqual(self.store.wrong_question_ids(), [answered.question.id])

    def test_mixed_answers_fail_practice(self) -> None:
        engine = self._engine(Quick10()).start()
        for i in range(10):
            q = engine.current_question
            engine.answer(q.correct_index if i < 7 else 1)
        self.assertTrue(engine.is_finished)
        self.assertEqual(engine.correct_answers, 7)
        self.assertFalse(engine.passed)
        self.assertAlmostEqual(engine.pass_rate, 0.7)
        self.assertIsNone(engine.commit_answer())

    def test_exam_with_twenty_of_thirty_fails(self) -> None:
        engine = self._engine(Exam()).start()
        self.assertEqual(engine.question_count, 30)
        for i in range(30):
            engine.answer(engine.current_question.correct_index if i < 20 else 3)
        self.assertTrue(engine.is_finished)
        self.assertEqual((engine.correct_answers, engine.points), (20, 40))
        self.assertFalse(engine.passed)
        self.assertFalse(self.store.get_session(engine.session_id).passed)

    def test_exam_timeout_finishes_session(self) -> None:
        engine = self._engine(Exam(), settings=QuizSettings(exam_time_limit_s=3)).start()
        self.assertEqual(engine.formatted_time, "00:03")
        engine.answer(engine.current_question.correct_index)
        engine.tick()
        engine.tick()
        self.assertFalse(engine.is_finished)
        engine.tick()
        self.assertTrue(engine.is_finished)
        self.assertEqual(engine.time_remaining, 0)
        self.assertFalse(engine.passed)

        session = self.store.get_session(engine.session_id)
        self.assertEqual(session.status, SESSION_FINISHED)
        self.assertEqual((session.total_questions, session.correct_answers), (30, 1))

        engine.tick()
        self.assertEqual(self.store.get_session(engine.session_id).correct_answers, 1)

    def test_tick_ignored_for_untimed_modes(self) -> None:
        engine = self._engine(Chapter(1)).start()
        for _ in range(5):
            engine.tick()
        self.assertFalse(engine.is_finished)
        self.assertEqual(engine.time_remaining, 0)

    def test_abandon_keeps_ledger_but_marks_session(self) -> None:
        engine = self._engine(Chapter(2)).start()
        engine.answer(0)
        engine.abandon()
        self.assertEqual(engine.state, SessionState.ABANDONED)
        self.assertEqual(self.store.get_session(engine.session_id).status, SESSION_ABANDONED)
        self.assertEqual(self.store.total_answered_count(), 1)
        self.assertIsNone(engine.commit_answer())
        self.assertIsNone(engine.finish())

    def test_load_selects_without_opening_a_session(self) -> None:
        engine = self._engine(Chapter(4)).load()
        self.assertEqual(engine.state, SessionState.LOADING)
        self.assertEqual(engine.question_count, 5)
        self.assertIsNone(engine.session_id)
        self.assertEqual(self.store.list_sessions(), [])
        picked = [q.id for q in engine.questions]
        engine.start()
        self.assertEqual([q.id for q in engine.questions], picked)
        self.assertEqual(self.store.get_session(engine.session_id).total_questions, 5)

    def test_empty_selection_never_opens_a_session(self) -> None:
        engine = self._engine(ReviewWrong()).load()
        self.assertTrue(engine.is_empty)
        engine.start()
        self.assertEqual(engine.state, SessionState.LOADING)
        self.assertIsNone(engine.session_id)
        self.assertIsNone(engine.commit_answer())
        self.assertIsNone(engine.finish())
        engine.tick()
        engine.abandon()
        self.assertFalse(engine.is_finished)
        self.assertEqual(self.store.list_sessions(), [])

    def test_finish_runs_once(self) -> None:
        engine = self._engine(Chapter(1)).start()
        first = engine.finish()
        self.clock.advance(100)
        second = engine.finish()
        self.assertIs(first, second)
        self.assertEqual(engine.duration_seconds, 0)

    def test_events_are_emitted(self) -> None:
        bus = EventBus()
        seen = []
        handlers = {}
        for name in (events.SESSION_STARTED, events.ANSWER_COMMITTED, events.SESSION_FINISHED):
            handlers[name] = lambda payload, name=name: seen.append(name)
            bus.subscribe(name, handlers[name])
        engine = self._engine(Chapter(4), bus=bus).start()
        while not engine.is_finished:
            engine.answer(0)
        self.assertEqual(seen[0], events.SESSION_STARTED)
        self.assertEqual(seen.count(events.ANSWER_COMMITTED), 5)
        self.assertEqual(seen[-1], events.SESSION_FINISHED)

        bus.unsubscribe(events.SESSION_STARTED, handlers[events.SESSION_STARTED])
        self._engine(Chapter(4), bus=bus).start()
        self.assertEqual(seen.count(events.SESSION_STARTED), 1)

    def test_failing_subscriber_does_not_break_commit(self) -> None:
        bus = EventBus()

        def boom(_payload) -> None:
            raise RuntimeError("subscriber failure")

        bus.subscribe(events.ANSWER_COMMITTED, boom)
        engine = self._engine(Chapter(4), bus=bus).start()
        with self.assertLogs("a2quiz.app.events", level="ERROR"):
            engine.answer(0)
        self.assertEqual(engine.current_index, 1)


if __name__ == "__main__":
    unittest.main()
