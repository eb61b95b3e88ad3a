from __future__ import annotations

"""SessionTimer: once-per-interval callback driving the engine's tick()."""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SessionTimer:
    """Re-arming daemon timer.

    Calls ``on_tick`` every ``interval_s`` seconds until ``should_stop`` returns
    True or :meth:`stop` is called. Ticks are counted, not measured: a slow or
    suspended process simply delivers fewer of them.
    """

    def __init__(
        self,
        on_tick: Callable[[], None],
        interval_s: float = 1.0,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.on_tick = on_tick
        self.interval_s = float(interval_s)
        self.should_stop = should_stop or (lambda: False)
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._running = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._arm()

    def _arm(self) -> None:
        self._timer = threading.Timer(self.interval_s, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            if not self._running:
                return
        try:
            self.on_tick()
        except Exception:
            logger.exception("Timer tick failed")
        with self._lock:
            self.ticks += 1
            if not self._running:
                return
            if self.should_stop():
                self._running = False
                return
            self._arm()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer:
                self._timer.cancel()
                self._timer = None


def timer_for(engine, interval_s: float = 1.0) -> SessionTimer:
    """Timer wired to a QuizSessionEngine: ticks until the session is over."""
    return SessionTimer(engine.tick, interval_s, should_stop=lambda: engine.state.value != "in_progress")
