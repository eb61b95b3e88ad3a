from __future__ import annotations

"""Tiny pub/sub event bus between the quiz engine and a front-end."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

SESSION_STARTED = "session_started"
ANSWER_COMMITTED = "answer_committed"
TICK = "tick"
SESSION_FINISHED = "session_finished"
SESSION_ABANDONED = "session_abandoned"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                # A failing subscriber must not break the quiz
                logger.exception("Event handler for %s failed", event)
