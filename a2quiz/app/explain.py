from __future__ import annotations

"""Explain Mode: one terse line per quiz milestone.

Turned on with the CLI ``--explain`` flag. Lines look like
``[EXPLAIN] +00:12 answer_committed :: {"index":3,"correct":true}`` where the
offset counts from the moment tracing was enabled.
"""

import json
import sys
import time
from typing import Any, Dict, Optional, TextIO

_state: Dict[str, Any] = {"on": False, "since": 0.0, "out": None}


def enable(flag: bool = True, stream: Optional[TextIO] = None) -> None:
    _state["on"] = bool(flag)
    _state["since"] = time.monotonic()
    _state["out"] = stream


def enabled() -> bool:
    return bool(_state["on"])


def _offset() -> str:
    m, s = divmod(int(time.monotonic() - _state["since"]), 60)
    return f"+{m:02d}:{s:02d}"


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _state["on"]:
        return
    out = _state["out"] or sys.stdout
    body = json.dumps(payload or {}, separators=(",", ":"), default=str, sort_keys=True)
    print(f"[EXPLAIN] {_offset()} {event} :: {body}", file=out)
