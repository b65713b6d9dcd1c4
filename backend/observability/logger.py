"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout, or nowhere when disabled
- Enum members and paths serialize as their value / string form
- No buffering, no batching
"""

from __future__ import annotations

import json
import sys
from enum import Enum
from pathlib import PurePath
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests, swappable at startup)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()


def _discard(line: str) -> None:  # pylint: disable=unused-argument
    return None


_print: Callable[[str], None] = _stdout_print


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, PurePath):
        return str(value)
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def set_enabled(enabled: bool) -> None:
    """Route log lines to stdout, or drop them entirely."""
    global _print  # pylint: disable=global-statement
    _print = _stdout_print if enabled else _discard


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, state, etc.

    This function:
    - Serializes to JSON
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    try:
        line = json.dumps(
            event, ensure_ascii=False, separators=(",", ":"), default=_encode
        )
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
