"""
Observer-facing session snapshot.

The runtime pushes one SessionSnapshot to every subscriber after each event
that changes what an observer can see. Snapshots are derived from the
controller state and never written back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from orchestrator.enums.mode import ListenMode
from orchestrator.enums.state import SessionState
from orchestrator.state_dataclass import ControllerState


_CAPTURE_STATES = frozenset({SessionState.LISTENING, SessionState.RECORDING})


@dataclass(frozen=True)
class SessionSnapshot:
    """What a presentation layer may observe about the session."""

    state: SessionState
    mode: ListenMode
    run_id: int
    transcript: str
    reply: str
    error: str | None
    error_kind: str | None
    audio_level_db: float | None

    @classmethod
    def from_state(cls, state: ControllerState) -> SessionSnapshot:
        level = state.audio_level_db if state.state in _CAPTURE_STATES else None
        return cls(
            state=state.state,
            mode=state.mode,
            run_id=state.run_id,
            transcript=state.last_transcript,
            reply=state.last_reply,
            error=state.last_error,
            error_kind=state.last_error_kind.value if state.last_error_kind else None,
            audio_level_db=level,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "type": "SESSION_SNAPSHOT",
            "state": self.state.value,
            "mode": self.mode.value,
            "run_id": self.run_id,
            "transcript": self.transcript,
            "reply": self.reply,
            "error": self.error,
            "error_kind": self.error_kind,
            "audio_level_db": self.audio_level_db,
        }
