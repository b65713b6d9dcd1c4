"""
Authoritative session controller state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from audio.vad import VadConfig, VadSession
from orchestrator.enums.mode import ListenMode
from orchestrator.enums.service import ErrorKind
from orchestrator.enums.state import SessionState


@dataclass(frozen=True)
class ControllerState:
    """Immutable snapshot of all controller-owned state."""

    # ------------------------------------------------------------------
    # Control state
    # ------------------------------------------------------------------
    state: SessionState = SessionState.IDLE
    mode: ListenMode = ListenMode.PUSH_TO_TALK

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    # Monotonic id of the current capture / utterance. 0 = none yet.
    # Bumped ONLY when a new capture starts; never reused.
    run_id: int = 0

    # True while the runtime holds a live capture handle for run_id.
    capture_live: bool = False

    # True when the VAD decides utterance boundaries (always-listening
    # capture). False for manual push-to-talk recordings.
    vad_armed: bool = False

    # Set when a stop arrives mid-pipeline; the resolver then returns to
    # IDLE instead of re-arming. Cleared whenever a capture starts.
    stop_requested: bool = False

    # ------------------------------------------------------------------
    # VAD
    # ------------------------------------------------------------------
    vad_config: VadConfig = field(default_factory=VadConfig)
    vad: VadSession = field(default_factory=VadSession)

    # ------------------------------------------------------------------
    # Observable outputs
    # ------------------------------------------------------------------
    audio_level_db: float | None = None
    last_transcript: str = ""
    last_reply: str = ""

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------
    last_error: str | None = None
    last_error_kind: ErrorKind | None = None
