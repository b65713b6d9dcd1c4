"""
Unified event definitions for the session reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Capture, timer and pipeline events carry the run_id of the utterance they
belong to so the reducer can drop stale deliveries.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from orchestrator.enums.mode import ListenMode
from orchestrator.enums.service import ErrorKind, Stage


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Caller control
    # ------------------------------------------------------------------
    TOGGLE_RECORDING = "TOGGLE_RECORDING"
    SET_LISTEN_MODE = "SET_LISTEN_MODE"
    STOP_LISTENING = "STOP_LISTENING"

    # ------------------------------------------------------------------
    # Capture / VAD
    # ------------------------------------------------------------------
    LEVEL_SAMPLE = "LEVEL_SAMPLE"
    DEBOUNCE_EXPIRED = "DEBOUNCE_EXPIRED"
    CAPTURE_FAILED = "CAPTURE_FAILED"

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    TRANSCRIPT_READY = "TRANSCRIPT_READY"
    REPLY_READY = "REPLY_READY"
    PLAYBACK_DONE = "PLAYBACK_DONE"
    STAGE_FAILED = "STAGE_FAILED"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


@dataclass(frozen=True)
class RunEvent(Event):
    """
    Base class for events scoped to one capture / utterance run.

    The reducer MUST ignore events whose run_id does not match the
    currently active run.
    """

    run_id: int


@dataclass(frozen=True)
class StageEvent(RunEvent):
    """Base class for events produced by a pipeline stage."""

    stage: Stage


# =============================================================================
# Caller Control Events
# =============================================================================

@dataclass(frozen=True)
class ToggleRecording(Event):
    """
    Manual trigger.

    Starts a recording from IDLE, stops one from RECORDING, forces an early
    end-of-speech from LISTENING while speech is detected.
    """


@dataclass(frozen=True)
class SetListenMode(Event):
    """Caller selected a listen mode."""
    mode: ListenMode


@dataclass(frozen=True)
class StopListening(Event):
    """Caller asked to drop any active sampling or capture."""


# =============================================================================
# Capture / VAD Events
# =============================================================================

@dataclass(frozen=True)
class LevelSample(RunEvent):
    """One periodic audio-level reading from the active capture."""
    level_db: float


@dataclass(frozen=True)
class DebounceExpired(RunEvent):
    """The silence debounce timer for the active run fired."""


@dataclass(frozen=True)
class CaptureFailed(RunEvent):
    """The capture device failed to start or died mid-capture."""
    reason: str


# =============================================================================
# Pipeline Events
# =============================================================================

@dataclass(frozen=True)
class TranscriptReady(StageEvent):
    """Transcription finished. Text may be empty."""
    text: str


@dataclass(frozen=True)
class ReplyReady(StageEvent):
    """Chat backend returned a reply."""
    text: str


@dataclass(frozen=True)
class PlaybackDone(StageEvent):
    """Synthesized reply finished playing."""


@dataclass(frozen=True)
class StageFailed(StageEvent):
    """
    A pipeline stage raised.

    The stage task has already released every artifact it owned before
    this event is emitted.
    """
    kind: ErrorKind
    reason: str
