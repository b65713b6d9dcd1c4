"""
Side-effect command definitions for the session controller.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from orchestrator.events import EventType

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging, replay,
    and runtime dispatch.
    """

    # Capture
    START_CAPTURE = "START_CAPTURE"
    STOP_CAPTURE = "STOP_CAPTURE"

    # Pipeline
    START_TRANSCRIPTION = "START_TRANSCRIPTION"
    START_DISPATCH = "START_DISPATCH"
    START_SPEECH = "START_SPEECH"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"
    RECORD_METRIC = "RECORD_METRIC"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Capture Commands
# =============================================================================

@dataclass(frozen=True)
class StartCapture(Command):
    """
    Open a capture for run_id and start the level-sampling loop.

    The runtime must emit CaptureFailed(run_id) if the device cannot start.
    """
    run_id: int
    command_type: CommandType = CommandType.START_CAPTURE


@dataclass(frozen=True)
class StopCapture(Command):
    """
    Stop sampling and close the capture for run_id.

    keep_artifact:
        True  -> hold the captured file for the next StartTranscription.
        False -> delete the captured file immediately (discard).
    """
    run_id: int
    keep_artifact: bool
    command_type: CommandType = CommandType.STOP_CAPTURE


# =============================================================================
# Pipeline Commands
# =============================================================================

@dataclass(frozen=True)
class StartTranscription(Command):
    """
    Transcribe the artifact kept for run_id.

    The runtime must release the artifact once the stage ends and emit
    exactly one TranscriptReady or StageFailed for run_id.
    """
    run_id: int
    command_type: CommandType = CommandType.START_TRANSCRIPTION


@dataclass(frozen=True)
class StartDispatch(Command):
    """Send the transcript as a single user turn to the chat backend."""
    run_id: int
    text: str
    command_type: CommandType = CommandType.START_DISPATCH


@dataclass(frozen=True)
class StartSpeech(Command):
    """
    Synthesize `text` and play it to completion.

    The runtime must release the synthesized audio file and emit exactly
    one PlaybackDone or StageFailed for run_id.
    """
    run_id: int
    text: str
    command_type: CommandType = CommandType.START_SPEECH


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start a named single-shot timer.

    On expiration, the runtime must inject the specified timeout event
    scoped to run_id.
    """
    timer_id: str
    duration_ms: int
    timeout_event_type: EventType
    run_id: int
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT


@dataclass(frozen=True)
class RecordMetric(Command):
    """Request to record a metric value."""
    name: str
    value: float
    tags: tuple[tuple[str, str], ...] | None = None
    command_type: CommandType = CommandType.RECORD_METRIC
