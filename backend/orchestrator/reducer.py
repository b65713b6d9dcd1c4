"""
Pure session controller reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

# Reducer owns timer semantics; runtime must not cancel timers implicitly.
# Listen mode is consulted for the re-arm decision ONLY in
# _resolve_after_utterance.

from __future__ import annotations

from dataclasses import replace
from typing import Any

from audio.vad import VadEngine, VadEvent, VadSession
from orchestrator.commands import (
    CancelTimer,
    Command,
    LogEvent,
    RecordMetric,
    StartCapture,
    StartDispatch,
    StartSpeech,
    StartTimer,
    StartTranscription,
    StopCapture,
)
from orchestrator.enums.mode import ListenMode
from orchestrator.enums.service import ErrorKind, Stage
from orchestrator.enums.state import SessionState
from orchestrator.events import (
    CaptureFailed,
    DebounceExpired,
    Event,
    EventType,
    LevelSample,
    PlaybackDone,
    ReplyReady,
    RunEvent,
    SetListenMode,
    StageFailed,
    StopListening,
    ToggleRecording,
    TranscriptReady,
)
from orchestrator.state_dataclass import ControllerState


# =============================================================================
# Timer IDs
# =============================================================================

TIMER_VAD_DEBOUNCE = "vad_silence_debounce"


_CAPTURE_STATES = frozenset({SessionState.LISTENING, SessionState.RECORDING})

_STAGE_FOR_STATE = {
    SessionState.TRANSCRIBING: Stage.TRANSCRIBE,
    SessionState.DISPATCHING: Stage.DISPATCH,
    SessionState.SPEAKING: Stage.SPEAK,
}


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: ControllerState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "mode": state.mode.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "run_id": state.run_id,
            "capture_live": state.capture_live,
            "details": details or {},
        }
    )


def _state_changed(
    old: ControllerState,
    new: ControllerState,
    event: Event,
    source: str,
) -> LogEvent:
    return _log(
        new,
        event,
        "state_changed",
        {
            "from_state": old.state.value,
            "to_state": new.state.value,
            "source": source,
        },
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: ControllerState, event: Event, reason: str
) -> tuple[ControllerState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _noop(
    state: ControllerState, event: Event, decision: str
) -> tuple[ControllerState, tuple[Command, ...]]:
    return state, (_log(state, event, decision),)


def _is_stale(state: ControllerState, event: RunEvent) -> bool:
    return event.run_id != state.run_id


def _debounce_commands(
    before: VadSession,
    after: VadSession,
    state: ControllerState,
) -> list[Command]:
    """Translate a change in pending silence into timer commands."""
    if not before.debounce_pending and after.debounce_pending:
        return [
            StartTimer(
                timer_id=TIMER_VAD_DEBOUNCE,
                duration_ms=state.vad_config.silence_debounce_ms,
                timeout_event_type=EventType.DEBOUNCE_EXPIRED,
                run_id=state.run_id,
            )
        ]
    if before.debounce_pending and not after.debounce_pending:
        return [CancelTimer(timer_id=TIMER_VAD_DEBOUNCE)]
    return []


# =============================================================================
# Capture arming / teardown
# =============================================================================

def _arm_listening(
    state: ControllerState,
    event: Event,
) -> tuple[ControllerState, list[Command]]:
    """Start a fresh VAD-driven capture under a new run id."""
    run_id = state.run_id + 1
    new_state = replace(
        state,
        state=SessionState.LISTENING,
        run_id=run_id,
        capture_live=True,
        vad_armed=True,
        stop_requested=False,
        vad=VadEngine.reset(),
        audio_level_db=None,
    )
    return new_state, [
        StartCapture(run_id=run_id),
        _log(new_state, event, "arm_listening", {"run_id": run_id}),
    ]


def _teardown_capture(
    state: ControllerState,
    event: Event,
    *,
    keep_artifact: bool,
    source: str,
) -> tuple[ControllerState, list[Command]]:
    """
    Stop sampling, cancel the debounce timer and close the live capture.

    The VAD session is discarded. SessionState is left to the caller.
    """
    cmds: list[Command] = [CancelTimer(timer_id=TIMER_VAD_DEBOUNCE)]
    if state.capture_live:
        cmds.append(StopCapture(run_id=state.run_id, keep_artifact=keep_artifact))
        cmds.append(
            _log(
                state,
                event,
                "stop_capture",
                {"keep_artifact": keep_artifact, "source": source},
            )
        )
    new_state = replace(
        state,
        capture_live=False,
        vad_armed=False,
        vad=VadEngine.reset(),
        audio_level_db=None,
    )
    return new_state, cmds


def _resolve_after_utterance(
    state: ControllerState,
    event: Event,
    source: str,
) -> tuple[ControllerState, tuple[Command, ...]]:
    """
    Terminal-stage resolver.

    ALWAYS_LISTENING re-arms to LISTENING with a new capture, unless a stop
    arrived while the pipeline ran. PUSH_TO_TALK returns to IDLE with
    nothing active.
    """
    settled = replace(
        state,
        stop_requested=False,
        capture_live=False,
        vad_armed=False,
        vad=VadEngine.reset(),
        audio_level_db=None,
    )

    if state.mode is ListenMode.ALWAYS_LISTENING and not state.stop_requested:
        new_state, cmds = _arm_listening(settled, event)
    else:
        new_state, cmds = replace(settled, state=SessionState.IDLE), []

    return new_state, _logs_last(
        tuple(cmds) + (_state_changed(state, new_state, event, source),)
    )


# =============================================================================
# Utterance boundaries
# =============================================================================

def _begin_pipeline(
    state: ControllerState,
    event: Event,
    source: str,
    speech_ms: int | None = None,
) -> tuple[ControllerState, tuple[Command, ...]]:
    """Close the capture, keep its artifact, and start transcription."""
    closed, cmds = _teardown_capture(state, event, keep_artifact=True, source=source)
    new_state = replace(closed, state=SessionState.TRANSCRIBING)
    cmds.append(StartTranscription(run_id=state.run_id))
    cmds.append(_log(new_state, event, "start_transcription", {"source": source}))
    if speech_ms is not None:
        cmds.append(
            RecordMetric(
                name="utterance_speech_ms",
                value=float(speech_ms),
                tags=(("source", source),),
            )
        )
    return new_state, _logs_last(
        tuple(cmds) + (_state_changed(state, new_state, event, source),)
    )


def _discard_utterance(
    state: ControllerState,
    event: Event,
    reason: str,
) -> tuple[ControllerState, tuple[Command, ...]]:
    """Drop the capture without processing it, then resolve per mode."""
    closed, cmds = _teardown_capture(state, event, keep_artifact=False, source=reason)
    resolved, more = _resolve_after_utterance(closed, event, reason)
    return resolved, _logs_last(
        tuple(cmds)
        + (_log(state, event, "discard_utterance", {"reason": reason}),)
        + more
    )


def _apply_vad(
    state: ControllerState,
    event: Event,
    before: VadSession,
    after: VadSession,
    vad_event: VadEvent | None,
    source: str,
) -> tuple[ControllerState, tuple[Command, ...]]:
    """Fold one VAD decision into the controller state."""
    if vad_event is VadEvent.SPEECH_ENDED:
        started = before.speech_started_at_ms or 0
        ended = before.pending_silence_since_ms
        speech_ms = (ended if ended is not None else event.ts_ms) - started
        with_vad = replace(state, vad=after)
        new_state, cmds = _begin_pipeline(with_vad, event, source, speech_ms)
        return new_state, _logs_last(
            cmds + (_log(new_state, event, "speech_ended", {"speech_ms": speech_ms}),)
        )

    if vad_event is VadEvent.SPEECH_ENDED_TOO_SHORT:
        return _discard_utterance(replace(state, vad=after), event, "too_short_utterance")

    with_vad = replace(state, vad=after)
    cmds = _debounce_commands(before, after, with_vad)

    if vad_event is VadEvent.SPEECH_STARTED:
        new_state = replace(with_vad, state=SessionState.RECORDING)
        cmds.append(CancelTimer(timer_id=TIMER_VAD_DEBOUNCE))
        cmds.append(_log(new_state, event, "speech_started"))
        if state.state is not SessionState.RECORDING:
            cmds.append(_state_changed(state, new_state, event, source))
        return new_state, _logs_last(tuple(cmds))

    if cmds:
        decision = (
            "silence_debounce_started"
            if after.debounce_pending
            else "silence_debounce_cancelled"
        )
        cmds.append(_log(with_vad, event, decision))
    return with_vad, _logs_last(tuple(cmds))


# =============================================================================
# Caller control
# =============================================================================

def _on_set_listen_mode(
    state: ControllerState,
    event: SetListenMode,
) -> tuple[ControllerState, tuple[Command, ...]]:
    rearm_requested = event.mode is ListenMode.ALWAYS_LISTENING and (
        state.state is SessionState.IDLE or state.stop_requested
    )
    if event.mode is state.mode and not rearm_requested:
        return _noop(state, event, "mode_unchanged")

    # Selecting a mode supersedes an earlier stop request.
    with_mode = replace(state, mode=event.mode, stop_requested=False)

    if state.state not in _CAPTURE_STATES and state.state is not SessionState.IDLE:
        # Pipeline in flight: it runs to completion and the resolver
        # applies the new mode.
        return with_mode, (
            _log(
                with_mode,
                event,
                "mode_deferred_until_pipeline_done",
                {"from_mode": state.mode.value, "to_mode": event.mode.value},
            ),
        )

    closed, cmds = _teardown_capture(
        with_mode, event, keep_artifact=False, source="mode_switch"
    )
    if event.mode is ListenMode.ALWAYS_LISTENING:
        new_state, more = _arm_listening(closed, event)
        cmds.extend(more)
    else:
        new_state = replace(closed, state=SessionState.IDLE)

    cmds.append(
        _log(
            new_state,
            event,
            "mode_changed",
            {"from_mode": state.mode.value, "to_mode": event.mode.value},
        )
    )
    if new_state.state is not state.state:
        cmds.append(_state_changed(state, new_state, event, "mode_switch"))
    return new_state, _logs_last(tuple(cmds))


def _on_toggle(
    state: ControllerState,
    event: ToggleRecording,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if state.state is SessionState.IDLE:
        run_id = state.run_id + 1
        new_state = replace(
            state,
            state=SessionState.RECORDING,
            run_id=run_id,
            capture_live=True,
            vad_armed=False,
            stop_requested=False,
            vad=VadEngine.reset(),
            audio_level_db=None,
            last_transcript="",
            last_reply="",
            last_error=None,
            last_error_kind=None,
        )
        return new_state, _logs_last((
            StartCapture(run_id=run_id),
            _log(new_state, event, "start_manual_recording", {"run_id": run_id}),
            _state_changed(state, new_state, event, "manual_start"),
        ))

    if state.state is SessionState.RECORDING:
        # A manual stop always processes the recording, however short.
        speech_ms = None
        if state.vad_armed and state.vad.speech_started_at_ms is not None:
            speech_ms = event.ts_ms - state.vad.speech_started_at_ms
        return _begin_pipeline(state, event, "manual_stop", speech_ms)

    if state.state is SessionState.LISTENING:
        # Detected speech always moves to RECORDING, so LISTENING has none.
        return _noop(state, event, "toggle_noop_no_speech")

    return _noop(state, event, "toggle_noop_pipeline_busy")


def _on_stop_listening(
    state: ControllerState,
    event: StopListening,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if state.state in _STAGE_FOR_STATE:
        if state.stop_requested:
            return _noop(state, event, "stop_already_requested")
        # Pipeline in flight: it runs to completion and the resolver
        # returns to IDLE instead of re-arming.
        new_state = replace(state, stop_requested=True)
        return new_state, (_log(new_state, event, "stop_deferred_until_pipeline_done"),)

    if state.state not in _CAPTURE_STATES:
        return _noop(state, event, "stop_noop")

    closed, cmds = _teardown_capture(state, event, keep_artifact=False, source="stop")
    new_state = replace(closed, state=SessionState.IDLE)
    return new_state, _logs_last(
        tuple(cmds) + (_state_changed(state, new_state, event, "stop"),)
    )


# =============================================================================
# Capture / VAD
# =============================================================================

def _on_level_sample(
    state: ControllerState,
    event: LevelSample,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if _is_stale(state, event) or not state.capture_live:
        return _ignore(state, event, "level_sample_stale")
    if state.state not in _CAPTURE_STATES:
        return _ignore(state, event, "level_sample_outside_capture")

    with_level = replace(state, audio_level_db=event.level_db)
    if not state.vad_armed:
        # Manual recording: level is observable, boundaries are manual.
        return with_level, ()

    engine = VadEngine(state.vad_config)
    after, vad_event = engine.observe(state.vad, event.level_db, event.ts_ms)
    return _apply_vad(with_level, event, state.vad, after, vad_event, "vad")


def _on_debounce_expired(
    state: ControllerState,
    event: DebounceExpired,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if _is_stale(state, event) or not state.vad_armed:
        return _ignore(state, event, "debounce_expired_stale")
    if not state.vad.debounce_pending:
        return _ignore(state, event, "debounce_already_cancelled")

    engine = VadEngine(state.vad_config)
    after, vad_event = engine.expire(state.vad, event.ts_ms)
    return _apply_vad(state, event, state.vad, after, vad_event, "vad_debounce")


def _on_capture_failed(
    state: ControllerState,
    event: CaptureFailed,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if _is_stale(state, event) or state.state not in _CAPTURE_STATES:
        return _ignore(state, event, "capture_failed_stale")

    closed, cmds = _teardown_capture(
        state, event, keep_artifact=False, source="capture_failed"
    )
    # A dead device is not re-armed automatically; the caller re-enables
    # listening or toggles once the device is back.
    new_state = replace(
        closed,
        state=SessionState.IDLE,
        last_error=event.reason,
        last_error_kind=ErrorKind.CAPTURE_FAILURE,
    )
    cmds.append(_log(new_state, event, "capture_failed", {"reason": event.reason}))
    return new_state, _logs_last(
        tuple(cmds) + (_state_changed(state, new_state, event, "capture_failed"),)
    )


# =============================================================================
# Pipeline
# =============================================================================

def _pipeline_guard(
    state: ControllerState,
    event: RunEvent,
    expected: SessionState,
    name: str,
) -> tuple[ControllerState, tuple[Command, ...]] | None:
    if _is_stale(state, event):
        return _ignore(state, event, f"{name}_stale")
    if state.state is not expected:
        return _ignore(state, event, f"{name}_unexpected_in_{state.state.value.lower()}")
    return None


def _on_transcript_ready(
    state: ControllerState,
    event: TranscriptReady,
) -> tuple[ControllerState, tuple[Command, ...]]:
    guard = _pipeline_guard(state, event, SessionState.TRANSCRIBING, "transcript")
    if guard is not None:
        return guard

    transcribed = replace(
        state,
        last_transcript=event.text,
        last_error=None,
        last_error_kind=None,
    )

    if not event.text.strip():
        new_state, cmds = _resolve_after_utterance(transcribed, event, "empty_transcript")
        return new_state, _logs_last(
            cmds + (_log(new_state, event, "empty_transcript"),)
        )

    new_state = replace(transcribed, state=SessionState.DISPATCHING)
    return new_state, _logs_last((
        StartDispatch(run_id=state.run_id, text=event.text),
        _log(new_state, event, "start_dispatch", {"len": len(event.text)}),
        _state_changed(state, new_state, event, "transcript_ready"),
    ))


def _on_reply_ready(
    state: ControllerState,
    event: ReplyReady,
) -> tuple[ControllerState, tuple[Command, ...]]:
    guard = _pipeline_guard(state, event, SessionState.DISPATCHING, "reply")
    if guard is not None:
        return guard

    new_state = replace(
        state,
        state=SessionState.SPEAKING,
        last_reply=event.text,
        last_error=None,
        last_error_kind=None,
    )
    return new_state, _logs_last((
        StartSpeech(run_id=state.run_id, text=event.text),
        _log(new_state, event, "start_speech", {"len": len(event.text)}),
        _state_changed(state, new_state, event, "reply_ready"),
    ))


def _on_playback_done(
    state: ControllerState,
    event: PlaybackDone,
) -> tuple[ControllerState, tuple[Command, ...]]:
    guard = _pipeline_guard(state, event, SessionState.SPEAKING, "playback")
    if guard is not None:
        return guard

    new_state, cmds = _resolve_after_utterance(state, event, "playback_done")
    return new_state, _logs_last(cmds + (_log(new_state, event, "utterance_complete"),))


def _on_stage_failed(
    state: ControllerState,
    event: StageFailed,
) -> tuple[ControllerState, tuple[Command, ...]]:
    if _is_stale(state, event):
        return _ignore(state, event, "stage_failed_stale")
    if _STAGE_FOR_STATE.get(state.state) is not event.stage:
        return _ignore(state, event, "stage_failed_wrong_stage")

    failed = replace(
        state,
        last_error=event.reason,
        last_error_kind=event.kind,
    )
    new_state, cmds = _resolve_after_utterance(failed, event, "stage_failed")
    return new_state, _logs_last(cmds + (
        _log(
            new_state,
            event,
            "stage_failed",
            {
                "stage": event.stage.value,
                "kind": event.kind.value,
                "reason": event.reason,
            },
        ),
    ))


# =============================================================================
# Entry point
# =============================================================================

def reduce(
    state: ControllerState, event: Event
) -> tuple[ControllerState, tuple[Command, ...]]:
    """
    Pure reducer for the voice session state machine.

    Given the current controller state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores events with stale run IDs
    """
    if isinstance(event, SetListenMode):
        return _on_set_listen_mode(state, event)

    if isinstance(event, ToggleRecording):
        return _on_toggle(state, event)

    if isinstance(event, StopListening):
        return _on_stop_listening(state, event)

    if isinstance(event, LevelSample):
        return _on_level_sample(state, event)

    if isinstance(event, DebounceExpired):
        return _on_debounce_expired(state, event)

    if isinstance(event, CaptureFailed):
        return _on_capture_failed(state, event)

    if isinstance(event, TranscriptReady):
        return _on_transcript_ready(state, event)

    if isinstance(event, ReplyReady):
        return _on_reply_ready(state, event)

    if isinstance(event, PlaybackDone):
        return _on_playback_done(state, event)

    if isinstance(event, StageFailed):
        return _on_stage_failed(state, event)

    return _ignore(state, event, "unknown_event")
