"""
Runtime execution shell for the single voice session.

Responsibilities:
- Own controller state
- Serialize every event through one mailbox and call the pure reducer
- Execute commands with side effects (capture, pipeline stages, timers)
- Run the level-sampling loop while a capture is live
- Schedule and cancel timers, converting expiry into events
- Publish a SessionSnapshot to subscribers after every visible change

Non-responsibilities:
- No orchestration decisions (all live in the reducer)
- No vendor SDK knowledge (all lives in adapters)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from adapters.errors import CaptureFailureError, ConfigurationMissingError, classify
from audio.artifacts import AudioArtifact, owned
from constants import (
    PLAYBACK_POLL_INTERVAL_MS,
    SNAPSHOT_SUBSCRIBER_QUEUE_MAX,
    SPEECH_FILE_PREFIX,
    SYNTHESIS_FORMAT,
)
from observability.logger import log_event
from observability.metrics import emit_metric, timed
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
from orchestrator.enums.service import Stage
from orchestrator.events import (
    CaptureFailed,
    DebounceExpired,
    Event,
    EventType,
    LevelSample,
    PlaybackDone,
    ReplyReady,
    SetListenMode,
    StageFailed,
    StopListening,
    ToggleRecording,
    TranscriptReady,
)
from orchestrator.reducer import reduce
from orchestrator.snapshot import SessionSnapshot
from orchestrator.state_dataclass import ControllerState

if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


def _now_ms() -> int:
    """Monotonic milliseconds. VAD timing must never see wall-clock jumps."""
    return time.monotonic_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for the voice session.

    Architectural role:
    Runtime is the bridge between the pure orchestration layer
    (reducer + immutable state) and the imperative world
    (audio devices, network services, logging, time).

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - Events are processed strictly one at a time, in post() order
    - All side effects occur *after* state has been updated
    - Sampling ticks, timer expiry and stage results re-enter only via post()
    - Pipeline stages run as tasks and always release their artifacts
    """

    def __init__(
        self,
        *,
        initial_state: ControllerState,
        context: RuntimeExecutionContext,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._clock = clock

        self._mailbox: asyncio.Queue[Event] | None = None
        self._consumer: asyncio.Task[None] | None = None

        self._timers: dict[str, asyncio.Task[None]] = {}

        # Live capture: at most one at a time.
        self._capture_handle: Any = None
        self._capture_run_id: int | None = None
        self._sampler: asyncio.Task[None] | None = None

        # Artifacts handed over by StopCapture(keep_artifact=True),
        # waiting for StartTranscription of the same run.
        self._kept_artifacts: dict[int, AudioArtifact] = {}

        self._stage_tasks: set[asyncio.Task[None]] = set()

        self._subscribers: list[asyncio.Queue[SessionSnapshot]] = []
        self._last_snapshot = SessionSnapshot.from_state(initial_state)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> ControllerState:
        """
        Return the current immutable controller state.

        This state is the single source of truth for the session's
        control flow. Consumers must never modify it.
        """
        return self._state

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._last_snapshot

    def subscribe(self) -> asyncio.Queue[SessionSnapshot]:
        """
        Register for snapshot pushes.

        The current snapshot is delivered immediately. Slow subscribers
        lose their oldest pending snapshots, never the newest.
        """
        q: asyncio.Queue[SessionSnapshot] = asyncio.Queue(
            maxsize=SNAPSHOT_SUBSCRIBER_QUEUE_MAX
        )
        q.put_nowait(self._last_snapshot)
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue[SessionSnapshot]) -> None:
        if q in self._subscribers:
            self._subscribers.remove(q)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the mailbox consumer. Idempotent."""
        if self._consumer is not None:
            return
        self._mailbox = asyncio.Queue()
        self._consumer = asyncio.create_task(self._consume())

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Stops sampling and timers, discards any live capture, lets in-flight
        pipeline stages finish (they own artifacts), then stops the mailbox.
        """
        self._stop_sampler()
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        if self._capture_handle is not None and self._capture_run_id is not None:
            self._close_capture(self._capture_run_id, keep_artifact=False)

        if self._stage_tasks:
            await asyncio.gather(*list(self._stage_tasks), return_exceptions=True)

        for artifact in self._kept_artifacts.values():
            artifact.release()
        self._kept_artifacts.clear()

        if self._consumer is not None:
            self._consumer.cancel()
            await asyncio.gather(self._consumer, return_exceptions=True)
            self._consumer = None
            self._mailbox = None

    async def drain(self) -> None:
        """Wait until every event posted so far has been reduced."""
        if self._mailbox is not None:
            await self._mailbox.join()

    async def wait_until_settled(self) -> None:
        """
        Wait until the mailbox is empty and no pipeline stage is running.

        Sampling and timers may still be active afterwards.
        """
        while True:
            if self._mailbox is not None:
                await self._mailbox.join()
            pending = [t for t in self._stage_tasks if not t.done()]
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
                continue
            if self._mailbox is None or self._mailbox.empty():
                return

    # ------------------------------------------------------------------
    # Event ingress
    # ------------------------------------------------------------------

    def post(self, event: Event) -> None:
        """
        Enqueue an event for serialized processing.

        Must be called from the event loop thread.
        """
        if self._mailbox is None:
            raise RuntimeError("Runtime.start() has not been awaited")
        self._mailbox.put_nowait(event)

    def toggle(self) -> None:
        self.post(ToggleRecording(event_type=EventType.TOGGLE_RECORDING, ts_ms=self._clock()))

    def set_listen_mode(self, mode: ListenMode) -> None:
        self.post(
            SetListenMode(
                event_type=EventType.SET_LISTEN_MODE,
                ts_ms=self._clock(),
                mode=mode,
            )
        )

    def stop_listening(self) -> None:
        self.post(StopListening(event_type=EventType.STOP_LISTENING, ts_ms=self._clock()))

    async def _consume(self) -> None:
        mailbox = self._mailbox
        if mailbox is None:
            raise RuntimeError("Runtime not started")
        while True:
            event = await mailbox.get()
            try:
                await self.handle_event(event)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": self._clock(),
                    "event_type": "RUNTIME_EVENT_FAILED",
                    "session_id": self._ctx.session_id,
                    "failed_event_type": event.event_type,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                })
            finally:
                mailbox.task_done()

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Pass the current state and event to the pure reducer
        2. Swap in the new controller state
        3. Execute all emitted commands sequentially
        4. Publish a snapshot if anything observable changed

        Only the mailbox consumer (or a test driving the runtime directly)
        calls this.
        """
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

        self._publish()

    def _publish(self) -> None:
        snap = SessionSnapshot.from_state(self._state)
        if snap == self._last_snapshot:
            return
        self._last_snapshot = snap
        for q in self._subscribers:
            if q.full():
                q.get_nowait()
            q.put_nowait(snap)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
            })

        elif isinstance(cmd, RecordMetric):
            emit_metric(
                cmd.name,
                cmd.value,
                session_id=self._ctx.session_id,
                tags=cmd.tags,
            )

        elif isinstance(cmd, StartCapture):
            self._open_capture(cmd.run_id)

        elif isinstance(cmd, StopCapture):
            self._close_capture(cmd.run_id, keep_artifact=cmd.keep_artifact)

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
                run_id=cmd.run_id,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        elif isinstance(cmd, StartTranscription):
            artifact = self._kept_artifacts.pop(cmd.run_id, None)
            self._spawn_stage(
                Stage.TRANSCRIBE,
                cmd.run_id,
                lambda: self._transcribe(cmd.run_id, artifact),
            )

        elif isinstance(cmd, StartDispatch):
            self._spawn_stage(
                Stage.DISPATCH,
                cmd.run_id,
                lambda: self._dispatch(cmd.run_id, cmd.text),
            )

        elif isinstance(cmd, StartSpeech):
            self._spawn_stage(
                Stage.SPEAK,
                cmd.run_id,
                lambda: self._speak(cmd.run_id, cmd.text),
            )

        else:
            log_event({
                "ts_ms": self._clock(),
                "event_type": "COMMAND_NOT_IMPLEMENTED",
                "session_id": self._ctx.session_id,
                "command_type": type(cmd).__name__,
            })

    # ------------------------------------------------------------------
    # Capture + sampling
    # ------------------------------------------------------------------

    def _open_capture(self, run_id: int) -> None:
        if self._capture_handle is not None and self._capture_run_id is not None:
            # One capture at a time: a leftover handle is discarded first.
            self._close_capture(self._capture_run_id, keep_artifact=False)

        try:
            handle = self._ctx.capture.start_capture()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self.post(
                CaptureFailed(
                    event_type=EventType.CAPTURE_FAILED,
                    ts_ms=self._clock(),
                    run_id=run_id,
                    reason=f"Failed to start capture: {exc}",
                )
            )
            return

        self._capture_handle = handle
        self._capture_run_id = run_id
        self._sampler = asyncio.create_task(self._sample_loop(run_id, handle))

        log_event({
            "ts_ms": self._clock(),
            "event_type": "CAPTURE_STARTED",
            "session_id": self._ctx.session_id,
            "run_id": run_id,
        })

    def _close_capture(self, run_id: int, *, keep_artifact: bool) -> None:
        self._stop_sampler()

        if self._capture_handle is None or self._capture_run_id != run_id:
            return

        handle = self._capture_handle
        self._capture_handle = None
        self._capture_run_id = None

        try:
            artifact = self._ctx.capture.stop(handle)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # StartTranscription will find no artifact and fail the stage.
            log_event({
                "ts_ms": self._clock(),
                "event_type": "CAPTURE_STOP_FAILED",
                "session_id": self._ctx.session_id,
                "run_id": run_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return

        artifact.run_id = run_id
        if keep_artifact:
            self._kept_artifacts[run_id] = artifact
        else:
            artifact.release()

        log_event({
            "ts_ms": self._clock(),
            "event_type": "CAPTURE_STOPPED",
            "session_id": self._ctx.session_id,
            "run_id": run_id,
            "kept": keep_artifact,
        })

    def _stop_sampler(self) -> None:
        task = self._sampler
        self._sampler = None
        if task is not None and not task.done():
            task.cancel()

    async def _sample_loop(self, run_id: int, handle: Any) -> None:
        """
        Poll the capture level every sample interval and post it.

        Stops on cancellation or when the capture dies.
        """
        interval_s = self._state.vad_config.sample_interval_ms / 1000.0
        capture = self._ctx.capture
        try:
            while True:
                await asyncio.sleep(interval_s)
                if not capture.is_active(handle):
                    raise CaptureFailureError("capture stopped unexpectedly")
                level = capture.current_level_db(handle)
                self.post(
                    LevelSample(
                        event_type=EventType.LEVEL_SAMPLE,
                        ts_ms=self._clock(),
                        run_id=run_id,
                        level_db=level,
                    )
                )
        except asyncio.CancelledError:
            # Sampling was stopped - this is normal
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self.post(
                CaptureFailed(
                    event_type=EventType.CAPTURE_FAILED,
                    ts_ms=self._clock(),
                    run_id=run_id,
                    reason=f"Capture failed: {exc}",
                )
            )

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    def _spawn_stage(
        self,
        stage: Stage,
        run_id: int,
        body: Callable[[], Awaitable[Event]],
    ) -> None:
        """
        Run one pipeline stage as a task.

        Exactly one result event is posted: the body's event on success,
        StageFailed on any exception.
        """

        async def _stage_task() -> None:
            try:
                with timed(
                    f"stage_{stage.value.lower()}_ms",
                    session_id=self._ctx.session_id,
                    details={"run_id": run_id},
                ):
                    result = await body()
            except Exception as exc:  # pylint: disable=broad-exception-caught
                result = StageFailed(
                    event_type=EventType.STAGE_FAILED,
                    ts_ms=self._clock(),
                    run_id=run_id,
                    stage=stage,
                    kind=classify(exc),
                    reason=str(exc) or type(exc).__name__,
                )
            if self._mailbox is not None:
                self.post(result)

        task = asyncio.create_task(_stage_task())
        self._stage_tasks.add(task)
        task.add_done_callback(self._stage_tasks.discard)

    async def _transcribe(self, run_id: int, artifact: AudioArtifact | None) -> Event:
        if artifact is None:
            raise CaptureFailureError("No captured audio for this utterance")

        creds = self._ctx.credentials
        with owned(artifact):
            audio = artifact.read_bytes()
            text = await self._ctx.transcriber.transcribe(audio, creds.transcription_key)

        return TranscriptReady(
            event_type=EventType.TRANSCRIPT_READY,
            ts_ms=self._clock(),
            run_id=run_id,
            stage=Stage.TRANSCRIBE,
            text=text,
        )

    async def _dispatch(self, run_id: int, text: str) -> Event:
        reply = await self._ctx.chat_backend.complete(text, self._ctx.credentials.chat_token)
        return ReplyReady(
            event_type=EventType.REPLY_READY,
            ts_ms=self._clock(),
            run_id=run_id,
            stage=Stage.DISPATCH,
            text=reply,
        )

    async def _speak(self, run_id: int, text: str) -> Event:
        key = self._ctx.credentials.synthesis_key
        synthesizer = self._ctx.synthesizer
        if key is None and synthesizer.requires_credential:
            if self._ctx.fallback_synthesizer is None:
                raise ConfigurationMissingError("Speech synthesis key not configured")
            synthesizer = self._ctx.fallback_synthesizer

        audio = await synthesizer.synthesize(text, key)
        artifact = AudioArtifact.from_bytes(
            audio,
            prefix=SPEECH_FILE_PREFIX,
            suffix=f".{SYNTHESIS_FORMAT}",
            run_id=run_id,
        )

        player = self._ctx.player
        poll_s = PLAYBACK_POLL_INTERVAL_MS / 1000.0
        with owned(artifact):
            handle = player.play(artifact)
            try:
                while player.is_playing(handle):
                    await asyncio.sleep(poll_s)
            finally:
                player.stop(handle)

        return PlaybackDone(
            event_type=EventType.PLAYBACK_DONE,
            ts_ms=self._clock(),
            run_id=run_id,
            stage=Stage.SPEAK,
        )

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
        run_id: int,
    ) -> None:
        """
        Start or replace a single-shot timer that posts a timeout event.

        Timer tasks re-enter through post() when they expire,
        maintaining the single event entry point invariant.
        """
        # Cancel existing timer if present (idempotent)
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
                self.post(
                    self._construct_timeout_event(
                        timer_id=timer_id,
                        timeout_event_type=timeout_event_type,
                        run_id=run_id,
                    )
                )
            except asyncio.CancelledError:
                # Timer was cancelled - this is normal
                return
            finally:
                if self._timers.get(timer_id) is asyncio.current_task():
                    self._timers.pop(timer_id, None)

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _construct_timeout_event(
        self,
        *,
        timer_id: str,
        timeout_event_type: EventType,
        run_id: int,
    ) -> Event:
        if timeout_event_type is EventType.DEBOUNCE_EXPIRED:
            return DebounceExpired(
                event_type=EventType.DEBOUNCE_EXPIRED,
                ts_ms=self._clock(),
                run_id=run_id,
            )

        raise ValueError(
            f"Unknown timeout event type: {timeout_event_type} "
            f"for timer_id: {timer_id}"
        )

    # ------------------------------------------------------------------
    # Introspection (tests / health)
    # ------------------------------------------------------------------

    @property
    def active_timer_ids(self) -> frozenset[str]:
        return frozenset(t for t, task in self._timers.items() if not task.done())

    @property
    def sampling(self) -> bool:
        return self._sampler is not None and not self._sampler.done()

    @property
    def capture_open(self) -> bool:
        return self._capture_handle is not None
