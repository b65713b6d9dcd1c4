"""
A minimal, level-based Voice Activity Detection (VAD) module.

Converts a periodic stream of audio-level samples (dBFS) into discrete
speech-start / speech-end decisions using a fixed threshold plus a silence
debounce. This is a level-triggered detector, not spectral VAD: there is no
noise-floor adaptation and no frequency analysis.

Rules:
- Pure: no clocks, no timers, no IO. Callers pass `now_ms`.
- Sessions are immutable; every operation returns the next session.
- The debounce "timer" is represented by `pending_silence_since_ms`.
  Whoever owns real time (the runtime) schedules a wake-up and calls
  `expire()`; a re-trigger clears the field, which cancels the decision.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from constants import (
    VAD_MIN_UTTERANCE_MS,
    VAD_SAMPLE_INTERVAL_MS,
    VAD_SILENCE_DEBOUNCE_MS,
    VAD_SILENCE_THRESHOLD_DB,
)


class VadEvent(str, Enum):
    """Speech boundary decisions emitted by the engine."""

    SPEECH_STARTED = "SPEECH_STARTED"
    SPEECH_ENDED = "SPEECH_ENDED"
    SPEECH_ENDED_TOO_SHORT = "SPEECH_ENDED_TOO_SHORT"


@dataclass(frozen=True)
class VadConfig:
    """
    Detector tuning.

    silence_threshold_db:
        Levels at or below this value are silence.
    silence_debounce_ms:
        Continuous silence required before speech is considered over.
    min_utterance_ms:
        Minimum speech-start to speech-end span for an accepted utterance.
    sample_interval_ms:
        Cadence at which the runtime polls the capture level.
    """

    silence_threshold_db: float = VAD_SILENCE_THRESHOLD_DB
    silence_debounce_ms: int = VAD_SILENCE_DEBOUNCE_MS
    min_utterance_ms: int = VAD_MIN_UTTERANCE_MS
    sample_interval_ms: int = VAD_SAMPLE_INTERVAL_MS


@dataclass(frozen=True)
class VadSession:
    """
    Transient per-capture detector state.

    Invariant: speech_started_at_ms is set iff speech_detected is True.
    pending_silence_since_ms is only ever set while speech_detected is True.
    """

    speech_detected: bool = False
    speech_started_at_ms: int | None = None
    pending_silence_since_ms: int | None = None

    @property
    def debounce_pending(self) -> bool:
        return self.pending_silence_since_ms is not None


_IDLE_SESSION = VadSession()


class VadEngine:
    """
    Threshold-with-debounce speech detector.

    The engine holds only configuration; all per-capture state lives in the
    VadSession values it is handed and returns.
    """

    def __init__(self, config: VadConfig | None = None) -> None:
        self._config = config or VadConfig()

    @property
    def config(self) -> VadConfig:
        return self._config

    @staticmethod
    def reset() -> VadSession:
        """Return a fresh session with no speech and no pending debounce."""
        return _IDLE_SESSION

    def is_speech(self, level_db: float) -> bool:
        return level_db > self._config.silence_threshold_db

    def observe(
        self,
        session: VadSession,
        level_db: float,
        now_ms: int,
    ) -> tuple[VadSession, VadEvent | None]:
        """
        Feed one level sample.

        Returns the next session and at most one boundary event. A
        sub-threshold sample that arrives after the debounce window has
        already elapsed resolves the end-of-speech decision directly, so
        sample-driven callers need no separate timer.
        """
        if self.is_speech(level_db):
            if not session.speech_detected:
                return (
                    VadSession(
                        speech_detected=True,
                        speech_started_at_ms=now_ms,
                        pending_silence_since_ms=None,
                    ),
                    VadEvent.SPEECH_STARTED,
                )
            if session.debounce_pending:
                return replace(session, pending_silence_since_ms=None), None
            return session, None

        if not session.speech_detected:
            return session, None

        if not session.debounce_pending:
            return replace(session, pending_silence_since_ms=now_ms), None

        return self.expire(session, now_ms)

    def expire(
        self,
        session: VadSession,
        now_ms: int,
    ) -> tuple[VadSession, VadEvent | None]:
        """
        Evaluate a debounce timer firing at `now_ms`.

        No-op if the debounce was cancelled by a re-trigger or the window
        has not fully elapsed yet.
        """
        since = session.pending_silence_since_ms
        if not session.speech_detected or since is None:
            return session, None
        if now_ms - since < self._config.silence_debounce_ms:
            return session, None
        return self._decide_end(session, now_ms)

    def force_end(
        self,
        session: VadSession,
        now_ms: int,
    ) -> tuple[VadSession, VadEvent | None]:
        """
        Take the end-of-speech decision immediately, skipping the debounce.

        No-op when no speech is in progress.
        """
        if not session.speech_detected:
            return session, None
        return self._decide_end(session, now_ms)

    def _decide_end(
        self,
        session: VadSession,
        now_ms: int,
    ) -> tuple[VadSession, VadEvent]:
        started = session.speech_started_at_ms
        if started is None:
            raise ValueError("speech_detected without speech_started_at_ms")

        # Speech ends where the silence began, not where the debounce closed.
        ended = session.pending_silence_since_ms
        if ended is None:
            ended = now_ms

        if ended - started >= self._config.min_utterance_ms:
            return _IDLE_SESSION, VadEvent.SPEECH_ENDED
        return _IDLE_SESSION, VadEvent.SPEECH_ENDED_TOO_SHORT
