"""
Voice session container.

- Owns the Runtime for the single process-wide session
- Wires concrete collaborators from AppConfig
- Outlives any individual observer connection
- NOT a state machine
- Contains no orchestration logic
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from adapters.asr.base import Transcriber
from adapters.audio.base import AudioCapture, AudioPlayer
from adapters.llm.base import ChatBackend
from adapters.tts.base import SpeechSynthesizer
from config import AppConfig
from observability.logger import log_event
from orchestrator.enums.mode import ListenMode
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import ControllerState


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def _wall_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class VoiceSession:
    """Mutable runtime container for the voice session."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    runtime: Runtime
    initial_mode: ListenMode = ListenMode.PUSH_TO_TALK
    created_at: float = field(default_factory=time.time)
    started: bool = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        capture: AudioCapture,
        player: AudioPlayer,
        transcriber: Transcriber,
        chat_backend: ChatBackend,
        synthesizer: SpeechSynthesizer,
        fallback_synthesizer: SpeechSynthesizer | None = None,
        session_id: str | None = None,
    ) -> VoiceSession:
        """
        Assemble a session from config and explicit collaborators.

        The session always starts IDLE; the configured listen mode is
        applied by start() through the normal SetListenMode path.
        """
        sid = session_id or _new_session_id()
        context = RuntimeExecutionContext(
            session_id=sid,
            credentials=config.credentials,
            capture=capture,
            player=player,
            transcriber=transcriber,
            chat_backend=chat_backend,
            synthesizer=synthesizer,
            fallback_synthesizer=fallback_synthesizer,
        )
        runtime = Runtime(
            initial_state=ControllerState(vad_config=config.vad),
            context=context,
        )
        return cls(session_id=sid, runtime=runtime, initial_mode=config.listen_mode)

    @classmethod
    def from_config(cls, config: AppConfig) -> VoiceSession:
        """Build a session wired to real devices and network services."""
        # Imported here so tests that inject fakes never load PortAudio.
        from adapters.asr.openai_whisper import OpenAIWhisperTranscriber
        from adapters.audio.sounddevice_audio import SoundDeviceCapture, SoundDevicePlayer
        from adapters.llm.openclaw import OpenClawChatBackend
        from adapters.tts.local_speech import LocalSpeechSynthesizer
        from adapters.tts.openai_speech import OpenAISpeechSynthesizer

        return cls.build(
            config,
            capture=SoundDeviceCapture(),
            player=SoundDevicePlayer(),
            transcriber=OpenAIWhisperTranscriber(),
            chat_backend=OpenClawChatBackend(base_url=config.openclaw_url),
            synthesizer=OpenAISpeechSynthesizer(),
            fallback_synthesizer=LocalSpeechSynthesizer(),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self.started:
            return
        await self.runtime.start()
        self.started = True
        log_event({
            "ts_ms": _wall_ms(),
            "event_type": "SESSION_STARTED",
            "session_id": self.session_id,
            "mode": self.initial_mode,
        })
        if self.initial_mode is not ListenMode.PUSH_TO_TALK:
            self.runtime.set_listen_mode(self.initial_mode)

    async def close(self) -> None:
        if not self.started:
            return
        self.runtime.stop_listening()
        await self.runtime.wait_until_settled()
        await self.runtime.shutdown()
        self.started = False
        log_event({
            "ts_ms": _wall_ms(),
            "event_type": "SESSION_ENDED",
            "session_id": self.session_id,
        })

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Return standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "state": self.runtime.state.state.value,
            "mode": self.runtime.state.mode.value,
        }

    def describe(self) -> dict[str, Any]:
        """Snapshot plus session identity, for HTTP responses."""
        return {
            **self.runtime.snapshot.to_json(),
            "session_id": self.session_id,
            "created_at": self.created_at,
        }
