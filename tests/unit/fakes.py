# pylint: disable=missing-module-docstring,missing-class-docstring,missing-function-docstring

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from adapters.asr.base import Transcriber
from adapters.audio.base import AudioCapture, AudioPlayer
from adapters.errors import CaptureFailureError
from adapters.llm.base import ChatBackend
from adapters.tts.base import SpeechSynthesizer
from audio.artifacts import AudioArtifact
from config import Credentials
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import ControllerState
from audio.vad import VadConfig


# Timers and sampling far enough out that tests drive them by hand.
MANUAL_VAD = VadConfig(
    silence_threshold_db=-40.0,
    silence_debounce_ms=60_000,
    min_utterance_ms=500,
    sample_interval_ms=60_000,
)

ALL_CREDENTIALS = Credentials(
    transcription_key="sk-transcribe",
    chat_token="claw-token",
    synthesis_key="sk-speech",
)


@dataclass
class _FakeCaptureHandle:
    run: int
    active: bool = True


class FakeCapture(AudioCapture):
    def __init__(self, *, level_db: float = -60.0, fail_start: bool = False) -> None:
        self.level_db = level_db
        self.fail_start = fail_start
        self.started = 0
        self.stopped = 0
        self.artifacts: list[AudioArtifact] = []
        self.handles: list[_FakeCaptureHandle] = []

    def start_capture(self) -> _FakeCaptureHandle:
        if self.fail_start:
            raise CaptureFailureError("no input device")
        self.started += 1
        handle = _FakeCaptureHandle(run=self.started)
        self.handles.append(handle)
        return handle

    def stop(self, handle: _FakeCaptureHandle) -> AudioArtifact:
        if not handle.active:
            raise CaptureFailureError("capture already stopped")
        handle.active = False
        self.stopped += 1
        artifact = AudioArtifact.from_bytes(
            b"RIFF-fake-capture", prefix="test_capture_", suffix=".wav"
        )
        self.artifacts.append(artifact)
        return artifact

    def current_level_db(self, handle: _FakeCaptureHandle) -> float:
        return self.level_db

    def is_active(self, handle: _FakeCaptureHandle) -> bool:
        return handle.active


class FakePlayer(AudioPlayer):
    def __init__(self, *, polls_until_done: int = 0) -> None:
        self.polls_until_done = polls_until_done
        self.played: list[bytes] = []
        self.stop_calls = 0

    def play(self, artifact: AudioArtifact) -> dict[str, int]:
        self.played.append(artifact.read_bytes())
        return {"remaining": self.polls_until_done}

    def is_playing(self, handle: dict[str, int]) -> bool:
        if handle["remaining"] <= 0:
            return False
        handle["remaining"] -= 1
        return True

    def stop(self, handle: dict[str, int]) -> None:
        self.stop_calls += 1


class FakeTranscriber(Transcriber):
    def __init__(self, text: str = "hello there", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[tuple[bytes, str | None]] = []
        # Set by a test to hold the pipeline in TRANSCRIBING.
        self.gate: asyncio.Event | None = None

    async def transcribe(self, audio: bytes, credential: str | None) -> str:
        self.calls.append((audio, credential))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.text


class FakeChat(ChatBackend):
    def __init__(self, reply: str = "general kenobi", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str | None]] = []

    async def complete(self, user_text: str, credential: str | None) -> str:
        self.calls.append((user_text, credential))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSynth(SpeechSynthesizer):
    def __init__(
        self,
        audio: bytes = b"RIFF-fake-speech",
        error: Exception | None = None,
        requires_credential: bool = True,
    ) -> None:
        self.audio = audio
        self.error = error
        self.requires_credential = requires_credential
        self.calls: list[tuple[str, str | None]] = []

    async def synthesize(self, text: str, credential: str | None) -> bytes:
        self.calls.append((text, credential))
        if self.error is not None:
            raise self.error
        return self.audio


@dataclass
class Rig:
    runtime: Runtime
    capture: FakeCapture = field(default_factory=FakeCapture)
    player: FakePlayer = field(default_factory=FakePlayer)
    transcriber: FakeTranscriber = field(default_factory=FakeTranscriber)
    chat: FakeChat = field(default_factory=FakeChat)
    synth: FakeSynth = field(default_factory=FakeSynth)
    fallback: FakeSynth | None = None


def make_rig(
    *,
    credentials: Credentials = ALL_CREDENTIALS,
    vad: VadConfig = MANUAL_VAD,
    clock: Any = None,
    **collaborators: Any,
) -> Rig:
    capture = collaborators.get("capture") or FakeCapture()
    player = collaborators.get("player") or FakePlayer()
    transcriber = collaborators.get("transcriber") or FakeTranscriber()
    chat = collaborators.get("chat") or FakeChat()
    synth = collaborators.get("synth") or FakeSynth()
    fallback = collaborators.get("fallback")

    context = RuntimeExecutionContext(
        session_id="sess_test",
        credentials=credentials,
        capture=capture,
        player=player,
        transcriber=transcriber,
        chat_backend=chat,
        synthesizer=synth,
        fallback_synthesizer=fallback,
    )
    kwargs: dict[str, Any] = {}
    if clock is not None:
        kwargs["clock"] = clock
    runtime = Runtime(
        initial_state=ControllerState(vad_config=vad),
        context=context,
        **kwargs,
    )
    return Rig(
        runtime=runtime,
        capture=capture,
        player=player,
        transcriber=transcriber,
        chat=chat,
        synth=synth,
        fallback=fallback,
    )
