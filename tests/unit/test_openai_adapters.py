# pylint: disable=missing-module-docstring,missing-class-docstring,missing-function-docstring

import asyncio
from types import SimpleNamespace
from typing import Any

import httpx
import openai
import pytest

import adapters.asr.openai_whisper as whisper_mod
import adapters.llm.openclaw as openclaw_mod
import adapters.tts.openai_speech as speech_mod
from adapters import openai_client
from adapters.asr.openai_whisper import OpenAIWhisperTranscriber
from adapters.errors import ConfigurationMissingError, NetworkFailureError
from adapters.llm.openclaw import OpenClawChatBackend
from adapters.tts.openai_speech import OpenAISpeechSynthesizer


class _Endpoint:
    def __init__(self, result: Any = None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "http://127.0.0.1:18789/v1"))


def _install(monkeypatch: pytest.MonkeyPatch, module: Any, client: Any) -> list[dict[str, Any]]:
    builds: list[dict[str, Any]] = []

    def fake_build(api_key: str | None, **kwargs: Any) -> Any:
        builds.append({"api_key": api_key, **kwargs})
        if not api_key:
            raise ConfigurationMissingError("missing")
        return client

    monkeypatch.setattr(module, "build_client", fake_build)
    return builds


# ---------------------------------------------------------------------------
# Client cache
# ---------------------------------------------------------------------------

def test_build_client_requires_a_credential() -> None:
    with pytest.raises(ConfigurationMissingError):
        openai_client.build_client(None, what="Transcription")
    with pytest.raises(ConfigurationMissingError):
        openai_client.build_client("", what="Transcription")


def test_build_client_is_cached_per_credential() -> None:
    openai_client.clear_clients()
    a = openai_client.build_client("sk-a", what="x")
    again = openai_client.build_client("sk-a", what="x")
    b = openai_client.build_client("sk-b", what="x")
    routed = openai_client.build_client("sk-a", what="x", base_url="http://127.0.0.1:18789/v1")

    assert a is again
    assert a is not b
    assert a is not routed
    openai_client.clear_clients()


# ---------------------------------------------------------------------------
# OpenClaw
# ---------------------------------------------------------------------------

def test_openclaw_sends_one_user_turn(monkeypatch: pytest.MonkeyPatch) -> None:
    completions = _Endpoint(
        result=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="It is noon."))]
        )
    )
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    builds = _install(monkeypatch, openclaw_mod, client)

    backend = OpenClawChatBackend(base_url="http://127.0.0.1:18789/")
    reply = asyncio.run(backend.complete("what time is it", "claw-token"))

    assert reply == "It is noon."
    assert builds[0]["api_key"] == "claw-token"
    assert builds[0]["base_url"] == "http://127.0.0.1:18789/v1"
    assert builds[0]["headers"] == {"x-openclaw-agent-id": "main"}
    assert completions.calls == [{
        "model": "openclaw",
        "messages": [{"role": "user", "content": "what time is it"}],
        "stream": False,
    }]


def test_openclaw_empty_reply_is_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    completions = _Endpoint(result=SimpleNamespace(choices=[]))
    _install(monkeypatch, openclaw_mod, SimpleNamespace(chat=SimpleNamespace(completions=completions)))

    with pytest.raises(NetworkFailureError, match="No reply from OpenClaw"):
        asyncio.run(OpenClawChatBackend().complete("hi", "claw-token"))


def test_openclaw_transport_error_is_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    completions = _Endpoint(error=_connection_error())
    _install(monkeypatch, openclaw_mod, SimpleNamespace(chat=SimpleNamespace(completions=completions)))

    with pytest.raises(NetworkFailureError):
        asyncio.run(OpenClawChatBackend().complete("hi", "claw-token"))


def test_openclaw_without_token_is_configuration_missing() -> None:
    with pytest.raises(ConfigurationMissingError):
        asyncio.run(OpenClawChatBackend().complete("hi", None))


# ---------------------------------------------------------------------------
# Whisper
# ---------------------------------------------------------------------------

def test_whisper_uploads_audio_and_returns_text(monkeypatch: pytest.MonkeyPatch) -> None:
    transcriptions = _Endpoint(result=SimpleNamespace(text="hello"))
    client = SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions))
    _install(monkeypatch, whisper_mod, client)

    text = asyncio.run(OpenAIWhisperTranscriber().transcribe(b"RIFF", "sk-whisper"))

    assert text == "hello"
    assert transcriptions.calls == [{"model": "whisper-1", "file": ("audio.wav", b"RIFF")}]


def test_whisper_empty_text_is_passed_through(monkeypatch: pytest.MonkeyPatch) -> None:
    transcriptions = _Endpoint(result=SimpleNamespace(text=""))
    _install(monkeypatch, whisper_mod, SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions)))

    assert asyncio.run(OpenAIWhisperTranscriber().transcribe(b"RIFF", "sk")) == ""


def test_whisper_malformed_response_is_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    transcriptions = _Endpoint(result=SimpleNamespace())
    _install(monkeypatch, whisper_mod, SimpleNamespace(audio=SimpleNamespace(transcriptions=transcriptions)))

    with pytest.raises(NetworkFailureError):
        asyncio.run(OpenAIWhisperTranscriber().transcribe(b"RIFF", "sk"))


# ---------------------------------------------------------------------------
# Speech
# ---------------------------------------------------------------------------

def test_speech_requests_wav_with_nova(monkeypatch: pytest.MonkeyPatch) -> None:
    speech = _Endpoint(result=SimpleNamespace(content=b"RIFF-audio"))
    _install(monkeypatch, speech_mod, SimpleNamespace(audio=SimpleNamespace(speech=speech)))

    audio = asyncio.run(OpenAISpeechSynthesizer().synthesize("hi there", "sk-tts"))

    assert audio == b"RIFF-audio"
    assert speech.calls == [{
        "model": "tts-1",
        "voice": "nova",
        "input": "hi there",
        "response_format": "wav",
    }]


def test_speech_transport_error_is_network_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    speech = _Endpoint(error=_connection_error())
    _install(monkeypatch, speech_mod, SimpleNamespace(audio=SimpleNamespace(speech=speech)))

    with pytest.raises(NetworkFailureError):
        asyncio.run(OpenAISpeechSynthesizer().synthesize("hi", "sk-tts"))
