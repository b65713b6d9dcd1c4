"""
OpenAI Whisper transcription adapter.

This module is deliberately "dumb":
- Accepts one complete utterance as encoded audio bytes
- Uploads it to the transcription endpoint
- Returns the text

Must NOT:
- Know about run IDs
- Trim, filter or interpret the transcript
- Retry
"""

from __future__ import annotations

from openai import OpenAIError

from adapters.asr.base import Transcriber
from adapters.errors import NetworkFailureError
from adapters.openai_client import build_client
from constants import TRANSCRIPTION_MODEL, TRANSCRIPTION_UPLOAD_NAME


class OpenAIWhisperTranscriber(Transcriber):
    """Whole-utterance transcription via the OpenAI audio API."""

    def __init__(self, *, model: str = TRANSCRIPTION_MODEL) -> None:
        self._model = model

    async def transcribe(self, audio: bytes, credential: str | None) -> str:
        client = build_client(credential, what="Transcription")

        try:
            result = await client.audio.transcriptions.create(
                model=self._model,
                file=(TRANSCRIPTION_UPLOAD_NAME, audio),
            )
        except OpenAIError as exc:
            raise NetworkFailureError(f"Transcription failed: {exc}") from exc

        text = getattr(result, "text", None)
        if not isinstance(text, str):
            raise NetworkFailureError("Transcription response carried no text")
        return text
