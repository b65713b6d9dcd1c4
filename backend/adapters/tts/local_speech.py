"""
Offline speech synthesis via the platform TTS engine (pyttsx3).

Used when no synthesis credential is configured, so a reply can still be
spoken. pyttsx3 is blocking and not thread-safe across engines, so each
call builds its own engine inside a worker thread.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

import pyttsx3

from adapters.errors import NetworkFailureError
from adapters.tts.base import SpeechSynthesizer
from constants import LOCAL_SYNTHESIS_RATE_WPM, SYNTHESIS_FORMAT


class LocalSpeechSynthesizer(SpeechSynthesizer):
    """Credential-free synthesizer backed by the OS speech engine."""

    requires_credential = False

    def __init__(self, *, rate_wpm: int = LOCAL_SYNTHESIS_RATE_WPM) -> None:
        self._rate_wpm = rate_wpm

    async def synthesize(self, text: str, credential: str | None) -> bytes:
        return await asyncio.to_thread(self._render, text)

    def _render(self, text: str) -> bytes:
        fd, name = tempfile.mkstemp(suffix=f".{SYNTHESIS_FORMAT}")
        os.close(fd)
        path = Path(name)
        try:
            try:
                engine = pyttsx3.init()
                engine.setProperty("rate", self._rate_wpm)
                engine.save_to_file(text, str(path))
                engine.runAndWait()
            except (RuntimeError, OSError) as exc:
                raise NetworkFailureError(f"Local speech engine failed: {exc}") from exc

            audio = path.read_bytes()
            if not audio:
                raise NetworkFailureError("Local speech engine produced no audio")
            return audio
        finally:
            path.unlink(missing_ok=True)
