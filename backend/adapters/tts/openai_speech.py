"""OpenAI text-to-speech adapter."""

from __future__ import annotations

from openai import OpenAIError

from adapters.errors import NetworkFailureError
from adapters.openai_client import build_client
from adapters.tts.base import SpeechSynthesizer
from constants import SYNTHESIS_FORMAT, SYNTHESIS_MODEL, SYNTHESIS_VOICE


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """
    Synthesizes the full reply in one request.

    The response is a complete WAV file so the player can start it without
    any decoding on our side.
    """

    requires_credential = True

    def __init__(
        self,
        *,
        model: str = SYNTHESIS_MODEL,
        voice: str = SYNTHESIS_VOICE,
        response_format: str = SYNTHESIS_FORMAT,
    ) -> None:
        self._model = model
        self._voice = voice
        self._format = response_format

    async def synthesize(self, text: str, credential: str | None) -> bytes:
        client = build_client(credential, what="Speech synthesis")

        try:
            response = await client.audio.speech.create(
                model=self._model,
                voice=self._voice,
                input=text,
                response_format=self._format,
            )
        except OpenAIError as exc:
            raise NetworkFailureError(f"Speech synthesis failed: {exc}") from exc

        audio = response.content
        if not audio:
            raise NetworkFailureError("Speech synthesis returned no audio")
        return audio
