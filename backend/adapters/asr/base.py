"""
Transcription adapter contract.

This module defines the *interface only*: no buffering, endpointing,
retries, timers, or orchestration decisions live here.

Key invariants:
- One call transcribes one complete utterance.
- The adapter never touches the artifact file; it receives bytes.
- Credentials are passed per call; adapters hold no configuration state
  beyond endpoint/model choices.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class Transcriber(ABC):
    """
    Abstract interface for a whole-utterance transcription service.

    Implementations are responsible for:
    - Uploading the audio bytes to the provider
    - Returning raw transcript text (may be empty)
    - Raising ConfigurationMissingError / NetworkFailureError on failure

    Non-responsibilities:
    - No trimming or interpretation of the transcript
    - No state machine logic
    """

    @abstractmethod
    async def transcribe(self, audio: bytes, credential: str | None) -> str:
        """
        Transcribe one utterance.

        Raises:
            ConfigurationMissingError if `credential` is None.
            NetworkFailureError if the call fails or the response is malformed.
        """
        raise NotImplementedError
