"""
Speech synthesis adapter contract.

This module defines the *interface only*: no playback, no file handling,
no retries or orchestration decisions live here.

Key invariants:
- One call synthesizes the full reply text.
- Output is a complete encoded audio file (bytes) the AudioPlayer can play.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    """
    Abstract interface for a text-to-speech service.

    Implementations are responsible for:
    - Calling the provider with the reply text
    - Returning encoded audio bytes
    - Raising ConfigurationMissingError / NetworkFailureError on failure
    """

    # Whether synthesize() needs a credential at all. Local engines do not.
    requires_credential: bool = True

    @abstractmethod
    async def synthesize(self, text: str, credential: str | None) -> bytes:
        """
        Synthesize `text` to audio.

        Contract:
        - `text` is non-empty.
        - The adapter MUST NOT retry internally.
        - The adapter MUST NOT block the event loop; blocking engines run
          in a worker thread.
        """
        raise NotImplementedError
