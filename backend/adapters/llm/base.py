"""
Chat backend adapter contract.

Purpose:
- Define the interface for single-turn chat completions.
- Keep all orchestration, retries, timing, and cancellation semantics
  OUT of the adapter.

Rules:
- This file contains NO logic.
- No retries.
- No conversation memory: every call is one user turn.
- No knowledge of TTS, UI, or state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ChatBackend(ABC):
    """
    Abstract base class for chat backends.

    The adapter is a *dumb pipe*:
    user text -> vendor -> reply text.
    """

    @abstractmethod
    async def complete(self, user_text: str, credential: str | None) -> str:
        """
        Send `user_text` as a single user turn and return the reply.

        Contract:
        - Must NOT retry internally.
        - Must raise ConfigurationMissingError if `credential` is None.
        - Must raise NetworkFailureError if the call fails or no reply
          content is present.
        """
        raise NotImplementedError
