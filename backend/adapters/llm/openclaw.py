"""
OpenClaw chat backend adapter.

OpenClaw exposes an OpenAI-compatible chat completions endpoint on the local
gateway. Each call sends exactly one user message to the `main` agent; the
agent keeps its own conversation memory server-side.
"""

from __future__ import annotations

from openai import OpenAIError

from adapters.errors import NetworkFailureError
from adapters.llm.base import ChatBackend
from adapters.openai_client import build_client
from constants import (
    OPENCLAW_AGENT_HEADER,
    OPENCLAW_AGENT_ID,
    OPENCLAW_DEFAULT_URL,
    OPENCLAW_MODEL,
)


class OpenClawChatBackend(ChatBackend):
    """
    Concrete single-turn chat backend.

    Design notes:
    - No streaming: the reply is spoken only once complete
    - No retries
    - No prompt assembly: the transcript is sent verbatim
    """

    def __init__(
        self,
        *,
        base_url: str = OPENCLAW_DEFAULT_URL,
        agent_id: str = OPENCLAW_AGENT_ID,
        model: str = OPENCLAW_MODEL,
    ) -> None:
        self._api_base = f"{base_url.rstrip('/')}/v1"
        self._agent_id = agent_id
        self._model = model

    async def complete(self, user_text: str, credential: str | None) -> str:
        client = build_client(
            credential,
            what="OpenClaw gateway",
            base_url=self._api_base,
            headers={OPENCLAW_AGENT_HEADER: self._agent_id},
        )

        try:
            response = await client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": user_text}],
                stream=False,
            )
        except OpenAIError as exc:
            raise NetworkFailureError(f"OpenClaw request failed: {exc}") from exc

        reply = self._extract_reply(response)
        if not reply:
            raise NetworkFailureError("No reply from OpenClaw")
        return reply

    @staticmethod
    def _extract_reply(response: object) -> str | None:
        """Pull the first choice's message content, tolerating odd shapes."""
        choices = getattr(response, "choices", None)
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if isinstance(content, str) and content.strip():
            return content
        return None
