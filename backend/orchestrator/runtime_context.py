"""
Runtime execution context.

Provides Runtime with access to the imperative collaborators needed for
command execution and side effects (audio devices, network services,
credentials).

This module contains:
- The collaborator bundle handed to Runtime
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from adapters.asr.base import Transcriber
    from adapters.audio.base import AudioCapture, AudioPlayer
    from adapters.llm.base import ChatBackend
    from adapters.tts.base import SpeechSynthesizer
    from config import Credentials


@dataclass(frozen=True)
class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    Runtime is allowed to:
    - Call collaborators
    - Read credentials

    Runtime is NOT allowed to:
    - Mutate credentials
    - Hand a capture or playback handle to anyone but the collaborator
      that issued it

    fallback_synthesizer is used for the SPEAK stage when no synthesis
    credential is configured.
    """

    session_id: str
    credentials: Credentials
    capture: AudioCapture
    player: AudioPlayer
    transcriber: Transcriber
    chat_backend: ChatBackend
    synthesizer: SpeechSynthesizer
    fallback_synthesizer: SpeechSynthesizer | None = None
