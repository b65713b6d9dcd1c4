"""
Listen mode enumeration.

Modes are orthogonal to control states:
- State answers: "What is the session doing?"
- Mode answers:  "What happens after an utterance finishes?"
"""

from __future__ import annotations

from enum import Enum


class ListenMode(str, Enum):
    """
    Operating mode of the session, owned by the caller.

    PUSH_TO_TALK:
        Capture is started and stopped by a manual toggle.
        The session returns to IDLE after every utterance.

    ALWAYS_LISTENING:
        Level sampling is armed continuously and the VAD decides
        utterance boundaries. The session re-arms to LISTENING after
        every utterance.
    """

    PUSH_TO_TALK = "PUSH_TO_TALK"
    ALWAYS_LISTENING = "ALWAYS_LISTENING"
