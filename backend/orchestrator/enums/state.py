"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """
    High-level deterministic control states for the single voice session.

    LISTENING means always-listening mode is armed and no speech has been
    detected yet. RECORDING means an utterance is being captured.
    """

    IDLE = "IDLE"
    LISTENING = "LISTENING"
    RECORDING = "RECORDING"
    TRANSCRIBING = "TRANSCRIBING"
    DISPATCHING = "DISPATCHING"
    SPEAKING = "SPEAKING"
