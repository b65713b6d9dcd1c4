"""
Pipeline stage and error kind enumerations.

Rules:
- These enums identify stages and failure categories only.
- They must NOT encode behavior or lifecycle rules.
- Reducer logic decides how stages are started and resolved.
"""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """
    Stages of the per-utterance pipeline, in execution order.

    Each stage is delegated to one external collaborator and runs at most
    once per utterance.
    """

    TRANSCRIBE = "TRANSCRIBE"
    DISPATCH = "DISPATCH"
    SPEAK = "SPEAK"


class ErrorKind(str, Enum):
    """
    User-visible failure categories.

    Silent discards (too-short utterance, empty transcript) are not errors
    and have no member here.
    """

    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
    CAPTURE_FAILURE = "CAPTURE_FAILURE"
    NETWORK_FAILURE = "NETWORK_FAILURE"
