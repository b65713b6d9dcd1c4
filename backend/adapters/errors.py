"""
Collaborator error taxonomy.

Adapters translate vendor exceptions into these types so the runtime can map
every failure onto a user-visible ErrorKind without knowing any vendor SDK.
"""

from __future__ import annotations

from orchestrator.enums.service import ErrorKind


class VoiceSessionError(RuntimeError):
    """Base class for failures surfaced by external collaborators."""

    kind: ErrorKind = ErrorKind.NETWORK_FAILURE


class ConfigurationMissingError(VoiceSessionError):
    """A credential required by a pipeline stage is not configured."""

    kind = ErrorKind.CONFIGURATION_MISSING


class CaptureFailureError(VoiceSessionError):
    """The capture device could not be opened or stopped cleanly."""

    kind = ErrorKind.CAPTURE_FAILURE


class NetworkFailureError(VoiceSessionError):
    """A collaborator call failed or returned malformed data."""

    kind = ErrorKind.NETWORK_FAILURE


def classify(exc: BaseException) -> ErrorKind:
    """Map any exception escaping a collaborator to an ErrorKind."""
    if isinstance(exc, VoiceSessionError):
        return exc.kind
    return ErrorKind.NETWORK_FAILURE
