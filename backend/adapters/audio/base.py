"""
Audio device contracts.

This module defines the *interface only*: no VAD, no timers, no pipeline
decisions live here.

Key invariants:
- Handles are opaque to the controller and created only on its request.
- Collaborators keep no reference to a handle beyond the call that uses it,
  except the capture/player implementation that issued it.
- Level readings are instantaneous dBFS values in LEVEL_FLOOR_DB..0.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from audio.artifacts import AudioArtifact


class AudioCapture(ABC):
    """
    Abstract microphone capture.

    Implementations are responsible for:
    - Recording into a temp file for the lifetime of one handle
    - Reporting the current input level on request
    - Handing the recorded file over as an AudioArtifact on stop()

    Non-responsibilities:
    - No speech detection
    - No deletion of artifacts once handed over
    """

    @abstractmethod
    def start_capture(self) -> Any:
        """
        Open the input device and start recording.

        Raises:
            CaptureFailureError if the device cannot be opened.
        """
        raise NotImplementedError

    @abstractmethod
    def stop(self, handle: Any) -> AudioArtifact:
        """
        Stop recording and return the captured audio.

        Ownership of the returned artifact passes to the caller.
        stop() on an already stopped handle raises CaptureFailureError.
        """
        raise NotImplementedError

    @abstractmethod
    def current_level_db(self, handle: Any) -> float:
        """Most recent input level for `handle` in dBFS."""
        raise NotImplementedError

    @abstractmethod
    def is_active(self, handle: Any) -> bool:
        """True while `handle` is recording."""
        raise NotImplementedError


class AudioPlayer(ABC):
    """
    Abstract audio output.

    play() must return immediately; completion is observed by polling
    is_playing().
    """

    @abstractmethod
    def play(self, artifact: AudioArtifact) -> Any:
        """
        Start playing the audio file held by `artifact`.

        The player reads the file but never releases it.
        """
        raise NotImplementedError

    @abstractmethod
    def is_playing(self, handle: Any) -> bool:
        raise NotImplementedError

    @abstractmethod
    def stop(self, handle: Any) -> None:
        """Stop playback early. Idempotent."""
        raise NotImplementedError
