"""
Microphone capture and speaker playback via PortAudio (sounddevice).

Capture:
- One InputStream per handle, written straight to a WAV temp file
- The stream callback keeps the most recent RMS level in dBFS
- stop() hands the file over as an AudioArtifact

Playback:
- sd.play() is non-blocking; completion is polled through the stream
"""

from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import sounddevice as sd
import soundfile as sf

from adapters.audio.base import AudioCapture, AudioPlayer
from adapters.errors import CaptureFailureError
from audio.artifacts import AudioArtifact
from audio.levels import rms_dbfs
from constants import (
    CAPTURE_CHANNELS,
    CAPTURE_FILE_PREFIX,
    CAPTURE_FILE_SUFFIX,
    CAPTURE_SAMPLE_RATE_HZ,
    LEVEL_FLOOR_DB,
)


# =============================================================================
# Capture
# =============================================================================

@dataclass
class _CaptureHandle:
    path: Path
    writer: sf.SoundFile
    stream: Any = None
    level_db: float = LEVEL_FLOOR_DB
    stopped: bool = False
    failed: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)


class SoundDeviceCapture(AudioCapture):
    """Default-input-device capture to 16-bit PCM WAV."""

    def __init__(
        self,
        *,
        sample_rate_hz: int = CAPTURE_SAMPLE_RATE_HZ,
        channels: int = CAPTURE_CHANNELS,
        device: int | str | None = None,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._channels = channels
        self._device = device

    def start_capture(self) -> _CaptureHandle:
        fd, name = tempfile.mkstemp(prefix=CAPTURE_FILE_PREFIX, suffix=CAPTURE_FILE_SUFFIX)
        os.close(fd)
        path = Path(name)

        try:
            writer = sf.SoundFile(
                str(path),
                mode="w",
                samplerate=self._sample_rate_hz,
                channels=self._channels,
                subtype="PCM_16",
                format="WAV",
            )
        except (RuntimeError, OSError) as exc:
            path.unlink(missing_ok=True)
            raise CaptureFailureError(f"Cannot open capture file: {exc}") from exc

        handle = _CaptureHandle(path=path, writer=writer)

        def _callback(indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
            # PortAudio thread: no logging, no raising. Overflows drop frames.
            with handle.lock:
                if handle.stopped:
                    return
                handle.writer.write(indata.copy())
                handle.level_db = rms_dbfs(indata)

        def _finished() -> None:
            with handle.lock:
                if not handle.stopped:
                    handle.failed = True

        try:
            stream = sd.InputStream(
                samplerate=self._sample_rate_hz,
                channels=self._channels,
                dtype="float32",
                device=self._device,
                callback=_callback,
                finished_callback=_finished,
            )
            stream.start()
        except (sd.PortAudioError, OSError, ValueError) as exc:
            writer.close()
            path.unlink(missing_ok=True)
            raise CaptureFailureError(f"Cannot open input device: {exc}") from exc

        handle.stream = stream
        return handle

    def stop(self, handle: _CaptureHandle) -> AudioArtifact:
        with handle.lock:
            if handle.stopped:
                raise CaptureFailureError("capture already stopped")
            handle.stopped = True

        try:
            handle.stream.stop()
            handle.stream.close()
        except sd.PortAudioError as exc:
            handle.writer.close()
            handle.path.unlink(missing_ok=True)
            raise CaptureFailureError(f"Cannot stop input device: {exc}") from exc

        handle.writer.close()
        return AudioArtifact(path=handle.path)

    def current_level_db(self, handle: _CaptureHandle) -> float:
        with handle.lock:
            return handle.level_db

    def is_active(self, handle: _CaptureHandle) -> bool:
        with handle.lock:
            if handle.stopped or handle.failed:
                return False
        return bool(handle.stream is not None and handle.stream.active)


# =============================================================================
# Playback
# =============================================================================

@dataclass
class _PlaybackHandle:
    stream: Any
    stopped: bool = False


class SoundDevicePlayer(AudioPlayer):
    """Default-output-device playback of whole audio files."""

    def __init__(self, *, device: int | str | None = None) -> None:
        self._device = device

    def play(self, artifact: AudioArtifact) -> _PlaybackHandle:
        data, sample_rate = sf.read(str(artifact.path), dtype="float32")
        sd.play(data, samplerate=sample_rate, device=self._device)
        return _PlaybackHandle(stream=sd.get_stream())

    def is_playing(self, handle: _PlaybackHandle) -> bool:
        if handle.stopped:
            return False
        return bool(handle.stream.active)

    def stop(self, handle: _PlaybackHandle) -> None:
        if handle.stopped:
            return
        handle.stopped = True
        if handle.stream.active:
            sd.stop()
