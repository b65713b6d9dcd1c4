"""
Scoped ownership of temporary audio files.

Captured utterances and synthesized replies are written to temp files by the
audio collaborators. Exactly one owner holds each file at a time and the file
is deleted exactly once, on every exit path of the scope that consumes it.
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from observability.logger import log_event


@dataclass
class AudioArtifact:
    """
    One temporary audio file and its release bookkeeping.

    `release()` is idempotent; only the first call touches the filesystem.
    """

    path: Path
    run_id: int = 0
    _released: bool = field(default=False, repr=False)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        prefix: str,
        suffix: str,
        run_id: int = 0,
    ) -> AudioArtifact:
        """Persist `data` to a fresh temp file and take ownership of it."""
        fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
        except BaseException:
            Path(name).unlink(missing_ok=True)
            raise
        return cls(path=Path(name), run_id=run_id)

    @property
    def released(self) -> bool:
        return self._released

    def read_bytes(self) -> bytes:
        if self._released:
            raise RuntimeError(f"artifact already released: {self.path}")
        return self.path.read_bytes()

    def release(self) -> bool:
        """
        Delete the underlying file.

        Returns True if this call performed the release, False if the
        artifact had already been released.
        """
        if self._released:
            return False
        self._released = True
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            log_event({
                "event_type": "ARTIFACT_RELEASE_FAILED",
                "run_id": self.run_id,
                "path": self.path,
                "error": f"{type(exc).__name__}: {exc}",
            })
        else:
            log_event({
                "event_type": "ARTIFACT_RELEASED",
                "run_id": self.run_id,
                "path": self.path,
            })
        return True


@contextmanager
def owned(artifact: AudioArtifact) -> Iterator[AudioArtifact]:
    """
    Hold `artifact` for the duration of the block and release it afterwards,
    whether the block succeeds or raises.
    """
    try:
        yield artifact
    finally:
        artifact.release()
