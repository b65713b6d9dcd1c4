# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any

import pytest

import audio.artifacts as artifacts_mod
from audio.artifacts import AudioArtifact, owned


@pytest.fixture
def logged(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(artifacts_mod, "log_event", emitted.append)
    return emitted


def test_from_bytes_writes_a_temp_file(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav", run_id=4)

    assert artifact.path.exists()
    assert artifact.path.name.startswith("t_")
    assert artifact.path.suffix == ".wav"
    assert artifact.read_bytes() == b"abc"
    assert artifact.run_id == 4

    artifact.release()


def test_release_is_exactly_once(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav")

    assert artifact.release() is True
    assert artifact.release() is False

    assert artifact.released
    assert not artifact.path.exists()
    assert [e["event_type"] for e in logged] == ["ARTIFACT_RELEASED"]


def test_read_after_release_raises(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav")
    artifact.release()

    with pytest.raises(RuntimeError):
        artifact.read_bytes()


def test_owned_releases_on_success(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav")

    with owned(artifact) as held:
        assert held.read_bytes() == b"abc"

    assert not artifact.path.exists()


def test_owned_releases_when_block_raises(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav")

    with pytest.raises(ValueError):
        with owned(artifact):
            raise ValueError("stage failed")

    assert artifact.released
    assert not artifact.path.exists()


def test_release_of_missing_file_still_counts(logged: list[dict[str, Any]]) -> None:
    artifact = AudioArtifact.from_bytes(b"abc", prefix="t_", suffix=".wav")
    artifact.path.unlink()

    assert artifact.release() is True
    assert logged[-1]["event_type"] == "ARTIFACT_RELEASED"
