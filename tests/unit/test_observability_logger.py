# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from pathlib import PurePosixPath
from typing import Any

import pytest

from observability import logger
from orchestrator.enums.state import SessionState


def test_log_event_emits_valid_jsonl(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """
    Contract:
    - log_event emits exactly one JSONL line
    - payload is serialized as-is
    - output sink is patchable
    """
    captured: list[str] = []

    def fake_print(line: str) -> None:
        captured.append(line)

    # Patch the explicit output sink used by logger
    monkeypatch.setattr(logger, "_print", fake_print)

    payload: dict[str, Any] = {
        "event_type": "TEST",
        "value": 123,
    }

    logger.log_event(payload)

    # Exactly one line emitted
    assert len(captured) == 1

    # Must be valid JSON
    decoded = json.loads(captured[0])

    # Payload must be preserved exactly
    assert decoded == payload


def test_log_event_never_raises_on_unserializable_payload(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    logger.log_event({"ts_ms": 5, "event_type": "TEST", "bad": object()})

    assert len(captured) == 1
    decoded = json.loads(captured[0])
    assert decoded["event_type"] == "LOGGER_SERIALIZATION_ERROR"
    assert decoded["ts_ms"] == 5


def test_set_enabled_false_discards_lines(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setattr(logger, "_print", logger._stdout_print)  # pylint: disable=protected-access

    logger.set_enabled(False)
    logger.log_event({"event_type": "HIDDEN"})
    logger.set_enabled(True)
    logger.log_event({"event_type": "SHOWN"})

    out = capsys.readouterr().out.splitlines()
    assert [json.loads(line)["event_type"] for line in out] == ["SHOWN"]


def test_log_event_serializes_enums_and_paths(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: list[str] = []
    monkeypatch.setattr(logger, "_print", captured.append)

    logger.log_event({
        "event_type": "ARTIFACT_RELEASED",
        "state": SessionState.LISTENING,
        "path": PurePosixPath("/tmp/utt_1.wav"),
    })

    assert json.loads(captured[0]) == {
        "event_type": "ARTIFACT_RELEASED",
        "state": "LISTENING",
        "path": "/tmp/utt_1.wav",
    }
