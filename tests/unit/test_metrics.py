# pylint: disable=missing-module-docstring,missing-function-docstring

from typing import Any

import pytest

from observability import metrics


@pytest.fixture
def emitted(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    captured: list[dict[str, Any]] = []
    monkeypatch.setattr(metrics, "log_event", captured.append)
    return captured


def test_timed_emits_exactly_one_metric(emitted: list[dict[str, Any]]) -> None:
    before = metrics.active_timer_count()

    with metrics.timed("stage_transcribe_ms", session_id="s1", details={"run_id": 3}):
        pass

    assert metrics.active_timer_count() == before
    assert len(emitted) == 1
    event = emitted[0]
    assert event["event_type"] == "METRIC_TIMER"
    assert event["metric"] == "stage_transcribe_ms"
    assert event["session_id"] == "s1"
    assert event["details"] == {"run_id": 3}
    assert event["value_ms"] >= 0


def test_timed_still_emits_when_block_raises(emitted: list[dict[str, Any]]) -> None:
    before = metrics.active_timer_count()

    with pytest.raises(RuntimeError):
        with metrics.timed("stage_dispatch_ms"):
            raise RuntimeError("boom")

    assert metrics.active_timer_count() == before
    assert [e["metric"] for e in emitted] == ["stage_dispatch_ms"]


def test_stop_unknown_timer_returns_none(emitted: list[dict[str, Any]]) -> None:
    assert metrics.stop_timer("timer_missing") is None
    assert emitted == []


def test_emit_metric_flattens_tags(emitted: list[dict[str, Any]]) -> None:
    metrics.emit_metric("utterance_speech_ms", 812.0, session_id="s1", tags=(("source", "vad"),))

    assert emitted[0]["event_type"] == "METRIC_VALUE"
    assert emitted[0]["value"] == 812.0
    assert emitted[0]["tags"] == {"source": "vad"}
