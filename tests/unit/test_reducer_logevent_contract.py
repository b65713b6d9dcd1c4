# pylint: disable=missing-module-docstring,missing-function-docstring

from orchestrator.commands import LogEvent
from orchestrator.enums.state import SessionState
from orchestrator.events import EventType, LevelSample, ToggleRecording
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import ControllerState


def test_reducer_emits_logevent_with_required_fields():
    state = ControllerState(state=SessionState.IDLE)

    event = ToggleRecording(
        event_type=EventType.TOGGLE_RECORDING,
        ts_ms=123,
    )

    _, commands = reduce(state, event)

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    payload = log_events[0].event

    assert payload["ts_ms"] == 123
    assert "state" in payload
    assert "mode" in payload
    assert payload["event_type"] == "TOGGLE_RECORDING"
    assert "decision" in payload
    assert "run_id" in payload
    assert "capture_live" in payload
    assert isinstance(payload["details"], dict)


def test_state_change_is_logged_last_with_endpoints():
    _, commands = reduce(
        ControllerState(),
        ToggleRecording(event_type=EventType.TOGGLE_RECORDING, ts_ms=0),
    )

    last = commands[-1]
    assert isinstance(last, LogEvent)
    assert last.event["decision"] == "state_changed"
    assert last.event["details"]["from_state"] == "IDLE"
    assert last.event["details"]["to_state"] == "RECORDING"


def test_ignored_event_is_logged_with_reason():
    _, commands = reduce(
        ControllerState(),
        LevelSample(event_type=EventType.LEVEL_SAMPLE, ts_ms=0, run_id=7, level_db=-3.0),
    )

    assert len(commands) == 1
    assert commands[0].event["decision"] == "ignore"
    assert commands[0].event["details"]["reason"] == "level_sample_stale"
