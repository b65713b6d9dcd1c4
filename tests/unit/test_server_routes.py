# pylint: disable=missing-module-docstring,missing-function-docstring

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from config import AppConfig
from fakes import ALL_CREDENTIALS, MANUAL_VAD, FakeCapture, FakeChat, FakePlayer, FakeSynth, FakeTranscriber
from observability import logger
from server.app import create_app
from session.voice_session import VoiceSession


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(logger, "_print", lambda line: None)
    config = AppConfig(credentials=ALL_CREDENTIALS, vad=MANUAL_VAD, enable_json_logs=False)
    session = VoiceSession.build(
        config,
        capture=FakeCapture(),
        player=FakePlayer(),
        transcriber=FakeTranscriber(text="turn on the lights"),
        chat_backend=FakeChat(reply="Done."),
        synthesizer=FakeSynth(),
        session_id="sess_http",
    )
    with TestClient(create_app(config, session=session)) as test_client:
        yield test_client


def wait_for_state(client: TestClient, state: str) -> dict:
    body: dict = {}
    for _ in range(200):
        body = client.get("/session").json()
        if body["state"] == state:
            return body
        time.sleep(0.01)
    raise AssertionError(f"session never reached {state}: {body}")


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "session_id": "sess_http", "observers": 0}


def test_get_session_snapshot(client: TestClient) -> None:
    body = client.get("/session").json()

    assert body["type"] == "SESSION_SNAPSHOT"
    assert body["state"] == "IDLE"
    assert body["mode"] == "PUSH_TO_TALK"
    assert body["session_id"] == "sess_http"
    assert body["audio_level_db"] is None


def test_push_to_talk_round_trip(client: TestClient) -> None:
    started = client.post("/session/toggle")
    assert started.status_code == 200
    assert started.json()["state"] == "RECORDING"

    stopped = client.post("/session/toggle")
    assert stopped.status_code == 200
    assert stopped.json()["state"] != "RECORDING"

    body = wait_for_state(client, "IDLE")
    assert body["transcript"] == "turn on the lights"
    assert body["reply"] == "Done."
    assert body["error"] is None


def test_mode_and_stop(client: TestClient) -> None:
    armed = client.post("/session/mode", json={"mode": "ALWAYS_LISTENING"})
    assert armed.json()["state"] == "LISTENING"

    stopped = client.post("/session/stop")
    assert stopped.json()["state"] == "IDLE"
    assert stopped.json()["mode"] == "ALWAYS_LISTENING"


def test_invalid_mode_is_rejected(client: TestClient) -> None:
    response = client.post("/session/mode", json={"mode": "SOMETIMES"})

    assert response.status_code == 422


def test_websocket_streams_snapshots_and_accepts_controls(client: TestClient) -> None:
    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "SESSION_SNAPSHOT"
        assert first["state"] == "IDLE"

        ws.send_json({"type": "TOGGLE"})
        assert ws.receive_json()["state"] == "RECORDING"

        ws.send_json({"type": "LAUNCH"})
        error = ws.receive_json()
        assert error["type"] == "ERROR"
        assert error["reason"] == "unknown_message_type"

        ws.send_json({"type": "STOP"})
        assert ws.receive_json()["state"] == "IDLE"

    for _ in range(200):
        if client.get("/health").json()["observers"] == 0:
            break
        time.sleep(0.01)
    assert client.get("/health").json()["observers"] == 0
