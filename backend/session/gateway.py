"""
Session gateway.

Responsibilities:
- Owns the process-wide VoiceSession lifecycle
- Tracks observer connections independently of controller state
- Routes inbound JSON control messages -> controller events
- Fans controller snapshots out to observers

NOT responsible for:
- Executing commands
- Collaborator calls (capture, transcription, chat, synthesis)
- Any state machine logic
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import uuid4

from observability.logger import log_event
from orchestrator.enums.mode import ListenMode
from orchestrator.snapshot import SessionSnapshot
from session.connection_status import ConnectionStatus
from session.voice_session import VoiceSession


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_connection_id() -> str:
    return f"conn_{uuid4().hex[:8]}"


def _error(reason: str, **extra: Any) -> dict[str, Any]:
    return {"type": "ERROR", "reason": reason, **extra}


# ------------------------------------------------------------------
# Gateway result / observer connection
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send back to the client that sent the message

    accepted:
        True if the message was translated into a controller event
    """
    outbound_json: tuple[dict[str, Any], ...] = ()
    accepted: bool = False


@dataclass
class ObserverConnection:
    """One subscribed observer (e.g. a WebSocket client)."""

    connection_id: str
    snapshots: asyncio.Queue[SessionSnapshot]
    status: ConnectionStatus = ConnectionStatus.UP
    connected_at_ms: int = field(default_factory=_now_ms)


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one voice session == one process.

    Observers may connect and disconnect at any time; the session keeps
    running in between.
    """

    def __init__(self, *, session: VoiceSession) -> None:
        self.session = session
        self._observers: dict[str, ObserverConnection] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.session.start()

    async def close(self) -> None:
        for conn in list(self._observers.values()):
            self.disconnect(conn, reason="gateway_closed")
        await self.session.close()

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def connect(self) -> ObserverConnection:
        """
        Register a new observer.

        The observer's queue already holds the current snapshot.
        """
        conn = ObserverConnection(
            connection_id=_new_connection_id(),
            snapshots=self.session.runtime.subscribe(),
        )
        self._observers[conn.connection_id] = conn
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "OBSERVER_CONNECTED",
            "connection_id": conn.connection_id,
            "observers": len(self._observers),
            **self.session.log_context(),
        })
        return conn

    def disconnect(self, conn: ObserverConnection, reason: str | None = None) -> None:
        """Unsubscribe an observer. Idempotent."""
        if conn.status is ConnectionStatus.DOWN:
            return
        conn.status = ConnectionStatus.DOWN
        self.session.runtime.unsubscribe(conn.snapshots)
        self._observers.pop(conn.connection_id, None)
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "OBSERVER_DISCONNECTED",
            "connection_id": conn.connection_id,
            "reason": reason,
            "observers": len(self._observers),
            **self.session.log_context(),
        })

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # ------------------------------------------------------------------
    # Inbound control
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Decode a raw WebSocket text frame and route it."""
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return GatewayResult(outbound_json=(_error("invalid_json"),))

        if not isinstance(data, dict):
            return GatewayResult(outbound_json=(_error("message_not_an_object"),))

        return await self.handle_control(data)

    async def handle_control(self, data: Mapping[str, Any]) -> GatewayResult:
        """
        Translate one control message into a controller event.

        Supported messages:
            {"type": "TOGGLE"}
            {"type": "SET_MODE", "mode": "PUSH_TO_TALK" | "ALWAYS_LISTENING"}
            {"type": "STOP"}

        Returns once the event has been reduced, so the caller sees the
        resulting snapshot.
        """
        runtime = self.session.runtime
        msg_type = data.get("type")

        if msg_type == "TOGGLE":
            runtime.toggle()
        elif msg_type == "SET_MODE":
            try:
                mode = ListenMode(data.get("mode"))
            except ValueError:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "INVALID_LISTEN_MODE",
                    "session_id": self.session.session_id,
                    "mode": data.get("mode"),
                })
                return GatewayResult(
                    outbound_json=(_error("invalid_mode", mode=data.get("mode")),)
                )
            runtime.set_listen_mode(mode)
        elif msg_type == "STOP":
            runtime.stop_listening()
        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "session_id": self.session.session_id,
            })
            return GatewayResult(
                outbound_json=(_error("unknown_message_type", msg_type=msg_type),)
            )

        await runtime.drain()
        return GatewayResult(
            outbound_json=(runtime.snapshot.to_json(),),
            accepted=True,
        )
