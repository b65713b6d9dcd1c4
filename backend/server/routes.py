"""
Route registration for the voice session API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire the gateway to WebSocket lifecycle
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from observability.logger import log_event
from orchestrator.enums.mode import ListenMode
from session.gateway import GatewayResult, ObserverConnection, SessionGateway


class ModeRequest(BaseModel):
    mode: ListenMode


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    def _gateway() -> SessionGateway:
        return app.state.gateway

    @app.get("/health")
    async def health() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        gateway = _gateway()
        return {
            "status": "ok",
            "session_id": gateway.session.session_id,
            "observers": gateway.observer_count,
        }

    @app.get("/session")
    async def get_session() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _gateway().session.describe()

    @app.post("/session/toggle")
    async def toggle() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _unwrap(await _gateway().handle_control({"type": "TOGGLE"}))

    @app.post("/session/mode")
    async def set_mode(body: ModeRequest) -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _unwrap(
            await _gateway().handle_control({"type": "SET_MODE", "mode": body.mode.value})
        )

    @app.post("/session/stop")
    async def stop() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _unwrap(await _gateway().handle_control({"type": "STOP"}))

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = _gateway()
        conn = gateway.connect()
        sender = asyncio.create_task(_pump_snapshots(ws, conn))

        try:
            while True:
                text = await ws.receive_text()
                result = await gateway.on_json_message(text)
                # Accepted controls are reflected through the snapshot stream.
                if not result.accepted:
                    await _flush_gateway_result(ws, result)

        except WebSocketDisconnect:
            gateway.disconnect(conn, reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id,
                "connection_id": conn.connection_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            gateway.disconnect(conn, reason="server_error")

        finally:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)


def _unwrap(result: GatewayResult) -> dict[str, Any]:
    if not result.accepted:
        raise HTTPException(status_code=400, detail=result.outbound_json[0])
    return result.outbound_json[0]


async def _pump_snapshots(ws: WebSocket, conn: ObserverConnection) -> None:
    """Forward every snapshot for `conn` to the client until cancelled."""
    while True:
        snapshot = await conn.snapshots.get()
        await ws.send_text(json.dumps(snapshot.to_json()))


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))
