"""WebSocket hub that relays published events to presentation clients."""

from __future__ import annotations

import json
from typing import Any

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

log = structlog.get_logger(__name__)

router = APIRouter()


class PriceHub:
    """Manages WebSocket connections and broadcasts events to all clients.

    ``send_event`` matches the publisher's subscriber signature, so the hub
    is registered directly with ``ViewModelPublisher.subscribe``.
    """

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the active connections list."""
        await ws.accept()
        self.connections.append(ws)
        log.info("price_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Remove a WebSocket connection from the active connections list."""
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("price_ws_disconnected", total=len(self.connections))

    async def send_event(self, event: str, payload: dict[str, Any]) -> None:
        """Broadcast ``{"event": ..., "data": ...}`` to every client."""
        await self.broadcast(json.dumps({"event": event, "data": payload}))

    async def broadcast(self, text: str) -> None:
        """Send text to all connected clients, removing broken connections."""
        for ws in self.connections.copy():
            try:
                await ws.send_text(text)
            except Exception:
                self.connections.remove(ws)
                log.warning("price_ws_broadcast_error", remaining=len(self.connections))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint streaming price-update and chart-data-update events."""
    ws_hub: PriceHub = websocket.app.state.hub
    await ws_hub.connect(websocket)
    try:
        while True:
            # Consume messages to keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_hub.disconnect(websocket)
