"""
websocket_manager.py — WebSocket connection manager for live photon updates.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections and broadcasts."""

    def __init__(self):
        self._connections: Dict[int, WebSocket] = {}   # id(ws) -> ws

    async def connect(self, websocket: WebSocket) -> int:
        await websocket.accept()
        conn_id = id(websocket)
        self._connections[conn_id] = websocket
        return conn_id

    def disconnect(self, conn_id: int) -> None:
        self._connections.pop(conn_id, None)

    async def send_personal(self, conn_id: int, message: dict) -> None:
        ws = self._connections.get(conn_id)
        if ws:
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.debug("Dropping connection %s: %s", conn_id, exc)
                self.disconnect(conn_id)

    async def broadcast(self, message: dict) -> None:
        disconnected = []
        for conn_id, ws in list(self._connections.items()):
            try:
                await ws.send_json(message)
            except Exception as exc:
                logger.debug("Dropping connection %s: %s", conn_id, exc)
                disconnected.append(conn_id)
        for conn_id in disconnected:
            self.disconnect(conn_id)

    def connection_count(self) -> int:
        return len(self._connections)

    @staticmethod
    def make_event(event_type: str, data: Any = None) -> dict:
        return {
            "type": event_type,
            "data": data or {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
