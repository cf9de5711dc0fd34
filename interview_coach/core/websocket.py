import logging
from typing import Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks open WebSocket connections by client id."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, client_id: str):
        await websocket.accept()
        previous = self.active_connections.get(client_id)
        if previous is not None and previous is not websocket:
            logger.warning(f"Replacing existing connection for client {client_id}")
        self.active_connections[client_id] = websocket
        logger.info(f"WebSocket connected: {client_id}")

    def disconnect(self, client_id: str, websocket: Optional[WebSocket] = None):
        """Unregister `client_id`; with `websocket`, only if it is still the registered socket."""
        current = self.active_connections.get(client_id)
        if current is None:
            return
        if websocket is not None and current is not websocket:
            logger.debug(f"Stale disconnect for {client_id}; a newer connection is active")
            return
        del self.active_connections[client_id]
        logger.info(f"WebSocket disconnected: {client_id}")

    async def send_json(self, message: dict, client_id: str):
        websocket = self.active_connections.get(client_id)
        if websocket is None:
            logger.debug(f"No connection for {client_id}; dropping {message.get('type')} event")
            return
        await websocket.send_json(message)


manager = ConnectionManager()
