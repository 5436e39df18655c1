"""WebSocket push of a user's live app data."""

import asyncio
from typing import Dict

from fastapi import WebSocket, WebSocketDisconnect

from config.settings import settings
from schemas.app_data import AppData
from schemas.websocket import WebSocketResponse
from services.app_data import AppDataSession
from services.store import StoreError
from utils.logger import setup_logger

logger = setup_logger(__name__)


class WebSocketHandler:
    """Handler for WebSocket connections."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket, connection_id: str):
        """Accept a WebSocket connection."""
        await websocket.accept()
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket connected: {connection_id}")

    def disconnect(self, connection_id: str):
        """Remove a WebSocket connection."""
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"WebSocket disconnected: {connection_id}")

    async def send_message(self, connection_id: str, message: WebSocketResponse):
        """Send a message to a specific connection."""
        websocket = self.active_connections.get(connection_id)
        if websocket is not None:
            await websocket.send_json(message.model_dump(mode="json"))

    async def stream_app_data(self, connection_id: str, session: AppDataSession, user_id: str):
        """Send the current snapshot, then one per change, until the client leaves or the user signs out."""
        websocket = self.active_connections[connection_id]
        try:
            await session.ready(timeout=settings.snapshot_timeout)
        except StoreError as e:
            logger.error(f"WebSocket {connection_id}: {e}")
            await websocket.close(code=1011)
            return
        updates: "asyncio.Queue[AppData]" = asyncio.Queue()
        remove_listener = session.add_listener(updates.put_nowait)
        receiver = asyncio.create_task(self._wait_for_disconnect(websocket))
        try:
            await self.send_message(connection_id, self._snapshot(session.state, user_id))
            while session.is_active:
                getter = asyncio.create_task(updates.get())
                done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
                if getter not in done:
                    getter.cancel()
                    break
                await self.send_message(connection_id, self._snapshot(getter.result(), user_id))
            if not receiver.done():
                # Signed out while connected
                await websocket.close()
        finally:
            remove_listener()
            receiver.cancel()

    @staticmethod
    async def _wait_for_disconnect(websocket: WebSocket):
        # Clients send nothing; reading only detects the close.
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            return

    @staticmethod
    def _snapshot(state: AppData, user_id: str) -> WebSocketResponse:
        return WebSocketResponse(type="app_data", content=state.model_dump(mode="json"), user_id=user_id)


# Global WebSocket handler instance
ws_handler = WebSocketHandler()
