"""Open notification sockets, grouped by the user they belong to"""

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks the sockets of each signed-in user.

    Tenant jobs report back to the user who started them, so delivery is by
    user id; one user may hold several sockets (one per browser tab).
    """

    def __init__(self) -> None:
        self._sockets: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return sum(len(sockets) for sockets in self._sockets.values())

    def sockets_of(self, user_id: str) -> frozenset[WebSocket]:
        return frozenset(self._sockets.get(user_id, ()))

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        await websocket.accept()
        async with self._lock:
            self._sockets.setdefault(user_id, set()).add(websocket)
        logger.info(f"Notification socket opened for user {user_id}")

    async def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        async with self._lock:
            self._forget(websocket, user_id)
        logger.info(f"Notification socket closed for user {user_id}")

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """
        Deliver a message to all of a user's sockets.

        Sockets that fail to take the message are dropped. Returns how many
        sockets received it; 0 tells the caller the user is not connected here.
        """
        text = json.dumps(message)
        delivered = 0
        for websocket in self.sockets_of(user_id):
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.warning(f"Dropping notification socket of user {user_id}: {e}")
                async with self._lock:
                    self._forget(websocket, user_id)
            else:
                delivered += 1
        return delivered

    async def send_personal(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.warning(f"Could not write to notification socket: {e}")
            return False
        return True

    async def close_all(self) -> None:
        async with self._lock:
            sockets = [ws for user_sockets in self._sockets.values() for ws in user_sockets]
            self._sockets.clear()
        for websocket in sockets:
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Notification socket already gone: {e}")
        logger.info(f"Closed {len(sockets)} notification sockets")

    def _forget(self, websocket: WebSocket, user_id: str) -> None:
        sockets = self._sockets.get(user_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sockets[user_id]


_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager
