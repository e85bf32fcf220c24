"""WebSocket endpoint for tenant provisioning notifications"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from tenancy.infrastructure.config.settings import get_settings
from tenancy.infrastructure.messaging.redis_pubsub import (NotificationSubscriber,
                                                           get_notification_publisher)
from tenancy.infrastructure.security.jwt import verify_token
from tenancy.presentation.api.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter()


async def validate_websocket_token(token: str) -> dict[str, Any] | None:
    """Decode the query-string token; None when it is invalid"""
    try:
        return verify_token(token)
    except ValueError as e:
        logger.warning(f"WebSocket auth failed: {e}")
        return None


async def _keep_alive(websocket: WebSocket) -> None:
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass


@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="JWT authentication token"),
):
    """
    Stream provisioning notifications for the token's user.

    Message Format (outgoing):
        {
            "type": "notification",
            "event": "TenantCreated|TenantCreationFailed|TenantUpdated|TenantUpdateFailed",
            "user_id": "...",
            "message": "...",
            "timestamp": "ISO8601",
            ...
        }
    """
    payload = await validate_websocket_token(token)
    if not payload:
        await websocket.close(code=4001, reason="Invalid authentication token")
        return

    settings = get_settings()
    user_id = payload.get(settings.user_id_claim)
    if not user_id:
        await websocket.close(code=4002, reason="Missing user id in token")
        return
    user_id = str(user_id)

    manager = get_connection_manager()
    subscriber = NotificationSubscriber()

    try:
        await manager.connect(websocket, user_id)
        await manager.send_personal(websocket, {
            "type": "connected",
            "user_id": user_id,
            "message": "Connected to notification stream",
        })

        if settings.redis_enabled:
            await subscriber.connect()

        if not subscriber.is_available():
            # Local deliveries from this process still reach the connection
            await _keep_alive(websocket)
            return

        async def read_redis():
            try:
                async for event in subscriber.subscribe(user_id):
                    await manager.send_personal(websocket, {"type": "notification", **event.to_dict()})
            except asyncio.CancelledError:
                pass

        client_task = asyncio.create_task(_keep_alive(websocket))
        redis_task = asyncio.create_task(read_redis())
        try:
            done, pending = await asyncio.wait(
                [client_task, redis_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        except Exception as e:
            logger.error(f"WebSocket task error: {e}")
            client_task.cancel()
            redis_task.cancel()

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for user {user_id}")
    except Exception as e:
        logger.error(f"WebSocket error for user {user_id}: {e}")
        try:
            await websocket.close(code=1011, reason="Internal server error")
        except RuntimeError:
            pass
    finally:
        await manager.disconnect(websocket, user_id)
        await subscriber.disconnect()


@router.get("/ws/status")
async def websocket_status():
    """Connection counts for monitoring"""
    manager = get_connection_manager()
    publisher = get_notification_publisher()

    return {
        "total_connections": len(manager),
        "publisher_available": publisher.is_available() if publisher else False,
    }
