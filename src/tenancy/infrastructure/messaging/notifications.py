"""
Notification services for provisioning outcomes.

Delivery is fire-and-forget: a failed notification is logged and swallowed,
it never undoes a provisioning result that is already committed.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from tenancy.infrastructure.messaging.redis_pubsub import (NotificationEvent,
                                                           NotificationPublisher,
                                                           NotificationType)

logger = logging.getLogger(__name__)

# (user_id, message) -> number of local connections reached
LocalSink = Callable[[str, dict[str, Any]], Awaitable[int]]


def tenant_created_message(tenant_name: str) -> str:
    return f"Tenant '{tenant_name}' has been successfully created and provisioned."


def tenant_creation_failed_message(error: str) -> str:
    return f"Tenant creation failed: {error}"


def tenant_updated_message(tenant_name: str) -> str:
    return f"Tenant '{tenant_name}' has been successfully updated."


def tenant_update_failed_message(error: str) -> str:
    return f"Tenant update failed: {error}"


class NotificationService(ABC):
    """Notifies the initiating user about provisioning outcomes"""

    async def notify_tenant_created(self, user_id: str | None, tenant_id: str, tenant_name: str) -> None:
        await self._deliver(
            NotificationType.TENANT_CREATED,
            user_id,
            tenant_created_message(tenant_name),
            tenant_id=tenant_id,
            tenant_name=tenant_name,
        )

    async def notify_tenant_creation_failed(self, user_id: str | None, message: str) -> None:
        await self._deliver(
            NotificationType.TENANT_CREATION_FAILED, user_id, tenant_creation_failed_message(message)
        )

    async def notify_tenant_updated(self, user_id: str | None, tenant_id: str, tenant_name: str) -> None:
        await self._deliver(
            NotificationType.TENANT_UPDATED,
            user_id,
            tenant_updated_message(tenant_name),
            tenant_id=tenant_id,
            tenant_name=tenant_name,
        )

    async def notify_tenant_update_failed(self, user_id: str | None, message: str) -> None:
        await self._deliver(
            NotificationType.TENANT_UPDATE_FAILED, user_id, tenant_update_failed_message(message)
        )

    async def _deliver(
        self,
        event_type: NotificationType,
        user_id: str | None,
        message: str,
        **extra: Any,
    ) -> None:
        if not user_id:
            logger.info(f"No initiating user for {event_type.value}: {message}")
            return
        event = NotificationEvent.create(event_type, user_id, message, **extra)
        try:
            await self.send(event)
        except Exception as e:
            logger.warning(f"Failed to deliver {event_type.value} to user {user_id}: {e}")

    @abstractmethod
    async def send(self, event: NotificationEvent) -> None:
        """Push one event to its user"""


class LoggingNotificationService(NotificationService):
    """Writes notifications to the log; used by workers without a push channel"""

    async def send(self, event: NotificationEvent) -> None:
        logger.info(f"Notification {event.event.value} for user {event.user_id}: {event.message}")


class RealtimeNotificationService(NotificationService):
    """
    Pushes notifications to connected clients.

    Publishes on the user's Redis channel (picked up by every API instance's
    WebSocket endpoint) and, when a local sink is wired in, also delivers to
    this process's own WebSocket connections for that user.
    """

    def __init__(self, publisher: NotificationPublisher | None = None, local_sink: LocalSink | None = None) -> None:
        self.publisher = publisher
        self.local_sink = local_sink

    async def send(self, event: NotificationEvent) -> None:
        published = False
        if self.publisher is not None:
            published = await self.publisher.publish(event)

        delivered = 0
        if not published and self.local_sink is not None:
            delivered = await self.local_sink(event.user_id, {"type": "notification", **event.to_dict()})

        if not published and not delivered:
            logger.info(
                f"Notification {event.event.value} for user {event.user_id} had no listener: {event.message}"
            )
