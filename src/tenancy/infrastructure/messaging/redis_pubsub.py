"""Redis Pub/Sub for user-directed provisioning notifications"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import redis.asyncio as redis

from tenancy.infrastructure.messaging.redis_client import create_redis_client

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "notifications"


class NotificationType(str, Enum):
    """Client-side event names"""

    TENANT_CREATED = "TenantCreated"
    TENANT_CREATION_FAILED = "TenantCreationFailed"
    TENANT_UPDATED = "TenantUpdated"
    TENANT_UPDATE_FAILED = "TenantUpdateFailed"


@dataclass
class NotificationEvent:
    """Notification pushed to a single user"""

    event: NotificationType
    user_id: str
    message: str
    timestamp: str
    tenant_id: str | None = None
    tenant_name: str | None = None

    @classmethod
    def create(cls, event: NotificationType, user_id: str, message: str, **extra: Any) -> "NotificationEvent":
        return cls(
            event=event,
            user_id=user_id,
            message=message,
            timestamp=datetime.now(UTC).isoformat(),
            **extra,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = asdict(self)
        data["event"] = self.event.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationEvent":
        """Create from dictionary"""
        data = dict(data)
        data["event"] = NotificationType(data["event"])
        return cls(**data)


def channel_for(user_id: str) -> str:
    """Get channel name for a user"""
    return f"{CHANNEL_PREFIX}:{user_id}"


class NotificationPublisher:
    """Publishes notification events to Redis"""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self.redis = redis_client
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection"""
        if self.redis is None:
            try:
                self.redis = create_redis_client()
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub publisher connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning(f"Redis pub/sub connection failed: {e}")
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection"""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis pub/sub publisher disconnected")

    def is_available(self) -> bool:
        """Check if Redis is connected"""
        return self._connected and self.redis is not None

    async def publish(self, event: NotificationEvent) -> bool:
        """
        Publish a notification to the user's channel

        Returns:
            True if published successfully
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish")
            return False

        try:
            channel = channel_for(event.user_id)
            await self.redis.publish(channel, json.dumps(event.to_dict()))
            logger.debug(f"Published {event.event.value} to {channel}")
            return True
        except Exception as e:
            logger.error(f"Failed to publish notification: {e}")
            return False


class NotificationSubscriber:
    """Subscribes to one user's notification channel"""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        self.redis = redis_client
        self._connected = redis_client is not None
        self._pubsub: redis.client.PubSub | None = None

    async def connect(self) -> None:
        """Establish Redis connection"""
        if self.redis is None:
            try:
                self.redis = create_redis_client()
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub subscriber connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning(f"Redis pub/sub connection failed: {e}")
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection and pubsub"""
        if self._pubsub:
            await self._pubsub.aclose()
            self._pubsub = None
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis pub/sub subscriber disconnected")

    def is_available(self) -> bool:
        """Check if Redis is connected"""
        return self._connected and self.redis is not None

    async def subscribe(self, user_id: str) -> AsyncIterator[NotificationEvent]:
        """
        Subscribe to notifications for a user

        Yields:
            NotificationEvent objects as they arrive
        """
        if not self.is_available() or self.redis is None:
            logger.warning("Redis not available for subscription")
            return

        channel = channel_for(user_id)
        self._pubsub = self.redis.pubsub()

        try:
            await self._pubsub.subscribe(channel)
            logger.info(f"Subscribed to {channel}")

            async for message in self._pubsub.listen():
                if message["type"] == "message":
                    try:
                        yield NotificationEvent.from_dict(json.loads(message["data"]))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                        logger.error(f"Failed to parse notification message: {e}")
                        continue

        except Exception as e:
            logger.error(f"Subscription error: {e}")
        finally:
            if self._pubsub:
                await self._pubsub.unsubscribe(channel)
                logger.info(f"Unsubscribed from {channel}")


# Global publisher instance (initialized on app startup)
_publisher: NotificationPublisher | None = None


def get_notification_publisher() -> NotificationPublisher | None:
    """Get the global notification publisher"""
    return _publisher


def set_notification_publisher(publisher: NotificationPublisher | None) -> None:
    """Set the global notification publisher"""
    global _publisher
    _publisher = publisher
