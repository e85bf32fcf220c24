"""Redis client construction shared by pub/sub and the job queue"""

import redis.asyncio as redis

from tenancy.infrastructure.config.settings import Settings, get_settings


def create_redis_client(settings: Settings | None = None) -> redis.Redis:
    settings = settings or get_settings()
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password or None,
        decode_responses=True,
        socket_connect_timeout=5,
    )
