"""Fire-and-forget job enqueueing"""

import logging
from typing import Any

from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.jobs.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from tenancy.infrastructure.messaging.redis_client import create_redis_client

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Enqueues jobs; execution happens later in a JobWorker"""

    def __init__(self, queue: JobQueue, settings: Settings | None = None) -> None:
        self.queue = queue
        self.settings = settings or get_settings()

    async def enqueue(
        self,
        job_type: str,
        tenant_id: str,
        payload: dict[str, Any] | None = None,
        initiating_user_id: str | None = None,
        *,
        dedup_key: str | None = None,
    ) -> str:
        """
        Queue a job and return its id.

        With a dedup_key, a second enqueue while the first job is still pending
        or running returns the first job's id and queues nothing. A failed push
        releases the claim before re-raising.
        """
        params = JobParams(
            job_type=job_type,
            tenant_id=tenant_id,
            payload=payload or {},
            initiating_user_id=initiating_user_id,
            dedup_key=dedup_key,
        )

        if dedup_key:
            holder = await self.queue.claim_dedup(
                dedup_key, params.job_id, self.settings.job_dedup_ttl_seconds
            )
            if holder is not None:
                logger.info(f"Skipping duplicate {job_type} for {tenant_id}; job {holder} holds {dedup_key}")
                return holder

        try:
            await self.queue.push(params)
        except Exception:
            # Nothing was queued; drop the claim
            if dedup_key:
                await self.queue.release_dedup(dedup_key)
            raise
        logger.info(f"Enqueued {job_type} job {params.job_id} for tenant {tenant_id}")
        return params.job_id


def build_job_queue(settings: Settings | None = None) -> JobQueue:
    """Queue backend selected by settings.job_backend"""
    settings = settings or get_settings()
    if settings.job_backend == "redis":
        return RedisJobQueue(create_redis_client(settings), settings.job_queue_name)
    return InMemoryJobQueue()


# Global dispatcher instance (initialized on app startup)
_dispatcher: JobDispatcher | None = None


def get_job_dispatcher() -> JobDispatcher:
    """Get the global dispatcher, creating an in-process one if needed"""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = JobDispatcher(build_job_queue())
    return _dispatcher


def set_job_dispatcher(dispatcher: JobDispatcher | None) -> None:
    """Set the global dispatcher (startup and tests)"""
    global _dispatcher
    _dispatcher = dispatcher
