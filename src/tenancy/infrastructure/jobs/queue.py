"""
Job queue backends.

InMemoryJobQueue keeps jobs in an asyncio.Queue (single process, lost on
restart). RedisJobQueue keeps them in a Redis list so any worker process can
pick them up and they survive API restarts.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

import redis.asyncio as redis

from tenancy.infrastructure.jobs.params import JobParams

logger = logging.getLogger(__name__)


class JobQueue(ABC):
    """Storage for pending jobs, dead letters and dedup claims"""

    @abstractmethod
    async def push(self, params: JobParams) -> None:
        """Append a job to the queue"""

    @abstractmethod
    async def pop(self, timeout: float) -> JobParams | None:
        """Take the next job, waiting up to timeout seconds"""

    @abstractmethod
    async def dead_letter(self, params: JobParams, error: str) -> None:
        """Park a job that exhausted its retries"""

    @abstractmethod
    async def claim_dedup(self, key: str, job_id: str, ttl_seconds: int) -> str | None:
        """
        Claim a dedup key for job_id.

        Returns:
            None if the claim succeeded, otherwise the job id holding the key
        """

    @abstractmethod
    async def release_dedup(self, key: str) -> None:
        """Release a dedup key once its job finished"""

    async def close(self) -> None:
        """Release backend resources"""
        return None


class InMemoryJobQueue(JobQueue):
    def __init__(self) -> None:
        self._queue: asyncio.Queue[JobParams] = asyncio.Queue()
        self._claims: dict[str, str] = {}
        self.dead: list[tuple[JobParams, str]] = []

    async def push(self, params: JobParams) -> None:
        await self._queue.put(params)

    async def pop(self, timeout: float) -> JobParams | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except TimeoutError:
            return None

    async def dead_letter(self, params: JobParams, error: str) -> None:
        self.dead.append((params, error))

    async def claim_dedup(self, key: str, job_id: str, ttl_seconds: int) -> str | None:
        holder = self._claims.get(key)
        if holder is not None:
            return holder
        self._claims[key] = job_id
        return None

    async def release_dedup(self, key: str) -> None:
        self._claims.pop(key, None)

    def qsize(self) -> int:
        return self._queue.qsize()


class RedisJobQueue(JobQueue):
    """
    Redis list queue: LPUSH to enqueue, BRPOP to consume (FIFO).

    Keys:
        {name}            pending jobs (JSON)
        {name}:dead       dead letters
        {name}:dedup:{k}  dedup claims, SET NX with a TTL
    """

    def __init__(self, client: redis.Redis, name: str) -> None:
        self.redis = client
        self.name = name

    async def push(self, params: JobParams) -> None:
        await self.redis.lpush(self.name, params.to_json())

    async def pop(self, timeout: float) -> JobParams | None:
        # BRPOP takes whole or fractional seconds; 0 would block forever
        item = await self.redis.brpop([self.name], timeout=max(timeout, 0.01))
        if item is None:
            return None
        _, raw = item
        try:
            return JobParams.from_json(raw)
        except (ValueError, TypeError) as e:
            logger.error(f"Dropping malformed job payload from {self.name}: {e}")
            await self.redis.lpush(f"{self.name}:dead", raw)
            return None

    async def dead_letter(self, params: JobParams, error: str) -> None:
        await self.redis.lpush(f"{self.name}:dead", params.to_json())
        logger.warning(f"Job {params.job_id} moved to {self.name}:dead: {error}")

    async def claim_dedup(self, key: str, job_id: str, ttl_seconds: int) -> str | None:
        redis_key = f"{self.name}:dedup:{key}"
        if await self.redis.set(redis_key, job_id, nx=True, ex=ttl_seconds):
            return None
        holder = await self.redis.get(redis_key)
        return holder or job_id

    async def release_dedup(self, key: str) -> None:
        await self.redis.delete(f"{self.name}:dedup:{key}")

    async def close(self) -> None:
        await self.redis.aclose()
