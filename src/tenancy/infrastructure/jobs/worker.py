"""
Background job worker.

Pops jobs from a JobQueue, builds a fresh handler for each one through the
handler registry and applies the retry policy when the handler raises:
exponential backoff up to job_max_retries, then the dead-letter queue.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.jobs.queue import JobQueue
from tenancy.shared.telemetry.correlation import correlation_id_var

logger = logging.getLogger(__name__)

JobHandler = Callable[[JobParams], Awaitable[None]]
# Called once per job so every execution gets its own services and contexts
JobHandlerFactory = Callable[[], JobHandler]


class UnknownJobTypeError(LookupError):
    pass


class JobHandlerRegistry:
    """Maps job types to handler factories"""

    def __init__(self) -> None:
        self._factories: dict[str, JobHandlerFactory] = {}

    def register(self, job_type: str, factory: JobHandlerFactory) -> None:
        self._factories[job_type] = factory

    def resolve(self, job_type: str) -> JobHandler:
        factory = self._factories.get(job_type)
        if factory is None:
            raise UnknownJobTypeError(f"No handler registered for job type '{job_type}'")
        return factory()

    def job_types(self) -> list[str]:
        return sorted(self._factories)


def backoff_seconds(attempts: int, base: float, cap: float) -> float:
    """Exponential backoff with cap: base, 2*base, 4*base, ..."""
    delay = base * (2 ** max(0, attempts - 1))
    return min(delay, cap)


class JobWorker:
    """Consumes one queue until stopped"""

    def __init__(
        self,
        queue: JobQueue,
        registry: JobHandlerRegistry,
        settings: Settings | None = None,
    ) -> None:
        self.queue = queue
        self.registry = registry
        self.settings = settings or get_settings()
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        logger.info(f"Job worker starting; handlers: {', '.join(self.registry.job_types())}")
        try:
            while not self._stop.is_set():
                try:
                    params = await self.queue.pop(self.settings.job_poll_timeout_seconds)
                    if params is None:
                        continue
                    await self.process(params)
                except Exception:
                    # A broken queue connection must not end the loop; wait and poll again
                    logger.exception("Job worker iteration failed")
                    await asyncio.sleep(self.settings.job_poll_timeout_seconds)
        except asyncio.CancelledError:
            pass
        finally:
            logger.info("Job worker stopping")

    async def run_until_idle(self) -> int:
        """Drain the queue until it stays empty for one poll; returns jobs taken off it"""
        processed = 0
        while True:
            params = await self.queue.pop(self.settings.job_poll_timeout_seconds)
            if params is None:
                return processed
            await self.process(params)
            processed += 1

    async def process(self, params: JobParams) -> None:
        """Run one job, or put it back if its retry delay has not passed yet"""
        remaining = (params.not_before or 0) - time.time()
        if remaining > 0:
            await self.queue.push(params)
            await asyncio.sleep(min(remaining, self.settings.job_poll_timeout_seconds))
            return

        params.attempts += 1
        token = correlation_id_var.set(params.job_id)
        try:
            handler = self.registry.resolve(params.job_type)
            logger.info(
                f"Running {params.job_type} job {params.job_id} for tenant {params.tenant_id} "
                f"(attempt {params.attempts})"
            )
            await handler(params)
        except UnknownJobTypeError as e:
            await self._finish(params)
            await self.queue.dead_letter(params, str(e))
            return
        except Exception as e:
            logger.error(f"Job {params.job_id} ({params.job_type}) failed on attempt {params.attempts}: {e}")
            await self._retry_or_bury(params, str(e))
            return
        finally:
            correlation_id_var.reset(token)

        await self._finish(params)

    async def _retry_or_bury(self, params: JobParams, error: str) -> None:
        if params.attempts >= self.settings.job_max_retries:
            await self._finish(params)
            await self.queue.dead_letter(params, error)
            logger.error(f"Job {params.job_id} gave up after {params.attempts} attempts")
            return

        delay = backoff_seconds(
            params.attempts,
            self.settings.job_backoff_base_seconds,
            self.settings.job_backoff_max_seconds,
        )
        params.not_before = time.time() + delay
        logger.info(f"Retrying job {params.job_id} in {delay:.1f}s")
        await self.queue.push(params)

    async def _finish(self, params: JobParams) -> None:
        if params.dedup_key:
            await self.queue.release_dedup(params.dedup_key)
