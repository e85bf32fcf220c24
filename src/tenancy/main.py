import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tenancy.application.jobs.handlers import build_job_registry
from tenancy.application.services.database_initializer import DatabaseInitializer
from tenancy.domain.exceptions import TenancyException, TenantNotFoundException
from tenancy.infrastructure.config.settings import get_settings
from tenancy.infrastructure.jobs.dispatcher import (JobDispatcher, build_job_queue,
                                                    set_job_dispatcher)
from tenancy.infrastructure.jobs.worker import JobWorker
from tenancy.infrastructure.messaging.notifications import RealtimeNotificationService
from tenancy.infrastructure.messaging.redis_pubsub import (NotificationPublisher,
                                                           set_notification_publisher)
from tenancy.infrastructure.persistence.database import EngineRegistry, set_engine_registry
from tenancy.presentation.api.v1.routes import categories, health, products, tenants, websocket
from tenancy.presentation.api.v1.schemas.response import Response
from tenancy.presentation.api.websocket.manager import get_connection_manager
from tenancy.presentation.middleware.correlation import CorrelationIDMiddleware
from tenancy.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()

    registry = EngineRegistry(settings)
    set_engine_registry(registry)

    # Identity schema, seed data, then application schema on every tenant database
    await DatabaseInitializer(settings, registry).initialize()

    publisher: NotificationPublisher | None = None
    if settings.redis_enabled:
        publisher = NotificationPublisher()
        await publisher.connect()
        set_notification_publisher(publisher)
        if not publisher.is_available():
            logger.warning("Redis pub/sub unavailable. Notifications reach local connections only.")
    else:
        logger.info("Redis disabled in configuration")

    manager = get_connection_manager()
    notifier = RealtimeNotificationService(publisher, manager.send_to_user)

    queue = build_job_queue(settings)
    set_job_dispatcher(JobDispatcher(queue, settings))
    worker = JobWorker(queue, build_job_registry(registry, notifier, settings), settings)
    worker_task = asyncio.create_task(worker.run())
    logger.info(f"Job worker started on the {settings.job_backend} backend")

    yield

    worker.stop()
    try:
        await asyncio.wait_for(worker_task, timeout=settings.job_poll_timeout_seconds + 5)
    except TimeoutError:
        worker_task.cancel()
        logger.warning("Job worker did not stop in time; cancelled")

    await manager.close_all()
    await queue.close()
    if publisher is not None:
        await publisher.disconnect()
        set_notification_publisher(None)
    set_job_dispatcher(None)

    await registry.dispose_all()
    logger.info("Database engines disposed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(TenancyException)
async def tenancy_exception_handler(request: Request, exc: TenancyException):
    """Known domain failures become a failed Response envelope"""
    status_code = status.HTTP_400_BAD_REQUEST
    if isinstance(exc, TenantNotFoundException):
        status_code = status.HTTP_404_NOT_FOUND
    logger.info(f"{request.method} {request.url.path} failed ({exc.error_code}): {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=Response.fail(exc.message).model_dump(),
    )


app.add_middleware(CorrelationIDMiddleware)

# Security: Using allow_credentials=True requires specific origins (not wildcard)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(tenants.router, prefix="/api/v1/tenants", tags=["tenants"])
app.include_router(products.router, prefix="/api/v1/products", tags=["products"])
app.include_router(categories.router, prefix="/api/v1/categories", tags=["categories"])
app.include_router(health.router, tags=["health"])
app.include_router(websocket.router, tags=["notifications"])


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }
