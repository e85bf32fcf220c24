from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text

from tenancy.infrastructure.config.settings import get_settings
from tenancy.infrastructure.messaging.redis_pubsub import get_notification_publisher
from tenancy.infrastructure.persistence.database import EngineRegistry
from tenancy.presentation.api.dependencies import get_registry

router = APIRouter()


@router.get("/health")
async def health_check(registry: Annotated[EngineRegistry, Depends(get_registry)]):
    """
    Health check endpoint for load balancers and monitoring.

    Returns:
    - 200 OK if the default database answers
    - 503 Service Unavailable otherwise
    """
    checks: dict[str, Any] = {
        "api": True,
        "database": False,
        "pubsub": None,  # None = not configured
    }

    try:
        async with registry.get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = True

        if get_settings().redis_enabled:
            publisher = get_notification_publisher()
            checks["pubsub"] = publisher.is_available() if publisher else False

        if checks["api"] and checks["database"]:
            return {"status": "healthy", "checks": checks}
        return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})
    except Exception as e:
        checks["error"] = str(e)
        return JSONResponse(status_code=503, content={"status": "unhealthy", "checks": checks})
