"""Shared test fixtures for pytest"""
import os

# Settings are read from the environment on first use; fix them before any tenancy import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./tenancy-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("JOB_BACKEND", "memory")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tenancy.infrastructure.config.settings import Settings, get_settings  # noqa: E402
from tenancy.infrastructure.jobs.dispatcher import JobDispatcher  # noqa: E402
from tenancy.infrastructure.jobs.queue import InMemoryJobQueue  # noqa: E402
from tenancy.infrastructure.persistence.context import (BaseDataContext,  # noqa: E402
                                                        TenantDataContext)
from tenancy.infrastructure.persistence.database import (EngineRegistry,  # noqa: E402
                                                         migrate_application, migrate_identity,
                                                         set_engine_registry)
from tenancy.infrastructure.persistence.models import ApplicationUser, Tenant  # noqa: E402
from tenancy.infrastructure.security.jwt import create_access_token  # noqa: E402
from tenancy.shared.context import TenantScope  # noqa: E402


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Environment settings pointed at a per-test SQLite file"""
    return get_settings().model_copy(
        update={
            "database_url": f"sqlite+aiosqlite:///{tmp_path / 'tenancy.db'}",
            "job_backoff_base_seconds": 0.0,
            "job_poll_timeout_seconds": 0.01,
            "job_max_retries": 3,
        }
    )


@pytest.fixture
async def registry(settings):
    """Engine registry with both schemas applied to the default database"""
    registry = EngineRegistry(settings)
    set_engine_registry(registry)
    await migrate_identity(registry.get_engine())
    await migrate_application(registry.get_engine())

    yield registry

    await registry.dispose_all()
    set_engine_registry(None)


async def _add_tenant(registry: EngineRegistry, tenant_id: str, **fields) -> Tenant:
    fields.setdefault("name", tenant_id.capitalize())
    fields.setdefault("status", "active")
    fields.setdefault("is_active", True)
    async with BaseDataContext(TenantScope.system(tenant_id), registry=registry) as ctx:
        tenant = Tenant(id=tenant_id, **fields)
        ctx.add(tenant)
        await ctx.save()
    return tenant


@pytest.fixture
def make_tenant(registry):
    """Insert a directory row; active unless told otherwise"""

    async def factory(tenant_id: str, **fields) -> Tenant:
        return await _add_tenant(registry, tenant_id, **fields)

    return factory


@pytest.fixture
async def root_tenant(registry) -> Tenant:
    return await _add_tenant(registry, "root")


@pytest.fixture
async def tenant_a(registry) -> Tenant:
    return await _add_tenant(registry, "tenant-a", name="Tenant A")


@pytest.fixture
async def tenant_b(registry) -> Tenant:
    return await _add_tenant(registry, "tenant-b", name="Tenant B")


@pytest.fixture
async def ctx_a(registry, tenant_a):
    """Tenant data context for tenant-a acting as user-a"""
    async with TenantDataContext(TenantScope("tenant-a", "user-a"), registry=registry) as ctx:
        yield ctx


@pytest.fixture
async def ctx_b(registry, tenant_b):
    async with TenantDataContext(TenantScope("tenant-b", "user-b"), registry=registry) as ctx:
        yield ctx


def _user(tenant_id: str, username: str, email: str | None = None) -> ApplicationUser:
    email = email or f"{username}@example.com"
    return ApplicationUser(
        username=username,
        normalized_username=username.upper(),
        email=email,
        normalized_email=email.upper(),
        first_name="Test",
        last_name="User",
        password_hash="not-a-real-hash",
        tenant_id=tenant_id,
    )


@pytest.fixture
def make_user():
    return _user


@pytest.fixture
def job_queue() -> InMemoryJobQueue:
    return InMemoryJobQueue()


@pytest.fixture
def dispatcher(job_queue, settings) -> JobDispatcher:
    return JobDispatcher(job_queue, settings)


@pytest.fixture
async def client(registry, dispatcher):
    """HTTP client for API testing"""
    from tenancy.main import app
    from tenancy.presentation.api.dependencies import get_dispatcher, get_registry

    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header factory carrying tenant and uid claims"""

    def factory(tenant_id: str, user_id: str) -> dict[str, str]:
        token = create_access_token(data={"tenant": tenant_id, "uid": user_id})
        return {"Authorization": f"Bearer {token}"}

    return factory
