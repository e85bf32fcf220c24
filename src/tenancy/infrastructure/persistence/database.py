from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession, async_sessionmaker,
                                    create_async_engine)
from sqlalchemy.orm import DeclarativeBase

from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.persistence.filters import ScopedSession


# Modern SQLAlchemy 2.0 pattern. Each base owns its own MetaData so the two
# table sets can be migrated into different databases.
class IdentityBase(DeclarativeBase):
    """Tables that live only in the default database: tenants, users, roles"""

    pass


class ApplicationBase(DeclarativeBase):
    """Tables replicated into every tenant database (shared or isolated)"""

    pass


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend"""
    if make_url(url).get_backend_name() == "postgresql":
        return create_async_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            pool_size=20,
            max_overflow=30,
            pool_recycle=3600,
            query_cache_size=1200,
            connect_args={
                "server_settings": {"jit": "off"},
                "command_timeout": 60,
            },
        )
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


class EngineRegistry:
    """
    Engines and session factories keyed by connection string.

    Every tenant with an isolated database gets its own engine the first time a
    context asks for it; tenants on the shared database reuse the default engine.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engines: dict[str, AsyncEngine] = {}
        self._factories: dict[str, async_sessionmaker[AsyncSession]] = {}

    @property
    def default_url(self) -> str:
        return self.settings.database_url

    def resolve_url(self, connection_string: str | None) -> str:
        """Tenant-specific connection string when present, else the default"""
        return connection_string or self.default_url

    def get_engine(self, connection_string: str | None = None) -> AsyncEngine:
        url = self.resolve_url(connection_string)
        engine = self._engines.get(url)
        if engine is None:
            engine = create_engine_for(url, echo=self.settings.database_echo)
            self._engines[url] = engine
        return engine

    def get_session_factory(self, connection_string: str | None = None) -> async_sessionmaker[AsyncSession]:
        url = self.resolve_url(connection_string)
        factory = self._factories.get(url)
        if factory is None:
            factory = async_sessionmaker(
                bind=self.get_engine(url),
                class_=AsyncSession,
                sync_session_class=ScopedSession,
                expire_on_commit=False,
                autoflush=False,
                autocommit=False,
            )
            self._factories[url] = factory
        return factory

    async def dispose_all(self) -> None:
        for engine in self._engines.values():
            await engine.dispose()
        self._engines.clear()
        self._factories.clear()


# Global registry instance
_registry: EngineRegistry | None = None


def get_engine_registry() -> EngineRegistry:
    """Get the global engine registry, creating if needed"""
    global _registry
    if _registry is None:
        _registry = EngineRegistry()
    return _registry


def set_engine_registry(registry: EngineRegistry | None) -> None:
    """Set the global engine registry (for testing)"""
    global _registry
    _registry = registry


async def migrate_identity(engine: AsyncEngine) -> None:
    """Create identity tables (tenants, users, roles) if missing"""
    async with engine.begin() as conn:
        await conn.run_sync(IdentityBase.metadata.create_all)


async def migrate_application(engine: AsyncEngine) -> None:
    """Create per-tenant application tables if missing"""
    async with engine.begin() as conn:
        await conn.run_sync(ApplicationBase.metadata.create_all)
