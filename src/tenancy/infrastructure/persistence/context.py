"""
Data contexts: the only persistence boundary the application uses.

Three flavors share one implementation:

    TenantDataContext  tenant's own database (or the default one); filters
                       TENANT_SCOPED and SOFT_DELETE entities
    BaseDataContext    default database; tenant directory, identity users and
                       roles; filters TENANT_OWNED users and SOFT_DELETE rows
    DirectoryContext   read-only tenant enumeration; no save, no migrations

Each context is bound for its whole lifetime to one TenantScope and one
physical connection. Writes go through save(), which stamps audit fields and
commits atomically; commit_raw() is the hook-free variant.

Usage:
    async with TenantDataContext(scope) as ctx:
        ctx.add(Product(name="Ball"))
        await ctx.save()

    async with TenantDataContext(scope) as ctx:
        async with ctx.transaction():
            ctx.add(a)
            await ctx.save()  # stamps and flushes, commit waits for the block
            ctx.add(b)
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.sql import Executable

from tenancy.infrastructure.persistence.audit import AuditInterceptor, ChangeSet
from tenancy.infrastructure.persistence.capabilities import Capability, has_capability
from tenancy.infrastructure.persistence.database import (EngineRegistry, get_engine_registry,
                                                         migrate_application)
from tenancy.infrastructure.persistence.filters import POLICY_KEY, SCOPE_KEY, FilterPolicy
from tenancy.infrastructure.persistence.models import Tenant
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT")


class DataContext:
    """Scoped unit of work over one AsyncSession"""

    filter_policy: FilterPolicy = FilterPolicy()

    def __init__(
        self,
        scope: TenantScope,
        *,
        registry: EngineRegistry | None = None,
        interceptor: AuditInterceptor | None = None,
    ) -> None:
        self.scope = scope
        self.registry = registry or get_engine_registry()
        self.interceptor = interceptor or AuditInterceptor()
        self.connection_string = self._select_connection_string()
        self.engine: AsyncEngine = self.registry.get_engine(self.connection_string)
        factory = self.registry.get_session_factory(self.connection_string)
        self.session: AsyncSession = factory(
            info={SCOPE_KEY: scope, POLICY_KEY: self.filter_policy}
        )
        self._soft_deleted: list[Any] = []
        self._transaction_depth = 0

    def _select_connection_string(self) -> str | None:
        return None

    async def __aenter__(self) -> "DataContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # Reads

    async def get(self, model: type[EntityT], id: Any) -> EntityT | None:
        """Load by primary key through the filtered query path"""
        pk = inspect(model).primary_key[0]
        result = await self.session.execute(select(model).where(pk == id))
        return result.scalar_one_or_none()

    async def execute(self, statement: Executable) -> Any:
        return await self.session.execute(statement)

    async def scalars(self, statement: Executable) -> Sequence[Any]:
        result = await self.session.execute(statement)
        return result.scalars().all()

    async def scalar(self, statement: Executable) -> Any:
        return await self.session.scalar(statement)

    # Writes

    def add(self, entity: Any) -> None:
        self.session.add(entity)

    def add_all(self, entities: Sequence[Any]) -> None:
        self.session.add_all(entities)

    async def delete(self, entity: Any) -> bool:
        """
        Delete an entity on the next save.

        Soft-deletable entities get deleted_on/deleted_by stamped and stay in
        storage; everything else is physically removed.

        Returns:
            True for a soft delete, False for a physical delete
        """
        if has_capability(entity, Capability.SOFT_DELETE):
            if all(entity is not pending for pending in self._soft_deleted):
                self._soft_deleted.append(entity)
            return True
        await self.session.delete(entity)
        return False

    async def save(self) -> int:
        """
        Stamp pending changes and write them atomically.

        Inside transaction() the write is flushed and the commit is left to the
        enclosing block. Otherwise a commit happens here, and any exception,
        cancellation included, rolls the whole save back before propagating.

        Returns:
            Number of entities written
        """
        if self._transaction_depth:
            count = self._stamp()
            await self.session.flush()
            return count

        try:
            count = self._stamp()
            await self.session.flush()
            await self.session.commit()
        except BaseException:
            await self.rollback()
            raise
        return count

    async def commit_raw(self) -> None:
        """Flush and commit exactly what is pending, with no stamping"""
        try:
            await self.session.flush()
            await self.session.commit()
        except BaseException:
            await self.rollback()
            raise

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["DataContext"]:
        """
        Explicit transaction around several saves.

        Re-entrant: a nested block joins the outermost one. Pending changes are
        stamped and committed when the outermost block exits cleanly.
        """
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield self
            finally:
                self._transaction_depth -= 1
            return

        self._transaction_depth = 1
        try:
            yield self
            self._stamp()
            await self.session.flush()
            await self.session.commit()
        except BaseException:
            await self.rollback()
            raise
        finally:
            self._transaction_depth = 0

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    async def rollback(self) -> None:
        self._soft_deleted.clear()
        await self.session.rollback()

    async def close(self) -> None:
        self._soft_deleted.clear()
        await self.session.close()

    def _stamp(self) -> int:
        changes = ChangeSet.collect(self.session.sync_session, self._soft_deleted)
        self.interceptor.apply(changes, self.scope)
        self._soft_deleted.clear()
        return len(changes)


class TenantDataContext(DataContext):
    """Context over the scope's tenant database"""

    filter_policy = FilterPolicy(tenant_capabilities=frozenset({Capability.TENANT_SCOPED}))

    def _select_connection_string(self) -> str | None:
        return self.scope.connection_string or None

    async def can_connect(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.info(f"Cannot connect to tenant database for {self.scope.tenant_id}: {e}")
            return False

    async def migrate(self) -> None:
        """Apply the application schema to this context's database"""
        await migrate_application(self.engine)


class BaseDataContext(DataContext):
    """Context over the default database for identity and the tenant directory"""

    filter_policy = FilterPolicy(tenant_capabilities=frozenset({Capability.TENANT_OWNED}))


class DirectoryContext:
    """
    Read-only view of the tenant directory.

    Used to look up connection strings before any tenant-scoped context
    exists. Offers no save and no migration entry point.
    """

    def __init__(self, registry: EngineRegistry | None = None) -> None:
        self.registry = registry or get_engine_registry()
        self.session: AsyncSession = self.registry.get_session_factory(None)()

    async def __aenter__(self) -> "DirectoryContext":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def get_tenant(self, tenant_id: str) -> Tenant | None:
        result = await self.session.execute(select(Tenant).where(Tenant.id == tenant_id))
        return result.scalar_one_or_none()

    async def list_tenants(self, *, active_only: bool = False) -> list[Tenant]:
        stmt = select(Tenant).order_by(Tenant.id)
        if active_only:
            stmt = stmt.where(Tenant.is_active.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def connection_strings(self) -> list[str]:
        """Distinct physical databases in use, default database first"""
        urls = [self.registry.default_url]
        for tenant in await self.list_tenants():
            url = self.registry.resolve_url(tenant.connection_string)
            if url not in urls:
                urls.append(url)
        return urls

    async def close(self) -> None:
        await self.session.close()
