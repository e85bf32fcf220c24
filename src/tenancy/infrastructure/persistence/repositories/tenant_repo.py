from sqlalchemy import case, select

from tenancy.infrastructure.config.settings import get_settings
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models.tenant import Tenant
from tenancy.infrastructure.persistence.repositories.base import BaseRepository
from tenancy.shared.utils.slug import to_url_slug


class TenantRepository(BaseRepository[Tenant]):
    """
    Repository for the tenant directory.

    Tenant rows are never hard-deleted, so delete() is not part of this
    repository's vocabulary.
    """

    def __init__(self, ctx: BaseDataContext):
        super().__init__(ctx, Tenant)
        self.settings = get_settings()

    async def exists_by_slug(self, key: str) -> bool:
        """Check whether a tenant already uses the slug-normalized form of key"""
        slug = to_url_slug(key)
        result = await self.ctx.execute(select(Tenant.id).where(Tenant.id == slug))
        return result.scalar_one_or_none() is not None

    async def list_newest_first(self) -> list[Tenant]:
        result = await self.ctx.execute(select(Tenant).order_by(Tenant.created_on.desc(), Tenant.id))
        return list(result.scalars().all())

    async def list_options(self) -> list[Tenant]:
        """Active tenants for pickers: root first, then by name"""
        root_first = case((Tenant.id == self.settings.root_tenant_id, 0), else_=1)
        result = await self.ctx.execute(
            select(Tenant)
            .where(Tenant.is_active.is_(True))
            .order_by(root_first, Tenant.name)
        )
        return list(result.scalars().all())
