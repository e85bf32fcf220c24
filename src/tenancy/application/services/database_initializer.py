"""
Startup schema creation and seeding.

    1. identity schema (tenants, users, roles) on the default database
    2. seed the default roles, the root tenant and its admin when missing
    3. application schema on every physical database: the default one and
       each isolated tenant database in the directory
"""

import logging

from sqlalchemy.engine import make_url

from tenancy.application.jobs.provision_tenant import admin_username
from tenancy.domain.enums import ProvisioningStatus
from tenancy.domain.exceptions import IdentityException
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.identity.identity_service import IdentityService
from tenancy.infrastructure.persistence.context import BaseDataContext, DirectoryContext
from tenancy.infrastructure.persistence.database import (EngineRegistry, get_engine_registry,
                                                         migrate_application, migrate_identity)
from tenancy.infrastructure.persistence.models import ApplicationUser, Role, Tenant
from tenancy.infrastructure.persistence.repositories.user_repo import RoleRepository, normalize
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)


class DatabaseInitializer:
    def __init__(self, settings: Settings | None = None, registry: EngineRegistry | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or get_engine_registry()

    async def initialize(self) -> None:
        logger.info("Applying identity schema to the default database")
        await migrate_identity(self.registry.get_engine())

        await self.seed()

        async with DirectoryContext(self.registry) as directory:
            urls = await directory.connection_strings()
        for url in urls:
            logger.info(f"Applying application schema to {self._describe(url)}")
            await migrate_application(self.registry.get_engine(url))

    async def seed(self) -> None:
        """Idempotent: only missing roles, tenant and admin are created"""
        root_id = self.settings.root_tenant_id
        async with BaseDataContext(TenantScope.system(root_id), registry=self.registry) as ctx:
            roles = RoleRepository(ctx)
            for name in self.settings.role_names:
                if await roles.get_by_name(name) is None:
                    ctx.add(Role(name=name, normalized_name=normalize(name)))
            await ctx.save()

            if await ctx.get(Tenant, root_id) is None:
                logger.info(f"Seeding root tenant '{root_id}'")
                ctx.add(
                    Tenant(
                        id=root_id,
                        name=root_id.capitalize(),
                        is_active=True,
                        status=ProvisioningStatus.ACTIVE.value,
                    )
                )
                await ctx.save()

            identity = IdentityService(ctx)
            username = admin_username(self.settings.root_admin_email, root_id)
            admin = await identity.find_by_username(username)
            if admin is None:
                logger.info(f"Seeding root admin {username}")
                admin = ApplicationUser(
                    username=username,
                    first_name="Default",
                    last_name="Admin",
                    email=self.settings.root_admin_email,
                    email_confirmed=True,
                    tenant_id=root_id,
                )
                result = await identity.create_user(admin, self.settings.root_admin_password)
                if not result.succeeded:
                    raise IdentityException(result.errors)

            if not await identity.is_in_role(admin, self.settings.root_role):
                result = await identity.add_to_role(admin, self.settings.root_role)
                if not result.succeeded:
                    raise IdentityException(result.errors)

    @staticmethod
    def _describe(url: str) -> str:
        return make_url(url).render_as_string(hide_password=True)
