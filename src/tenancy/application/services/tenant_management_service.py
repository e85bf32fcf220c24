"""
Tenant management for the API side of the provisioning workflow.

Request handlers only validate, write the Pending row and enqueue. Every
later status change belongs to the provisioning jobs.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import (RootTenantProtectedException,
                                       TenantAlreadyExistsException, TenantNotFoundException)
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.dispatcher import JobDispatcher
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models.tenant import Tenant
from tenancy.infrastructure.persistence.provisioner import derive_connection_string
from tenancy.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)


@dataclass
class TenantAccepted:
    """Result of an accepted create/update request"""

    tenant_id: str
    job_id: str


class TenantManagementService:
    """
    Orchestrates tenant listing, creation and update requests.

    Writes the tenant directory through the base context and hands the
    long-running work to the job dispatcher.
    """

    def __init__(
        self,
        ctx: BaseDataContext,
        dispatcher: JobDispatcher,
        settings: Settings | None = None,
    ) -> None:
        self.ctx = ctx
        self.tenants = TenantRepository(ctx)
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()

    async def get_tenants(self) -> list[Tenant]:
        return await self.tenants.list_newest_first()

    async def get_tenant_options(self) -> list[Tenant]:
        return await self.tenants.list_options()

    async def get_tenant(self, tenant_id: str) -> Tenant:
        tenant = await self.tenants.get_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundException(tenant_id)
        return tenant

    async def create_tenant(
        self,
        tenant_id: str,
        name: str,
        admin_email: str,
        password: str,
        scope: TenantScope,
        *,
        has_isolated_database: bool = False,
    ) -> TenantAccepted:
        """
        Accept a tenant creation request.

        Inserts the tenant as Pending and enqueues provisioning; returns
        before any provisioning work happens.

        If the job cannot be queued the Pending row is removed again and the
        queue error propagates.

        Raises:
            TenantAlreadyExistsException: the slug-normalized key is taken,
                including by a concurrent request
        """
        if await self.tenants.exists_by_slug(tenant_id):
            raise TenantAlreadyExistsException(tenant_id)

        connection_string = (
            derive_connection_string(self.settings.database_url, tenant_id)
            if has_isolated_database
            else None
        )

        tenant = Tenant(
            id=tenant_id,
            name=name,
            is_active=True,
            connection_string=connection_string,
            status=ProvisioningStatus.PENDING.value,
        )
        await self.tenants.create(tenant)
        try:
            await self.ctx.save()
        except IntegrityError as e:
            # Another request inserted the same key after the existence check
            raise TenantAlreadyExistsException(tenant_id) from e
        logger.info(f"Tenant {tenant_id} accepted (isolated database: {has_isolated_database})")

        try:
            job_id = await self.dispatcher.enqueue(
                JobType.PROVISION_TENANT.value,
                tenant_id,
                payload={
                    "name": name,
                    "admin_email": admin_email,
                    "password": password,
                    "has_isolated_database": has_isolated_database,
                },
                initiating_user_id=scope.user_id,
                dedup_key=f"provision:{tenant_id}",
            )
        except Exception:
            # Without a queued job the row would stay Pending forever
            logger.exception(f"Could not enqueue provisioning for tenant {tenant_id}; removing it")
            await self.tenants.delete(tenant)
            await self.ctx.save()
            raise
        return TenantAccepted(tenant_id=tenant_id, job_id=job_id)

    async def update_tenant(
        self,
        tenant_id: str,
        name: str,
        is_active: bool,
        scope: TenantScope,
    ) -> TenantAccepted:
        """
        Accept a tenant update request.

        Raises:
            RootTenantProtectedException: tenant_id is the root tenant
            TenantNotFoundException: no such tenant
        """
        if tenant_id == self.settings.root_tenant_id:
            raise RootTenantProtectedException()
        if await self.tenants.get_by_id(tenant_id) is None:
            raise TenantNotFoundException(tenant_id)

        job_id = await self.dispatcher.enqueue(
            JobType.UPDATE_TENANT.value,
            tenant_id,
            payload={"name": name, "is_active": is_active},
            initiating_user_id=scope.user_id,
        )
        return TenantAccepted(tenant_id=tenant_id, job_id=job_id)

    async def deactivate_tenant(self, tenant_id: str, scope: TenantScope) -> TenantAccepted:
        """
        Tenants are never hard-deleted; a delete request becomes an update
        that switches the tenant off.
        """
        if tenant_id == self.settings.root_tenant_id:
            raise RootTenantProtectedException()
        tenant = await self.get_tenant(tenant_id)
        return await self.update_tenant(tenant_id, tenant.name, False, scope)
