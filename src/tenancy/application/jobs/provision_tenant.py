"""
Tenant provisioning job.

Flow for one attempt:
    1. load the tenant (missing -> log and stop, the job was lost)
    2. Provisioning, stamp last_provisioning_attempt, save
    3. admin user for the tenant (check-then-create, so retries reuse it)
    4. isolated database: create (development) and migrate
    5. owner role, Active (clears error), save, notify success
Any failure in 3-5: Failed + error message + failed operation, save, notify failure, re-raise
so the worker's retry policy can run the job again.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import IdentityException
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.identity.identity_service import IdentityService
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.messaging.notifications import NotificationService
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models.tenant import Tenant
from tenancy.infrastructure.persistence.models.user import ApplicationUser
from tenancy.infrastructure.persistence.provisioner import DatabaseProvisioner
from tenancy.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from tenancy.shared.context import TenantScope
from tenancy.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)


def admin_username(admin_email: str, tenant_id: str) -> str:
    return f"{admin_email}.{tenant_id}"


class ProvisionTenantJob:
    def __init__(
        self,
        ctx: BaseDataContext,
        notifier: NotificationService,
        provisioner: DatabaseProvisioner,
        settings: Settings | None = None,
    ) -> None:
        self.ctx = ctx
        self.tenants = TenantRepository(ctx)
        self.identity = IdentityService(ctx)
        self.notifier = notifier
        self.provisioner = provisioner
        self.settings = settings or get_settings()

    @traced("jobs.provision_tenant")
    async def execute(self, params: JobParams) -> None:
        add_span_attributes(tenant_id=params.tenant_id, attempt=params.attempts)
        payload: dict[str, Any] = params.payload

        tenant = await self.tenants.get_by_id(params.tenant_id)
        if tenant is None:
            logger.error(f"Tenant {params.tenant_id} not found for provisioning")
            return

        if not tenant.can_transition_to(ProvisioningStatus.PROVISIONING):
            # Duplicate delivery after success, an update owns the row, or an update failed
            logger.info(f"Tenant {tenant.id} is {tenant.status}; skipping provisioning")
            return

        tenant.transition_to(ProvisioningStatus.PROVISIONING)
        tenant.last_provisioning_attempt = datetime.now(UTC)
        await self.ctx.save()
        logger.info(f"Starting provisioning for tenant {tenant.id}")

        try:
            user = await self._ensure_admin_user(tenant, payload["admin_email"], payload["password"])

            if payload.get("has_isolated_database") and tenant.connection_string:
                logger.info(f"Provisioning isolated database for tenant {tenant.id}")
                await self.provisioner.provision(tenant.id, tenant.connection_string)

            await self._ensure_owner_role(user)

            tenant.transition_to(ProvisioningStatus.ACTIVE)
            await self.ctx.save()
            logger.info(f"Tenant {tenant.id} provisioned successfully")
        except Exception as e:
            # A failed save has already rolled back and expired the loaded tenant
            logger.exception(f"Provisioning failed for tenant {params.tenant_id}")
            await self._mark_failed(params.tenant_id, str(e))
            await self.notifier.notify_tenant_creation_failed(params.initiating_user_id, str(e))
            raise

        await self.notifier.notify_tenant_created(params.initiating_user_id, tenant.id, tenant.name)

    async def _ensure_admin_user(self, tenant: Tenant, admin_email: str, password: str) -> ApplicationUser:
        username = admin_username(admin_email, tenant.id)
        existing = await self.identity.find_by_username(username)
        if existing is not None:
            logger.info(f"Admin user {username} already exists; reusing it")
            return existing

        user = ApplicationUser(
            username=username,
            first_name="Default",
            last_name="Admin",
            email=admin_email,
            email_confirmed=True,
            tenant_id=tenant.id,
        )
        result = await self.identity.create_user(user, password)
        if not result.succeeded:
            raise IdentityException(result.errors)
        return user

    async def _ensure_owner_role(self, user: ApplicationUser) -> None:
        role = self.settings.tenant_owner_role
        if await self.identity.is_in_role(user, role):
            return
        result = await self.identity.add_to_role(user, role)
        if not result.succeeded:
            raise IdentityException(result.errors)

    async def _mark_failed(self, tenant_id: str, error: str) -> None:
        await self.ctx.rollback()
        current = await self.tenants.get_by_id(tenant_id)
        if current is None:
            return
        current.mark_failed(JobType.PROVISION_TENANT, error)
        await self.ctx.save()


def provision_tenant_scope(params: JobParams) -> TenantScope:
    """Base-context scope for a provisioning job: the new tenant, acting for its initiator"""
    return TenantScope(tenant_id=params.tenant_id, user_id=params.initiating_user_id)
