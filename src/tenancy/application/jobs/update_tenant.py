"""Tenant update job: Active -> Updating -> Active | Failed"""

import logging

from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import RootTenantProtectedException, TenantNotFoundException
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.messaging.notifications import NotificationService
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from tenancy.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)


class UpdateTenantJob:
    def __init__(
        self,
        ctx: BaseDataContext,
        notifier: NotificationService,
        settings: Settings | None = None,
    ) -> None:
        self.ctx = ctx
        self.tenants = TenantRepository(ctx)
        self.notifier = notifier
        self.settings = settings or get_settings()

    @traced("jobs.update_tenant")
    async def execute(self, params: JobParams) -> None:
        """
        Apply name/is_active changes to a tenant.

        Precondition failures (missing tenant, root tenant, tenant in a state
        that cannot be updated) are reported to the initiating user and end
        the job without a retry. Failures while applying the change mark the
        tenant Failed and re-raise for the retry policy.
        """
        add_span_attributes(tenant_id=params.tenant_id, attempt=params.attempts)
        user_id = params.initiating_user_id

        tenant = await self.tenants.get_by_id(params.tenant_id)
        if tenant is None:
            await self.notifier.notify_tenant_update_failed(
                user_id, TenantNotFoundException(params.tenant_id).message
            )
            return

        if tenant.id == self.settings.root_tenant_id:
            await self.notifier.notify_tenant_update_failed(
                user_id, RootTenantProtectedException().message
            )
            return

        if not tenant.can_transition_to(ProvisioningStatus.UPDATING):
            message = f"Tenant '{tenant.id}' cannot be updated while {tenant.status}"
            logger.warning(message)
            await self.notifier.notify_tenant_update_failed(user_id, message)
            return

        try:
            tenant.transition_to(ProvisioningStatus.UPDATING)
            await self.ctx.save()

            tenant.name = params.payload.get("name", tenant.name)
            tenant.is_active = bool(params.payload.get("is_active", tenant.is_active))
            tenant.transition_to(ProvisioningStatus.ACTIVE)
            await self.ctx.save()
            logger.info(f"Tenant {tenant.id} updated")
        except Exception as e:
            logger.exception(f"Update failed for tenant {params.tenant_id}")
            await self.ctx.rollback()
            current = await self.tenants.get_by_id(params.tenant_id)
            if current is not None and current.can_transition_to(ProvisioningStatus.FAILED):
                current.mark_failed(JobType.UPDATE_TENANT, str(e))
                await self.ctx.save()
            await self.notifier.notify_tenant_update_failed(user_id, str(e))
            raise

        await self.notifier.notify_tenant_updated(user_id, tenant.id, tenant.name)
