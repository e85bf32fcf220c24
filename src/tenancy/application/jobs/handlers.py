"""Wires job types to per-job handler instances for the worker"""

from tenancy.application.jobs.provision_tenant import ProvisionTenantJob, provision_tenant_scope
from tenancy.application.jobs.update_tenant import UpdateTenantJob
from tenancy.domain.enums import JobType
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.jobs.worker import JobHandler, JobHandlerRegistry
from tenancy.infrastructure.messaging.notifications import NotificationService
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.database import EngineRegistry
from tenancy.infrastructure.persistence.provisioner import DatabaseProvisioner
from tenancy.shared.context import TenantScope


def build_job_registry(
    engines: EngineRegistry,
    notifier: NotificationService,
    settings: Settings | None = None,
) -> JobHandlerRegistry:
    settings = settings or get_settings()
    registry = JobHandlerRegistry()

    def provision_factory() -> JobHandler:
        async def handle(params: JobParams) -> None:
            ctx = BaseDataContext(provision_tenant_scope(params), registry=engines)
            try:
                job = ProvisionTenantJob(ctx, notifier, DatabaseProvisioner(settings, engines), settings)
                await job.execute(params)
            finally:
                await ctx.close()

        return handle

    def update_factory() -> JobHandler:
        async def handle(params: JobParams) -> None:
            scope = TenantScope(tenant_id=settings.root_tenant_id, user_id=params.initiating_user_id)
            ctx = BaseDataContext(scope, registry=engines)
            try:
                await UpdateTenantJob(ctx, notifier, settings).execute(params)
            finally:
                await ctx.close()

        return handle

    registry.register(JobType.PROVISION_TENANT.value, provision_factory)
    registry.register(JobType.UPDATE_TENANT.value, update_factory)
    return registry
