"""Provisioning workflow: Pending -> Provisioning -> Active | Failed"""

from unittest.mock import AsyncMock

import pytest

from tenancy.application.jobs.provision_tenant import (ProvisionTenantJob, admin_username,
                                                       provision_tenant_scope)
from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import DatabaseProvisioningException, IdentityException
from tenancy.infrastructure.identity.identity_service import IdentityService
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.messaging.notifications import NotificationService
from tenancy.infrastructure.persistence.context import BaseDataContext, DirectoryContext
from tenancy.infrastructure.persistence.models import Role
from tenancy.infrastructure.persistence.provisioner import DatabaseProvisioner
from tenancy.shared.context import TenantScope

PASSWORD = "Password123!"


@pytest.fixture
async def owner_role(registry):
    async with BaseDataContext(TenantScope.system(), registry=registry) as ctx:
        ctx.add(Role(name="academy_owner", normalized_name="ACADEMY_OWNER"))
        await ctx.save()


@pytest.fixture
def notifier():
    return AsyncMock(spec=NotificationService)


def provision_params(tenant_id: str = "acme", password: str = PASSWORD, isolated: bool = False) -> JobParams:
    return JobParams(
        job_type=JobType.PROVISION_TENANT.value,
        tenant_id=tenant_id,
        payload={
            "name": "Acme",
            "admin_email": "owner@acme.io",
            "password": password,
            "has_isolated_database": isolated,
        },
        initiating_user_id="user-1",
    )


@pytest.fixture
def run_job(registry, settings, notifier):
    async def run(params: JobParams) -> None:
        async with BaseDataContext(provision_tenant_scope(params), registry=registry) as ctx:
            job = ProvisionTenantJob(ctx, notifier, DatabaseProvisioner(settings, registry), settings)
            await job.execute(params)

    return run


async def load_tenant(registry, tenant_id: str):
    async with DirectoryContext(registry) as directory:
        return await directory.get_tenant(tenant_id)


async def admin_of(registry, tenant_id: str):
    async with BaseDataContext(TenantScope.system(tenant_id), registry=registry) as ctx:
        identity = IdentityService(ctx)
        user = await identity.find_by_username(admin_username("owner@acme.io", tenant_id))
        roles = await identity.get_roles(user) if user else []
        return user, roles


def test_admin_username_appends_tenant_id():
    assert admin_username("owner@acme.io", "acme") == "owner@acme.io.acme"


def test_job_scope_targets_new_tenant_and_initiator():
    scope = provision_tenant_scope(provision_params())

    assert scope.tenant_id == "acme"
    assert scope.user_id == "user-1"
    assert scope.connection_string is None


class TestProvisionTenantJob:
    async def test_shared_database_tenant_becomes_active(self, registry, make_tenant, owner_role, run_job, notifier):
        """
        GIVEN a Pending tenant on the shared database
        WHEN the provisioning job runs
        THEN the tenant is Active, its admin exists with the owner role
        AND the initiating user is told the tenant was created.
        """
        await make_tenant("acme", name="Acme", status="pending")

        await run_job(provision_params())

        tenant = await load_tenant(registry, "acme")
        assert tenant.provisioning_status is ProvisioningStatus.ACTIVE
        assert tenant.provisioning_error is None
        assert tenant.last_provisioning_attempt is not None

        user, roles = await admin_of(registry, "acme")
        assert user.email == "owner@acme.io"
        assert user.tenant_id == "acme"
        assert user.email_confirmed
        assert user.created_by == "user-1"
        assert roles == ["academy_owner"]
        notifier.notify_tenant_created.assert_awaited_once_with("user-1", "acme", "Acme")
        notifier.notify_tenant_creation_failed.assert_not_awaited()

    async def test_isolated_database_failure_marks_tenant_failed(
        self, registry, make_tenant, owner_role, run_job, notifier, tmp_path
    ):
        """
        GIVEN a Pending tenant whose isolated database cannot be created
        WHEN the provisioning job runs
        THEN the job re-raises for the retry policy
        AND the tenant is Failed with the provisioning error recorded
        AND the initiating user is told creation failed.
        """
        url = f"sqlite+aiosqlite:///{tmp_path / 'unreachable' / 'acme.db'}"
        await make_tenant("acme", name="Acme", status="pending", connection_string=url)

        with pytest.raises(DatabaseProvisioningException):
            await run_job(provision_params(isolated=True))

        tenant = await load_tenant(registry, "acme")
        assert tenant.provisioning_status is ProvisioningStatus.FAILED
        assert tenant.provisioning_error.startswith("Database provisioning failed: ")
        assert tenant.failed_operation == JobType.PROVISION_TENANT.value
        user_id, message = notifier.notify_tenant_creation_failed.await_args[0]
        assert user_id == "user-1"
        assert message == tenant.provisioning_error
        notifier.notify_tenant_created.assert_not_awaited()

    async def test_retry_after_failure_reuses_admin_user(
        self, registry, make_tenant, owner_role, run_job, notifier, tmp_path
    ):
        url = f"sqlite+aiosqlite:///{tmp_path / 'later' / 'acme.db'}"
        await make_tenant("acme", name="Acme", status="pending", connection_string=url)
        with pytest.raises(DatabaseProvisioningException):
            await run_job(provision_params(isolated=True))
        first_user, _ = await admin_of(registry, "acme")

        (tmp_path / "later").mkdir()
        await run_job(provision_params(isolated=True))

        tenant = await load_tenant(registry, "acme")
        assert tenant.provisioning_status is ProvisioningStatus.ACTIVE
        assert tenant.provisioning_error is None
        assert tenant.failed_operation is None
        user, roles = await admin_of(registry, "acme")
        assert user.id == first_user.id
        assert roles == ["academy_owner"]

    async def test_weak_admin_password_marks_tenant_failed(
        self, registry, make_tenant, owner_role, run_job, notifier
    ):
        await make_tenant("acme", name="Acme", status="pending")

        with pytest.raises(IdentityException):
            await run_job(provision_params(password="weak"))

        tenant = await load_tenant(registry, "acme")
        assert tenant.provisioning_status is ProvisioningStatus.FAILED
        assert tenant.provisioning_error.startswith("Failed to create admin user: ")
        user, _ = await admin_of(registry, "acme")
        assert user is None

    async def test_active_tenant_is_left_alone(self, registry, make_tenant, run_job, notifier):
        await make_tenant("acme", name="Acme", status="active")

        await run_job(provision_params())

        assert (await load_tenant(registry, "acme")).provisioning_status is ProvisioningStatus.ACTIVE
        notifier.notify_tenant_created.assert_not_awaited()
        notifier.notify_tenant_creation_failed.assert_not_awaited()

    async def test_tenant_whose_update_failed_is_not_reprovisioned(self, registry, make_tenant, run_job, notifier):
        await make_tenant("acme", name="Acme", status="failed", failed_operation=JobType.UPDATE_TENANT.value)

        await run_job(provision_params())

        tenant = await load_tenant(registry, "acme")
        assert tenant.provisioning_status is ProvisioningStatus.FAILED
        assert tenant.failed_operation == JobType.UPDATE_TENANT.value
        notifier.notify_tenant_created.assert_not_awaited()

    async def test_missing_tenant_ends_quietly(self, registry, run_job, notifier):
        await run_job(provision_params(tenant_id="ghost"))

        notifier.notify_tenant_created.assert_not_awaited()
        notifier.notify_tenant_creation_failed.assert_not_awaited()
