"""Tenant status moves, including which operation may leave Failed"""

import pytest

from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import InvalidStatusTransitionException
from tenancy.infrastructure.persistence.models import Tenant

P = ProvisioningStatus


def failed_tenant(operation: JobType | None) -> Tenant:
    return Tenant(
        id="acme",
        name="Acme",
        status=P.FAILED.value,
        failed_operation=operation.value if operation else None,
        provisioning_error="boom",
    )


class TestLeavingFailed:
    def test_failed_provisioning_only_retries_provisioning(self):
        tenant = failed_tenant(JobType.PROVISION_TENANT)

        assert tenant.can_transition_to(P.PROVISIONING)
        assert not tenant.can_transition_to(P.UPDATING)

    def test_failed_update_only_retries_the_update(self):
        tenant = failed_tenant(JobType.UPDATE_TENANT)

        assert tenant.can_transition_to(P.UPDATING)
        assert not tenant.can_transition_to(P.PROVISIONING)

    def test_unknown_failed_operation_is_treated_as_provisioning(self):
        tenant = failed_tenant(None)

        assert tenant.can_transition_to(P.PROVISIONING)
        assert not tenant.can_transition_to(P.UPDATING)

    def test_refused_move_raises_and_keeps_status(self):
        tenant = failed_tenant(JobType.PROVISION_TENANT)

        with pytest.raises(InvalidStatusTransitionException):
            tenant.transition_to(P.UPDATING)

        assert tenant.status == "failed"


def test_mark_failed_records_operation_and_error():
    tenant = Tenant(id="acme", name="Acme", status=P.UPDATING.value)

    tenant.mark_failed(JobType.UPDATE_TENANT, "disk full")

    assert tenant.provisioning_status is P.FAILED
    assert tenant.failed_operation == "update_tenant"
    assert tenant.provisioning_error == "disk full"


def test_reaching_active_clears_failure_details():
    tenant = failed_tenant(JobType.UPDATE_TENANT)

    tenant.transition_to(P.UPDATING)
    tenant.transition_to(P.ACTIVE)

    assert tenant.failed_operation is None
    assert tenant.provisioning_error is None
