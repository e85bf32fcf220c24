"""Domain enumerations for the tenancy core."""

from enum import Enum


class ProvisioningStatus(str, Enum):
    """Tenant provisioning lifecycle"""

    PENDING = "pending"
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    FAILED = "failed"
    UPDATING = "updating"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]

    def can_transition_to(self, target: "ProvisioningStatus") -> bool:
        """Check a move against the provisioning state machine"""
        return target in _TRANSITIONS[self]


# Re-entering PROVISIONING/UPDATING from itself covers a retried job whose
# previous attempt died before reaching a terminal state. FAILED is left only
# by retrying the operation that failed; Tenant.can_transition_to picks which.
_TRANSITIONS: dict[ProvisioningStatus, frozenset[ProvisioningStatus]] = {
    ProvisioningStatus.PENDING: frozenset({ProvisioningStatus.PROVISIONING}),
    ProvisioningStatus.PROVISIONING: frozenset(
        {ProvisioningStatus.PROVISIONING, ProvisioningStatus.ACTIVE, ProvisioningStatus.FAILED}
    ),
    ProvisioningStatus.ACTIVE: frozenset({ProvisioningStatus.UPDATING}),
    ProvisioningStatus.UPDATING: frozenset(
        {ProvisioningStatus.UPDATING, ProvisioningStatus.ACTIVE, ProvisioningStatus.FAILED}
    ),
    ProvisioningStatus.FAILED: frozenset(
        {ProvisioningStatus.PROVISIONING, ProvisioningStatus.UPDATING}
    ),
}


class JobType(str, Enum):
    """Background job types handled by the worker"""

    PROVISION_TENANT = "provision_tenant"
    UPDATE_TENANT = "update_tenant"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [job_type.value for job_type in cls]
