import pytest

from tenancy.domain.enums import JobType, ProvisioningStatus

P = ProvisioningStatus


class TestProvisioningStatus:
    @pytest.mark.parametrize(
        "current, target",
        [
            (P.PENDING, P.PROVISIONING),
            (P.PROVISIONING, P.ACTIVE),
            (P.PROVISIONING, P.FAILED),
            (P.ACTIVE, P.UPDATING),
            (P.UPDATING, P.ACTIVE),
            (P.UPDATING, P.FAILED),
            (P.FAILED, P.PROVISIONING),
            (P.FAILED, P.UPDATING),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert current.can_transition_to(target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (P.ACTIVE, P.PENDING),
            (P.ACTIVE, P.PROVISIONING),
            (P.FAILED, P.PENDING),
            (P.PENDING, P.ACTIVE),
            (P.PENDING, P.UPDATING),
            (P.ACTIVE, P.FAILED),
        ],
    )
    def test_status_never_moves_backwards(self, current, target):
        assert not current.can_transition_to(target)

    def test_no_transition_returns_to_pending(self):
        assert all(not status.can_transition_to(P.PENDING) for status in P)

    def test_values(self):
        assert P.values() == ["pending", "provisioning", "active", "failed", "updating"]


def test_job_type_values():
    assert JobType.values() == ["provision_tenant", "update_tenant"]
