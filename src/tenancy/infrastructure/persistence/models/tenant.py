from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tenancy.domain.enums import JobType, ProvisioningStatus
from tenancy.domain.exceptions import InvalidStatusTransitionException
from tenancy.infrastructure.persistence.database import IdentityBase
from tenancy.infrastructure.persistence.models.mixins import utcnow


class Tenant(IdentityBase):
    """
    Tenant directory entry.

    Note: Tenant has no tenant_id and no capabilities; directory rows are
    never filtered. Its status is only moved by the provisioning jobs.
    """

    __tablename__ = "tenants"

    # Human-chosen, URL-safe key ("root", "acme")
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Null means the tenant lives in the default shared database
    connection_string: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProvisioningStatus.PENDING.value, index=True
    )
    provisioning_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Job type whose failure put the tenant in Failed; only that job may move it on
    failed_operation: Mapped[str | None] = mapped_column(String(32), nullable=True)
    last_provisioning_attempt: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_on: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"status IN {tuple(ProvisioningStatus.values())}", name="tenant_status_check"
        ),
    )

    @property
    def provisioning_status(self) -> ProvisioningStatus:
        return ProvisioningStatus(self.status)

    @property
    def has_isolated_database(self) -> bool:
        return bool(self.connection_string)

    def can_transition_to(self, target: ProvisioningStatus) -> bool:
        """
        Check a move against the state machine and, from Failed, against the
        operation that failed.

        A tenant whose provisioning failed has no working admin user or
        database yet, so only a provisioning retry may take it out of Failed.
        A failed update only goes back through Updating.
        """
        current = self.provisioning_status
        if not current.can_transition_to(target):
            return False
        if current is ProvisioningStatus.FAILED:
            return target is _RETRY_STATUS.get(self.failed_operation, ProvisioningStatus.PROVISIONING)
        return True

    def transition_to(self, target: ProvisioningStatus) -> None:
        """Move to a new status, rejecting moves the state machine forbids"""
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionException(self.id, self.status, target.value)
        self.status = target.value
        if target is ProvisioningStatus.ACTIVE:
            self.failed_operation = None
            self.provisioning_error = None

    def mark_failed(self, operation: JobType, error: str) -> None:
        self.transition_to(ProvisioningStatus.FAILED)
        self.failed_operation = operation.value
        self.provisioning_error = error


_RETRY_STATUS: dict[str | None, ProvisioningStatus] = {
    JobType.PROVISION_TENANT.value: ProvisioningStatus.PROVISIONING,
    JobType.UPDATE_TENANT.value: ProvisioningStatus.UPDATING,
}
