from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tenancy.infrastructure.persistence.capabilities import Capability, register_capabilities
from tenancy.infrastructure.persistence.database import IdentityBase
from tenancy.infrastructure.persistence.models.mixins import (AuditableMixin, CuidMixin,
                                                              SoftDeleteMixin, TenantMixin)


@register_capabilities(Capability.TENANT_OWNED, Capability.AUDITABLE, Capability.SOFT_DELETE)
class ApplicationUser(CuidMixin, TenantMixin, AuditableMixin, SoftDeleteMixin, IdentityBase):
    """
    Identity user belonging to exactly one tenant.

    The base context filters users to the scope's tenant, but tenant_id is
    set explicitly by whoever creates the user (e.g. provisioning creates an
    admin for the new tenant while acting from another scope).
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(320), nullable=False)
    normalized_username: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    normalized_email: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email_confirmed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (UniqueConstraint("tenant_id", "normalized_email", name="uq_user_tenant_email"),)
