from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from tenancy.infrastructure.persistence.capabilities import Capability, register_capabilities
from tenancy.infrastructure.persistence.database import ApplicationBase
from tenancy.infrastructure.persistence.models.mixins import (AuditableMixin, CuidMixin,
                                                              SoftDeleteMixin, TenantMixin)


@register_capabilities(Capability.TENANT_SCOPED, Capability.AUDITABLE, Capability.SOFT_DELETE)
class Category(CuidMixin, TenantMixin, AuditableMixin, SoftDeleteMixin, ApplicationBase):
    """Sample tenant-scoped entity; soft deleted"""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    locale: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
