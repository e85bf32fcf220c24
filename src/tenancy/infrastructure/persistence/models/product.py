from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tenancy.infrastructure.persistence.capabilities import Capability, register_capabilities
from tenancy.infrastructure.persistence.database import ApplicationBase
from tenancy.infrastructure.persistence.models.mixins import AuditableMixin, CuidMixin, TenantMixin


@register_capabilities(Capability.TENANT_SCOPED, Capability.AUDITABLE)
class Product(CuidMixin, TenantMixin, AuditableMixin, ApplicationBase):
    """Sample tenant-scoped entity; physically deleted"""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Names are unique per tenant, not globally
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_product_tenant_name"),)
