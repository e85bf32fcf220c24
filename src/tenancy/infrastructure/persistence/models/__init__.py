from tenancy.infrastructure.persistence.models.category import Category
# Mixins for model composition
from tenancy.infrastructure.persistence.models.mixins import (AuditableMixin, CuidMixin,
                                                              SoftDeleteMixin, TenantMixin)
from tenancy.infrastructure.persistence.models.product import Product
from tenancy.infrastructure.persistence.models.role import Role, UserRole
from tenancy.infrastructure.persistence.models.tenant import Tenant
from tenancy.infrastructure.persistence.models.user import ApplicationUser

__all__ = [
    # Identity models
    "Tenant",
    "ApplicationUser",
    "Role",
    "UserRole",
    # Application models
    "Product",
    "Category",
    # Mixins
    "CuidMixin",
    "TenantMixin",
    "AuditableMixin",
    "SoftDeleteMixin",
]
