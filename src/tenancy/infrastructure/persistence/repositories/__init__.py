from tenancy.infrastructure.persistence.repositories.base import BaseRepository
from tenancy.infrastructure.persistence.repositories.catalog_repo import (CategoryRepository,
                                                                         ProductRepository)
from tenancy.infrastructure.persistence.repositories.tenant_repo import TenantRepository
from tenancy.infrastructure.persistence.repositories.user_repo import (RoleRepository,
                                                                      UserRepository)

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "UserRepository",
    "RoleRepository",
    "ProductRepository",
    "CategoryRepository",
]
