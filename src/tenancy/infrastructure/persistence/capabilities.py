"""
Entity capability registry.

Each mapped model opts into persistence behavior by declaring a capability
list with @register_capabilities. Data contexts read the registry to compose
global query filters and the save pipeline reads it to decide what to stamp.

Usage:
    @register_capabilities(Capability.TENANT_SCOPED, Capability.AUDITABLE)
    class Product(CuidMixin, TenantMixin, AuditableMixin, ApplicationBase):
        __tablename__ = "products"
"""

from enum import Enum
from typing import Any


class Capability(str, Enum):
    """Behaviors a model can opt into"""

    TENANT_SCOPED = "tenant_scoped"  # tenant_id stamped on save and filtered on read
    TENANT_OWNED = "tenant_owned"  # tenant_id filtered in the base context, set by the caller
    AUDITABLE = "auditable"  # created/last-modified stamps
    SOFT_DELETE = "soft_delete"  # deletes become deleted_on/deleted_by stamps

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [cap.value for cap in cls]


REQUIRED_COLUMNS: dict[Capability, tuple[str, ...]] = {
    Capability.TENANT_SCOPED: ("tenant_id",),
    Capability.TENANT_OWNED: ("tenant_id",),
    Capability.AUDITABLE: ("created_by", "created_on", "last_modified_by", "last_modified_on"),
    Capability.SOFT_DELETE: ("deleted_by", "deleted_on"),
}

_registry: dict[type, frozenset[Capability]] = {}


def register_capabilities(*capabilities: Capability):
    """Class decorator recording a model's capability list"""

    def decorator(cls: type) -> type:
        caps = frozenset(capabilities)
        if Capability.TENANT_SCOPED in caps and Capability.TENANT_OWNED in caps:
            raise TypeError(f"{cls.__name__}: TENANT_SCOPED and TENANT_OWNED are exclusive")
        if Capability.SOFT_DELETE in caps and Capability.AUDITABLE not in caps:
            raise TypeError(f"{cls.__name__}: SOFT_DELETE requires AUDITABLE")

        for cap in caps:
            missing = [col for col in REQUIRED_COLUMNS[cap] if not hasattr(cls, col)]
            if missing:
                raise TypeError(
                    f"{cls.__name__} declares {cap.value} but lacks columns: {', '.join(missing)}"
                )

        _registry[cls] = caps
        return cls

    return decorator


def capabilities_of(entity: Any) -> frozenset[Capability]:
    """Capabilities of a model class or instance (empty if unregistered)"""
    cls = entity if isinstance(entity, type) else type(entity)
    return _registry.get(cls, frozenset())


def has_capability(entity: Any, capability: Capability) -> bool:
    return capability in capabilities_of(entity)


def registered_models() -> list[type]:
    return list(_registry)
