"""
Explicit tenant scope passed to every persistence operation.

A scope is created once per request (by the tenant resolution service) or
once per background job, then handed to the data contexts that need it.
Nothing in the persistence layer reads the current tenant or user from
global state.

Usage:
    scope = TenantScope.for_request(tenant_id="acme", user_id="u123", connection_string=None)
    async with TenantDataContext(scope) as ctx:
        ...

    # Background work with no authenticated user
    scope = TenantScope.system(tenant_id="acme")
    scope.actor_id  # "system"
"""

from dataclasses import dataclass

# Stamped into CreatedBy/LastModifiedBy/DeletedBy when no user is present.
# Never a valid cuid, so it cannot collide with a real user id.
SYSTEM_ACTOR_ID = "system"


@dataclass(frozen=True)
class TenantScope:
    """Immutable {tenant_id, user_id, connection_string} triple."""

    tenant_id: str | None
    user_id: str | None = None
    connection_string: str | None = None

    @classmethod
    def for_request(
        cls,
        tenant_id: str,
        user_id: str | None,
        connection_string: str | None,
    ) -> "TenantScope":
        return cls(
            tenant_id=tenant_id,
            user_id=user_id or None,
            connection_string=connection_string or None,
        )

    @classmethod
    def system(cls, tenant_id: str | None = None, connection_string: str | None = None) -> "TenantScope":
        """Scope for migrations, seeding and jobs acting without a user."""
        return cls(tenant_id=tenant_id, user_id=None, connection_string=connection_string or None)

    @property
    def actor_id(self) -> str:
        """User id to stamp on audited rows, or the system actor."""
        return self.user_id or SYSTEM_ACTOR_ID

    @property
    def has_isolated_database(self) -> bool:
        return bool(self.connection_string)
