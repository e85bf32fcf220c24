"""
Domain exceptions for the tenancy core.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.
"""

from typing import Any


class TenancyException(Exception):
    """
    Base exception for all tenancy errors.

    All custom exceptions should inherit from this class to allow
    for consistent error handling and logging.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class TenantAlreadyExistsException(TenancyException):
    """Raised when a tenant key is already taken."""

    def __init__(self, tenant_id: str):
        super().__init__("Tenant already exists", "TENANT_ALREADY_EXISTS", {"tenant_id": tenant_id})


class TenantNotFoundException(TenancyException):
    """Raised when tenant is not found."""

    def __init__(self, tenant_id: str):
        super().__init__("Tenant not found", "TENANT_NOT_FOUND", {"tenant_id": tenant_id})


class TenantInvalidException(TenancyException):
    """Raised when a resolved tenant key is unknown or inactive."""

    def __init__(self, tenant_id: str):
        super().__init__("Tenant invalid", "TENANT_INVALID", {"tenant_id": tenant_id})


class RootTenantProtectedException(TenancyException):
    """Raised on any attempt to edit or delete the root tenant."""

    def __init__(self) -> None:
        super().__init__("Cannot edit root tenant", "ROOT_TENANT_PROTECTED")


class InvalidStatusTransitionException(TenancyException):
    """Raised when a provisioning status move is not allowed."""

    def __init__(self, tenant_id: str, current: str, target: str):
        super().__init__(
            f"Tenant '{tenant_id}' cannot move from {current} to {target}",
            "INVALID_STATUS_TRANSITION",
            {"tenant_id": tenant_id, "current": current, "target": target},
        )


class IdentityException(TenancyException):
    """Raised when the identity provider rejects a user operation."""

    def __init__(self, errors: list[str]):
        super().__init__(
            f"Failed to create admin user: {', '.join(errors)}",
            "IDENTITY_ERROR",
            {"errors": errors},
        )


class DatabaseProvisioningException(TenancyException):
    """Raised when creating or migrating an isolated tenant database fails."""

    def __init__(self, reason: str, database: str | None = None):
        details = {"database": database} if database else {}
        super().__init__(f"Database provisioning failed: {reason}", "DATABASE_PROVISIONING_ERROR", details)


class ScopeRequiredException(TenancyException):
    """Raised when tenant-scoped persistence runs without a tenant id."""

    def __init__(self, operation: str):
        super().__init__(
            f"A tenant scope is required for {operation}",
            "SCOPE_REQUIRED",
            {"operation": operation},
        )
