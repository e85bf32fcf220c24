"""
Identity provider over the base data context.

Mirrors the small user-manager surface the provisioning workflow needs:
create a user with a password, assign a role, look users up, list roles.
Operations that write call save() on the context themselves.
"""

import logging
from dataclasses import dataclass, field

from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models.role import UserRole
from tenancy.infrastructure.persistence.models.user import ApplicationUser
from tenancy.infrastructure.persistence.repositories.user_repo import (RoleRepository,
                                                                      UserRepository,
                                                                      normalize)
from tenancy.infrastructure.security.password import get_password_hash

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class IdentityResult:
    """Outcome of an identity operation"""

    succeeded: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: str) -> "IdentityResult":
        return cls(succeeded=False, errors=list(errors))


def validate_password(password: str | None) -> list[str]:
    """Password policy: length, upper, lower, digit and a non-alphanumeric character"""
    password = password or ""
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Passwords must be at least {MIN_PASSWORD_LENGTH} characters.")
    if not any(ch.isupper() for ch in password):
        errors.append("Passwords must have at least one uppercase ('A'-'Z').")
    if not any(ch.islower() for ch in password):
        errors.append("Passwords must have at least one lowercase ('a'-'z').")
    if not any(ch.isdigit() for ch in password):
        errors.append("Passwords must have at least one digit ('0'-'9').")
    if all(ch.isalnum() for ch in password):
        errors.append("Passwords must have at least one non alphanumeric character.")
    return errors


class IdentityService:
    """User and role management for one base context"""

    def __init__(self, ctx: BaseDataContext) -> None:
        self.ctx = ctx
        self.users = UserRepository(ctx)
        self.roles = RoleRepository(ctx)

    async def create_user(self, user: ApplicationUser, password: str) -> IdentityResult:
        """
        Validate, hash the password and persist a new user.

        Returns a failed result (never raises) for policy violations and
        duplicate usernames or emails.
        """
        errors = validate_password(password)
        if not user.username:
            errors.append("Username is required.")
        if not user.email:
            errors.append("Email is required.")
        if errors:
            return IdentityResult.failed(*errors)

        user.normalized_username = normalize(user.username)
        user.normalized_email = normalize(user.email)

        if await self.users.get_by_username(user.username) is not None:
            return IdentityResult.failed(f"Username '{user.username}' is already taken.")
        if await self.users.get_by_email(user.email) is not None:
            return IdentityResult.failed(f"Email '{user.email}' is already taken.")

        user.password_hash = get_password_hash(password)
        self.ctx.add(user)
        await self.ctx.save()
        logger.info(f"Created user {user.username} for tenant {user.tenant_id}")
        return IdentityResult.success()

    async def add_to_role(self, user: ApplicationUser, role_name: str) -> IdentityResult:
        role = await self.roles.get_by_name(role_name)
        if role is None:
            return IdentityResult.failed(f"Role {role_name} does not exist.")
        if await self.roles.get_assignment(user.id, role.id) is not None:
            return IdentityResult.failed(f"User already in role '{role_name}'.")

        self.ctx.add(UserRole(user_id=user.id, role_id=role.id))
        await self.ctx.save()
        return IdentityResult.success()

    async def is_in_role(self, user: ApplicationUser, role_name: str) -> bool:
        return normalize(role_name) in {normalize(name) for name in await self.get_roles(user)}

    async def find_by_id(self, user_id: str) -> ApplicationUser | None:
        return await self.users.get_by_id(user_id)

    async def find_by_email(self, email: str) -> ApplicationUser | None:
        return await self.users.get_by_email(email)

    async def find_by_username(self, username: str) -> ApplicationUser | None:
        return await self.users.get_by_username(username)

    async def get_roles(self, user: ApplicationUser) -> list[str]:
        return await self.users.get_role_names(user.id)
