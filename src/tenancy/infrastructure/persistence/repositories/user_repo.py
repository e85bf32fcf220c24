from sqlalchemy import select

from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models.role import Role, UserRole
from tenancy.infrastructure.persistence.models.user import ApplicationUser
from tenancy.infrastructure.persistence.repositories.base import BaseRepository


def normalize(value: str) -> str:
    return value.strip().upper()


class UserRepository(BaseRepository[ApplicationUser]):
    """
    Repository for identity users.

    Every query runs through the base context, so only users of the scope's
    tenant are visible.
    """

    def __init__(self, ctx: BaseDataContext):
        super().__init__(ctx, ApplicationUser)

    async def get_by_id(self, id: str) -> ApplicationUser | None:
        # A query rather than a session lookup, so the tenant filter always applies
        result = await self.ctx.execute(select(ApplicationUser).where(ApplicationUser.id == id))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> ApplicationUser | None:
        result = await self.ctx.execute(
            select(ApplicationUser).where(ApplicationUser.normalized_username == normalize(username))
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> ApplicationUser | None:
        result = await self.ctx.execute(
            select(ApplicationUser).where(ApplicationUser.normalized_email == normalize(email))
        )
        return result.scalars().first()

    async def get_role_names(self, user_id: str) -> list[str]:
        result = await self.ctx.execute(
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        return list(result.scalars().all())


class RoleRepository(BaseRepository[Role]):
    """Repository for global roles"""

    def __init__(self, ctx: BaseDataContext):
        super().__init__(ctx, Role)

    async def get_by_name(self, name: str) -> Role | None:
        result = await self.ctx.execute(select(Role).where(Role.normalized_name == normalize(name)))
        return result.scalar_one_or_none()

    async def get_assignment(self, user_id: str, role_id: str) -> UserRole | None:
        result = await self.ctx.execute(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        return result.scalar_one_or_none()
