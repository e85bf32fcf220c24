from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from tenancy.infrastructure.persistence.database import IdentityBase
from tenancy.infrastructure.persistence.models.mixins import CuidMixin


class Role(CuidMixin, IdentityBase):
    """Global role; role names are shared by every tenant"""

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class UserRole(IdentityBase):
    """User-role assignment"""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    role_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
