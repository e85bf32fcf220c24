"""
SQLAlchemy mixins for common model patterns.

These mixins provide the columns each capability needs. Declaring the mixin
only adds columns; the behavior is switched on by listing the matching
Capability in @register_capabilities on the model.

Audit Levels:
    - AuditableMixin: created_by/created_on, last_modified_by/last_modified_on
    - SoftDeleteMixin: deleted_by/deleted_on (null = not deleted)
"""
from datetime import UTC, datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from tenancy.shared.utils.generators import generate_cuid


def utcnow() -> datetime:
    return datetime.now(UTC)


class CuidMixin:
    """
    Mixin for models using CUID as primary key.

    Provides:
        - id: String primary key with automatic CUID generation
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String(64), primary_key=True, default=generate_cuid)


class TenantMixin:
    """
    Mixin for multi-tenant models.

    Provides:
        - tenant_id: Owning tenant key

    Note: no foreign key to the tenants table, since application tables may
          live in an isolated tenant database that has no tenants table.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(String(64), nullable=False, index=True)


class AuditableMixin:
    """
    User audit tracking (who did what, when).

    Provides:
        - created_by / created_on: set once, at insert
        - last_modified_by / last_modified_on: set on every later update

    Note: actor ids are plain strings holding a user id or the "system" actor,
          so no foreign key to the users table.

    Usage:
        @register_capabilities(Capability.AUDITABLE)
        class MyModel(CuidMixin, AuditableMixin, ApplicationBase):
            __tablename__ = "my_model"
    """

    @declared_attr
    def created_by(cls) -> Mapped[str | None]:
        return mapped_column(String(64), nullable=True)

    @declared_attr
    def created_on(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    @declared_attr
    def last_modified_by(cls) -> Mapped[str | None]:
        return mapped_column(String(64), nullable=True)

    @declared_attr
    def last_modified_on(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True)


class SoftDeleteMixin:
    """
    Soft delete support (tombstone pattern).

    Provides:
        - deleted_by: Actor who deleted the record
        - deleted_on: Timestamp set on soft delete (null = not deleted)
    """

    @declared_attr
    def deleted_by(cls) -> Mapped[str | None]:
        return mapped_column(String(64), nullable=True)

    @declared_attr
    def deleted_on(cls) -> Mapped[datetime | None]:
        return mapped_column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_on is not None
