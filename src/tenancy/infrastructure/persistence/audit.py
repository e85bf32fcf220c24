"""
Audit stamping for the save pipeline.

The interceptor works on a ChangeSet collected from the session right before
a flush. It never flushes or commits itself; DataContext.save() owns the
transaction around it.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from tenancy.domain.exceptions import ScopeRequiredException
from tenancy.infrastructure.persistence.capabilities import Capability, has_capability
from tenancy.infrastructure.persistence.models.mixins import utcnow
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)

_CREATION_FIELDS = ("created_by", "created_on")


@dataclass
class ChangeSet:
    """Pending work of one save, grouped by what the interceptor stamps"""

    added: list[Any] = field(default_factory=list)
    modified: list[Any] = field(default_factory=list)
    soft_deleted: list[Any] = field(default_factory=list)
    hard_deleted: list[Any] = field(default_factory=list)

    @classmethod
    def collect(cls, session: Session, soft_deleted: Iterable[Any] = ()) -> "ChangeSet":
        soft = list(soft_deleted)
        soft_ids = {id(obj) for obj in soft}
        return cls(
            added=list(session.new),
            modified=[
                obj
                for obj in session.dirty
                if id(obj) not in soft_ids and session.is_modified(obj)
            ],
            soft_deleted=soft,
            hard_deleted=list(session.deleted),
        )

    def __len__(self) -> int:
        return len(self.added) + len(self.modified) + len(self.soft_deleted) + len(self.hard_deleted)


class AuditInterceptor:
    """Stamps tenant and audit fields onto pending changes"""

    def apply(self, changes: ChangeSet, scope: TenantScope, now: datetime | None = None) -> None:
        now = now or utcnow()
        actor = scope.actor_id

        for entity in (*changes.added, *changes.modified):
            if has_capability(entity, Capability.TENANT_SCOPED):
                if not scope.tenant_id:
                    raise ScopeRequiredException(f"saving {type(entity).__name__}")
                entity.tenant_id = scope.tenant_id

        for entity in changes.added:
            if has_capability(entity, Capability.AUDITABLE):
                entity.created_on = now
                entity.created_by = actor

        for entity in changes.modified:
            if has_capability(entity, Capability.AUDITABLE):
                self._restore_creation_fields(entity)
                entity.last_modified_on = now
                entity.last_modified_by = actor

        for entity in changes.soft_deleted:
            entity.deleted_on = now
            entity.deleted_by = actor

        logger.debug(
            "Stamped %d added, %d modified, %d soft-deleted entities for tenant %s as %s",
            len(changes.added),
            len(changes.modified),
            len(changes.soft_deleted),
            scope.tenant_id,
            actor,
        )

    @staticmethod
    def _restore_creation_fields(entity: Any) -> None:
        """Undo caller edits to created_by/created_on; they are write-once"""
        state = inspect(entity)
        for name in _CREATION_FIELDS:
            history = state.attrs[name].history
            if history.deleted:
                setattr(entity, name, history.deleted[0])
