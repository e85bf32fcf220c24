"""
Global query filters composed from the capability registry.

A data context stores its TenantScope and FilterPolicy in the session's
``info`` dict. The ``do_orm_execute`` hook below reads them and attaches one
``with_loader_criteria`` option per registered model to every ORM SELECT.
All predicates for a model are AND-combined, so adding a capability never
replaces an existing filter.
"""

from dataclasses import dataclass, field

from sqlalchemy import and_, event
from sqlalchemy.orm import ORMExecuteState, Session, with_loader_criteria
from sqlalchemy.sql.elements import ColumnElement

from tenancy.infrastructure.persistence.capabilities import (Capability, capabilities_of,
                                                            registered_models)
from tenancy.shared.context import TenantScope

SCOPE_KEY = "tenancy.scope"
POLICY_KEY = "tenancy.filter_policy"


@dataclass(frozen=True)
class FilterPolicy:
    """Which capabilities a context turns into read filters"""

    tenant_capabilities: frozenset[Capability] = field(default_factory=frozenset)
    soft_delete: bool = True


def compose_criteria(model: type, scope: TenantScope, policy: FilterPolicy) -> ColumnElement[bool] | None:
    """Build the combined filter predicate for one model, or None if unfiltered"""
    caps = capabilities_of(model)
    predicates: list[ColumnElement[bool]] = []

    if caps & policy.tenant_capabilities:
        # tenant_id is NOT NULL, so a scope without a tenant matches no rows
        predicates.append(model.tenant_id == scope.tenant_id)  # type: ignore[attr-defined]

    if policy.soft_delete and Capability.SOFT_DELETE in caps:
        predicates.append(model.deleted_on.is_(None))  # type: ignore[attr-defined]

    if not predicates:
        return None
    return and_(*predicates)


class ScopedSession(Session):
    """Sync session class behind every data context's AsyncSession"""

    pass


@event.listens_for(ScopedSession, "do_orm_execute")
def _apply_global_filters(execute_state: ORMExecuteState) -> None:
    if (
        not execute_state.is_select
        or execute_state.is_column_load
        or execute_state.is_relationship_load
    ):
        return

    info = execute_state.session.info
    policy: FilterPolicy | None = info.get(POLICY_KEY)
    scope: TenantScope | None = info.get(SCOPE_KEY)
    if policy is None or scope is None:
        return

    options = []
    for model in registered_models():
        criteria = compose_criteria(model, scope, policy)
        if criteria is not None:
            options.append(with_loader_criteria(model, criteria, include_aliases=True))

    if options:
        execute_state.statement = execute_state.statement.options(*options)
