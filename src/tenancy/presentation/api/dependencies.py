from collections.abc import AsyncIterator
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tenancy.application.services.tenant_management_service import TenantManagementService
from tenancy.application.services.tenant_resolution_service import TenantResolutionService
from tenancy.infrastructure.config.settings import get_settings
from tenancy.infrastructure.identity.identity_service import IdentityService
from tenancy.infrastructure.jobs.dispatcher import JobDispatcher, get_job_dispatcher
from tenancy.infrastructure.persistence.context import BaseDataContext, TenantDataContext
from tenancy.infrastructure.persistence.database import EngineRegistry, get_engine_registry
from tenancy.infrastructure.persistence.repositories.catalog_repo import (CategoryRepository,
                                                                         ProductRepository)
from tenancy.infrastructure.security.jwt import verify_token
from tenancy.shared.context import TenantScope

# Anonymous requests are allowed; they resolve through host/header or fall back to root
security = HTTPBearer(auto_error=False)


async def get_token_claims(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict[str, Any] | None:
    """
    Decode the bearer token when one is present.

    A present but invalid token is rejected rather than treated as anonymous.
    """
    if credentials is None:
        return None
    try:
        return verify_token(credentials.credentials)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def get_registry() -> EngineRegistry:
    return get_engine_registry()


def get_resolution_service(
    registry: Annotated[EngineRegistry, Depends(get_registry)],
) -> TenantResolutionService:
    return TenantResolutionService(get_settings(), registry)


async def get_scope(
    request: Request,
    claims: Annotated[dict[str, Any] | None, Depends(get_token_claims)],
    resolver: Annotated[TenantResolutionService, Depends(get_resolution_service)],
) -> TenantScope:
    """Resolve the request's tenant; unknown or inactive tenants fail here"""
    return await resolver.resolve(claims, request.headers.get("host"), request.headers)


async def get_tenant_context(
    scope: Annotated[TenantScope, Depends(get_scope)],
    registry: Annotated[EngineRegistry, Depends(get_registry)],
) -> AsyncIterator[TenantDataContext]:
    """Tenant data context for one request, closed when the response is done"""
    async with TenantDataContext(scope, registry=registry) as ctx:
        yield ctx


async def get_base_context(
    scope: Annotated[TenantScope, Depends(get_scope)],
    registry: Annotated[EngineRegistry, Depends(get_registry)],
) -> AsyncIterator[BaseDataContext]:
    async with BaseDataContext(scope, registry=registry) as ctx:
        yield ctx


async def require_root(
    claims: Annotated[dict[str, Any] | None, Depends(get_token_claims)],
    scope: Annotated[TenantScope, Depends(get_scope)],
    ctx: Annotated[BaseDataContext, Depends(get_base_context)],
) -> TenantScope:
    """
    Require an authenticated root-tenant user holding the root role.

    Users are looked up through the request's base context, so a user id
    from another tenant never matches.
    """
    if claims is None or scope.user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    settings = get_settings()
    identity = IdentityService(ctx)
    user = await identity.find_by_id(scope.user_id) if scope.tenant_id == settings.root_tenant_id else None
    if user is None or not await identity.is_in_role(user, settings.root_role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Root role required")
    return scope


def get_dispatcher() -> JobDispatcher:
    return get_job_dispatcher()


async def get_tenant_management_service(
    ctx: Annotated[BaseDataContext, Depends(get_base_context)],
    dispatcher: Annotated[JobDispatcher, Depends(get_dispatcher)],
) -> TenantManagementService:
    return TenantManagementService(ctx, dispatcher, get_settings())


async def get_product_repo(
    ctx: Annotated[TenantDataContext, Depends(get_tenant_context)],
) -> ProductRepository:
    return ProductRepository(ctx)


async def get_category_repo(
    ctx: Annotated[TenantDataContext, Depends(get_tenant_context)],
) -> CategoryRepository:
    return CategoryRepository(ctx)
