from typing import Annotated

from fastapi import APIRouter, Depends, status

from tenancy.application.services.tenant_management_service import TenantManagementService
from tenancy.presentation.api.dependencies import get_tenant_management_service, require_root
from tenancy.presentation.api.v1.schemas.response import Response
from tenancy.presentation.api.v1.schemas.tenant import (CreateTenantRequest,
                                                       TenantAcceptedResponse,
                                                       TenantOptionResponse, TenantResponse,
                                                       UpdateTenantRequest)
from tenancy.shared.context import TenantScope

# Everything but /options needs a root-role user of the root tenant
router = APIRouter()


@router.get(
    "",
    response_model=Response[list[TenantResponse]],
    dependencies=[Depends(require_root)],
)
async def list_tenants(
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
):
    """List all tenants, newest first"""
    tenants = await service.get_tenants()
    return Response.success([TenantResponse.model_validate(t) for t in tenants])


@router.get("/options", response_model=Response[list[TenantOptionResponse]])
async def list_tenant_options(
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
):
    """Active tenants for pickers: root first, then by name"""
    tenants = await service.get_tenant_options()
    return Response.success([TenantOptionResponse.model_validate(t) for t in tenants])


@router.get(
    "/{tenant_id}",
    response_model=Response[TenantResponse],
    dependencies=[Depends(require_root)],
)
async def get_tenant(
    tenant_id: str,
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
):
    tenant = await service.get_tenant(tenant_id)
    return Response.success(TenantResponse.model_validate(tenant))


@router.post("", response_model=Response[TenantAcceptedResponse], status_code=status.HTTP_202_ACCEPTED)
async def create_tenant(
    data: CreateTenantRequest,
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
    scope: Annotated[TenantScope, Depends(require_root)],
):
    """
    Accept a tenant creation request.

    The tenant is stored as Pending and provisioned in the background; the
    initiating user is notified over /ws/notifications when it finishes.
    """
    accepted = await service.create_tenant(
        tenant_id=data.id,
        name=data.name,
        admin_email=str(data.admin_email),
        password=data.password,
        scope=scope,
        has_isolated_database=data.has_isolated_database,
    )
    return Response.success(
        TenantAcceptedResponse(tenant_id=accepted.tenant_id, job_id=accepted.job_id),
        message="Tenant creation started",
    )


@router.put("/{tenant_id}", response_model=Response[TenantAcceptedResponse], status_code=status.HTTP_202_ACCEPTED)
async def update_tenant(
    tenant_id: str,
    data: UpdateTenantRequest,
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
    scope: Annotated[TenantScope, Depends(require_root)],
):
    """Accept a tenant update request; the change is applied in the background"""
    accepted = await service.update_tenant(tenant_id, data.name, data.is_active, scope)
    return Response.success(
        TenantAcceptedResponse(tenant_id=accepted.tenant_id, job_id=accepted.job_id),
        message="Tenant update started",
    )


@router.delete("/{tenant_id}", response_model=Response[TenantAcceptedResponse], status_code=status.HTTP_202_ACCEPTED)
async def delete_tenant(
    tenant_id: str,
    service: Annotated[TenantManagementService, Depends(get_tenant_management_service)],
    scope: Annotated[TenantScope, Depends(require_root)],
):
    """Tenants are deactivated, never removed"""
    accepted = await service.deactivate_tenant(tenant_id, scope)
    return Response.success(
        TenantAcceptedResponse(tenant_id=accepted.tenant_id, job_id=accepted.job_id),
        message="Tenant deactivation started",
    )
