"""
Tenant resolution: turns request or job context into a TenantScope.

Key order for requests:
    1. tenant claim of the bearer token
    2. subdomain of the Host header
    3. tenant header
    4. the root tenant (anonymous and bootstrap paths)

The resolved key must name an existing, active tenant; anything else fails
before a tenant-scoped context is ever built.
"""

import logging
from collections.abc import Mapping
from typing import Any

from tenancy.domain.exceptions import TenantInvalidException
from tenancy.infrastructure.config.settings import Settings, get_settings
from tenancy.infrastructure.jobs.params import JobParams
from tenancy.infrastructure.persistence.context import DirectoryContext
from tenancy.infrastructure.persistence.database import EngineRegistry, get_engine_registry
from tenancy.shared.context import TenantScope

logger = logging.getLogger(__name__)

_IGNORED_SUBDOMAINS = {"www", "localhost"}


class TenantResolutionService:
    def __init__(self, settings: Settings | None = None, registry: EngineRegistry | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or get_engine_registry()

    def subdomain_of(self, host: str | None) -> str | None:
        """
        Tenant key from the host name, if the host carries one.

        Development hosts look like acme.localhost (2 labels), production
        hosts like acme.example.com (3 labels). Azure default hosts never
        carry a tenant.
        """
        if not host:
            return None
        hostname = host.split(":", 1)[0].lower()
        if "azurewebsites" in hostname:
            return None

        labels = hostname.split(".")
        min_labels = 2 if self.settings.is_development else 3
        if len(labels) < min_labels:
            return None
        candidate = labels[0]
        if not candidate or candidate in _IGNORED_SUBDOMAINS or candidate.isdigit():
            return None
        return candidate

    def resolve_key(
        self,
        claims: Mapping[str, Any] | None,
        host: str | None,
        headers: Mapping[str, str] | None,
    ) -> str:
        claims = claims or {}
        claim = claims.get(self.settings.tenant_claim)
        if claim:
            return str(claim)

        subdomain = self.subdomain_of(host)
        if subdomain:
            return subdomain

        if headers:
            header = headers.get(self.settings.tenant_header_name)
            if header:
                return header.strip()

        return self.settings.root_tenant_id

    async def resolve(
        self,
        claims: Mapping[str, Any] | None = None,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> TenantScope:
        """
        Build the scope for one request.

        Raises:
            TenantInvalidException: unknown or inactive tenant key
        """
        tenant_id = self.resolve_key(claims, host, headers)
        user_id = (claims or {}).get(self.settings.user_id_claim)
        return await self._scope_for(tenant_id, str(user_id) if user_id else None)

    async def resolve_for_job(self, params: JobParams) -> TenantScope:
        """Scope for a job acting inside its (active) tenant on behalf of the initiating user"""
        return await self._scope_for(params.tenant_id, params.initiating_user_id)

    async def _scope_for(self, tenant_id: str, user_id: str | None) -> TenantScope:
        async with DirectoryContext(self.registry) as directory:
            tenant = await directory.get_tenant(tenant_id)

        if tenant is None or not tenant.is_active:
            logger.warning(f"Rejected tenant key '{tenant_id}'")
            raise TenantInvalidException(tenant_id)

        return TenantScope.for_request(
            tenant_id=tenant.id,
            user_id=user_id,
            connection_string=tenant.connection_string,
        )
