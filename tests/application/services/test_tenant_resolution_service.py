"""Tests for request and job tenant resolution"""

import pytest

from tenancy.application.services.tenant_resolution_service import TenantResolutionService
from tenancy.domain.exceptions import TenantInvalidException
from tenancy.infrastructure.jobs.params import JobParams


@pytest.fixture
def resolver(settings, registry) -> TenantResolutionService:
    return TenantResolutionService(settings, registry)


@pytest.fixture
def production_resolver(settings, registry) -> TenantResolutionService:
    return TenantResolutionService(settings.model_copy(update={"environment": "production"}), registry)


class TestResolveKey:
    def test_claim_wins_over_host_and_header(self, resolver):
        key = resolver.resolve_key({"tenant": "acme"}, "other.localhost", {"tenant": "third"})

        assert key == "acme"

    def test_subdomain_wins_over_header(self, resolver):
        assert resolver.resolve_key(None, "acme.localhost:8000", {"tenant": "third"}) == "acme"

    def test_header_when_no_claim_or_subdomain(self, resolver):
        assert resolver.resolve_key({}, "localhost", {"tenant": " acme "}) == "acme"

    def test_root_when_nothing_names_a_tenant(self, resolver, settings):
        assert resolver.resolve_key(None, None, None) == settings.root_tenant_id

    @pytest.mark.parametrize(
        "host, expected",
        [
            ("acme.localhost", "acme"),
            ("localhost", None),
            ("www.localhost", None),
            ("127.0.0.1", None),
            ("acme.azurewebsites.net", None),
            ("", None),
        ],
    )
    def test_development_subdomains(self, resolver, host, expected):
        assert resolver.subdomain_of(host) == expected

    @pytest.mark.parametrize(
        "host, expected",
        [
            ("acme.example.com", "acme"),
            ("example.com", None),
            ("www.example.com", None),
            ("acme.example.com:443", "acme"),
        ],
    )
    def test_production_needs_three_labels(self, production_resolver, host, expected):
        assert production_resolver.subdomain_of(host) == expected


class TestResolve:
    async def test_active_tenant_yields_scope_with_user(self, resolver, make_tenant):
        await make_tenant("acme", connection_string="sqlite+aiosqlite:///acme.db")

        scope = await resolver.resolve({"tenant": "acme", "uid": "user-1"})

        assert scope.tenant_id == "acme"
        assert scope.user_id == "user-1"
        assert scope.connection_string == "sqlite+aiosqlite:///acme.db"

    async def test_anonymous_request_resolves_to_root(self, resolver, root_tenant):
        scope = await resolver.resolve()

        assert scope.tenant_id == "root"
        assert scope.user_id is None

    async def test_unknown_tenant_is_invalid(self, resolver):
        with pytest.raises(TenantInvalidException):
            await resolver.resolve(headers={"tenant": "ghost"})

    async def test_inactive_tenant_is_invalid(self, resolver, make_tenant):
        await make_tenant("acme", is_active=False)

        with pytest.raises(TenantInvalidException) as exc_info:
            await resolver.resolve({"tenant": "acme"})

        assert exc_info.value.message == "Tenant invalid"

    async def test_job_scope_uses_initiating_user(self, resolver, make_tenant):
        await make_tenant("acme")
        params = JobParams(job_type="update_tenant", tenant_id="acme", initiating_user_id="user-1")

        scope = await resolver.resolve_for_job(params)

        assert scope.tenant_id == "acme"
        assert scope.user_id == "user-1"
