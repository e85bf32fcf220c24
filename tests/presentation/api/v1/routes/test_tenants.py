"""Tenant endpoints: listing, accepted create/update requests, root-only access"""

import pytest

from tenancy.domain.enums import JobType
from tenancy.infrastructure.persistence.context import BaseDataContext
from tenancy.infrastructure.persistence.models import Role, UserRole
from tenancy.shared.context import TenantScope

CREATE_BODY = {
    "id": "acme",
    "name": "Acme",
    "admin_email": "owner@acme.io",
    "password": "Password123!",
}


@pytest.fixture
def add_user(registry, make_user):
    """Insert a user into a tenant, optionally holding the root role"""

    async def factory(tenant_id: str, username: str, root_role: bool = False) -> str:
        async with BaseDataContext(TenantScope.system(tenant_id), registry=registry) as ctx:
            user = make_user(tenant_id, username)
            ctx.add(user)
            await ctx.save()
            if root_role:
                role = Role(name="root", normalized_name="ROOT")
                ctx.add(role)
                await ctx.save()
                ctx.add(UserRole(user_id=user.id, role_id=role.id))
                await ctx.save()
            return user.id

    return factory


@pytest.fixture
async def root_headers(root_tenant, add_user, auth_headers):
    user_id = await add_user("root", "admin", root_role=True)
    return auth_headers("root", user_id)


async def test_create_tenant_is_accepted_and_queued(client, root_headers, job_queue):
    response = await client.post("/api/v1/tenants", json=CREATE_BODY, headers=root_headers)

    assert response.status_code == 202
    body = response.json()
    assert body["succeeded"] is True
    assert body["messages"] == ["Tenant creation started"]
    assert body["data"]["tenant_id"] == "acme"

    params = await job_queue.pop(timeout=0.01)
    assert params.job_id == body["data"]["job_id"]
    assert params.job_type == JobType.PROVISION_TENANT.value
    assert params.initiating_user_id is not None

    response = await client.get("/api/v1/tenants/acme", headers=root_headers)
    assert response.json()["data"]["status"] == "pending"


async def test_duplicate_tenant_returns_failed_envelope(client, root_headers, make_tenant, job_queue):
    await make_tenant("acme")

    response = await client.post("/api/v1/tenants", json=CREATE_BODY, headers=root_headers)

    assert response.status_code == 400
    assert response.json() == {"succeeded": False, "messages": ["Tenant already exists"], "data": None}
    assert job_queue.qsize() == 0


async def test_tenant_key_must_be_slug_shaped(client, root_headers):
    response = await client.post(
        "/api/v1/tenants", json={**CREATE_BODY, "id": "Not A Slug"}, headers=root_headers
    )

    assert response.status_code == 422


async def test_list_tenants_newest_first(client, root_headers, make_tenant):
    await make_tenant("acme", name="Acme")

    response = await client.get("/api/v1/tenants", headers=root_headers)

    assert response.status_code == 200
    ids = [t["id"] for t in response.json()["data"]]
    assert ids == ["acme", "root"]


async def test_tenant_options_are_anonymous(client, root_tenant, make_tenant):
    await make_tenant("acme", name="Acme")
    await make_tenant("old", name="Old", is_active=False)

    response = await client.get("/api/v1/tenants/options")

    assert response.json()["data"] == [{"id": "root", "name": "Root"}, {"id": "acme", "name": "Acme"}]


async def test_get_missing_tenant_is_404(client, root_headers):
    response = await client.get("/api/v1/tenants/ghost", headers=root_headers)

    assert response.status_code == 404
    assert response.json()["messages"] == ["Tenant not found"]


async def test_update_tenant_is_accepted(client, root_headers, make_tenant, job_queue):
    await make_tenant("acme", name="Acme")

    response = await client.put(
        "/api/v1/tenants/acme", json={"name": "Acme Ltd", "is_active": True}, headers=root_headers
    )

    assert response.status_code == 202
    assert response.json()["messages"] == ["Tenant update started"]
    params = await job_queue.pop(timeout=0.01)
    assert params.job_type == JobType.UPDATE_TENANT.value
    assert params.payload == {"name": "Acme Ltd", "is_active": True}


async def test_root_tenant_cannot_be_edited(client, root_headers, job_queue):
    response = await client.put("/api/v1/tenants/root", json={"name": "Other"}, headers=root_headers)

    assert response.status_code == 400
    assert response.json()["messages"] == ["Cannot edit root tenant"]
    assert job_queue.qsize() == 0


async def test_delete_tenant_queues_deactivation(client, root_headers, make_tenant, job_queue):
    await make_tenant("acme", name="Acme")

    response = await client.delete("/api/v1/tenants/acme", headers=root_headers)

    assert response.status_code == 202
    params = await job_queue.pop(timeout=0.01)
    assert params.payload == {"name": "Acme", "is_active": False}


async def test_root_tenant_cannot_be_deleted(client, root_headers):
    response = await client.delete("/api/v1/tenants/root", headers=root_headers)

    assert response.status_code == 400


async def test_unknown_tenant_header_is_rejected(client, root_tenant):
    response = await client.get("/api/v1/tenants", headers={"tenant": "ghost"})

    assert response.status_code == 400
    assert response.json()["messages"] == ["Tenant invalid"]


async def test_invalid_token_is_rejected(client, root_tenant):
    response = await client.get("/api/v1/tenants", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401


class TestRootAccess:
    @pytest.mark.parametrize(
        "method, path, body",
        [
            ("POST", "/api/v1/tenants", CREATE_BODY),
            ("PUT", "/api/v1/tenants/acme", {"name": "Taken"}),
            ("DELETE", "/api/v1/tenants/acme", None),
            ("GET", "/api/v1/tenants", None),
        ],
    )
    async def test_anonymous_caller_is_unauthorized(self, client, root_tenant, make_tenant, job_queue,
                                                    method, path, body):
        await make_tenant("acme", name="Acme")

        response = await client.request(method, path, json=body)

        assert response.status_code == 401
        assert job_queue.qsize() == 0

    async def test_user_of_another_tenant_is_forbidden(self, client, root_tenant, tenant_a, add_user,
                                                       auth_headers, job_queue):
        """
        GIVEN a tenant-a user who even holds the root role
        WHEN they try to create a tenant
        THEN the request is forbidden AND nothing is queued.
        """
        user_id = await add_user("tenant-a", "intruder", root_role=True)

        response = await client.post(
            "/api/v1/tenants", json=CREATE_BODY, headers=auth_headers("tenant-a", user_id)
        )

        assert response.status_code == 403
        assert job_queue.qsize() == 0

    async def test_root_user_without_root_role_is_forbidden(self, client, root_tenant, make_tenant,
                                                            add_user, auth_headers, job_queue):
        await make_tenant("acme", name="Acme")
        user_id = await add_user("root", "clerk")

        response = await client.delete("/api/v1/tenants/acme", headers=auth_headers("root", user_id))

        assert response.status_code == 403
        assert job_queue.qsize() == 0

    async def test_claimed_user_id_from_another_tenant_is_forbidden(self, client, root_tenant, tenant_a,
                                                                    add_user, auth_headers):
        user_id = await add_user("tenant-a", "owner", root_role=True)

        response = await client.get("/api/v1/tenants", headers=auth_headers("root", user_id))

        assert response.status_code == 403
