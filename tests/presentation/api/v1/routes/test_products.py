"""Products: a tenant-scoped sample entity served through the tenant data context"""

import pytest


@pytest.fixture
def as_tenant_a(tenant_a, auth_headers):
    return auth_headers("tenant-a", "user-a")


@pytest.fixture
def as_tenant_b(tenant_b, auth_headers):
    return auth_headers("tenant-b", "user-b")


async def test_create_product_stamps_tenant_and_actor(client, as_tenant_a):
    response = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)

    assert response.status_code == 201
    data = response.json()
    assert data["tenant_id"] == "tenant-a"
    assert data["created_by"] == "user-a"
    assert data["last_modified_by"] is None


async def test_products_are_isolated_per_tenant(client, as_tenant_a, as_tenant_b):
    created = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)
    product_id = created.json()["id"]

    assert (await client.get("/api/v1/products", headers=as_tenant_b)).json() == []
    assert (await client.put(f"/api/v1/products/{product_id}", json={"name": "X"}, headers=as_tenant_b)).status_code == 404
    assert (await client.delete(f"/api/v1/products/{product_id}", headers=as_tenant_b)).status_code == 404
    assert [p["name"] for p in (await client.get("/api/v1/products", headers=as_tenant_a)).json()] == ["Ball"]


async def test_same_name_is_allowed_in_another_tenant(client, as_tenant_a, as_tenant_b):
    await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)

    response = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_b)

    assert response.status_code == 201


async def test_duplicate_name_in_same_tenant(client, as_tenant_a):
    await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)

    response = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)

    assert response.status_code == 400
    assert response.json()["detail"] == "Product 'Ball' already exists"


async def test_update_product_stamps_modification(client, as_tenant_a):
    created = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)
    product_id = created.json()["id"]

    response = await client.put(
        f"/api/v1/products/{product_id}", json={"description": "Size 5"}, headers=as_tenant_a
    )

    assert response.status_code == 200
    data = response.json()
    assert data["description"] == "Size 5"
    assert data["name"] == "Ball"
    assert data["last_modified_by"] == "user-a"
    assert data["created_by"] == "user-a"


async def test_delete_product(client, as_tenant_a):
    created = await client.post("/api/v1/products", json={"name": "Ball"}, headers=as_tenant_a)

    response = await client.delete(f"/api/v1/products/{created.json()['id']}", headers=as_tenant_a)

    assert response.status_code == 204
    assert (await client.get("/api/v1/products", headers=as_tenant_a)).json() == []


async def test_tenant_header_selects_tenant_for_anonymous_calls(client, tenant_a):
    response = await client.post("/api/v1/products", json={"name": "Cone"}, headers={"tenant": "tenant-a"})

    assert response.status_code == 201
    assert response.json()["tenant_id"] == "tenant-a"
    assert response.json()["created_by"] == "system"
