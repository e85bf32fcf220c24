"""Categories: soft-deletable sample entity"""

from sqlalchemy import text


async def test_soft_deleted_category_disappears_but_stays_stored(client, registry, tenant_a, auth_headers):
    """
    GIVEN a category of tenant-a
    WHEN user-a deletes it
    THEN listings no longer show it
    AND the row is still stored with deleted_by/deleted_on set.
    """
    headers = auth_headers("tenant-a", "user-a")
    created = await client.post("/api/v1/categories", json={"name": "U12"}, headers=headers)
    category_id = created.json()["id"]

    response = await client.delete(f"/api/v1/categories/{category_id}", headers=headers)

    assert response.status_code == 204
    assert (await client.get("/api/v1/categories", headers=headers)).json() == []
    assert (await client.delete(f"/api/v1/categories/{category_id}", headers=headers)).status_code == 404

    async with registry.get_engine().connect() as conn:
        row = (
            await conn.execute(
                text("SELECT deleted_by, deleted_on FROM categories WHERE id = :id"), {"id": category_id}
            )
        ).one()
    assert row.deleted_by == "user-a"
    assert row.deleted_on is not None


async def test_list_filters_by_locale(client, tenant_a, auth_headers):
    headers = auth_headers("tenant-a", "user-a")
    await client.post("/api/v1/categories", json={"name": "U12", "locale": "en"}, headers=headers)
    await client.post("/api/v1/categories", json={"name": "Benjamins", "locale": "fr"}, headers=headers)

    response = await client.get("/api/v1/categories", params={"locale": "fr"}, headers=headers)

    assert [c["name"] for c in response.json()] == ["Benjamins"]


async def test_categories_are_isolated_per_tenant(client, tenant_a, tenant_b, auth_headers):
    await client.post("/api/v1/categories", json={"name": "U12"}, headers=auth_headers("tenant-a", "user-a"))

    response = await client.get("/api/v1/categories", headers=auth_headers("tenant-b", "user-b"))

    assert response.json() == []
