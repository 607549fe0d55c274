"""Tests for the branch registry."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_and_list_branches(
    async_client: AsyncClient, admin_headers, worker_user, worker_headers, product
):
    resp = await async_client.post(
        "/api/branches", json={"name": "Test Branch", "description": "Main"}, headers=admin_headers
    )
    assert resp.status_code == 201

    await async_client.post(
        "/api/orders",
        json={"requested_date": "2031-01-01", "items": [{"product_id": product.id, "quantity": 1}]},
        headers=worker_headers,
    )

    listing = await async_client.get("/api/branches", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["branches"] == [
        {"name": "Test Branch", "active_workers": 1, "total_orders": 1, "pending_orders": 1}
    ]


@pytest.mark.asyncio
async def test_duplicate_branch(async_client: AsyncClient, admin_headers, branch):
    resp = await async_client.post("/api/branches", json={"name": "Test Branch"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Branch already exists"


@pytest.mark.asyncio
async def test_branch_name_validation(async_client: AsyncClient, admin_headers):
    resp = await async_client.post("/api/branches", json={"name": "Bad/Name!"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "name"


@pytest.mark.asyncio
async def test_branch_names_open_to_workers(async_client: AsyncClient, worker_headers, branch):
    resp = await async_client.get("/api/branches/names", headers=worker_headers)
    assert resp.status_code == 200
    assert resp.json()["branches"] == ["Test Branch"]

    admin_only = await async_client.get("/api/branches", headers=worker_headers)
    assert admin_only.status_code == 403


@pytest.mark.asyncio
async def test_branch_detail(async_client: AsyncClient, admin_headers, branch, worker_user):
    resp = await async_client.get("/api/branches/Test Branch", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["description"] == "Main street"
    assert data["active_workers"] == 1
    assert data["workers"][0]["username"] == "worker"

    missing = await async_client.get("/api/branches/Nowhere", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_rename_relabels_users_and_orders(
    async_client: AsyncClient, admin_headers, worker_headers, branch, worker_user, product
):
    """Renaming a branch rewrites the label on its workers and orders."""
    created = await async_client.post(
        "/api/orders",
        json={"requested_date": "2031-01-01", "items": [{"product_id": product.id, "quantity": 1}]},
        headers=worker_headers,
    )
    order_id = created.json()["id"]

    resp = await async_client.put(
        "/api/branches/Test Branch", json={"name": "Harbour"}, headers=admin_headers
    )
    assert resp.status_code == 200
    assert resp.json()["old_name"] == "Test Branch"
    assert resp.json()["new_name"] == "Harbour"

    me = await async_client.get("/api/auth/me", headers=worker_headers)
    assert me.json()["branch"] == "Harbour"
    order = await async_client.get(f"/api/orders/{order_id}", headers=admin_headers)
    assert order.json()["branch"] == "Harbour"
    # Description untouched when not supplied
    detail = await async_client.get("/api/branches/Harbour", headers=admin_headers)
    assert detail.json()["description"] == "Main street"


@pytest.mark.asyncio
async def test_rename_clash(async_client: AsyncClient, admin_headers, branch):
    await async_client.post("/api/branches", json={"name": "Harbour"}, headers=admin_headers)
    resp = await async_client.put(
        "/api/branches/Test Branch", json={"name": "Harbour"}, headers=admin_headers
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_delete_branch_with_workers_refused(
    async_client: AsyncClient, admin_headers, branch, worker_user
):
    resp = await async_client.delete("/api/branches/Test Branch", headers=admin_headers)
    assert resp.status_code == 400
    assert "active worker" in resp.json()["detail"]


@pytest.mark.asyncio
async def test_delete_empty_branch(async_client: AsyncClient, admin_headers, branch):
    resp = await async_client.delete("/api/branches/Test Branch", headers=admin_headers)
    assert resp.status_code == 200
    names = await async_client.get("/api/branches/names", headers=admin_headers)
    assert names.json()["branches"] == []
