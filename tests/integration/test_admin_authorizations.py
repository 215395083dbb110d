"""Administrative grant routes."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from tests.support import BUCKET, CARTAS, FACTURAS, HeadersFactory, seed_admin, seed_grant

pytestmark = pytest.mark.asyncio


async def test_admin_routes_require_authentication(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/admin/authorizations")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["detail"] == "Authentication required"


async def test_non_admin_with_valid_grant_cannot_modify_grants(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    grant = await seed_grant(app, "usuario1", CARTAS)

    response = await async_client.patch(
        f"/api/admin/authorizations/{grant.id}",
        json={"documentGroupPath": FACTURAS},
        headers=auth_headers("usuario1"),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Administrator rights required"

    listing = await async_client.get(
        "/api/admin/authorizations",
        headers=auth_headers("usuario1"),
    )
    assert listing.status_code == 403


async def test_admin_grant_lifecycle(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_admin(app, "root")
    headers = auth_headers("root")

    created = await async_client.post(
        "/api/admin/authorizations",
        json={"username": "usuario2", "bucket": BUCKET, "documentGroupPath": CARTAS},
        headers=headers,
    )
    assert created.status_code == 201
    body = created.json()
    assert body["username"] == "usuario2"
    assert body["documentGroupPath"] == CARTAS
    assert body["isActive"] is True
    grant_id = body["id"]

    again = await async_client.post(
        "/api/admin/authorizations",
        json={"username": "usuario2", "bucket": BUCKET, "documentGroupPath": CARTAS},
        headers=headers,
    )
    assert again.status_code == 201
    assert again.json()["id"] == grant_id

    listing = await async_client.get("/api/admin/authorizations", headers=headers)
    assert listing.status_code == 200
    [entry] = [item for item in listing.json() if item["username"] == "usuario2"]
    assert entry["ownerIsAdmin"] is False
    assert entry["ownerIsActive"] is True

    updated = await async_client.patch(
        f"/api/admin/authorizations/{grant_id}",
        json={"documentGroupPath": FACTURAS, "owner": "root"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["documentGroupPath"] == FACTURAS
    assert updated.json()["username"] == "usuario2"

    per_user = await async_client.get("/api/admin/users/usuario2/authorizations", headers=headers)
    assert [item["id"] for item in per_user.json()] == [grant_id]

    deactivated = await async_client.post(
        "/api/admin/users/usuario2/authorizations/deactivate",
        headers=headers,
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["isActive"] is False

    deleted = await async_client.delete(f"/api/admin/authorizations/{grant_id}", headers=headers)
    assert deleted.status_code == 204

    missing = await async_client.delete(f"/api/admin/authorizations/{grant_id}", headers=headers)
    assert missing.status_code == 404


async def test_admin_update_validation(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_admin(app, "root")
    grant = await seed_grant(app, "usuario1", CARTAS)
    headers = auth_headers("root")

    empty = await async_client.patch(
        f"/api/admin/authorizations/{grant.id}",
        json={"owner": "someone-else"},
        headers=headers,
    )
    assert empty.status_code == 422

    unknown = await async_client.patch(
        "/api/admin/authorizations/9999",
        json={"isActive": False},
        headers=headers,
    )
    assert unknown.status_code == 404

    blank = await async_client.post(
        "/api/admin/authorizations",
        json={"username": "usuario1", "bucket": "  ", "documentGroupPath": CARTAS},
        headers=headers,
    )
    assert blank.status_code == 422


async def test_deactivate_without_active_grant_is_404(
    app: FastAPI,
    async_client: AsyncClient,
    auth_headers: HeadersFactory,
) -> None:
    await seed_admin(app, "root")

    response = await async_client.post(
        "/api/admin/users/nobody/authorizations/deactivate",
        headers=auth_headers("root"),
    )

    assert response.status_code == 404
