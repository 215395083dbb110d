"""Login proxy route with a mocked identity provider."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from docportal.infra.storage import InMemoryStorage
from docportal.main import create_app
from docportal.settings import Settings

pytestmark = pytest.mark.asyncio

GATEWAY_URL = "https://login.example.test/signin"


def _identity_provider(request: httpx.Request) -> httpx.Response:
    password = json.loads(request.content)["password"]
    if password == "correct":
        return httpx.Response(
            200,
            json={"AccessToken": "acc", "IdToken": "idt", "ExpiresIn": 300},
        )
    if password == "explode":
        return httpx.Response(503, text="unavailable")
    return httpx.Response(401, json={"message": "Incorrect username or password."})


@pytest_asyncio.fixture()
async def login_client(settings: Settings) -> AsyncIterator[AsyncClient]:
    configured = settings.model_copy(update={"auth_login_url": GATEWAY_URL})
    app = create_app(
        configured,
        storage=InMemoryStorage(),
        http_transport=httpx.MockTransport(_identity_provider),
    )
    async with LifespanManager(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            yield client


async def test_login_success(login_client: AsyncClient) -> None:
    response = await login_client.post(
        "/api/auth/login",
        json={"username": "usuario1", "password": "correct"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["username"] == "usuario1"
    assert body["accessToken"] == "acc"
    assert body["idToken"] == "idt"
    assert body["tokenType"] == "Bearer"


async def test_login_rejected(login_client: AsyncClient) -> None:
    response = await login_client.post(
        "/api/auth/login",
        json={"username": "usuario1", "password": "wrong"},
    )

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_login_upstream_failure(login_client: AsyncClient) -> None:
    response = await login_client.post(
        "/api/auth/login",
        json={"username": "usuario1", "password": "explode"},
    )

    assert response.status_code == 502


async def test_login_not_configured(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/auth/login",
        json={"username": "usuario1", "password": "correct"},
    )

    assert response.status_code == 503


async def test_login_requires_password(login_client: AsyncClient) -> None:
    response = await login_client.post("/api/auth/login", json={"username": "usuario1"})

    assert response.status_code == 422
