"""Shared pytest fixtures for the document portal tests."""

from __future__ import annotations

import shutil
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import jwt
import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from docportal.db import Database
from docportal.db.migrations import run_migrations
from docportal.infra.storage import InMemoryStorage
from docportal.main import create_app
from docportal.settings import Settings
from tests.support import HeadersFactory, TokenFactory

TOKEN_SECRET = "test-signing-secret-not-verified"


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    for item in items:
        parts = Path(str(item.fspath)).parts
        if "unit" in parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in parts:
            item.add_marker(pytest.mark.integration)

def _sqlite_url(path: Path) -> str:
    return f"sqlite:///{path}"

@pytest.fixture(scope="session")
def migrated_template(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """A SQLite file migrated once per session; tests work on copies."""

    path = tmp_path_factory.mktemp("docportal-template") / "template.sqlite"
    run_migrations(
        Settings(
            _env_file=None,
            database_url=_sqlite_url(path),
            storage_backend="memory",
        )
    )
    return path

@pytest.fixture()
def settings(tmp_path: Path, migrated_template: Path) -> Settings:
    database_path = tmp_path / "docportal.sqlite"
    shutil.copyfile(migrated_template, database_path)
    return Settings(
        _env_file=None,
        database_url=_sqlite_url(database_path),
        database_migrate_on_startup=False,
        storage_backend="memory",
        auth_token_verification="unverified",
        server_cors_origins=[],
        log_level="WARNING",
    )

@pytest_asyncio.fixture()
async def database(settings: Settings) -> AsyncIterator[Database]:
    db = Database.from_settings(settings)
    db.init()
    try:
        yield db
    finally:
        await db.dispose()

@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()

@pytest.fixture()
def app(settings: Settings, storage: InMemoryStorage) -> FastAPI:
    return create_app(settings=settings, storage=storage)

@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with LifespanManager(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://testserver",
        ) as client:
            yield client

@pytest.fixture()
def make_token() -> TokenFactory:
    def _make(username: str | None, *, expires_in: int = 3600, **claims: Any) -> str:
        payload: dict[str, Any] = {"exp": int(time.time()) + expires_in, **claims}
        if username is not None:
            payload["cognito:username"] = username
        return jwt.encode(payload, TOKEN_SECRET, algorithm="HS256")

    return _make

@pytest.fixture()
def auth_headers(make_token: TokenFactory) -> HeadersFactory:
    """Build the access + identity token header pair for ``username``."""

    def _headers(
        username: str,
        *,
        id_username: str | None = None,
        name: str | None = None,
    ) -> dict[str, str]:
        id_claims: dict[str, Any] = {"token_use": "id"}
        if name is not None:
            id_claims["name"] = name
        headers = {
            "Authorization": f"Bearer {make_token(username, token_use='access')}",
            "X-Id-Token": make_token(id_username or username, **id_claims),
        }
        return headers

    return _headers
