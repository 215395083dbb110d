"""Helpers shared by integration tests."""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI

from docportal.features.authorizations.store import AuthorizationStore
from docportal.features.identities.repository import IdentitiesRepository
from docportal.models import Grant

BUCKET = "docs-test"
CARTAS = "Recepcion/Muestreo/Cartas"
FACTURAS = "Recepcion/Muestreo/Facturas"

TokenFactory = Callable[..., str]
HeadersFactory = Callable[..., dict[str, str]]


async def seed_grant(app: FastAPI, username: str, path: str, *, bucket: str = BUCKET) -> Grant:
    async with app.state.db.session_scope() as session:
        return await AuthorizationStore(session=session).create_grant(username, bucket, path)


async def seed_admin(app: FastAPI, username: str) -> None:
    async with app.state.db.session_scope() as session:
        repo = IdentitiesRepository(session)
        identity = await repo.get(username)
        if identity is None:
            await repo.create(username=username, is_admin=True)
        else:
            identity.is_admin = True


__all__ = [
    "BUCKET",
    "CARTAS",
    "FACTURAS",
    "HeadersFactory",
    "TokenFactory",
    "seed_admin",
    "seed_grant",
]
