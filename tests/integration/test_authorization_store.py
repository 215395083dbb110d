"""Authorization store against a migrated SQLite database."""

from __future__ import annotations

import pytest

from docportal.db import Database
from docportal.features.authorizations.exceptions import (
    GrantConflictError,
    GrantValidationError,
    UnknownGrantError,
)
from docportal.features.authorizations.store import AuthorizationStore, GrantChanges

pytestmark = pytest.mark.asyncio

BUCKET = "docs-test"
CARTAS = "Recepcion/Muestreo/Cartas"
FACTURAS = "Recepcion/Muestreo/Facturas"


async def test_create_is_idempotent_and_creates_identity(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        first = await store.create_grant("usuario1", BUCKET, f"/{CARTAS}")
        second = await store.create_grant(" usuario1 ", BUCKET, CARTAS)

        assert first.id == second.id
        assert first.document_group_path == CARTAS
        identity = await store.get_identity("usuario1")
        assert identity is not None
        assert identity.is_admin is False


async def test_blank_values_are_rejected(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        with pytest.raises(GrantValidationError):
            await store.create_grant("usuario1", " ", CARTAS)
        with pytest.raises(GrantValidationError):
            await store.create_grant("usuario1", BUCKET, "/")


async def test_active_grants_are_newest_first(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        await store.create_grant("usuario1", BUCKET, CARTAS)
        newest = await store.create_grant("usuario1", BUCKET, FACTURAS)

        grants = await store.list_active_grants("usuario1")
        primary = await store.get_active_grant("usuario1")

    assert [g.document_group_path for g in grants] == [FACTURAS, CARTAS]
    assert primary is not None
    assert primary.id == newest.id


async def test_deactivate_then_recreate_reactivates(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        original = await store.create_grant("usuario1", BUCKET, CARTAS)
        await store.create_grant("usuario1", BUCKET, FACTURAS)

        deactivated = await store.deactivate_grant("usuario1")
        assert deactivated.document_group_path == FACTURAS
        assert [g.id for g in await store.list_active_grants("usuario1")] == [original.id]

        revived = await store.create_grant("usuario1", BUCKET, FACTURAS)
        assert revived.id == deactivated.id
        assert revived.is_active

        active = await store.list_active_grants("usuario1")
        assert active[0].id == revived.id
        assert len(await store.list_grants("usuario1")) == 2


async def test_deactivate_without_active_grant(database: Database) -> None:
    async with database.session_scope() as session:
        with pytest.raises(UnknownGrantError):
            await AuthorizationStore(session=session).deactivate_grant("nobody")


async def test_update_grant(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        grant = await store.create_grant("usuario2", BUCKET, CARTAS)

        updated = await store.update_grant(
            grant.id,
            GrantChanges(document_group_path="/Recepcion/Otros", is_active=False),
        )

        assert updated.document_group_path == "Recepcion/Otros"
        assert updated.is_active is False
        assert updated.bucket == BUCKET


async def test_update_rejects_empty_and_blank_changes(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        grant = await store.create_grant("usuario2", BUCKET, CARTAS)

        with pytest.raises(GrantValidationError):
            await store.update_grant(grant.id, GrantChanges())
        with pytest.raises(GrantValidationError):
            await store.update_grant(grant.id, GrantChanges(bucket="  "))
        with pytest.raises(UnknownGrantError):
            await store.update_grant(9999, GrantChanges(is_active=True))


async def test_update_into_existing_grant_conflicts(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        await store.create_grant("usuario1", BUCKET, CARTAS)
        facturas = await store.create_grant("usuario1", BUCKET, FACTURAS)

        with pytest.raises(GrantConflictError):
            await store.update_grant(facturas.id, GrantChanges(document_group_path=CARTAS))
        await session.rollback()


async def test_delete_grant(database: Database) -> None:
    async with database.session_scope() as session:
        store = AuthorizationStore(session=session)
        grant = await store.create_grant("usuario1", BUCKET, CARTAS)

        await store.delete_grant(grant.id)

        assert await store.find_grant("usuario1", BUCKET, CARTAS) is None
        with pytest.raises(UnknownGrantError):
            await store.delete_grant(grant.id)


async def test_auto_provision_creates_missing_identity(database: Database) -> None:
    async with database.session_scope() as session:
        assert await AuthorizationStore(session=session).get_identity("nuevo") is None
        identity = await AuthorizationStore(session=session, auto_provision=True).get_identity(
            "nuevo"
        )

    assert identity is not None
    assert identity.is_active
