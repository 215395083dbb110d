"""`docportal` command implementations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated, TypeVar

import anyio
import typer

from docportal.common.logging import setup_logging
from docportal.db import Database
from docportal.db.migrations import run_migrations
from docportal.features.authorizations.exceptions import GrantValidationError, UnknownGrantError
from docportal.features.authorizations.store import AuthorizationStore
from docportal.features.identities.exceptions import (
    IdentityExistsError,
    IdentityNotFoundError,
)
from docportal.features.identities.schemas import IdentityUpdate
from docportal.features.identities.service import IdentitiesService
from docportal.settings import Settings, get_settings

T = TypeVar("T")

DEMO_GRANTS: tuple[tuple[str, str], ...] = (
    ("usuario1", "Recepcion/Muestreo/Cartas"),
    ("usuario1", "Recepcion/Muestreo/Facturas"),
    ("usuario2", "Recepcion/Muestreo/Cartas"),
)

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Document portal CLI (migrate, start, users, grants, seed-demo).",
)
users_app = typer.Typer(add_completion=False, help="Manage portal identities.")
grants_app = typer.Typer(add_completion=False, help="Manage bucket/folder authorizations.")
app.add_typer(users_app, name="users")
app.add_typer(grants_app, name="grants")


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _settings() -> Settings:
    settings = get_settings()
    setup_logging(settings)
    return settings


def _with_database(settings: Settings, fn: Callable[[Database], Awaitable[T]]) -> T:
    """Run ``fn`` against a freshly migrated database, then dispose of it."""

    run_migrations(settings)

    async def _run() -> T:
        database = Database.from_settings(settings)
        database.init()
        try:
            return await fn(database)
        finally:
            await database.dispose()

    return anyio.run(_run)


def _fail(message: str) -> typer.Exit:
    typer.echo(f"error: {message}", err=True)
    return typer.Exit(code=1)


@app.command(name="migrate", help="Apply database migrations.")
def migrate(
    revision: Annotated[str, typer.Option("--revision", help="Target revision.")] = "head",
) -> None:
    run_migrations(_settings(), revision=revision)
    typer.echo(f"database migrated to {revision}")


@app.command(name="start", help="Serve the API with uvicorn.")
def start(
    host: Annotated[str, typer.Option("--host")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port")] = 8000,
    reload: Annotated[bool, typer.Option("--reload/--no-reload")] = False,
) -> None:
    import uvicorn

    uvicorn.run(
        "docportal.asgi:app",
        host=host,
        port=port,
        reload=reload,
        log_config=None,
    )


# ---- users ------------------------------------------------------------------


@users_app.command(name="add", help="Register an identity (reactivates an inactive one).")
def users_add(
    username: str,
    admin: Annotated[bool, typer.Option("--admin", help="Grant administrator rights.")] = False,
) -> None:
    async def _add(database: Database) -> None:
        async with database.session_scope() as session:
            await IdentitiesService(session=session).create_identity(username, is_admin=admin)

    try:
        _with_database(_settings(), _add)
    except IdentityExistsError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"identity {username} ready (admin={admin})")


@users_app.command(name="list", help="List identities.")
def users_list() -> None:
    async def _list(database: Database) -> list[str]:
        async with database.session_scope() as session:
            identities = await IdentitiesService(session=session).list_identities()
        return [
            f"{identity.username}\tadmin={identity.is_admin}\tactive={identity.is_active}"
            for identity in identities
        ]

    for line in _with_database(_settings(), _list):
        typer.echo(line)


def _update_identity(username: str, payload: IdentityUpdate) -> None:
    async def _update(database: Database) -> None:
        async with database.session_scope() as session:
            await IdentitiesService(session=session).update_identity(username, payload)

    try:
        _with_database(_settings(), _update)
    except IdentityNotFoundError as exc:
        raise _fail(str(exc)) from exc


@users_app.command(name="set-admin", help="Grant or revoke administrator rights.")
def users_set_admin(
    username: str,
    revoke: Annotated[bool, typer.Option("--revoke", help="Remove admin rights.")] = False,
) -> None:
    _update_identity(username, IdentityUpdate(is_admin=not revoke))
    typer.echo(f"identity {username} admin={not revoke}")


@users_app.command(name="deactivate", help="Deactivate an identity without deleting it.")
def users_deactivate(username: str) -> None:
    _update_identity(username, IdentityUpdate(is_active=False))
    typer.echo(f"identity {username} deactivated")


@users_app.command(name="delete", help="Delete an identity and all of its grants.")
def users_delete(
    username: str,
    yes: Annotated[bool, typer.Option("--yes", help="Confirm deletion.")] = False,
) -> None:
    if not yes:
        raise _fail("delete requires --yes")

    async def _delete(database: Database) -> None:
        async with database.session_scope() as session:
            await IdentitiesService(session=session).delete_identity(username)

    try:
        _with_database(_settings(), _delete)
    except IdentityNotFoundError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"identity {username} deleted")


# ---- grants -----------------------------------------------------------------


@grants_app.command(name="add", help="Authorize a user on a bucket folder.")
def grants_add(username: str, bucket: str, path: str) -> None:
    async def _add(database: Database) -> int:
        async with database.session_scope() as session:
            grant = await AuthorizationStore(session=session).create_grant(username, bucket, path)
            return grant.id

    try:
        grant_id = _with_database(_settings(), _add)
    except GrantValidationError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"grant {grant_id}: {username} -> {bucket}/{path}")


@grants_app.command(name="list", help="List grants (optionally for one user).")
def grants_list(
    username: Annotated[str | None, typer.Option("--user", help="Only this user.")] = None,
) -> None:
    async def _list(database: Database) -> list[str]:
        async with database.session_scope() as session:
            store = AuthorizationStore(session=session)
            grants = await (store.list_grants(username) if username else store.list_all())
        return [
            f"{grant.id}\t{grant.owner_username}\t{grant.bucket}\t"
            f"{grant.document_group_path}\tactive={grant.is_active}"
            for grant in grants
        ]

    for line in _with_database(_settings(), _list):
        typer.echo(line)


@grants_app.command(name="deactivate", help="Deactivate a user's most recent active grant.")
def grants_deactivate(username: str) -> None:
    async def _deactivate(database: Database) -> int:
        async with database.session_scope() as session:
            grant = await AuthorizationStore(session=session).deactivate_grant(username)
            return grant.id

    try:
        grant_id = _with_database(_settings(), _deactivate)
    except UnknownGrantError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"grant {grant_id} deactivated")


@grants_app.command(name="delete", help="Delete a grant by id.")
def grants_delete(grant_id: int) -> None:
    async def _delete(database: Database) -> None:
        async with database.session_scope() as session:
            await AuthorizationStore(session=session).delete_grant(grant_id)

    try:
        _with_database(_settings(), _delete)
    except UnknownGrantError as exc:
        raise _fail(str(exc)) from exc
    typer.echo(f"grant {grant_id} deleted")


@app.command(name="seed-demo", help="Create the demo identities and grants.")
def seed_demo(
    bucket: Annotated[
        str | None,
        typer.Option("--bucket", help="Bucket for the demo grants (default: settings)."),
    ] = None,
    admin: Annotated[
        str | None,
        typer.Option("--admin", help="Also register this username as administrator."),
    ] = None,
) -> None:
    settings = _settings()
    target_bucket = bucket or settings.demo_bucket

    async def _seed(database: Database) -> int:
        async with database.session_scope() as session:
            store = AuthorizationStore(session=session)
            for username, path in DEMO_GRANTS:
                await store.create_grant(username, target_bucket, path)
            if admin:
                service = IdentitiesService(session=session)
                try:
                    await service.create_identity(admin, is_admin=True)
                except IdentityExistsError:
                    await service.update_identity(admin, IdentityUpdate(is_admin=True))
        return len(DEMO_GRANTS)

    count = _with_database(settings, _seed)
    typer.echo(f"seeded {count} demo grants on {target_bucket}")


def main() -> None:
    app()


__all__ = ["app", "main"]
