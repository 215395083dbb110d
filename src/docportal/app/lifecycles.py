"""FastAPI lifespan helpers for the document portal."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.routing import Lifespan
from sqlalchemy import text
from sqlalchemy.engine import make_url

from docportal.common.logging import log_context
from docportal.core.auth import build_claims_reader
from docportal.db import Database, utc_now
from docportal.db.migrations import run_migrations_async
from docportal.features.files.leases import ProcessingLeases
from docportal.infra.storage import (
    StorageError,
    StorageGateway,
    init_storage,
    shutdown_storage,
)
from docportal.settings import Settings

logger = logging.getLogger(__name__)


def create_application_lifespan(
    *,
    settings: Settings,
    storage: StorageGateway | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> Lifespan[FastAPI]:
    """Return the FastAPI lifespan handler used by the app factory.

    ``storage`` and ``http_transport`` replace the configured storage backend
    and the identity-provider transport (tests, local demos).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.settings = settings
        app.state.started_at = utc_now()
        logger.info(
            "docportal.startup",
            extra=log_context(
                version=settings.app_version,
                storage_backend=settings.storage_backend,
                scope_match=settings.scope_match,
                grant_default_policy=settings.grant_default_policy,
            ),
        )

        safe_url = make_url(settings.database_url).render_as_string(hide_password=True)
        if settings.database_migrate_on_startup:
            await run_migrations_async(settings)

        logger.info("db.init.start", extra={"database_url": safe_url})
        database = Database.from_settings(settings)
        database.init()
        app.state.db = database
        logger.info("db.init.complete", extra={"database_url": safe_url})

        gateway = init_storage(app, settings, gateway=storage)
        http_client = httpx.AsyncClient(
            timeout=settings.auth_login_timeout_seconds,
            transport=http_transport,
        )
        app.state.http_client = http_client

        try:
            try:
                async with database.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            except Exception as exc:
                logger.error(
                    "db.connection.failed",
                    extra={"database_url": safe_url},
                    exc_info=True,
                )
                raise RuntimeError(
                    "Database is not reachable. Verify DOCPORTAL_DATABASE_URL."
                ) from exc

            try:
                await gateway.check_connection(settings.storage_health_bucket)
            except StorageError as exc:
                logger.error(
                    "storage.connection.failed",
                    extra=log_context(bucket=settings.storage_health_bucket),
                    exc_info=True,
                )
                raise RuntimeError(
                    "Object storage is not reachable. Verify the bucket and credentials."
                ) from exc

            app.state.claims_reader = build_claims_reader(settings)
            app.state.processing_leases = ProcessingLeases(
                ttl_seconds=settings.processing_lease_ttl_seconds
            )
            yield
        finally:
            await http_client.aclose()
            shutdown_storage(app)
            await database.dispose()
            app.state.db = None
            logger.info("docportal.shutdown")

    return lifespan


__all__ = ["create_application_lifespan"]
