"""Service layer for the health module."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docportal.common.logging import log_context
from docportal.db import Database, utc_now
from docportal.infra.storage import StorageError, StorageGateway
from docportal.settings import Settings

from .schemas import HealthCheckResponse, HealthComponentStatus

logger = logging.getLogger(__name__)


class HealthService:
    """Probe the API's own dependencies. Never raises for a failing probe."""

    def __init__(
        self,
        *,
        settings: Settings,
        database: Database,
        storage: StorageGateway,
    ) -> None:
        self._settings = settings
        self._database = database
        self._storage = storage

    async def status(self) -> HealthCheckResponse:
        components = [
            HealthComponentStatus(
                name="api",
                status="available",
                detail=f"v{self._settings.app_version}",
            ),
            await self._database_status(),
            await self._storage_status(),
        ]
        healthy = all(component.status == "available" for component in components)
        response = HealthCheckResponse(
            status="ok" if healthy else "degraded",
            timestamp=utc_now(),
            components=components,
        )
        logger.debug(
            "health.status.success",
            extra=log_context(status=response.status, component_count=len(components)),
        )
        return response

    async def _database_status(self) -> HealthComponentStatus:
        try:
            async with self._database.session_scope() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("health.database.unavailable", extra=log_context(error=str(exc)))
            return HealthComponentStatus(name="database", status="unavailable", detail="error")
        return HealthComponentStatus(name="database", status="available", detail="connected")

    async def _storage_status(self) -> HealthComponentStatus:
        backend = self._settings.storage_backend
        try:
            await self._storage.check_connection(self._settings.storage_health_bucket)
        except StorageError as exc:
            logger.warning(
                "health.storage.unavailable",
                extra=log_context(backend=backend, error=str(exc)),
            )
            return HealthComponentStatus(name="storage", status="unavailable", detail=backend)
        return HealthComponentStatus(name="storage", status="available", detail=backend)


__all__ = ["HealthService"]
