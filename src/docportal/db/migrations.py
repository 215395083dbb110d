"""Programmatic Alembic runner.

Migrations ship inside the package (``docportal/migrations``) so the same
upgrade path works from a checkout, an installed wheel, the CLI, and the
application lifespan.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

from docportal.settings import Settings, get_settings

from .database import DatabaseConfig, build_sync_url, ensure_sqlite_parent_dir

__all__ = [
    "DEFAULT_MIGRATION_TIMEOUT_S",
    "build_alembic_config",
    "run_migrations",
    "run_migrations_async",
]

logger = logging.getLogger(__name__)

DEFAULT_MIGRATION_TIMEOUT_S = 30.0


def migrations_path() -> Path:
    return Path(__file__).resolve().parents[1] / "migrations"


def build_alembic_config(settings: Settings) -> Config:
    """Build an in-memory Alembic config pointed at the packaged scripts."""

    sync_url = build_sync_url(DatabaseConfig.from_settings(settings))
    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(migrations_path()))
    # ConfigParser interpolation treats % specially.
    alembic_cfg.set_main_option("sqlalchemy.url", sync_url.replace("%", "%%"))
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def run_migrations(settings: Settings | None = None, *, revision: str = "head") -> None:
    resolved = settings or get_settings()
    alembic_cfg = build_alembic_config(resolved)
    ensure_sqlite_parent_dir(make_url(resolved.database_url))
    safe_url = make_url(resolved.database_url).render_as_string(hide_password=True)
    logger.info("db.migrate.start", extra={"database_url": safe_url, "revision": revision})
    command.upgrade(alembic_cfg, revision)
    logger.info("db.migrate.complete", extra={"database_url": safe_url, "revision": revision})


async def run_migrations_async(
    settings: Settings | None = None,
    *,
    revision: str = "head",
    timeout_seconds: float | None = DEFAULT_MIGRATION_TIMEOUT_S,
) -> None:
    try:
        if timeout_seconds is None:
            await asyncio.to_thread(run_migrations, settings, revision=revision)
        else:
            await asyncio.wait_for(
                asyncio.to_thread(run_migrations, settings, revision=revision),
                timeout=timeout_seconds,
            )
    except TimeoutError as exc:
        raise RuntimeError(f"Alembic migrations exceeded {timeout_seconds:.0f}s.") from exc
