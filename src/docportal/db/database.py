"""Database engine + session factory.

Standard behavior:
- One engine per application (created in the lifespan, stored on ``app.state``)
- One session per request (FastAPI dependency)
- Commit on success, rollback on exception
- SQLite: foreign keys on, busy_timeout, WAL for file databases
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from docportal.settings import Settings

__all__ = [
    "Database",
    "DatabaseConfig",
    "build_async_url",
    "build_sync_url",
    "get_database",
    "get_db_session",
]


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Minimal DB config.

    ``url`` may be sync or async; SQLite URLs are converted to
    ``sqlite+aiosqlite`` at runtime and back to ``sqlite`` for Alembic.
    """

    url: str
    echo: bool = False
    sqlite_busy_timeout_ms: int = 30_000

    @classmethod
    def from_settings(cls, settings: Settings) -> DatabaseConfig:
        return cls(
            url=settings.database_url,
            echo=bool(settings.database_echo),
            sqlite_busy_timeout_ms=int(settings.database_sqlite_busy_timeout_ms),
        )


# ---- URL helpers ------------------------------------------------------------


def _is_sqlite_memory(url: URL) -> bool:
    db = (url.database or "").strip()
    if not db or db == ":memory:":
        return True
    return db.startswith("file:") and (url.query or {}).get("mode") == "memory"


def ensure_sqlite_parent_dir(url: URL) -> None:
    if url.get_backend_name() != "sqlite":
        return
    db = (url.database or "").strip()
    if not db or db == ":memory:" or db.startswith("file:"):
        return
    path = Path(db)
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    path.parent.mkdir(parents=True, exist_ok=True)


def build_sync_url(cfg: DatabaseConfig) -> str:
    """Return the *sync* SQLAlchemy URL string (for Alembic)."""
    url = make_url(cfg.url)
    if url.get_backend_name() == "sqlite":
        url = url.set(drivername="sqlite")
    elif "+" in url.drivername:
        url = url.set(drivername=url.get_backend_name())
    return url.render_as_string(hide_password=False)


def build_async_url(cfg: DatabaseConfig) -> str:
    """Return the *async* SQLAlchemy URL string (for runtime)."""
    url = make_url(cfg.url)
    if url.get_backend_name() == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    return url.render_as_string(hide_password=False)


def _build_engine_kwargs(url: URL, cfg: DatabaseConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"echo": cfg.echo}
    if url.get_backend_name() != "sqlite":
        kwargs["pool_pre_ping"] = True
        return kwargs
    if _is_sqlite_memory(url):
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


# ---- Database object --------------------------------------------------------


class Database:
    """Holds an engine + sessionmaker.

    Call ``init()`` once on startup and ``await dispose()`` on shutdown.
    """

    def __init__(self, cfg: DatabaseConfig) -> None:
        self.config = cfg
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(DatabaseConfig.from_settings(settings))

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call init() at startup.")
        return self._engine

    @property
    def sessionmaker(self) -> async_sessionmaker[AsyncSession]:
        if self._sessionmaker is None:
            raise RuntimeError("Database not initialized. Call init() at startup.")
        return self._sessionmaker

    def init(self) -> None:
        """Create engine + sessionmaker (idempotent)."""
        if self._engine is not None:
            return

        async_url = build_async_url(self.config)
        url_obj = make_url(async_url)
        is_sqlite = url_obj.get_backend_name() == "sqlite"
        if is_sqlite:
            ensure_sqlite_parent_dir(url_obj)

        engine = create_async_engine(async_url, **_build_engine_kwargs(url_obj, self.config))

        if is_sqlite:
            busy_ms = int(self.config.sqlite_busy_timeout_ms)
            use_wal = not _is_sqlite_memory(url_obj)

            @event.listens_for(engine.sync_engine, "connect")
            def _sqlite_on_connect(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("PRAGMA foreign_keys=ON")
                    cur.execute(f"PRAGMA busy_timeout={busy_ms}")
                    if use_wal:
                        cur.execute("PRAGMA journal_mode=WAL")
                        cur.execute("PRAGMA synchronous=NORMAL")
                finally:
                    cur.close()

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            expire_on_commit=False,
            autoflush=False,
        )

    async def dispose(self) -> None:
        """Dispose engine (call on shutdown)."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """Unit of work outside a request: commit on success, rollback on error."""
        session = self.sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await asyncio.shield(session.close())


def get_database(request: Request) -> Database:
    database = getattr(request.app.state, "db", None)
    if database is None:
        raise RuntimeError("Database not initialized on application state.")
    return database


async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one AsyncSession per request."""
    session = get_database(request).sessionmaker()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await asyncio.shield(session.close())
