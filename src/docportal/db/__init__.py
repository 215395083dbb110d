"""DB package exports."""

from .base import NAMING_CONVENTION, Base, metadata, utc_now
from .database import (
    Database,
    DatabaseConfig,
    build_async_url,
    build_sync_url,
    get_database,
    get_db_session,
)
from .types import UTCDateTime

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "utc_now",
    "UTCDateTime",
    "Database",
    "DatabaseConfig",
    "get_database",
    "get_db_session",
    "build_sync_url",
    "build_async_url",
]
