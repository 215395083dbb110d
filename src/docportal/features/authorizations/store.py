"""Authorization store: identities and their (bucket, folder) grants.

Every public method translates driver-level database failures (other than
constraint violations, which surface as conflicts) into
``StoreUnavailableError`` so callers see one failure kind.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docportal.common.logging import log_context
from docportal.db import utc_now
from docportal.features.identities.repository import IdentitiesRepository
from docportal.models import Grant, Identity

from .exceptions import (
    GrantConflictError,
    GrantValidationError,
    StoreUnavailableError,
    UnknownGrantError,
)
from .repository import GrantsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GrantChanges:
    """Partial grant update. ``None`` means "leave unchanged"."""

    bucket: str | None = None
    document_group_path: str | None = None
    is_active: bool | None = None

    @property
    def is_empty(self) -> bool:
        return self.bucket is None and self.document_group_path is None and self.is_active is None


def normalize_group_path(path: str) -> str:
    return path.strip().lstrip("/")


@contextmanager
def _store_guard(operation: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError:
        raise
    except DBAPIError as exc:
        logger.error(
            "grants.store.unavailable",
            extra=log_context(operation=operation),
            exc_info=exc,
        )
        raise StoreUnavailableError("Authorization store unavailable") from exc


class AuthorizationStore:
    """Read and write grants for identities."""

    def __init__(self, *, session: AsyncSession, auto_provision: bool = False) -> None:
        self._session = session
        self._grants = GrantsRepository(session)
        self._identities = IdentitiesRepository(session)
        self._auto_provision = auto_provision

    # ---- identities -------------------------------------------------------

    async def get_identity(self, username: str) -> Identity | None:
        """Return the identity, creating it first when auto-provisioning is on."""

        with _store_guard("get_identity"):
            identity = await self._identities.get(username)
            if identity is None and self._auto_provision:
                identity = await self._identities.create(username=username)
                logger.info("identities.auto_provision", extra=log_context(username=username))
            return identity

    # ---- reads ------------------------------------------------------------

    async def get_active_grant(self, username: str) -> Grant | None:
        grants = await self.list_active_grants(username)
        return grants[0] if grants else None

    async def list_active_grants(self, username: str) -> list[Grant]:
        with _store_guard("list_active_grants"):
            return await self._grants.list_active_for_owner(username)

    async def list_grants(self, username: str) -> list[Grant]:
        with _store_guard("list_grants"):
            return await self._grants.list_for_owner(username)

    async def find_grant(self, username: str, bucket: str, path: str) -> Grant | None:
        with _store_guard("find_grant"):
            return await self._grants.find(username, bucket, path)

    async def get_grant(self, grant_id: int) -> Grant:
        with _store_guard("get_grant"):
            grant = await self._grants.get(grant_id)
        if grant is None:
            raise UnknownGrantError(f"Authorization {grant_id} not found")
        return grant

    async def list_all(self) -> list[Grant]:
        with _store_guard("list_all"):
            return await self._grants.list_all()

    # ---- writes -----------------------------------------------------------

    async def create_grant(self, username: str, bucket: str, path: str) -> Grant:
        """Idempotently grant ``username`` access to ``bucket``/``path``.

        An identical active grant is returned unchanged; an identical inactive
        grant is reactivated and becomes the most recent. The identity is
        created when missing.
        """

        username = username.strip()
        bucket = bucket.strip()
        path = normalize_group_path(path)
        if not username or not bucket or not path:
            raise GrantValidationError("username, bucket and documentGroupPath are required")

        with _store_guard("create_grant"):
            identity = await self._identities.get(username)
            if identity is None:
                identity = await self._identities.create(username=username)
                logger.info("identities.create.implicit", extra=log_context(username=username))

            existing = await self._grants.find(username, bucket, path)
            if existing is not None:
                if existing.is_active:
                    logger.info(
                        "grants.create.exists",
                        extra=log_context(username=username, bucket=bucket, grant_id=existing.id),
                    )
                    return existing
                existing.is_active = True
                existing.created_at = utc_now()
                await self._session.flush()
                logger.info(
                    "grants.create.reactivated",
                    extra=log_context(username=username, bucket=bucket, grant_id=existing.id),
                )
                return existing

            grant = Grant(
                owner=identity,
                bucket=bucket,
                document_group_path=path,
                is_active=True,
                created_at=utc_now(),
            )
            try:
                grant = await self._grants.add(grant)
            except IntegrityError as exc:
                raise GrantConflictError("Authorization already exists") from exc

        logger.info(
            "grants.create.success",
            extra=log_context(username=username, bucket=bucket, grant_id=grant.id, path=path),
        )
        return grant

    async def update_grant(self, grant_id: int, changes: GrantChanges) -> Grant:
        if changes.is_empty:
            raise GrantValidationError("No updatable fields supplied")
        if changes.bucket is not None and not changes.bucket.strip():
            raise GrantValidationError("bucket must not be blank")
        if changes.document_group_path is not None and not normalize_group_path(
            changes.document_group_path
        ):
            raise GrantValidationError("documentGroupPath must not be blank")

        grant = await self.get_grant(grant_id)
        with _store_guard("update_grant"):
            if changes.bucket is not None:
                grant.bucket = changes.bucket.strip()
            if changes.document_group_path is not None:
                grant.document_group_path = normalize_group_path(changes.document_group_path)
            if changes.is_active is not None:
                grant.is_active = changes.is_active
            try:
                await self._session.flush()
            except IntegrityError as exc:
                raise GrantConflictError(
                    "Another authorization already covers this bucket and folder"
                ) from exc

        logger.info(
            "grants.update.success",
            extra=log_context(
                username=grant.owner_username,
                bucket=grant.bucket,
                grant_id=grant.id,
                is_active=grant.is_active,
            ),
        )
        return grant

    async def deactivate_grant(self, username: str) -> Grant:
        """Deactivate the user's primary (most recent active) grant."""

        grant = await self.get_active_grant(username)
        if grant is None:
            raise UnknownGrantError(f"No active authorization for {username!r}")
        with _store_guard("deactivate_grant"):
            grant.is_active = False
            await self._session.flush()
        logger.info(
            "grants.deactivate.success",
            extra=log_context(username=username, bucket=grant.bucket, grant_id=grant.id),
        )
        return grant

    async def delete_grant(self, grant_id: int) -> None:
        grant = await self.get_grant(grant_id)
        with _store_guard("delete_grant"):
            await self._grants.delete(grant)
        logger.info(
            "grants.delete.success",
            extra=log_context(username=grant.owner_username, grant_id=grant_id),
        )


__all__ = ["AuthorizationStore", "GrantChanges", "normalize_group_path"]
