"""Business logic for identity administration."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from docportal.common.logging import log_context

from .exceptions import IdentityExistsError, IdentityNotFoundError, IdentityValidationError
from .repository import IdentitiesRepository
from .schemas import IdentityOut, IdentityUpdate

logger = logging.getLogger(__name__)


class IdentitiesService:
    """Create, inspect, and retire portal identities."""

    def __init__(self, *, session: AsyncSession) -> None:
        self._session = session
        self._repo = IdentitiesRepository(session)

    async def list_identities(self) -> list[IdentityOut]:
        identities = await self._repo.list_identities()
        return [IdentityOut.model_validate(identity) for identity in identities]

    async def get_identity(self, username: str) -> IdentityOut:
        identity = await self._repo.get(username)
        if identity is None:
            raise IdentityNotFoundError(username)
        return IdentityOut.model_validate(identity)

    async def create_identity(self, username: str, *, is_admin: bool = False) -> IdentityOut:
        """Create ``username``, or reactivate it when it exists but is inactive."""

        identity = await self._repo.get(username)
        if identity is not None:
            if identity.is_active:
                raise IdentityExistsError(username)
            identity.is_active = True
            identity.is_admin = is_admin
            await self._session.flush()
            logger.info(
                "identities.reactivate.success",
                extra=log_context(username=username, is_admin=is_admin),
            )
            return IdentityOut.model_validate(identity)

        identity = await self._repo.create(username=username, is_admin=is_admin)
        logger.info(
            "identities.create.success",
            extra=log_context(username=username, is_admin=is_admin),
        )
        return IdentityOut.model_validate(identity)

    async def update_identity(self, username: str, payload: IdentityUpdate) -> IdentityOut:
        if payload.is_admin is None and payload.is_active is None:
            raise IdentityValidationError("No updatable fields supplied")

        identity = await self._repo.get(username)
        if identity is None:
            raise IdentityNotFoundError(username)

        if payload.is_admin is not None:
            identity.is_admin = payload.is_admin
        if payload.is_active is not None:
            identity.is_active = payload.is_active
        await self._session.flush()
        logger.info(
            "identities.update.success",
            extra=log_context(
                username=username,
                is_admin=identity.is_admin,
                is_active=identity.is_active,
            ),
        )
        return IdentityOut.model_validate(identity)

    async def delete_identity(self, username: str) -> None:
        identity = await self._repo.get(username)
        if identity is None:
            raise IdentityNotFoundError(username)
        await self._repo.delete(identity)
        logger.info("identities.delete.success", extra=log_context(username=username))


__all__ = ["IdentitiesService"]
