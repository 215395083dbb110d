"""Query helpers for working with ``Identity`` records."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from docportal.models import Identity


class IdentitiesRepository:
    """Persistence helpers for portal identities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, username: str) -> Identity | None:
        return await self._session.get(Identity, username)

    async def list_identities(self) -> list[Identity]:
        stmt = select(Identity).order_by(Identity.username)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        *,
        username: str,
        is_admin: bool = False,
        is_active: bool = True,
    ) -> Identity:
        identity = Identity(username=username, is_admin=is_admin, is_active=is_active)
        self._session.add(identity)
        await self._session.flush()
        return identity

    async def delete(self, identity: Identity) -> None:
        # Rely on ON DELETE CASCADE for grants.
        await self._session.execute(
            delete(Identity).where(Identity.username == identity.username)
        )
        self._session.expunge(identity)
        await self._session.flush()


__all__ = ["IdentitiesRepository"]
