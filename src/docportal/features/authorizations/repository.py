"""Query helpers for working with ``Grant`` records."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docportal.models import Grant

_NEWEST_FIRST = (Grant.created_at.desc(), Grant.id.desc())


class GrantsRepository:
    """Persistence helpers for grants; ordering is always newest first."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, grant_id: int) -> Grant | None:
        return await self._session.get(Grant, grant_id)

    async def list_active_for_owner(self, username: str) -> list[Grant]:
        stmt = (
            select(Grant)
            .where(Grant.owner_username == username, Grant.is_active.is_(True))
            .order_by(*_NEWEST_FIRST)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def list_for_owner(self, username: str) -> list[Grant]:
        stmt = select(Grant).where(Grant.owner_username == username).order_by(*_NEWEST_FIRST)
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def find(self, username: str, bucket: str, path: str) -> Grant | None:
        stmt = select(Grant).where(
            Grant.owner_username == username,
            Grant.bucket == bucket,
            Grant.document_group_path == path,
        )
        result = await self._session.execute(stmt)
        return result.scalars().unique().one_or_none()

    async def list_all(self) -> list[Grant]:
        stmt = select(Grant).order_by(Grant.owner_username, *_NEWEST_FIRST)
        result = await self._session.execute(stmt)
        return list(result.scalars().unique().all())

    async def add(self, grant: Grant) -> Grant:
        self._session.add(grant)
        await self._session.flush()
        await self._session.refresh(grant)
        return grant

    async def delete(self, grant: Grant) -> None:
        await self._session.delete(grant)
        await self._session.flush()


__all__ = ["GrantsRepository"]
