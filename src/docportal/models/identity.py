"""Identity and grant models backing the authorization store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docportal.db import Base, UTCDateTime, utc_now


class Identity(Base):
    """Registered portal user keyed by the identity provider username."""

    __tablename__ = "identities"

    username: Mapped[str] = mapped_column(String(255), primary_key=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    def __repr__(self) -> str:
        return f"Identity(username={self.username!r}, is_admin={self.is_admin})"


class Grant(Base):
    """Binds one identity to a (bucket, document group path) pair."""

    __tablename__ = "grants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_username: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("identities.username", ondelete="CASCADE"),
        nullable=False,
    )
    bucket: Mapped[str] = mapped_column(String(255), nullable=False)
    document_group_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utc_now)

    owner: Mapped[Identity] = relationship(Identity, lazy="joined")

    __table_args__ = (
        UniqueConstraint("owner_username", "bucket", "document_group_path"),
        Index("grants_owner_username_idx", "owner_username"),
    )

    def __repr__(self) -> str:
        return (
            f"Grant(id={self.id!r}, owner={self.owner_username!r}, "
            f"bucket={self.bucket!r}, path={self.document_group_path!r})"
        )


__all__ = ["Grant", "Identity"]
