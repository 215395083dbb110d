"""Identities and grants."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    _create_identities()
    _create_grants()


def downgrade() -> None:
    op.drop_index("grants_owner_username_idx", table_name="grants")
    op.drop_table("grants")
    op.drop_table("identities")


def _create_identities() -> None:
    op.create_table(
        "identities",
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("username", name="identities_pkey"),
    )


def _create_grants() -> None:
    op.create_table(
        "grants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_username", sa.String(length=255), nullable=False),
        sa.Column("bucket", sa.String(length=255), nullable=False),
        sa.Column("document_group_path", sa.String(length=1024), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="grants_pkey"),
        sa.ForeignKeyConstraint(
            ["owner_username"],
            ["identities.username"],
            name="grants_owner_username_fkey",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "owner_username",
            "bucket",
            "document_group_path",
            name="grants_owner_username_key",
        ),
    )
    op.create_index("grants_owner_username_idx", "grants", ["owner_username"])
