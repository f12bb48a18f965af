"""Create the entries table.

Revision ID: 20261019_initial_entries
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20261019_initial_entries"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("metadata", sa.Text(), nullable=True),
        sa.Column("user_id", sa.String(length=128), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_entries_user_id", "entries", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_entries_user_id", table_name="entries")
    op.drop_table("entries")
