"""Workspaces, membership edges and progress history.

Revision ID: 0001_create_workspaces
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from alembic import op

from workspace_service.db.types import GUID, UTCDateTime

revision = "0001_create_workspaces"
down_revision: Optional[str] = None
branch_labels: Optional[str] = None
depends_on: Optional[str] = None


def upgrade() -> None:
    op.create_table(
        "workspaces",
        sa.Column("id", GUID(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("subscription_id", sa.String(length=64), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("progress_state", sa.String(length=32), nullable=False),
        sa.Column("progress_last_updated", UTCDateTime(), nullable=False),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", UTCDateTime(), nullable=True),
        sa.Column("deletion_id", sa.String(length=32), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("updated_by", sa.String(length=64), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="workspaces_pkey"),
        sa.UniqueConstraint(
            "name", "subscription_id", name="workspaces_name_subscription_id_key"
        ),
    )
    op.create_index("workspaces_subscription_id_idx", "workspaces", ["subscription_id"])
    op.create_index("workspaces_is_deleted_idx", "workspaces", ["is_deleted"])
    op.create_index("workspaces_created_at_idx", "workspaces", ["created_at"])

    op.create_table(
        "workspace_members",
        sa.Column("workspace_id", GUID(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("relation", sa.String(length=16), nullable=False),
        sa.Column("role", sa.String(length=64), nullable=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name="workspace_members_workspace_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint(
            "workspace_id", "user_id", "relation", name="workspace_members_pkey"
        ),
    )
    op.create_index("workspace_members_user_id_idx", "workspace_members", ["user_id"])

    op.create_table(
        "workspace_progress_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("workspace_id", GUID(), nullable=False),
        sa.Column("state", sa.String(length=32), nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("updated_by", sa.String(length=64), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.id"],
            name="workspace_progress_entries_workspace_id_fkey",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="workspace_progress_entries_pkey"),
    )
    op.create_index(
        "workspace_progress_entries_workspace_id_idx",
        "workspace_progress_entries",
        ["workspace_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "workspace_progress_entries_workspace_id_idx", table_name="workspace_progress_entries"
    )
    op.drop_table("workspace_progress_entries")
    op.drop_index("workspace_members_user_id_idx", table_name="workspace_members")
    op.drop_table("workspace_members")
    op.drop_index("workspaces_created_at_idx", table_name="workspaces")
    op.drop_index("workspaces_is_deleted_idx", table_name="workspaces")
    op.drop_index("workspaces_subscription_id_idx", table_name="workspaces")
    op.drop_table("workspaces")
