"""create users, phone_numbers, projects and errors tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18

  - users          alert recipients (id = identity provider subject)
  - phone_numbers  SMS targets, at most one primary per user
  - projects       hashed API key + per-project notification cooldown gate
  - errors         ingested SDK events
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("notifications_enabled", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── 2. phone_numbers ────────────────────────────────────
    op.create_table(
        "phone_numbers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("is_primary", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("label", sa.Text(), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_phone_numbers_user_id", "phone_numbers", ["user_id"])
    op.create_index(
        "uq_phone_numbers_one_primary_per_user",
        "phone_numbers",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
    )

    # ── 3. projects ─────────────────────────────────────────
    op.create_table(
        "projects",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("owner_user_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("api_key_hash", sa.Text(), nullable=False),
        sa.Column("api_key_prefix", sa.String(12), nullable=False),
        sa.Column("last_notified_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("api_key_hash"),
    )
    op.create_index("ix_projects_owner_user_id", "projects", ["owner_user_id"])

    # ── 4. errors ───────────────────────────────────────────
    op.create_table(
        "errors",
        sa.Column("id", sa.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("project_id", sa.UUID(), nullable=False),
        sa.Column("level", sa.String(10), server_default="error", nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("stack_trace", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("received_at", sa.TIMESTAMP(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("state", sa.String(10), server_default="active", nullable=False),
        sa.Column("muted_until", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.CheckConstraint("level IN ('error', 'warn', 'info', 'log')", name="ck_errors_level_valid"),
        sa.CheckConstraint("state IN ('active', 'resolved', 'muted')", name="ck_errors_state_valid"),
    )
    op.create_index("ix_errors_project_id_received_at", "errors", ["project_id", "received_at"])


def downgrade() -> None:
    op.drop_index("ix_errors_project_id_received_at", table_name="errors")
    op.drop_table("errors")
    op.drop_index("ix_projects_owner_user_id", table_name="projects")
    op.drop_table("projects")
    op.drop_index("uq_phone_numbers_one_primary_per_user", table_name="phone_numbers")
    op.drop_index("ix_phone_numbers_user_id", table_name="phone_numbers")
    op.drop_table("phone_numbers")
    op.drop_table("users")
