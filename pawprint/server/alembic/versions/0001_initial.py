"""Initial schema: users, workspaces, readings, workspace_invites.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

MONEY = sa.Numeric(12, 4, asdecimal=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("github_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("user_id", name=op.f("pk_users")),
        sa.UniqueConstraint("email", name=op.f("uq_users_email")),
        sa.UniqueConstraint("github_id", name=op.f("uq_users_github_id")),
    )

    op.create_table(
        "workspaces",
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("api_key", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), server_default="true", nullable=False),
        sa.Column("alert_cost_threshold", MONEY, nullable=True),
        sa.Column("alert_downtime_minutes", sa.Integer(), server_default="5", nullable=True),
        sa.Column("webhook_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.user_id"], name="fk_workspaces_user_id", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("workspace_id", name=op.f("pk_workspaces")),
        sa.UniqueConstraint("api_key", name=op.f("uq_workspaces_api_key")),
        sa.UniqueConstraint("slug", name=op.f("uq_workspaces_slug")),
    )
    op.create_index("ix_workspaces_user_id", "workspaces", ["user_id"])

    op.create_table(
        "readings",
        sa.Column("reading_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("agent_id", sa.Text(), nullable=True),
        sa.Column("gateway_online", sa.Boolean(), nullable=True),
        sa.Column("gateway_uptime", sa.BigInteger(), nullable=True),
        sa.Column("sessions_active", sa.Integer(), nullable=True),
        sa.Column("sessions_total", sa.Integer(), nullable=True),
        sa.Column("crons_enabled", sa.Integer(), nullable=True),
        sa.Column("crons_total", sa.Integer(), nullable=True),
        sa.Column("cost_today", MONEY, nullable=True),
        sa.Column("cost_month", MONEY, nullable=True),
        sa.Column("tokens_input", sa.BigInteger(), nullable=True),
        sa.Column("tokens_output", sa.BigInteger(), nullable=True),
        sa.Column("model_breakdown", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("system_hostname", sa.Text(), nullable=True),
        sa.Column("system_platform", sa.Text(), nullable=True),
        sa.Column("system_arch", sa.Text(), nullable=True),
        sa.Column("system_cpu_count", sa.Integer(), nullable=True),
        sa.Column("system_cpu_usage_percent", sa.Float(), nullable=True),
        sa.Column("system_memory_total_mb", sa.Integer(), nullable=True),
        sa.Column("system_memory_free_mb", sa.Integer(), nullable=True),
        sa.Column("system_memory_used_percent", sa.Float(), nullable=True),
        sa.Column("system_disk_total_gb", sa.Float(), nullable=True),
        sa.Column("system_disk_free_gb", sa.Float(), nullable=True),
        sa.Column("system_disk_used_percent", sa.Float(), nullable=True),
        sa.Column("system_local_ip", sa.Text(), nullable=True),
        sa.Column("system_uptime", sa.BigInteger(), nullable=True),
        sa.Column("system_load_avg", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("endpoints", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("processes", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("custom_metrics", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("errors_count", sa.Integer(), nullable=True),
        sa.Column("last_error_message", sa.Text(), nullable=True),
        sa.Column("last_error_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["workspace_id"], ["workspaces.workspace_id"], name="fk_readings_workspace_id", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("reading_id", name=op.f("pk_readings")),
    )
    op.create_index(
        "ix_readings_workspace_timestamp",
        "readings",
        ["workspace_id", sa.text("timestamp DESC")],
    )

    op.create_table(
        "workspace_invites",
        sa.Column("invite_id", sa.String(), nullable=False),
        sa.Column("workspace_id", sa.String(), nullable=False),
        sa.Column("token", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), server_default="member", nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["workspace_id"],
            ["workspaces.workspace_id"],
            name="fk_workspace_invites_workspace_id",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("invite_id", name=op.f("pk_workspace_invites")),
        sa.UniqueConstraint("token", name=op.f("uq_workspace_invites_token")),
    )


def downgrade() -> None:
    op.drop_table("workspace_invites")
    op.drop_index("ix_readings_workspace_timestamp", table_name="readings")
    op.drop_table("readings")
    op.drop_index("ix_workspaces_user_id", table_name="workspaces")
    op.drop_table("workspaces")
    op.drop_table("users")
