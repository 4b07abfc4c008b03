"""SQLAlchemy ORM models for PostgreSQL.

These are the single source of truth for the database schema.  Alembic reads
``Base.metadata`` to autogenerate migration scripts; the migrations under
``alembic/versions`` are what actually shape a deployed database.

Uses SQLAlchemy 2.0 declarative style with ``Mapped`` type annotations.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Numeric, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Timezone-aware timestamp type for all datetime columns.
TimestampTZ = DateTime(timezone=True)

Money = Numeric(12, 4, asdecimal=False)


class Base(DeclarativeBase):
    """Declarative base with naming convention for constraints."""

    pass


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(Text)
    avatar_url: Mapped[str | None] = mapped_column(Text)
    github_id: Mapped[str | None] = mapped_column(Text, unique=True)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


class Workspace(Base):
    __tablename__ = "workspaces"
    __table_args__ = (Index("ix_workspaces_user_id", "user_id"),)

    workspace_id: Mapped[str] = mapped_column(primary_key=True)
    user_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.user_id", name="fk_workspaces_user_id", ondelete="CASCADE"),
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    api_key: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    slug: Mapped[str | None] = mapped_column(Text, unique=True)
    is_public: Mapped[bool] = mapped_column(default=True, server_default="true")

    # Alert configuration
    alert_cost_threshold: Mapped[float | None] = mapped_column(Money)
    alert_downtime_minutes: Mapped[int | None] = mapped_column(default=5, server_default="5")
    webhook_url: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now(), onupdate=func.now())


class Reading(Base):
    """Append-only time-series row; never updated after insert."""

    __tablename__ = "readings"

    reading_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("workspaces.workspace_id", name="fk_readings_workspace_id", ondelete="CASCADE"),
    )
    timestamp: Mapped[datetime] = mapped_column(TimestampTZ, nullable=False, server_default=func.now())
    agent_id: Mapped[str | None] = mapped_column(Text)

    gateway_online: Mapped[bool | None]
    gateway_uptime: Mapped[int | None] = mapped_column(BigInteger)
    sessions_active: Mapped[int | None]
    sessions_total: Mapped[int | None]
    crons_enabled: Mapped[int | None]
    crons_total: Mapped[int | None]
    cost_today: Mapped[float | None] = mapped_column(Money)
    cost_month: Mapped[float | None] = mapped_column(Money)
    tokens_input: Mapped[int | None] = mapped_column(BigInteger)
    tokens_output: Mapped[int | None] = mapped_column(BigInteger)
    model_breakdown: Mapped[dict | None] = mapped_column(JSONB)

    system_hostname: Mapped[str | None] = mapped_column(Text)
    system_platform: Mapped[str | None] = mapped_column(Text)
    system_arch: Mapped[str | None] = mapped_column(Text)
    system_cpu_count: Mapped[int | None]
    system_cpu_usage_percent: Mapped[float | None] = mapped_column(Float)
    system_memory_total_mb: Mapped[int | None]
    system_memory_free_mb: Mapped[int | None]
    system_memory_used_percent: Mapped[float | None] = mapped_column(Float)
    system_disk_total_gb: Mapped[float | None] = mapped_column(Float)
    system_disk_free_gb: Mapped[float | None] = mapped_column(Float)
    system_disk_used_percent: Mapped[float | None] = mapped_column(Float)
    system_local_ip: Mapped[str | None] = mapped_column(Text)
    system_uptime: Mapped[int | None] = mapped_column(BigInteger)
    system_load_avg: Mapped[list | None] = mapped_column(JSONB)

    endpoints: Mapped[list | None] = mapped_column(JSONB)
    processes: Mapped[list | None] = mapped_column(JSONB)
    custom_metrics: Mapped[dict | None] = mapped_column(JSONB)

    errors_count: Mapped[int | None]
    last_error_message: Mapped[str | None] = mapped_column(Text)
    last_error_timestamp: Mapped[datetime | None] = mapped_column(TimestampTZ)


class Invite(Base):
    __tablename__ = "workspace_invites"

    invite_id: Mapped[str] = mapped_column(primary_key=True)
    workspace_id: Mapped[str] = mapped_column(
        ForeignKey("workspaces.workspace_id", name="fk_workspace_invites_workspace_id", ondelete="CASCADE"),
    )
    token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    role: Mapped[str] = mapped_column(Text, server_default="member")
    expires_at: Mapped[datetime] = mapped_column(TimestampTZ, nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(TimestampTZ)
    created_at: Mapped[datetime] = mapped_column(TimestampTZ, server_default=func.now())


Index("ix_readings_workspace_timestamp", Reading.workspace_id, Reading.timestamp.desc())
