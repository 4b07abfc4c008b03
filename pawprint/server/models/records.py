"""Domain records returned by every store backend.

The SQL store converts ORM rows with ``from_attributes``; the in-memory
store keeps these objects directly.  Handlers and managers only ever see
records, never ORM rows.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None
    github_id: str | None = None
    created_at: datetime | None = None


class WorkspaceRecord(BaseModel):
    """Tenant boundary plus its alert configuration."""

    model_config = ConfigDict(from_attributes=True)

    workspace_id: str
    name: str
    api_key: str
    user_id: str | None = None
    slug: str | None = None
    is_public: bool = True
    alert_cost_threshold: float | None = None
    alert_downtime_minutes: int | None = 5
    webhook_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InviteRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    invite_id: str
    workspace_id: str
    token: str
    role: str = "member"
    expires_at: datetime
    used_at: datetime | None = None
    created_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


class ReadingRecord(BaseModel):
    """One immutable snapshot of a workspace's reported metrics (flattened)."""

    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    reading_id: int | None = None
    workspace_id: str
    timestamp: datetime
    agent_id: str | None = None

    gateway_online: bool | None = None
    gateway_uptime: int | None = None
    sessions_active: int | None = None
    sessions_total: int | None = None
    crons_enabled: int | None = None
    crons_total: int | None = None
    cost_today: float | None = None
    cost_month: float | None = None
    tokens_input: int | None = None
    tokens_output: int | None = None
    model_breakdown: dict | None = None

    system_hostname: str | None = None
    system_platform: str | None = None
    system_arch: str | None = None
    system_cpu_count: int | None = None
    system_cpu_usage_percent: float | None = None
    system_memory_total_mb: int | None = None
    system_memory_free_mb: int | None = None
    system_memory_used_percent: float | None = None
    system_disk_total_gb: float | None = None
    system_disk_free_gb: float | None = None
    system_disk_used_percent: float | None = None
    system_local_ip: str | None = None
    system_uptime: int | None = None
    system_load_avg: list | None = None

    endpoints: list | None = None
    processes: list | None = None
    custom_metrics: dict | None = None

    errors_count: int | None = None
    last_error_message: str | None = None
    last_error_timestamp: datetime | None = None
