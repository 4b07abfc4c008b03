"""API request / response schemas.

These thin schemas sit between HTTP and the managers:

- **Request** schemas validate user input and provide defaults.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **Response** schemas serialise records; most use camelCase on the wire to
  match what the dashboard frontend consumes (FastAPI dumps by alias).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator
from pydantic.alias_generators import to_camel

from pawprint.server.models.enums import GatewayStatus, IncidentType


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserSignIn(BaseModel):
    """Identity forwarded by the frontend after an OAuth sign-in."""

    email: str
    name: str | None = None
    avatar_url: str | None = None
    github_id: str | None = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None
    github_id: str | None = None


# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    name: str = Field("My Agent", min_length=1, max_length=200)


class WorkspaceSettingsUpdate(BaseModel):
    """Partial settings update -- only fields explicitly sent are applied."""

    name: str | None = Field(None, min_length=1, max_length=200)
    slug: str | None = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$", max_length=100)
    is_public: bool | None = None
    alert_cost_threshold: float | None = Field(None, ge=0)
    alert_downtime_minutes: int | None = Field(None, ge=1)
    webhook_url: HttpUrl | None = None

    @field_validator("name", "is_public")
    @classmethod
    def _not_null(cls, value: object) -> object:
        # Omit the field to keep it; these columns cannot be cleared.
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class WorkspaceResponse(BaseModel):
    """Workspace as seen by its owner (includes the secret key)."""

    model_config = ConfigDict(from_attributes=True)

    workspace_id: str
    name: str
    api_key: str
    slug: str | None = None
    is_public: bool
    alert_cost_threshold: float | None = None
    alert_downtime_minutes: int | None = None
    webhook_url: str | None = None
    created_at: datetime | None = None


class WorkspaceListResponse(BaseModel):
    workspaces: list[WorkspaceResponse]


class WorkspaceEnvelope(BaseModel):
    workspace: WorkspaceResponse


class ApiKeyResponse(_CamelModel):
    success: bool = True
    api_key: str


# ---------------------------------------------------------------------------
# Report / dashboard
# ---------------------------------------------------------------------------


class ReportAccepted(BaseModel):
    success: bool = True


class DashboardResponse(_CamelModel):
    latest_report: dict[str, Any] | None = None
    reported_at: datetime | None = None
    gateway_online: bool = False
    message: str | None = None


class HistoryPoint(BaseModel):
    """One history row, snake_case like the stored columns."""

    timestamp: datetime
    gateway_online: bool | None = None
    gateway_uptime: int | None = None
    sessions_active: int | None = None
    sessions_total: int | None = None
    crons_enabled: int | None = None
    crons_total: int | None = None
    cost_today: float | None = None
    cost_month: float | None = None
    system_cpu_usage_percent: float | None = None
    system_memory_used_percent: float | None = None
    system_disk_used_percent: float | None = None


class HistoryResponse(BaseModel):
    history: list[HistoryPoint]


class AgentSummary(_CamelModel):
    """Per-hostname aggregate over the last 24 hours."""

    hostname: str
    last_seen: datetime
    is_online: bool
    sessions_24h: int = Field(alias="sessions24h")
    total_sessions: int
    tokens_input: int
    tokens_output: int
    cost_24h: float = Field(alias="cost24h")
    platform: str | None = None
    arch: str | None = None
    cpu_count: int | None = None
    avg_cpu: int
    avg_memory: int
    uptime: int | None = None
    ip: str | None = None


class AgentsResponse(BaseModel):
    agents: list[AgentSummary]


# ---------------------------------------------------------------------------
# Status page
# ---------------------------------------------------------------------------


class StatusWorkspace(BaseModel):
    name: str
    slug: str | None = None


class UptimeWindows(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: int | None = Field(None, alias="24h")
    week: int | None = Field(None, alias="7d")
    month: int | None = Field(None, alias="30d")


class Incident(BaseModel):
    timestamp: datetime
    type: IncidentType
    message: str


class StatusPageResponse(_CamelModel):
    workspace: StatusWorkspace
    status: GatewayStatus
    uptime: UptimeWindows
    last_check: datetime | None = None
    cost_24h: str = Field(alias="cost24h")
    incidents: list[Incident]
    updated_at: datetime


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


class InviteCreated(_CamelModel):
    invite_url: str
    token: str
    workspace_id: str
    workspace_name: str
    expires_at: datetime


class InviteToken(BaseModel):
    token: str | None = None


class InviteValidation(_CamelModel):
    valid: bool = True
    workspace_id: str
    workspace_name: str
    workspace_slug: str | None = None
    role: str
    expires_at: datetime


class AcceptedWorkspace(BaseModel):
    """Workspace handed to the new owner (snake_case like the workspace list)."""

    id: str
    name: str
    api_key: str
    slug: str | None = None


class InviteAccepted(_CamelModel):
    success: bool | None = True
    message: str | None = None
    workspace_id: str | None = None
    workspace_name: str | None = None
    workspace: AcceptedWorkspace | None = None
