"""Reading payload schema -- the wire format posted by reporters.

``ReportPayload`` is validated once at the ingestion boundary; every optional
section has an explicit default so nothing downstream needs ad hoc fallbacks.

Two schema versions exist:

- **1** -- the legacy reporter: ``sessions`` and ``crons`` are lists of
  objects, plus an ``agentId``.  Upgraded to version 2 on validation.
- **2** -- current: ``sessions`` / ``crons`` / ``costs`` are count objects and
  optional ``system``, ``endpoints``, ``processes``, ``custom`` and
  ``errors`` sections may be attached.

When ``schemaVersion`` is absent the version is inferred from the shape.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from pawprint.server.models.enums import EndpointStatus
from pawprint.server.models.records import ReadingRecord

CURRENT_SCHEMA_VERSION = 2
LEGACY_SCHEMA_VERSION = 1

LEGACY_ACTIVE_WINDOW = timedelta(hours=1)
"""Legacy sessions touched within this window count as active."""


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python; unknown keys are dropped."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        protected_namespaces=(),
    )


# -- Sections ----------------------------------------------------------------


class GatewayInfo(_WireModel):
    online: bool = False
    uptime: int = Field(0, ge=0, description="Gateway process uptime in seconds")


class SessionCounts(_WireModel):
    active: int = Field(0, ge=0)
    total: int = Field(0, ge=0)


class CronCounts(_WireModel):
    enabled: int = Field(0, ge=0)
    total: int = Field(0, ge=0)


class CostEstimate(_WireModel):
    today: float = Field(0.0, ge=0)
    month: float = Field(0.0, ge=0)


class TokenCounts(_WireModel):
    input: int = Field(0, ge=0)
    output: int = Field(0, ge=0)


class SystemInfo(_WireModel):
    hostname: str | None = None
    platform: str | None = None
    arch: str | None = None
    cpu_count: int | None = None
    cpu_usage_percent: float | None = None
    memory_total_mb: int | None = None
    memory_free_mb: int | None = None
    memory_used_percent: float | None = None
    disk_total_gb: float | None = None
    disk_free_gb: float | None = None
    disk_used_percent: float | None = None
    local_ip: str | None = None
    uptime: int | None = None
    load_avg: list[float] | None = None


class EndpointCheck(_WireModel):
    name: str
    url: str
    status: EndpointStatus
    response_time: float | None = Field(None, description="Milliseconds")
    status_code: int | None = None
    error: str | None = None


class ProcessCheck(_WireModel):
    name: str
    running: bool
    pid: int | None = None
    cpu: float | None = None
    memory: float | None = None


class LastError(_WireModel):
    message: str
    timestamp: datetime | None = None


class ErrorSummary(_WireModel):
    last24h: int = Field(0, ge=0, alias="last24h")
    last_error: LastError | None = None


# -- Payload -----------------------------------------------------------------


class ReportPayload(_WireModel):
    """One status snapshot as submitted to ``POST /v1/report``."""

    schema_version: int = CURRENT_SCHEMA_VERSION
    timestamp: datetime | None = None
    agent_id: str | None = None

    gateway: GatewayInfo = Field(default_factory=GatewayInfo)
    sessions: SessionCounts = Field(default_factory=SessionCounts)
    crons: CronCounts = Field(default_factory=CronCounts)
    costs: CostEstimate = Field(default_factory=CostEstimate)

    tokens: TokenCounts | None = None
    model_breakdown: dict[str, float] | None = None
    system: SystemInfo | None = None
    endpoints: list[EndpointCheck] | None = None
    processes: list[ProcessCheck] | None = None
    custom: dict[str, bool | int | float | str | None] | None = None
    errors: ErrorSummary | None = None

    @model_validator(mode="before")
    @classmethod
    def _upgrade_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        version = data.get("schemaVersion", data.get("schema_version"))
        if version is None:
            legacy_shape = isinstance(data.get("sessions"), list) or isinstance(data.get("crons"), list)
            version = LEGACY_SCHEMA_VERSION if legacy_shape else CURRENT_SCHEMA_VERSION
        if not isinstance(version, int) or not LEGACY_SCHEMA_VERSION <= version <= CURRENT_SCHEMA_VERSION:
            msg = f"Unsupported schemaVersion: {version!r}"
            raise ValueError(msg)

        if version == LEGACY_SCHEMA_VERSION:
            return _upgrade_v1(data)
        return data

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    # -- Conversion ------------------------------------------------------------

    def to_reading_fields(self, received_at: datetime) -> dict[str, Any]:
        """Flatten into ``ReadingRecord`` keyword arguments (minus workspace/id)."""
        sys_info = self.system
        last_error = self.errors.last_error if self.errors else None
        return {
            "timestamp": self.timestamp or received_at,
            "agent_id": self.agent_id,
            "gateway_online": self.gateway.online,
            "gateway_uptime": self.gateway.uptime,
            "sessions_active": self.sessions.active,
            "sessions_total": self.sessions.total,
            "crons_enabled": self.crons.enabled,
            "crons_total": self.crons.total,
            "cost_today": self.costs.today,
            "cost_month": self.costs.month,
            "tokens_input": self.tokens.input if self.tokens else None,
            "tokens_output": self.tokens.output if self.tokens else None,
            "model_breakdown": self.model_breakdown,
            "system_hostname": sys_info.hostname if sys_info else None,
            "system_platform": sys_info.platform if sys_info else None,
            "system_arch": sys_info.arch if sys_info else None,
            "system_cpu_count": sys_info.cpu_count if sys_info else None,
            "system_cpu_usage_percent": sys_info.cpu_usage_percent if sys_info else None,
            "system_memory_total_mb": sys_info.memory_total_mb if sys_info else None,
            "system_memory_free_mb": sys_info.memory_free_mb if sys_info else None,
            "system_memory_used_percent": sys_info.memory_used_percent if sys_info else None,
            "system_disk_total_gb": sys_info.disk_total_gb if sys_info else None,
            "system_disk_free_gb": sys_info.disk_free_gb if sys_info else None,
            "system_disk_used_percent": sys_info.disk_used_percent if sys_info else None,
            "system_local_ip": sys_info.local_ip if sys_info else None,
            "system_uptime": sys_info.uptime if sys_info else None,
            "system_load_avg": sys_info.load_avg if sys_info else None,
            "endpoints": [e.model_dump(by_alias=True, mode="json") for e in self.endpoints]
            if self.endpoints is not None
            else None,
            "processes": [p.model_dump(by_alias=True, mode="json") for p in self.processes]
            if self.processes is not None
            else None,
            "custom_metrics": self.custom,
            "errors_count": self.errors.last24h if self.errors else None,
            "last_error_message": last_error.message if last_error else None,
            "last_error_timestamp": last_error.timestamp if last_error else None,
        }

    @classmethod
    def from_reading(cls, reading: ReadingRecord) -> ReportPayload:
        """Rebuild the nested payload shape from a stored reading."""
        system = SystemInfo(
            hostname=reading.system_hostname,
            platform=reading.system_platform,
            arch=reading.system_arch,
            cpu_count=reading.system_cpu_count,
            cpu_usage_percent=reading.system_cpu_usage_percent,
            memory_total_mb=reading.system_memory_total_mb,
            memory_free_mb=reading.system_memory_free_mb,
            memory_used_percent=reading.system_memory_used_percent,
            disk_total_gb=reading.system_disk_total_gb,
            disk_free_gb=reading.system_disk_free_gb,
            disk_used_percent=reading.system_disk_used_percent,
            local_ip=reading.system_local_ip,
            uptime=reading.system_uptime,
            load_avg=reading.system_load_avg,
        )
        has_tokens = reading.tokens_input is not None or reading.tokens_output is not None
        errors = None
        if reading.errors_count is not None or reading.last_error_message is not None:
            errors = ErrorSummary(
                last24h=reading.errors_count or 0,
                last_error=LastError(message=reading.last_error_message, timestamp=reading.last_error_timestamp)
                if reading.last_error_message is not None
                else None,
            )
        return cls(
            timestamp=reading.timestamp,
            agent_id=reading.agent_id,
            gateway=GatewayInfo(online=bool(reading.gateway_online), uptime=reading.gateway_uptime or 0),
            sessions=SessionCounts(active=reading.sessions_active or 0, total=reading.sessions_total or 0),
            crons=CronCounts(enabled=reading.crons_enabled or 0, total=reading.crons_total or 0),
            costs=CostEstimate(today=reading.cost_today or 0.0, month=reading.cost_month or 0.0),
            tokens=TokenCounts(input=reading.tokens_input or 0, output=reading.tokens_output or 0)
            if has_tokens
            else None,
            model_breakdown=reading.model_breakdown,
            system=system if system.model_dump(exclude_none=True) else None,
            endpoints=reading.endpoints,
            processes=reading.processes,
            custom=reading.custom_metrics,
            errors=errors,
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialise for JSON responses (camelCase, absent sections omitted)."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# -- Legacy upgrade ----------------------------------------------------------


def _parse_iso(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _upgrade_v1(data: dict[str, Any]) -> dict[str, Any]:
    """Convert a legacy list-shaped payload into the current count-shaped one."""
    sessions = data.get("sessions") or []
    crons = data.get("crons") or []
    reference = _parse_iso(data.get("timestamp")) or datetime.now(UTC)

    active = 0
    for session in sessions:
        if not isinstance(session, dict):
            continue
        last_activity = _parse_iso(session.get("lastActivity"))
        if last_activity is not None and reference - last_activity <= LEGACY_ACTIVE_WINDOW:
            active += 1

    enabled = sum(1 for cron in crons if isinstance(cron, dict) and cron.get("enabled", True))

    upgraded = {k: v for k, v in data.items() if k not in ("sessions", "crons", "schemaVersion", "schema_version")}
    upgraded["schemaVersion"] = CURRENT_SCHEMA_VERSION
    upgraded["sessions"] = {"active": active, "total": len(sessions)}
    upgraded["crons"] = {"enabled": enabled, "total": len(crons)}
    upgraded.setdefault("gateway", {"online": True, "uptime": 0})
    return upgraded
