"""Read-time aggregate views over stored readings.

Nothing here is persisted: every view is recomputed from the store on each
request, and every query is ordered by reading timestamp, newest first.

A gateway counts as online only when its latest reading says so *and* that
reading is younger than the online window; a host that stopped reporting is
offline regardless of its last stored flag.  Uptime percentages count the
stored flag of each historical reading.
"""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import UTC, datetime, timedelta

from pawprint.server.models.api import (
    AgentSummary,
    DashboardResponse,
    HistoryPoint,
    Incident,
    StatusPageResponse,
    StatusWorkspace,
    UptimeWindows,
)
from pawprint.server.models.enums import GatewayStatus, IncidentType
from pawprint.server.models.records import ReadingRecord, WorkspaceRecord
from pawprint.server.models.report import ReportPayload
from pawprint.server.store.base import MonitorStore

READINGS_PER_HOUR = 12
MAX_HISTORY_ROWS = 1000
DEFAULT_HISTORY_HOURS = 24

AGENT_WINDOW = timedelta(hours=24)
MAX_AGENTS = 20
UNKNOWN_HOSTNAME = "unknown"

INCIDENT_SCAN_LIMIT = 10
MAX_INCIDENTS = 5

UPTIME_WINDOWS = {
    "day": timedelta(hours=24),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}

NO_REPORTS_MESSAGE = "No reports received yet."


class StatusPageNotFoundError(LookupError):
    """No workspace matches the slug or hostname."""


class StatusPagePrivateError(PermissionError):
    """The workspace has opted out of a public status page."""


# -- Pure helpers ---------------------------------------------------------------


def is_gateway_online(reading: ReadingRecord | None, now: datetime, window: timedelta) -> bool:
    if reading is None or not reading.gateway_online:
        return False
    return now - reading.timestamp < window


def uptime_percent(online: int, total: int) -> int | None:
    """``round(online / total * 100)``; ``None`` for an empty window."""
    if total <= 0:
        return None
    return round(online / total * 100)


def history_limit(hours: float) -> int:
    rows = hours * READINGS_PER_HOUR
    # Cap before flooring: huge ranges overflow int conversion.
    if rows >= MAX_HISTORY_ROWS:
        return MAX_HISTORY_ROWS
    return max(0, math.floor(rows))


def to_incident(reading: ReadingRecord) -> Incident | None:
    offline = not reading.gateway_online
    errors = reading.errors_count or 0
    if not offline and errors <= 0:
        return None
    fallback = "Gateway offline" if offline else f"{errors} errors"
    return Incident(
        timestamp=reading.timestamp,
        type=IncidentType.DOWNTIME if offline else IncidentType.ERROR,
        message=reading.last_error_message or fallback,
    )


def summarize_agents(readings: list[ReadingRecord], now: datetime, online_window: timedelta) -> list[AgentSummary]:
    """Group readings (newest first) by hostname into per-agent summaries."""
    groups: dict[str, list[ReadingRecord]] = defaultdict(list)
    for reading in readings:
        groups[reading.system_hostname or UNKNOWN_HOSTNAME].append(reading)

    summaries = []
    for hostname, group in groups.items():
        latest = max(group, key=lambda r: r.timestamp)
        cpu = [r.system_cpu_usage_percent for r in group if r.system_cpu_usage_percent is not None]
        memory = [r.system_memory_used_percent for r in group if r.system_memory_used_percent is not None]
        summaries.append(
            AgentSummary(
                hostname=hostname,
                last_seen=latest.timestamp,
                is_online=is_gateway_online(latest, now, online_window),
                sessions_24h=sum(r.sessions_active or 0 for r in group),
                total_sessions=sum(r.sessions_total or 0 for r in group),
                tokens_input=sum(r.tokens_input or 0 for r in group),
                tokens_output=sum(r.tokens_output or 0 for r in group),
                cost_24h=round(sum(r.cost_today or 0.0 for r in group), 4),
                platform=latest.system_platform,
                arch=latest.system_arch,
                cpu_count=latest.system_cpu_count,
                avg_cpu=round(sum(cpu) / len(cpu)) if cpu else 0,
                avg_memory=round(sum(memory) / len(memory)) if memory else 0,
                uptime=latest.system_uptime,
                ip=latest.system_local_ip,
            )
        )

    summaries.sort(key=lambda s: (s.sessions_24h, s.last_seen), reverse=True)
    return summaries[:MAX_AGENTS]


# -- Store-backed views -----------------------------------------------------------


async def dashboard(
    store: MonitorStore, workspace_id: str, *, online_window: timedelta, now: datetime | None = None
) -> DashboardResponse:
    now = now or datetime.now(UTC)
    latest = await store.latest_reading(workspace_id)
    if latest is None:
        return DashboardResponse(message=NO_REPORTS_MESSAGE)
    return DashboardResponse(
        latest_report=ReportPayload.from_reading(latest).to_wire(),
        reported_at=latest.timestamp,
        gateway_online=is_gateway_online(latest, now, online_window),
    )


async def history(store: MonitorStore, workspace_id: str, hours: float = DEFAULT_HISTORY_HOURS) -> list[HistoryPoint]:
    readings = await store.recent_readings(workspace_id, history_limit(hours))
    return [HistoryPoint.model_validate(r.model_dump()) for r in readings]


async def agents(
    store: MonitorStore, workspace_id: str, *, online_window: timedelta, now: datetime | None = None
) -> list[AgentSummary]:
    now = now or datetime.now(UTC)
    readings = await store.readings_since(workspace_id, now - AGENT_WINDOW)
    return summarize_agents(readings, now, online_window)


async def uptime(store: MonitorStore, workspace_id: str, now: datetime) -> UptimeWindows:
    percents = {}
    for name, span in UPTIME_WINDOWS.items():
        online, total = await store.uptime_counts(workspace_id, now - span)
        percents[name] = uptime_percent(online, total)
    return UptimeWindows(**percents)


async def resolve_status_workspace(store: MonitorStore, slug_or_hostname: str) -> WorkspaceRecord:
    """Look up by slug first, then by the hostname of the newest reading carrying it."""
    workspace = await store.get_workspace_by_slug(slug_or_hostname)
    if workspace is None:
        workspace = await store.find_workspace_by_hostname(slug_or_hostname)
    if workspace is None:
        raise StatusPageNotFoundError(slug_or_hostname)
    if not workspace.is_public:
        raise StatusPagePrivateError(slug_or_hostname)
    return workspace


async def status_page(
    store: MonitorStore, slug_or_hostname: str, *, online_window: timedelta, now: datetime | None = None
) -> StatusPageResponse:
    now = now or datetime.now(UTC)
    workspace = await resolve_status_workspace(store, slug_or_hostname)
    workspace_id = workspace.workspace_id

    latest = await store.latest_reading(workspace_id)
    day_readings = await store.readings_since(workspace_id, now - UPTIME_WINDOWS["day"])
    cost = sum(r.cost_today or 0.0 for r in day_readings)

    incidents = []
    for reading in day_readings[:INCIDENT_SCAN_LIMIT]:
        incident = to_incident(reading)
        if incident is not None:
            incidents.append(incident)

    online = is_gateway_online(latest, now, online_window)
    return StatusPageResponse(
        workspace=StatusWorkspace(name=workspace.name, slug=workspace.slug),
        status=GatewayStatus.ONLINE if online else GatewayStatus.OFFLINE,
        uptime=await uptime(store, workspace_id, now),
        last_check=latest.timestamp if latest else None,
        cost_24h=f"{cost:.2f}",
        incidents=incidents[:MAX_INCIDENTS],
        updated_at=now,
    )
