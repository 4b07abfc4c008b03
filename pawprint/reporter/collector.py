"""Metric collection on the monitored host.

``Collector.collect()`` builds one ``ReportPayload``.  Every section is
best-effort: a failing section is logged and falls back to its default
(zero counts or ``None``) while the remaining sections still run.

Blocking work (file reads, psutil) runs in worker threads via
``anyio.to_thread``.  Endpoint and process probes run concurrently, as do
custom commands, each bounded by ``probe_timeout``.
"""

from __future__ import annotations

import contextlib
import json
import os
import platform
import socket
import sys
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TypeVar

import anyio
import httpx
import psutil
from anyio import to_thread
from loguru import logger

from pawprint.reporter import pricing
from pawprint.reporter.settings import EndpointTarget, ReporterSettings
from pawprint.server.models.enums import EndpointStatus
from pawprint.server.models.report import (
    CostEstimate,
    CronCounts,
    EndpointCheck,
    ErrorSummary,
    GatewayInfo,
    LastError,
    ProcessCheck,
    ReportPayload,
    SessionCounts,
    SystemInfo,
    TokenCounts,
)

T = TypeVar("T")

_MB = 1024 * 1024
_GB = 1024 * 1024 * 1024
ERROR_WINDOW = timedelta(hours=24)


@dataclass
class SessionInfo:
    """One OpenClaw session as read from ``sessions.json``."""

    key: str
    model: str | None
    updated_at: datetime | None
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass
class UsageSummary:
    tokens: TokenCounts
    costs: CostEstimate
    model_breakdown: dict[str, float]


# -- Parsing helpers ----------------------------------------------------------


def parse_timestamp(value: Any) -> datetime | None:
    """Epoch milliseconds/seconds or ISO 8601 -> aware UTC datetime."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        seconds = value / 1000 if value > 1e11 else value
        return datetime.fromtimestamp(seconds, UTC)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None


def _as_int(value: Any) -> int:
    return int(value) if isinstance(value, int | float) and not isinstance(value, bool) else 0


def _parse_session(key: str, raw: dict[str, Any]) -> SessionInfo:
    input_tokens = _as_int(raw.get("inputTokens"))
    output_tokens = _as_int(raw.get("outputTokens"))
    if not input_tokens and not output_tokens:
        tokens = raw.get("tokens")
        used = tokens.get("used") if isinstance(tokens, dict) else None
        input_tokens = _as_int(raw.get("totalTokens")) or _as_int(raw.get("tokensUsed")) or _as_int(used)
    model = raw.get("model") or raw.get("defaultModel")
    return SessionInfo(
        key=str(raw.get("key") or raw.get("id") or key),
        model=pricing.normalize_model(model) if isinstance(model, str) and model else None,
        updated_at=parse_timestamp(raw.get("updatedAt") or raw.get("lastActivity")),
        input_tokens=input_tokens,
        output_tokens=output_tokens,
    )


def read_sessions(openclaw_dir: Path) -> list[SessionInfo]:
    """Read every agent's ``sessions/sessions.json`` (list or object-keyed)."""
    agents_dir = openclaw_dir / "agents"
    if not agents_dir.is_dir():
        return []

    sessions: list[SessionInfo] = []
    for agent_dir in sorted(p for p in agents_dir.iterdir() if p.is_dir()):
        path = agent_dir / "sessions" / "sessions.json"
        if not path.is_file():
            continue
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Skipping unreadable sessions file {}: {}", path, exc)
            continue

        if isinstance(data, list):
            entries = [(str(i), s) for i, s in enumerate(data)]
        elif isinstance(data, dict):
            entries = list(data.items())
        else:
            continue
        sessions.extend(_parse_session(key, raw) for key, raw in entries if isinstance(raw, dict))
    return sessions


def count_sessions(sessions: list[SessionInfo], now: datetime, active_window: timedelta) -> SessionCounts:
    active = sum(1 for s in sessions if s.updated_at is not None and now - s.updated_at <= active_window)
    return SessionCounts(active=active, total=len(sessions))


def read_crons(openclaw_dir: Path) -> CronCounts:
    path = openclaw_dir / "cron" / "jobs.json"
    if not path.is_file():
        return CronCounts()
    data = json.loads(path.read_text(encoding="utf-8"))
    jobs = data.get("jobs", []) if isinstance(data, dict) else data
    if not isinstance(jobs, list):
        return CronCounts()
    jobs = [j for j in jobs if isinstance(j, dict)]
    return CronCounts(enabled=sum(1 for j in jobs if j.get("enabled", True) is not False), total=len(jobs))


def summarize_usage(sessions: list[SessionInfo], now: datetime) -> UsageSummary:
    """Token totals and cost for sessions active since local midnight.

    Sessions without a model are priced at the majority model of the day.
    """
    local_now = now.astimezone()
    midnight = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    today = [s for s in sessions if s.updated_at is not None and s.updated_at >= midnight]

    fallback = pricing.majority_model(s.model for s in today)
    breakdown: dict[str, float] = {}
    input_total = output_total = 0
    for session in today:
        model = session.model or fallback or "unknown"
        cost = pricing.token_cost(model, session.input_tokens, session.output_tokens)
        breakdown[model] = breakdown.get(model, 0.0) + cost
        input_total += session.input_tokens
        output_total += session.output_tokens

    today_cost = round(sum(breakdown.values()), 4)
    return UsageSummary(
        tokens=TokenCounts(input=input_total, output=output_total),
        costs=CostEstimate(today=today_cost, month=round(pricing.project_month(today_cost, local_now.date()), 4)),
        model_breakdown={model: round(cost, 4) for model, cost in breakdown.items()},
    )


# -- psutil helpers -----------------------------------------------------------


def _matches(proc: psutil.Process, name: str) -> bool:
    info = proc.info
    if name in (info.get("name") or ""):
        return True
    return name in " ".join(info.get("cmdline") or [])


def find_process(name: str) -> psutil.Process | None:
    for proc in psutil.process_iter(["name", "cmdline", "create_time"]):
        try:
            if _matches(proc, name):
                return proc
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return None


def gateway_info(process_name: str) -> GatewayInfo:
    proc = find_process(process_name)
    if proc is None:
        return GatewayInfo(online=False, uptime=0)
    started = proc.info.get("create_time") or time.time()
    return GatewayInfo(online=True, uptime=max(0, int(time.time() - started)))


def _local_ip() -> str | None:
    for name, addrs in psutil.net_if_addrs().items():
        if name.startswith("lo"):
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith("127."):
                return addr.address
    return None


def system_info() -> SystemInfo:
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage("/")
    return SystemInfo(
        hostname=socket.gethostname(),
        platform=sys.platform,
        arch=platform.machine(),
        cpu_count=psutil.cpu_count(),
        cpu_usage_percent=psutil.cpu_percent(interval=0.5),
        memory_total_mb=memory.total // _MB,
        memory_free_mb=memory.available // _MB,
        memory_used_percent=memory.percent,
        disk_total_gb=round(disk.total / _GB, 1),
        disk_free_gb=round(disk.free / _GB, 1),
        disk_used_percent=disk.percent,
        local_ip=_local_ip(),
        uptime=int(time.time() - psutil.boot_time()),
        load_avg=[round(v, 2) for v in os.getloadavg()] if hasattr(os, "getloadavg") else None,
    )


def process_check(name: str) -> ProcessCheck:
    proc = find_process(name)
    if proc is None:
        return ProcessCheck(name=name, running=False)
    try:
        with proc.oneshot():
            return ProcessCheck(
                name=name,
                running=True,
                pid=proc.pid,
                cpu=proc.cpu_percent(interval=0.1),
                memory=round(proc.memory_percent(), 2),
            )
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return ProcessCheck(name=name, running=False)


def parse_metric_value(raw: str) -> bool | int | float | str | None:
    text = raw.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def _line_timestamp(line: str) -> datetime | None:
    head = line.split(maxsplit=1)[0].strip("[]") if line.strip() else ""
    return parse_timestamp(head)


def scan_error_log(path: Path, now: datetime) -> ErrorSummary:
    """Count lines mentioning ``error`` within the last 24 hours.

    Lines without a leading ISO timestamp are dated by the file's mtime.
    """
    mtime = datetime.fromtimestamp(path.stat().st_mtime, UTC)
    count = 0
    last: LastError | None = None
    with path.open(encoding="utf-8", errors="replace") as fh:
        for line in fh:
            if "error" not in line.lower():
                continue
            stamp = _line_timestamp(line) or mtime
            if now - stamp > ERROR_WINDOW:
                continue
            count += 1
            last = LastError(message=line.strip()[:500], timestamp=stamp)
    return ErrorSummary(last24h=count, last_error=last)


# -- Collector ----------------------------------------------------------------


class Collector:
    """Builds one report payload from local state."""

    def __init__(self, settings: ReporterSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    async def collect(self, *, now: datetime | None = None) -> ReportPayload:
        now = now or datetime.now(UTC)
        settings = self._settings
        active_window = timedelta(minutes=settings.active_session_minutes)

        sessions = await self._section(
            "sessions", lambda: to_thread.run_sync(read_sessions, settings.openclaw_dir), []
        )
        usage = await self._section("usage", lambda: to_thread.run_sync(summarize_usage, sessions, now), None)

        payload = ReportPayload(
            timestamp=now,
            agent_id=settings.agent_id,
            gateway=await self._section(
                "gateway", lambda: to_thread.run_sync(gateway_info, settings.gateway_process_name), GatewayInfo()
            ),
            sessions=count_sessions(sessions, now, active_window),
            crons=await self._section(
                "crons", lambda: to_thread.run_sync(read_crons, settings.openclaw_dir), CronCounts()
            ),
            costs=usage.costs if usage else CostEstimate(),
            tokens=usage.tokens if usage else None,
            model_breakdown=(usage.model_breakdown or None) if usage else None,
            system=await self._section("system", lambda: to_thread.run_sync(system_info), None),
            endpoints=await self._section("endpoints", self.check_endpoints, None) if settings.endpoints else None,
            processes=await self._section("processes", self.check_processes, None) if settings.processes else None,
            custom=await self._section("custom", self.run_custom_metrics, None) if settings.custom_metrics else None,
            errors=await self._section("errors", lambda: self.scan_errors(now), None) if settings.error_log else None,
        )
        logger.info(
            "Collected report: sessions={}/{} crons={}/{} cost_today={}",
            payload.sessions.active,
            payload.sessions.total,
            payload.crons.enabled,
            payload.crons.total,
            payload.costs.today,
        )
        return payload

    async def _section(self, name: str, func: Callable[[], Awaitable[T]], default: T) -> T:
        try:
            return await func()
        except Exception:
            logger.opt(exception=True).warning("Collecting {} failed; using default", name)
            return default

    # -- Probes ----------------------------------------------------------------

    async def check_endpoints(self) -> list[EndpointCheck]:
        targets = self._settings.endpoints
        results: list[EndpointCheck | None] = [None] * len(targets)

        async def probe(index: int, target: EndpointTarget, client: httpx.AsyncClient) -> None:
            results[index] = await self.probe_endpoint(client, target)

        client_cm: Any = (
            contextlib.nullcontext(self._client)
            if self._client is not None
            else httpx.AsyncClient(timeout=self._settings.probe_timeout)
        )
        async with client_cm as client, anyio.create_task_group() as tg:
            for i, target in enumerate(targets):
                tg.start_soon(probe, i, target, client)
        return [r for r in results if r is not None]

    async def probe_endpoint(self, client: httpx.AsyncClient, target: EndpointTarget) -> EndpointCheck:
        started = time.perf_counter()
        try:
            response = await client.get(target.url, timeout=self._settings.probe_timeout)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            return EndpointCheck(
                name=target.name,
                url=target.url,
                status=EndpointStatus.ERROR,
                response_time=round((time.perf_counter() - started) * 1000, 1),
                error=str(exc) or type(exc).__name__,
            )
        elapsed = round((time.perf_counter() - started) * 1000, 1)
        up = 200 <= response.status_code < 400
        return EndpointCheck(
            name=target.name,
            url=target.url,
            status=EndpointStatus.UP if up else EndpointStatus.DOWN,
            response_time=elapsed,
            status_code=response.status_code,
        )

    async def check_processes(self) -> list[ProcessCheck]:
        names = self._settings.processes
        checks = [ProcessCheck(name=name, running=False) for name in names]

        async def check(index: int, name: str) -> None:
            try:
                with anyio.fail_after(self._settings.probe_timeout):
                    checks[index] = await to_thread.run_sync(process_check, name, abandon_on_cancel=True)
            except TimeoutError:
                logger.warning("Process check {!r} timed out", name)

        async with anyio.create_task_group() as tg:
            for i, name in enumerate(names):
                tg.start_soon(check, i, name)
        return checks

    async def run_custom_metrics(self) -> dict[str, bool | int | float | str | None]:
        commands = self._settings.custom_metrics
        values: dict[str, bool | int | float | str | None] = dict.fromkeys(commands)

        async def run(name: str, command: str) -> None:
            try:
                with anyio.fail_after(self._settings.probe_timeout):
                    result = await anyio.run_process(command, check=True)
            except Exception as exc:
                logger.warning("Custom metric {!r} failed: {}", name, exc)
                return
            values[name] = parse_metric_value(result.stdout.decode(errors="replace"))

        async with anyio.create_task_group() as tg:
            for name, command in commands.items():
                tg.start_soon(run, name, command)
        return values

    async def scan_errors(self, now: datetime) -> ErrorSummary | None:
        path = self._settings.error_log
        if path is None or not path.is_file():
            return None
        return await to_thread.run_sync(scan_error_log, path, now)
