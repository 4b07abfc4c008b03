"""Tests for dashboard, history and agent aggregation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient

from pawprint.server.managers.aggregates import (
    MAX_HISTORY_ROWS,
    history_limit,
    is_gateway_online,
    uptime_percent,
)
from pawprint.server.models.records import ReadingRecord, WorkspaceRecord

AddReading = Callable[..., Awaitable[ReadingRecord]]
KeyHeaders = Callable[[WorkspaceRecord], dict[str, str]]


# -- Pure helpers -------------------------------------------------------------


@pytest.mark.parametrize(
    ("online", "total", "expected"),
    [(0, 0, None), (0, 3, 0), (3, 3, 100), (2, 3, 67), (1, 8, 12)],
)
def test_uptime_percent(online: int, total: int, expected: int | None) -> None:
    assert uptime_percent(online, total) == expected


@pytest.mark.parametrize(
    ("hours", "expected"),
    [(1, 12), (24, 288), (0.5, 6), (83, 996), (84, 1000), (24 * 365, MAX_HISTORY_ROWS), (1e308, MAX_HISTORY_ROWS)],
)
def test_history_limit(hours: float, expected: int) -> None:
    assert history_limit(hours) == expected


def test_online_requires_flag_and_freshness() -> None:
    now = datetime.now(UTC)
    window = timedelta(minutes=10)

    def reading(online: bool, minutes_ago: float) -> ReadingRecord:
        return ReadingRecord(workspace_id="ws", timestamp=now - timedelta(minutes=minutes_ago), gateway_online=online)

    assert is_gateway_online(reading(True, 1), now, window) is True
    assert is_gateway_online(reading(True, 11), now, window) is False
    assert is_gateway_online(reading(False, 1), now, window) is False
    assert is_gateway_online(None, now, window) is False


# -- Dashboard ----------------------------------------------------------------


async def test_dashboard_without_readings(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.get("/v1/dashboard", headers=key_headers(workspace))
    assert resp.status_code == 200
    assert resp.json() == {
        "latestReport": None,
        "reportedAt": None,
        "gatewayOnline": False,
        "message": "No reports received yet.",
    }


async def test_dashboard_stale_reading_is_offline(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    await add_reading(workspace, minutes_ago=30, gateway_online=True)

    resp = await client.get("/v1/dashboard", headers=key_headers(workspace))
    body = resp.json()
    assert body["gatewayOnline"] is False
    assert body["latestReport"]["gateway"]["online"] is True


async def test_dashboard_picks_newest_by_timestamp(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    await add_reading(workspace, minutes_ago=1, sessions_total=9)
    await add_reading(workspace, minutes_ago=20, sessions_total=1)  # inserted later, older timestamp

    resp = await client.get("/v1/dashboard", headers=key_headers(workspace))
    assert resp.json()["latestReport"]["sessions"]["total"] == 9


# -- History ------------------------------------------------------------------


async def test_history_is_capped_and_newest_first(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    for i in range(20):
        await add_reading(workspace, minutes_ago=i * 5, sessions_active=i)

    resp = await client.get("/v1/history", params={"hours": 1}, headers=key_headers(workspace))
    assert resp.status_code == 200
    history = resp.json()["history"]
    assert len(history) == 12
    assert [p["sessions_active"] for p in history] == list(range(12))
    assert set(history[0]) >= {"timestamp", "gateway_online", "cost_today", "system_cpu_usage_percent"}


async def test_history_defaults_to_24_hours(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    for i in range(3):
        await add_reading(workspace, minutes_ago=i)

    resp = await client.get("/v1/history", headers=key_headers(workspace))
    assert len(resp.json()["history"]) == 3


async def test_history_rejects_non_positive_hours(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.get("/v1/history", params={"hours": 0}, headers=key_headers(workspace))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid payload"


async def test_history_huge_range_is_capped(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    await add_reading(workspace, minutes_ago=1)

    resp = await client.get("/v1/history", params={"hours": "1e308"}, headers=key_headers(workspace))
    assert resp.status_code == 200
    assert len(resp.json()["history"]) == 1


@pytest.mark.parametrize("hours", ["inf", "nan"])
async def test_history_rejects_non_finite_hours(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, hours: str
) -> None:
    resp = await client.get("/v1/history", params={"hours": hours}, headers=key_headers(workspace))
    assert resp.status_code == 400


# -- Agents -------------------------------------------------------------------


async def test_agents_grouped_by_hostname(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, add_reading: AddReading
) -> None:
    await add_reading(
        workspace,
        minutes_ago=2,
        system_hostname="alpha",
        sessions_active=3,
        sessions_total=5,
        cost_today=1.25,
        tokens_input=100,
        tokens_output=10,
        system_cpu_usage_percent=40.0,
        system_memory_used_percent=50.0,
        system_platform="linux",
        system_local_ip="10.0.0.2",
    )
    await add_reading(
        workspace,
        minutes_ago=7,
        system_hostname="alpha",
        sessions_active=2,
        sessions_total=5,
        cost_today=1.0,
        system_cpu_usage_percent=20.0,
        system_memory_used_percent=52.0,
    )
    await add_reading(workspace, minutes_ago=3, system_hostname=None, sessions_active=1)
    await add_reading(workspace, minutes_ago=60 * 25, system_hostname="stale", sessions_active=50)

    resp = await client.get("/v1/agents", headers=key_headers(workspace))
    assert resp.status_code == 200
    agents = resp.json()["agents"]
    assert [a["hostname"] for a in agents] == ["alpha", "unknown"]

    alpha = agents[0]
    assert alpha["sessions24h"] == 5
    assert alpha["totalSessions"] == 10
    assert alpha["cost24h"] == pytest.approx(2.25)
    assert alpha["tokensInput"] == 100
    assert alpha["tokensOutput"] == 10
    assert alpha["avgCpu"] == 30
    assert alpha["avgMemory"] == 51
    assert alpha["platform"] == "linux"
    assert alpha["ip"] == "10.0.0.2"
    assert alpha["isOnline"] is True

    assert agents[1]["avgCpu"] == 0
