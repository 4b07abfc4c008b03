"""Shared fixtures for API tests against the in-memory store.

The app lifespan does NOT run under ``ASGITransport``, so the state fields it
would set are pre-set here: a fresh ``MemoryMonitorStore`` and an alert
service whose webhook calls are captured by an ``httpx.MockTransport``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from pawprint.server.app import create_app
from pawprint.server.managers.alerts import AlertDispatcher, AlertService
from pawprint.server.managers.workspaces import create_workspace
from pawprint.server.models.enums import StoreBackend
from pawprint.server.models.records import ReadingRecord, UserRecord, WorkspaceRecord
from pawprint.server.settings import ServerSettings
from pawprint.server.store.memory import MemoryMonitorStore

SERVICE_TOKEN = "test-service-token"  # noqa: S105

AddReading = Callable[..., Awaitable[ReadingRecord]]


@pytest.fixture
def settings() -> ServerSettings:
    return ServerSettings(
        _env_file=None,
        store=StoreBackend.MEMORY,
        database_url=None,
        auth_token=SERVICE_TOKEN,
        allow_provisioning=True,
        app_url="https://pawprint.test",
    )


@pytest.fixture
def store() -> MemoryMonitorStore:
    return MemoryMonitorStore()


@pytest.fixture
def webhook_calls() -> list[httpx.Request]:
    return []


@pytest.fixture
def webhook_status() -> dict[str, Any]:
    """Mutable knob: set ``fail`` to make the webhook unreachable."""
    return {"fail": False}


@pytest.fixture
async def http_client(
    webhook_calls: list[httpx.Request], webhook_status: dict[str, Any]
) -> AsyncIterator[httpx.AsyncClient]:
    def handler(request: httpx.Request) -> httpx.Response:
        webhook_calls.append(request)
        if webhook_status["fail"]:
            raise httpx.ConnectError("webhook unreachable", request=request)
        return httpx.Response(200, text="ok")

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def alert_service(store: MemoryMonitorStore, http_client: httpx.AsyncClient) -> AlertService:
    return AlertService(store, AlertDispatcher(http_client))


@pytest.fixture
async def client(
    settings: ServerSettings, store: MemoryMonitorStore, alert_service: AlertService
) -> AsyncIterator[AsyncClient]:
    app = create_app(settings)

    # Pre-set state fields (lifespan does not run under ASGITransport).
    app.state.db_engine = None
    app.state.store = store
    app.state.alert_service = alert_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def user(store: MemoryMonitorStore) -> UserRecord:
    return await store.upsert_user("owner@example.com", name="Owner")


@pytest.fixture
def service_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {SERVICE_TOKEN}"}


@pytest.fixture
def user_headers(user: UserRecord) -> dict[str, str]:
    return {"Authorization": f"Bearer {SERVICE_TOKEN}", "X-Pawprint-User": user.email}


@pytest.fixture
async def workspace(store: MemoryMonitorStore) -> WorkspaceRecord:
    """Agent-provisioned workspace without an owner."""
    return await create_workspace(store, "Test Agent")


@pytest.fixture
async def owned_workspace(store: MemoryMonitorStore, user: UserRecord) -> WorkspaceRecord:
    return await create_workspace(store, "Owned Agent", user_id=user.user_id)


@pytest.fixture
def key_headers() -> Callable[[WorkspaceRecord], dict[str, str]]:
    """Build the reporter-style ``Authorization`` header for a workspace."""

    def _headers(workspace: WorkspaceRecord) -> dict[str, str]:
        return {"Authorization": f"Bearer {workspace.api_key}"}

    return _headers


@pytest.fixture
def add_reading(store: MemoryMonitorStore) -> AddReading:
    """Insert a reading ``minutes_ago`` before now with sensible defaults."""

    async def _add(workspace: WorkspaceRecord, *, minutes_ago: float = 0, **fields: Any) -> ReadingRecord:
        values: dict[str, Any] = {"gateway_online": True, "sessions_active": 1, "sessions_total": 2}
        values.update(fields)
        reading = ReadingRecord(
            workspace_id=workspace.workspace_id,
            timestamp=datetime.now(UTC) - timedelta(minutes=minutes_ago),
            **values,
        )
        return await store.insert_reading(reading)

    return _add
