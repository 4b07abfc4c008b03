"""Tests for user sign-in and workspace endpoints."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from httpx import AsyncClient

from pawprint.server.models.records import WorkspaceRecord
from pawprint.server.settings import ServerSettings
from pawprint.server.store.memory import MemoryMonitorStore

KeyHeaders = Callable[[WorkspaceRecord], dict[str, str]]


# -- Users --------------------------------------------------------------------


async def test_sign_in_creates_then_refreshes_user(client: AsyncClient, service_headers: dict[str, str]) -> None:
    resp = await client.post("/v1/users/sign-in", json={"email": "new@example.com"}, headers=service_headers)
    assert resp.status_code == 200
    first = resp.json()
    assert first["email"] == "new@example.com"
    assert first["name"] is None

    resp = await client.post(
        "/v1/users/sign-in",
        json={"email": "new@example.com", "name": "New User", "github_id": "42"},
        headers=service_headers,
    )
    second = resp.json()
    assert second["user_id"] == first["user_id"]
    assert second["name"] == "New User"
    assert second["github_id"] == "42"


async def test_sign_in_requires_service_token(client: AsyncClient) -> None:
    resp = await client.post(
        "/v1/users/sign-in", json={"email": "x@example.com"}, headers={"Authorization": "Bearer nope"}
    )
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


async def test_unknown_user_is_rejected(client: AsyncClient, service_headers: dict[str, str]) -> None:
    resp = await client.get("/v1/workspaces", headers={**service_headers, "X-Pawprint-User": "ghost@example.com"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "User not found"}


async def test_user_header_required(client: AsyncClient, service_headers: dict[str, str]) -> None:
    resp = await client.get("/v1/workspaces", headers=service_headers)
    assert resp.status_code == 401


# -- Create / list ------------------------------------------------------------


async def test_create_and_list_workspaces(
    client: AsyncClient, user_headers: dict[str, str], workspace: WorkspaceRecord
) -> None:
    resp = await client.post("/v1/workspace/create", json={"name": "Prod Box"}, headers=user_headers)
    assert resp.status_code == 201
    created = resp.json()["workspace"]
    assert created["name"] == "Prod Box"
    assert created["api_key"].startswith("pk_")
    assert created["slug"].startswith("prod-box-")
    assert created["is_public"] is True
    assert created["alert_downtime_minutes"] == 5

    resp = await client.get("/v1/workspaces", headers=user_headers)
    assert resp.status_code == 200
    ids = [w["workspace_id"] for w in resp.json()["workspaces"]]
    assert ids == [created["workspace_id"]]
    assert workspace.workspace_id not in ids


async def test_create_workspace_default_name(client: AsyncClient, user_headers: dict[str, str]) -> None:
    resp = await client.post("/v1/workspace/create", headers=user_headers)
    assert resp.status_code == 201
    assert resp.json()["workspace"]["name"] == "My Agent"


async def test_provision_workspace_without_owner(
    client: AsyncClient, store: MemoryMonitorStore
) -> None:
    resp = await client.post("/v1/workspace/provision", json={"name": "Lab"})
    assert resp.status_code == 201
    body = resp.json()["workspace"]

    stored = await store.get_workspace(body["workspace_id"])
    assert stored is not None
    assert stored.user_id is None
    assert stored.api_key == body["api_key"]


async def test_provision_can_be_disabled(client: AsyncClient, settings: ServerSettings) -> None:
    settings.allow_provisioning = False

    resp = await client.post("/v1/workspace/provision")
    assert resp.status_code == 403
    assert resp.json() == {"error": "Provisioning disabled"}


# -- Access rules -------------------------------------------------------------


async def test_settings_by_workspace_key(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.get("/v1/workspace/settings", headers=key_headers(workspace))
    assert resp.status_code == 200
    assert resp.json()["workspace"]["workspace_id"] == workspace.workspace_id


async def test_key_cannot_target_other_workspace(
    client: AsyncClient, workspace: WorkspaceRecord, owned_workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.get(
        "/v1/workspace/settings",
        params={"workspace_id": owned_workspace.workspace_id},
        headers=key_headers(workspace),
    )
    assert resp.status_code == 403
    assert resp.json() == {"error": "Forbidden"}


async def test_user_must_name_workspace(client: AsyncClient, user_headers: dict[str, str]) -> None:
    resp = await client.get("/v1/workspace/settings", headers=user_headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Workspace ID required"}


async def test_user_must_own_workspace(
    client: AsyncClient, user_headers: dict[str, str], workspace: WorkspaceRecord
) -> None:
    resp = await client.get(
        "/v1/dashboard", params={"workspace_id": workspace.workspace_id}, headers=user_headers
    )
    assert resp.status_code == 403


async def test_owner_reads_dashboard(
    client: AsyncClient, user_headers: dict[str, str], owned_workspace: WorkspaceRecord
) -> None:
    resp = await client.get(
        "/v1/dashboard", params={"workspace_id": owned_workspace.workspace_id}, headers=user_headers
    )
    assert resp.status_code == 200


async def test_missing_credentials(client: AsyncClient) -> None:
    resp = await client.get("/v1/dashboard")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


# -- Settings -----------------------------------------------------------------


async def test_update_settings_is_partial(
    client: AsyncClient, user_headers: dict[str, str], owned_workspace: WorkspaceRecord
) -> None:
    params = {"workspace_id": owned_workspace.workspace_id}
    resp = await client.post(
        "/v1/workspace/settings",
        params=params,
        json={"alert_cost_threshold": 5, "webhook_url": "https://hooks.example.com/pawprint"},
        headers=user_headers,
    )
    assert resp.status_code == 200
    body = resp.json()["workspace"]
    assert body["alert_cost_threshold"] == 5
    assert body["webhook_url"] == "https://hooks.example.com/pawprint"
    assert body["name"] == "Owned Agent"
    assert body["slug"] == owned_workspace.slug

    resp = await client.post(
        "/v1/workspace/settings", params=params, json={"is_public": False}, headers=user_headers
    )
    body = resp.json()["workspace"]
    assert body["is_public"] is False
    assert body["alert_cost_threshold"] == 5


async def test_update_slug_conflict(
    client: AsyncClient, workspace: WorkspaceRecord, owned_workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.post(
        "/v1/workspace/settings", json={"slug": owned_workspace.slug}, headers=key_headers(workspace)
    )
    assert resp.status_code == 409
    assert resp.json() == {"error": "Slug already taken"}


async def test_update_own_slug_is_allowed(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.post("/v1/workspace/settings", json={"slug": workspace.slug}, headers=key_headers(workspace))
    assert resp.status_code == 200


async def test_update_rejects_invalid_slug(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    resp = await client.post("/v1/workspace/settings", json={"slug": "Not A Slug"}, headers=key_headers(workspace))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid payload"


@pytest.mark.parametrize("field", ["name", "is_public"])
async def test_update_rejects_null_for_required_fields(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders, field: str
) -> None:
    resp = await client.post("/v1/workspace/settings", json={field: None}, headers=key_headers(workspace))
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid payload"

    resp = await client.get("/v1/workspace/settings", headers=key_headers(workspace))
    assert resp.status_code == 200
    assert resp.json()["workspace"]["name"] == workspace.name
    assert resp.json()["workspace"]["is_public"] is workspace.is_public


async def test_update_clears_nullable_fields(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    headers = key_headers(workspace)
    await client.post("/v1/workspace/settings", json={"alert_cost_threshold": 5}, headers=headers)

    resp = await client.post(
        "/v1/workspace/settings", json={"alert_cost_threshold": None, "slug": None}, headers=headers
    )
    assert resp.status_code == 200
    body = resp.json()["workspace"]
    assert body["alert_cost_threshold"] is None
    assert body["slug"] is None


# -- Key rotation -------------------------------------------------------------


async def test_regenerate_key_invalidates_old_key(
    client: AsyncClient, workspace: WorkspaceRecord, key_headers: KeyHeaders
) -> None:
    old_headers = key_headers(workspace)
    resp = await client.post("/v1/workspace/regenerate-key", headers=old_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    new_key = body["apiKey"]
    assert new_key.startswith("pk_")
    assert new_key != workspace.api_key

    resp = await client.get("/v1/dashboard", headers=old_headers)
    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid API key"}

    resp = await client.get("/v1/dashboard", headers={"Authorization": f"Bearer {new_key}"})
    assert resp.status_code == 200


async def test_user_regenerates_owned_key(
    client: AsyncClient, user_headers: dict[str, str], owned_workspace: WorkspaceRecord
) -> None:
    resp = await client.post(
        "/v1/workspace/regenerate-key",
        params={"workspace_id": owned_workspace.workspace_id},
        headers=user_headers,
    )
    assert resp.status_code == 200
    assert resp.json()["apiKey"] != owned_workspace.api_key
