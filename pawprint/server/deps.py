"""FastAPI dependency injection for the store, alerting and authentication.

Usage in route handlers::

    @router.post("/report")
    async def report(ctx: WorkspaceKey, store: Store) -> ReportAccepted:
        ...

Two credentials exist:

- **Workspace key** -- ``Authorization: Bearer pk_...``, held by reporters.
- **User** -- the dashboard frontend signs users in (OAuth) and calls the API
  with ``Authorization: Bearer <PAWPRINT_AUTH_TOKEN>`` plus the signed-in
  user's email in ``X-Pawprint-User``.

``get_store`` raises HTTP 503 if no store backend was configured.
"""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Query, Request, status

from pawprint.server.context import WorkspaceContext
from pawprint.server.managers.alerts import AlertService
from pawprint.server.models.enums import AuthMethod
from pawprint.server.models.records import UserRecord
from pawprint.server.settings import ServerSettings
from pawprint.server.store.base import MonitorStore

USER_HEADER = "X-Pawprint-User"


def get_store(request: Request) -> MonitorStore:
    store: MonitorStore | None = request.app.state.store
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store not configured (PAWPRINT_DATABASE_URL is unset).",
        )
    return store


def get_app_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


def get_alert_service(request: Request) -> AlertService:
    service: AlertService | None = request.app.state.alert_service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Alerting not configured.",
        )
    return service


Store = Annotated[MonitorStore, Depends(get_store)]
"""Annotated dependency: the storage backend selected at startup."""

Settings = Annotated[ServerSettings, Depends(get_app_settings)]

Alerts = Annotated[AlertService, Depends(get_alert_service)]


# -- Credentials ---------------------------------------------------------------


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    return header[len("Bearer ") :].strip() or None


def _is_service_token(token: str, settings: ServerSettings) -> bool:
    return bool(settings.auth_token) and secrets.compare_digest(token, settings.auth_token)


async def _resolve_user(request: Request, store: MonitorStore) -> UserRecord:
    email = request.headers.get(USER_HEADER)
    if not email:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    user = await store.get_user_by_email(email)
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


async def require_workspace_key(request: Request, store: Store) -> WorkspaceContext:
    """Resolve ``Bearer pk_...`` to its workspace (401 when missing or unknown)."""
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Missing API key")
    workspace = await store.get_workspace_by_key(token)
    if workspace is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
    return WorkspaceContext(workspace=workspace, auth_method=AuthMethod.WORKSPACE_KEY)


async def require_user(request: Request, store: Store, settings: Settings) -> UserRecord:
    """Resolve the signed-in user forwarded by the dashboard frontend."""
    token = _bearer_token(request)
    if token is None or not _is_service_token(token, settings):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return await _resolve_user(request, store)


async def require_service(request: Request, settings: Settings) -> None:
    """Only the dashboard frontend itself (no user header needed)."""
    token = _bearer_token(request)
    if token is None or not _is_service_token(token, settings):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


async def get_optional_user(request: Request, store: Store, settings: Settings) -> UserRecord | None:
    """Like ``require_user`` but returns ``None`` instead of raising."""
    token = _bearer_token(request)
    email = request.headers.get(USER_HEADER)
    if token is None or not email or not _is_service_token(token, settings):
        return None
    return await store.get_user_by_email(email)


async def require_workspace_access(
    request: Request,
    store: Store,
    settings: Settings,
    workspace_id: Annotated[str | None, Query()] = None,
) -> WorkspaceContext:
    """Resolve the target workspace for either credential.

    - Workspace key: the key's workspace; a different ``workspace_id`` is 403.
    - User: ``workspace_id`` is required (400) and must be owned (403).
    """
    token = _bearer_token(request)
    if token is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    if not _is_service_token(token, settings):
        workspace = await store.get_workspace_by_key(token)
        if workspace is None:
            raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
        if workspace_id is not None and workspace_id != workspace.workspace_id:
            raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return WorkspaceContext(workspace=workspace, auth_method=AuthMethod.WORKSPACE_KEY)

    user = await _resolve_user(request, store)
    if workspace_id is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Workspace ID required")
    workspace = await store.get_workspace(workspace_id)
    if workspace is None or workspace.user_id != user.user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return WorkspaceContext(workspace=workspace, auth_method=AuthMethod.USER, user=user)


# -- Annotated type aliases for concise route signatures ---------------------

WorkspaceKey = Annotated[WorkspaceContext, Depends(require_workspace_key)]
"""Annotated dependency: workspace resolved from its secret key."""

CurrentUser = Annotated[UserRecord, Depends(require_user)]
"""Annotated dependency: signed-in user forwarded by the frontend."""

WorkspaceAccess = Annotated[WorkspaceContext, Depends(require_workspace_access)]
"""Annotated dependency: workspace reachable by the caller (key or owning user)."""

OptionalUser = Annotated[UserRecord | None, Depends(get_optional_user)]
"""Annotated dependency: the signed-in user, or ``None`` for anonymous callers."""
