"""Workspace endpoints (RPC-style).

All write operations use POST; reads use GET.  Workspace-scoped endpoints
accept either the workspace key or the owning user (see ``deps``).
"""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Body, HTTPException, status
from loguru import logger

from pawprint.server.deps import CurrentUser, Settings, Store, WorkspaceAccess
from pawprint.server.managers import invites as invite_manager
from pawprint.server.managers import workspaces as workspace_manager
from pawprint.server.models.api import (
    ApiKeyResponse,
    InviteCreated,
    WorkspaceCreate,
    WorkspaceEnvelope,
    WorkspaceListResponse,
    WorkspaceResponse,
    WorkspaceSettingsUpdate,
)
from pawprint.server.models.enums import AuthMethod
from pawprint.server.models.records import WorkspaceRecord

router = APIRouter(tags=["workspaces"])


def _envelope(workspace: WorkspaceRecord) -> WorkspaceEnvelope:
    return WorkspaceEnvelope(workspace=WorkspaceResponse.model_validate(workspace))


@router.get("/workspaces", response_model=WorkspaceListResponse)
async def list_workspaces(user: CurrentUser, store: Store) -> WorkspaceListResponse:
    """List the signed-in user's workspaces, newest first."""
    workspaces = await workspace_manager.list_workspaces(store, user.user_id)
    return WorkspaceListResponse(workspaces=[WorkspaceResponse.model_validate(w) for w in workspaces])


@router.post("/workspace/create", response_model=WorkspaceEnvelope, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    user: CurrentUser,
    store: Store,
    body: Annotated[WorkspaceCreate | None, Body()] = None,
) -> WorkspaceEnvelope:
    """Create a workspace owned by the signed-in user."""
    name = body.name if body else workspace_manager.DEFAULT_WORKSPACE_NAME
    workspace = await workspace_manager.create_workspace(store, name, user_id=user.user_id)
    logger.info("Workspace {} created by user {}", workspace.workspace_id, user.user_id)
    return _envelope(workspace)


@router.post("/workspace/provision", response_model=WorkspaceEnvelope, status_code=status.HTTP_201_CREATED)
async def provision_workspace(
    store: Store,
    settings: Settings,
    body: Annotated[WorkspaceCreate | None, Body()] = None,
) -> WorkspaceEnvelope:
    """Create an owner-less workspace for an agent; claimed later through an invite."""
    if not settings.allow_provisioning:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Provisioning disabled")
    name = body.name if body else workspace_manager.DEFAULT_WORKSPACE_NAME
    workspace = await workspace_manager.create_workspace(store, name)
    logger.info("Workspace {} provisioned without owner", workspace.workspace_id)
    return _envelope(workspace)


@router.get("/workspace/settings", response_model=WorkspaceEnvelope)
async def get_workspace_settings(ctx: WorkspaceAccess) -> WorkspaceEnvelope:
    return _envelope(ctx.workspace)


@router.post("/workspace/settings", response_model=WorkspaceEnvelope)
async def update_workspace_settings(
    ctx: WorkspaceAccess, body: WorkspaceSettingsUpdate, store: Store
) -> WorkspaceEnvelope:
    """Partially update name, slug, visibility and alert configuration."""
    try:
        workspace = await workspace_manager.update_settings(store, ctx.workspace_id, body)
    except workspace_manager.SlugTakenError:
        raise HTTPException(status.HTTP_409_CONFLICT, detail="Slug already taken") from None
    except workspace_manager.WorkspaceNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Workspace not found") from None
    return _envelope(workspace)


@router.post("/workspace/regenerate-key", response_model=ApiKeyResponse)
async def regenerate_key(ctx: WorkspaceAccess, store: Store) -> ApiKeyResponse:
    """Issue a new workspace key; the previous one is rejected from now on."""
    try:
        workspace = await workspace_manager.regenerate_api_key(store, ctx.workspace_id)
    except workspace_manager.WorkspaceNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Workspace not found") from None
    logger.info("API key regenerated for workspace {}", workspace.workspace_id)
    return ApiKeyResponse(api_key=workspace.api_key)


@router.post("/workspace/invite", response_model=InviteCreated)
async def create_invite(ctx: WorkspaceAccess, store: Store, settings: Settings) -> InviteCreated:
    """Create a single-use invite transferring the workspace to whoever accepts it.

    The workspace key may only invite while the workspace has no owner.
    """
    if ctx.auth_method == AuthMethod.WORKSPACE_KEY and ctx.is_owned:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Forbidden")

    invite = await invite_manager.create_invite(
        store, ctx.workspace, ttl=timedelta(hours=settings.invite_ttl_hours)
    )
    return InviteCreated(
        invite_url=invite_manager.invite_url(settings.app_url, invite.token),
        token=invite.token,
        workspace_id=ctx.workspace_id,
        workspace_name=ctx.workspace.name,
        expires_at=invite.expires_at,
    )
