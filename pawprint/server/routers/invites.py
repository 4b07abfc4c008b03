"""Invite validation and acceptance."""

from __future__ import annotations

from typing import Annotated, NoReturn

from fastapi import APIRouter, HTTPException, Query, status

from pawprint.server.deps import OptionalUser, Store
from pawprint.server.managers import invites as invite_manager
from pawprint.server.models.api import AcceptedWorkspace, InviteAccepted, InviteToken, InviteValidation

router = APIRouter(prefix="/invite", tags=["invites"])


def _raise_for(exc: Exception, *, with_workspace: bool) -> NoReturn:
    if isinstance(exc, invite_manager.InviteNotFoundError):
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Invalid invite") from None
    if isinstance(exc, invite_manager.InviteUnavailableError):
        detail: str | dict = exc.reason
        if with_workspace:
            detail = {"error": exc.reason, "workspaceName": exc.workspace_name}
        raise HTTPException(status.HTTP_410_GONE, detail=detail) from None
    raise exc


@router.get("/validate", response_model=InviteValidation)
async def validate_invite(store: Store, token: Annotated[str | None, Query()] = None) -> InviteValidation:
    """Check a token without consuming it."""
    if not token:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Token required")
    try:
        invite, workspace = await invite_manager.validate_invite(store, token)
    except (invite_manager.InviteNotFoundError, invite_manager.InviteUnavailableError) as exc:
        _raise_for(exc, with_workspace=True)
    return InviteValidation(
        workspace_id=workspace.workspace_id,
        workspace_name=workspace.name,
        workspace_slug=workspace.slug,
        role=invite.role,
        expires_at=invite.expires_at,
    )


@router.post("/accept", response_model=InviteAccepted, response_model_exclude_none=True)
async def accept_invite(body: InviteToken, user: OptionalUser, store: Store) -> InviteAccepted:
    """Consume a token and take ownership of its workspace."""
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Must be logged in to accept invite")
    if not body.token:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail="Token required")
    try:
        result = await invite_manager.accept_invite(store, body.token, user)
    except (invite_manager.InviteNotFoundError, invite_manager.InviteUnavailableError) as exc:
        _raise_for(exc, with_workspace=False)

    workspace = result.workspace
    if result.already_owner:
        return InviteAccepted(
            success=None,
            message="You already have access to this workspace",
            workspace_id=workspace.workspace_id,
            workspace_name=workspace.name,
        )
    return InviteAccepted(
        workspace=AcceptedWorkspace(
            id=workspace.workspace_id,
            name=workspace.name,
            api_key=workspace.api_key,
            slug=workspace.slug,
        ),
    )
