"""Workspace invites -- single-use, time-limited ownership transfer tokens."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from loguru import logger

from pawprint.server.models.records import InviteRecord, UserRecord, WorkspaceRecord
from pawprint.server.store.base import MonitorStore

INVITE_TOKEN_PREFIX = "inv_"


class InviteNotFoundError(LookupError):
    """Raised when no invite matches the token (or its workspace is gone)."""


class InviteUnavailableError(ValueError):
    """Base for invites that exist but can no longer be accepted."""

    reason = "Invite unavailable"

    def __init__(self, workspace_name: str) -> None:
        super().__init__(self.reason)
        self.workspace_name = workspace_name


class InviteUsedError(InviteUnavailableError):
    reason = "Invite already used"


class InviteExpiredError(InviteUnavailableError):
    reason = "Invite expired"


@dataclass
class AcceptResult:
    workspace: WorkspaceRecord
    already_owner: bool


def generate_invite_token() -> str:
    return INVITE_TOKEN_PREFIX + str(uuid.uuid4())


def invite_url(app_url: str, token: str) -> str:
    return f"{app_url.rstrip('/')}/invite/{token}"


async def create_invite(
    store: MonitorStore,
    workspace: WorkspaceRecord,
    *,
    ttl: timedelta,
    now: datetime | None = None,
) -> InviteRecord:
    now = now or datetime.now(UTC)
    invite = InviteRecord(
        invite_id=str(uuid.uuid4()),
        workspace_id=workspace.workspace_id,
        token=generate_invite_token(),
        expires_at=now + ttl,
    )
    created = await store.create_invite(invite)
    logger.info("Invite created for workspace {} (expires {})", workspace.workspace_id, created.expires_at)
    return created


async def validate_invite(
    store: MonitorStore, token: str, *, now: datetime | None = None
) -> tuple[InviteRecord, WorkspaceRecord]:
    """Resolve a token to its invite and workspace.

    Raises ``InviteNotFoundError``, ``InviteUsedError`` or
    ``InviteExpiredError``.  Consumption is checked before expiry.
    """
    now = now or datetime.now(UTC)
    invite = await store.get_invite_by_token(token)
    if invite is None:
        raise InviteNotFoundError(token)
    workspace = await store.get_workspace(invite.workspace_id)
    if workspace is None:
        raise InviteNotFoundError(token)

    if invite.used_at is not None:
        raise InviteUsedError(workspace.name)
    if invite.is_expired(now):
        raise InviteExpiredError(workspace.name)
    return invite, workspace


async def accept_invite(
    store: MonitorStore, token: str, user: UserRecord, *, now: datetime | None = None
) -> AcceptResult:
    """Consume an invite, transferring workspace ownership to *user*.

    A user who already owns the workspace still consumes the invite.
    """
    now = now or datetime.now(UTC)
    invite, workspace = await validate_invite(store, token, now=now)

    # Claiming is atomic: only one accept of a token gets past this point.
    if not await store.claim_invite(invite.invite_id, now):
        raise InviteUsedError(workspace.name)

    if workspace.user_id == user.user_id:
        return AcceptResult(workspace=workspace, already_owner=True)

    updated = await store.update_workspace(workspace.workspace_id, {"user_id": user.user_id})
    if updated is None:
        raise InviteNotFoundError(token)

    logger.info("Workspace {} transferred to user {} via invite", workspace.workspace_id, user.user_id)
    return AcceptResult(workspace=updated, already_owner=False)
