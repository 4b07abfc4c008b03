"""Workspace operations.

Encapsulates workspace data access: create, provision, list, settings
updates and API key rotation.  Keys look like ``pk_<uuid4>``; slugs are the
slugified name plus eight hex characters so they never collide in practice.
"""

from __future__ import annotations

import re
import uuid

from pawprint.server.models.api import WorkspaceSettingsUpdate
from pawprint.server.models.records import WorkspaceRecord
from pawprint.server.store.base import MonitorStore

API_KEY_PREFIX = "pk_"
DEFAULT_WORKSPACE_NAME = "My Agent"

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


class WorkspaceNotFoundError(LookupError):
    """Raised when a workspace is not found."""


class SlugTakenError(ValueError):
    """Raised when a requested slug already belongs to another workspace."""


def generate_api_key() -> str:
    return API_KEY_PREFIX + str(uuid.uuid4())


def slugify(name: str) -> str:
    """Lowercase, collapse non-alphanumerics to ``-`` and strip edge dashes."""
    return _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")


def generate_slug(name: str) -> str:
    base = slugify(name) or "workspace"
    return f"{base}-{str(uuid.uuid4())[:8]}"


async def create_workspace(store: MonitorStore, name: str, *, user_id: str | None = None) -> WorkspaceRecord:
    """Create a workspace.  ``user_id=None`` provisions an owner-less one."""
    workspace = WorkspaceRecord(
        workspace_id=str(uuid.uuid4()),
        name=name,
        api_key=generate_api_key(),
        slug=generate_slug(name),
        user_id=user_id,
    )
    return await store.create_workspace(workspace)


async def list_workspaces(store: MonitorStore, user_id: str) -> list[WorkspaceRecord]:
    return await store.list_user_workspaces(user_id)


async def get_workspace(store: MonitorStore, workspace_id: str) -> WorkspaceRecord:
    """Get a workspace by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await store.get_workspace(workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace


async def update_settings(
    store: MonitorStore, workspace_id: str, body: WorkspaceSettingsUpdate
) -> WorkspaceRecord:
    """Partially update a workspace's settings.

    Raises ``WorkspaceNotFoundError`` if missing and ``SlugTakenError`` when
    the new slug is used by another workspace.
    """
    changes = body.model_dump(exclude_unset=True, mode="json")
    if not changes:
        return await get_workspace(store, workspace_id)

    slug = changes.get("slug")
    if slug is not None:
        owner = await store.get_workspace_by_slug(slug)
        if owner is not None and owner.workspace_id != workspace_id:
            raise SlugTakenError(slug)

    workspace = await store.update_workspace(workspace_id, changes)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace


async def regenerate_api_key(store: MonitorStore, workspace_id: str) -> WorkspaceRecord:
    """Replace the workspace key; the old key stops working immediately."""
    workspace = await store.update_workspace(workspace_id, {"api_key": generate_api_key()})
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace
