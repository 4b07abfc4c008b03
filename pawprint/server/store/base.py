"""Storage interface for workspaces, readings, users and invites.

Two backends implement it and one is picked at startup:

- ``SqlMonitorStore`` -- durable, PostgreSQL via async SQLAlchemy.
- ``MemoryMonitorStore`` -- ephemeral, process-local, capped per workspace.

Every method takes and returns domain records (``pawprint.server.models``);
ORM rows never leak past the SQL backend.  Reading queries always order by
the reported timestamp, newest first, never by insertion order.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from pawprint.server.models.records import InviteRecord, ReadingRecord, UserRecord, WorkspaceRecord


@runtime_checkable
class MonitorStore(Protocol):
    """Async protocol shared by every storage backend."""

    # -- Users -----------------------------------------------------------------

    async def upsert_user(
        self,
        email: str,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
        github_id: str | None = None,
    ) -> UserRecord:
        """Create the user on first sign-in, refresh profile fields afterwards."""
        ...

    async def get_user_by_email(self, email: str) -> UserRecord | None: ...

    # -- Workspaces ------------------------------------------------------------

    async def create_workspace(self, workspace: WorkspaceRecord) -> WorkspaceRecord: ...

    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None: ...

    async def get_workspace_by_key(self, api_key: str) -> WorkspaceRecord | None: ...

    async def get_workspace_by_slug(self, slug: str) -> WorkspaceRecord | None: ...

    async def find_workspace_by_hostname(self, hostname: str) -> WorkspaceRecord | None:
        """Workspace whose most recent reading carrying *hostname* is newest overall."""
        ...

    async def list_user_workspaces(self, user_id: str) -> list[WorkspaceRecord]:
        """Workspaces owned by *user_id*, newest first."""
        ...

    async def update_workspace(self, workspace_id: str, changes: dict[str, Any]) -> WorkspaceRecord | None:
        """Apply *changes* to the workspace.  Returns ``None`` if it does not exist."""
        ...

    # -- Invites ---------------------------------------------------------------

    async def create_invite(self, invite: InviteRecord) -> InviteRecord: ...

    async def get_invite_by_token(self, token: str) -> InviteRecord | None: ...

    async def claim_invite(self, invite_id: str, used_at: datetime) -> bool:
        """Mark an unused invite as used.  ``False`` when it was already used (or is missing)."""
        ...

    # -- Readings --------------------------------------------------------------

    async def insert_reading(self, reading: ReadingRecord) -> ReadingRecord:
        """Append a reading.  Readings are never updated afterwards."""
        ...

    async def latest_reading(self, workspace_id: str) -> ReadingRecord | None: ...

    async def recent_readings(self, workspace_id: str, limit: int) -> list[ReadingRecord]:
        """At most *limit* readings, newest first."""
        ...

    async def readings_since(
        self,
        workspace_id: str,
        since: datetime,
        *,
        limit: int | None = None,
    ) -> list[ReadingRecord]:
        """Readings with ``timestamp > since``, newest first."""
        ...

    async def uptime_counts(self, workspace_id: str, since: datetime) -> tuple[int, int]:
        """Return ``(online, total)`` reading counts with ``timestamp > since``."""
        ...
