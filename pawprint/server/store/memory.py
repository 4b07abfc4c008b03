"""Process-local store for deployments without a database.

Readings are held in a per-workspace ``deque`` capped at ``max_readings`` and
pruned of anything older than ``retention`` on every insert, so memory stays
bounded no matter how long the process runs.  Everything is lost on restart.

All methods return copies; callers can never mutate stored records.
"""

from __future__ import annotations

import itertools
import uuid
from collections import defaultdict, deque
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from pawprint.server.models.records import InviteRecord, ReadingRecord, UserRecord, WorkspaceRecord


class MemoryMonitorStore:
    """In-memory implementation of the MonitorStore protocol."""

    def __init__(self, *, retention: timedelta = timedelta(hours=25), max_readings: int = 500) -> None:
        self._retention = retention
        self._max_readings = max_readings
        self._users: dict[str, UserRecord] = {}
        self._workspaces: dict[str, WorkspaceRecord] = {}
        self._invites: dict[str, InviteRecord] = {}
        self._readings: defaultdict[str, deque[ReadingRecord]] = defaultdict(
            lambda: deque(maxlen=self._max_readings),
        )
        self._reading_ids = itertools.count(1)

    # -- Users -----------------------------------------------------------------

    async def upsert_user(
        self,
        email: str,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
        github_id: str | None = None,
    ) -> UserRecord:
        existing = await self.get_user_by_email(email)
        if existing is None:
            user = UserRecord(
                user_id=str(uuid.uuid4()),
                email=email,
                name=name,
                avatar_url=avatar_url,
                github_id=github_id,
                created_at=_now(),
            )
        else:
            user = existing.model_copy(
                update={
                    "name": name or existing.name,
                    "avatar_url": avatar_url or existing.avatar_url,
                    "github_id": github_id or existing.github_id,
                },
            )
        self._users[user.user_id] = user
        return user.model_copy()

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        for user in self._users.values():
            if user.email == email:
                return user.model_copy()
        return None

    # -- Workspaces ------------------------------------------------------------

    async def create_workspace(self, workspace: WorkspaceRecord) -> WorkspaceRecord:
        now = _now()
        stored = workspace.model_copy(update={"created_at": workspace.created_at or now, "updated_at": now})
        self._workspaces[stored.workspace_id] = stored
        return stored.model_copy()

    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None:
        workspace = self._workspaces.get(workspace_id)
        return workspace.model_copy() if workspace else None

    async def get_workspace_by_key(self, api_key: str) -> WorkspaceRecord | None:
        return self._find_workspace(lambda w: w.api_key == api_key)

    async def get_workspace_by_slug(self, slug: str) -> WorkspaceRecord | None:
        return self._find_workspace(lambda w: w.slug == slug)

    async def find_workspace_by_hostname(self, hostname: str) -> WorkspaceRecord | None:
        newest: ReadingRecord | None = None
        for readings in self._readings.values():
            for reading in readings:
                if reading.system_hostname == hostname and (newest is None or reading.timestamp > newest.timestamp):
                    newest = reading
        if newest is None:
            return None
        return await self.get_workspace(newest.workspace_id)

    async def list_user_workspaces(self, user_id: str) -> list[WorkspaceRecord]:
        owned = [w for w in self._workspaces.values() if w.user_id == user_id]
        owned.sort(key=lambda w: w.created_at or _now(), reverse=True)
        return [w.model_copy() for w in owned]

    async def update_workspace(self, workspace_id: str, changes: dict[str, Any]) -> WorkspaceRecord | None:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            return None
        updated = workspace.model_copy(update={**changes, "updated_at": _now()})
        self._workspaces[workspace_id] = updated
        return updated.model_copy()

    def _find_workspace(self, predicate: Callable[[WorkspaceRecord], bool]) -> WorkspaceRecord | None:
        for workspace in self._workspaces.values():
            if predicate(workspace):
                return workspace.model_copy()
        return None

    # -- Invites ---------------------------------------------------------------

    async def create_invite(self, invite: InviteRecord) -> InviteRecord:
        stored = invite.model_copy(update={"created_at": invite.created_at or _now()})
        self._invites[stored.invite_id] = stored
        return stored.model_copy()

    async def get_invite_by_token(self, token: str) -> InviteRecord | None:
        for invite in self._invites.values():
            if invite.token == token:
                return invite.model_copy()
        return None

    async def claim_invite(self, invite_id: str, used_at: datetime) -> bool:
        invite = self._invites.get(invite_id)
        if invite is None or invite.used_at is not None:
            return False
        self._invites[invite_id] = invite.model_copy(update={"used_at": used_at})
        return True

    # -- Readings --------------------------------------------------------------

    async def insert_reading(self, reading: ReadingRecord) -> ReadingRecord:
        stored = reading.model_copy(update={"reading_id": next(self._reading_ids)})
        bucket = self._readings[stored.workspace_id]
        bucket.append(stored)
        self._prune(bucket)
        return stored.model_copy()

    async def latest_reading(self, workspace_id: str) -> ReadingRecord | None:
        readings = self._sorted(workspace_id)
        return readings[0] if readings else None

    async def recent_readings(self, workspace_id: str, limit: int) -> list[ReadingRecord]:
        return self._sorted(workspace_id)[:limit]

    async def readings_since(
        self,
        workspace_id: str,
        since: datetime,
        *,
        limit: int | None = None,
    ) -> list[ReadingRecord]:
        readings = [r for r in self._sorted(workspace_id) if r.timestamp > since]
        return readings if limit is None else readings[:limit]

    async def uptime_counts(self, workspace_id: str, since: datetime) -> tuple[int, int]:
        window = [r for r in self._readings.get(workspace_id, ()) if r.timestamp > since]
        online = sum(1 for r in window if r.gateway_online)
        return online, len(window)

    def _sorted(self, workspace_id: str) -> list[ReadingRecord]:
        readings = self._readings.get(workspace_id, ())
        return [r.model_copy() for r in sorted(readings, key=lambda r: r.timestamp, reverse=True)]

    def _prune(self, bucket: deque[ReadingRecord]) -> None:
        cutoff = _now() - self._retention
        kept = [r for r in bucket if r.timestamp >= cutoff]
        if len(kept) != len(bucket):
            bucket.clear()
            bucket.extend(kept)


def _now() -> datetime:
    return datetime.now(UTC)
