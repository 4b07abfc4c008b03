"""PostgreSQL store backed by async SQLAlchemy.

Each method opens its own short-lived session from the factory and commits
before returning; there are no transactions spanning several calls.  Rows
are converted to records with ``model_validate`` (``from_attributes``).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pawprint.server.db.tables import Invite, Reading, User, Workspace
from pawprint.server.models.records import InviteRecord, ReadingRecord, UserRecord, WorkspaceRecord


class SqlMonitorStore:
    """SQL implementation of the MonitorStore protocol."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # -- Users -----------------------------------------------------------------

    async def upsert_user(
        self,
        email: str,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
        github_id: str | None = None,
    ) -> UserRecord:
        async with self._session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(
                    user_id=str(uuid.uuid4()),
                    email=email,
                    name=name,
                    avatar_url=avatar_url,
                    github_id=github_id,
                )
                db.add(user)
            else:
                profile = {"name": name, "avatar_url": avatar_url, "github_id": github_id}
                for key, value in profile.items():
                    if value is not None:
                        setattr(user, key, value)
            await db.commit()
            await db.refresh(user)
            return UserRecord.model_validate(user)

    async def get_user_by_email(self, email: str) -> UserRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    # -- Workspaces ------------------------------------------------------------

    async def create_workspace(self, workspace: WorkspaceRecord) -> WorkspaceRecord:
        async with self._session_factory() as db:
            row = Workspace(**workspace.model_dump(exclude_none=True, exclude={"created_at", "updated_at"}))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return WorkspaceRecord.model_validate(row)

    async def get_workspace(self, workspace_id: str) -> WorkspaceRecord | None:
        async with self._session_factory() as db:
            row = await db.get(Workspace, workspace_id)
            return WorkspaceRecord.model_validate(row) if row else None

    async def get_workspace_by_key(self, api_key: str) -> WorkspaceRecord | None:
        return await self._first_workspace(select(Workspace).where(Workspace.api_key == api_key))

    async def get_workspace_by_slug(self, slug: str) -> WorkspaceRecord | None:
        return await self._first_workspace(select(Workspace).where(Workspace.slug == slug))

    async def find_workspace_by_hostname(self, hostname: str) -> WorkspaceRecord | None:
        stmt = (
            select(Workspace)
            .join(Reading, Reading.workspace_id == Workspace.workspace_id)
            .where(Reading.system_hostname == hostname)
            .order_by(Reading.timestamp.desc())
            .limit(1)
        )
        return await self._first_workspace(stmt)

    async def list_user_workspaces(self, user_id: str) -> list[WorkspaceRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Workspace).where(Workspace.user_id == user_id).order_by(Workspace.created_at.desc())
            )
            return [WorkspaceRecord.model_validate(row) for row in result.scalars().all()]

    async def update_workspace(self, workspace_id: str, changes: dict[str, Any]) -> WorkspaceRecord | None:
        async with self._session_factory() as db:
            row = await db.get(Workspace, workspace_id)
            if row is None:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            await db.commit()
            await db.refresh(row)
            return WorkspaceRecord.model_validate(row)

    async def _first_workspace(self, stmt: Any) -> WorkspaceRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            row = result.scalars().first()
            return WorkspaceRecord.model_validate(row) if row else None

    # -- Invites ---------------------------------------------------------------

    async def create_invite(self, invite: InviteRecord) -> InviteRecord:
        async with self._session_factory() as db:
            row = Invite(**invite.model_dump(exclude_none=True, exclude={"created_at"}))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return InviteRecord.model_validate(row)

    async def get_invite_by_token(self, token: str) -> InviteRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(select(Invite).where(Invite.token == token))
            row = result.scalar_one_or_none()
            return InviteRecord.model_validate(row) if row else None

    async def claim_invite(self, invite_id: str, used_at: datetime) -> bool:
        # Single conditional UPDATE: concurrent claims of one invite get one winner.
        stmt = (
            update(Invite)
            .where(Invite.invite_id == invite_id, Invite.used_at.is_(None))
            .values(used_at=used_at)
        )
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            await db.commit()
            return result.rowcount == 1

    # -- Readings --------------------------------------------------------------

    async def insert_reading(self, reading: ReadingRecord) -> ReadingRecord:
        async with self._session_factory() as db:
            row = Reading(**reading.model_dump(exclude={"reading_id"}))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return ReadingRecord.model_validate(row)

    async def latest_reading(self, workspace_id: str) -> ReadingRecord | None:
        readings = await self.recent_readings(workspace_id, 1)
        return readings[0] if readings else None

    async def recent_readings(self, workspace_id: str, limit: int) -> list[ReadingRecord]:
        stmt = (
            select(Reading)
            .where(Reading.workspace_id == workspace_id)
            .order_by(Reading.timestamp.desc(), Reading.reading_id.desc())
            .limit(limit)
        )
        return await self._readings(stmt)

    async def readings_since(
        self,
        workspace_id: str,
        since: datetime,
        *,
        limit: int | None = None,
    ) -> list[ReadingRecord]:
        stmt = (
            select(Reading)
            .where(Reading.workspace_id == workspace_id, Reading.timestamp > since)
            .order_by(Reading.timestamp.desc(), Reading.reading_id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._readings(stmt)

    async def uptime_counts(self, workspace_id: str, since: datetime) -> tuple[int, int]:
        stmt = select(
            func.count().filter(Reading.gateway_online.is_(True)),
            func.count(),
        ).where(Reading.workspace_id == workspace_id, Reading.timestamp > since)
        async with self._session_factory() as db:
            online, total = (await db.execute(stmt)).one()
            return int(online), int(total)

    async def _readings(self, stmt: Any) -> list[ReadingRecord]:
        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return [ReadingRecord.model_validate(row) for row in result.scalars().all()]
