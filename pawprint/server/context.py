"""Resolved request context produced by the authentication dependencies.

Every workspace-scoped handler receives a ``WorkspaceContext`` instead of
re-implementing key or user lookups itself.
"""

from __future__ import annotations

from dataclasses import dataclass

from pawprint.server.models.enums import AuthMethod
from pawprint.server.models.records import UserRecord, WorkspaceRecord


@dataclass
class WorkspaceContext:
    """The workspace a request acts on and how the caller proved access to it."""

    workspace: WorkspaceRecord
    auth_method: AuthMethod
    user: UserRecord | None = None
    """Set only for ``AuthMethod.USER``."""

    @property
    def workspace_id(self) -> str:
        return self.workspace.workspace_id

    @property
    def is_owned(self) -> bool:
        return self.workspace.user_id is not None
