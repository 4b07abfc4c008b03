"""User sign-in sync, called by the dashboard frontend after OAuth."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from pawprint.server.deps import Store, require_service
from pawprint.server.models.api import UserResponse, UserSignIn
from pawprint.server.models.records import UserRecord

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(require_service)])


@router.post("/sign-in", response_model=UserResponse)
async def sign_in(body: UserSignIn, store: Store) -> UserRecord:
    """Create the user on first sign-in; refresh profile fields afterwards."""
    return await store.upsert_user(
        body.email,
        name=body.name,
        avatar_url=body.avatar_url,
        github_id=body.github_id,
    )
