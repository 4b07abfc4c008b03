"""Public status page endpoint (no authentication)."""

from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, HTTPException, status

from pawprint.server.deps import Settings, Store
from pawprint.server.managers import aggregates
from pawprint.server.models.api import StatusPageResponse

router = APIRouter(tags=["status"])


@router.get("/status/{slug}", response_model=StatusPageResponse)
async def get_status_page(slug: str, store: Store, settings: Settings) -> StatusPageResponse:
    """Status for the workspace matching *slug*, or the host that last reported it as hostname."""
    window = timedelta(minutes=settings.online_window_minutes)
    try:
        return await aggregates.status_page(store, slug, online_window=window)
    except aggregates.StatusPageNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail="Status page not found") from None
    except aggregates.StatusPagePrivateError:
        raise HTTPException(status.HTTP_403_FORBIDDEN, detail="Status page is private") from None
