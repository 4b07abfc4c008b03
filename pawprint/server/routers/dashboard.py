"""Read-only aggregate views for the dashboard: latest snapshot, history, agents."""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Query

from pawprint.server.deps import Settings, Store, WorkspaceAccess
from pawprint.server.managers import aggregates
from pawprint.server.models.api import AgentsResponse, DashboardResponse, HistoryResponse

router = APIRouter(tags=["dashboard"])


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(ctx: WorkspaceAccess, store: Store, settings: Settings) -> DashboardResponse:
    """Latest reading for the workspace, or an explicit empty state."""
    window = timedelta(minutes=settings.online_window_minutes)
    return await aggregates.dashboard(store, ctx.workspace_id, online_window=window)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    ctx: WorkspaceAccess,
    store: Store,
    hours: Annotated[float, Query(gt=0, allow_inf_nan=False)] = aggregates.DEFAULT_HISTORY_HOURS,
) -> HistoryResponse:
    """Newest-first readings covering *hours* (at most 1000 rows)."""
    points = await aggregates.history(store, ctx.workspace_id, hours)
    return HistoryResponse(history=points)


@router.get("/agents", response_model=AgentsResponse)
async def get_agents(ctx: WorkspaceAccess, store: Store, settings: Settings) -> AgentsResponse:
    """Last-24h readings grouped per reporting host."""
    window = timedelta(minutes=settings.online_window_minutes)
    summaries = await aggregates.agents(store, ctx.workspace_id, online_window=window)
    return AgentsResponse(agents=summaries)
