"""Report ingestion endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from pawprint.server.deps import Alerts, Store, WorkspaceKey
from pawprint.server.managers import reports as report_manager
from pawprint.server.models.api import ReportAccepted
from pawprint.server.models.report import ReportPayload

router = APIRouter(tags=["report"])


@router.post("/report", response_model=ReportAccepted)
async def submit_report(payload: ReportPayload, ctx: WorkspaceKey, store: Store, alerts: Alerts) -> ReportAccepted:
    """Store one reading for the key's workspace and evaluate alerts."""
    await report_manager.ingest_report(store, alerts, ctx.workspace, payload)
    return ReportAccepted()
