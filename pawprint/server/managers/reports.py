"""Report ingestion -- the only write path into the reading store."""

from __future__ import annotations

from datetime import UTC, datetime

from loguru import logger

from pawprint.server.managers.alerts import AlertService
from pawprint.server.models.records import ReadingRecord, WorkspaceRecord
from pawprint.server.models.report import ReportPayload
from pawprint.server.store.base import MonitorStore


async def ingest_report(
    store: MonitorStore,
    alerts: AlertService,
    workspace: WorkspaceRecord,
    payload: ReportPayload,
) -> ReadingRecord:
    """Insert one reading, then evaluate alerts against it.

    No deduplication: identical submissions yield distinct readings.  Alert
    evaluation runs after the insert in separate store calls, so concurrent
    reports for the same workspace may interleave.
    """
    received_at = datetime.now(UTC)
    reading = ReadingRecord(workspace_id=workspace.workspace_id, **payload.to_reading_fields(received_at))
    stored = await store.insert_reading(reading)
    logger.debug(
        "Reading {} stored for workspace {} (online={}, cost_today={})",
        stored.reading_id,
        workspace.workspace_id,
        stored.gateway_online,
        stored.cost_today,
    )

    await alerts.check(workspace, stored, now=received_at)
    return stored
