"""Threshold alerting evaluated after every ingested reading.

Evaluation is stateless: each rule looks only at the new reading and the
readings currently in the store.  There is no cooldown or acknowledgement,
so a sustained breach notifies again on every report cycle.

Dispatch posts a Slack-compatible ``{"text": ...}`` body to the workspace
webhook.  Dispatch failures are logged and never propagate to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import httpx
from loguru import logger

from pawprint.server.models.enums import AlertType
from pawprint.server.models.records import ReadingRecord, WorkspaceRecord
from pawprint.server.store.base import MonitorStore


@dataclass(frozen=True)
class Alert:
    type: AlertType
    message: str


# -- Rules --------------------------------------------------------------------


def evaluate_cost_alert(workspace: WorkspaceRecord, reading: ReadingRecord) -> Alert | None:
    """Fire when today's cost is strictly above the configured threshold."""
    threshold = workspace.alert_cost_threshold
    cost = reading.cost_today
    if threshold is None or cost is None or cost <= threshold:
        return None
    return Alert(
        type=AlertType.COST,
        message=f"💰 Cost Alert: ${cost:.2f} today (threshold: ${threshold:.2f})",
    )


def downtime_window_start(workspace: WorkspaceRecord, now: datetime) -> datetime | None:
    """Exclusive lower bound of the downtime window, or ``None`` if disabled."""
    if not workspace.alert_downtime_minutes:
        return None
    return now - timedelta(minutes=workspace.alert_downtime_minutes)


def evaluate_downtime_alert(workspace: WorkspaceRecord, recent: Sequence[ReadingRecord]) -> Alert | None:
    """Fire when the newest reading is offline and nothing in the window was online.

    *recent* holds the readings inside the window, newest first.
    """
    if not workspace.alert_downtime_minutes or not recent:
        return None
    if recent[0].gateway_online:
        return None
    if any(r.gateway_online for r in recent):
        return None
    return Alert(
        type=AlertType.DOWNTIME,
        message=f"🔴 Downtime Alert: Gateway offline for {workspace.alert_downtime_minutes}+ minutes",
    )


# -- Dispatch -----------------------------------------------------------------


class AlertDispatcher:
    """Posts alerts to webhooks over a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 10.0) -> None:
        self._client = client
        self._timeout = timeout

    async def dispatch(self, url: str | None, alert: Alert) -> bool:
        """Send *alert*; returns whether the webhook accepted it."""
        if not url:
            return False
        try:
            response = await self._client.post(url, json={"text": alert.message}, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Alert webhook failed ({}): {}", alert.type, exc)
            return False
        return True


class AlertService:
    """Runs every rule for a freshly inserted reading and dispatches what fires."""

    def __init__(self, store: MonitorStore, dispatcher: AlertDispatcher) -> None:
        self._store = store
        self._dispatcher = dispatcher

    async def check(
        self,
        workspace: WorkspaceRecord,
        reading: ReadingRecord,
        *,
        now: datetime | None = None,
    ) -> list[Alert]:
        now = now or datetime.now(UTC)
        fired: list[Alert] = []

        cost_alert = evaluate_cost_alert(workspace, reading)
        if cost_alert is not None:
            fired.append(cost_alert)

        window_start = downtime_window_start(workspace, now)
        if window_start is not None:
            recent = await self._store.readings_since(workspace.workspace_id, window_start)
            downtime_alert = evaluate_downtime_alert(workspace, recent)
            if downtime_alert is not None:
                fired.append(downtime_alert)

        for alert in fired:
            logger.info("Alert fired for workspace {}: {}", workspace.workspace_id, alert.type)
            await self._dispatcher.dispatch(workspace.webhook_url, alert)
        return fired
