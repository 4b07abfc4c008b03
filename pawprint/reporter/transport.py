"""Report transport: POST the payload to ``{api_url}/v1/report``.

Without an API key the reporter runs dry: the payload is printed to stdout
and nothing is sent.  Any failure raises ``ReporterError``; there are no
retries, the external scheduler simply runs the reporter again next tick.
"""

from __future__ import annotations

import json
import sys
from typing import TextIO

import httpx
from loguru import logger

from pawprint.reporter.collector import Collector
from pawprint.reporter.settings import ReporterSettings
from pawprint.server.models.report import ReportPayload

API_KEY_PREFIX = "pk_"


class ReporterError(RuntimeError):
    """Raised when a report cannot be delivered."""


def validate_api_key(api_key: str) -> str:
    if not api_key.startswith(API_KEY_PREFIX) or any(ch.isspace() for ch in api_key):
        msg = "Malformed API key: expected a 'pk_' key without whitespace"
        raise ReporterError(msg)
    return api_key


def report_url(api_url: str) -> str:
    return f"{api_url.rstrip('/')}/v1/report"


def emit_dry_run(payload: ReportPayload, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    stream.write(json.dumps(payload.to_wire(), indent=2) + "\n")
    stream.flush()


async def send_report(
    payload: ReportPayload,
    settings: ReporterSettings,
    *,
    client: httpx.AsyncClient | None = None,
) -> None:
    """Deliver *payload*.  Raises ``ReporterError`` on any failure."""
    if settings.api_key is None:
        msg = "PAWPRINT_API_KEY is not set"
        raise ReporterError(msg)
    api_key = validate_api_key(settings.api_key.get_secret_value())
    url = report_url(settings.api_url)

    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=settings.request_timeout)
    try:
        response = await client.post(
            url,
            json=payload.to_wire(),
            headers={"Authorization": f"Bearer {api_key}"},
        )
    except httpx.HTTPError as exc:
        msg = f"Could not reach {url}: {exc}"
        raise ReporterError(msg) from exc
    finally:
        if owns_client:
            await client.aclose()

    if not response.is_success:
        msg = f"API error {response.status_code}: {response.text}"
        raise ReporterError(msg)
    logger.info("Report posted to {}", url)


async def run_once(
    settings: ReporterSettings,
    *,
    dry_run: bool = False,
    client: httpx.AsyncClient | None = None,
    stream: TextIO | None = None,
) -> ReportPayload:
    """Collect one payload, then print it (dry run) or send it."""
    payload = await Collector(settings, client=client).collect()
    if dry_run or settings.api_key is None:
        if not dry_run:
            logger.warning("No PAWPRINT_API_KEY set -- dry run, payload printed to stdout")
        emit_dry_run(payload, stream)
        return payload
    await send_report(payload, settings, client=client)
    return payload
