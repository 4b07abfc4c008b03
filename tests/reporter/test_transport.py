"""Tests for report delivery and dry runs."""

from __future__ import annotations

import io
import json

import httpx
import pytest
from pydantic import SecretStr

from pawprint.reporter.settings import ReporterSettings
from pawprint.reporter.transport import ReporterError, report_url, run_once, send_report, validate_api_key
from pawprint.server.models.report import ReportPayload


def _with_key(settings: ReporterSettings, key: str) -> ReporterSettings:
    return settings.model_copy(update={"api_key": SecretStr(key)})


def _recording_client(requests: list[httpx.Request], status_code: int = 200) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"success": status_code < 400})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.parametrize("key", ["pk_abc", "pk_0b8f-11"])
def test_valid_api_keys(key: str) -> None:
    assert validate_api_key(key) == key


@pytest.mark.parametrize("key", ["abc", "sk_abc", "pk_ab c", "pk_abc\n", ""])
def test_malformed_api_keys(key: str) -> None:
    with pytest.raises(ReporterError, match="Malformed API key"):
        validate_api_key(key)


def test_report_url() -> None:
    assert report_url("https://pawprint.app/api") == "https://pawprint.app/api/v1/report"
    assert report_url("https://pawprint.app/api/") == "https://pawprint.app/api/v1/report"


async def test_send_report(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    payload = ReportPayload.model_validate({"agentId": "main", "gateway": {"online": True}})

    async with _recording_client(requests) as client:
        await send_report(payload, _with_key(reporter_settings, "pk_live"), client=client)

    assert len(requests) == 1
    request = requests[0]
    assert str(request.url) == "https://api.pawprint.test/v1/report"
    assert request.headers["Authorization"] == "Bearer pk_live"
    body = json.loads(request.content)
    assert body["agentId"] == "main"
    assert body["schemaVersion"] == 2
    assert body["gateway"] == {"online": True, "uptime": 0}


async def test_send_report_rejects_error_status(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    async with _recording_client(requests, status_code=401) as client:
        with pytest.raises(ReporterError, match="API error 401"):
            await send_report(ReportPayload(), _with_key(reporter_settings, "pk_live"), client=client)


async def test_send_report_network_failure(reporter_settings: ReporterSettings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("name resolution failed", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(ReporterError, match="Could not reach"):
            await send_report(ReportPayload(), _with_key(reporter_settings, "pk_live"), client=client)


async def test_send_report_checks_key_before_network(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    async with _recording_client(requests) as client:
        with pytest.raises(ReporterError):
            await send_report(ReportPayload(), _with_key(reporter_settings, "bad key"), client=client)
        with pytest.raises(ReporterError, match="PAWPRINT_API_KEY"):
            await send_report(ReportPayload(), reporter_settings, client=client)
    assert requests == []


async def test_run_once_without_key_is_dry_run(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    stream = io.StringIO()

    async with _recording_client(requests) as client:
        payload = await run_once(reporter_settings, client=client, stream=stream)

    assert requests == []
    printed = json.loads(stream.getvalue())
    assert printed == payload.to_wire()
    assert printed["system"]["hostname"] == "test-host"


async def test_run_once_dry_run_flag_wins_over_key(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    stream = io.StringIO()

    async with _recording_client(requests) as client:
        await run_once(_with_key(reporter_settings, "pk_live"), dry_run=True, client=client, stream=stream)

    assert requests == []
    assert json.loads(stream.getvalue())["agentId"] == "main"


async def test_run_once_sends(reporter_settings: ReporterSettings) -> None:
    requests: list[httpx.Request] = []
    stream = io.StringIO()

    async with _recording_client(requests) as client:
        await run_once(_with_key(reporter_settings, "pk_live"), client=client, stream=stream)

    assert len(requests) == 1
    assert stream.getvalue() == ""
