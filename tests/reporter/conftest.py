"""Reporter fixtures: an OpenClaw state directory and a quiet host.

Host probes (psutil system stats, gateway process lookup) are stubbed for
every reporter test so collection is fast and deterministic.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from pawprint.reporter import collector
from pawprint.reporter.settings import ReporterSettings
from pawprint.server.models.report import GatewayInfo, SystemInfo

STUB_SYSTEM = SystemInfo(hostname="test-host", platform="linux", cpu_count=4, cpu_usage_percent=12.0)


@pytest.fixture(autouse=True)
def quiet_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(collector, "system_info", lambda: STUB_SYSTEM)
    monkeypatch.setattr(collector, "gateway_info", lambda name: GatewayInfo(online=True, uptime=3600))


@pytest.fixture
def openclaw_dir(tmp_path: Path) -> Path:
    path = tmp_path / ".openclaw"
    path.mkdir()
    return path


@pytest.fixture
def write_json() -> Callable[[Path, Any], Path]:
    """Write *data* as JSON to *path*, creating parent directories."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def reporter_settings(openclaw_dir: Path) -> ReporterSettings:
    return ReporterSettings(
        _env_file=None,
        api_key=None,
        api_url="https://api.pawprint.test",
        openclaw_dir=openclaw_dir,
    )
