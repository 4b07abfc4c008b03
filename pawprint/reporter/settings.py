"""Reporter configuration loaded from PAWPRINT_* environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EndpointTarget(BaseModel):
    name: str
    url: str


class ReporterSettings(BaseSettings):
    """pawprint reporter settings.

    List and dict values are JSON-encoded, e.g.
    ``PAWPRINT_ENDPOINTS='[{"name": "api", "url": "https://example.com/health"}]'``
    or ``PAWPRINT_CUSTOM_METRICS='{"queue_depth": "redis-cli llen jobs"}'``.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAWPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "WARNING"

    # -- Transport -------------------------------------------------------------
    api_key: SecretStr | None = None
    """Workspace key (``pk_...``).  When unset the reporter does a dry run."""

    api_url: str = "https://pawprint.app/api"
    request_timeout: float = 30.0

    # -- Collection ------------------------------------------------------------
    agent_id: str = "main"
    openclaw_dir: Path = Path.home() / ".openclaw"
    gateway_process_name: str = "openclaw-gateway"
    active_session_minutes: int = 60
    """Sessions updated within this many minutes count as active."""

    endpoints: list[EndpointTarget] = []
    processes: list[str] = []
    custom_metrics: dict[str, str] = {}
    """Metric name -> shell command whose stdout is the value."""

    probe_timeout: float = 5.0
    """Per-probe timeout (endpoints, custom commands) in seconds."""

    error_log: Path | None = None
