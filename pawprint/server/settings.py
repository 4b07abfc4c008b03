"""Service configuration loaded from PAWPRINT_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from pawprint.server.models.enums import StoreBackend


class ServerSettings(BaseSettings):
    """pawprint API settings.

    All fields are read from environment variables with the ``PAWPRINT_`` prefix.
    For example, ``PAWPRINT_LOG_LEVEL=DEBUG`` maps to ``log_level``.  List
    values (``cors_origins``) are JSON-encoded.
    """

    model_config = SettingsConfigDict(
        env_prefix="PAWPRINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Storage ---------------------------------------------------------------
    database_url: str | None = None
    """PostgreSQL connection string (``postgresql+psycopg://``)."""

    store: StoreBackend = StoreBackend.AUTO
    """``auto`` picks ``sql`` when a database URL is set, ``memory`` otherwise."""

    memory_retention_hours: float = 25.0
    """Readings older than this are dropped by the in-memory store."""

    memory_max_readings: int = 500
    """Per-workspace cap on readings kept by the in-memory store."""

    # -- Auth ------------------------------------------------------------------
    auth_token: str | None = None
    """Service token presented by the dashboard frontend on behalf of signed-in users.

    When unset, user-scoped endpoints reject every request.
    """

    allow_provisioning: bool = True
    """Allow agents to provision owner-less workspaces via ``/v1/workspace/provision``."""

    # -- Behaviour -------------------------------------------------------------
    app_url: str = "https://pawprint.app"
    """Public dashboard URL used to build invite links."""

    invite_ttl_hours: int = 24
    online_window_minutes: int = 10
    """A gateway whose latest reading is older than this is reported offline."""

    webhook_timeout: float = 10.0

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]

    # -- Helpers ---------------------------------------------------------------

    def resolve_store_backend(self) -> StoreBackend:
        """Collapse ``auto`` into the concrete backend for this configuration."""
        if self.store != StoreBackend.AUTO:
            return self.store
        return StoreBackend.SQL if self.database_url else StoreBackend.MEMORY


@lru_cache(maxsize=1)
def get_settings() -> ServerSettings:
    """Return a cached settings instance.

    Call ``get_settings.cache_clear()`` in tests to force a re-read after
    overriding env vars.
    """
    return ServerSettings()
