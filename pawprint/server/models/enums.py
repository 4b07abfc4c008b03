"""Shared enumerations used across the pawprint server."""

from __future__ import annotations

from enum import StrEnum

# -- Storage -----------------------------------------------------------------


class StoreBackend(StrEnum):
    AUTO = "auto"
    SQL = "sql"
    MEMORY = "memory"


# -- Alerts ------------------------------------------------------------------


class AlertType(StrEnum):
    COST = "cost"
    DOWNTIME = "downtime"


# -- Status page -------------------------------------------------------------


class GatewayStatus(StrEnum):
    ONLINE = "online"
    OFFLINE = "offline"


class IncidentType(StrEnum):
    DOWNTIME = "downtime"
    ERROR = "error"


# -- Report payload ----------------------------------------------------------


class EndpointStatus(StrEnum):
    """Outcome of a collector HTTP probe."""

    UP = "up"
    DOWN = "down"
    ERROR = "error"


class AuthMethod(StrEnum):
    """How a request's workspace context was resolved."""

    WORKSPACE_KEY = "workspace_key"
    USER = "user"
