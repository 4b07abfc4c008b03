"""Data models for the pawprint server."""

from pawprint.server.models.enums import (
    AlertType,
    AuthMethod,
    EndpointStatus,
    GatewayStatus,
    IncidentType,
    StoreBackend,
)
from pawprint.server.models.records import InviteRecord, ReadingRecord, UserRecord, WorkspaceRecord
from pawprint.server.models.report import CURRENT_SCHEMA_VERSION, ReportPayload

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    # Enums
    "AlertType",
    "AuthMethod",
    "EndpointStatus",
    "GatewayStatus",
    "IncidentType",
    # Records
    "InviteRecord",
    "ReadingRecord",
    # Payload
    "ReportPayload",
    "StoreBackend",
    "UserRecord",
    "WorkspaceRecord",
]
