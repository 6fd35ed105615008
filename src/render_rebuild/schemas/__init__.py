from .render import (
    ConnectionInfo,
    Database,
    DatabaseStatus,
    Deploy,
    DeployEvent,
    DeployEventDetails,
    Owner,
    Service,
)
from .report import (
    DatabaseSummary,
    RebuildOutcome,
    RebuildReport,
    ServiceOutcome,
    ServiceResult,
)

__all__ = [
    "ConnectionInfo",
    "Database",
    "DatabaseStatus",
    "DatabaseSummary",
    "Deploy",
    "DeployEvent",
    "DeployEventDetails",
    "Owner",
    "RebuildOutcome",
    "RebuildReport",
    "Service",
    "ServiceOutcome",
    "ServiceResult",
]
