"""Recreate a Render PostgreSQL database and redeploy its dependent services."""

from .orchestrator import RebuildOrchestrator
from .schemas import RebuildOutcome, RebuildReport, ServiceOutcome

__all__ = ["RebuildOrchestrator", "RebuildOutcome", "RebuildReport", "ServiceOutcome"]

__version__ = "0.1.0"
