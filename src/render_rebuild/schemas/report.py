"""Result records returned by a rebuild."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .render import Database


class ServiceOutcome(str, Enum):
    DEPLOYED = "Deployed"
    NOT_DEPLOYED = "NotDeployed"
    ERROR = "Error"
    SKIPPED = "Skipped"


class RebuildOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    PARTIAL = "partial"
    FAILED = "failed"


class DatabaseSummary(BaseModel):
    """The replacement database as reported to the operator."""

    id: str
    name: str | None = None
    status: str | None = None
    type: str = "PostgreSQL"
    created_at: datetime | None = None

    @classmethod
    def from_database(cls, database: Database) -> "DatabaseSummary":
        return cls(
            id=database.id,
            name=database.name,
            status=database.status,
            created_at=database.created_at,
        )


class ServiceResult(BaseModel):
    id: str
    name: str | None = None
    outcome: ServiceOutcome
    error: str | None = Field(None, description="Error class and message for non-deployed services")


class RebuildReport(BaseModel):
    outcome: RebuildOutcome
    database: DatabaseSummary
    services: list[ServiceResult] = []
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @staticmethod
    def summarize(results: list[ServiceResult]) -> RebuildOutcome:
        """Derive the overall outcome from per-service results."""
        if not results:
            return RebuildOutcome.SUCCEEDED
        deployed = sum(1 for r in results if r.outcome == ServiceOutcome.DEPLOYED)
        if deployed == len(results):
            return RebuildOutcome.SUCCEEDED
        if deployed == 0:
            return RebuildOutcome.FAILED
        return RebuildOutcome.PARTIAL

    def outcome_for(self, service_id: str) -> ServiceOutcome | None:
        for result in self.services:
            if result.id == service_id:
                return result.outcome
        return None
