"""Pydantic schemas for Render API responses.

These schemas document the structure of Render API responses, providing
type safety for data received from the API. Render sends camelCase keys;
models accept both the alias and the field name.

API Documentation: https://api-docs.render.com/reference
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RenderModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)


class DatabaseStatus(str, Enum):
    """Known Postgres statuses. Only CREATING is transitional."""

    CREATING = "creating"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    SUSPENDED = "suspended"


class Owner(RenderModel):
    """Owner item from GET /owners."""

    id: str = Field(..., description="Owner ID (user or team)")
    name: str | None = Field(None, description="Owner display name")
    email: str | None = Field(None, description="Owner email")
    type: str | None = Field(None, description="'user' or 'team'")


class Service(RenderModel):
    """Service item from GET /services."""

    id: str = Field(..., description="Service ID (srv-...)")
    name: str = Field(..., description="Service display name")
    type: str | None = Field(None, description="web_service, static_site, background_worker, ...")
    suspended: str | None = Field(None, description="'suspended' or 'not_suspended'")
    owner_id: str | None = Field(None, description="Owning account ID")


class Database(RenderModel):
    """Postgres instance from GET /postgres and GET /postgres/{id}."""

    id: str = Field(..., description="Postgres ID (dpg-...)")
    name: str | None = Field(None, description="Display name")
    status: str | None = Field(None, description="Provisioning status")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    plan: str | None = Field(None, description="Plan tier (free, basic_256mb, ...)")
    region: str | None = Field(None, description="Region slug")
    version: str | None = Field(None, description="PostgreSQL major version")

    @property
    def is_creating(self) -> bool:
        return self.status == DatabaseStatus.CREATING.value


class ConnectionInfo(RenderModel):
    """Connection strings from GET /postgres/{id}/connection-info.

    Sensitive: excluded from repr and never logged.
    """

    internal_connection_string: str | None = Field(None, repr=False)
    external_connection_string: str | None = Field(None, repr=False)
    psql_command: str | None = Field(None, repr=False)
    password: str | None = Field(None, repr=False)


class DeployEventDetails(RenderModel):
    deploy_id: str | None = Field(None, description="Deploy this event belongs to")
    status: int | str | None = Field(None, description="Deploy end status code")
    reason: Any = Field(None, description="Failure reason, if any")


class DeployEvent(RenderModel):
    """Event item from GET /services/{id}/events."""

    id: str | None = None
    timestamp: datetime | None = None
    service_id: str | None = None
    type: str = Field(..., description="Event type, e.g. deploy_started, deploy_ended")
    details: DeployEventDetails = Field(default_factory=DeployEventDetails)


class Deploy(RenderModel):
    """Deploy handle from POST /services/{id}/deploys."""

    id: str | None = Field(None, description="Deploy ID (dep-...); absent when queued")
    status: str | None = Field(None, description="created, build_in_progress, live, ...")
    commit: dict[str, Any] | None = None
    created_at: datetime | None = None
