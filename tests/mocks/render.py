from datetime import UTC, datetime
from typing import Any

from render_rebuild.errors import RemoteError
from render_rebuild.schemas import ConnectionInfo, Database, Deploy, DeployEvent


class MockRenderClient:
    """In-memory Render mock for controller and orchestrator tests.

    Every call is recorded in `calls` as (method, *args) so tests can assert
    on ordering.
    """

    def __init__(self):
        # State
        self.owners: list[dict | None] = [{"id": "own-1", "name": "Test Owner"}]
        self.services: list[dict | None] = []
        self.databases: list[dict | None] = []
        self.env_vars: dict[str, dict[str, str]] = {}  # service_id -> { key -> value }

        # Scripted responses
        self.created_database: dict[str, Any] = {"id": "db-1", "status": "creating"}
        self.status_sequence: list[str] = ["available"]  # get_postgres; last value repeats
        self.connection_info: dict[str, Any] = {
            "internalConnectionString": "postgres://internal/db-1",
            "externalConnectionString": "postgres://external/db-1",
        }
        self.delete_status: int = 204
        self.event_feeds: dict[str, list[list[dict]]] = {}  # service_id -> polls; last repeats

        # Behavior Configuration
        self.fail_env_for: set[str] = set()
        self.fail_deploy_for: set[str] = set()
        self.fail_operations: dict[str, RemoteError] = {}

        self.calls: list[tuple] = []
        self._status_polls = 0
        self._event_polls: dict[str, int] = {}
        self._deploy_counter = 0

    def _record(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        if method in self.fail_operations:
            raise self.fail_operations[method]

    def methods(self) -> list[str]:
        return [call[0] for call in self.calls]

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def close(self) -> None:
        self.calls.append(("close",))

    async def list_owners(self, limit: int = 1) -> list[dict | None]:
        self._record("list_owners")
        return self.owners[:limit]

    async def list_services(self, limit: int = 100) -> list[dict | None]:
        self._record("list_services")
        return list(self.services)

    async def list_postgres(self, limit: int = 100) -> list[dict | None]:
        self._record("list_postgres")
        return list(self.databases)

    async def get_postgres(self, postgres_id: str) -> Database:
        self._record("get_postgres", postgres_id)
        index = min(self._status_polls, len(self.status_sequence) - 1)
        self._status_polls += 1
        return Database.model_validate(
            {**self.created_database, "id": postgres_id, "status": self.status_sequence[index]}
        )

    async def get_connection_info(self, postgres_id: str) -> ConnectionInfo:
        self._record("get_connection_info", postgres_id)
        return ConnectionInfo.model_validate(self.connection_info)

    async def create_postgres(self, payload: dict[str, Any]) -> Database:
        self._record("create_postgres", payload)
        return Database.model_validate(
            {"name": payload.get("name"), "createdAt": datetime.now(UTC), **self.created_database}
        )

    async def delete_postgres(self, postgres_id: str) -> int:
        self._record("delete_postgres", postgres_id)
        return self.delete_status

    async def set_env_var(self, service_id: str, key: str, value: str) -> dict[str, Any]:
        self._record("set_env_var", service_id, key, value)
        if service_id in self.fail_env_for:
            raise RemoteError("set_env_var", 500, "Simulated Failure")
        self.env_vars.setdefault(service_id, {})[key] = value
        return {"key": key, "value": value}

    async def trigger_deploy(self, service_id: str, clear_cache: bool = True) -> Deploy:
        self._record("trigger_deploy", service_id, clear_cache)
        if service_id in self.fail_deploy_for:
            raise RemoteError("trigger_deploy", 404, "Service not found")
        self._deploy_counter += 1
        return Deploy(id=f"dep-{self._deploy_counter}", status="created")

    async def list_events(self, service_id: str, limit: int = 10) -> list[DeployEvent]:
        self._record("list_events", service_id)
        feeds = self.event_feeds.get(service_id, [[]])
        index = min(self._event_polls.get(service_id, 0), len(feeds) - 1)
        self._event_polls[service_id] = self._event_polls.get(service_id, 0) + 1
        return [DeployEvent.model_validate(event) for event in feeds[index][:limit]]


def deploy_ended(status: int, deploy_id: str | None = None) -> dict:
    details: dict[str, Any] = {"status": status}
    if deploy_id:
        details["deployId"] = deploy_id
    return {"id": f"evt-{status}", "type": "deploy_ended", "details": details}


def deploy_started(deploy_id: str | None = None) -> dict:
    return {"id": "evt-start", "type": "deploy_started", "details": {"deployId": deploy_id}}
