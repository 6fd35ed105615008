"""Database lifecycle: delete, create, wait for provisioning, connection info."""

import asyncio
from http import HTTPStatus

import structlog

from .clients.render import RenderClient
from .errors import DeletionFailed, RemoteError
from .polling import PollPolicy, poll_until
from .schemas import ConnectionInfo, Database

logger = structlog.get_logger(__name__)


class DatabaseLifecycleController:
    """Drives one Render Postgres instance through Requested -> Provisioning -> Available|Failed.

    Render offers no notification when provisioning finishes, so
    `await_available` re-reads the instance until its status leaves
    `creating`.
    """

    def __init__(
        self,
        client: RenderClient,
        *,
        name: str,
        region: str,
        plan: str = "free",
        version: str = "16",
        poll_policy: PollPolicy | None = None,
    ) -> None:
        self.client = client
        self.name = name
        self.region = region
        self.plan = plan
        self.version = version
        self.poll_policy = poll_policy or PollPolicy()

    async def delete(self, database_id: str) -> None:
        """Delete a database; only 204 No Content counts as confirmed.

        Raises:
            DeletionFailed: On any other status or a failed call.
        """
        logger.info("database_delete_started", database_id=database_id)
        try:
            status_code = await self.client.delete_postgres(database_id)
        except RemoteError as e:
            raise DeletionFailed(database_id, e.status_code, e.message) from e

        if status_code != HTTPStatus.NO_CONTENT:
            logger.error(
                "database_delete_unconfirmed", database_id=database_id, status_code=status_code
            )
            raise DeletionFailed(database_id, status_code)

        logger.info("database_deleted", database_id=database_id)

    async def create(self, owner_id: str) -> Database:
        """Request a new database with the fixed run configuration."""
        payload = {
            "name": self.name,
            "ownerId": owner_id,
            "region": self.region,
            "plan": self.plan,
            "version": self.version,
            "enableHighAvailability": False,
        }
        logger.info(
            "database_create_started",
            name=self.name,
            region=self.region,
            plan=self.plan,
            version=self.version,
        )
        database = await self.client.create_postgres(payload)
        logger.info("database_created", database_id=database.id, status=database.status)
        return database

    async def await_available(
        self, database_id: str, cancel_event: asyncio.Event | None = None
    ) -> str:
        """Poll until the status leaves `creating` and return it.

        Raises:
            PollTimeoutError: If the attempt ceiling is reached.
            RebuildCancelled: If `cancel_event` is set.
        """
        logger.info(
            "database_waiting",
            database_id=database_id,
            interval=self.poll_policy.interval,
            max_attempts=self.poll_policy.max_attempts,
        )
        database = await poll_until(
            lambda: self.client.get_postgres(database_id),
            lambda db: not db.is_creating,
            self.poll_policy,
            operation="await_available",
            cancel_event=cancel_event,
        )
        status = database.status or "unknown"
        logger.info("database_status_settled", database_id=database_id, status=status)
        return status

    async def get_connection_info(self, database_id: str) -> ConnectionInfo:
        """Fetch connection strings for an existing database."""
        return await self.client.get_connection_info(database_id)
