"""Read-only discovery of the owner, dependent services and current database."""

from pydantic import ValidationError
import structlog

from .clients.render import RenderClient
from .errors import RemoteError
from .schemas import Database, Owner, Service

logger = structlog.get_logger(__name__)


class ResourceQueries:
    """Snapshot reads taken once at the start of a rebuild."""

    def __init__(self, client: RenderClient, service_type: str = "web_service", plan: str = "free"):
        self.client = client
        self.service_type = service_type
        self.plan = plan

    async def get_owner(self) -> Owner:
        """Resolve the account that owns every resource.

        Raises:
            RemoteError: On a failed call or an empty owner list.
        """
        owners = [o for o in await self.client.list_owners(limit=1) if o]
        if not owners:
            raise RemoteError("get_owner", None, "No owner returned for this API key")
        try:
            return Owner.model_validate(owners[0])
        except ValidationError as e:
            raise RemoteError("get_owner", None, "Owner record has no id") from e

    async def list_dependent_services(self) -> list[Service]:
        """Services of the redeployable type, in discovery order.

        Null or malformed entries are skipped rather than failing the query.
        """
        services = []
        for raw in await self.client.list_services():
            if not raw or raw.get("type") != self.service_type:
                continue
            try:
                services.append(Service.model_validate(raw))
            except ValidationError:
                logger.debug("service_record_skipped", service_id=raw.get("id"))
        logger.info("dependent_services_listed", count=len(services))
        return services

    async def get_current_database(self) -> Database | None:
        """The first database on the configured plan, or None.

        When several match only the first is managed; the rest are ignored.
        """
        for raw in await self.client.list_postgres():
            if not raw or raw.get("plan") != self.plan:
                continue
            try:
                database = Database.model_validate(raw)
            except ValidationError:
                logger.debug("database_record_skipped", database_id=raw.get("id"))
                continue
            logger.info(
                "current_database_found",
                database_id=database.id,
                name=database.name,
                status=database.status,
            )
            return database
        logger.info("current_database_absent", plan=self.plan)
        return None
