"""Service sync: write the connection string, trigger a deploy, observe its outcome."""

import asyncio

import structlog

from .clients.render import RenderClient
from .errors import (
    ConfigWriteFailed,
    DeployOutcomeError,
    DeployTriggerFailed,
    PollTimeoutError,
    RemoteError,
)
from .polling import PollPolicy, poll_until
from .schemas import Deploy, DeployEvent, ServiceOutcome

logger = structlog.get_logger(__name__)

DEPLOY_ENDED = "deploy_ended"
EVENTS_LIMIT = 10

# deploy_ended status codes
STATUS_SUCCEEDED = 2
STATUS_FAILED = 3


def outcome_for_status(status: int | str | None) -> ServiceOutcome:
    """Map a deploy_ended status code to a service outcome."""
    try:
        code = int(status)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ServiceOutcome.ERROR
    if code == STATUS_SUCCEEDED:
        return ServiceOutcome.DEPLOYED
    if code == STATUS_FAILED:
        return ServiceOutcome.NOT_DEPLOYED
    return ServiceOutcome.ERROR


def find_deploy_ended(
    events: list[DeployEvent], deploy_id: str | None = None
) -> DeployEvent | None:
    """Return the terminal event for a deploy, if the feed holds one.

    Without a deploy ID only the newest event is considered. With one, the
    newest deploy_ended event for that deploy wins and events for other
    deploys are ignored.
    """
    if not events:
        return None
    if deploy_id is None:
        newest = events[0]
        return newest if newest.type == DEPLOY_ENDED else None
    for event in events:
        if event.type != DEPLOY_ENDED:
            continue
        if event.details.deploy_id and event.details.deploy_id != deploy_id:
            continue
        return event
    return None


class ServiceSyncController:
    """Points dependent services at the new database and tracks their redeploys."""

    def __init__(self, client: RenderClient, poll_policy: PollPolicy | None = None) -> None:
        self.client = client
        self.poll_policy = poll_policy or PollPolicy()

    async def set_config_value(self, service_id: str, key: str, value: str) -> None:
        """Upsert one env var. The value is never logged.

        Raises:
            ConfigWriteFailed: If Render did not acknowledge the write.
        """
        try:
            await self.client.set_env_var(service_id, key, value)
        except RemoteError as e:
            raise ConfigWriteFailed(service_id, str(e)) from e
        logger.info("service_env_var_updated", service_id=service_id, key=key)

    async def trigger_deploy(self, service_id: str) -> Deploy:
        """Start a deploy with the build cache cleared.

        Raises:
            DeployTriggerFailed: If the deploy was not accepted.
        """
        try:
            deploy = await self.client.trigger_deploy(service_id, clear_cache=True)
        except RemoteError as e:
            raise DeployTriggerFailed(service_id, str(e)) from e
        logger.info("service_deploy_triggered", service_id=service_id, deploy_id=deploy.id)
        return deploy

    async def await_deploy_outcome(
        self,
        service_id: str,
        deploy_id: str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> ServiceOutcome:
        """Poll the service's event feed until its deploy ends.

        Returns:
            DEPLOYED for status 2, NOT_DEPLOYED for status 3, ERROR otherwise.

        Raises:
            DeployOutcomeError: If the feed could not be read or never ended.
            RebuildCancelled: If `cancel_event` is set.
        """

        async def fetch() -> DeployEvent | None:
            events = await self.client.list_events(service_id, limit=EVENTS_LIMIT)
            return find_deploy_ended(events, deploy_id)

        try:
            event = await poll_until(
                fetch,
                lambda e: e is not None,
                self.poll_policy,
                operation=f"await_deploy_outcome:{service_id}",
                cancel_event=cancel_event,
                wait_first=True,
            )
        except (RemoteError, PollTimeoutError) as e:
            raise DeployOutcomeError(service_id, str(e)) from e

        outcome = outcome_for_status(event.details.status)
        log = logger.info if outcome == ServiceOutcome.DEPLOYED else logger.warning
        log(
            "deploy_outcome_observed",
            service_id=service_id,
            deploy_id=deploy_id,
            status_code=event.details.status,
            outcome=outcome.value,
        )
        return outcome
