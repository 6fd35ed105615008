"""Rebuild orchestrator - the end-to-end workflow.

Steps, strictly in this order:
1. Validate settings (all missing fields reported together, no remote calls)
2. Read owner, dependent services and current database concurrently
3. Delete the current database, if any
4. Create the replacement and fetch its internal connection string
5. Wait for the replacement to become available
6. Per service, in discovery order: write the env var, then trigger a deploy
7. Wait for every triggered deploy concurrently
8. Return a RebuildReport
"""

import asyncio
from datetime import UTC, datetime

import structlog

from .clients.render import RenderClient
from .config import Settings
from .database import DatabaseLifecycleController
from .errors import (
    AbortReason,
    ConfigurationError,
    ConfigWriteFailed,
    DeletionFailed,
    DeployOutcomeError,
    DeployTriggerFailed,
    PollTimeoutError,
    ProvisioningFailed,
    RebuildAborted,
    RebuildCancelled,
    RemoteError,
)
from .logging_config import bind_run_id, clear_run_id
from .polling import PollPolicy
from .queries import ResourceQueries
from .schemas import (
    DatabaseStatus,
    DatabaseSummary,
    Deploy,
    RebuildReport,
    Service,
    ServiceOutcome,
    ServiceResult,
)
from .services import ServiceSyncController

logger = structlog.get_logger(__name__)


def _check_cancelled(cancel_event: asyncio.Event | None, step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        logger.warning("rebuild_cancelled", step=step)
        raise RebuildCancelled(f"Rebuild cancelled before {step}")


class RebuildOrchestrator:
    """Recreates the managed database and redeploys the services that use it.

    Args:
        settings: Workflow parameters for this run.
        client: Render API client. Built from `settings` when omitted, and
            then closed when the run ends.
        database_poll: Overrides the settings' provisioning poll policy.
        deploy_poll: Overrides the settings' deploy poll policy.
    """

    def __init__(
        self,
        settings: Settings,
        client: RenderClient | None = None,
        *,
        database_poll: PollPolicy | None = None,
        deploy_poll: PollPolicy | None = None,
    ) -> None:
        self.settings = settings
        self.client = client
        self.database_poll = database_poll
        self.deploy_poll = deploy_poll

    async def rebuild(self, cancel_event: asyncio.Event | None = None) -> RebuildReport:
        """Run the full rebuild.

        Raises:
            ConfigurationError: Required settings are missing; nothing was called.
            RemoteError: A discovery or create call failed.
            RebuildAborted: Deletion or provisioning failed; no service was touched.
            RebuildCancelled: `cancel_event` was set.
        """
        missing = self.settings.missing_fields()
        if missing:
            logger.error("configuration_incomplete", missing=missing)
            raise ConfigurationError(missing)

        bind_run_id()
        owns_client = self.client is None
        client = self.client or RenderClient(
            self.settings.api_key(), base_url=self.settings.render_api_url
        )
        logger.info("rebuild_started", database_name=self.settings.database_name)
        try:
            return await self._run(client, cancel_event)
        finally:
            if owns_client:
                await client.close()
            clear_run_id()

    async def _run(self, client: RenderClient, cancel_event: asyncio.Event | None) -> RebuildReport:
        settings = self.settings
        started_at = datetime.now(UTC)

        queries = ResourceQueries(
            client, service_type=settings.service_type, plan=settings.database_plan
        )
        databases = DatabaseLifecycleController(
            client,
            name=settings.database_name,
            region=settings.region,
            plan=settings.database_plan,
            version=settings.database_version,
            poll_policy=self.database_poll or settings.database_poll_policy(),
        )
        services_ctl = ServiceSyncController(
            client, poll_policy=self.deploy_poll or settings.deploy_poll_policy()
        )

        owner, services, current = await asyncio.gather(
            queries.get_owner(),
            queries.list_dependent_services(),
            queries.get_current_database(),
        )
        logger.info(
            "infrastructure_discovered",
            owner_id=owner.id,
            service_count=len(services),
            current_database_id=current.id if current else None,
        )

        if current is not None:
            _check_cancelled(cancel_event, "delete")
            try:
                await databases.delete(current.id)
            except DeletionFailed as e:
                logger.error(
                    "rebuild_aborted", reason=AbortReason.DELETION_FAILED.value, error=str(e)
                )
                raise RebuildAborted(AbortReason.DELETION_FAILED, str(e)) from e

        _check_cancelled(cancel_event, "create")
        database = await databases.create(owner.id)
        connection_info = await databases.get_connection_info(database.id)
        connection_string = connection_info.internal_connection_string
        if not connection_string:
            raise RemoteError("get_connection_info", None, "No internal connection string returned")

        try:
            status = await databases.await_available(database.id, cancel_event)
        except PollTimeoutError as e:
            logger.error(
                "rebuild_aborted", reason=AbortReason.PROVISIONING_FAILED.value, error=str(e)
            )
            raise RebuildAborted(AbortReason.PROVISIONING_FAILED, str(e)) from e
        if status != DatabaseStatus.AVAILABLE.value:
            failure = ProvisioningFailed(database.id, status)
            logger.error(
                "rebuild_aborted", reason=AbortReason.PROVISIONING_FAILED.value, error=str(failure)
            )
            raise RebuildAborted(AbortReason.PROVISIONING_FAILED, str(failure)) from failure
        database = database.model_copy(update={"status": status})

        results = await self._sync_services(services_ctl, services, connection_string, cancel_event)

        report = RebuildReport(
            outcome=RebuildReport.summarize(results),
            database=DatabaseSummary.from_database(database),
            services=results,
            started_at=started_at,
            finished_at=datetime.now(UTC),
        )
        logger.info(
            "rebuild_finished",
            outcome=report.outcome.value,
            database_id=database.id,
            deployed=sum(1 for r in results if r.outcome == ServiceOutcome.DEPLOYED),
            total=len(results),
        )
        return report

    async def _sync_services(
        self,
        services_ctl: ServiceSyncController,
        services: list[Service],
        connection_string: str,
        cancel_event: asyncio.Event | None,
    ) -> list[ServiceResult]:
        """Steps 6 and 7: sequential env write + trigger, then concurrent outcome polls."""
        key = self.settings.database_env_key
        results: list[ServiceResult | None] = []
        triggered: list[tuple[int, Service, Deploy]] = []

        for service in services:
            _check_cancelled(cancel_event, f"sync:{service.id}")
            try:
                await services_ctl.set_config_value(service.id, key, connection_string)
            except ConfigWriteFailed as e:
                logger.warning("service_skipped", service_id=service.id, error=str(e))
                results.append(
                    ServiceResult(
                        id=service.id,
                        name=service.name,
                        outcome=ServiceOutcome.SKIPPED,
                        error=f"{type(e).__name__}: {e.detail}",
                    )
                )
                continue

            try:
                deploy = await services_ctl.trigger_deploy(service.id)
            except DeployTriggerFailed as e:
                logger.warning("service_deploy_not_triggered", service_id=service.id, error=str(e))
                results.append(
                    ServiceResult(
                        id=service.id,
                        name=service.name,
                        outcome=ServiceOutcome.ERROR,
                        error=f"{type(e).__name__}: {e.detail}",
                    )
                )
                continue

            triggered.append((len(results), service, deploy))
            results.append(None)

        if triggered:
            logger.info("deploy_outcomes_waiting", count=len(triggered))
            tasks = [
                asyncio.create_task(
                    self._await_outcome(services_ctl, service, deploy, cancel_event)
                )
                for _, service, deploy in triggered
            ]
            try:
                outcomes = await asyncio.gather(*tasks)
            finally:
                # Siblings of a failed poll must not outlive the client.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
            for (index, _, _), result in zip(triggered, outcomes, strict=True):
                results[index] = result

        return [r for r in results if r is not None]

    @staticmethod
    async def _await_outcome(
        services_ctl: ServiceSyncController,
        service: Service,
        deploy: Deploy,
        cancel_event: asyncio.Event | None,
    ) -> ServiceResult:
        try:
            outcome = await services_ctl.await_deploy_outcome(
                service.id, deploy_id=deploy.id, cancel_event=cancel_event
            )
        except DeployOutcomeError as e:
            logger.warning("deploy_outcome_unknown", service_id=service.id, error=str(e))
            return ServiceResult(
                id=service.id,
                name=service.name,
                outcome=ServiceOutcome.ERROR,
                error=f"{type(e).__name__}: {e.detail}",
            )
        return ServiceResult(id=service.id, name=service.name, outcome=outcome)
