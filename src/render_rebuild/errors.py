"""Error taxonomy for the rebuild workflow.

Run-level errors (ConfigurationError, DeletionFailed, ProvisioningFailed,
RebuildAborted, RebuildCancelled) stop the workflow. ServiceSyncError
subclasses are scoped to one service and end up in the report instead.
"""

from enum import Enum


class RebuildError(Exception):
    """Base class for all rebuild errors."""


class ConfigurationError(RebuildError):
    """One or more required settings are absent."""

    def __init__(self, missing: list[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required settings: {', '.join(self.missing)}")


class RemoteError(RebuildError):
    """A single Render API call did not succeed."""

    def __init__(self, operation: str, status_code: int | None = None, message: str | None = None):
        self.operation = operation
        self.status_code = status_code
        self.message = message or "An unknown error occurred"
        text = f"Error in {operation}: {self.message}"
        if status_code is not None:
            text += f" (status code: {status_code})"
        super().__init__(text)


class DeletionFailed(RebuildError):
    """The existing database was not confirmed deleted."""

    def __init__(self, database_id: str, status_code: int | None = None, detail: str = ""):
        self.database_id = database_id
        self.status_code = status_code
        super().__init__(
            f"Database {database_id} was not deleted"
            + (f" (status code: {status_code})" if status_code is not None else "")
            + (f": {detail}" if detail else "")
        )


class ProvisioningFailed(RebuildError):
    """The replacement database ended in a status other than available."""

    def __init__(self, database_id: str, status: str):
        self.database_id = database_id
        self.status = status
        super().__init__(f"Database {database_id} finished provisioning as '{status}'")


class PollTimeoutError(RebuildError, TimeoutError):
    """A polling loop hit its attempt ceiling."""

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} did not reach a terminal state after {attempts} attempts")


class RebuildCancelled(RebuildError):
    """The operator cancelled an in-progress rebuild."""


class AbortReason(str, Enum):
    DELETION_FAILED = "DeletionFailed"
    PROVISIONING_FAILED = "ProvisioningFailed"


class RebuildAborted(RebuildError):
    """The workflow stopped before any dependent service was touched."""

    def __init__(self, reason: AbortReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"Rebuild aborted ({reason.value}){': ' + detail if detail else ''}")


class ServiceSyncError(RebuildError):
    """Failure scoped to a single dependent service."""

    def __init__(self, service_id: str, detail: str = ""):
        self.service_id = service_id
        self.detail = detail
        super().__init__(f"{type(self).__name__} for service {service_id}: {detail}")


class ConfigWriteFailed(ServiceSyncError):
    """The connection string could not be written to the service's env vars."""


class DeployTriggerFailed(ServiceSyncError):
    """The service's deploy could not be triggered."""


class DeployOutcomeError(ServiceSyncError):
    """The service's deploy outcome could not be observed."""
