"""Structured logging configuration.

Outputs either JSON (for log shipping) or console format (for an operator at
a terminal).

Usage:
    from render_rebuild.logging_config import setup_logging
    import structlog

    setup_logging(service_name="render-rebuild")
    logger = structlog.get_logger()
    logger.info("event_name", key1=value1, key2=value2)
"""

import logging
import os
import sys
from typing import Literal
import uuid

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

SECRET_KEYS = frozenset(
    {
        "api_key",
        "authorization",
        "connection_string",
        "external_connection_string",
        "internal_connection_string",
        "password",
        "psql_command",
        "value",
    }
)


def redact_secrets(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential-bearing fields so they never reach a log sink."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def setup_logging(
    service_name: str | None = None,
    log_format: Literal["json", "console"] | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging with structlog.

    Args:
        service_name: Bound to every event. Falls back to SERVICE_NAME env var.
        log_format: "json" or "console". Falls back to LOG_FORMAT env var or "console".
        log_level: DEBUG, INFO, WARNING or ERROR. Falls back to LOG_LEVEL env var or "INFO".
    """
    service_name = service_name or os.getenv("SERVICE_NAME", "render-rebuild")
    log_format = log_format or os.getenv("LOG_FORMAT", "console")
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=service_name)

    logger = structlog.get_logger()
    logger.debug(
        "logging_initialized",
        service=service_name,
        log_format=log_format,
        log_level=log_level,
    )


def bind_run_id(run_id: str | None = None) -> str:
    """Bind a rebuild run ID to every event logged in the current context."""
    run_id = run_id or uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(run_id=run_id)
    return run_id


def get_run_id() -> str | None:
    """Get the run ID bound to the current context."""
    return structlog.contextvars.get_contextvars().get("run_id")


def clear_run_id() -> None:
    """Drop the run ID from the current context."""
    structlog.contextvars.unbind_contextvars("run_id")
