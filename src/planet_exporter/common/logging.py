"""Structured logging using structlog.

Events are rendered as JSON in production and through the console
renderer in development. Every event carries the service identity, and
events emitted inside a collection loop also carry the task name.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from planet_exporter.common.config import LoggingSettings, Settings, get_settings

# Libraries whose INFO output would drown the collection events
QUIET_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error", "httpx", "httpcore")


def service_context(service: str, version: str, environment: str) -> Processor:
    """Build a processor stamping the service identity on every event."""

    def add_service_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("version", version)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_service_context


def _renderers(settings: LoggingSettings) -> list[Processor]:
    if settings.format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Application settings. Uses global settings if not provided.
    """
    settings = settings or get_settings()
    log = settings.logging

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log.include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))
    if log.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.MODULE,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ))
    processors.append(service_context(settings.app_name, settings.app_version, settings.environment))

    structlog.configure(
        processors=processors + _renderers(log),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, log.level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger, optionally bound to initial context.

    Example:
        logger = get_logger(__name__, task="socketstat")
        logger.info("Socketstat collected", upstreams=12)
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger


@contextmanager
def task_context(task: str) -> Iterator[None]:
    """Tag every event logged inside the block with the collection task name.

    The binding lives in contextvars, so it follows the asyncio task that
    entered the block and is removed again on exit.
    """
    with structlog.contextvars.bound_contextvars(task=task):
        yield
