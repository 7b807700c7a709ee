"""Structured logging for the knowledge search engines and stores.

All logging goes through ``structlog`` on top of the stdlib ``logging``
module. Process-wide context (service, environment) lives in contextvars;
per-engine context (collection, domain) is bound on the engine's logger so
that the capability, pattern and policy engines running in one process stay
distinguishable in the same stream.

Typical usage
- Call ``configure_logging(service_name, log_level, log_format)`` once at
  startup, normally through ``kbsearch.knowledge.configure_observability``
- Modules acquire loggers via ``structlog.get_logger("<area>.<module>")``
- Engines acquire theirs via ``engine_logger(collection, domain)``
"""

import logging
import sys
from typing import Any, List
import structlog
from structlog.stdlib import LoggerFactory, add_logger_name

from .errors import ConfigurationError

LOG_FORMATS = ("json", "console")


def _renderer(log_format: str) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    raise ConfigurationError(
        f"Unsupported log format: {log_format}",
        {"log_format": log_format, "supported": list(LOG_FORMATS)},
    )


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    log_format: str = "json",
    **context: Any
) -> None:
    """Configure structured logging for the process.

    Parameters
    - service_name: Bound as ``service`` on every log line
    - log_level: Any stdlib level name, case-insensitive
    - log_format: ``json`` or ``console``
    - context: Extra process-wide fields, e.g. ``env="prod"``

    Raises ``ConfigurationError`` for an unknown level or format, before any
    global logging state is touched.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unsupported log level: {log_level}", {"log_level": log_level})

    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
        structlog.processors.format_exc_info,
        _renderer(log_format),
    ]

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name, **context)


def engine_logger(collection: str, domain: str) -> structlog.BoundLogger:
    """Logger for one engine, bound with its collection and record domain."""
    return structlog.get_logger("search.engine").bind(collection=collection, domain=domain)
