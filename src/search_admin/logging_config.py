"""Structured logging for the search admin client.

Every module logs through ``structlog.get_logger(__name__)``, which resolves to
a stdlib logger under the ``search_admin`` namespace. `configure_logging`
installs a single handler on that namespace only, so an embedding
application's root logger keeps its own handlers.

JSON lines in production, colored console output elsewhere.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from search_admin.config import Settings


PACKAGE_LOGGER = "search_admin"

# Chatty at INFO: one line per connection and per request
NOISY_LOGGERS = ("httpx", "httpcore")

REDACTED_KEYS = frozenset({"password", "authorization", "auth"})


def add_app_context(app_name: str, app_version: str) -> Processor:
    """Build a processor tagging every event with the application name and version."""

    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("app_version", app_version)
        return event_dict

    return processor


def redact_credentials(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask credential fields so they never reach a log sink."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "***"
    return event_dict


def configure_logging(settings: Settings, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure structlog and the package logger from settings.

    Uses LOG_LEVEL, ENVIRONMENT, APP_NAME and APP_VERSION. Safe to call more
    than once: the previous handler is replaced, never duplicated.

    Args:
        settings: Application settings
        stream: Output stream (default: sys.stdout)

    Returns:
        The configured ``search_admin`` stdlib logger
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    is_production = settings.ENVIRONMENT.lower() == "production"

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context(settings.APP_NAME, settings.APP_VERSION),
        redact_credentials,
    ]

    if is_production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=stream is None)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        # Loggers are re-resolved after every reconfiguration
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.get_logger(__name__).debug(
        "Logging configured",
        log_level=logging.getLevelName(level),
        environment=settings.ENVIRONMENT,
        renderer="json" if is_production else "console",
    )
    return package_logger
