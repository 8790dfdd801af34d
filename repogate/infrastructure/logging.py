import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

from repogate.core.config import Settings, get_settings
from repogate.infrastructure.logging_processors import (
    add_authorization_context,
    add_caller_info,
    add_service_context,
    format_exception_info,
    sanitize_sensitive_data,
    set_log_severity,
)


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog and stdlib logging through one stdout handler"""
    settings = settings or get_settings()
    timestamper = structlog.processors.TimeStamper(fmt="iso")

    shared_processors: list[Processor] = [
        # Correlation id, doer and repository bound by the caller
        structlog.contextvars.merge_contextvars,

        add_service_context,
        add_authorization_context,

        structlog.processors.add_log_level,
        set_log_severity,

        add_caller_info if settings.is_development else lambda *args: args[-1],

        format_exception_info,

        timestamper,

        # Must run last before rendering
        sanitize_sensitive_data,
    ]

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.rich_traceback
        )

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level))

    for logger_name in ["sqlalchemy.engine", "aiosqlite"]:
        logger = logging.getLogger(logger_name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO if settings.database_echo else logging.WARNING)
        logger.propagate = False


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)
