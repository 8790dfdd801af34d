"""Custom structlog processors for authorization logging"""

import inspect
import socket
import sys
import traceback
from typing import Any, Dict

from structlog.contextvars import get_contextvars
from structlog.types import EventDict, WrappedLogger

AUTHORIZATION_CONTEXT_KEYS = (
    "correlation_id",
    "doer_id",
    "doer_name",
    "repo_id",
    "repository",
    "branch",
)

SENSITIVE_KEYS = {
    "password", "token", "secret", "api_key", "authorization",
    "private_key", "access_token", "refresh_token", "bearer", "signature"
}


def add_service_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level context to logs"""
    from repogate.core.config import settings

    event_dict["service"] = "repogate"
    event_dict["environment"] = settings.environment

    try:
        event_dict["hostname"] = socket.gethostname()
    except OSError:
        pass

    return event_dict


def add_authorization_context(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Copy doer/repository/branch context bound via contextvars"""
    context = get_contextvars()

    for key in AUTHORIZATION_CONTEXT_KEYS:
        if key in context and key not in event_dict:
            event_dict[key] = context[key]

    return event_dict


def sanitize_sensitive_data(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Remove or mask sensitive data from logs"""

    def sanitize_dict(d: Dict[str, Any]) -> Dict[str, Any]:
        sanitized = {}
        for key, value in d.items():
            lower_key = key.lower()

            if any(sensitive in lower_key for sensitive in SENSITIVE_KEYS):
                sanitized[key] = "***REDACTED***"
            elif isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            elif isinstance(value, list):
                sanitized[key] = [
                    sanitize_dict(item) if isinstance(item, dict) else item
                    for item in value
                ]
            else:
                sanitized[key] = value

        return sanitized

    return sanitize_dict(event_dict)


def add_caller_info(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add caller location information for debugging"""
    from repogate.core.config import settings
    if not settings.is_development:
        return event_dict

    frame = None
    for record in inspect.stack()[1:]:
        module = inspect.getmodule(record.frame)
        if module and not module.__name__.startswith(("structlog", "logging")):
            frame = record
            break

    if frame:
        event_dict["caller"] = {
            "filename": frame.filename.split("/")[-1],
            "function": frame.function,
            "lineno": frame.lineno
        }

    return event_dict


def format_exception_info(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Format exception information for better readability"""
    exc_info = event_dict.pop("exc_info", None)
    if exc_info:
        if isinstance(exc_info, tuple):
            exc_type, exc_value, exc_tb = exc_info
        else:
            exc_type, exc_value, exc_tb = sys.exc_info()

        if exc_type:
            event_dict["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb)
            }

    return event_dict


def set_log_severity(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Set severity field for log aggregation systems"""
    level_map = {
        "debug": "DEBUG",
        "info": "INFO",
        "warning": "WARNING",
        "error": "ERROR",
        "critical": "CRITICAL"
    }

    if "level" in event_dict:
        event_dict["severity"] = level_map.get(event_dict["level"], "INFO")

    return event_dict
