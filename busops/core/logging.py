"""Structured logging (structlog over the standard library)."""

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from busops.core.config import Settings

NOISY_LOGGERS = (
    "apscheduler",
    "httpx",
    "httpcore",
    "aiosqlite",
    "sqlalchemy.engine",
    "uvicorn.access",
    "watchfiles",
)

SENSITIVE_KEYS = frozenset({
    "password", "current_password", "new_password", "password_hash",
    "token", "authorization", "jwt_secret_key", "notion_api_key",
})

REDACTED = "***"


def redact_secrets(_logger, _method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Mask values of credential-like keys before rendering."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        path = Path(settings.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path))

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging with JSON or console rendering."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format="%(message)s",
                        handlers=_handlers(settings, level))
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    json_output = settings.log_format == "json"
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso" if json_output else "%H:%M:%S"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_upstream_call(logger: structlog.stdlib.BoundLogger, operation: str,
                      resource_id: Optional[str], success: bool, **kwargs) -> None:
    """One line per workspace API call; failures at warning."""
    log = logger.info if success else logger.warning
    log("Upstream call", operation=operation, resource_id=resource_id, success=success, **kwargs)


def log_cache_operation(logger: structlog.stdlib.BoundLogger, operation: str,
                        key: str, hit: Optional[bool] = None, **kwargs) -> None:
    """Debug-level trace of cache reads, writes and invalidations."""
    if hit is not None:
        kwargs["cache_hit"] = hit
    logger.debug("Cache operation", operation=operation, cache_key=key, **kwargs)
