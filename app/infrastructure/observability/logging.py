"""
Structured logging setup for the engagement stats backend.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

_SECRET_FIELDS = ("init_data", "session", "token", "bot_token")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telethon").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _redact_secrets(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credential-bearing fields that slipped into a log call."""
    for key in _SECRET_FIELDS:
        if key in event_dict:
            event_dict[key] = "***"
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def log_health_check(service: str, healthy: bool, latency_ms: float, error: str = None):
    """Log health check results with consistent fields."""
    logger = get_logger("health")

    log_data = {
        "service": service,
        "healthy": healthy,
        "latency_ms": latency_ms,
    }

    if error:
        log_data["error"] = error

    if healthy:
        logger.info("Health check passed", **log_data)
    else:
        logger.error("Health check failed", **log_data)


def log_request(method: str, path: str, status_code: int, duration_ms: float, account_id: int = None):
    """Log HTTP requests with consistent fields."""
    logger = get_logger("http")

    log_data = {
        "method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": duration_ms,
    }

    if account_id:
        log_data["account_id"] = account_id

    if status_code >= 400:
        logger.warning("HTTP request failed", **log_data)
    else:
        logger.info("HTTP request completed", **log_data)
