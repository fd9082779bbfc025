"""
Structured logging setup for the ladder tracker service.
Provides JSON-formatted logs with consistent fields for the worker and cron routes.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_service_context,
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
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _add_service_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every entry with the service name."""
    event_dict.setdefault("service", "ladder-tracker")
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_job_outcome(
    job_id: str,
    action: str,
    status: str,
    duration_ms: float,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log the terminal outcome of a queue job with consistent fields."""
    logger = get_logger("lp_queue")

    log_data = {
        "job_id": job_id,
        "action": action,
        "status": status,
        "duration_ms": round(duration_ms, 2),
        **extra,
    }

    if error:
        log_data["error"] = error

    if status == "failed":
        logger.warning("LP queue job failed", **log_data)
    elif status == "pending":
        logger.info("LP queue job requeued", **log_data)
    else:
        logger.info("LP queue job completed", **log_data)
