"""
Structured logging setup for the creator matching service.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys

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
            structlog.contextvars.merge_contextvars,
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
    logging.getLogger("psycopg").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Convenience functions for common log patterns
def log_transition(
    collaboration_id: str,
    from_status: str | None,
    to_status: str,
    actor_id: str | None,
    accepted: bool,
    error: str = None,
):
    """Log collaboration status transitions with consistent fields."""
    logger = get_logger("collaboration")

    log_data = {
        "collaboration_id": collaboration_id,
        "from_status": from_status,
        "to_status": to_status,
        "actor_id": actor_id,
        "event_type": "collaboration_transition",
    }

    if error:
        log_data["error"] = error

    if accepted:
        logger.info("Collaboration transition applied", **log_data)
    else:
        logger.warning("Collaboration transition rejected", **log_data)


def log_reliability_change(
    user_id: str,
    role: str,
    event: str,
    previous_score: float,
    new_score: float,
    context_id: str | None = None,
):
    """Log reliability ledger movements with consistent fields."""
    logger = get_logger("reliability")

    logger.info(
        "Reliability score updated",
        user_id=user_id,
        role=role,
        reliability_event=event,
        previous_score=round(previous_score, 3),
        new_score=round(new_score, 3),
        context_id=context_id,
        event_type="reliability_change",
    )
