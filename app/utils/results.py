"""
Soft failure results for non-critical side paths.

Ledger updates and notifications run after the primary operation has already
committed. When they fail the failure is logged and handed back as a value,
never raised, so the caller of the primary operation is unaffected.
"""

from dataclasses import dataclass, field
from typing import Any

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SoftFailure:
    operation: str
    error: str
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False


def soft_failure(operation: str, error: Exception | str, **context: Any) -> SoftFailure:
    """Log a swallowed failure and return it as a value."""
    message = str(error)
    logger.warning(
        "Soft failure on non-critical path",
        operation=operation,
        error=message,
        error_type=type(error).__name__ if isinstance(error, Exception) else None,
        **context,
    )
    return SoftFailure(operation=operation, error=message, context=dict(context))
