"""
Notification collaborator.

Delivery (push, email, sockets) lives outside this service. The core only
needs notify(); LoggingNotificationService is the default sink and records the
notification as a structured log event.
"""

import asyncio
from typing import Any, Protocol

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.utils.results import SoftFailure, soft_failure

logger = get_logger(__name__)

RELIABILITY_MILESTONE = "RELIABILITY_MILESTONE"


class NotificationService(Protocol):
    async def notify(self, user_id: str, kind: str, payload: dict[str, Any]) -> None: ...


class LoggingNotificationService:
    async def notify(self, user_id: str, kind: str, payload: dict[str, Any]) -> None:
        logger.info("Notification emitted", user_id=user_id, kind=kind, payload=payload)


async def notify_safely(
    notifier: NotificationService | None,
    user_id: str,
    kind: str,
    payload: dict[str, Any],
    *,
    timeout: float | None = None,
) -> SoftFailure | None:
    """
    Send a notification without letting its failure escape.

    Delivery is bounded by `timeout` (NOTIFY_TIMEOUT_SECONDS by default); a
    notifier that stalls is abandoned and reported like any other failure.

    Returns:
        None when sent (or no notifier configured), SoftFailure otherwise
    """
    if notifier is None:
        return None
    limit = settings.NOTIFY_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        await asyncio.wait_for(notifier.notify(user_id, kind, payload), timeout=limit)
        return None
    except TimeoutError:
        return soft_failure(
            "notify", f"notification timed out after {limit}s", user_id=user_id, kind=kind
        )
    except Exception as e:
        return soft_failure("notify", e, user_id=user_id, kind=kind)
