"""
Reliability ledger - clamped per-user trust score.

Scores move only through the fixed event deltas below and always stay inside
[0.5, 5.0]. The score is read back by the matcher on the next ranking pass.

Each (user, role) record is updated with one atomic store read-modify-write
(a row lock in Postgres), so concurrent events for one user never lose an
update, even across processes. A per-record lock also queues writers inside
one process. Failures here are soft: they are logged and returned, never
raised into the lifecycle operation that triggered them.
"""

from app.infrastructure.observability.logging import get_logger, log_reliability_change
from app.models.domain.collaboration_domain import Collaboration, PartyRole
from app.models.domain.creator_domain import RELIABILITY_MAX, RELIABILITY_MIN
from app.models.domain.reliability_domain import LedgerUpdate, ReliabilityEvent, ReliabilityLevel
from app.services.notification_service import (
    RELIABILITY_MILESTONE,
    NotificationService,
    notify_safely,
)
from app.services.store import MatchStore
from app.utils.locks import KeyedLocks, reliability_locks
from app.utils.results import SoftFailure, soft_failure

logger = get_logger(__name__)

DEFAULT_RELIABILITY = 1.0
SCORE_PRECISION = 4
POSITIVE_FEEDBACK_MIN_RATING = 4

SCORE_CHANGES: dict[ReliabilityEvent, float] = {
    ReliabilityEvent.COLLABORATION_COMPLETED: 0.05,
    ReliabilityEvent.POSITIVE_FEEDBACK: 0.02,
    ReliabilityEvent.COLLABORATION_CANCELLED: -0.10,
    ReliabilityEvent.DECLINED_INVITE: -0.03,
    ReliabilityEvent.REJECTED_APPLICATION: -0.01,
}

# Highest bucket first
LEVEL_THRESHOLDS: tuple[tuple[float, ReliabilityLevel], ...] = (
    (4.0, ReliabilityLevel.ELITE),
    (3.0, ReliabilityLevel.RELIABLE),
    (2.0, ReliabilityLevel.RISING_STAR),
    (1.2, ReliabilityLevel.STANDARD),
)

LEVEL_RANK: dict[ReliabilityLevel, int] = {
    ReliabilityLevel.BUILDING_TRUST: 0,
    ReliabilityLevel.STANDARD: 1,
    ReliabilityLevel.RISING_STAR: 2,
    ReliabilityLevel.RELIABLE: 3,
    ReliabilityLevel.ELITE: 4,
}

MILESTONE_EVENTS = frozenset({ReliabilityEvent.COLLABORATION_COMPLETED})


def clamp_score(score: float) -> float:
    return round(max(RELIABILITY_MIN, min(RELIABILITY_MAX, score)), SCORE_PRECISION)


def get_reliability_level(score: float) -> ReliabilityLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return ReliabilityLevel.BUILDING_TRUST


async def apply_reliability_event(
    store: MatchStore,
    user_id: str,
    role: PartyRole,
    event: ReliabilityEvent,
    *,
    context_id: str | None = None,
    notifier: NotificationService | None = None,
    locks: KeyedLocks = reliability_locks,
) -> LedgerUpdate | SoftFailure:
    """
    Apply one event delta to a user's reliability score.

    A creator moving up a level on a completed collaboration gets exactly one
    milestone notification. Downward and same-level moves notify nobody.

    Args:
        store: Store holding reliability records
        user_id: Owner of the record
        role: Which record (creator or seller side)
        event: Ledger event, selects the delta
        context_id: Collaboration or match id, for logs and the notification
        notifier: Milestone notification sink (optional)
        locks: Per-record lock registry

    Returns:
        LedgerUpdate on success, SoftFailure if the store could not be updated
    """
    event = ReliabilityEvent(event)
    role = PartyRole(role)
    delta = SCORE_CHANGES[event]

    try:
        async with locks.hold((user_id, role)):
            previous_score, new_score = await store.adjust_reliability(
                user_id,
                role,
                lambda score: clamp_score(score + delta),
                default=DEFAULT_RELIABILITY,
            )
    except Exception as e:
        return soft_failure(
            "apply_reliability_event",
            e,
            user_id=user_id,
            role=role.value,
            reliability_event=event.value,
            context_id=context_id,
        )

    log_reliability_change(
        user_id=user_id,
        role=role.value,
        event=event.value,
        previous_score=previous_score,
        new_score=new_score,
        context_id=context_id,
    )

    previous_level = get_reliability_level(previous_score)
    new_level = get_reliability_level(new_score)

    milestone_notified = False
    if (
        event in MILESTONE_EVENTS
        and role == PartyRole.CREATOR
        and LEVEL_RANK[new_level] > LEVEL_RANK[previous_level]
    ):
        logger.info(
            "Reliability milestone reached",
            user_id=user_id,
            previous_level=previous_level.value,
            new_level=new_level.value,
        )
        failure = await notify_safely(
            notifier,
            user_id,
            RELIABILITY_MILESTONE,
            {
                "previous_level": previous_level.value,
                "new_level": new_level.value,
                "score": new_score,
                "context_id": context_id,
            },
        )
        milestone_notified = notifier is not None and failure is None

    return LedgerUpdate(
        user_id=user_id,
        role=role,
        event=event,
        previous_score=previous_score,
        new_score=new_score,
        previous_level=previous_level,
        new_level=new_level,
        milestone_notified=milestone_notified,
    )


async def apply_collaboration_outcome(
    store: MatchStore,
    collaboration: Collaboration,
    event: ReliabilityEvent,
    *,
    notifier: NotificationService | None = None,
    locks: KeyedLocks = reliability_locks,
) -> list[LedgerUpdate | SoftFailure]:
    """
    Apply a completion or cancellation to both parties.

    Cancellation costs both sides the same amount, whoever cancelled.
    """
    parties = (
        (collaboration.creator_user_id, PartyRole.CREATOR),
        (collaboration.seller_id, PartyRole.SELLER),
    )
    return [
        await apply_reliability_event(
            store,
            user_id,
            role,
            event,
            context_id=collaboration.id,
            notifier=notifier,
            locks=locks,
        )
        for user_id, role in parties
    ]


async def record_positive_feedback(
    store: MatchStore,
    user_id: str,
    role: PartyRole,
    rating: int,
    *,
    context_id: str | None = None,
    locks: KeyedLocks = reliability_locks,
) -> LedgerUpdate | SoftFailure | None:
    """Credit the reviewed party for a rating of 4 or more; lower ratings change nothing."""
    if rating < POSITIVE_FEEDBACK_MIN_RATING:
        return None
    return await apply_reliability_event(
        store, user_id, role, ReliabilityEvent.POSITIVE_FEEDBACK, context_id=context_id, locks=locks
    )


async def record_invite_declined(
    store: MatchStore,
    creator_user_id: str,
    *,
    context_id: str | None = None,
    locks: KeyedLocks = reliability_locks,
) -> LedgerUpdate | SoftFailure:
    return await apply_reliability_event(
        store,
        creator_user_id,
        PartyRole.CREATOR,
        ReliabilityEvent.DECLINED_INVITE,
        context_id=context_id,
        locks=locks,
    )


async def record_application_rejected(
    store: MatchStore,
    creator_user_id: str,
    *,
    context_id: str | None = None,
    locks: KeyedLocks = reliability_locks,
) -> LedgerUpdate | SoftFailure:
    return await apply_reliability_event(
        store,
        creator_user_id,
        PartyRole.CREATOR,
        ReliabilityEvent.REJECTED_APPLICATION,
        context_id=context_id,
        locks=locks,
    )
