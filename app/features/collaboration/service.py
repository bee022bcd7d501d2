"""
Collaboration lifecycle service.

A status change is one logical unit: validate against the current row,
persist the new status with an appended history entry, then apply the ledger
outcome. Writers on one collaboration are serialized by a keyed lock and by
the store's version check; a version conflict re-reads and re-validates.

The committed transition is the source of truth. Ledger and notification
failures after the commit come back as SoftFailure values and never undo it.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from app.config import settings
from app.features.collaboration.state_machine import (
    STAGE_LABELS,
    STAGE_ORDER,
    InvalidTransitionError,
    build_history_entry,
    get_valid_next_statuses,
    is_editable,
    validate_transition,
)
from app.features.reliability.ledger import apply_collaboration_outcome, record_positive_feedback
from app.infrastructure.observability.logging import get_logger, log_transition
from app.models.domain.collaboration_domain import (
    Collaboration,
    CollaborationFeedback,
    CollaborationStatus,
    PartyRole,
)
from app.models.domain.reliability_domain import LedgerUpdate, ReliabilityEvent
from app.services.notification_service import NotificationService
from app.services.store import ConcurrentUpdateError, MatchStore, StoreError
from app.utils.locks import KeyedLocks, collaboration_locks
from app.utils.results import SoftFailure

logger = get_logger(__name__)

OUTCOME_EVENTS: dict[CollaborationStatus, ReliabilityEvent] = {
    CollaborationStatus.COMPLETED: ReliabilityEvent.COLLABORATION_COMPLETED,
    CollaborationStatus.CANCELLED: ReliabilityEvent.COLLABORATION_CANCELLED,
}

EDITABLE_FIELDS = frozenset({"deliverables", "milestones", "start_date", "end_date"})


class CollaborationServiceError(Exception):
    """Custom exception for collaboration service operations."""

    def __init__(
        self, message: str, collaboration_id: str | None = None, recoverable: bool = True
    ):
        super().__init__(message)
        self.collaboration_id = collaboration_id
        self.recoverable = recoverable


class TransitionResult(BaseModel):
    """Outcome of a status change request."""

    ok: bool
    collaboration: Collaboration | None = None
    error: str | None = None
    allowed_transitions: list[CollaborationStatus] = Field(default_factory=list)
    reliability_updates: list[LedgerUpdate] = Field(default_factory=list)
    soft_failures: list[SoftFailure] = Field(default_factory=list)


class FeedbackResult(BaseModel):
    collaboration: Collaboration
    reliability_update: LedgerUpdate | None = None
    soft_failures: list[SoftFailure] = Field(default_factory=list)


class CollaborationOverview(BaseModel):
    """A collaboration plus what the current stage allows next."""

    collaboration: Collaboration
    stage_label: str
    valid_next_statuses: list[CollaborationStatus]
    editable: bool
    stage_order: list[CollaborationStatus]
    stage_labels: dict[CollaborationStatus, str]


async def initialize_collaboration(
    store: MatchStore,
    *,
    match_id: str,
    seller_id: str,
    creator_id: str,
    creator_user_id: str | None = None,
    actor_id: str | None = None,
    collaboration_id: str | None = None,
    locks: KeyedLocks = collaboration_locks,
    now: datetime | None = None,
) -> Collaboration:
    """
    Open a collaboration for an accepted match, at REQUESTED.

    Idempotent per match: an existing collaboration for the match is returned
    unchanged. Without creator_user_id the owner is read from the creator
    profile so reliability deltas land on the record ranking reads.

    Raises:
        CollaborationServiceError: If the store fails or the creator is unknown
    """
    try:
        async with locks.hold(f"match:{match_id}"):
            existing = await store.get_collaboration_by_match(match_id)
            if existing is not None:
                logger.info(
                    "Collaboration already exists for match",
                    match_id=match_id,
                    collaboration_id=existing.id,
                )
                return existing

            if creator_user_id is None:
                creator = await store.get_creator(creator_id)
                if creator is None:
                    raise CollaborationServiceError(
                        f"Creator {creator_id} not found", recoverable=False
                    )
                creator_user_id = creator.user_id

            at = now or datetime.now(UTC)
            collaboration = Collaboration(
                id=collaboration_id or str(uuid.uuid4()),
                match_id=match_id,
                seller_id=seller_id,
                creator_id=creator_id,
                creator_user_id=creator_user_id,
                status=CollaborationStatus.REQUESTED,
                status_history=(
                    build_history_entry(None, CollaborationStatus.REQUESTED, actor_id, at),
                ),
                status_updated_at=at,
            )
            created = await store.create_collaboration(collaboration)

    except StoreError as e:
        logger.error("Store error initializing collaboration", match_id=match_id, error=str(e))
        raise CollaborationServiceError(
            f"Could not create collaboration for match {match_id}: {e}"
        ) from e

    log_transition(created.id, None, CollaborationStatus.REQUESTED.value, actor_id, accepted=True)
    return created


async def transition_collaboration(
    store: MatchStore,
    collaboration_id: str,
    new_status: CollaborationStatus | str,
    actor_id: str | None,
    *,
    notifier: NotificationService | None = None,
    locks: KeyedLocks = collaboration_locks,
    now: datetime | None = None,
    max_retries: int | None = None,
) -> TransitionResult:
    """
    Move a collaboration to a new status.

    Args:
        store: Collaboration and reliability store
        collaboration_id: Collaboration to move
        new_status: Requested status
        actor_id: User requesting the change, recorded in history
        notifier: Milestone notification sink for ledger updates
        locks: Per-collaboration lock registry
        now: Transition timestamp, defaults to the current UTC time
        max_retries: Attempts on version conflicts, defaults to TRANSITION_MAX_RETRIES

    Returns:
        TransitionResult; ok=False with the allowed set when the lifecycle
        rejects the move or the collaboration does not exist

    Raises:
        CollaborationServiceError: Store failure, or still conflicting after
            max_retries attempts
    """
    if max_retries is None:
        max_retries = settings.TRANSITION_MAX_RETRIES
    # The first read always happens; 0 means no retry on conflict
    attempts = max(1, max_retries)

    async with locks.hold(collaboration_id):
        for attempt in range(1, attempts + 1):
            try:
                collaboration = await store.get_collaboration(collaboration_id)
            except StoreError as e:
                logger.error(
                    "Store error reading collaboration",
                    collaboration_id=collaboration_id,
                    error=str(e),
                )
                raise CollaborationServiceError(
                    f"Could not read collaboration: {e}", collaboration_id=collaboration_id
                ) from e

            if collaboration is None:
                logger.warning("Transition on unknown collaboration", collaboration_id=collaboration_id)
                return TransitionResult(ok=False, error="Collaboration not found")

            try:
                target = validate_transition(collaboration.status, new_status)
            except InvalidTransitionError as e:
                log_transition(
                    collaboration_id,
                    collaboration.status.value,
                    str(getattr(new_status, "value", new_status)),
                    actor_id,
                    accepted=False,
                    error=str(e),
                )
                return TransitionResult(
                    ok=False,
                    collaboration=collaboration,
                    error=str(e),
                    allowed_transitions=e.allowed,
                )

            at = now or datetime.now(UTC)
            patch: dict[str, Any] = {
                "status": target,
                "status_history": collaboration.status_history
                + (build_history_entry(collaboration.status, target, actor_id, at),),
                "status_updated_at": at,
            }
            if target == CollaborationStatus.COMPLETED:
                patch["completed_at"] = at

            try:
                updated = await store.update_collaboration(
                    collaboration_id, patch, expected_version=collaboration.version
                )
            except ConcurrentUpdateError:
                logger.warning(
                    "Collaboration changed during transition - re-validating",
                    collaboration_id=collaboration_id,
                    attempt=attempt,
                    attempts=attempts,
                )
                continue
            except StoreError as e:
                logger.error(
                    "Store error persisting transition",
                    collaboration_id=collaboration_id,
                    error=str(e),
                )
                raise CollaborationServiceError(
                    f"Could not persist transition: {e}", collaboration_id=collaboration_id
                ) from e

            log_transition(
                collaboration_id,
                collaboration.status.value,
                target.value,
                actor_id,
                accepted=True,
            )
            break
        else:
            raise CollaborationServiceError(
                f"Collaboration kept changing after {attempts} attempts",
                collaboration_id=collaboration_id,
                recoverable=True,
            )

        result = TransitionResult(ok=True, collaboration=updated)

        event = OUTCOME_EVENTS.get(target)
        if event is not None:
            for outcome in await apply_collaboration_outcome(
                store, updated, event, notifier=notifier
            ):
                if isinstance(outcome, SoftFailure):
                    result.soft_failures.append(outcome)
                else:
                    result.reliability_updates.append(outcome)

    return result


async def update_collaboration_details(
    store: MatchStore,
    collaboration_id: str,
    changes: dict[str, Any],
    *,
    locks: KeyedLocks = collaboration_locks,
) -> Collaboration:
    """
    Change deliverables, milestones or dates.

    Only allowed while the collaboration is ACCEPTED, IN_DISCUSSION, AGREED
    or IN_PROGRESS.

    Raises:
        CollaborationServiceError: Unknown fields, not found, outside the
            editable window, or store failure
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise CollaborationServiceError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}",
            collaboration_id=collaboration_id,
        )

    patch: dict[str, Any] = dict(changes)
    for key in ("deliverables", "milestones"):
        if key in patch and patch[key] is not None:
            patch[key] = tuple(patch[key])

    async with locks.hold(collaboration_id):
        try:
            collaboration = await store.get_collaboration(collaboration_id)
            if collaboration is None:
                raise CollaborationServiceError(
                    "Collaboration not found", collaboration_id=collaboration_id, recoverable=False
                )

            if not is_editable(collaboration.status):
                raise CollaborationServiceError(
                    f"Collaboration details cannot be edited while {collaboration.status.value}",
                    collaboration_id=collaboration_id,
                )

            if not patch:
                return collaboration

            updated = await store.update_collaboration(
                collaboration_id, patch, expected_version=collaboration.version
            )

        except CollaborationServiceError:
            raise
        except StoreError as e:
            logger.error(
                "Store error updating collaboration details",
                collaboration_id=collaboration_id,
                error=str(e),
            )
            raise CollaborationServiceError(
                f"Could not update collaboration: {e}", collaboration_id=collaboration_id
            ) from e

    logger.info(
        "Collaboration details updated",
        collaboration_id=collaboration_id,
        fields=sorted(patch),
    )
    return updated


async def submit_feedback(
    store: MatchStore,
    collaboration_id: str,
    role: PartyRole,
    feedback: CollaborationFeedback,
    *,
    locks: KeyedLocks = collaboration_locks,
) -> FeedbackResult:
    """
    Record one party's feedback on a completed collaboration.

    A rating of 4 or more credits the reviewed party (the other side) with
    POSITIVE_FEEDBACK. Each party may leave feedback once.

    Args:
        role: The party leaving the feedback

    Raises:
        CollaborationServiceError: Not found, not completed, already
            submitted, or store failure
    """
    role = PartyRole(role)
    field_name = "creator_feedback" if role == PartyRole.CREATOR else "seller_feedback"

    async with locks.hold(collaboration_id):
        try:
            collaboration = await store.get_collaboration(collaboration_id)
            if collaboration is None:
                raise CollaborationServiceError(
                    "Collaboration not found", collaboration_id=collaboration_id, recoverable=False
                )

            if collaboration.status != CollaborationStatus.COMPLETED:
                raise CollaborationServiceError(
                    "Feedback can only be left on completed collaborations",
                    collaboration_id=collaboration_id,
                )

            if getattr(collaboration, field_name) is not None:
                raise CollaborationServiceError(
                    f"{role.value.title()} feedback was already submitted",
                    collaboration_id=collaboration_id,
                    recoverable=False,
                )

            updated = await store.update_collaboration(
                collaboration_id, {field_name: feedback}, expected_version=collaboration.version
            )

        except CollaborationServiceError:
            raise
        except StoreError as e:
            logger.error(
                "Store error saving feedback", collaboration_id=collaboration_id, error=str(e)
            )
            raise CollaborationServiceError(
                f"Could not save feedback: {e}", collaboration_id=collaboration_id
            ) from e

    logger.info(
        "Collaboration feedback submitted",
        collaboration_id=collaboration_id,
        role=role.value,
        rating=feedback.rating,
    )

    if role == PartyRole.CREATOR:
        reviewed_id, reviewed_role = updated.seller_id, PartyRole.SELLER
    else:
        reviewed_id, reviewed_role = updated.creator_user_id, PartyRole.CREATOR

    outcome = await record_positive_feedback(
        store, reviewed_id, reviewed_role, feedback.rating, context_id=collaboration_id
    )

    result = FeedbackResult(collaboration=updated)
    if isinstance(outcome, SoftFailure):
        result.soft_failures.append(outcome)
    elif outcome is not None:
        result.reliability_update = outcome
    return result


def describe_collaboration(collaboration: Collaboration) -> CollaborationOverview:
    return CollaborationOverview(
        collaboration=collaboration,
        stage_label=STAGE_LABELS[collaboration.status],
        valid_next_statuses=get_valid_next_statuses(collaboration.status),
        editable=is_editable(collaboration.status),
        stage_order=list(STAGE_ORDER),
        stage_labels=dict(STAGE_LABELS),
    )
