"""
Collaboration lifecycle rules.

Happy path: REQUESTED -> ACCEPTED -> IN_DISCUSSION -> AGREED -> IN_PROGRESS
-> COMPLETED. CANCELLED is reachable from every non-terminal state.
COMPLETED and CANCELLED have no outgoing transitions.
"""

from datetime import UTC, datetime

from app.models.domain.collaboration_domain import CollaborationStatus, StatusHistoryEntry

STAGE_ORDER: tuple[CollaborationStatus, ...] = (
    CollaborationStatus.REQUESTED,
    CollaborationStatus.ACCEPTED,
    CollaborationStatus.IN_DISCUSSION,
    CollaborationStatus.AGREED,
    CollaborationStatus.IN_PROGRESS,
    CollaborationStatus.COMPLETED,
)

VALID_TRANSITIONS: dict[CollaborationStatus, tuple[CollaborationStatus, ...]] = {
    CollaborationStatus.REQUESTED: (CollaborationStatus.ACCEPTED, CollaborationStatus.CANCELLED),
    CollaborationStatus.ACCEPTED: (
        CollaborationStatus.IN_DISCUSSION,
        CollaborationStatus.CANCELLED,
    ),
    CollaborationStatus.IN_DISCUSSION: (
        CollaborationStatus.AGREED,
        CollaborationStatus.CANCELLED,
    ),
    CollaborationStatus.AGREED: (CollaborationStatus.IN_PROGRESS, CollaborationStatus.CANCELLED),
    CollaborationStatus.IN_PROGRESS: (
        CollaborationStatus.COMPLETED,
        CollaborationStatus.CANCELLED,
    ),
    CollaborationStatus.COMPLETED: (),
    CollaborationStatus.CANCELLED: (),
}

TERMINAL_STATUSES = frozenset({CollaborationStatus.COMPLETED, CollaborationStatus.CANCELLED})

EDITABLE_STATUSES = frozenset(
    {
        CollaborationStatus.ACCEPTED,
        CollaborationStatus.IN_DISCUSSION,
        CollaborationStatus.AGREED,
        CollaborationStatus.IN_PROGRESS,
    }
)

STAGE_LABELS: dict[CollaborationStatus, str] = {
    CollaborationStatus.REQUESTED: "Requested",
    CollaborationStatus.ACCEPTED: "Accepted",
    CollaborationStatus.IN_DISCUSSION: "In Discussion",
    CollaborationStatus.AGREED: "Agreed",
    CollaborationStatus.IN_PROGRESS: "In Progress",
    CollaborationStatus.COMPLETED: "Completed",
    CollaborationStatus.CANCELLED: "Cancelled",
}


class InvalidTransitionError(Exception):
    """A requested status change the lifecycle does not allow. User-facing and recoverable."""

    def __init__(
        self,
        message: str,
        current: str | None,
        target: str | None,
        allowed: list[CollaborationStatus] | None = None,
    ):
        super().__init__(message)
        self.current = current
        self.target = target
        self.allowed = allowed or []
        self.recoverable = True


def _parse_status(value: CollaborationStatus | str | None) -> CollaborationStatus | None:
    if isinstance(value, CollaborationStatus):
        return value
    try:
        return CollaborationStatus(value)
    except ValueError:
        return None


def _describe(allowed: list[CollaborationStatus]) -> str:
    return ", ".join(status.value for status in allowed) or "none"


def get_valid_next_statuses(current: CollaborationStatus | str) -> list[CollaborationStatus]:
    status = _parse_status(current)
    if status is None:
        return []
    return list(VALID_TRANSITIONS[status])


def validate_transition(
    current: CollaborationStatus | str, target: CollaborationStatus | str
) -> CollaborationStatus:
    """
    Check a status change against the lifecycle.

    Returns:
        The target as a CollaborationStatus

    Raises:
        InvalidTransitionError: current or target unknown, current terminal,
            or target not reachable from current. Carries the allowed set.
    """
    current_status = _parse_status(current)
    if current_status is None:
        raise InvalidTransitionError(
            f"Unknown current status: {current}", current=str(current), target=str(target)
        )

    allowed = get_valid_next_statuses(current_status)
    target_status = _parse_status(target)
    if target_status is None:
        raise InvalidTransitionError(
            f"Unknown target status: {target}. Allowed transitions: {_describe(allowed)}",
            current=current_status.value,
            target=str(target),
            allowed=allowed,
        )

    if current_status in TERMINAL_STATUSES:
        raise InvalidTransitionError(
            f"Collaboration is {current_status.value} and cannot change status",
            current=current_status.value,
            target=target_status.value,
            allowed=[],
        )

    if target_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot move from {current_status.value} to {target_status.value}. "
            f"Allowed transitions: {_describe(allowed)}",
            current=current_status.value,
            target=target_status.value,
            allowed=allowed,
        )

    return target_status


def is_editable(status: CollaborationStatus | str) -> bool:
    """Deliverables and milestones may only change inside this window."""
    return _parse_status(status) in EDITABLE_STATUSES


def is_terminal(status: CollaborationStatus | str) -> bool:
    return _parse_status(status) in TERMINAL_STATUSES


def build_history_entry(
    from_status: CollaborationStatus | None,
    to_status: CollaborationStatus,
    actor_id: str | None,
    at: datetime | None = None,
) -> StatusHistoryEntry:
    return StatusHistoryEntry(
        from_status=from_status,
        to_status=to_status,
        at=at or datetime.now(UTC),
        actor_id=actor_id,
    )
