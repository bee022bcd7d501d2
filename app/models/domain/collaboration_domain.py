from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CollaborationStatus(str, Enum):
    REQUESTED = "REQUESTED"
    ACCEPTED = "ACCEPTED"
    IN_DISCUSSION = "IN_DISCUSSION"
    AGREED = "AGREED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class PartyRole(str, Enum):
    CREATOR = "CREATOR"
    SELLER = "SELLER"


class StatusHistoryEntry(BaseModel):
    """One accepted transition. Never edited once written."""

    model_config = ConfigDict(frozen=True)

    from_status: CollaborationStatus | None
    to_status: CollaborationStatus
    at: datetime
    actor_id: str | None


class CollaborationFeedback(BaseModel):
    """Reflection left by one party after completion."""

    rating: int = Field(ge=1, le=5)
    comment: str | None = None
    would_work_again: bool | None = None


class Collaboration(BaseModel):
    """
    Working relationship created once a match is accepted.

    status_history is an append-only tuple: a transition produces a new
    Collaboration whose history is the old tuple plus one entry.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    match_id: str
    seller_id: str
    creator_id: str
    # Owner of the creator profile; keys the creator side of the reliability ledger
    creator_user_id: str

    status: CollaborationStatus = CollaborationStatus.REQUESTED
    status_history: tuple[StatusHistoryEntry, ...] = ()
    status_updated_at: datetime | None = None
    version: int = 0

    start_date: datetime | None = None
    end_date: datetime | None = None
    completed_at: datetime | None = None
    deliverables: tuple[dict[str, Any], ...] = ()
    milestones: tuple[dict[str, Any], ...] = ()

    seller_feedback: CollaborationFeedback | None = None
    creator_feedback: CollaborationFeedback | None = None
