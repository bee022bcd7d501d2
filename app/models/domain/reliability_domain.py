from enum import Enum

from pydantic import BaseModel

from app.models.domain.collaboration_domain import PartyRole


class ReliabilityEvent(str, Enum):
    COLLABORATION_COMPLETED = "COLLABORATION_COMPLETED"
    POSITIVE_FEEDBACK = "POSITIVE_FEEDBACK"
    COLLABORATION_CANCELLED = "COLLABORATION_CANCELLED"
    DECLINED_INVITE = "DECLINED_INVITE"
    REJECTED_APPLICATION = "REJECTED_APPLICATION"


class ReliabilityLevel(str, Enum):
    ELITE = "Elite"
    RELIABLE = "Reliable"
    RISING_STAR = "Rising Star"
    STANDARD = "Standard"
    BUILDING_TRUST = "Building Trust"


class LedgerUpdate(BaseModel):
    """Result of one applied ledger event."""

    user_id: str
    role: PartyRole
    event: ReliabilityEvent
    previous_score: float
    new_score: float
    previous_level: ReliabilityLevel
    new_level: ReliabilityLevel
    milestone_notified: bool = False

    @property
    def level_changed(self) -> bool:
        return self.previous_level != self.new_level
