"""
Domain models for creator profiles, campaign requests and the interaction
signals the matcher reads (intent, feedback, invitations).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

RELIABILITY_MIN = 0.5
RELIABILITY_MAX = 5.0


class TravelWillingness(str, Enum):
    YES = "YES"
    LIMITED = "LIMITED"
    NO = "NO"


class AvailabilityStatus(str, Enum):
    AVAILABLE_NOW = "AVAILABLE_NOW"
    LIMITED_AVAILABILITY = "LIMITED_AVAILABILITY"
    NOT_AVAILABLE = "NOT_AVAILABLE"


class CampaignType(str, Enum):
    """Where the work happens. Also used as the request's location type."""

    REMOTE = "REMOTE"
    ONSITE = "ONSITE"
    EVENT = "EVENT"
    HYBRID = "HYBRID"


class InteractionAction(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    SAVED = "SAVED"
    CLICKED = "CLICKED"
    CONTACTED = "CONTACTED"
    ABANDONED = "ABANDONED"
    COMPLETED = "COMPLETED"


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    district: str | None = None
    city: str | None = None
    state: str | None = None


class PriceRange(BaseModel):
    """Inclusive money range; used for creator prices and campaign budgets."""

    model_config = ConfigDict(frozen=True)

    min: float = 0.0
    max: float = 0.0


class CreatorCandidate(BaseModel):
    """Creator profile as seen by the matcher. Read-only to the scorer."""

    creator_id: str
    user_id: str | None = None
    display_name: str | None = None

    follower_count: int = 0
    engagement_rate: float = 0.0
    category: str | None = None
    secondary_categories: list[str] = Field(default_factory=list)

    location: Location | None = None
    willing_to_travel: TravelWillingness | None = None
    price_range: PriceRange | None = None
    collaboration_types: list[str] = Field(default_factory=list)
    promotion_types: list[str] = Field(default_factory=list)

    availability_status: str | None = None
    is_available: bool = True

    reliability_score: float = 1.0
    successful_promotions: int = 0
    average_rating: float = 0.0
    ai_score: float | None = None

    @field_validator("reliability_score")
    @classmethod
    def _reliability_in_bounds(cls, value: float) -> float:
        if not RELIABILITY_MIN <= value <= RELIABILITY_MAX:
            raise ValueError(
                f"reliability_score must be in [{RELIABILITY_MIN}, {RELIABILITY_MAX}], got {value}"
            )
        return value


class CampaignRequest(BaseModel):
    """A brand's campaign brief. Immutable for the duration of a ranking call."""

    model_config = ConfigDict(frozen=True)

    request_id: str | None = None
    budget_range: PriceRange | None = None
    target_category: str | None = None
    promotion_type: str | None = None
    location: Location | None = None
    location_type: str | None = None
    min_followers: int | None = None
    max_followers: int | None = None


class UserIntent(BaseModel):
    """Recent search behaviour of the requesting brand user."""

    user_id: str
    recent_categories: list[str] = Field(default_factory=list)  # most recent first


class MatchFeedback(BaseModel):
    """One past action a brand user took on a creator."""

    user_id: str
    creator_id: str
    action: InteractionAction
    created_at: datetime | None = None


class InvitationRecord(BaseModel):
    """A creator's invite/match row, used to estimate responsiveness."""

    creator_id: str
    status: str
    responded_at: datetime | None = None
    applied_at: datetime | None = None
