"""Output models of the ranking pipeline."""

from enum import Enum

from pydantic import BaseModel, Field

from app.models.domain.creator_domain import CreatorCandidate


class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    EXPERIMENTAL = "Experimental"


class LocationStatus(str, Enum):
    REMOTE = "REMOTE"
    SAME_DISTRICT = "SAME_DISTRICT"
    SAME_CITY = "SAME_CITY"
    SAME_STATE = "SAME_STATE"
    OUT_OF_STATE = "OUT_OF_STATE"
    UNKNOWN = "UNKNOWN"


class BudgetValueStatus(str, Enum):
    WITHIN_BUDGET = "WITHIN_BUDGET"
    UNDER_BUDGET = "UNDER_BUDGET"
    SLIGHTLY_OVER = "SLIGHTLY_OVER"
    OVER_BUDGET = "OVER_BUDGET"
    UNKNOWN = "UNKNOWN"


class LikelihoodType(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NEUTRAL = "NEUTRAL"


class ResponseLikelihood(BaseModel):
    label: str
    type: LikelihoodType
    description: str


class RoiPrediction(BaseModel):
    """Opaque forecast returned by the predictive collaborator."""

    roi: int
    confidence: int
    risk: str
    estimated_revenue: int | None = None
    estimated_reach: int | None = None


class MatchResult(BaseModel):
    """Per-candidate ranking output. Created fresh for every ranking call."""

    creator: CreatorCandidate
    sub_scores: dict[str, int]
    match_score: int
    confidence_level: ConfidenceLevel
    match_reasons: list[str] = Field(default_factory=list)
    response_likelihood: ResponseLikelihood
    location_status: LocationStatus
    budget_value_status: BudgetValueStatus

    @property
    def creator_id(self) -> str:
        return self.creator.creator_id


class FactorBreakdown(BaseModel):
    score: int
    weight: float
    contribution: float


class MatchExplanation(BaseModel):
    creator_id: str
    match_score: int
    breakdown: dict[str, FactorBreakdown]
