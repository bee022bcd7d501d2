"""
Per-factor sub-scores for a (creator, campaign request) pair.

Every function here is pure and total: sparse or missing inputs produce a
neutral value instead of an exception, so one thin profile can never fail a
ranking call.

Scores are rounded to ints with Python's round() (half to even), e.g. an
engagement ratio of 1.25 gives 62.5 -> 62. All factors live in [0, 100]
except reliability, which is allowed up to 150 before weighting.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum

from app.models.domain.creator_domain import (
    AvailabilityStatus,
    CampaignRequest,
    CampaignType,
    CreatorCandidate,
    InteractionAction,
    Location,
    MatchFeedback,
    PriceRange,
    TravelWillingness,
)
from app.models.domain.match_domain import BudgetValueStatus, LocationStatus

NEUTRAL_SCORE = 50
MAX_SCORE = 100
MAX_RELIABILITY_SCORE = 150


class Factor(str, Enum):
    ENGAGEMENT_RATE = "engagement_rate"
    NICHE_SIMILARITY = "niche_similarity"
    PRICE_COMPATIBILITY = "price_compatibility"
    LOCATION_MATCH = "location_match"
    CAMPAIGN_TYPE_MATCH = "campaign_type_match"
    RELIABILITY = "reliability"
    AVAILABILITY_MATCH = "availability_match"
    PREDICTED_ROI = "predicted_roi"
    TRACK_RECORD = "track_record"
    INSIGHT_SCORE = "insight_score"
    INTENT_MATCH = "intent_match"
    PERSONALIZATION = "personalization"


RELATED_CATEGORIES: dict[str, frozenset[str]] = {
    "Fashion": frozenset({"Beauty", "Lifestyle"}),
    "Beauty": frozenset({"Fashion", "Lifestyle", "Health"}),
    "Fitness": frozenset({"Health", "Lifestyle", "Sports"}),
    "Health": frozenset({"Fitness", "Lifestyle", "Beauty"}),
    "Food": frozenset({"Lifestyle", "Travel", "Health"}),
    "Travel": frozenset({"Lifestyle", "Food"}),
    "Tech": frozenset({"Gaming", "Education", "Business"}),
    "Gaming": frozenset({"Tech", "Entertainment"}),
    "Education": frozenset({"Tech", "Business"}),
    "Entertainment": frozenset({"Gaming", "Lifestyle", "Music"}),
    "Business": frozenset({"Tech", "Education"}),
    "Art": frozenset({"Music", "Entertainment"}),
    "Music": frozenset({"Art", "Entertainment"}),
    "Sports": frozenset({"Fitness", "Health"}),
    "Lifestyle": frozenset({"Fashion", "Beauty", "Food", "Travel", "Health"}),
}

AVAILABILITY_SCORES = {
    AvailabilityStatus.AVAILABLE_NOW.value: 100,
    AvailabilityStatus.LIMITED_AVAILABILITY.value: 70,
    AvailabilityStatus.NOT_AVAILABLE.value: 40,
}

POSITIVE_ACTIONS = frozenset({InteractionAction.ACCEPTED, InteractionAction.COMPLETED})
ENGAGED_ACTIONS = frozenset(
    {InteractionAction.SAVED, InteractionAction.CLICKED, InteractionAction.CONTACTED}
)
NEGATIVE_ACTIONS = frozenset({InteractionAction.REJECTED, InteractionAction.ABANDONED})

SAME_STATE_TRAVEL_SCORES = {
    TravelWillingness.YES: 80,
    TravelWillingness.LIMITED: 60,
    TravelWillingness.NO: 40,
}

ONSITE_COMPATIBLE_TYPES = frozenset({CampaignType.EVENT.value, CampaignType.HYBRID.value})


def _clamp(value: float, low: float = 0, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def _same(a: str | None, b: str | None) -> bool:
    return bool(a and b) and a.strip().lower() == b.strip().lower()


# =============================================================================
# ENGAGEMENT
# =============================================================================


def engagement_benchmark(follower_count: int) -> float:
    """Expected engagement rate (%) for the creator's follower tier."""
    if follower_count < 50_000:
        return 4.0
    if follower_count < 500_000:
        return 2.5
    return 1.5


def engagement_score(engagement_rate: float, follower_count: int) -> int:
    ratio = max(0.0, engagement_rate) / engagement_benchmark(follower_count)
    return round(min(MAX_SCORE, ratio * 50))


# =============================================================================
# NICHE
# =============================================================================


def niche_similarity(
    creator_category: str | None,
    target_category: str | None,
    secondary_categories: Iterable[str] = (),
) -> int:
    if not target_category:
        return NEUTRAL_SCORE
    if creator_category == target_category:
        return 100
    related = RELATED_CATEGORIES.get(target_category, frozenset())
    if creator_category in related or target_category in set(secondary_categories):
        return 50
    return 0


# =============================================================================
# PRICE
# =============================================================================


def budget_value_status(
    price_range: PriceRange | None, budget_range: PriceRange | None
) -> BudgetValueStatus:
    """Where the creator's price sits relative to the campaign budget."""
    if price_range is None or budget_range is None:
        return BudgetValueStatus.UNKNOWN

    overlap = min(price_range.max, budget_range.max) - max(price_range.min, budget_range.min)
    if overlap > 0:
        return BudgetValueStatus.WITHIN_BUDGET
    if price_range.min >= budget_range.max:
        if budget_range.max <= 0:
            return BudgetValueStatus.OVER_BUDGET
        over = (price_range.min - budget_range.max) / budget_range.max
        return BudgetValueStatus.SLIGHTLY_OVER if over <= 0.30 else BudgetValueStatus.OVER_BUDGET
    if price_range.max <= budget_range.min:
        return BudgetValueStatus.UNDER_BUDGET
    return BudgetValueStatus.UNKNOWN


def price_compatibility(price_range: PriceRange | None, budget_range: PriceRange | None) -> int:
    """
    Score how the creator's price range sits against the budget.

    Overlapping ranges score 85-100 by how much of the creator's range the
    budget covers. A creator priced entirely above the budget scores 65 up to
    15% over, 40 up to 30% over, 0 beyond. Entirely below the budget scores 90.
    """
    if price_range is None or budget_range is None:
        return NEUTRAL_SCORE

    creator_min, creator_max = price_range.min, price_range.max
    budget_min, budget_max = budget_range.min, budget_range.max

    overlap = min(creator_max, budget_max) - max(creator_min, budget_min)
    if overlap > 0:
        coverage = overlap / (creator_max - creator_min)
        return round(min(MAX_SCORE, 85 + coverage * 15))

    if creator_min >= budget_max:
        if budget_max <= 0:
            return 0
        over = (creator_min - budget_max) / budget_max
        if over <= 0.15:
            return 65
        if over <= 0.30:
            return 40
        return 0

    if creator_max <= budget_min:
        return 90

    # Not reachable for well-formed ranges; kept as the historical fallback
    return 50


# =============================================================================
# TRACK RECORD
# =============================================================================


def track_record_score(successful_promotions: int, average_rating: float) -> int:
    score = 50

    if successful_promotions >= 10:
        score += 30
    elif successful_promotions >= 5:
        score += 20
    elif successful_promotions >= 1:
        score += 10

    if average_rating >= 4.5:
        score += 20
    elif average_rating >= 4:
        score += 15
    elif average_rating >= 3.5:
        score += 10

    return min(MAX_SCORE, score)


# =============================================================================
# INTENT & PERSONALIZATION
# =============================================================================


def intent_match(creator_category: str | None, recent_categories: Sequence[str] | None) -> int:
    """recent_categories is ordered most recent first."""
    if not recent_categories:
        return NEUTRAL_SCORE
    if creator_category and creator_category == recent_categories[0]:
        return 100
    if creator_category and creator_category in recent_categories:
        return 75
    return 0


def personalization_score(creator_id: str, history: Iterable[MatchFeedback]) -> int:
    """Nudge by the requester's own past actions on this exact creator."""
    score = NEUTRAL_SCORE
    for feedback in history:
        if feedback.creator_id != creator_id:
            continue
        if feedback.action in POSITIVE_ACTIONS:
            score += 30
        elif feedback.action in ENGAGED_ACTIONS:
            score += 10
        elif feedback.action in NEGATIVE_ACTIONS:
            score -= 20
    return round(_clamp(score))


# =============================================================================
# LOCATION & CAMPAIGN TYPE
# =============================================================================


def location_status(
    creator_location: Location | None,
    request_location: Location | None,
    location_type: str | None,
) -> LocationStatus:
    if location_type == CampaignType.REMOTE.value:
        return LocationStatus.REMOTE
    if creator_location is None or request_location is None:
        return LocationStatus.UNKNOWN
    if _same(creator_location.district, request_location.district):
        return LocationStatus.SAME_DISTRICT
    if _same(creator_location.city, request_location.city):
        return LocationStatus.SAME_CITY
    if not creator_location.state or not request_location.state:
        return LocationStatus.UNKNOWN
    if _same(creator_location.state, request_location.state):
        return LocationStatus.SAME_STATE
    return LocationStatus.OUT_OF_STATE


def location_match(
    creator_location: Location | None,
    willing_to_travel: TravelWillingness | None,
    request_location: Location | None,
    location_type: str | None,
) -> int:
    status = location_status(creator_location, request_location, location_type)

    if status in (LocationStatus.REMOTE, LocationStatus.SAME_DISTRICT):
        return 100
    if status == LocationStatus.SAME_CITY:
        return 90
    if status == LocationStatus.SAME_STATE:
        return SAME_STATE_TRAVEL_SCORES.get(willing_to_travel, 40)
    if status == LocationStatus.OUT_OF_STATE:
        return 50 if willing_to_travel == TravelWillingness.YES else 0
    return NEUTRAL_SCORE


def campaign_type_match(collaboration_types: Iterable[str], campaign_type: str | None) -> int:
    if not campaign_type:
        return NEUTRAL_SCORE
    supported = set(collaboration_types)
    if campaign_type in supported:
        return 100
    if CampaignType.ONSITE.value in supported and campaign_type in ONSITE_COMPATIBLE_TYPES:
        return 80
    return 0


# =============================================================================
# AVAILABILITY, RELIABILITY, COLLABORATOR SCORES
# =============================================================================


def availability_match(availability_status: str | None) -> int:
    # Unknown statuses fail open
    return AVAILABILITY_SCORES.get(availability_status, 100)


def reliability_sub_score(reliability_score: float) -> int:
    return round(_clamp(reliability_score * 100, 0, MAX_RELIABILITY_SCORE))


def normalized_external_score(value: float | None, fallback: int) -> int:
    """ROI / insight numbers arrive opaque; keep them inside [0, 100]."""
    if value is None:
        return fallback
    return round(_clamp(value))


# =============================================================================
# FULL SUB-SCORE SET
# =============================================================================


def compute_sub_scores(
    creator: CreatorCandidate,
    request: CampaignRequest,
    *,
    recent_categories: Sequence[str] | None = None,
    history: Sequence[MatchFeedback] = (),
    roi: float | None = None,
    insight: float | None = None,
) -> dict[str, int]:
    """Every factor for one candidate, keyed by Factor value."""
    return {
        Factor.ENGAGEMENT_RATE.value: engagement_score(
            creator.engagement_rate, creator.follower_count
        ),
        Factor.NICHE_SIMILARITY.value: niche_similarity(
            creator.category, request.target_category, creator.secondary_categories
        ),
        Factor.PRICE_COMPATIBILITY.value: price_compatibility(
            creator.price_range, request.budget_range
        ),
        Factor.LOCATION_MATCH.value: location_match(
            creator.location, creator.willing_to_travel, request.location, request.location_type
        ),
        Factor.CAMPAIGN_TYPE_MATCH.value: campaign_type_match(
            creator.collaboration_types, request.location_type
        ),
        Factor.RELIABILITY.value: reliability_sub_score(creator.reliability_score),
        Factor.AVAILABILITY_MATCH.value: availability_match(creator.availability_status),
        Factor.PREDICTED_ROI.value: normalized_external_score(roi, fallback=0),
        Factor.TRACK_RECORD.value: track_record_score(
            creator.successful_promotions, creator.average_rating
        ),
        Factor.INSIGHT_SCORE.value: normalized_external_score(insight, fallback=NEUTRAL_SCORE),
        Factor.INTENT_MATCH.value: intent_match(creator.category, recent_categories),
        Factor.PERSONALIZATION.value: personalization_score(creator.creator_id, history),
    }
