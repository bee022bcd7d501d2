from datetime import UTC, datetime

import pytest

from app.features.matching.pipeline.scoring.factors import (
    Factor,
    availability_match,
    budget_value_status,
    campaign_type_match,
    compute_sub_scores,
    engagement_score,
    intent_match,
    location_match,
    location_status,
    niche_similarity,
    normalized_external_score,
    personalization_score,
    price_compatibility,
    reliability_sub_score,
    track_record_score,
)
from app.models.domain.creator_domain import (
    InteractionAction,
    Location,
    MatchFeedback,
    PriceRange,
    TravelWillingness,
)
from app.models.domain.match_domain import BudgetValueStatus, LocationStatus


def _feedback(creator_id: str, action: InteractionAction) -> MatchFeedback:
    return MatchFeedback(
        user_id="brand-1",
        creator_id=creator_id,
        action=action,
        created_at=datetime(2026, 2, 1, tzinfo=UTC),
    )


def test_engagement_scenario_a_rounds_half_to_even():
    # benchmark 4.0 for <50k followers, ratio 1.25 -> 62.5 -> 62
    assert engagement_score(5, 20_000) == 62


def test_engagement_uses_follower_tier_benchmark():
    assert engagement_score(2.5, 100_000) == 50
    assert engagement_score(1.5, 1_000_000) == 50
    assert engagement_score(20, 1_000_000) == 100


def test_engagement_is_monotonic_in_rate():
    for followers in (1_000, 49_999, 50_000, 250_000, 500_000, 5_000_000):
        scores = [engagement_score(rate / 10, followers) for rate in range(0, 200)]
        assert scores == sorted(scores)


def test_price_scenario_b_partial_overlap():
    assert price_compatibility(PriceRange(min=200, max=500), PriceRange(min=300, max=600)) == 95


def test_price_full_coverage_scores_100():
    assert price_compatibility(PriceRange(min=300, max=400), PriceRange(min=200, max=600)) == 100


@pytest.mark.parametrize(
    ("creator_min", "expected"),
    [(650, 65), (690, 65), (700, 40), (780, 40), (900, 0)],
)
def test_price_above_budget_tiers(creator_min, expected):
    price = PriceRange(min=creator_min, max=creator_min + 200)
    assert price_compatibility(price, PriceRange(min=300, max=600)) == expected


def test_price_below_budget_scores_90():
    assert price_compatibility(PriceRange(min=100, max=200), PriceRange(min=300, max=600)) == 90


def test_price_missing_data_is_neutral():
    assert price_compatibility(None, PriceRange(min=300, max=600)) == 50
    assert price_compatibility(PriceRange(min=100, max=200), None) == 50


def test_budget_value_status_labels():
    budget = PriceRange(min=300, max=600)
    assert budget_value_status(PriceRange(min=200, max=500), budget) == BudgetValueStatus.WITHIN_BUDGET
    assert budget_value_status(PriceRange(min=100, max=200), budget) == BudgetValueStatus.UNDER_BUDGET
    assert budget_value_status(PriceRange(min=700, max=900), budget) == BudgetValueStatus.SLIGHTLY_OVER
    assert budget_value_status(PriceRange(min=1000, max=1200), budget) == BudgetValueStatus.OVER_BUDGET
    assert budget_value_status(None, budget) == BudgetValueStatus.UNKNOWN


def test_niche_similarity_levels():
    assert niche_similarity("Fashion", "Fashion") == 100
    assert niche_similarity("Beauty", "Fashion") == 50
    assert niche_similarity("Tech", "Fashion", ["Fashion"]) == 50
    assert niche_similarity("Tech", "Fashion") == 0
    assert niche_similarity("Tech", None) == 50


def test_track_record_bonuses():
    assert track_record_score(0, 0.0) == 50
    assert track_record_score(1, 3.5) == 70
    assert track_record_score(5, 4.0) == 85
    assert track_record_score(10, 4.6) == 100


def test_intent_match_prefers_most_recent_category():
    recent = ["Fashion", "Beauty"]
    assert intent_match("Fashion", recent) == 100
    assert intent_match("Beauty", recent) == 75
    assert intent_match("Tech", recent) == 0
    assert intent_match("Fashion", None) == 50
    assert intent_match("Fashion", []) == 50


def test_personalization_only_counts_this_creator():
    history = [
        _feedback("creator-1", InteractionAction.ACCEPTED),
        _feedback("creator-2", InteractionAction.REJECTED),
    ]
    assert personalization_score("creator-1", history) == 80
    assert personalization_score("creator-2", history) == 30
    assert personalization_score("creator-3", history) == 50


def test_personalization_is_clamped():
    accepted = [_feedback("creator-1", InteractionAction.COMPLETED)] * 5
    rejected = [_feedback("creator-1", InteractionAction.ABANDONED)] * 5
    assert personalization_score("creator-1", accepted) == 100
    assert personalization_score("creator-1", rejected) == 0


def test_location_match_levels():
    campaign = Location(district="Downtown", city="Austin", state="TX")

    def score(location, travel=TravelWillingness.NO, location_type="ONSITE"):
        return location_match(location, travel, campaign, location_type)

    assert score(Location(district="Hyde Park", city="Dallas", state="CA"), location_type="REMOTE") == 100
    assert score(Location(district="downtown", city="Austin", state="TX")) == 100
    assert score(Location(district="Hyde Park", city="Austin", state="TX")) == 90
    assert score(Location(city="Houston", state="TX"), TravelWillingness.YES) == 80
    assert score(Location(city="Houston", state="TX"), TravelWillingness.LIMITED) == 60
    assert score(Location(city="Houston", state="TX"), TravelWillingness.NO) == 40
    assert score(Location(city="Denver", state="CO"), TravelWillingness.YES) == 50
    assert score(Location(city="Denver", state="CO"), TravelWillingness.LIMITED) == 0
    assert score(None) == 50


def test_location_status_labels():
    campaign = Location(district="Downtown", city="Austin", state="TX")
    assert location_status(None, campaign, "REMOTE") == LocationStatus.REMOTE
    assert location_status(Location(city="Austin", state="TX"), campaign, "ONSITE") == LocationStatus.SAME_CITY
    assert location_status(Location(city="Denver", state="CO"), campaign, "ONSITE") == LocationStatus.OUT_OF_STATE
    assert location_status(Location(city="Denver"), campaign, "ONSITE") == LocationStatus.UNKNOWN


def test_campaign_type_match():
    assert campaign_type_match(["ONSITE"], "ONSITE") == 100
    assert campaign_type_match(["ONSITE"], "EVENT") == 80
    assert campaign_type_match(["ONSITE"], "REMOTE") == 0
    assert campaign_type_match([], None) == 50


def test_availability_match_fails_open():
    assert availability_match("AVAILABLE_NOW") == 100
    assert availability_match("LIMITED_AVAILABILITY") == 70
    assert availability_match("NOT_AVAILABLE") == 40
    assert availability_match(None) == 100


def test_reliability_sub_score_range():
    assert reliability_sub_score(0.5) == 50
    assert reliability_sub_score(1.0) == 100
    assert reliability_sub_score(1.5) == 150
    assert reliability_sub_score(5.0) == 150


def test_external_scores_are_clamped_with_fallback():
    assert normalized_external_score(None, fallback=0) == 0
    assert normalized_external_score(None, fallback=50) == 50
    assert normalized_external_score(2595, fallback=0) == 100
    assert normalized_external_score(-40, fallback=0) == 0
    assert normalized_external_score(72.4, fallback=0) == 72


@pytest.mark.parametrize("engagement_rate", [0.0, 0.5, 3.0, 12.0, 90.0])
@pytest.mark.parametrize("reliability", [0.5, 1.0, 2.7, 5.0])
@pytest.mark.parametrize("roi", [None, -500, 40, 10_000])
def test_sub_scores_stay_in_bounds(
    make_creator, make_request, engagement_rate, reliability, roi
):
    creator = make_creator(
        engagement_rate=engagement_rate,
        reliability_score=reliability,
        successful_promotions=12,
        average_rating=4.9,
    )
    history = [_feedback(creator.creator_id, InteractionAction.ACCEPTED)] * 4

    scores = compute_sub_scores(
        creator,
        make_request(),
        recent_categories=["Fashion"],
        history=history,
        roi=roi,
        insight=130,
    )

    assert set(scores) == {factor.value for factor in Factor}
    for factor, value in scores.items():
        upper = 150 if factor == Factor.RELIABILITY.value else 100
        assert 0 <= value <= upper, factor


def test_sparse_profile_gets_neutral_defaults(make_creator, make_request):
    creator = make_creator(location=None, price_range=None, willing_to_travel=None)
    request = make_request(location_type=None, target_category=None)

    scores = compute_sub_scores(creator, request)

    assert scores[Factor.PRICE_COMPATIBILITY.value] == 50
    assert scores[Factor.LOCATION_MATCH.value] == 50
    assert scores[Factor.CAMPAIGN_TYPE_MATCH.value] == 50
    assert scores[Factor.NICHE_SIMILARITY.value] == 50
    assert scores[Factor.INTENT_MATCH.value] == 50
    assert scores[Factor.PERSONALIZATION.value] == 50
    assert scores[Factor.PREDICTED_ROI.value] == 0
    assert scores[Factor.INSIGHT_SCORE.value] == 50
