import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from app import engine
from app.features.matching.pipeline.ranking.service import (
    explain_match,
    filter_candidates,
    rank_creators,
)
from app.features.matching.pipeline.scoring.factors import Factor
from app.features.matching.pipeline.scoring.weights import MATCH_WEIGHTS
from app.models.domain.collaboration_domain import PartyRole
from app.models.domain.creator_domain import InteractionAction, MatchFeedback, UserIntent
from app.models.domain.match_domain import LikelihoodType


def _seed_pool(store, make_creator, count: int):
    for i in range(count):
        store.add_creator(
            make_creator(
                f"creator-{i:03d}",
                engagement_rate=(i % 10) + 0.5,
                successful_promotions=i % 12,
                average_rating=3.0 + (i % 5) * 0.4,
            )
        )


@pytest.mark.asyncio
async def test_scenario_e_pool_is_capped_then_truncated(store, make_creator, make_request, stub_predictive):
    _seed_pool(store, make_creator, 150)
    predictive = stub_predictive(roi=40, insight=60)
    request = make_request()

    candidates = await filter_candidates(store, request)
    assert len(candidates) == 100

    results = await rank_creators(candidates, request, store=store, predictive=predictive)

    assert len(results) == 20
    scores = [result.match_score for result in results]
    assert scores == sorted(scores, reverse=True)
    assert predictive.calls == 100


@pytest.mark.asyncio
async def test_rank_caps_oversized_candidate_list_before_scoring(
    store, make_creator, make_request, stub_predictive
):
    candidates = [make_creator(f"creator-{i:03d}") for i in range(150)]
    predictive = stub_predictive(roi=10)

    results = await rank_creators(candidates, make_request(), store=store, predictive=predictive)

    assert len(results) == 20
    assert predictive.calls == 100


@pytest.mark.asyncio
async def test_filter_applies_hard_constraints(store, make_creator, make_request):
    store.add_creator(make_creator("ok"))
    store.add_creator(make_creator("unavailable", is_available=False))
    store.add_creator(make_creator("other-category", category="Tech"))
    store.add_creator(make_creator("no-reels", promotion_types=["STORIES"]))
    store.add_creator(make_creator("too-small", follower_count=500))
    store.add_creator(make_creator("too-expensive", price_range={"min": 900, "max": 1200}))

    candidates = await filter_candidates(store, make_request(min_followers=1_000))

    assert [c.creator_id for c in candidates] == ["ok"]


@pytest.mark.asyncio
async def test_rank_is_idempotent(store, make_creator, make_request, stub_predictive):
    _seed_pool(store, make_creator, 40)
    store.intents["brand-1"] = UserIntent(user_id="brand-1", recent_categories=["Fashion"])
    request = make_request()
    candidates = await filter_candidates(store, request)
    predictive = stub_predictive(roi=55, insight=70)

    first = await rank_creators(
        candidates, request, store=store, predictive=predictive, user_id="brand-1"
    )
    second = await rank_creators(
        candidates, request, store=store, predictive=predictive, user_id="brand-1"
    )

    assert [(r.creator_id, r.match_score, r.sub_scores) for r in first] == [
        (r.creator_id, r.match_score, r.sub_scores) for r in second
    ]


@pytest.mark.asyncio
async def test_ties_keep_input_order(store, make_creator, make_request):
    candidates = [make_creator(f"twin-{i}") for i in range(5)]

    results = await rank_creators(candidates, make_request(), store=store)

    assert len({r.match_score for r in results}) == 1
    assert [r.creator_id for r in results] == [f"twin-{i}" for i in range(5)]


@pytest.mark.asyncio
async def test_predictive_failure_falls_back(store, make_creator, make_request, stub_predictive):
    results = await rank_creators(
        [make_creator()], make_request(), store=store, predictive=stub_predictive(fail=True)
    )

    sub_scores = results[0].sub_scores
    assert sub_scores[Factor.PREDICTED_ROI.value] == 0
    assert sub_scores[Factor.INSIGHT_SCORE.value] == 50


@pytest.mark.asyncio
async def test_personalization_signals_loaded_for_user(store, make_creator, make_request):
    store.intents["brand-1"] = UserIntent(user_id="brand-1", recent_categories=["Beauty", "Fashion"])
    store.record_feedback(
        MatchFeedback(
            user_id="brand-1",
            creator_id="creator-1",
            action=InteractionAction.ACCEPTED,
            created_at=datetime(2026, 2, 1, tzinfo=UTC),
        )
    )

    results = await rank_creators(
        [make_creator("creator-1"), make_creator("creator-2")],
        make_request(),
        store=store,
        user_id="brand-1",
    )

    by_id = {r.creator_id: r.sub_scores for r in results}
    assert by_id["creator-1"][Factor.INTENT_MATCH.value] == 75
    assert by_id["creator-1"][Factor.PERSONALIZATION.value] == 80
    assert by_id["creator-2"][Factor.PERSONALIZATION.value] == 50
    assert results[0].creator_id == "creator-1"


@pytest.mark.asyncio
async def test_result_carries_labels(store, make_creator, make_request):
    results = await rank_creators([make_creator()], make_request(), store=store)

    result = results[0]
    assert 1 <= len(result.match_reasons) <= 3
    assert result.response_likelihood.type == LikelihoodType.LOW
    assert result.location_status.value == "SAME_DISTRICT"
    assert result.budget_value_status.value == "WITHIN_BUDGET"


@pytest.mark.asyncio
async def test_reliability_ledger_feeds_next_ranking(store, make_creator, make_request):
    store.add_creator(make_creator("creator-1"))
    await store.set_reliability("user-creator-1", PartyRole.CREATOR, 1.4)

    candidates = await filter_candidates(store, make_request())
    results = await rank_creators(candidates, make_request(), store=store)

    assert results[0].sub_scores[Factor.RELIABILITY.value] == 140


@pytest.mark.asyncio
async def test_unexpected_error_aborts_whole_ranking(store, make_creator, make_request, monkeypatch):
    monkeypatch.setattr(store, "get_last_login", AsyncMock(side_effect=RuntimeError("boom")))

    with pytest.raises(RuntimeError):
        await rank_creators(
            [make_creator(f"creator-{i}") for i in range(3)], make_request(), store=store
        )


@pytest.mark.asyncio
async def test_engine_rank_timeout_returns_nothing(store, make_creator, make_request):
    class SlowPredictive:
        async def predict_roi(self, creator_id, request):
            await asyncio.sleep(5)

        async def insight_score(self, creator_id):
            return None

    with pytest.raises(TimeoutError):
        await engine.rank(
            make_request(),
            [make_creator()],
            store=store,
            predictive=SlowPredictive(),
            timeout=0.05,
        )


@pytest.mark.asyncio
async def test_engine_find_and_rank(store, make_creator, make_request):
    _seed_pool(store, make_creator, 30)

    results = await engine.find_and_rank(make_request(), store=store, timeout=5)

    assert len(results) == 20


@pytest.mark.asyncio
async def test_explain_match_breakdown(store, make_creator, make_request, stub_predictive):
    store.add_creator(make_creator("creator-1", engagement_rate=5, successful_promotions=5, average_rating=4.0))

    predictive = stub_predictive(insight=80)

    explanation = await explain_match("creator-1", make_request(), store=store, predictive=predictive)

    assert set(explanation.breakdown) == {
        "engagement_rate",
        "niche_similarity",
        "price_compatibility",
        "insight_score",
        "availability_match",
        "track_record",
        "reliability",
    }
    engagement = explanation.breakdown["engagement_rate"]
    assert engagement.score == 62
    assert engagement.weight == MATCH_WEIGHTS["engagement_rate"]
    assert engagement.contribution == pytest.approx(62 * 0.11)
    assert explanation.breakdown["insight_score"].score == 80
    assert explanation.match_score == round(
        sum(item.contribution for item in explanation.breakdown.values())
    )
    # ROI is not part of the explanation, so it is never requested
    assert predictive.calls == 0


@pytest.mark.asyncio
async def test_explain_unknown_creator_returns_none(store, make_request):
    assert await engine.explain("missing", make_request(), store=store) is None


@pytest.mark.asyncio
async def test_explicit_zero_limit_and_cap_are_honored(store, make_creator, make_request):
    _seed_pool(store, make_creator, 5)
    candidates = [make_creator(f"creator-{i}") for i in range(5)]

    assert await rank_creators(candidates, make_request(), store=store, limit=0) == []
    assert await filter_candidates(store, make_request(), cap=0) == []
    assert len(await filter_candidates(store, make_request(), cap=2)) == 2
