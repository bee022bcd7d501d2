import asyncio

import pytest

from app.models.domain.creator_domain import PriceRange
from app.services.notification_service import LoggingNotificationService, notify_safely
from app.services.predictive_service import HeuristicPredictiveService


@pytest.mark.asyncio
async def test_heuristic_roi_forecast(store, make_creator, make_request):
    store.add_creator(make_creator("creator-1", follower_count=100_000, engagement_rate=5))
    service = HeuristicPredictiveService(store)

    prediction = await service.predict_roi("creator-1", make_request())

    # reach 35k, 1750 interactions, 2% conversion, REELS 1.4, Fashion 1.1
    assert prediction.estimated_reach == 35_000
    assert prediction.roi == pytest.approx(2595, abs=1)
    assert prediction.risk == "Low"
    assert prediction.confidence == 60


@pytest.mark.asyncio
async def test_heuristic_roi_risk_and_confidence(store, make_creator, make_request):
    store.add_creator(
        make_creator(
            "creator-1",
            follower_count=1_000,
            engagement_rate=1,
            successful_promotions=6,
            ai_score=90,
        )
    )
    service = HeuristicPredictiveService(store)

    prediction = await service.predict_roi("creator-1", make_request())

    assert prediction.roi < 20
    assert prediction.risk == "High"
    assert prediction.confidence == 85


@pytest.mark.asyncio
async def test_heuristic_roi_needs_creator_and_budget(store, make_creator, make_request):
    store.add_creator(make_creator("creator-1"))
    service = HeuristicPredictiveService(store)

    assert await service.predict_roi("missing", make_request()) is None
    assert await service.predict_roi("creator-1", make_request(budget_range=None)) is None
    assert (
        await service.predict_roi("creator-1", make_request(budget_range=PriceRange(min=0, max=0)))
        is None
    )


@pytest.mark.asyncio
async def test_insight_score_reads_profile(store, make_creator):
    store.add_creator(make_creator("creator-1", ai_score=77.5))
    service = HeuristicPredictiveService(store)

    assert await service.insight_score("creator-1") == 77.5
    assert await service.insight_score("missing") is None


@pytest.mark.asyncio
async def test_notify_safely_swallows_failures(failing_notifier):
    failure = await notify_safely(failing_notifier, "user-1", "RELIABILITY_MILESTONE", {})

    assert failure is not None
    assert failure.operation == "notify"
    assert failure.context == {"user_id": "user-1", "kind": "RELIABILITY_MILESTONE"}


@pytest.mark.asyncio
async def test_notify_safely_delivers(notifier):
    assert await notify_safely(notifier, "user-1", "RELIABILITY_MILESTONE", {"a": 1}) is None
    assert await notify_safely(LoggingNotificationService(), "user-1", "X", {}) is None
    assert await notify_safely(None, "user-1", "X", {}) is None
    assert notifier.sent == [("user-1", "RELIABILITY_MILESTONE", {"a": 1})]


class _HangingNotifier:
    async def notify(self, user_id, kind, payload):
        await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_notify_safely_abandons_stalled_notifier():
    failure = await notify_safely(_HangingNotifier(), "user-1", "RELIABILITY_MILESTONE", {}, timeout=0.01)

    assert failure is not None
    assert failure.error == "notification timed out after 0.01s"
    assert failure.context == {"user_id": "user-1", "kind": "RELIABILITY_MILESTONE"}
