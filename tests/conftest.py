from datetime import UTC, datetime

import pytest

from app.models.domain.creator_domain import (
    CampaignRequest,
    CreatorCandidate,
    Location,
    PriceRange,
    TravelWillingness,
)
from app.models.domain.match_domain import RoiPrediction
from app.services.memory_store import InMemoryStore
from app.utils.locks import KeyedLocks


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str, dict]] = []
        self.fail = fail

    async def notify(self, user_id: str, kind: str, payload: dict) -> None:
        if self.fail:
            raise RuntimeError("push gateway unavailable")
        self.sent.append((user_id, kind, payload))


class StubPredictive:
    """Returns fixed ROI / insight values, or raises when fail=True."""

    def __init__(self, roi: int | None = None, insight: float | None = None, fail: bool = False):
        self.roi = roi
        self.insight = insight
        self.fail = fail
        self.calls = 0

    async def predict_roi(self, creator_id: str, request: CampaignRequest) -> RoiPrediction | None:
        self.calls += 1
        if self.fail:
            raise RuntimeError("prediction backend timeout")
        if self.roi is None:
            return None
        return RoiPrediction(roi=self.roi, confidence=70, risk="Medium")

    async def insight_score(self, creator_id: str) -> float | None:
        if self.fail:
            raise RuntimeError("prediction backend timeout")
        return self.insight


@pytest.fixture
def now():
    return datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def locks():
    return KeyedLocks()


@pytest.fixture
def make_creator():
    def _make(creator_id: str = "creator-1", **overrides) -> CreatorCandidate:
        fields = {
            "creator_id": creator_id,
            "user_id": f"user-{creator_id}",
            "display_name": "Creator",
            "follower_count": 20_000,
            "engagement_rate": 4.0,
            "category": "Fashion",
            "secondary_categories": [],
            "location": Location(district="Downtown", city="Austin", state="TX"),
            "willing_to_travel": TravelWillingness.LIMITED,
            "price_range": PriceRange(min=200, max=500),
            "collaboration_types": ["ONSITE"],
            "promotion_types": ["REELS"],
            "availability_status": "AVAILABLE_NOW",
            "is_available": True,
            "reliability_score": 1.0,
            "successful_promotions": 0,
            "average_rating": 0.0,
            "ai_score": None,
        }
        fields.update(overrides)
        return CreatorCandidate(**fields)

    return _make


@pytest.fixture
def make_request():
    def _make(**overrides) -> CampaignRequest:
        fields = {
            "request_id": "req-1",
            "budget_range": PriceRange(min=300, max=600),
            "target_category": "Fashion",
            "promotion_type": "REELS",
            "location": Location(district="Downtown", city="Austin", state="TX"),
            "location_type": "ONSITE",
        }
        fields.update(overrides)
        return CampaignRequest(**fields)

    return _make


@pytest.fixture
def failing_notifier():
    return FakeNotifier(fail=True)


@pytest.fixture
def stub_predictive():
    """Factory: stub_predictive(roi=..., insight=..., fail=...)."""
    return StubPredictive
