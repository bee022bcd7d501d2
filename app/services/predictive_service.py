"""
Predictive collaborator - ROI forecast and profile insight score.

The matcher treats both numbers as opaque, already-normalized sub-scores.
HeuristicPredictiveService is the default implementation: a fixed reach and
conversion model with per-format and per-category multipliers. No learning.
"""

from typing import Protocol

from app.infrastructure.observability.logging import get_logger
from app.models.domain.creator_domain import CampaignRequest, CreatorCandidate
from app.models.domain.match_domain import RoiPrediction
from app.services.store import MatchStore

logger = get_logger(__name__)


class PredictiveService(Protocol):
    async def predict_roi(
        self, creator_id: str, request: CampaignRequest
    ) -> RoiPrediction | None: ...

    async def insight_score(self, creator_id: str) -> float | None: ...


class HeuristicPredictiveService:
    ORGANIC_REACH_RATE = 0.35
    CONVERSION_RATE = 0.02
    ORDER_VALUE_SHARE = 0.5
    TYPE_MULTIPLIERS = {
        "REELS": 1.4,
        "STORIES": 0.6,
        "POSTS": 1.0,
        "WEBSITE_VISIT": 1.8,
    }
    CATEGORY_MULTIPLIERS = {
        "Fashion": 1.1,
        "Beauty": 1.2,
        "Tech": 0.9,
        "Lifestyle": 1.0,
        "Fitness": 1.05,
        "Gaming": 0.85,
        "Entertainment": 0.95,
    }

    def __init__(self, store: MatchStore):
        self._store = store

    async def predict_roi(
        self, creator_id: str, request: CampaignRequest
    ) -> RoiPrediction | None:
        creator = await self._store.get_creator(creator_id)
        if creator is None or request.budget_range is None:
            return None

        budget = (request.budget_range.min + request.budget_range.max) / 2
        if budget <= 0:
            return None

        history_multiplier = 1.0 + min(creator.successful_promotions, 10) * 0.05
        estimated_reach = creator.follower_count * self.ORGANIC_REACH_RATE
        interactions = estimated_reach * (creator.engagement_rate / 100)
        type_multiplier = self.TYPE_MULTIPLIERS.get(request.promotion_type or "", 1.0)
        category_multiplier = self.CATEGORY_MULTIPLIERS.get(request.target_category or "", 1.0)

        conversions = (
            interactions
            * self.CONVERSION_RATE
            * type_multiplier
            * category_multiplier
            * history_multiplier
        )
        revenue = conversions * (budget * self.ORDER_VALUE_SHARE)
        roi = ((revenue - budget) / budget) * 100

        return RoiPrediction(
            roi=round(roi),
            confidence=self._confidence(creator),
            risk="High" if roi < 20 else "Medium" if roi < 80 else "Low",
            estimated_revenue=round(revenue),
            estimated_reach=round(estimated_reach),
        )

    async def insight_score(self, creator_id: str) -> float | None:
        creator = await self._store.get_creator(creator_id)
        if creator is None:
            return None
        return creator.ai_score

    @staticmethod
    def _confidence(creator: CreatorCandidate) -> int:
        confidence = 60
        if creator.successful_promotions >= 5:
            confidence += 20
        elif creator.successful_promotions >= 1:
            confidence += 10
        if creator.ai_score is not None and creator.ai_score > 80:
            confidence += 5
        return min(95, confidence)
