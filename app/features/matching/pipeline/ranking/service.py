"""
Ranking pipeline - filter, score, aggregate, sort, truncate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from app.config import settings
from app.features.matching.pipeline.scoring.confidence import classify_confidence
from app.features.matching.pipeline.scoring.factors import (
    NEUTRAL_SCORE,
    Factor,
    availability_match,
    budget_value_status,
    compute_sub_scores,
    engagement_score,
    location_status,
    niche_similarity,
    normalized_external_score,
    price_compatibility,
    reliability_sub_score,
    track_record_score,
)
from app.features.matching.pipeline.scoring.reasons import generate_reasons
from app.features.matching.pipeline.scoring.weights import MATCH_WEIGHTS, aggregate_score
from app.features.matching.services.response_likelihood import estimate_response_likelihood
from app.infrastructure.observability.logging import get_logger
from app.models.domain.creator_domain import CampaignRequest, CreatorCandidate, MatchFeedback
from app.models.domain.match_domain import FactorBreakdown, MatchExplanation, MatchResult
from app.services.predictive_service import PredictiveService
from app.services.store import CandidateFilter, MatchStore, StoreError

logger = get_logger(__name__)

EXPLAIN_FACTORS = (
    Factor.ENGAGEMENT_RATE,
    Factor.NICHE_SIMILARITY,
    Factor.PRICE_COMPATIBILITY,
    Factor.INSIGHT_SCORE,
    Factor.AVAILABILITY_MATCH,
    Factor.TRACK_RECORD,
    Factor.RELIABILITY,
)


@dataclass(slots=True)
class RankingContext:
    """Requester signals read once per ranking call, shared read-only."""

    recent_categories: list[str] | None = None
    history: list[MatchFeedback] = field(default_factory=list)


def build_candidate_filter(request: CampaignRequest) -> CandidateFilter:
    return CandidateFilter(
        is_available=True,
        min_followers=request.min_followers,
        max_followers=request.max_followers,
        category=request.target_category,
        promotion_type=request.promotion_type,
        max_price=request.budget_range.max if request.budget_range else None,
    )


async def filter_candidates(
    store: MatchStore, request: CampaignRequest, *, cap: int | None = None
) -> list[CreatorCandidate]:
    """
    Pull eligible creators for a request.

    The row cap is a performance safety valve, not a quality cut: at most
    `cap` rows are ever scored no matter how many creators qualify.
    """
    if cap is None:
        cap = settings.MATCH_CANDIDATE_CAP
    candidate_filter = build_candidate_filter(request)
    candidates = await store.find_candidates(candidate_filter, cap)

    if len(candidates) > cap:
        logger.warning(
            "Store returned more rows than the candidate cap",
            request_id=request.request_id,
            returned=len(candidates),
            cap=cap,
        )
        candidates = candidates[:cap]

    logger.info(
        "Candidates filtered",
        request_id=request.request_id,
        candidate_count=len(candidates),
        cap=cap,
    )
    return candidates


async def load_ranking_context(store: MatchStore, user_id: str | None) -> RankingContext:
    """Read the requester's intent and recent feedback; both are optional signals."""
    if not user_id:
        return RankingContext()

    try:
        intent = await store.get_user_intent(user_id)
        history = await store.get_match_feedback(user_id, settings.MATCH_FEEDBACK_HISTORY_LIMIT)
    except StoreError as e:
        logger.warning(
            "Personalization signals unavailable - ranking without them",
            user_id=user_id,
            error=str(e),
        )
        return RankingContext()

    return RankingContext(
        recent_categories=list(intent.recent_categories) if intent else None,
        history=list(history[: settings.MATCH_FEEDBACK_HISTORY_LIMIT]),
    )


async def rank_creators(
    candidates: Sequence[CreatorCandidate],
    request: CampaignRequest,
    *,
    store: MatchStore,
    predictive: PredictiveService | None = None,
    user_id: str | None = None,
    limit: int | None = None,
    now: datetime | None = None,
) -> list[MatchResult]:
    """
    Score and rank candidates for a campaign request.

    Candidates are scored independently on a bounded worker pool. Results are
    sorted by match score, highest first; equal scores keep their input order
    (stable sort). Any unexpected error aborts the whole call.

    Args:
        candidates: Creators to rank (capped at MATCH_CANDIDATE_CAP)
        request: Campaign request
        store: Store for personalization and activity reads
        predictive: ROI / insight collaborator (optional)
        user_id: Requesting brand user, enables intent and personalization
        limit: Max results, defaults to MATCH_RESULT_LIMIT
        now: Reference time for activity checks

    Returns:
        Top results, descending by match score
    """
    if limit is None:
        limit = settings.MATCH_RESULT_LIMIT
    cap = settings.MATCH_CANDIDATE_CAP
    if len(candidates) > cap:
        logger.warning(
            "Candidate list truncated to cap before scoring",
            request_id=request.request_id,
            received=len(candidates),
            cap=cap,
        )
        candidates = candidates[:cap]

    if not candidates:
        return []

    context = await load_ranking_context(store, user_id)
    semaphore = asyncio.Semaphore(settings.scoring_concurrency())

    async def _bounded(creator: CreatorCandidate) -> MatchResult:
        async with semaphore:
            return await _score_candidate(creator, request, context, store, predictive, now)

    results = await asyncio.gather(*(_bounded(creator) for creator in candidates))

    ranked = sorted(results, key=lambda result: result.match_score, reverse=True)
    top = ranked[:limit]

    logger.info(
        "Creators ranked",
        request_id=request.request_id,
        user_id=user_id,
        scored=len(results),
        returned=len(top),
        top_score=top[0].match_score if top else None,
    )
    return top


async def _score_candidate(
    creator: CreatorCandidate,
    request: CampaignRequest,
    context: RankingContext,
    store: MatchStore,
    predictive: PredictiveService | None,
    now: datetime | None,
) -> MatchResult:
    roi, insight = await _fetch_external_scores(predictive, creator.creator_id, request)

    sub_scores = compute_sub_scores(
        creator,
        request,
        recent_categories=context.recent_categories,
        history=context.history,
        roi=roi,
        insight=insight,
    )
    match_score = aggregate_score(sub_scores)
    likelihood = await estimate_response_likelihood(
        store, creator.creator_id, creator.user_id, now=now
    )

    return MatchResult(
        creator=creator,
        sub_scores=sub_scores,
        match_score=match_score,
        confidence_level=classify_confidence(match_score),
        match_reasons=generate_reasons(sub_scores, match_score),
        response_likelihood=likelihood,
        location_status=location_status(
            creator.location, request.location, request.location_type
        ),
        budget_value_status=budget_value_status(creator.price_range, request.budget_range),
    )


async def _fetch_external_scores(
    predictive: PredictiveService | None, creator_id: str, request: CampaignRequest
) -> tuple[float | None, float | None]:
    """ROI and insight from the predictive collaborator; failures become None."""
    if predictive is None:
        return None, None

    roi: float | None = None
    try:
        prediction = await predictive.predict_roi(creator_id, request)
        roi = prediction.roi if prediction else None
    except Exception as e:
        logger.warning("ROI prediction failed - using 0", creator_id=creator_id, error=str(e))

    return roi, await _fetch_insight(predictive, creator_id)


async def _fetch_insight(predictive: PredictiveService | None, creator_id: str) -> float | None:
    if predictive is None:
        return None
    try:
        return await predictive.insight_score(creator_id)
    except Exception as e:
        logger.warning("Insight score failed - using neutral", creator_id=creator_id, error=str(e))
        return None


async def explain_match(
    creator_id: str,
    request: CampaignRequest,
    *,
    store: MatchStore,
    predictive: PredictiveService | None = None,
) -> MatchExplanation | None:
    """
    Score breakdown for a single creator, for transparency and debugging.

    Uses a reduced factor set and is not used for ranking.

    Returns:
        MatchExplanation, or None if the creator does not exist
    """
    creator = await store.get_creator(creator_id)
    if creator is None:
        logger.warning("Explain requested for unknown creator", creator_id=creator_id)
        return None

    insight = await _fetch_insight(predictive, creator_id)

    scores = {
        Factor.ENGAGEMENT_RATE: engagement_score(creator.engagement_rate, creator.follower_count),
        Factor.NICHE_SIMILARITY: niche_similarity(
            creator.category, request.target_category, creator.secondary_categories
        ),
        Factor.PRICE_COMPATIBILITY: price_compatibility(creator.price_range, request.budget_range),
        Factor.INSIGHT_SCORE: normalized_external_score(insight, fallback=NEUTRAL_SCORE),
        Factor.AVAILABILITY_MATCH: availability_match(creator.availability_status),
        Factor.TRACK_RECORD: track_record_score(
            creator.successful_promotions, creator.average_rating
        ),
        Factor.RELIABILITY: reliability_sub_score(creator.reliability_score),
    }

    breakdown = {}
    for factor in EXPLAIN_FACTORS:
        weight = MATCH_WEIGHTS[factor.value]
        breakdown[factor.value] = FactorBreakdown(
            score=scores[factor],
            weight=weight,
            contribution=scores[factor] * weight,
        )

    return MatchExplanation(
        creator_id=creator_id,
        match_score=round(sum(item.contribution for item in breakdown.values())),
        breakdown=breakdown,
    )
