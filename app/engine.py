"""
Public entry points of the matching and collaboration core.

Each function takes its collaborators explicitly (store, predictive service,
notifier); nothing here holds state between calls.
"""

import asyncio
from collections.abc import Sequence

from structlog.contextvars import bound_contextvars

from app.config import settings
from app.features.collaboration.service import TransitionResult, transition_collaboration
from app.features.matching.pipeline.ranking.service import (
    explain_match,
    filter_candidates,
    rank_creators,
)
from app.features.matching.services.response_likelihood import (
    estimate_response_likelihood as _estimate_response_likelihood,
)
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.models.domain.collaboration_domain import CollaborationStatus
from app.models.domain.creator_domain import CampaignRequest, CreatorCandidate
from app.models.domain.match_domain import MatchExplanation, MatchResult, ResponseLikelihood
from app.services.notification_service import NotificationService
from app.services.predictive_service import PredictiveService
from app.services.store import MatchStore

logger = get_logger(__name__)


def configure_logging(log_level: str | None = None) -> None:
    """Install structured logging for an embedding process."""
    setup_logging(log_level=log_level or settings.LOG_LEVEL)
    logger.info("Creator matching core configured", environment=settings.environment)


async def rank(
    request: CampaignRequest,
    candidates: Sequence[CreatorCandidate],
    *,
    store: MatchStore,
    predictive: PredictiveService | None = None,
    user_id: str | None = None,
    timeout: float | None = None,
) -> list[MatchResult]:
    """
    Rank candidates for a request, top results first.

    With a timeout the whole pipeline is bounded; on expiry TimeoutError is
    raised and no partial ranking is returned.
    """
    pipeline = rank_creators(
        candidates, request, store=store, predictive=predictive, user_id=user_id
    )
    with bound_contextvars(request_id=request.request_id):
        if timeout is None:
            return await pipeline
        try:
            return await asyncio.wait_for(pipeline, timeout=timeout)
        except TimeoutError:
            logger.warning("Ranking timed out", timeout=timeout)
            raise


async def find_and_rank(
    request: CampaignRequest,
    *,
    store: MatchStore,
    predictive: PredictiveService | None = None,
    user_id: str | None = None,
    timeout: float | None = None,
) -> list[MatchResult]:
    """Filter the store for eligible creators, then rank them."""

    async def _run() -> list[MatchResult]:
        candidates = await filter_candidates(store, request)
        return await rank_creators(
            candidates, request, store=store, predictive=predictive, user_id=user_id
        )

    with bound_contextvars(request_id=request.request_id):
        if timeout is None:
            return await _run()
        try:
            return await asyncio.wait_for(_run(), timeout=timeout)
        except TimeoutError:
            logger.warning("Find and rank timed out", timeout=timeout)
            raise


async def explain(
    creator_id: str,
    request: CampaignRequest,
    *,
    store: MatchStore,
    predictive: PredictiveService | None = None,
) -> MatchExplanation | None:
    return await explain_match(creator_id, request, store=store, predictive=predictive)


async def transition(
    collaboration_id: str,
    new_status: CollaborationStatus | str,
    actor_id: str | None,
    *,
    store: MatchStore,
    notifier: NotificationService | None = None,
) -> TransitionResult:
    return await transition_collaboration(
        store, collaboration_id, new_status, actor_id, notifier=notifier
    )


async def estimate_response_likelihood(
    creator_id: str, user_id: str | None, *, store: MatchStore
) -> ResponseLikelihood:
    return await _estimate_response_likelihood(store, creator_id, user_id)
