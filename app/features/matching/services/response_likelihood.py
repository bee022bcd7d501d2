"""
Response likelihood - how likely a creator is to answer an invite.

Derived from two signals:
1. Recent activity (last login inside the activity window)
2. The creator's most recent invite / match rows
"""

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.match_domain import LikelihoodType, ResponseLikelihood
from app.services.store import MatchStore, StoreError

logger = get_logger(__name__)

CONSIDERED_STATUSES = ("INVITED", "MATCHED", "ACCEPTED", "REJECTED")
ANSWERED_STATUSES = frozenset({"ACCEPTED", "REJECTED"})
MIN_INTERACTIONS = 3

LIMITED_ACTIVITY = ResponseLikelihood(
    label="Limited recent activity",
    type=LikelihoodType.LOW,
    description="Has not been active recently. Response may be delayed.",
)
NEW_TO_PLATFORM = ResponseLikelihood(
    label="New to platform",
    type=LikelihoodType.NEUTRAL,
    description="New creator. Be their first collaboration!",
)
USUALLY_RESPONDS = ResponseLikelihood(
    label="Usually responds",
    type=LikelihoodType.HIGH,
    description="Highly responsive to collaboration requests.",
)
RESPONDS_SOMETIMES = ResponseLikelihood(
    label="Responds sometimes",
    type=LikelihoodType.MEDIUM,
    description="Sometimes responds to relevant campaigns.",
)
SELECTIVE = ResponseLikelihood(
    label="Selective",
    type=LikelihoodType.LOW,
    description="Very selective with collaborations.",
)
UNKNOWN = ResponseLikelihood(
    label="Unknown",
    type=LikelihoodType.NEUTRAL,
    description="Responsiveness could not be determined.",
)


async def estimate_response_likelihood(
    store: MatchStore,
    creator_id: str,
    user_id: str | None,
    *,
    now: datetime | None = None,
) -> ResponseLikelihood:
    """
    Estimate a creator's responsiveness.

    Args:
        store: Store to read login activity and invitation history from
        creator_id: Creator profile id (keys the invitation history)
        user_id: The creator's user id (keys login activity)
        now: Reference time, defaults to the current UTC time

    Returns:
        ResponseLikelihood label; "Unknown" if the store could not be read
    """
    now = _as_utc(now or datetime.now(UTC))

    try:
        last_login = await store.get_last_login(user_id) if user_id else None
        window = timedelta(days=settings.RESPONSE_ACTIVITY_WINDOW_DAYS)
        if last_login is None or now - _as_utc(last_login) > window:
            return LIMITED_ACTIVITY

        interactions = await store.get_recent_invitations(
            creator_id, CONSIDERED_STATUSES, settings.RESPONSE_HISTORY_LIMIT
        )
    except StoreError as e:
        logger.warning(
            "Response likelihood unavailable - store read failed",
            creator_id=creator_id,
            error=str(e),
        )
        return UNKNOWN

    if len(interactions) < MIN_INTERACTIONS:
        return NEW_TO_PLATFORM

    responded = sum(
        1
        for interaction in interactions
        if interaction.responded_at is not None or interaction.status in ANSWERED_STATUSES
    )
    response_rate = responded / len(interactions)

    if response_rate >= 0.70:
        return USUALLY_RESPONDS
    if response_rate >= 0.40:
        return RESPONDS_SOMETIMES
    return SELECTIVE


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    return value if value.tzinfo else value.replace(tzinfo=UTC)
