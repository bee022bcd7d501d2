"""
Fixed weight table for combining sub-scores into a match score.

The table is checked at import: the weights must sum to 1.0.
"""

from collections.abc import Mapping
from types import MappingProxyType

from .factors import Factor

WEIGHT_SUM_TOLERANCE = 1e-6

MATCH_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        Factor.ENGAGEMENT_RATE.value: 0.11,
        Factor.NICHE_SIMILARITY.value: 0.11,
        Factor.PRICE_COMPATIBILITY.value: 0.11,
        Factor.LOCATION_MATCH.value: 0.08,
        Factor.CAMPAIGN_TYPE_MATCH.value: 0.08,
        Factor.RELIABILITY.value: 0.08,
        Factor.AVAILABILITY_MATCH.value: 0.08,
        Factor.PREDICTED_ROI.value: 0.07,
        Factor.TRACK_RECORD.value: 0.07,
        Factor.INSIGHT_SCORE.value: 0.07,
        Factor.INTENT_MATCH.value: 0.07,
        Factor.PERSONALIZATION.value: 0.07,
    }
)


def validate_weights(weights: Mapping[str, float]) -> None:
    """Raise ValueError unless weights cover every factor and sum to 1.0."""
    missing = {factor.value for factor in Factor} - set(weights)
    if missing:
        raise ValueError(f"Weight table missing factors: {', '.join(sorted(missing))}")

    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
        raise ValueError(f"Weight table must sum to 1.0, got {total:.8f}")


def aggregate_score(sub_scores: Mapping[str, int], weights: Mapping[str, float] = MATCH_WEIGHTS) -> int:
    """
    Weighted sum of sub-scores, rounded to an int.

    Reliability can contribute up to 150 * weight, so highly reliable creators
    may legitimately land above 100.
    """
    return round(sum(sub_scores[factor] * weight for factor, weight in weights.items()))


validate_weights(MATCH_WEIGHTS)
