"""
Human-readable match reasons.

Rules are evaluated in a fixed order against one candidate's own sub-scores
and total; the first three that fire are kept.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .factors import Factor

MAX_REASONS = 3
FALLBACK_REASON = "Solid overall fit for this campaign"


@dataclass(frozen=True, slots=True)
class ReasonRule:
    name: str
    applies: Callable[[Mapping[str, int], int], bool]
    text: str


def _factor(factor: Factor, predicate: Callable[[int], bool]) -> Callable[[Mapping[str, int], int], bool]:
    return lambda scores, total: predicate(scores.get(factor.value, 0))


REASON_RULES: tuple[ReasonRule, ...] = (
    ReasonRule("top_match", lambda scores, total: total >= 85, "Highly relevant for this campaign"),
    ReasonRule(
        "niche_expert",
        _factor(Factor.NICHE_SIMILARITY, lambda s: s > 90),
        "Niche expert in your target category",
    ),
    ReasonRule(
        "under_budget",
        _factor(Factor.PRICE_COMPATIBILITY, lambda s: s >= 90),
        "Priced comfortably within your budget",
    ),
    ReasonRule(
        "elite_trust",
        _factor(Factor.RELIABILITY, lambda s: s >= 110),
        "Elite trust record on past collaborations",
    ),
    ReasonRule(
        "developing_history",
        _factor(Factor.RELIABILITY, lambda s: s < 85),
        "Still building a collaboration history",
    ),
    ReasonRule(
        "nearby",
        _factor(Factor.LOCATION_MATCH, lambda s: s >= 90),
        "Based in or near your campaign location",
    ),
    ReasonRule(
        "format_fit",
        _factor(Factor.CAMPAIGN_TYPE_MATCH, lambda s: s >= 100),
        "Works in this campaign format",
    ),
    ReasonRule(
        "search_intent",
        _factor(Factor.INTENT_MATCH, lambda s: s >= 75),
        "Matches what you have been searching for",
    ),
    ReasonRule(
        "past_engagement",
        _factor(Factor.PERSONALIZATION, lambda s: s >= 70),
        "You have engaged with this creator before",
    ),
    ReasonRule(
        "strong_engagement",
        _factor(Factor.ENGAGEMENT_RATE, lambda s: s >= 80),
        "Engagement well above their follower tier",
    ),
)


def generate_reasons(sub_scores: Mapping[str, int], match_score: int) -> list[str]:
    reasons = [rule.text for rule in REASON_RULES if rule.applies(sub_scores, match_score)]
    if not reasons:
        return [FALLBACK_REASON]
    return reasons[:MAX_REASONS]
