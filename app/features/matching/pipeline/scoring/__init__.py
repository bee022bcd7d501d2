"""
Match scoring package.

Per-factor sub-scores, the fixed weight table, confidence tiers and
human-readable reasons.
"""

from .confidence import classify_confidence
from .factors import Factor, compute_sub_scores
from .reasons import generate_reasons
from .weights import MATCH_WEIGHTS, aggregate_score

__all__ = [
    "Factor",
    "MATCH_WEIGHTS",
    "aggregate_score",
    "classify_confidence",
    "compute_sub_scores",
    "generate_reasons",
]
