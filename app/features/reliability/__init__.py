"""
Reliability ledger feature package.
"""

from .ledger import (
    SCORE_CHANGES,
    apply_collaboration_outcome,
    apply_reliability_event,
    clamp_score,
    get_reliability_level,
    record_application_rejected,
    record_invite_declined,
    record_positive_feedback,
)

__all__ = [
    "SCORE_CHANGES",
    "apply_collaboration_outcome",
    "apply_reliability_event",
    "clamp_score",
    "get_reliability_level",
    "record_application_rejected",
    "record_invite_declined",
    "record_positive_feedback",
]
