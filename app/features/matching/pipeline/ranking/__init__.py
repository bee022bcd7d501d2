"""
Ranking package - filter, score, sort, truncate.
"""

from .service import explain_match, filter_candidates, rank_creators

__all__ = ["explain_match", "filter_candidates", "rank_creators"]
