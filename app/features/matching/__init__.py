"""
Creator matching feature package.

Scoring factors, weight aggregation, confidence and reasons live under
pipeline/scoring; the filter -> score -> sort pipeline under
pipeline/ranking; responsiveness estimation under services.
"""

from .pipeline.ranking.service import explain_match, filter_candidates, rank_creators  # noqa: F401
from .services.response_likelihood import estimate_response_likelihood  # noqa: F401
