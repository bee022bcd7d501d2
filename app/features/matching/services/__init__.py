"""
Service layer for creator matching.
"""

from .response_likelihood import estimate_response_likelihood

__all__ = ["estimate_response_likelihood"]
