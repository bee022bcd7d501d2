"""
Pipeline components for creator matching.
"""

__all__ = ["ranking", "scoring"]
