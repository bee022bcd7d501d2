"""
Store interface consumed by the matching, collaboration and reliability code.

Any object implementing MatchStore can back the core: InMemoryStore for local
runs and tests, PostgresStore for deployments.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from app.models.domain.collaboration_domain import Collaboration, PartyRole
from app.models.domain.creator_domain import (
    CreatorCandidate,
    InvitationRecord,
    MatchFeedback,
    UserIntent,
)


class StoreError(Exception):
    """Raised by store implementations when the backing storage fails."""

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class ConcurrentUpdateError(StoreError):
    """The row changed since it was read (optimistic version check failed)."""

    def __init__(self, collaboration_id: str, expected_version: int):
        super().__init__(
            f"Collaboration {collaboration_id} was modified concurrently "
            f"(expected version {expected_version})",
            operation="update_collaboration",
        )
        self.collaboration_id = collaboration_id
        self.expected_version = expected_version


@dataclass(frozen=True, slots=True)
class CandidateFilter:
    """Hard constraints applied by the store before any scoring happens."""

    is_available: bool = True
    min_followers: int | None = None
    max_followers: int | None = None
    category: str | None = None
    promotion_type: str | None = None
    max_price: float | None = None


class MatchStore(Protocol):
    async def find_candidates(
        self, candidate_filter: CandidateFilter, limit: int
    ) -> list[CreatorCandidate]: ...

    async def get_creator(self, creator_id: str) -> CreatorCandidate | None: ...

    async def get_user_intent(self, user_id: str) -> UserIntent | None: ...

    async def get_match_feedback(self, user_id: str, limit: int) -> list[MatchFeedback]: ...

    async def get_last_login(self, user_id: str) -> datetime | None: ...

    async def get_recent_invitations(
        self, creator_id: str, statuses: Sequence[str], limit: int
    ) -> list[InvitationRecord]: ...

    async def get_collaboration(self, collaboration_id: str) -> Collaboration | None: ...

    async def get_collaboration_by_match(self, match_id: str) -> Collaboration | None: ...

    async def create_collaboration(self, collaboration: Collaboration) -> Collaboration: ...

    async def update_collaboration(
        self, collaboration_id: str, patch: dict[str, Any], expected_version: int
    ) -> Collaboration: ...

    async def get_reliability(self, user_id: str, role: PartyRole) -> float | None: ...

    async def set_reliability(self, user_id: str, role: PartyRole, score: float) -> None: ...

    async def adjust_reliability(
        self,
        user_id: str,
        role: PartyRole,
        adjust: Callable[[float], float],
        *,
        default: float,
    ) -> tuple[float, float]:
        """Atomically replace the score with adjust(score); returns (previous, new)."""
        ...
