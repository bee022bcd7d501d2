"""
In-process MatchStore implementation.

Holds creators, interaction signals, collaborations and reliability records in
dicts. Collaboration updates are version-checked the same way PostgresStore
checks them, so concurrency behaviour is identical across backends.
"""

from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from app.models.domain.collaboration_domain import Collaboration, PartyRole
from app.models.domain.creator_domain import (
    CreatorCandidate,
    InvitationRecord,
    MatchFeedback,
    UserIntent,
)
from app.services.store import CandidateFilter, ConcurrentUpdateError, StoreError


class InMemoryStore:
    def __init__(self):
        self.creators: dict[str, CreatorCandidate] = {}
        self.intents: dict[str, UserIntent] = {}
        self.feedback: dict[str, list[MatchFeedback]] = defaultdict(list)
        self.last_logins: dict[str, datetime] = {}
        self.invitations: dict[str, list[InvitationRecord]] = defaultdict(list)
        self.collaborations: dict[str, Collaboration] = {}
        self.reliability: dict[tuple[str, PartyRole], float] = {}

    # ------------------------------------------------------------------
    # Seeding helpers
    # ------------------------------------------------------------------

    def add_creator(self, creator: CreatorCandidate) -> None:
        self.creators[creator.creator_id] = creator
        if creator.user_id:
            self.reliability.setdefault(
                (creator.user_id, PartyRole.CREATOR), creator.reliability_score
            )

    def record_feedback(self, feedback: MatchFeedback) -> None:
        """Append to a user's history; newest entries are kept first."""
        self.feedback[feedback.user_id].insert(0, feedback)

    def record_invitation(self, invitation: InvitationRecord) -> None:
        self.invitations[invitation.creator_id].insert(0, invitation)

    # ------------------------------------------------------------------
    # MatchStore
    # ------------------------------------------------------------------

    async def find_candidates(
        self, candidate_filter: CandidateFilter, limit: int
    ) -> list[CreatorCandidate]:
        matches = [
            self._with_current_reliability(creator)
            for creator in self.creators.values()
            if self._passes_filter(creator, candidate_filter)
        ]
        return matches[:limit]

    def _with_current_reliability(self, creator: CreatorCandidate) -> CreatorCandidate:
        # Reliability lives in the ledger; surface the current value
        if not creator.user_id:
            return creator
        score = self.reliability.get((creator.user_id, PartyRole.CREATOR))
        if score is None or score == creator.reliability_score:
            return creator
        return creator.model_copy(update={"reliability_score": score})

    @staticmethod
    def _passes_filter(creator: CreatorCandidate, f: CandidateFilter) -> bool:
        if f.is_available and not creator.is_available:
            return False
        if f.min_followers is not None and creator.follower_count < f.min_followers:
            return False
        if f.max_followers is not None and creator.follower_count > f.max_followers:
            return False
        if f.category and creator.category != f.category:
            return False
        if f.promotion_type and f.promotion_type not in creator.promotion_types:
            return False
        if (
            f.max_price is not None
            and creator.price_range is not None
            and creator.price_range.min > f.max_price
        ):
            return False
        return True

    async def get_creator(self, creator_id: str) -> CreatorCandidate | None:
        creator = self.creators.get(creator_id)
        if creator is None:
            return None
        return self._with_current_reliability(creator)

    async def get_user_intent(self, user_id: str) -> UserIntent | None:
        return self.intents.get(user_id)

    async def get_match_feedback(self, user_id: str, limit: int) -> list[MatchFeedback]:
        return list(self.feedback.get(user_id, [])[:limit])

    async def get_last_login(self, user_id: str) -> datetime | None:
        return self.last_logins.get(user_id)

    async def get_recent_invitations(
        self, creator_id: str, statuses: Sequence[str], limit: int
    ) -> list[InvitationRecord]:
        rows = [row for row in self.invitations.get(creator_id, []) if row.status in statuses]
        return rows[:limit]

    async def get_collaboration(self, collaboration_id: str) -> Collaboration | None:
        return self.collaborations.get(collaboration_id)

    async def get_collaboration_by_match(self, match_id: str) -> Collaboration | None:
        for collaboration in self.collaborations.values():
            if collaboration.match_id == match_id:
                return collaboration
        return None

    async def create_collaboration(self, collaboration: Collaboration) -> Collaboration:
        if collaboration.id in self.collaborations:
            raise StoreError(
                f"Collaboration {collaboration.id} already exists", operation="create_collaboration"
            )
        self.collaborations[collaboration.id] = collaboration
        return collaboration

    async def update_collaboration(
        self, collaboration_id: str, patch: dict[str, Any], expected_version: int
    ) -> Collaboration:
        current = self.collaborations.get(collaboration_id)
        if current is None:
            raise StoreError(
                f"Collaboration {collaboration_id} not found", operation="update_collaboration"
            )
        if current.version != expected_version:
            raise ConcurrentUpdateError(collaboration_id, expected_version)

        updated = current.model_copy(update={**patch, "version": current.version + 1})
        self.collaborations[collaboration_id] = updated
        return updated

    async def get_reliability(self, user_id: str, role: PartyRole) -> float | None:
        return self.reliability.get((user_id, PartyRole(role)))

    async def set_reliability(self, user_id: str, role: PartyRole, score: float) -> None:
        self.reliability[(user_id, PartyRole(role))] = score

    async def adjust_reliability(
        self,
        user_id: str,
        role: PartyRole,
        adjust: Callable[[float], float],
        *,
        default: float,
    ) -> tuple[float, float]:
        # No await between read and write
        key = (user_id, PartyRole(role))
        previous = self.reliability.get(key, default)
        self.reliability[key] = new = adjust(previous)
        return previous, new
