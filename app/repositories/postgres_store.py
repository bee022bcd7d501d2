"""
PostgreSQL-backed MatchStore.

Collaboration rows carry a `version` column; every update is conditional on
the version the caller read, so two racing writers cannot both succeed.
Status history, deliverables, milestones and feedback are stored as JSONB.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from psycopg.types.json import Jsonb

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, with_db_retry
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger
from app.models.domain.collaboration_domain import (
    Collaboration,
    CollaborationFeedback,
    PartyRole,
    StatusHistoryEntry,
)
from app.models.domain.creator_domain import (
    CreatorCandidate,
    InvitationRecord,
    Location,
    MatchFeedback,
    PriceRange,
    UserIntent,
)
from app.services.store import CandidateFilter, ConcurrentUpdateError, StoreError

logger = get_logger(__name__)


class PostgresStore:
    """MatchStore over the application's PostgreSQL schema."""

    CREATOR_SELECT = """
        SELECT
            c.id, c.user_id, c.display_name, c.follower_count, c.engagement_rate,
            c.category, c.secondary_categories, c.district, c.city, c.state,
            c.willing_to_travel, c.price_min, c.price_max, c.collaboration_types,
            c.promotion_types, c.availability_status, c.is_available,
            c.successful_promotions, c.average_rating, c.ai_score,
            COALESCE(r.score, 1.0) AS reliability_score
        FROM creators c
        LEFT JOIN reliability_scores r
            ON r.user_id = c.user_id AND r.role = 'CREATOR'
    """

    COLLABORATION_COLUMNS = """
        id, match_id, seller_id, creator_id, creator_user_id, status,
        status_history, status_updated_at, version, start_date, end_date,
        completed_at, deliverables, milestones, seller_feedback, creator_feedback
    """

    UPDATABLE_COLUMNS = frozenset(
        {
            "status",
            "status_history",
            "status_updated_at",
            "start_date",
            "end_date",
            "completed_at",
            "deliverables",
            "milestones",
            "seller_feedback",
            "creator_feedback",
        }
    )

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_creator(row: dict) -> CreatorCandidate:
        has_location = any(row.get(key) for key in ("district", "city", "state"))
        has_price = row.get("price_min") is not None and row.get("price_max") is not None

        return CreatorCandidate(
            creator_id=str(row["id"]),
            user_id=str(row["user_id"]) if row.get("user_id") else None,
            display_name=row.get("display_name"),
            follower_count=row.get("follower_count") or 0,
            engagement_rate=float(row.get("engagement_rate") or 0),
            category=row.get("category"),
            secondary_categories=list(row.get("secondary_categories") or []),
            location=(
                Location(district=row.get("district"), city=row.get("city"), state=row.get("state"))
                if has_location
                else None
            ),
            willing_to_travel=row.get("willing_to_travel"),
            price_range=(
                PriceRange(min=float(row["price_min"]), max=float(row["price_max"]))
                if has_price
                else None
            ),
            collaboration_types=list(row.get("collaboration_types") or []),
            promotion_types=list(row.get("promotion_types") or []),
            availability_status=row.get("availability_status"),
            is_available=bool(row.get("is_available", True)),
            reliability_score=float(row["reliability_score"]),
            successful_promotions=row.get("successful_promotions") or 0,
            average_rating=float(row.get("average_rating") or 0),
            ai_score=float(row["ai_score"]) if row.get("ai_score") is not None else None,
        )

    @staticmethod
    def _row_to_collaboration(row: dict | None) -> Collaboration | None:
        if not row:
            return None

        return Collaboration(
            id=str(row["id"]),
            match_id=str(row["match_id"]),
            seller_id=str(row["seller_id"]),
            creator_id=str(row["creator_id"]),
            creator_user_id=str(row["creator_user_id"]),
            status=row["status"],
            status_history=tuple(
                StatusHistoryEntry.model_validate(entry) for entry in row.get("status_history") or []
            ),
            status_updated_at=row.get("status_updated_at"),
            version=row["version"],
            start_date=row.get("start_date"),
            end_date=row.get("end_date"),
            completed_at=row.get("completed_at"),
            deliverables=tuple(row.get("deliverables") or ()),
            milestones=tuple(row.get("milestones") or ()),
            seller_feedback=(
                CollaborationFeedback.model_validate(row["seller_feedback"])
                if row.get("seller_feedback")
                else None
            ),
            creator_feedback=(
                CollaborationFeedback.model_validate(row["creator_feedback"])
                if row.get("creator_feedback")
                else None
            ),
        )

    @staticmethod
    def _to_db_value(column: str, value: Any) -> Any:
        if value is None:
            return None
        if column == "status":
            return getattr(value, "value", value)
        if column == "status_history":
            return Jsonb([entry.model_dump(mode="json") for entry in value])
        if column in ("deliverables", "milestones"):
            return Jsonb(list(value))
        if column in ("seller_feedback", "creator_feedback"):
            return Jsonb(value.model_dump(mode="json"))
        return value

    # ------------------------------------------------------------------
    # Creators and ranking signals
    # ------------------------------------------------------------------

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_candidates(
        self, candidate_filter: CandidateFilter, limit: int
    ) -> list[CreatorCandidate]:
        clauses: list[str] = []
        params: list[Any] = []

        if candidate_filter.is_available:
            clauses.append("c.is_available = true")
        if candidate_filter.min_followers is not None:
            clauses.append("c.follower_count >= %s")
            params.append(candidate_filter.min_followers)
        if candidate_filter.max_followers is not None:
            clauses.append("c.follower_count <= %s")
            params.append(candidate_filter.max_followers)
        if candidate_filter.category:
            clauses.append("c.category = %s")
            params.append(candidate_filter.category)
        if candidate_filter.promotion_type:
            clauses.append("%s = ANY(c.promotion_types)")
            params.append(candidate_filter.promotion_type)
        if candidate_filter.max_price is not None:
            clauses.append("(c.price_min IS NULL OR c.price_min <= %s)")
            params.append(candidate_filter.max_price)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        query = f"{self.CREATOR_SELECT} {where} ORDER BY c.id LIMIT %s"
        params.append(limit)

        rows = await fetch_all(query, tuple(params))
        return [self._row_to_creator(row) for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_creator(self, creator_id: str) -> CreatorCandidate | None:
        row = await fetch_one(f"{self.CREATOR_SELECT} WHERE c.id = %s", (creator_id,))
        return self._row_to_creator(row) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_user_intent(self, user_id: str) -> UserIntent | None:
        row = await fetch_one(
            "SELECT user_id, recent_categories FROM user_search_intents WHERE user_id = %s",
            (user_id,),
        )
        if not row:
            return None
        return UserIntent(
            user_id=str(row["user_id"]), recent_categories=list(row["recent_categories"] or [])
        )

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_match_feedback(self, user_id: str, limit: int) -> list[MatchFeedback]:
        query = """
            SELECT user_id, creator_id, action, created_at
            FROM match_feedback
            WHERE user_id = %s
            ORDER BY created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [
            MatchFeedback(
                user_id=str(row["user_id"]),
                creator_id=str(row["creator_id"]),
                action=row["action"],
                created_at=row.get("created_at"),
            )
            for row in rows
        ]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_last_login(self, user_id: str) -> datetime | None:
        row = await fetch_one("SELECT last_login_at FROM users WHERE id = %s", (user_id,))
        return row["last_login_at"] if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_recent_invitations(
        self, creator_id: str, statuses: Sequence[str], limit: int
    ) -> list[InvitationRecord]:
        query = """
            SELECT creator_id, status, responded_at, applied_at
            FROM creator_invitations
            WHERE creator_id = %s AND status = ANY(%s)
            ORDER BY created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (creator_id, list(statuses), limit))
        return [
            InvitationRecord(
                creator_id=str(row["creator_id"]),
                status=row["status"],
                responded_at=row.get("responded_at"),
                applied_at=row.get("applied_at"),
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Collaborations
    # ------------------------------------------------------------------

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_collaboration(self, collaboration_id: str) -> Collaboration | None:
        row = await fetch_one(
            f"SELECT {self.COLLABORATION_COLUMNS} FROM collaborations WHERE id = %s",
            (collaboration_id,),
        )
        return self._row_to_collaboration(row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_collaboration_by_match(self, match_id: str) -> Collaboration | None:
        row = await fetch_one(
            f"SELECT {self.COLLABORATION_COLUMNS} FROM collaborations WHERE match_id = %s",
            (match_id,),
        )
        return self._row_to_collaboration(row)

    async def create_collaboration(self, collaboration: Collaboration) -> Collaboration:
        query = f"""
            INSERT INTO collaborations (
                id, match_id, seller_id, creator_id, creator_user_id, status,
                status_history, status_updated_at, version, deliverables, milestones
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {self.COLLABORATION_COLUMNS}
        """
        params = (
            collaboration.id,
            collaboration.match_id,
            collaboration.seller_id,
            collaboration.creator_id,
            collaboration.creator_user_id,
            collaboration.status.value,
            self._to_db_value("status_history", collaboration.status_history),
            collaboration.status_updated_at,
            collaboration.version,
            self._to_db_value("deliverables", collaboration.deliverables),
            self._to_db_value("milestones", collaboration.milestones),
        )

        row = await fetch_one(query, params)
        if not row:
            raise DatabaseError("Failed to create collaboration", operation="create_collaboration")

        logger.info(
            "Collaboration row created",
            collaboration_id=collaboration.id,
            match_id=collaboration.match_id,
        )
        return self._row_to_collaboration(row)

    async def update_collaboration(
        self, collaboration_id: str, patch: dict[str, Any], expected_version: int
    ) -> Collaboration:
        """
        Conditional update: applies only if the row is still at expected_version.

        Raises:
            ConcurrentUpdateError: The row moved past expected_version
            StoreError: Unknown columns or missing row
        """
        unknown = set(patch) - self.UPDATABLE_COLUMNS
        if unknown:
            raise StoreError(
                f"Cannot update columns: {', '.join(sorted(unknown))}",
                operation="update_collaboration",
            )

        columns = sorted(patch)
        assignments = ", ".join(f"{column} = %s" for column in columns)
        query = f"""
            UPDATE collaborations
            SET {assignments}, version = version + 1, updated_at = NOW()
            WHERE id = %s AND version = %s
            RETURNING {self.COLLABORATION_COLUMNS}
        """
        params = tuple(self._to_db_value(column, patch[column]) for column in columns) + (
            collaboration_id,
            expected_version,
        )

        row = await fetch_one(query, params)
        if row:
            return self._row_to_collaboration(row)

        exists = await fetch_one("SELECT version FROM collaborations WHERE id = %s", (collaboration_id,))
        if not exists:
            raise StoreError(
                f"Collaboration {collaboration_id} not found", operation="update_collaboration"
            )
        raise ConcurrentUpdateError(collaboration_id, expected_version)

    # ------------------------------------------------------------------
    # Reliability
    # ------------------------------------------------------------------

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_reliability(self, user_id: str, role: PartyRole) -> float | None:
        row = await fetch_one(
            "SELECT score FROM reliability_scores WHERE user_id = %s AND role = %s",
            (user_id, PartyRole(role).value),
        )
        return float(row["score"]) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def set_reliability(self, user_id: str, role: PartyRole, score: float) -> None:
        query = """
            INSERT INTO reliability_scores (user_id, role, score, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (user_id, role)
            DO UPDATE SET score = EXCLUDED.score, updated_at = NOW()
        """
        await execute_query(query, (user_id, PartyRole(role).value, score))

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def adjust_reliability(
        self,
        user_id: str,
        role: PartyRole,
        adjust: Callable[[float], float],
        *,
        default: float,
    ) -> tuple[float, float]:
        """
        Read-modify-write of one record inside a single transaction.

        The row is created at `default` if missing, then locked with
        FOR UPDATE, so writers in other processes queue behind this one.
        """
        role_value = PartyRole(role).value
        async with db_pool.connection() as conn:
            async with conn.transaction():
                await execute_query(
                    """
                    INSERT INTO reliability_scores (user_id, role, score, updated_at)
                    VALUES (%s, %s, %s, NOW())
                    ON CONFLICT (user_id, role) DO NOTHING
                    """,
                    (user_id, role_value, default),
                    connection=conn,
                )
                row = await fetch_one(
                    """
                    SELECT score FROM reliability_scores
                    WHERE user_id = %s AND role = %s
                    FOR UPDATE
                    """,
                    (user_id, role_value),
                    connection=conn,
                )
                previous = float(row["score"]) if row else default
                new = adjust(previous)
                await execute_query(
                    """
                    UPDATE reliability_scores
                    SET score = %s, updated_at = NOW()
                    WHERE user_id = %s AND role = %s
                    """,
                    (new, user_id, role_value),
                    connection=conn,
                )
        return previous, new
