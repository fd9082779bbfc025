"""
Persistence layer for LP snapshots (lp_snapshots table).

Insert-only. The unique index on (puuid, game_id, snapshot_type) turns a
repeated write into a no-op that is reported as a conflict.
"""

from ladder_tracker.db.helpers import DatabaseError, fetch_all, fetch_one
from ladder_tracker.features.lp_tracking.domain import (
    LpSnapshot,
    SnapshotType,
    SnapshotWriteOutcome,
    SnapshotWriteResult,
)
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class LpSnapshotRepository:
    """Insert and read LP snapshots."""

    SNAPSHOT_SELECT_COLUMNS = """
        user_id, puuid, game_id, snapshot_type, tier, rank,
        league_points, wins, losses, queue_type, created_at
    """

    @classmethod
    def _row_to_snapshot(cls, row: dict | None) -> LpSnapshot | None:
        if not row:
            return None

        return LpSnapshot(
            user_id=str(row["user_id"]),
            puuid=row["puuid"],
            game_id=str(row["game_id"]),
            snapshot_type=SnapshotType(row["snapshot_type"]),
            tier=row["tier"],
            rank=row["rank"],
            league_points=row["league_points"],
            wins=row["wins"],
            losses=row["losses"],
            queue_type=row["queue_type"],
            created_at=row.get("created_at"),
        )

    @classmethod
    async def insert_snapshot(cls, snapshot: LpSnapshot) -> SnapshotWriteResult:
        """
        Insert a snapshot row.

        Returns:
            OK with the new id, CONFLICT if the (puuid, game_id, phase) row
            already exists, or STORAGE_ERROR with the database message
        """

        query = """
            INSERT INTO lp_snapshots (
                user_id, puuid, game_id, snapshot_type, tier, rank,
                league_points, wins, losses, queue_type
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (puuid, game_id, snapshot_type) DO NOTHING
            RETURNING id
        """

        params = (
            snapshot.user_id,
            snapshot.puuid,
            snapshot.game_id,
            snapshot.snapshot_type.value,
            snapshot.tier,
            snapshot.rank,
            snapshot.league_points,
            snapshot.wins,
            snapshot.losses,
            snapshot.queue_type,
        )

        try:
            row = await fetch_one(query, params)
        except DatabaseError as e:
            logger.error(
                "LP snapshot insert failed",
                puuid=snapshot.puuid,
                game_id=snapshot.game_id,
                snapshot_type=snapshot.snapshot_type.value,
                error=str(e),
            )
            return SnapshotWriteResult(outcome=SnapshotWriteOutcome.STORAGE_ERROR, error=str(e))

        if not row:
            logger.info(
                "LP snapshot already recorded",
                puuid=snapshot.puuid,
                game_id=snapshot.game_id,
                snapshot_type=snapshot.snapshot_type.value,
            )
            return SnapshotWriteResult(outcome=SnapshotWriteOutcome.CONFLICT)

        return SnapshotWriteResult(outcome=SnapshotWriteOutcome.OK, snapshot_id=str(row["id"]))

    @classmethod
    async def list_snapshots_for_game(cls, user_id: str, game_id: str) -> list[LpSnapshot]:
        """All snapshots a user has for one game, oldest first."""

        query = f"""
            SELECT {cls.SNAPSHOT_SELECT_COLUMNS}
            FROM lp_snapshots
            WHERE user_id = %s AND game_id = %s
            ORDER BY created_at ASC
        """

        rows = await fetch_all(query, (user_id, game_id))
        return [cls._row_to_snapshot(row) for row in rows]
