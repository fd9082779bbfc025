"""
Snapshot recorder: turns a ranked entry into a persisted LP snapshot.
"""

from ladder_tracker.features.lp_tracking.domain import (
    SOLO_QUEUE_TYPE,
    LpSnapshot,
    RankedEntry,
    SnapshotType,
    SnapshotWriteResult,
)
from ladder_tracker.features.lp_tracking.repository.snapshot_repository import (
    LpSnapshotRepository,
)


class SnapshotRecorder:
    """Insert-only writer for pre-game / post-game LP readings."""

    def __init__(self, repository=LpSnapshotRepository):
        self.repository = repository

    async def record_snapshot(
        self,
        user_id: str,
        puuid: str,
        game_id: str,
        phase: SnapshotType,
        entry: RankedEntry,
    ) -> SnapshotWriteResult:
        """
        Persist one snapshot.

        A CONFLICT outcome means the same (puuid, game_id, phase) was already
        recorded by an earlier attempt; callers treat it as success.
        """
        snapshot = LpSnapshot(
            user_id=user_id,
            puuid=puuid,
            game_id=game_id,
            snapshot_type=phase,
            tier=entry.tier,
            rank=entry.rank,
            league_points=entry.league_points,
            wins=entry.wins,
            losses=entry.losses,
            queue_type=SOLO_QUEUE_TYPE,
        )
        return await self.repository.insert_snapshot(snapshot)
