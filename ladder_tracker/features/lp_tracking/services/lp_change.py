"""
Read model: LP gained or lost in one game, from its pre/post snapshots.
"""

from ladder_tracker.features.lp_tracking.domain import LpChange, SnapshotType
from ladder_tracker.features.lp_tracking.repository.snapshot_repository import (
    LpSnapshotRepository,
)


async def get_lp_change(user_id: str, game_id: str, repository=LpSnapshotRepository) -> LpChange:
    snapshots = await repository.list_snapshots_for_game(user_id, str(game_id))

    pre_game = next((s for s in snapshots if s.snapshot_type is SnapshotType.PRE_GAME), None)
    post_game = next((s for s in snapshots if s.snapshot_type is SnapshotType.POST_GAME), None)

    change = LpChange(game_id=str(game_id), pre_game=pre_game, post_game=post_game)
    if pre_game and post_game:
        change.lp_gained = post_game.league_points - pre_game.league_points
        change.tier_changed = pre_game.tier != post_game.tier
    return change
