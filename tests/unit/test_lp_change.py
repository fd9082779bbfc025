import pytest

from ladder_tracker.features.lp_tracking.domain import LpSnapshot, SnapshotType
from ladder_tracker.features.lp_tracking.services.lp_change import get_lp_change


def _snapshot(snapshot_type, tier="GOLD", league_points=40, game_id="G1"):
    return LpSnapshot(
        user_id="user-1",
        puuid="P1",
        game_id=game_id,
        snapshot_type=snapshot_type,
        tier=tier,
        rank="II",
        league_points=league_points,
        wins=10,
        losses=8,
    )


@pytest.mark.asyncio
async def test_lp_gained_from_pre_and_post(snapshot_store):
    await snapshot_store.insert_snapshot(_snapshot(SnapshotType.PRE_GAME, league_points=40))
    await snapshot_store.insert_snapshot(_snapshot(SnapshotType.POST_GAME, league_points=61))

    change = await get_lp_change("user-1", "G1", repository=snapshot_store)

    assert change.has_complete_data
    assert change.lp_gained == 21
    assert change.tier_changed is False


@pytest.mark.asyncio
async def test_promotion_flags_tier_change(snapshot_store):
    await snapshot_store.insert_snapshot(_snapshot(SnapshotType.PRE_GAME, league_points=90))
    await snapshot_store.insert_snapshot(
        _snapshot(SnapshotType.POST_GAME, tier="PLATINUM", league_points=5)
    )

    change = await get_lp_change("user-1", "G1", repository=snapshot_store)

    assert change.tier_changed is True
    assert change.lp_gained == -85


@pytest.mark.asyncio
async def test_missing_post_game_leaves_change_unknown(snapshot_store):
    await snapshot_store.insert_snapshot(_snapshot(SnapshotType.PRE_GAME))

    change = await get_lp_change("user-1", "G1", repository=snapshot_store)

    assert change.has_complete_data is False
    assert change.pre_game is not None
    assert change.post_game is None
    assert change.lp_gained is None
