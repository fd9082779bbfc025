from unittest.mock import AsyncMock

import pytest

from ladder_tracker.db.helpers import DatabaseError
from ladder_tracker.features.lp_tracking.domain import JobStatus
from ladder_tracker.features.lp_tracking.services.scheduler import (
    LpSchedulerError,
    enqueue_lp_job,
)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "trigger, action, priority",
    [
        ("pre_game", "snapshot_lp_start", 1),
        ("post_game", "snapshot_lp_end", 2),
        ("manual", "snapshot_lp_start", 0),
    ],
)
async def test_trigger_maps_to_action_and_priority(queue_store, trigger, action, priority):
    result = await enqueue_lp_job(
        "user-1", "P1", trigger, game_id="G1", region="EUW1", repository=queue_store
    )

    assert result.created is True
    assert result.job.action == action
    assert result.job.priority == priority
    assert result.job.platform_region == "euw1"
    assert result.job.status is JobStatus.PENDING


@pytest.mark.asyncio
async def test_check_active_needs_no_game_id(queue_store):
    result = await enqueue_lp_job("user-1", "P1", "check_active", repository=queue_store)

    assert result.created is True
    assert result.job.game_id is None
    assert result.job.platform_region == "la1"


@pytest.mark.asyncio
async def test_duplicate_pending_job_is_returned(queue_store):
    first = await enqueue_lp_job("user-1", "P1", "post_game", game_id="G1", repository=queue_store)
    second = await enqueue_lp_job("user-1", "P1", "post_game", game_id="G1", repository=queue_store)

    assert second.created is False
    assert second.job.id == first.job.id
    assert len(queue_store.jobs) == 1


@pytest.mark.asyncio
async def test_priority_override(queue_store):
    result = await enqueue_lp_job(
        "user-1", "P1", "pre_game", game_id="G1", priority=9, repository=queue_store
    )

    assert result.job.priority == 9


@pytest.mark.asyncio
async def test_invalid_trigger_rejected(queue_store):
    with pytest.raises(LpSchedulerError) as exc_info:
        await enqueue_lp_job("user-1", "P1", "mid_game", game_id="G1", repository=queue_store)

    assert exc_info.value.recoverable is False
    assert queue_store.jobs == {}


@pytest.mark.asyncio
async def test_snapshot_trigger_requires_game_id(queue_store):
    with pytest.raises(LpSchedulerError):
        await enqueue_lp_job("user-1", "P1", "pre_game", repository=queue_store)


@pytest.mark.asyncio
async def test_missing_puuid_rejected(queue_store):
    with pytest.raises(LpSchedulerError):
        await enqueue_lp_job("user-1", "", "post_game", game_id="G1", repository=queue_store)


@pytest.mark.asyncio
async def test_lost_insert_race_returns_winner(queue_store):
    winner = queue_store.add_job("snapshot_lp_end", game_id="G1", priority=2)
    repository = AsyncMock()
    repository.find_active_job.side_effect = [None, winner]
    repository.create_job.return_value = None

    result = await enqueue_lp_job("user-1", "P1", "post_game", game_id="G1", repository=repository)

    assert result.created is False
    assert result.job is winner


@pytest.mark.asyncio
async def test_database_error_wrapped():
    repository = AsyncMock()
    repository.find_active_job.side_effect = DatabaseError("connection lost")

    with pytest.raises(LpSchedulerError) as exc_info:
        await enqueue_lp_job("user-1", "P1", "post_game", game_id="G1", repository=repository)

    assert exc_info.value.operation == "enqueue"
    assert "connection lost" in str(exc_info.value)
