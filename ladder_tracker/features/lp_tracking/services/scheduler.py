"""
Enqueue side of the LP tracking queue.

Maps a snapshot trigger (pre_game / post_game / manual / check_active) to
a queue action and priority, and avoids stacking duplicate work for the
same (user, game, action).
"""

from dataclasses import dataclass

from ladder_tracker.config import settings
from ladder_tracker.db.helpers import DatabaseError
from ladder_tracker.features.lp_tracking.domain import QueueAction, QueueJob
from ladder_tracker.features.lp_tracking.repository.queue_repository import LpQueueRepository
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

# trigger -> (action, default priority); post-game readings matter most
TRIGGER_ACTIONS: dict[str, tuple[QueueAction, int]] = {
    "pre_game": (QueueAction.SNAPSHOT_LP_START, 1),
    "post_game": (QueueAction.SNAPSHOT_LP_END, 2),
    "manual": (QueueAction.SNAPSHOT_LP_START, 0),
    "check_active": (QueueAction.CHECK_ACTIVE, 0),
}


class LpSchedulerError(Exception):
    """Raised when a job cannot be enqueued."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@dataclass(slots=True)
class EnqueueResult:
    job: QueueJob
    created: bool


async def enqueue_lp_job(
    user_id: str,
    puuid: str,
    trigger: str,
    game_id: str | None = None,
    region: str | None = None,
    priority: int | None = None,
    repository=LpQueueRepository,
) -> EnqueueResult:
    """
    Queue an LP tracking job.

    Args:
        user_id: Owner of the linked Riot account
        puuid: Player id
        trigger: pre_game, post_game, manual or check_active
        game_id: Required for snapshot triggers
        region: Platform region; lower-cased, defaults to RIOT_DEFAULT_REGION
        priority: Overrides the trigger's default priority

    Returns:
        EnqueueResult with created=False when an equivalent job was already
        pending or processing

    Raises:
        LpSchedulerError: On invalid input or storage failure
    """
    if trigger not in TRIGGER_ACTIONS:
        raise LpSchedulerError(
            f"Invalid trigger '{trigger}'. Must be one of: {', '.join(TRIGGER_ACTIONS)}",
            operation="validate",
            recoverable=False,
        )
    if not puuid:
        raise LpSchedulerError("Missing PUUID", operation="validate", recoverable=False)

    action, default_priority = TRIGGER_ACTIONS[trigger]
    if action.is_snapshot and not game_id:
        raise LpSchedulerError(
            f"game_id is required for '{trigger}' snapshots",
            operation="validate",
            recoverable=False,
        )

    job_priority = default_priority if priority is None else priority
    platform_region = (region or settings.RIOT_DEFAULT_REGION).lower()
    game_id = str(game_id) if game_id is not None else None

    try:
        if game_id and trigger != "manual":
            existing = await repository.find_active_job(user_id, game_id, action.value)
            if existing:
                logger.info(
                    "LP queue job already exists",
                    job_id=existing.id,
                    status=existing.status.value,
                    game_id=game_id,
                    action=action.value,
                )
                return EnqueueResult(job=existing, created=False)

        job = await repository.create_job(
            user_id=user_id,
            puuid=puuid,
            action=action.value,
            priority=job_priority,
            game_id=game_id,
            platform_region=platform_region,
        )

        if job is None:
            # Lost a race with another enqueue; the partial unique index kept one
            existing = await repository.find_active_job(user_id, game_id, action.value)
            if existing is None:
                raise LpSchedulerError(
                    "Job insert was skipped but no active job was found",
                    operation="create_job",
                )
            return EnqueueResult(job=existing, created=False)

    except DatabaseError as e:
        logger.error(
            "Failed to enqueue LP job",
            user_id=user_id,
            trigger=trigger,
            game_id=game_id,
            error=str(e),
        )
        raise LpSchedulerError(f"Failed to queue snapshot job: {e}", operation="enqueue") from e

    logger.info(
        "LP queue job enqueued",
        job_id=job.id,
        trigger=trigger,
        action=action.value,
        game_id=game_id,
        priority=job_priority,
    )
    return EnqueueResult(job=job, created=True)
