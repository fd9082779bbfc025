"""
Cron route response models.
"""

from pydantic import BaseModel, Field


class QueueRunResponse(BaseModel):
    """Summary of one LP queue batch."""

    success: bool = Field(default=True)
    processed: int = Field(..., description="Jobs dispatched in this run")
    success_count: int = Field(..., description="Jobs that ended completed")
    fail_count: int = Field(..., description="Jobs that ended failed")
    requeued_count: int = Field(default=0, description="Rate-limited jobs returned to pending")
    released_stale: int = Field(default=0, description="Stale processing jobs swept back")
    dead_lettered_stale: int = Field(
        default=0, description="Stale processing jobs failed after exhausting retries"
    )
    lost_claims: int = Field(
        default=0, description="Outcomes discarded because the job was swept mid-run"
    )
    duration_seconds: float = Field(default=0.0)


class ActiveMatchCheckResponse(BaseModel):
    """Active-match monitor counts plus the follow-up queue batch."""

    success: bool = Field(default=True)
    active_checked: int = Field(..., description="In-game accounts checked")
    games_ended: int = Field(..., description="Tracked games detected as finished")
    games_started: int = Field(..., description="Idle accounts detected in a game")
    passive_synced: int = Field(..., description="Idle accounts whose history was synced")
    duration_seconds: float = Field(default=0.0)
    queue: QueueRunResponse | None = Field(None, description="Queue batch run afterwards")


class StaleRecoveryResponse(BaseModel):
    success: bool = Field(default=True)
    released: int = Field(..., description="Jobs returned to pending")
    dead_lettered: int = Field(default=0, description="Jobs failed after exhausting retries")
    older_than_minutes: int
