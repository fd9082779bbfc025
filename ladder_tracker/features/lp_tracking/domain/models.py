"""
Domain models for LP tracking.

Plain dataclasses and enums shared by the Riot client, repositories,
the queue processor and the cron routes. No I/O lives here.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

SOLO_QUEUE_TYPE = "RANKED_SOLO_5x5"


class QueueAction(str, Enum):
    CHECK_ACTIVE = "check_active"
    SNAPSHOT_LP_START = "snapshot_lp_start"
    SNAPSHOT_LP_END = "snapshot_lp_end"

    @property
    def is_snapshot(self) -> bool:
        return self in (QueueAction.SNAPSHOT_LP_START, QueueAction.SNAPSHOT_LP_END)

    @property
    def snapshot_type(self) -> "SnapshotType | None":
        if self is QueueAction.SNAPSHOT_LP_START:
            return SnapshotType.PRE_GAME
        if self is QueueAction.SNAPSHOT_LP_END:
            return SnapshotType.POST_GAME
        return None


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SnapshotType(str, Enum):
    PRE_GAME = "pre_game"
    POST_GAME = "post_game"


class SnapshotWriteOutcome(str, Enum):
    OK = "ok"
    CONFLICT = "conflict"
    STORAGE_ERROR = "storage_error"


@dataclass(slots=True)
class QueueJob:
    """Represents an lp_tracking_queue row."""

    id: str
    user_id: str
    puuid: str
    action: str  # raw value; unknown actions are kept as-is
    status: JobStatus
    priority: int
    retry_count: int
    created_at: datetime
    game_id: str | None = None
    platform_region: str | None = None
    processed_at: datetime | None = None
    claimed_at: datetime | None = None
    claim_token: str | None = None  # set per claim; guards terminal writes
    result: dict[str, Any] | None = None
    error_message: str | None = None

    @property
    def queue_action(self) -> QueueAction | None:
        try:
            return QueueAction(self.action)
        except ValueError:
            return None


@dataclass(slots=True)
class LpSnapshot:
    """Immutable ranked-ladder reading taken around a tracked game."""

    user_id: str
    puuid: str
    game_id: str
    snapshot_type: SnapshotType
    tier: str
    rank: str
    league_points: int
    wins: int
    losses: int
    queue_type: str = SOLO_QUEUE_TYPE
    created_at: datetime | None = None


@dataclass(slots=True)
class RankedEntry:
    """One League-V4 entry for a player."""

    queue_type: str
    tier: str
    rank: str
    league_points: int
    wins: int
    losses: int


@dataclass(slots=True)
class ActiveGameResult:
    """Spectator-V5 lookup outcome."""

    in_game: bool
    game_id: str | None = None
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class SnapshotWriteResult:
    outcome: SnapshotWriteOutcome
    snapshot_id: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome in (SnapshotWriteOutcome.OK, SnapshotWriteOutcome.CONFLICT)


@dataclass(slots=True)
class MatchSyncResult:
    """Contract returned by the external match-history synchronizer."""

    success: bool
    new_matches: int = 0


@dataclass(slots=True)
class LinkedRiotAccount:
    """Represents a linked_accounts_riot row (fields used by the monitor)."""

    user_id: str
    puuid: str
    active_shard: str | None
    is_in_game: bool
    last_known_game_id: str | None = None
    last_active_check: datetime | None = None
    last_updated: datetime | None = None


@dataclass(slots=True)
class LpChange:
    """LP movement attributable to a single game."""

    game_id: str
    pre_game: LpSnapshot | None
    post_game: LpSnapshot | None
    lp_gained: int | None = None
    tier_changed: bool = False

    @property
    def has_complete_data(self) -> bool:
        return self.pre_game is not None and self.post_game is not None


@dataclass(slots=True)
class QueueRunSummary:
    """Aggregate result of one processor invocation."""

    processed: int = 0
    success_count: int = 0
    fail_count: int = 0
    requeued_count: int = 0
    released_stale: int = 0
    dead_lettered_stale: int = 0
    lost_claims: int = 0
    duration_seconds: float = 0.0
    job_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "success_count": self.success_count,
            "fail_count": self.fail_count,
            "requeued_count": self.requeued_count,
            "released_stale": self.released_stale,
            "dead_lettered_stale": self.dead_lettered_stale,
            "lost_claims": self.lost_claims,
            "duration_seconds": round(self.duration_seconds, 2),
        }


@dataclass(slots=True)
class StaleSweepResult:
    """Jobs recovered from a crashed worker by one stale sweep."""

    released: int = 0
    dead_lettered: int = 0
