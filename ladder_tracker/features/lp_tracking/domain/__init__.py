"""
Domain subpackage for LP tracking.
"""

from .models import (
    SOLO_QUEUE_TYPE,
    ActiveGameResult,
    JobStatus,
    LinkedRiotAccount,
    LpChange,
    LpSnapshot,
    MatchSyncResult,
    QueueAction,
    QueueJob,
    QueueRunSummary,
    RankedEntry,
    SnapshotType,
    SnapshotWriteOutcome,
    SnapshotWriteResult,
    StaleSweepResult,
)

__all__ = [
    "SOLO_QUEUE_TYPE",
    "ActiveGameResult",
    "JobStatus",
    "LinkedRiotAccount",
    "LpChange",
    "LpSnapshot",
    "MatchSyncResult",
    "QueueAction",
    "QueueJob",
    "QueueRunSummary",
    "RankedEntry",
    "SnapshotType",
    "SnapshotWriteOutcome",
    "SnapshotWriteResult",
    "StaleSweepResult",
]
