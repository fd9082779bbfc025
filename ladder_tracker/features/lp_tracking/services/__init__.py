"""
Service layer for LP tracking.
"""

from .active_match_monitor import ActiveMatchMonitor
from .lp_change import get_lp_change
from .match_sync import (
    MatchSyncConfigError,
    MatchSynchronizer,
    load_match_synchronizer,
    run_match_sync,
)
from .queue_processor import LpQueueMetrics, LpQueueProcessor, build_processor, process_queue
from .scheduler import EnqueueResult, LpSchedulerError, enqueue_lp_job
from .snapshot_recorder import SnapshotRecorder

__all__ = [
    "ActiveMatchMonitor",
    "EnqueueResult",
    "LpQueueMetrics",
    "LpQueueProcessor",
    "LpSchedulerError",
    "MatchSyncConfigError",
    "MatchSynchronizer",
    "SnapshotRecorder",
    "build_processor",
    "enqueue_lp_job",
    "get_lp_change",
    "load_match_synchronizer",
    "process_queue",
    "run_match_sync",
]
