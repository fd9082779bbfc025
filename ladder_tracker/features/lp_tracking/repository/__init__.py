"""
Repository layer for LP tracking.
"""

from .linked_account_repository import LinkedAccountRepository
from .queue_repository import LpQueueRepository
from .snapshot_repository import LpSnapshotRepository

__all__ = [
    "LinkedAccountRepository",
    "LpQueueRepository",
    "LpSnapshotRepository",
]
