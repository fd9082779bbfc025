"""
LP queue worker jobs.

Runs the LP tracking queue processor on an interval in a dedicated worker
process, plus one-shot variants (single batch, active-match check, stale
sweep) for external schedulers.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from ladder_tracker.config import settings
from ladder_tracker.db.pool import db_pool
from ladder_tracker.features.lp_tracking.clients.riot_client import (
    RiotApiClient,
    create_riot_client,
)
from ladder_tracker.features.lp_tracking.repository.queue_repository import LpQueueRepository
from ladder_tracker.features.lp_tracking.services.active_match_monitor import ActiveMatchMonitor
from ladder_tracker.features.lp_tracking.services.match_sync import load_match_synchronizer
from ladder_tracker.features.lp_tracking.services.queue_processor import (
    LpQueueProcessor,
    build_processor,
)
from ladder_tracker.infrastructure.observability.logging import get_logger, setup_logging
from ladder_tracker.services.redis_client import fast_redis

logger = get_logger(__name__)

ERROR_BACKOFF_SECONDS = 60


class LpQueueJobError(Exception):
    """Custom exception for LP queue job operations."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@asynccontextmanager
async def worker_resources() -> AsyncIterator[RiotApiClient]:
    """Open the pool, Redis (if configured) and a Riot client for a worker run."""
    setup_logging(log_level=settings.LOG_LEVEL)

    opened_pool = False
    if not db_pool.initialized:
        await db_pool.initialize()
        opened_pool = True

    opened_redis = False
    if fast_redis.configured and not fast_redis.initialized:
        await fast_redis.initialize()
        opened_redis = True

    riot_client = create_riot_client()
    try:
        yield riot_client
    finally:
        await riot_client.close()
        if opened_redis:
            await fast_redis.close()
        if opened_pool:
            await db_pool.close()


class LpQueueJob:
    """
    Interval runner around LpQueueProcessor.

    Skips an iteration if the previous one in this process is still running.
    """

    def __init__(self, processor: LpQueueProcessor, interval_seconds: int | None = None):
        self.processor = processor
        self.interval_seconds = interval_seconds or settings.LP_QUEUE_INTERVAL_SECONDS
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.last_summary: dict | None = None

    async def run_once(self, batch_size: int | None = None) -> dict:
        """
        Run a single batch.

        Raises:
            LpQueueJobError: If the queue store cannot be reached
        """
        if self.is_running:
            logger.warning("LP queue job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        try:
            self.is_running = True
            summary = await self.processor.run_once(batch_size)
            self.last_run_time = datetime.utcnow()
            self.last_summary = summary.to_dict()
            return self.last_summary

        except Exception as e:
            logger.error("LP queue job failed", error=str(e), error_type=type(e).__name__)
            raise LpQueueJobError(f"LP queue job failed: {e}", operation="run_once") from e

        finally:
            self.is_running = False

    def get_job_status(self) -> dict:
        now = datetime.utcnow()
        overdue = self.last_run_time is not None and (now - self.last_run_time) > timedelta(
            seconds=self.interval_seconds * 2
        )
        return {
            "job_name": "lp_queue",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "is_overdue": overdue,
            "interval_seconds": self.interval_seconds,
            "last_run_metrics": self.last_summary,
        }

    async def run_forever(self) -> None:
        logger.info("Starting LP queue job scheduler", interval_seconds=self.interval_seconds)

        while True:
            try:
                metrics = await self.run_once()
                if not metrics.get("skipped", False) and metrics.get("processed"):
                    logger.info("LP queue job cycle completed", **metrics)

                await asyncio.sleep(self.interval_seconds)

            except LpQueueJobError as e:
                logger.error("Error in LP queue job scheduler", error=str(e))
                # Wait a bit before retrying to avoid tight error loops
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)


async def start_lp_queue_scheduler() -> None:
    """Worker entry point: process the queue every LP_QUEUE_INTERVAL_SECONDS."""
    async with worker_resources() as riot_client:
        job = LpQueueJob(build_processor(riot_client))
        await job.run_forever()


async def run_lp_queue_once() -> None:
    async with worker_resources() as riot_client:
        job = LpQueueJob(build_processor(riot_client))
        await job.run_once()


async def run_active_match_check() -> None:
    async with worker_resources() as riot_client:
        monitor = ActiveMatchMonitor(
            riot_client, match_synchronizer=load_match_synchronizer(settings.MATCH_SYNC_HANDLER)
        )
        await monitor.run_once()


async def run_stale_sweep() -> None:
    if not settings.stale_processing_enabled():
        logger.warning(
            "Stale processing sweep disabled",
            flag="LP_QUEUE_STALE_PROCESSING_MINUTES",
        )
        return

    setup_logging(log_level=settings.LOG_LEVEL)
    opened_pool = False
    if not db_pool.initialized:
        await db_pool.initialize()
        opened_pool = True
    try:
        sweep = await LpQueueRepository.release_stale_jobs(
            settings.LP_QUEUE_STALE_PROCESSING_MINUTES,
            max_retries=settings.LP_QUEUE_MAX_RETRIES,
        )
        logger.info(
            "Stale sweep completed", released=sweep.released, dead_lettered=sweep.dead_lettered
        )
    finally:
        if opened_pool:
            await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_lp_queue_scheduler())
