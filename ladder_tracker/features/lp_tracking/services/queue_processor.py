"""
LP tracking queue processor.

One invocation claims a batch of pending jobs, dispatches them strictly
sequentially against the Riot API, records LP snapshots, and writes a
terminal state back for every job it owns.

Job lifecycle:
    pending -> processing -> completed | failed
    processing -> pending   (rate limited, or stale sweep)
    processing -> failed    (retries exhausted, by write-back or stale sweep)

max_retries is the number of requeues a job may take; the write that would
exceed it fails the job instead.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ladder_tracker.config import settings
from ladder_tracker.db.pool import db_pool
from ladder_tracker.features.lp_tracking.clients.riot_client import (
    RiotApiClient,
    RiotRateLimitedError,
    RiotUpstreamError,
    create_riot_client,
    find_solo_queue_entry,
)
from ladder_tracker.features.lp_tracking.domain import (
    JobStatus,
    QueueAction,
    QueueJob,
    QueueRunSummary,
    SnapshotWriteOutcome,
    StaleSweepResult,
)
from ladder_tracker.features.lp_tracking.repository.queue_repository import LpQueueRepository
from ladder_tracker.features.lp_tracking.services.match_sync import (
    MatchSynchronizer,
    load_match_synchronizer,
    run_match_sync,
)
from ladder_tracker.features.lp_tracking.services.snapshot_recorder import SnapshotRecorder
from ladder_tracker.infrastructure.observability.logging import get_logger, log_job_outcome

logger = get_logger(__name__)

NO_SOLO_ENTRY_MESSAGE = "No ranked solo queue entry found for player"
MISSING_GAME_ID_MESSAGE = "Snapshot job has no game_id"


@dataclass(slots=True)
class JobOutcome:
    """Terminal decision for one claimed job, before it is written back."""

    status: JobStatus
    result: dict[str, Any] | None = None
    error_message: str | None = None
    requeue: bool = False

    @classmethod
    def completed(cls, result: dict[str, Any]) -> "JobOutcome":
        return cls(status=JobStatus.COMPLETED, result=result)

    @classmethod
    def failed(cls, error_message: str, result: dict[str, Any] | None = None) -> "JobOutcome":
        return cls(status=JobStatus.FAILED, result=result, error_message=error_message)

    @classmethod
    def rate_limited(cls, error_message: str) -> "JobOutcome":
        return cls(status=JobStatus.PENDING, error_message=error_message, requeue=True)


class LpQueueMetrics:
    """Per-run counters for the queue processor."""

    def __init__(self):
        self.reset()

    def reset(self):
        self._started = time.monotonic()
        self.summary = QueueRunSummary()
        self.errors: list[dict] = []

    def record_success(self, job: QueueJob):
        self.summary.processed += 1
        self.summary.success_count += 1
        self.summary.job_ids.append(job.id)

    def record_failure(self, job: QueueJob, error: str):
        self.summary.processed += 1
        self.summary.fail_count += 1
        self.summary.job_ids.append(job.id)
        self.errors.append({"job_id": job.id, "action": job.action, "error": error})

    def record_requeue(self, job: QueueJob):
        self.summary.processed += 1
        self.summary.requeued_count += 1
        self.summary.job_ids.append(job.id)

    def record_lost_claim(self, job: QueueJob):
        self.summary.processed += 1
        self.summary.lost_claims += 1
        self.summary.job_ids.append(job.id)

    def record_stale_sweep(self, sweep: StaleSweepResult):
        self.summary.released_stale += sweep.released
        self.summary.dead_lettered_stale += sweep.dead_lettered

    def finalize(self) -> QueueRunSummary:
        self.summary.duration_seconds = time.monotonic() - self._started
        return self.summary


class LpQueueProcessor:
    """
    Claims and processes LP tracking jobs.

    Collaborators are injected so the processor can run against in-memory
    stores and fake API clients; defaults are the Postgres-backed
    repositories.
    """

    def __init__(
        self,
        riot_client: RiotApiClient,
        queue_repository=LpQueueRepository,
        snapshot_recorder: SnapshotRecorder | None = None,
        match_synchronizer: MatchSynchronizer | None = None,
        request_delay_ms: int | None = None,
        max_retries: int | None = None,
        stale_processing_minutes: int | None = None,
        match_sync_limit: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retries is not None and max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")

        self.riot_client = riot_client
        self.queue_repository = queue_repository
        self.snapshot_recorder = snapshot_recorder or SnapshotRecorder()
        self.match_synchronizer = match_synchronizer
        self.request_delay_ms = (
            settings.LP_QUEUE_REQUEST_DELAY_MS if request_delay_ms is None else request_delay_ms
        )
        self.max_retries = max_retries
        self.stale_processing_minutes = (
            settings.LP_QUEUE_STALE_PROCESSING_MINUTES
            if stale_processing_minutes is None
            else stale_processing_minutes
        )
        self.match_sync_limit = (
            settings.MATCH_SYNC_LIMIT if match_sync_limit is None else match_sync_limit
        )
        self._sleep = sleep
        self.metrics = LpQueueMetrics()

        self._handlers: dict[QueueAction, Callable[[QueueJob], Awaitable[JobOutcome]]] = {
            QueueAction.CHECK_ACTIVE: self._handle_check_active,
            QueueAction.SNAPSHOT_LP_START: self._handle_snapshot,
            QueueAction.SNAPSHOT_LP_END: self._handle_snapshot,
        }

    @property
    def known_actions(self) -> list[str]:
        return [action.value for action in self._handlers]

    async def run_once(self, batch_size: int | None = None) -> QueueRunSummary:
        """
        Process one batch.

        Raises:
            DatabaseError: if the queue store cannot be reached
        """
        batch_size = settings.LP_QUEUE_BATCH_SIZE if batch_size is None else batch_size
        self.metrics.reset()

        if self.stale_processing_minutes > 0:
            sweep = await self.queue_repository.release_stale_jobs(
                self.stale_processing_minutes, max_retries=self.max_retries
            )
            self.metrics.record_stale_sweep(sweep)

        jobs = await self.queue_repository.claim_pending_jobs(batch_size, self.known_actions)

        if not jobs:
            logger.info("No pending LP queue jobs")
            return self.metrics.finalize()

        logger.info("Processing LP queue batch", batch_size=batch_size, claimed=len(jobs))

        for index, job in enumerate(jobs):
            await self.process_job(job)

            if index < len(jobs) - 1 and self.request_delay_ms > 0:
                await self._sleep(self.request_delay_ms / 1000)

        summary = self.metrics.finalize()
        logger.info("LP queue batch completed", **summary.to_dict())
        return summary

    async def process_job(self, job: QueueJob) -> JobOutcome | None:
        """Dispatch one claimed job and write its outcome back."""
        action = job.queue_action
        handler = self._handlers.get(action) if action else None

        if handler is None:
            # Claim filters on known actions, so this only happens across deploys
            logger.warning(
                "Unknown LP queue action, releasing job", job_id=job.id, action=job.action
            )
            await self.queue_repository.release_job(job.id, job.claim_token)
            return None

        started = time.monotonic()
        try:
            outcome = await handler(job)
        except RiotRateLimitedError as e:
            outcome = JobOutcome.rate_limited(str(e))
        except RiotUpstreamError as e:
            outcome = JobOutcome.failed(str(e), result={"status_code": e.status_code})
        except Exception as e:
            logger.error(
                "Unexpected error processing LP queue job",
                job_id=job.id,
                action=job.action,
                error=str(e),
                error_type=type(e).__name__,
            )
            outcome = JobOutcome.failed(f"{type(e).__name__}: {e}")

        await self._write_back(job, outcome)

        log_job_outcome(
            job_id=job.id,
            action=job.action,
            status=outcome.status.value,
            duration_ms=(time.monotonic() - started) * 1000,
            error=outcome.error_message,
            retry_count=job.retry_count,
        )
        return outcome

    async def _write_back(self, job: QueueJob, outcome: JobOutcome) -> None:
        # Every write is guarded by the claim token; a falsy result means the
        # stale sweep took the job away and someone else may own it now
        if outcome.requeue:
            if self.max_retries is not None and job.retry_count + 1 > self.max_retries:
                outcome.status = JobStatus.FAILED
                outcome.error_message = (
                    f"Rate limit retries exhausted after {job.retry_count} requeues"
                )
                outcome.requeue = False
                if await self.queue_repository.mark_job_failed(
                    job.id, job.claim_token, outcome.error_message
                ):
                    self.metrics.record_failure(job, outcome.error_message)
                else:
                    self.metrics.record_lost_claim(job)
                return

            if await self.queue_repository.requeue_job(job.id, job.claim_token) is None:
                self.metrics.record_lost_claim(job)
            else:
                self.metrics.record_requeue(job)
            return

        if outcome.status is JobStatus.COMPLETED:
            if await self.queue_repository.mark_job_completed(
                job.id, job.claim_token, outcome.result
            ):
                self.metrics.record_success(job)
            else:
                self.metrics.record_lost_claim(job)
        else:
            error_message = outcome.error_message or "Unknown error"
            if await self.queue_repository.mark_job_failed(
                job.id, job.claim_token, error_message, outcome.result
            ):
                self.metrics.record_failure(job, error_message)
            else:
                self.metrics.record_lost_claim(job)

    async def _handle_check_active(self, job: QueueJob) -> JobOutcome:
        region = self.riot_client.resolve_region(job.platform_region)
        active = await self.riot_client.check_active_game(job.puuid, region)
        return JobOutcome.completed(
            {
                "in_game": active.in_game,
                "game_id": active.game_id,
                "status_code": 200 if active.in_game else 404,
            }
        )

    async def _handle_snapshot(self, job: QueueJob) -> JobOutcome:
        action = job.queue_action
        if not job.game_id:
            return JobOutcome.failed(MISSING_GAME_ID_MESSAGE)

        region = self.riot_client.resolve_region(job.platform_region)
        entries = await self.riot_client.get_ranked_entries(job.puuid, region)

        solo_entry = find_solo_queue_entry(entries)
        if solo_entry is None:
            return JobOutcome.failed(NO_SOLO_ENTRY_MESSAGE)

        write = await self.snapshot_recorder.record_snapshot(
            user_id=job.user_id,
            puuid=job.puuid,
            game_id=job.game_id,
            phase=action.snapshot_type,
            entry=solo_entry,
        )
        if write.outcome is SnapshotWriteOutcome.STORAGE_ERROR:
            return JobOutcome.failed(f"Snapshot write failed: {write.error}")

        result: dict[str, Any] = {
            "snapshot_type": action.snapshot_type.value,
            "tier": solo_entry.tier,
            "rank": solo_entry.rank,
            "league_points": solo_entry.league_points,
            "wins": solo_entry.wins,
            "losses": solo_entry.losses,
            "already_recorded": write.outcome is SnapshotWriteOutcome.CONFLICT,
        }

        if action is QueueAction.SNAPSHOT_LP_END:
            result["match_sync"] = await self._sync_match_history(job, region)

        return JobOutcome.completed(result)

    async def _sync_match_history(self, job: QueueJob, region: str) -> dict[str, Any]:
        """Best-effort post-game sync; never changes the job outcome."""
        if self.match_synchronizer is None:
            logger.info("Match sync not configured, skipping", job_id=job.id, puuid=job.puuid)
            return {"skipped": True}

        try:
            sync = await run_match_sync(
                self.match_synchronizer,
                job.puuid,
                region,
                self.riot_client.api_key,
                self.match_sync_limit,
            )
        except Exception as e:
            logger.warning(
                "Match sync failed after post-game snapshot",
                job_id=job.id,
                puuid=job.puuid,
                error=str(e),
                error_type=type(e).__name__,
            )
            return {"success": False, "error": str(e)}

        if not sync.success:
            logger.warning("Match sync reported failure", job_id=job.id, puuid=job.puuid)
        else:
            logger.info(
                "Match history synced",
                job_id=job.id,
                puuid=job.puuid,
                new_matches=sync.new_matches,
            )
        return {"success": sync.success, "new_matches": sync.new_matches}


def build_processor(riot_client: RiotApiClient, **overrides) -> LpQueueProcessor:
    """Processor wired from settings."""
    options: dict[str, Any] = {
        "match_synchronizer": load_match_synchronizer(settings.MATCH_SYNC_HANDLER),
        "max_retries": settings.LP_QUEUE_MAX_RETRIES,
    }
    options.update(overrides)
    return LpQueueProcessor(riot_client, **options)


async def process_queue(
    db_url: str | None = None,
    api_key: str | None = None,
    batch_size: int | None = None,
) -> QueueRunSummary:
    """
    Trigger entrypoint: run one batch with explicit credentials.

    Opens the database pool if nobody has yet, and owns a short-lived Riot
    client for the duration of the batch.
    """
    if not db_pool.initialized:
        await db_pool.initialize(db_url or settings.SUPABASE_DB_URL)

    riot_client = create_riot_client(api_key)
    try:
        processor = build_processor(riot_client)
        return await processor.run_once(batch_size)
    finally:
        await riot_client.close()


__all__ = [
    "JobOutcome",
    "LpQueueMetrics",
    "LpQueueProcessor",
    "build_processor",
    "process_queue",
]
