"""
Persistence layer for the LP tracking queue (lp_tracking_queue table).

Every state change is a single conditional statement so that concurrent
processor instances can never both own a job:
- claim:     pending -> processing (FOR UPDATE SKIP LOCKED + status guard,
             fresh claim_token)
- requeue:   processing -> pending (retry_count + 1)
- release:   processing -> pending (no retry increment)
- complete:  processing -> completed
- fail:      processing -> failed
- sweep:     processing (stale) -> pending (retry_count + 1), or failed once
             the retry ceiling is passed

Writes made on behalf of a claimed job are guarded by its claim_token, so
a processor whose job was swept and re-claimed elsewhere cannot overwrite
the new owner's state.
"""

from collections.abc import Iterable
from typing import Any

from psycopg.types.json import Jsonb

from ladder_tracker.db.helpers import execute_query, fetch_all, fetch_one
from ladder_tracker.features.lp_tracking.domain import JobStatus, QueueJob, StaleSweepResult
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

ERROR_MESSAGE_MAX_LENGTH = 500
STALE_DEAD_LETTER_MESSAGE = "Stale processing retries exhausted (worker crashed or timed out)"


class LpQueueRepository:
    """Persistence helpers backing the LP queue processor."""

    JOB_SELECT_COLUMNS = """
        id, user_id, puuid, game_id, platform_region, action, status,
        priority, retry_count, created_at, processed_at, claimed_at,
        claim_token, result, error_message
    """

    @classmethod
    def _row_to_job(cls, row: dict | None) -> QueueJob | None:
        if not row:
            return None

        game_id = row.get("game_id")
        claim_token = row.get("claim_token")
        return QueueJob(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            puuid=row["puuid"],
            game_id=str(game_id) if game_id is not None else None,
            platform_region=row.get("platform_region"),
            action=row["action"],
            status=JobStatus(row["status"]),
            priority=row["priority"],
            retry_count=row["retry_count"],
            created_at=row["created_at"],
            processed_at=row.get("processed_at"),
            claimed_at=row.get("claimed_at"),
            claim_token=str(claim_token) if claim_token is not None else None,
            result=row.get("result"),
            error_message=row.get("error_message"),
        )

    @classmethod
    async def create_job(
        cls,
        user_id: str,
        puuid: str,
        action: str,
        priority: int,
        game_id: str | None = None,
        platform_region: str | None = None,
    ) -> QueueJob | None:
        """
        Insert a pending job.

        Returns None when an equivalent pending/processing job already exists
        for (user_id, game_id, action).
        """

        query = f"""
            INSERT INTO lp_tracking_queue (
                user_id, puuid, game_id, platform_region, action, status, priority
            )
            VALUES (%s, %s, %s, %s, %s, 'pending', %s)
            ON CONFLICT (user_id, game_id, action)
                WHERE status IN ('pending', 'processing')
                DO NOTHING
            RETURNING {cls.JOB_SELECT_COLUMNS}
        """

        row = await fetch_one(
            query, (user_id, puuid, game_id, platform_region, action, priority)
        )
        job = cls._row_to_job(row)
        if job:
            logger.info(
                "LP queue job created",
                job_id=job.id,
                user_id=user_id,
                action=action,
                game_id=game_id,
                priority=priority,
            )
        return job

    @classmethod
    async def find_active_job(cls, user_id: str, game_id: str, action: str) -> QueueJob | None:
        """Return the pending/processing job for (user, game, action), if any."""

        query = f"""
            SELECT {cls.JOB_SELECT_COLUMNS}
            FROM lp_tracking_queue
            WHERE user_id = %s
              AND game_id = %s
              AND action = %s
              AND status IN ('pending', 'processing')
            ORDER BY created_at ASC
            LIMIT 1
        """
        row = await fetch_one(query, (user_id, game_id, action))
        return cls._row_to_job(row)

    @classmethod
    async def claim_pending_jobs(cls, batch_size: int, actions: Iterable[str]) -> list[QueueJob]:
        """
        Atomically move up to batch_size pending jobs to processing.

        Only jobs whose action is in `actions` are eligible. Rows locked by
        another claimer are skipped, and the status guard on the UPDATE makes
        the claim a compare-and-swap, so each job has exactly one winner.
        Every claimed row gets a new claim_token.

        Returns:
            Claimed jobs ordered by priority DESC, created_at ASC
        """
        if batch_size <= 0:
            return []

        query = f"""
            WITH candidates AS (
                SELECT id
                FROM lp_tracking_queue
                WHERE status = 'pending'
                  AND action = ANY(%s)
                ORDER BY priority DESC, created_at ASC
                LIMIT %s
                FOR UPDATE SKIP LOCKED
            )
            UPDATE lp_tracking_queue q
            SET status = 'processing',
                claimed_at = NOW(),
                claim_token = gen_random_uuid()
            FROM candidates
            WHERE q.id = candidates.id
              AND q.status = 'pending'
            RETURNING {cls._qualified_columns("q")}
        """

        rows = await fetch_all(query, (list(actions), batch_size))
        jobs = [cls._row_to_job(row) for row in rows]
        # UPDATE ... RETURNING does not preserve the CTE ordering
        jobs.sort(key=lambda job: (-job.priority, job.created_at))

        if jobs:
            logger.info("LP queue jobs claimed", count=len(jobs), job_ids=[job.id for job in jobs])
        return jobs

    @classmethod
    def _qualified_columns(cls, alias: str) -> str:
        columns = [column.strip() for column in cls.JOB_SELECT_COLUMNS.split(",")]
        return ", ".join(f"{alias}.{column}" for column in columns if column)

    @classmethod
    async def requeue_job(cls, job_id: str, claim_token: str | None) -> int | None:
        """
        Return a rate-limited job to pending and bump retry_count.

        Returns:
            The new retry_count, or None if this claim no longer owns the job
        """

        query = """
            UPDATE lp_tracking_queue
            SET status = 'pending',
                retry_count = retry_count + 1,
                claimed_at = NULL,
                claim_token = NULL
            WHERE id = %s
              AND status = 'processing'
              AND claim_token = %s
            RETURNING retry_count
        """

        row = await fetch_one(query, (job_id, claim_token))
        if not row:
            logger.warning("LP queue requeue skipped, job no longer owned", job_id=job_id)
            return None
        return row["retry_count"]

    @classmethod
    async def release_job(cls, job_id: str, claim_token: str | None) -> bool:
        """Return a claimed job to pending without counting a retry."""

        query = """
            UPDATE lp_tracking_queue
            SET status = 'pending',
                claimed_at = NULL,
                claim_token = NULL
            WHERE id = %s
              AND status = 'processing'
              AND claim_token = %s
        """

        affected = await execute_query(query, (job_id, claim_token))
        return affected > 0

    @classmethod
    async def mark_job_completed(
        cls, job_id: str, claim_token: str | None, result: dict[str, Any] | None
    ) -> bool:
        """Mark the job as completed and store the handler output."""

        query = """
            UPDATE lp_tracking_queue
            SET status = 'completed',
                processed_at = NOW(),
                result = %s,
                error_message = NULL
            WHERE id = %s
              AND status = 'processing'
              AND claim_token = %s
        """

        affected = await execute_query(query, (_jsonb(result), job_id, claim_token))
        if not affected:
            logger.warning("LP queue completion not applied, job no longer owned", job_id=job_id)
        return affected > 0

    @classmethod
    async def mark_job_failed(
        cls,
        job_id: str,
        claim_token: str | None,
        error_message: str,
        result: dict[str, Any] | None = None,
    ) -> bool:
        """Mark the job as failed and store the error."""

        truncated_error = (error_message or "Unknown error")[:ERROR_MESSAGE_MAX_LENGTH]
        query = """
            UPDATE lp_tracking_queue
            SET status = 'failed',
                processed_at = NOW(),
                result = %s,
                error_message = %s
            WHERE id = %s
              AND status = 'processing'
              AND claim_token = %s
        """

        affected = await execute_query(
            query, (_jsonb(result), truncated_error, job_id, claim_token)
        )
        if not affected:
            logger.warning("LP queue failure not applied, job no longer owned", job_id=job_id)
        return affected > 0

    @classmethod
    async def release_stale_jobs(
        cls, older_than_minutes: int, max_retries: int | None = None
    ) -> StaleSweepResult:
        """
        Recover jobs stuck in processing (crashed worker).

        Counts as a retry so repeatedly crashing jobs stay visible. With
        max_retries set, a job whose retry_count would exceed it is moved
        to failed instead of back to pending.
        """

        # retry_count on the right-hand side is the pre-update value
        query = """
            UPDATE lp_tracking_queue
            SET status = CASE WHEN retry_count + 1 > %s::int THEN 'failed' ELSE 'pending' END,
                processed_at = CASE
                    WHEN retry_count + 1 > %s::int THEN NOW() ELSE processed_at
                END,
                error_message = CASE
                    WHEN retry_count + 1 > %s::int THEN %s ELSE error_message
                END,
                retry_count = retry_count + 1,
                claimed_at = NULL,
                claim_token = NULL
            WHERE status = 'processing'
              AND claimed_at < NOW() - make_interval(mins => %s::int)
            RETURNING id, status
        """

        rows = await fetch_all(
            query,
            (
                max_retries,
                max_retries,
                max_retries,
                STALE_DEAD_LETTER_MESSAGE,
                older_than_minutes,
            ),
        )
        sweep = StaleSweepResult(
            released=sum(1 for row in rows if row["status"] == JobStatus.PENDING.value),
            dead_lettered=sum(1 for row in rows if row["status"] == JobStatus.FAILED.value),
        )
        if rows:
            logger.warning(
                "Recovered stale LP queue jobs",
                released=sweep.released,
                dead_lettered=sweep.dead_lettered,
                older_than_minutes=older_than_minutes,
                max_retries=max_retries,
            )
        return sweep


def _jsonb(value: dict[str, Any] | None) -> Jsonb | None:
    return Jsonb(value) if value is not None else None
