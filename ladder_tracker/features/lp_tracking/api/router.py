"""
Cron trigger routes for LP tracking.

Every route requires `Authorization: Bearer <CRON_SECRET>`; these are
invoked by an external scheduler, never by end users.
"""

import hmac

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ladder_tracker.config import settings
from ladder_tracker.db.helpers import DatabaseError
from ladder_tracker.features.lp_tracking.api.schemas import (
    ActiveMatchCheckResponse,
    QueueRunResponse,
    StaleRecoveryResponse,
)
from ladder_tracker.features.lp_tracking.clients.riot_client import RiotApiClient
from ladder_tracker.features.lp_tracking.repository.queue_repository import LpQueueRepository
from ladder_tracker.features.lp_tracking.services.active_match_monitor import ActiveMatchMonitor
from ladder_tracker.features.lp_tracking.services.match_sync import (
    MatchSynchronizer,
    MatchSyncConfigError,
    load_match_synchronizer,
)
from ladder_tracker.features.lp_tracking.services.queue_processor import (
    LpQueueProcessor,
    build_processor,
)
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])

_bearer = HTTPBearer(auto_error=False)


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> None:
    if not settings.CRON_SECRET:
        logger.error("CRON_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Cron secret not configured",
        )

    token = credentials.credentials if credentials else ""
    if not hmac.compare_digest(token.encode(), settings.CRON_SECRET.encode()):
        logger.warning("Cron request rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_riot_client(request: Request) -> RiotApiClient:
    client = getattr(request.app.state, "riot_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Riot API client not initialized",
        )
    return client


def get_match_synchronizer() -> MatchSynchronizer | None:
    try:
        return load_match_synchronizer(settings.MATCH_SYNC_HANDLER)
    except MatchSyncConfigError as e:
        logger.error(
            "Match sync handler misconfigured", handler=settings.MATCH_SYNC_HANDLER, error=str(e)
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Match sync misconfigured: {e}",
        ) from e


def get_queue_processor(
    riot_client: RiotApiClient = Depends(get_riot_client),
    match_synchronizer: MatchSynchronizer | None = Depends(get_match_synchronizer),
) -> LpQueueProcessor:
    return build_processor(riot_client, match_synchronizer=match_synchronizer)


def get_active_match_monitor(
    riot_client: RiotApiClient = Depends(get_riot_client),
    match_synchronizer: MatchSynchronizer | None = Depends(get_match_synchronizer),
) -> ActiveMatchMonitor:
    return ActiveMatchMonitor(riot_client, match_synchronizer=match_synchronizer)


@router.post(
    "/lp-queue/process",
    response_model=QueueRunResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def process_lp_queue(
    batch_size: int | None = Query(default=None, ge=1, le=100),
    processor: LpQueueProcessor = Depends(get_queue_processor),
) -> QueueRunResponse:
    """Run one batch of the LP tracking queue."""
    try:
        summary = await processor.run_once(batch_size)
    except DatabaseError as e:
        logger.error("LP queue run failed", error=str(e), operation=e.operation)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e

    return QueueRunResponse(**summary.to_dict())


@router.post(
    "/active-matches/check",
    response_model=ActiveMatchCheckResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def check_active_matches(
    queue_batch_size: int = Query(default=10, ge=0, le=100),
    monitor: ActiveMatchMonitor = Depends(get_active_match_monitor),
    processor: LpQueueProcessor = Depends(get_queue_processor),
) -> ActiveMatchCheckResponse:
    """
    Detect game starts/ends for linked accounts, then drain a small batch
    of the queue so the resulting snapshot jobs run promptly.
    """
    try:
        monitor_stats = await monitor.run_once()
        queue_stats = None
        if queue_batch_size > 0:
            queue_stats = QueueRunResponse(**(await processor.run_once(queue_batch_size)).to_dict())
    except DatabaseError as e:
        logger.error("Active match check failed", error=str(e), operation=e.operation)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e

    return ActiveMatchCheckResponse(**monitor_stats, queue=queue_stats)


@router.post(
    "/lp-queue/recover-stale",
    response_model=StaleRecoveryResponse,
    dependencies=[Depends(verify_cron_secret)],
)
async def recover_stale_jobs(
    older_than_minutes: int | None = Query(default=None, ge=1),
) -> StaleRecoveryResponse:
    """Return jobs stuck in processing back to pending, failing those out of retries."""
    minutes = older_than_minutes or settings.LP_QUEUE_STALE_PROCESSING_MINUTES or 10
    try:
        sweep = await LpQueueRepository.release_stale_jobs(
            minutes, max_retries=settings.LP_QUEUE_MAX_RETRIES
        )
    except DatabaseError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e

    return StaleRecoveryResponse(
        released=sweep.released,
        dead_lettered=sweep.dead_lettered,
        older_than_minutes=minutes,
    )
