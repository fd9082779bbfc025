"""
Active-match monitor.

Watches linked accounts through Spectator-V5 and feeds the LP queue:
- accounts flagged in game whose game has ended get a post-game snapshot job
- idle accounts caught in a game get a pre-game snapshot job
- idle accounts not in a game get a passive match-history sync
"""

import time
from typing import Any

from ladder_tracker.config import settings
from ladder_tracker.features.lp_tracking.clients.riot_client import (
    RiotApiClient,
    RiotApiError,
    RiotRateLimitedError,
)
from ladder_tracker.features.lp_tracking.domain import LinkedRiotAccount
from ladder_tracker.features.lp_tracking.repository.linked_account_repository import (
    LinkedAccountRepository,
)
from ladder_tracker.features.lp_tracking.repository.queue_repository import LpQueueRepository
from ladder_tracker.features.lp_tracking.services.match_sync import (
    MatchSynchronizer,
    run_match_sync,
)
from ladder_tracker.features.lp_tracking.services.scheduler import (
    LpSchedulerError,
    enqueue_lp_job,
)
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ActiveMatchMonitor:
    def __init__(
        self,
        riot_client: RiotApiClient,
        account_repository=LinkedAccountRepository,
        queue_repository=LpQueueRepository,
        match_synchronizer: MatchSynchronizer | None = None,
        in_game_limit: int | None = None,
        passive_limit: int | None = None,
        sync_limit: int | None = None,
    ):
        self.riot_client = riot_client
        self.account_repository = account_repository
        self.queue_repository = queue_repository
        self.match_synchronizer = match_synchronizer
        self.in_game_limit = in_game_limit or settings.ACTIVE_MONITOR_IN_GAME_LIMIT
        self.passive_limit = passive_limit or settings.ACTIVE_MONITOR_PASSIVE_LIMIT
        self.sync_limit = sync_limit or settings.ACTIVE_MONITOR_SYNC_LIMIT

    async def run_once(self) -> dict[str, Any]:
        """
        Run both monitor phases.

        Returns:
            Dict with active_checked, games_ended, games_started,
            passive_synced and duration_seconds
        """
        started = time.monotonic()
        stats = {"active_checked": 0, "games_ended": 0, "games_started": 0, "passive_synced": 0}

        in_game = await self.account_repository.list_in_game_accounts(self.in_game_limit)
        if in_game:
            logger.info("Checking in-game accounts", count=len(in_game))
        for account in in_game:
            ended = await self._check_in_game_account(account)
            stats["active_checked"] += 1
            if ended:
                stats["games_ended"] += 1

        idle = await self.account_repository.list_idle_accounts(self.passive_limit)
        for account in idle:
            outcome = await self._check_idle_account(account)
            if outcome == "started":
                stats["games_started"] += 1
            elif outcome == "synced":
                stats["passive_synced"] += 1

        stats["duration_seconds"] = round(time.monotonic() - started, 2)
        logger.info("Active match check completed", **stats)
        return stats

    def _region(self, account: LinkedRiotAccount) -> str:
        return self.riot_client.resolve_region(account.active_shard)

    async def _check_in_game_account(self, account: LinkedRiotAccount) -> bool:
        """Returns True when the tracked game has ended."""
        region = self._region(account)
        try:
            active = await self.riot_client.check_active_game(account.puuid, region)
        except RiotRateLimitedError:
            logger.info("Rate limited during active check, skipping", user_id=account.user_id)
            return False
        except RiotApiError as e:
            logger.warning(
                "Active check failed",
                user_id=account.user_id,
                status_code=e.status_code,
                error=str(e),
            )
            return False

        if active.in_game:
            await self.account_repository.touch_active_check(account.user_id)
            return False

        game_id = account.last_known_game_id
        logger.info("Tracked game ended", user_id=account.user_id, game_id=game_id)

        if game_id:
            # Account stays in game until the post-game job exists, so a
            # failed enqueue is retried on the next run
            if not await self._enqueue(account, "post_game", game_id, region):
                return False
            await self.account_repository.mark_game_ended(account.user_id)
        else:
            await self.account_repository.mark_game_ended(account.user_id)
            await self._sync(account, region)
        return True

    async def _check_idle_account(self, account: LinkedRiotAccount) -> str | None:
        region = self._region(account)
        try:
            active = await self.riot_client.check_active_game(account.puuid, region)
        except RiotRateLimitedError:
            logger.info("Rate limited during passive check, skipping", user_id=account.user_id)
            return None
        except RiotApiError as e:
            logger.warning("Spectator check failed", user_id=account.user_id, error=str(e))
            active = None

        if active is not None and active.in_game and active.game_id:
            logger.info("Game started while idle", user_id=account.user_id, game_id=active.game_id)
            # League-V4 still reports the pre-game LP while the game is running
            if not await self._enqueue(account, "pre_game", active.game_id, region):
                return None
            await self.account_repository.mark_game_started(account.user_id, active.game_id)
            return "started"

        if await self._sync(account, region):
            await self.account_repository.touch_last_updated(account.user_id)
            return "synced"
        return None

    async def _enqueue(
        self, account: LinkedRiotAccount, trigger: str, game_id: str, region: str
    ) -> bool:
        """Returns False when the job could not be queued."""
        try:
            await enqueue_lp_job(
                user_id=account.user_id,
                puuid=account.puuid,
                trigger=trigger,
                game_id=game_id,
                region=region,
                repository=self.queue_repository,
            )
        except LpSchedulerError as e:
            logger.error(
                "Failed to enqueue snapshot from monitor",
                user_id=account.user_id,
                trigger=trigger,
                error=str(e),
            )
            return False
        return True

    async def _sync(self, account: LinkedRiotAccount, region: str) -> bool:
        if self.match_synchronizer is None:
            logger.debug("Match sync not configured", user_id=account.user_id)
            return False
        try:
            result = await run_match_sync(
                self.match_synchronizer,
                account.puuid,
                region,
                self.riot_client.api_key,
                self.sync_limit,
            )
        except Exception as e:
            logger.warning("Passive sync error", user_id=account.user_id, error=str(e))
            return False
        return result.success
