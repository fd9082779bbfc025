"""
Riot Games API client for the LP tracking queue.

Two read endpoints are used:
- Spectator-V5 active game by PUUID (is the player in a game right now?)
- League-V4 entries by PUUID (current tier / division / LP)

The client maps HTTP outcomes to a small exception hierarchy and does no
retrying of its own; requeue decisions belong to the queue processor.
"""

from typing import Any

import httpx

from ladder_tracker.config import settings
from ladder_tracker.features.lp_tracking.clients.rate_budget import RiotRateBudget
from ladder_tracker.features.lp_tracking.domain import (
    SOLO_QUEUE_TYPE,
    ActiveGameResult,
    RankedEntry,
)
from ladder_tracker.infrastructure.observability.logging import get_logger
from ladder_tracker.services.redis_client import fast_redis

logger = get_logger(__name__)

RIOT_HOST_TEMPLATE = "https://{region}.api.riotgames.com"
SPECTATOR_ACTIVE_GAME_PATH = "/lol/spectator/v5/active-games/by-summoner/{puuid}"
LEAGUE_ENTRIES_PATH = "/lol/league/v4/entries/by-puuid/{puuid}"

DEFAULT_TIMEOUT_SECONDS = 10.0


class RiotApiError(Exception):
    """Base exception for Riot API failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        region: str | None = None,
        endpoint: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.region = region
        self.endpoint = endpoint


class RiotRateLimitedError(RiotApiError):
    """HTTP 429 from Riot, or the shared request budget is exhausted."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, status_code=429, **kwargs)
        self.retry_after = retry_after


class RiotUpstreamError(RiotApiError):
    """Any other non-2xx status, transport error or timeout."""


def find_solo_queue_entry(entries: list[RankedEntry]) -> RankedEntry | None:
    """Return the ranked solo queue entry, or None if the player has none."""
    return next((entry for entry in entries if entry.queue_type == SOLO_QUEUE_TYPE), None)


class RiotApiClient:
    """
    Async client for the Riot endpoints the LP queue needs.

    The API key and default platform region are explicit constructor
    arguments; every call can override the region.
    """

    def __init__(
        self,
        api_key: str,
        default_region: str = "la1",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        rate_budget: RiotRateBudget | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Riot API key is required")

        self.api_key = api_key
        self.default_region = default_region.lower()
        self.rate_budget = rate_budget
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            headers={"X-Riot-Token": api_key, "Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def resolve_region(self, region: str | None) -> str:
        return (region or self.default_region).lower()

    async def _get(self, region: str, path: str, endpoint: str) -> httpx.Response:
        """Send one GET, applying the shared budget and mapping transport failures."""
        if self.rate_budget is not None:
            allowed, retry_after = await self.rate_budget.reserve(region)
            if not allowed:
                raise RiotRateLimitedError(
                    "Riot request budget exhausted",
                    retry_after=retry_after,
                    region=region,
                    endpoint=endpoint,
                )

        url = RIOT_HOST_TEMPLATE.format(region=region) + path
        try:
            response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RiotUpstreamError(
                f"Riot API timeout: {type(e).__name__}", region=region, endpoint=endpoint
            ) from e
        except httpx.RequestError as e:
            raise RiotUpstreamError(
                f"Riot API request error: {e}", region=region, endpoint=endpoint
            ) from e

        logger.debug(
            "Riot API response",
            endpoint=endpoint,
            region=region,
            status_code=response.status_code,
        )

        if response.status_code == 429:
            raise RiotRateLimitedError(
                "Riot API rate limit exceeded",
                retry_after=_parse_retry_after(response),
                region=region,
                endpoint=endpoint,
            )

        return response

    @staticmethod
    def _json(response: httpx.Response, region: str, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RiotUpstreamError(
                f"Invalid JSON from Riot API: {e}",
                status_code=response.status_code,
                region=region,
                endpoint=endpoint,
            ) from e

    async def check_active_game(self, puuid: str, region: str | None = None) -> ActiveGameResult:
        """
        Look up the player's current game.

        Returns:
            ActiveGameResult with in_game=False on 404

        Raises:
            RiotRateLimitedError: on 429
            RiotUpstreamError: on any other failure
        """
        region = self.resolve_region(region)
        endpoint = "spectator_active_game"
        response = await self._get(
            region, SPECTATOR_ACTIVE_GAME_PATH.format(puuid=puuid), endpoint
        )

        if response.status_code == 404:
            return ActiveGameResult(in_game=False)

        if not response.is_success:
            raise RiotUpstreamError(
                f"Riot API error: {response.status_code}",
                status_code=response.status_code,
                region=region,
                endpoint=endpoint,
            )

        payload = self._json(response, region, endpoint)
        game_id = payload.get("gameId") if isinstance(payload, dict) else None
        return ActiveGameResult(
            in_game=True,
            game_id=str(game_id) if game_id is not None else None,
            raw=payload if isinstance(payload, dict) else None,
        )

    async def get_ranked_entries(self, puuid: str, region: str | None = None) -> list[RankedEntry]:
        """
        Fetch every ranked queue entry for the player.

        Raises:
            RiotRateLimitedError: on 429
            RiotUpstreamError: on any other non-2xx or transport failure
        """
        region = self.resolve_region(region)
        endpoint = "league_entries"
        response = await self._get(region, LEAGUE_ENTRIES_PATH.format(puuid=puuid), endpoint)

        if not response.is_success:
            raise RiotUpstreamError(
                f"Riot API error: {response.status_code}",
                status_code=response.status_code,
                region=region,
                endpoint=endpoint,
            )

        payload = self._json(response, region, endpoint)
        if not isinstance(payload, list):
            raise RiotUpstreamError(
                "Unexpected League-V4 payload shape",
                status_code=response.status_code,
                region=region,
                endpoint=endpoint,
            )

        return [_parse_ranked_entry(item) for item in payload if isinstance(item, dict)]


def _parse_ranked_entry(item: dict[str, Any]) -> RankedEntry:
    return RankedEntry(
        queue_type=item.get("queueType", ""),
        tier=item.get("tier", ""),
        rank=item.get("rank", ""),
        league_points=int(item.get("leaguePoints") or 0),
        wins=int(item.get("wins") or 0),
        losses=int(item.get("losses") or 0),
    )


def _parse_retry_after(response: httpx.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def create_riot_client(api_key: str | None = None) -> RiotApiClient:
    """
    Build a client from settings.

    The shared request budget is attached only when it is enabled and the
    Redis client has been initialized.
    """
    rate_budget = None
    if settings.RIOT_RATE_BUDGET_ENABLED:
        if fast_redis.initialized:
            rate_budget = RiotRateBudget(fast_redis, settings.get_riot_rate_limits())
        else:
            logger.warning("Riot rate budget enabled but Redis is not initialized")

    return RiotApiClient(
        api_key=api_key or settings.RIOT_API_KEY,
        default_region=settings.RIOT_DEFAULT_REGION,
        timeout_seconds=settings.RIOT_REQUEST_TIMEOUT_SECONDS,
        rate_budget=rate_budget,
    )
