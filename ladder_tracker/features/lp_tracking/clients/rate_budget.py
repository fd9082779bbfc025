"""
Shared Riot API request budget backed by Redis.

Riot enforces two windows per key and region (for development keys,
20 requests per second and 100 requests per two minutes). Several worker
processes can share one key, so each request reserves a slot in both
windows atomically before it is sent.

Design:
- Sliding window per (region, window) in a Redis sorted set
- One Lua script checks every window and only records the request if all allow it
- Fail-open behavior (if Redis is down, the request goes out and Riot's own 429 applies)
"""

import time

from ladder_tracker.infrastructure.observability.logging import get_logger
from ladder_tracker.services.redis_client import FastRedisClient

logger = get_logger(__name__)


class RiotRateBudget:
    """
    Two-window sliding budget for outgoing Riot requests.

    reserve() returns (allowed, retry_after_seconds). A denied reservation
    records nothing, so callers can simply requeue.
    """

    # KEYS: one sorted set per window
    # ARGV: now_ms, member, then (limit, window_ms) for each key in order
    # Returns: {allowed (0 or 1), index of the exhausted window, retry_after_ms}
    RESERVE_LUA_SCRIPT = """
    local now = tonumber(ARGV[1])
    local member = ARGV[2]

    for i = 1, #KEYS do
        local limit = tonumber(ARGV[1 + i * 2])
        local window = tonumber(ARGV[2 + i * 2])
        redis.call('ZREMRANGEBYSCORE', KEYS[i], 0, now - window)
        local count = redis.call('ZCARD', KEYS[i])
        if count >= limit then
            local oldest = redis.call('ZRANGE', KEYS[i], 0, 0, 'WITHSCORES')
            local retry_ms = window
            if #oldest > 0 then
                retry_ms = tonumber(oldest[2]) + window - now
            end
            return {0, i, retry_ms}
        end
    end

    for i = 1, #KEYS do
        local window = tonumber(ARGV[2 + i * 2])
        redis.call('ZADD', KEYS[i], now, member)
        redis.call('PEXPIRE', KEYS[i], window * 2)
    end

    return {1, 0, 0}
    """

    def __init__(
        self,
        redis_client: FastRedisClient,
        limits: list[tuple[int, int]],
        key_prefix: str = "riot_budget",
    ):
        """
        Args:
            redis_client: Initialized FastRedisClient
            limits: (limit, window_seconds) pairs, e.g. [(20, 1), (100, 120)]
            key_prefix: Namespace for the Redis keys
        """
        self.redis_client = redis_client
        self.limits = limits
        self.key_prefix = key_prefix

    def _keys(self, region: str) -> list[str]:
        return [f"{self.key_prefix}:{region}:{window}s" for _, window in self.limits]

    async def reserve(self, region: str) -> tuple[bool, int | None]:
        """
        Reserve one request slot for the given platform region.

        Returns:
            (allowed, retry_after_seconds); retry_after is None when allowed
        """
        client = self.redis_client.client
        if client is None:
            logger.warning("Redis not initialized, Riot budget failing open", region=region)
            return True, None

        now_ms = int(time.time() * 1000)
        member = f"{now_ms}:{time.time_ns()}"
        args: list = [now_ms, member]
        for limit, window_seconds in self.limits:
            args.extend([limit, window_seconds * 1000])

        keys = self._keys(region)

        try:
            result = await client.eval(self.RESERVE_LUA_SCRIPT, len(keys), *keys, *args)
        except Exception as e:
            logger.error(
                "Riot budget Redis error, failing open",
                error=str(e),
                error_type=type(e).__name__,
                region=region,
            )
            return True, None

        allowed = bool(int(result[0]))
        if allowed:
            return True, None

        exhausted_index = int(result[1]) - 1
        retry_after = max(1, -(-int(result[2]) // 1000))
        limit, window_seconds = self.limits[exhausted_index]
        logger.info(
            "Riot request budget exhausted",
            region=region,
            limit=limit,
            window_seconds=window_seconds,
            retry_after=retry_after,
        )
        return False, retry_after
