"""
Match-history synchronizer boundary.

The synchronizer that fetches and stores completed matches lives in the
web application. This service only needs its contract:

    async (puuid, region, api_key, limit) -> MatchSyncResult

A concrete implementation is wired by dotted path through
MATCH_SYNC_HANDLER ("package.module:function").
"""

import importlib
import inspect
from typing import Any, Protocol

from ladder_tracker.features.lp_tracking.domain import MatchSyncResult
from ladder_tracker.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class MatchSynchronizer(Protocol):
    async def __call__(
        self, puuid: str, region: str, api_key: str, limit: int
    ) -> MatchSyncResult: ...


class MatchSyncConfigError(Exception):
    """MATCH_SYNC_HANDLER does not point at a usable callable."""


def load_match_synchronizer(handler_path: str | None) -> MatchSynchronizer | None:
    """
    Resolve "package.module:function" to the synchronizer callable.

    Returns:
        The callable, or None when no handler is configured
    """
    if not handler_path:
        return None

    module_path, _, attr = handler_path.partition(":")
    if not module_path or not attr:
        raise MatchSyncConfigError(
            f"MATCH_SYNC_HANDLER must look like 'package.module:function', got '{handler_path}'"
        )

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise MatchSyncConfigError(f"Cannot import match sync module '{module_path}': {e}") from e

    handler = getattr(module, attr, None)
    if handler is None or not callable(handler):
        raise MatchSyncConfigError(f"'{handler_path}' is not a callable")

    logger.info("Match synchronizer loaded", handler=handler_path)
    return handler


def coerce_sync_result(raw: Any) -> MatchSyncResult:
    """Accept either a MatchSyncResult or the web app's {success, newMatches} dict."""
    if isinstance(raw, MatchSyncResult):
        return raw
    if isinstance(raw, dict):
        new_matches = raw.get("new_matches", raw.get("newMatches", 0))
        return MatchSyncResult(success=bool(raw.get("success")), new_matches=int(new_matches or 0))
    return MatchSyncResult(success=bool(raw))


async def run_match_sync(
    synchronizer: MatchSynchronizer,
    puuid: str,
    region: str,
    api_key: str,
    limit: int,
) -> MatchSyncResult:
    """Invoke the synchronizer, awaiting it if it returns an awaitable."""
    raw = synchronizer(puuid, region, api_key, limit)
    if inspect.isawaitable(raw):
        raw = await raw
    return coerce_sync_result(raw)
