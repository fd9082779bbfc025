"""
Outbound clients for the LP tracking feature.
"""

from .rate_budget import RiotRateBudget
from .riot_client import (
    RiotApiClient,
    RiotApiError,
    RiotRateLimitedError,
    RiotUpstreamError,
    create_riot_client,
    find_solo_queue_entry,
)

__all__ = [
    "RiotApiClient",
    "RiotApiError",
    "RiotRateBudget",
    "RiotRateLimitedError",
    "RiotUpstreamError",
    "create_riot_client",
    "find_solo_queue_entry",
]
