"""
Tests for RiotApiClient status mapping, using httpx.MockTransport.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from ladder_tracker.features.lp_tracking.clients.riot_client import (
    RiotApiClient,
    RiotRateLimitedError,
    RiotUpstreamError,
    find_solo_queue_entry,
)

LEAGUE_PAYLOAD = [
    {
        "queueType": "RANKED_FLEX_SR",
        "tier": "SILVER",
        "rank": "I",
        "leaguePoints": 12,
        "wins": 3,
        "losses": 4,
    },
    {
        "queueType": "RANKED_SOLO_5x5",
        "tier": "GOLD",
        "rank": "II",
        "leaguePoints": 40,
        "wins": 10,
        "losses": 8,
    },
]


def _client(handler, **kwargs) -> RiotApiClient:
    return RiotApiClient(
        api_key="RGAPI-unit", transport=httpx.MockTransport(handler), **kwargs
    )


@pytest.mark.asyncio
async def test_active_game_found():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["token"] = request.headers.get("X-Riot-Token")
        return httpx.Response(200, json={"gameId": 4455667788, "gameMode": "CLASSIC"})

    client = _client(handler)
    result = await client.check_active_game("puuid-1")
    await client.close()

    assert result.in_game is True
    assert result.game_id == "4455667788"
    assert result.raw["gameMode"] == "CLASSIC"
    assert seen["url"] == (
        "https://la1.api.riotgames.com/lol/spectator/v5/active-games/by-summoner/puuid-1"
    )
    assert seen["token"] == "RGAPI-unit"


@pytest.mark.asyncio
async def test_active_game_not_found_is_not_an_error():
    client = _client(lambda request: httpx.Response(404, json={"status": {"status_code": 404}}))

    result = await client.check_active_game("puuid-1")

    assert result.in_game is False
    assert result.game_id is None


@pytest.mark.asyncio
async def test_region_override_is_lowercased():
    hosts = []

    def handler(request):
        hosts.append(request.url.host)
        return httpx.Response(200, json=LEAGUE_PAYLOAD)

    client = _client(handler)
    await client.get_ranked_entries("puuid-1", region="EUW1")

    assert hosts == ["euw1.api.riotgames.com"]


@pytest.mark.asyncio
async def test_ranked_entries_parsed():
    client = _client(lambda request: httpx.Response(200, json=LEAGUE_PAYLOAD))

    entries = await client.get_ranked_entries("puuid-1")
    solo = find_solo_queue_entry(entries)

    assert len(entries) == 2
    assert solo is not None
    assert (solo.tier, solo.rank, solo.league_points, solo.wins, solo.losses) == (
        "GOLD",
        "II",
        40,
        10,
        8,
    )


def test_find_solo_queue_entry_none_when_missing():
    assert find_solo_queue_entry([]) is None


@pytest.mark.asyncio
async def test_429_maps_to_rate_limited():
    client = _client(lambda request: httpx.Response(429, headers={"Retry-After": "7"}))

    with pytest.raises(RiotRateLimitedError) as exc_info:
        await client.get_ranked_entries("puuid-1")

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 7


@pytest.mark.asyncio
async def test_429_on_spectator_maps_to_rate_limited():
    client = _client(lambda request: httpx.Response(429))

    with pytest.raises(RiotRateLimitedError):
        await client.check_active_game("puuid-1")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [400, 403, 500, 503])
async def test_other_errors_map_to_upstream(status_code):
    client = _client(lambda request: httpx.Response(status_code))

    with pytest.raises(RiotUpstreamError) as exc_info:
        await client.get_ranked_entries("puuid-1")

    assert exc_info.value.status_code == status_code
    assert str(status_code) in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_maps_to_upstream():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(handler)

    with pytest.raises(RiotUpstreamError) as exc_info:
        await client.check_active_game("puuid-1")

    assert exc_info.value.status_code is None
    assert "timeout" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_error_maps_to_upstream():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)

    with pytest.raises(RiotUpstreamError):
        await client.get_ranked_entries("puuid-1")


@pytest.mark.asyncio
async def test_invalid_json_maps_to_upstream():
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(RiotUpstreamError):
        await client.get_ranked_entries("puuid-1")


@pytest.mark.asyncio
async def test_budget_denied_skips_network_call():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json=LEAGUE_PAYLOAD)

    budget = AsyncMock()
    budget.reserve.return_value = (False, 3)
    client = _client(handler, rate_budget=budget)

    with pytest.raises(RiotRateLimitedError) as exc_info:
        await client.get_ranked_entries("puuid-1")

    assert requests == []
    assert exc_info.value.retry_after == 3
    budget.reserve.assert_awaited_once_with("la1")


@pytest.mark.asyncio
async def test_budget_allowed_passes_through():
    budget = AsyncMock()
    budget.reserve.return_value = (True, None)
    client = _client(lambda request: httpx.Response(200, json=LEAGUE_PAYLOAD), rate_budget=budget)

    entries = await client.get_ranked_entries("puuid-1")

    assert len(entries) == 2


def test_missing_api_key_rejected():
    with pytest.raises(ValueError):
        RiotApiClient(api_key="")
