import pytest

from ladder_tracker.features.lp_tracking.domain import MatchSyncResult
from ladder_tracker.features.lp_tracking.services.match_sync import (
    MatchSyncConfigError,
    coerce_sync_result,
    load_match_synchronizer,
    run_match_sync,
)


def test_unset_handler_returns_none():
    assert load_match_synchronizer(None) is None
    assert load_match_synchronizer("") is None


def test_handler_resolved_from_dotted_path():
    handler = load_match_synchronizer("json:dumps")

    assert callable(handler)
    assert handler.__name__ == "dumps"


@pytest.mark.parametrize(
    "path", ["json.dumps", "no_such_module_here:sync", "json:not_a_function"]
)
def test_bad_handler_path_raises(path):
    with pytest.raises(MatchSyncConfigError):
        load_match_synchronizer(path)


def test_coerce_accepts_camel_case_dict():
    result = coerce_sync_result({"success": True, "newMatches": 3})

    assert result == MatchSyncResult(success=True, new_matches=3)


def test_coerce_defaults_missing_count():
    assert coerce_sync_result({"success": False}) == MatchSyncResult(success=False, new_matches=0)


@pytest.mark.asyncio
async def test_run_match_sync_awaits_async_handler():
    calls = []

    async def synchronizer(puuid, region, api_key, limit):
        calls.append((puuid, region, api_key, limit))
        return MatchSyncResult(success=True, new_matches=2)

    result = await run_match_sync(synchronizer, "P1", "la1", "RGAPI-test-key", 20)

    assert result.new_matches == 2
    assert calls == [("P1", "la1", "RGAPI-test-key", 20)]


@pytest.mark.asyncio
async def test_run_match_sync_accepts_plain_callable():
    result = await run_match_sync(
        lambda *args: {"success": True, "new_matches": 1}, "P1", "la1", "key", 5
    )

    assert result.success is True
    assert result.new_matches == 1
