"""
Tests for the Sleeper tool operations and their response envelopes.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from conftest import FakeClock, FakeSleeperSource, SAMPLE_CATALOG
from sleeper_mcp import sleeper_tools
from sleeper_mcp.enrichment import EnrichmentJoiner
from sleeper_mcp.errors import ErrorType, NotFoundError, RateLimitedError, UpstreamError
from sleeper_mcp.metrics import MetricsCollector
from sleeper_mcp.player_cache import PlayerCache
from sleeper_mcp.snapshot_store import DurableSnapshotStore

ROSTERS = [
    {"roster_id": 1, "owner_id": "u1", "players": ["4046", "6794", "5012", "2133", "4866"],
     "starters": ["4046", "5012", "2133"]},
    {"roster_id": 2, "owner_id": "u2", "players": ["4034"], "starters": ["4034"]},
]
USERS = [
    {"user_id": "u1", "username": "alpha", "display_name": "Alpha", "is_owner": True},
    {"user_id": "u2", "username": "bravo", "display_name": "Bravo"},
]
MATCHUPS = {
    5: [
        {"roster_id": 1, "matchup_id": 1, "points": 90.0, "players": ["4046", "6794"], "starters": ["4046"]},
        {"roster_id": 2, "matchup_id": 1, "points": 80.0, "players": ["4034"], "starters": ["4034"]},
    ],
}


def build(store=None, **kwargs):
    source = FakeSleeperSource(rosters=ROSTERS, users=USERS, matchups=MATCHUPS, **kwargs)
    source.get_current_week = AsyncMock(return_value=5)
    source.get_current_season = AsyncMock(return_value="2024")
    cache = PlayerCache(source, store, clock=FakeClock(), metrics=MetricsCollector())
    return source, cache, EnrichmentJoiner(cache, source)


class TestUserAndLeagueTools:

    @pytest.mark.asyncio
    async def test_user_leagues_default_to_current_season(self):
        client = AsyncMock()
        client.get_current_season.return_value = "2025"
        client.get_user_leagues.return_value = [{"league_id": "1"}]

        result = await sleeper_tools.get_user_leagues(client, "42")

        assert result["success"] is True
        assert result["season"] == "2025"
        assert result["count"] == 1
        client.get_user_leagues.assert_awaited_once_with("42", "2025", "nfl")

    @pytest.mark.asyncio
    async def test_user_not_found_maps_to_envelope(self):
        client = AsyncMock()
        client.get_user.side_effect = NotFoundError("Resource not found: /user/x")

        result = await sleeper_tools.get_user_info(client, "x")

        assert result["success"] is False
        assert result["error_type"] == ErrorType.NOT_FOUND
        assert result["user"] is None

    @pytest.mark.asyncio
    async def test_empty_user_body_is_not_found(self):
        client = AsyncMock()
        client.get_user.return_value = None

        result = await sleeper_tools.get_user_info(client, "ghost")

        assert result["error_type"] == ErrorType.NOT_FOUND

    @pytest.mark.asyncio
    async def test_rate_limit_keeps_default_shape(self):
        client = AsyncMock()
        client.get_league.side_effect = RateLimitedError("slow down")

        result = await sleeper_tools.get_league_info(client, "1")

        assert result["error_type"] == ErrorType.RATE_LIMITED
        assert result["league"] is None

    @pytest.mark.asyncio
    async def test_league_rosters_with_details(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_league_rosters(source, joiner, "100")

        assert result["success"] is True
        assert result["count"] == 2
        first = result["rosters"][0]
        assert first["user"]["display_name"] == "Alpha"
        assert [p["player_id"] for p in first["starters"]] == ["4046", "5012", "2133"]

    @pytest.mark.asyncio
    async def test_league_rosters_raw(self):
        client = AsyncMock()
        client.get_league_rosters_raw.return_value = ROSTERS

        result = await sleeper_tools.get_league_rosters(client, None, "100", include_player_details=False)

        assert result["rosters"] == ROSTERS

    @pytest.mark.asyncio
    async def test_league_users_commissioners(self):
        source, _, _ = build()

        result = await sleeper_tools.get_league_users(source, "100")

        assert result["count"] == 2
        assert [u["user_id"] for u in result["commissioners"]] == ["u1"]

    @pytest.mark.asyncio
    async def test_playoff_bracket_type(self):
        client = AsyncMock()
        client.get_losers_bracket.return_value = [{"r": 1}]

        result = await sleeper_tools.get_playoff_bracket(client, "100", "losers")

        assert result["playoff_bracket"] == [{"r": 1}]
        client.get_winners_bracket.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_draft_picks_resolve_players(self):
        source, _, joiner = build()
        source.get_draft_picks = AsyncMock(return_value=[
            {"pick_no": 1, "player_id": "4046"},
            {"pick_no": 2, "player_id": "ghost"},
        ])

        result = await sleeper_tools.get_draft_picks(source, joiner, "900")

        assert result["picks"][0]["player"]["full_name"] == "Patrick Mahomes"
        assert result["picks"][1]["player"] is None

    @pytest.mark.asyncio
    async def test_user_drafts_default_to_current_season(self):
        client = AsyncMock()
        client.get_current_season.return_value = "2025"
        client.get_user_drafts.return_value = [{"draft_id": "900"}, {"draft_id": "901"}]

        result = await sleeper_tools.get_user_drafts(client, "42")

        assert result["count"] == 2
        assert result["season"] == "2025"
        client.get_user_drafts.assert_awaited_once_with("42", "2025", "nfl")

    @pytest.mark.asyncio
    async def test_league_and_draft_pick_lists(self):
        client = AsyncMock()
        client.get_traded_picks.return_value = [{"season": "2025", "round": 1}]
        client.get_league_drafts.return_value = [{"draft_id": "900"}]
        client.get_draft_traded_picks.return_value = []

        traded = await sleeper_tools.get_traded_picks(client, "100")
        drafts = await sleeper_tools.get_league_drafts(client, "100")
        draft_traded = await sleeper_tools.get_draft_traded_picks(client, "900")

        assert traded["count"] == 1
        assert drafts["drafts"] == [{"draft_id": "900"}]
        assert draft_traded["success"] is True
        assert draft_traded["count"] == 0

    @pytest.mark.asyncio
    async def test_draft_not_found(self):
        client = AsyncMock()
        client.get_draft.side_effect = NotFoundError("Resource not found: /draft/1")

        result = await sleeper_tools.get_draft(client, "1")

        assert result["success"] is False
        assert result["error_type"] == ErrorType.NOT_FOUND
        assert result["draft"] is None

    @pytest.mark.asyncio
    async def test_nfl_state_message(self):
        client = AsyncMock()
        client.get_nfl_state.return_value = {"week": 7, "season_type": "regular", "season": "2024"}

        result = await sleeper_tools.get_nfl_state(client)

        assert result["nfl_state"]["week"] == 7
        assert result["season_active"] is True
        assert result["message"] == "Current NFL state: Week 7 of regular season 2024"


class TestMatchupTools:

    @pytest.mark.asyncio
    async def test_current_matchups_default_week(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_current_matchups(source, joiner, "100")

        assert result["week"] == 5
        assert result["matchup_count"] == 1
        assert [m["roster_id"] for m in result["matchups"][1]] == [1, 2]

    @pytest.mark.asyncio
    async def test_matchup_details(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_matchup_details(source, joiner, "100", "u1", 5)

        assert result["success"] is True
        assert [side["user"]["display_name"] for side in result["matchup"]] == ["Alpha", "Bravo"]

    @pytest.mark.asyncio
    async def test_matchup_not_found(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_matchup_details(source, joiner, "100", "u1", 9)

        assert result["success"] is False
        assert result["error_type"] == ErrorType.NOT_FOUND
        assert result["error"] == "No matchup found for this user in the specified week"
        assert result["matchup"] is None
        assert result["week"] == 9

    @pytest.mark.asyncio
    async def test_transactions(self):
        source, _, joiner = build(transactions=[{"transaction_id": "t", "adds": {"4034": 2}, "created": 0}])

        result = await sleeper_tools.get_transactions(source, joiner, "100")

        assert result["week"] == 5
        assert result["transactions"][0]["enhanced_adds"]["4034"]["player"]["last_name"] == "McCaffrey"


class TestPlayerTools:

    @pytest.mark.asyncio
    async def test_search_players(self):
        _, cache, _ = build()

        result = await sleeper_tools.search_players(cache, "mahomes", 5)

        assert result["count"] == 1
        assert result["players"][0]["display_position"] == "QB"

    @pytest.mark.asyncio
    async def test_catalog_failure_becomes_upstream_error(self):
        _, cache, _ = build(error=UpstreamError("down"))

        result = await sleeper_tools.search_players(cache, "mahomes", 5)

        assert result["success"] is False
        assert result["error_type"] == ErrorType.UPSTREAM
        assert result["players"] == []

    @pytest.mark.asyncio
    async def test_trending_players(self):
        _, _, joiner = build(trending=[{"player_id": "6794", "count": 3}, {"player_id": "ghost", "count": 1}])

        result = await sleeper_tools.get_trending_players(joiner, "add", 24, 25)

        assert result["count"] == 2
        assert result["trending_players"][1]["player"] is None

    @pytest.mark.asyncio
    async def test_player_details_counts(self):
        _, _, joiner = build()

        result = await sleeper_tools.get_player_details(joiner, ["4046", "ghost"])

        assert result["count"] == 1
        assert result["requested_count"] == 2

    @pytest.mark.asyncio
    async def test_research_player_status(self):
        _, cache, _ = build()

        result = await sleeper_tools.research_player_status(cache, "Andrews")

        analysis = result["analysis"]
        assert analysis["current_status"]["injury_status"] == "Out"
        assert analysis["recommendation"].startswith("DO NOT START")
        assert analysis["injury_risk"] == "extreme"

    @pytest.mark.asyncio
    async def test_research_unknown_player(self):
        _, cache, _ = build()

        result = await sleeper_tools.research_player_status(cache, "Nobody Here")

        assert result["error_type"] == ErrorType.NOT_FOUND

    @pytest.mark.asyncio
    async def test_compare_players(self):
        _, _, joiner = build()

        result = await sleeper_tools.compare_players(joiner, "4046", "5012", "week 5")

        comparison = result["comparison"]
        assert comparison["context"] == "week 5"
        assert comparison["comparison"]["recommendation"].startswith("Start Patrick Mahomes")

    @pytest.mark.asyncio
    async def test_compare_missing_player(self):
        _, _, joiner = build()

        result = await sleeper_tools.compare_players(joiner, "4046", "ghost")

        assert result["error_type"] == ErrorType.NOT_FOUND


class TestAdviceTools:

    @pytest.mark.asyncio
    async def test_analyze_lineup(self):
        source, _, joiner = build()

        result = await sleeper_tools.analyze_lineup(source, joiner, "100", "u1")

        analysis = result["analysis"]
        assert analysis["week"] == 5
        assert analysis["user"]["display_name"] == "Alpha"
        assert analysis["overall_grade"] == "F"
        assert {p["player_id"] for p in analysis["questionable_players"]} == {"5012", "2133"}
        assert [r["player"]["player_id"] for r in analysis["recommendations"]] == ["2133"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tool, args", [
        (sleeper_tools.analyze_lineup, ()),
        (sleeper_tools.get_start_sit_advice, ()),
    ])
    async def test_user_not_in_league(self, tool, args):
        source, _, joiner = build()

        result = await tool(source, joiner, "100", "stranger", *args)

        assert result["success"] is False
        assert result["error"] == "User not found in this league"

    @pytest.mark.asyncio
    async def test_start_sit_sorted_starts_first(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_start_sit_advice(source, joiner, "100", "u1")

        recs = [a["recommendation"] for a in result["advice"]]
        assert recs[0] == "start"
        assert recs.index("sit") > max(i for i, r in enumerate(recs) if r == "start")
        assert result["count"] == 5

    @pytest.mark.asyncio
    async def test_start_sit_position_filter(self):
        source, _, joiner = build()

        result = await sleeper_tools.get_start_sit_advice(source, joiner, "100", "u1", "WR")

        assert {a["player"]["player_id"] for a in result["advice"]} == {"6794", "2133"}

    @pytest.mark.asyncio
    async def test_waiver_suggestions_skip_owned(self):
        source, _, joiner = build(trending=[
            {"player_id": "4046", "count": 90},
            {"player_id": "4034", "count": 50},
            {"player_id": "KC", "count": 10},
        ])

        result = await sleeper_tools.get_waiver_suggestions(source, joiner, "100", "u1")

        ids = [s["player"]["player_id"] for s in result["suggestions"]]
        assert ids == ["4034", "KC"]
        assert result["suggestions"][0]["trending_adds"] == 50
        assert result["suggestions"][0]["priority"] == "high"

    @pytest.mark.asyncio
    async def test_waiver_suggestions_only_active_players(self):
        source, _, joiner = build(trending=[
            {"player_id": "9999", "count": 80},
            {"player_id": "4866", "count": 40},
            {"player_id": "4034", "count": 30},
            {"player_id": "KC", "count": 10},
        ])

        result = await sleeper_tools.get_waiver_suggestions(source, joiner, "100", "u2", position="rb")

        assert [s["player"]["player_id"] for s in result["suggestions"]] == ["4866"]
        assert result["suggestions"][0]["priority"] == "high"
        assert result["position_filter"] == "rb"


class TestCacheTools:

    @pytest.mark.asyncio
    async def test_clear_requires_confirmation(self, tmp_path):
        store = DurableSnapshotStore(directory=tmp_path)
        source, cache, _ = build(store=store)
        await cache.ensure_fresh()

        result = await sleeper_tools.clear_cache(cache)

        assert result["success"] is False
        assert result["error_type"] == ErrorType.DECLINED
        assert result["action"] == "cache_clear_declined"
        assert store.players_path.exists()
        assert len(cache) > 0

    @pytest.mark.asyncio
    async def test_clear_confirmed(self, tmp_path):
        store = DurableSnapshotStore(directory=tmp_path)
        source, cache, _ = build(store=store)
        await cache.ensure_fresh()

        result = await sleeper_tools.clear_cache(cache, confirm=True)

        assert result["success"] is True
        assert result["action"] == "cache_cleared"
        assert not store.players_path.exists()
        assert not store.meta_path.exists()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_clear_partial_failure(self):
        cache = AsyncMock()
        cache.reset.return_value = False

        result = await sleeper_tools.clear_cache(cache, confirm=True)

        assert result["error_type"] == ErrorType.CACHE_IO
        assert result["action"] == "cache_clear_partial"

    @pytest.mark.asyncio
    async def test_refresh_and_status(self):
        source, cache, _ = build()

        refreshed = await sleeper_tools.refresh_player_cache(cache)
        second = await sleeper_tools.refresh_player_cache(cache, force=False)
        status = await sleeper_tools.get_cache_status(cache)

        assert refreshed["cache"]["player_count"] == len(source.catalog)
        assert refreshed["fetched"] is True
        assert refreshed["forced"] is True
        assert second["fetched"] is False
        assert "no fetch made" in second["message"]
        assert status["cache"]["is_fresh"] is True
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_forced_refresh_joining_hydration_reports_no_fetch(self, tmp_path):
        clock = FakeClock()
        store = DurableSnapshotStore(directory=tmp_path, clock=clock)
        store.save(SAMPLE_CATALOG, store.make_metadata(len(SAMPLE_CATALOG), clock()))
        source, cache, _ = build(store=store)

        warming = asyncio.create_task(cache.ensure_fresh())
        await asyncio.sleep(0)
        result = await sleeper_tools.refresh_player_cache(cache, force=True)
        await warming

        assert result["forced"] is True
        assert result["fetched"] is False
        assert result["cache"]["player_count"] == len(SAMPLE_CATALOG)
        assert source.calls == 0
