"""
Tests for the catalog and league entity types.
"""

import pytest

from sleeper_mcp.models import (
    SENTINEL_RANK, CacheMetadata, LeagueUser, Matchup, Player, Roster, TrendingEntry,
    enrich_player, search_sort_key,
)


class TestPlayer:

    def test_from_api_key_is_authoritative(self):
        player = Player.from_api("4046", {"player_id": "stale", "first_name": "Patrick", "last_name": "Mahomes"})
        assert player.player_id == "4046"
        assert player.raw["player_id"] == "4046"

    def test_from_api_tolerates_missing_fields(self):
        player = Player.from_api(123, {})
        assert player.player_id == "123"
        assert player.full_name == ""
        assert player.search_rank is None
        assert player.fantasy_positions == ()

    def test_derived_fields(self):
        player = Player.from_api("1", {"first_name": "Mark", "last_name": "Andrews",
                                       "injury_status": "Out", "injury_start_date": "2024-11-01"})
        assert player.full_name == "Mark Andrews"
        assert player.display_position == "UNK"
        assert player.injury_display == "Out (since 2024-11-01)"

    def test_healthy_without_injury(self):
        assert Player.from_api("1", {"injury_status": None}).injury_display == "Healthy"
        assert Player.from_api("1", {"injury_status": "Questionable"}).injury_display == "Questionable"

    def test_non_numeric_rank_is_unranked(self):
        player = Player.from_api("1", {"search_rank": "n/a"})
        assert player.search_rank is None
        assert player.rank_or_sentinel == SENTINEL_RANK

    def test_matches_name_fields(self):
        player = Player.from_api("1", {"first_name": "Justin", "last_name": "Jefferson",
                                       "search_full_name": "justinjefferson"})
        assert player.matches("jeff")
        assert player.matches("justin jef")
        assert not player.matches("mahomes")

    def test_search_sort_key_orders_by_rank_then_position(self):
        qb = Player.from_api("1", {"position": "QB", "search_rank": 10})
        wr = Player.from_api("2", {"position": "WR", "search_rank": 10})
        unranked = Player.from_api("3", {"position": "QB"})
        ranked_ol = Player.from_api("4", {"position": "OL", "search_rank": 1})

        ordered = sorted([unranked, wr, qb, ranked_ol], key=search_sort_key)

        assert [p.player_id for p in ordered] == ["4", "1", "2", "3"]


class TestEnrichPlayer:

    def test_enriched_copy_keeps_raw_fields(self):
        player = Player.from_api("4046", {"first_name": "Patrick", "last_name": "Mahomes",
                                          "position": "QB", "age": 29})
        data = enrich_player(player, is_starter=True)

        assert data["age"] == 29
        assert data["full_name"] == "Patrick Mahomes"
        assert data["display_position"] == "QB"
        assert data["injury_display"] == "Healthy"
        assert data["is_starter"] is True

    def test_enrichment_does_not_touch_the_player(self):
        player = Player.from_api("1", {"first_name": "A"})
        enrich_player(player, is_starter=False)
        assert "is_starter" not in player.raw
        assert "full_name" not in player.raw

    def test_no_starter_flag_by_default(self):
        assert "is_starter" not in enrich_player(Player.from_api("1", {}))


class TestLeagueEntities:

    def test_roster_drops_empty_starter_slots(self):
        roster = Roster.from_api({"roster_id": 3, "owner_id": "u1", "players": ["1", "2"],
                                  "starters": ["1", "0"]})
        assert roster.starters == ["1"]
        assert roster.to_dict()["roster_id"] == 3

    def test_roster_without_owner(self):
        assert Roster.from_api({"roster_id": 1}).owner_id is None

    def test_league_user_team_name(self):
        user = LeagueUser.from_api({"user_id": "u1", "username": "ace", "display_name": "Ace",
                                    "metadata": {"team_name": "Aces"}, "is_owner": True})
        assert user.team_name == "Aces"
        assert user.is_owner is True
        assert not user.is_placeholder

    def test_placeholder_user(self):
        user = LeagueUser.placeholder()
        assert user.is_placeholder
        assert user.to_dict()["display_name"] == "Unknown User"

    def test_matchup_points_default(self):
        matchup = Matchup.from_api({"roster_id": 1, "matchup_id": None, "points": None})
        assert matchup.points == 0.0
        assert matchup.matchup_id is None

    def test_trending_entry_forms(self):
        assert TrendingEntry.from_api({"player_id": "4046", "count": 12}) == TrendingEntry("4046", 12)
        assert TrendingEntry.from_api("4046") == TrendingEntry("4046", 0)
        assert TrendingEntry.from_api({"count": 3}) is None


class TestCacheMetadata:

    def test_wire_keys(self):
        meta = CacheMetadata(last_updated=1_700_000_000_000, player_count=2, version="1.0.0")
        assert meta.to_dict() == {"lastUpdated": 1_700_000_000_000, "playerCount": 2, "version": "1.0.0"}
        assert CacheMetadata.from_dict(meta.to_dict()) == meta

    @pytest.mark.parametrize("data", [
        {"lastUpdated": "yesterday", "playerCount": 2},
        {"lastUpdated": 1, "playerCount": "2"},
        {"lastUpdated": True, "playerCount": 2},
    ])
    def test_rejects_wrong_types(self, data):
        with pytest.raises(ValueError):
            CacheMetadata.from_dict(data)

    def test_rejects_missing_keys(self):
        with pytest.raises(KeyError):
            CacheMetadata.from_dict({"playerCount": 1})
