"""Shared fixtures for the Sleeper MCP test suite."""

import pytest

from sleeper_mcp.metrics import MetricsCollector
from sleeper_mcp.models import LeagueUser, Matchup, Roster, TrendingEntry


class FakeClock:
    """Settable stand-in for time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def player_record(first, last, position="WR", team="KC", rank=None, status="Active",
                  injury_status=None, fantasy_positions=None, **extra):
    record = {
        "first_name": first,
        "last_name": last,
        "position": position,
        "team": team,
        "status": status,
        "injury_status": injury_status,
        "fantasy_positions": fantasy_positions or [position],
        "search_rank": rank,
        "search_full_name": f"{first}{last}".lower(),
    }
    record.update(extra)
    return record


SAMPLE_CATALOG = {
    "4046": player_record("Patrick", "Mahomes", "QB", "KC", rank=5),
    "4034": player_record("Christian", "McCaffrey", "RB", "SF", rank=2, injury_status="Questionable"),
    "6794": player_record("Justin", "Jefferson", "WR", "MIN", rank=3),
    "4866": player_record("Saquon", "Barkley", "RB", "PHI", rank=8),
    "5012": player_record("Mark", "Andrews", "TE", "BAL", rank=70, injury_status="Out"),
    "2133": player_record("Davante", "Adams", "WR", "NYJ", rank=40, injury_status="Doubtful"),
    "9999": player_record("Practice", "Squad", "WR", None, rank=None, status="Inactive"),
    "KC": player_record("Kansas City", "Chiefs", "DEF", "KC", rank=150),
}


class FakePlayerSource:
    """Counts full-catalog fetches and can be told to fail."""

    def __init__(self, catalog=None, error=None):
        self.catalog = dict(SAMPLE_CATALOG if catalog is None else catalog)
        self.error = error
        self.calls = 0

    async def fetch_all_players(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return {pid: dict(record) for pid, record in self.catalog.items()}


class FakeSleeperSource(FakePlayerSource):
    """In-memory league data with the SleeperClient method names the joiner calls."""

    def __init__(self, rosters=(), users=(), matchups=None, trending=(), transactions=(), **kwargs):
        super().__init__(**kwargs)
        self.rosters = [Roster.from_api(r) for r in rosters]
        self.users = [LeagueUser.from_api(u) for u in users]
        self.matchups = {week: [Matchup.from_api(m) for m in sides] for week, sides in (matchups or {}).items()}
        self.trending = [TrendingEntry.from_api(t) for t in trending]
        self.transactions = list(transactions)
        self.roster_calls = 0
        self.user_calls = 0

    async def get_league_rosters(self, league_id):
        self.roster_calls += 1
        return list(self.rosters)

    async def get_league_users(self, league_id):
        self.user_calls += 1
        return list(self.users)

    async def get_matchups(self, league_id, week):
        return list(self.matchups.get(week, []))

    async def get_trending(self, trend_type="add", lookback_hours=24, limit=25):
        return list(self.trending)[:limit]

    async def get_transactions(self, league_id, round_):
        return list(self.transactions)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def source():
    return FakePlayerSource()
