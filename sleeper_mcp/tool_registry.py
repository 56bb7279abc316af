"""Tool registry for the Sleeper MCP Server.

Every MCP tool is a thin wrapper here: it validates its arguments, then
delegates to ``sleeper_tools`` with the shared client, cache and joiner that
the server installs through ``initialize_shared``.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, List, Callable

from .metrics import timing_decorator
from . import sleeper_tools
from .config import validate_string_input, validate_limit, validate_numeric_input, LIMITS
from .enrichment import EnrichmentJoiner
from .errors import handle_validation_error
from .param_validator import validate_params, format_errors
from .player_cache import PlayerCache
from .sleeper_client import SleeperClient


@dataclass
class SleeperContext:
    """The long-lived collaborators every tool call shares."""
    client: SleeperClient
    cache: PlayerCache
    joiner: EnrichmentJoiner

    async def aclose(self) -> None:
        await self.client.aclose()


# Installed by the server at startup
_context: SleeperContext | None = None


def initialize_shared(context: SleeperContext | None):
    """Install (or, with None, remove) the shared client/cache/joiner."""
    global _context
    _context = context


def get_context() -> SleeperContext:
    if _context is None:
        raise RuntimeError("Sleeper context has not been initialized")
    return _context


def get_all_tools() -> List[Callable]:
    """Get list of all tool functions to register with FastMCP server."""
    return [
        # Users and leagues
        get_user_info,
        get_user_leagues,
        get_user_drafts,
        get_league_info,
        get_league_rosters,
        get_league_users,
        get_traded_picks,
        get_playoff_bracket,

        # Drafts
        get_league_drafts,
        get_draft,
        get_draft_picks,
        get_draft_traded_picks,

        # Matchups, state, transactions
        get_current_matchups,
        get_matchup_details,
        get_nfl_state,
        get_transactions,

        # Players
        search_players,
        get_trending_players,
        get_player_details,
        research_player_status,
        compare_players,

        # Advice
        analyze_lineup,
        get_start_sit_advice,
        get_waiver_suggestions,

        # Player cache
        refresh_player_cache,
        get_cache_status,
        clear_cache,
    ]


def _league_id(value: str) -> str:
    return validate_string_input(value, 'sleeper_id', max_length=32, required=True)


def _user_id(value: str) -> str:
    return validate_string_input(value, 'sleeper_id', max_length=32, required=True)


def _optional_week(value: Optional[int]) -> Optional[int]:
    return validate_numeric_input(value, min_val=LIMITS["week_min"], max_val=LIMITS["week_max"], required=False)


def _optional_season(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    season = validate_string_input(str(value), 'season', max_length=4, required=False)
    return season or None


def _optional_position(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    position = validate_string_input(value, 'position', max_length=5, required=False)
    return position.upper() or None


# =============================================================================
# USERS AND LEAGUES
# =============================================================================

@timing_decorator("get_user_info", tool_type="sleeper")
async def get_user_info(username_or_id: str) -> dict:
    """Get Sleeper user information by username or user ID."""
    try:
        username_or_id = validate_string_input(username_or_id, 'username_or_id', max_length=40, required=True)
    except ValueError as e:
        return handle_validation_error(f"Invalid username_or_id: {e}", {"user": None})
    return await sleeper_tools.get_user_info(get_context().client, username_or_id)


@timing_decorator("get_user_leagues", tool_type="sleeper")
async def get_user_leagues(user_id: str, season: Optional[str] = None, sport: str = "nfl") -> dict:
    """Get all leagues for a user in a season (current season if omitted)."""
    try:
        user_id = _user_id(user_id)
        season = _optional_season(season)
        if sport != "nfl":
            raise ValueError("sport must be 'nfl'")
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"leagues": [], "count": 0, "season": season})
    return await sleeper_tools.get_user_leagues(get_context().client, user_id, season, sport)


@timing_decorator("get_user_drafts", tool_type="sleeper")
async def get_user_drafts(user_id: str, season: Optional[str] = None) -> dict:
    """Get all drafts for a user in a season (current season if omitted)."""
    try:
        user_id = _user_id(user_id)
        season = _optional_season(season)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"drafts": [], "count": 0, "season": season})
    return await sleeper_tools.get_user_drafts(get_context().client, user_id, season)


@timing_decorator("get_league_info", tool_type="sleeper")
async def get_league_info(league_id: str) -> dict:
    """Get league settings, scoring and metadata."""
    try:
        league_id = _league_id(league_id)
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"league": None})
    return await sleeper_tools.get_league_info(get_context().client, league_id)


@timing_decorator("get_league_rosters", tool_type="sleeper")
async def get_league_rosters(league_id: str, include_player_details: bool = True) -> dict:
    """Get all rosters in a league, optionally with owners and player details."""
    try:
        league_id = _league_id(league_id)
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"rosters": [], "count": 0})
    ctx = get_context()
    return await sleeper_tools.get_league_rosters(ctx.client, ctx.joiner, league_id, bool(include_player_details))


@timing_decorator("get_league_users", tool_type="sleeper")
async def get_league_users(league_id: str) -> dict:
    """Get all users in a league, including which of them are commissioners."""
    try:
        league_id = _league_id(league_id)
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"users": [], "count": 0, "commissioners": []})
    return await sleeper_tools.get_league_users(get_context().client, league_id)


@timing_decorator("get_traded_picks", tool_type="sleeper")
async def get_traded_picks(league_id: str) -> dict:
    """Get traded draft picks in a league."""
    try:
        league_id = _league_id(league_id)
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"traded_picks": [], "count": 0})
    return await sleeper_tools.get_traded_picks(get_context().client, league_id)


@timing_decorator("get_playoff_bracket", tool_type="sleeper")
async def get_playoff_bracket(league_id: str, bracket_type: str = "winners") -> dict:
    """Get the winners or losers playoff bracket."""
    values = {"league_id": league_id, "bracket_type": bracket_type}
    schema = {
        "league_id": {"type": str, "required": True},
        "bracket_type": {"type": str, "required": False, "default": "winners", "choices": ["winners", "losers"]},
    }
    validated, errors = validate_params(schema, values)
    if errors:
        return handle_validation_error(format_errors(errors), {"playoff_bracket": [], "bracket_type": bracket_type})
    try:
        league_id = _league_id(validated["league_id"])
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"playoff_bracket": [], "bracket_type": bracket_type})
    return await sleeper_tools.get_playoff_bracket(get_context().client, league_id, validated["bracket_type"])


# =============================================================================
# DRAFTS
# =============================================================================

@timing_decorator("get_league_drafts", tool_type="sleeper")
async def get_league_drafts(league_id: str) -> dict:
    """Get all drafts for a league."""
    try:
        league_id = _league_id(league_id)
    except ValueError as e:
        return handle_validation_error(f"Invalid league_id: {e}", {"drafts": [], "count": 0})
    return await sleeper_tools.get_league_drafts(get_context().client, league_id)


@timing_decorator("get_draft", tool_type="sleeper")
async def get_draft(draft_id: str) -> dict:
    """Get a specific draft."""
    try:
        draft_id = validate_string_input(draft_id, 'sleeper_id', max_length=32, required=True)
    except ValueError as e:
        return handle_validation_error(f"Invalid draft_id: {e}", {"draft": None})
    return await sleeper_tools.get_draft(get_context().client, draft_id)


@timing_decorator("get_draft_picks", tool_type="sleeper")
async def get_draft_picks(draft_id: str) -> dict:
    """Get all picks in a draft with the drafted players resolved."""
    try:
        draft_id = validate_string_input(draft_id, 'sleeper_id', max_length=32, required=True)
    except ValueError as e:
        return handle_validation_error(f"Invalid draft_id: {e}", {"picks": [], "count": 0})
    ctx = get_context()
    return await sleeper_tools.get_draft_picks(ctx.client, ctx.joiner, draft_id)


@timing_decorator("get_draft_traded_picks", tool_type="sleeper")
async def get_draft_traded_picks(draft_id: str) -> dict:
    """Get traded picks in a draft."""
    try:
        draft_id = validate_string_input(draft_id, 'sleeper_id', max_length=32, required=True)
    except ValueError as e:
        return handle_validation_error(f"Invalid draft_id: {e}", {"traded_picks": [], "count": 0})
    return await sleeper_tools.get_draft_traded_picks(get_context().client, draft_id)


# =============================================================================
# MATCHUPS, STATE, TRANSACTIONS
# =============================================================================

@timing_decorator("get_current_matchups", tool_type="sleeper")
async def get_current_matchups(league_id: str, week: Optional[int] = None) -> dict:
    """Get matchups for a week grouped by matchup id (current week if omitted)."""
    try:
        league_id = _league_id(league_id)
        week = _optional_week(week)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"matchups": {}, "week": None, "matchup_count": 0})
    ctx = get_context()
    return await sleeper_tools.get_current_matchups(ctx.client, ctx.joiner, league_id, week)


@timing_decorator("get_matchup_details", tool_type="sleeper")
async def get_matchup_details(league_id: str, user_id: str, week: Optional[int] = None) -> dict:
    """Get both sides of a user's matchup with owners, starters and bench."""
    try:
        league_id = _league_id(league_id)
        user_id = _user_id(user_id)
        week = _optional_week(week)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"matchup": None, "week": None})
    ctx = get_context()
    return await sleeper_tools.get_matchup_details(ctx.client, ctx.joiner, league_id, user_id, week)


@timing_decorator("get_nfl_state", tool_type="sleeper")
async def get_nfl_state() -> dict:
    """Get NFL state - no validation needed as it has no parameters."""
    return await sleeper_tools.get_nfl_state(get_context().client)


@timing_decorator("get_transactions", tool_type="sleeper")
async def get_transactions(league_id: str, week: Optional[int] = None) -> dict:
    """Get league transactions for a week with player details (current week if omitted)."""
    try:
        league_id = _league_id(league_id)
        week = _optional_week(week)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"transactions": [], "week": None, "count": 0})
    ctx = get_context()
    return await sleeper_tools.get_transactions(ctx.client, ctx.joiner, league_id, week)


# =============================================================================
# PLAYERS
# =============================================================================

@timing_decorator("search_players", tool_type="players")
async def search_players(query: str, limit: Optional[int] = 10) -> dict:
    """Search players by name; results ranked by search rank then position."""
    try:
        query = validate_string_input(query, 'player_name', max_length=100, required=True)
    except ValueError as e:
        return handle_validation_error(f"Invalid query: {e}", {"players": [], "count": 0, "query": None})
    limit = validate_limit(limit, LIMITS["search_limit_min"], LIMITS["search_limit_max"], LIMITS["search_limit_default"])
    return await sleeper_tools.search_players(get_context().cache, query, limit)


@timing_decorator("get_trending_players", tool_type="players")
async def get_trending_players(trend_type: str = "add", lookback_hours: Optional[int] = 24, limit: Optional[int] = 25) -> dict:
    """Get trending adds/drops with player details (unresolved ids keep player=None)."""
    schema = {
        "trend_type": {"type": str, "required": True, "choices": ["add", "drop"]},
        "lookback_hours": {"type": (int, type(None)), "required": False, "nullable": True, "default": 24,
                           "min": LIMITS["trending_lookback_min"], "max": LIMITS["trending_lookback_max"]},
        "limit": {"type": (int, type(None)), "required": False, "nullable": True, "default": 25,
                  "min": LIMITS["trending_limit_min"], "max": LIMITS["trending_limit_max"]},
    }
    values = {"trend_type": trend_type, "lookback_hours": lookback_hours, "limit": limit}
    validated, errors = validate_params(schema, values)
    if errors:
        return handle_validation_error(
            format_errors(errors),
            {"trending_players": [], "trend_type": trend_type, "lookback_hours": lookback_hours, "count": 0},
        )
    return await sleeper_tools.get_trending_players(
        get_context().joiner,
        validated["trend_type"],
        validated["lookback_hours"] or 24,
        validated["limit"] or 25,
    )


@timing_decorator("get_player_details", tool_type="players")
async def get_player_details(player_ids: List[str]) -> dict:
    """Get detailed information for specific player ids; unknown ids are skipped."""
    default = {"players": [], "count": 0, "requested_count": 0}
    schema = {
        "player_ids": {"type": list, "required": True, "item_type": str,
                       "min_items": 1, "max_items": LIMITS["player_ids_max"]},
    }
    validated, errors = validate_params(schema, {"player_ids": player_ids})
    if errors:
        return handle_validation_error(format_errors(errors), default)
    try:
        ids = [validate_string_input(pid, 'player_id', max_length=20, required=True) for pid in validated["player_ids"]]
    except ValueError as e:
        return handle_validation_error(f"Invalid player id: {e}", default)
    return await sleeper_tools.get_player_details(get_context().joiner, ids)


@timing_decorator("research_player_status", tool_type="players")
async def research_player_status(player_name: str, team: Optional[str] = None) -> dict:
    """Look up a player's roster and injury status with a fantasy impact note."""
    try:
        player_name = validate_string_input(player_name, 'player_name', max_length=100, required=True)
        if team is not None:
            team = validate_string_input(team, 'team_id', max_length=4, required=False) or None
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"analysis": None})
    return await sleeper_tools.research_player_status(get_context().cache, player_name, team)


@timing_decorator("compare_players", tool_type="players")
async def compare_players(player1_id: str, player2_id: str, context: Optional[str] = None) -> dict:
    """Compare two players side by side."""
    try:
        player1_id = validate_string_input(player1_id, 'player_id', max_length=20, required=True)
        player2_id = validate_string_input(player2_id, 'player_id', max_length=20, required=True)
        if context is not None:
            context = validate_string_input(context, 'general', max_length=200, required=False) or None
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"comparison": None})
    return await sleeper_tools.compare_players(get_context().joiner, player1_id, player2_id, context)


# =============================================================================
# ADVICE
# =============================================================================

@timing_decorator("analyze_lineup", tool_type="advice")
async def analyze_lineup(league_id: str, user_id: str, week: Optional[int] = None) -> dict:
    """Grade a user's lineup and flag injured starters."""
    try:
        league_id = _league_id(league_id)
        user_id = _user_id(user_id)
        week = _optional_week(week)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"analysis": None})
    ctx = get_context()
    return await sleeper_tools.analyze_lineup(ctx.client, ctx.joiner, league_id, user_id, week)


@timing_decorator("get_start_sit_advice", tool_type="advice")
async def get_start_sit_advice(league_id: str, user_id: str, position: Optional[str] = None,
                               week: Optional[int] = None) -> dict:
    """Start/sit recommendation for each rostered player, optionally one position."""
    try:
        league_id = _league_id(league_id)
        user_id = _user_id(user_id)
        position = _optional_position(position)
        week = _optional_week(week)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"advice": [], "count": 0})
    ctx = get_context()
    return await sleeper_tools.get_start_sit_advice(ctx.client, ctx.joiner, league_id, user_id, position, week)


@timing_decorator("get_waiver_suggestions", tool_type="advice")
async def get_waiver_suggestions(league_id: str, user_id: str, position: Optional[str] = None) -> dict:
    """Waiver pickups drawn from trending adds not already on the user's roster."""
    try:
        league_id = _league_id(league_id)
        user_id = _user_id(user_id)
        position = _optional_position(position)
    except ValueError as e:
        return handle_validation_error(f"Invalid input: {e}", {"suggestions": [], "count": 0})
    ctx = get_context()
    return await sleeper_tools.get_waiver_suggestions(ctx.client, ctx.joiner, league_id, user_id, position)


# =============================================================================
# PLAYER CACHE
# =============================================================================

@timing_decorator("refresh_player_cache", tool_type="cache")
async def refresh_player_cache(force: bool = True) -> dict:
    """Refresh the player catalog from Sleeper (force refetches even when fresh)."""
    return await sleeper_tools.refresh_player_cache(get_context().cache, bool(force))


@timing_decorator("get_cache_status", tool_type="cache")
async def get_cache_status() -> dict:
    """Report player cache size, age and freshness."""
    return await sleeper_tools.get_cache_status(get_context().cache)


@timing_decorator("clear_cache", tool_type="cache")
async def clear_cache(confirm: bool = False) -> dict:
    """Clear the player cache; requires confirm=True."""
    return await sleeper_tools.clear_cache(get_context().cache, confirm is True)
