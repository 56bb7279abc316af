"""
Sleeper MCP tool operations.

Each tool takes its collaborators explicitly (the SleeperClient, the shared
PlayerCache, the EnrichmentJoiner) followed by already-validated arguments,
and returns the standard response envelope. Typed upstream errors are turned
into failure envelopes by ``handle_http_errors``.
"""

import logging
from typing import Any, Dict, List, Optional

from . import advice
from .enrichment import EnrichmentJoiner
from .errors import (
    ErrorType, create_error_response, create_success_response, handle_http_errors,
)
from .models import enrich_player
from .player_cache import PlayerCache
from .sleeper_client import SleeperClient, season_is_active

logger = logging.getLogger(__name__)


async def _resolve_week(client: SleeperClient, week: Optional[int]) -> int:
    if week:
        return week
    return await client.get_current_week()


# ---------------------------------------------------------------------------
# Users and leagues
# ---------------------------------------------------------------------------

@handle_http_errors(
    default_data={"user": None},
    operation_name="fetching user"
)
async def get_user_info(client: SleeperClient, username_or_id: str) -> dict:
    """Fetch a Sleeper user by user_id or username."""
    user = await client.get_user(username_or_id)
    if not user:
        return create_error_response(
            f"User '{username_or_id}' not found", ErrorType.NOT_FOUND, {"user": None}
        )
    return create_success_response({
        "user": user,
        "message": f"Retrieved user information for {user.get('display_name')} (@{user.get('username')})",
    })


@handle_http_errors(
    default_data={"leagues": [], "count": 0, "season": None},
    operation_name="fetching user leagues"
)
async def get_user_leagues(client: SleeperClient, user_id: str, season: Optional[str] = None,
                           sport: str = "nfl") -> dict:
    """
    Fetch all leagues for a user for a season.

    Args:
        client: Sleeper API client
        user_id: Sleeper user ID
        season: Season year; the current NFL season when omitted
        sport: Sport key (only "nfl" is supported by Sleeper today)

    Returns:
        Envelope with leagues, count and the season used
    """
    season = season or await client.get_current_season()
    leagues = await client.get_user_leagues(user_id, season, sport)
    return create_success_response({
        "leagues": leagues,
        "count": len(leagues),
        "season": season,
        "message": f"Found {len(leagues)} {sport.upper()} leagues for {season} season",
    })


@handle_http_errors(
    default_data={"drafts": [], "count": 0, "season": None},
    operation_name="fetching user drafts"
)
async def get_user_drafts(client: SleeperClient, user_id: str, season: Optional[str] = None,
                          sport: str = "nfl") -> dict:
    """Fetch all drafts a user took part in for a season."""
    season = season or await client.get_current_season()
    drafts = await client.get_user_drafts(user_id, season, sport)
    return create_success_response({"drafts": drafts, "count": len(drafts), "season": season})


@handle_http_errors(
    default_data={"league": None},
    operation_name="fetching league information"
)
async def get_league_info(client: SleeperClient, league_id: str) -> dict:
    """Fetch league settings, scoring and roster positions."""
    league = await client.get_league(league_id)
    return create_success_response({
        "league": league,
        "message": (
            f"Retrieved league information for \"{league.get('name')}\" "
            f"({league.get('total_rosters')} teams, {league.get('status')} status)"
        ),
    })


@handle_http_errors(
    default_data={"rosters": [], "count": 0},
    operation_name="fetching league rosters"
)
async def get_league_rosters(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                             include_player_details: bool = True) -> dict:
    """
    Fetch every roster in a league.

    With player details, each roster carries its owner and its resolved
    starters, bench and full player list.
    """
    if include_player_details:
        details = await joiner.league_rosters_with_details(league_id)
        return create_success_response({
            "rosters": [d.to_dict() for d in details],
            "count": len(details),
            "message": f"Retrieved {len(details)} rosters with detailed player information",
        })

    rosters = await client.get_league_rosters_raw(league_id)
    return create_success_response({
        "rosters": rosters,
        "count": len(rosters),
        "message": f"Retrieved {len(rosters)} rosters",
    })


@handle_http_errors(
    default_data={"users": [], "count": 0, "commissioners": []},
    operation_name="fetching league users"
)
async def get_league_users(client: SleeperClient, league_id: str) -> dict:
    users = await client.get_league_users(league_id)
    commissioners = [u.to_dict() for u in users if u.is_owner]
    return create_success_response({
        "users": [u.to_dict() for u in users],
        "count": len(users),
        "commissioners": commissioners,
        "message": f"Retrieved {len(users)} users ({len(commissioners)} commissioners)",
    })


@handle_http_errors(
    default_data={"traded_picks": [], "count": 0},
    operation_name="fetching traded picks"
)
async def get_traded_picks(client: SleeperClient, league_id: str) -> dict:
    picks = await client.get_traded_picks(league_id)
    return create_success_response({"traded_picks": picks, "count": len(picks)})


@handle_http_errors(
    default_data={"playoff_bracket": [], "bracket_type": None},
    operation_name="fetching playoff bracket"
)
async def get_playoff_bracket(client: SleeperClient, league_id: str, bracket_type: str = "winners") -> dict:
    if bracket_type == "losers":
        bracket = await client.get_losers_bracket(league_id)
    else:
        bracket = await client.get_winners_bracket(league_id)
    return create_success_response({"playoff_bracket": bracket, "bracket_type": bracket_type})


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------

@handle_http_errors(
    default_data={"drafts": [], "count": 0},
    operation_name="fetching league drafts"
)
async def get_league_drafts(client: SleeperClient, league_id: str) -> dict:
    drafts = await client.get_league_drafts(league_id)
    return create_success_response({"drafts": drafts, "count": len(drafts)})


@handle_http_errors(
    default_data={"draft": None},
    operation_name="fetching draft"
)
async def get_draft(client: SleeperClient, draft_id: str) -> dict:
    return create_success_response({"draft": await client.get_draft(draft_id)})


@handle_http_errors(
    default_data={"picks": [], "count": 0},
    operation_name="fetching draft picks"
)
async def get_draft_picks(client: SleeperClient, joiner: EnrichmentJoiner, draft_id: str) -> dict:
    """Fetch all picks in a draft, each with the drafted player resolved."""
    picks = await client.get_draft_picks(draft_id)
    ids = [str(p["player_id"]) for p in picks if isinstance(p, dict) and p.get("player_id")]
    by_id = {d["player_id"]: d for d in await joiner.get_players_with_details(ids)}
    enriched = []
    for pick in picks:
        item = dict(pick)
        item["player"] = by_id.get(str(pick.get("player_id")))
        enriched.append(item)
    return create_success_response({"picks": enriched, "count": len(enriched)})


@handle_http_errors(
    default_data={"traded_picks": [], "count": 0},
    operation_name="fetching draft traded picks"
)
async def get_draft_traded_picks(client: SleeperClient, draft_id: str) -> dict:
    picks = await client.get_draft_traded_picks(draft_id)
    return create_success_response({"traded_picks": picks, "count": len(picks)})


# ---------------------------------------------------------------------------
# Matchups, state and transactions
# ---------------------------------------------------------------------------

@handle_http_errors(
    default_data={"matchups": {}, "week": None, "matchup_count": 0},
    operation_name="fetching matchups"
)
async def get_current_matchups(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                               week: Optional[int] = None) -> dict:
    """Matchups for a week grouped by matchup id; defaults to the current NFL week."""
    week = await _resolve_week(client, week)
    grouped = joiner.group_matchups(await client.get_matchups(league_id, week))
    return create_success_response({
        "matchups": {mid: [m.to_dict() for m in sides] for mid, sides in grouped.items()},
        "week": week,
        "matchup_count": len(grouped),
        "message": f"Retrieved {len(grouped)} matchups for week {week}",
    })


@handle_http_errors(
    default_data={"matchup": None, "week": None},
    operation_name="fetching matchup details"
)
async def get_matchup_details(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                              user_id: str, week: Optional[int] = None) -> dict:
    """Both sides of a user's head-to-head with owners and resolved lineups."""
    week = await _resolve_week(client, week)
    sides = await joiner.matchup_details(league_id, week, user_id)
    if sides is None:
        return create_error_response(
            "No matchup found for this user in the specified week",
            ErrorType.NOT_FOUND,
            {"matchup": None, "week": week},
        )
    return create_success_response({
        "matchup": [s.to_dict() for s in sides],
        "week": week,
        "message": f"Retrieved detailed matchup for week {week}",
    })


@handle_http_errors(
    default_data={"nfl_state": None},
    operation_name="fetching NFL state"
)
async def get_nfl_state(client: SleeperClient) -> dict:
    state = await client.get_nfl_state()
    return create_success_response({
        "nfl_state": state,
        "season_active": season_is_active(state),
        "message": (
            f"Current NFL state: Week {state.get('week')} of "
            f"{state.get('season_type')} season {state.get('season')}"
        ),
    })


@handle_http_errors(
    default_data={"transactions": [], "week": None, "count": 0},
    operation_name="fetching transactions"
)
async def get_transactions(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                           week: Optional[int] = None) -> dict:
    """Transactions for a week with every added/dropped player resolved."""
    week = await _resolve_week(client, week)
    transactions = await joiner.transactions_with_details(league_id, week)
    return create_success_response({
        "transactions": transactions,
        "week": week,
        "count": len(transactions),
        "message": f"Retrieved {len(transactions)} transactions for week {week}",
    })


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------

@handle_http_errors(
    default_data={"players": [], "count": 0, "query": None},
    operation_name="searching players"
)
async def search_players(cache: PlayerCache, query: str, limit: int = 10) -> dict:
    players = await cache.search(query, limit)
    return create_success_response({
        "players": [enrich_player(p) for p in players],
        "count": len(players),
        "query": query,
        "message": f"Found {len(players)} players matching \"{query}\"",
    })


@handle_http_errors(
    default_data={"trending_players": [], "trend_type": None, "lookback_hours": None, "count": 0},
    operation_name="fetching trending players"
)
async def get_trending_players(joiner: EnrichmentJoiner, trend_type: str = "add",
                               lookback_hours: int = 24, limit: int = 25) -> dict:
    """
    Trending adds or drops with player details attached.

    Entries the catalog cannot resolve are kept with ``player`` set to None.
    """
    trending = await joiner.trending_with_details(trend_type, lookback_hours, limit)
    return create_success_response({
        "trending_players": trending,
        "trend_type": trend_type,
        "lookback_hours": lookback_hours,
        "count": len(trending),
        "message": (
            f"Retrieved top {len(trending)} trending {trend_type} players "
            f"from last {lookback_hours} hours"
        ),
    })


@handle_http_errors(
    default_data={"players": [], "count": 0, "requested_count": 0},
    operation_name="fetching player details"
)
async def get_player_details(joiner: EnrichmentJoiner, player_ids: List[str]) -> dict:
    details = await joiner.player_details(player_ids)
    details["message"] = (
        f"Retrieved details for {details['count']}/{details['requested_count']} requested players"
    )
    return create_success_response(details)


@handle_http_errors(
    default_data={"analysis": None},
    operation_name="researching player status"
)
async def research_player_status(cache: PlayerCache, player_name: str, team: Optional[str] = None) -> dict:
    """Current roster and injury status for a player found by name."""
    candidates = await cache.search(player_name, 5)
    target = candidates[0] if candidates else None
    if team and len(candidates) > 1:
        target = next((p for p in candidates if (p.team or "").upper() == team.upper()), target)

    if target is None:
        return create_error_response(
            f"Player \"{player_name}\" not found in Sleeper database",
            ErrorType.NOT_FOUND,
            {"analysis": None},
        )

    player = enrich_player(target)
    return create_success_response({
        "analysis": {
            "player": player,
            "current_status": {
                "roster_status": target.status,
                "injury_status": target.injury_status or "Healthy",
                "team": target.team,
                "position": target.position,
                "injury_details": target.injury_display,
            },
            "fantasy_impact": advice.fantasy_impact(player),
            "recommendation": advice.player_recommendation(player),
            "tier": advice.player_tier(player),
            "injury_risk": advice.injury_risk_level(player),
        },
        "message": f"Researched status for {target.full_name} ({target.team} {target.position})",
    })


@handle_http_errors(
    default_data={"comparison": None},
    operation_name="comparing players"
)
async def compare_players(joiner: EnrichmentJoiner, player1_id: str, player2_id: str,
                          context: Optional[str] = None) -> dict:
    by_id = {p["player_id"]: p for p in await joiner.get_players_with_details([player1_id, player2_id])}
    player1, player2 = by_id.get(player1_id), by_id.get(player2_id)
    if player1 is None or player2 is None:
        return create_error_response(
            "One or both players not found", ErrorType.NOT_FOUND, {"comparison": None}
        )

    result = advice.compare_players(player1, player2, context)
    return create_success_response({
        "comparison": {
            "player1": player1,
            "player2": player2,
            "comparison": {k: result[k] for k in ("basic_info", "injury_status", "fantasy_relevance", "recommendation")},
            "context": result["context"],
        },
        "message": f"Compared {player1['full_name']} vs {player2['full_name']}",
    })


# ---------------------------------------------------------------------------
# Lineup and waiver advice
# ---------------------------------------------------------------------------

def _user_not_in_league(default_data: Dict[str, Any]) -> dict:
    return create_error_response("User not found in this league", ErrorType.NOT_FOUND, default_data)


@handle_http_errors(
    default_data={"analysis": None},
    operation_name="analyzing lineup"
)
async def analyze_lineup(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                         user_id: str, week: Optional[int] = None) -> dict:
    """Grade a user's current starters and suggest injury swaps from the bench."""
    week = await _resolve_week(client, week)
    roster = await joiner.find_user_roster(league_id, user_id)
    if roster is None:
        return _user_not_in_league({"analysis": None})

    details = await joiner.roster_with_owner(roster, league_id)
    questionable = [enrich_player(p) for p in await joiner.cache.get_questionable(roster.players)]

    return create_success_response({
        "analysis": {
            "user": details.user.to_dict(),
            "week": week,
            "lineup": {
                "starters": details.starters,
                "bench": details.bench,
                "total_projected_points": advice.lineup_projected_points(details.starters),
            },
            "questionable_players": questionable,
            "recommendations": advice.lineup_changes(details.starters, details.bench),
            "overall_grade": advice.lineup_grade(details.starters),
        },
        "message": f"Analyzed lineup for {details.user.display_name} - Week {week}",
    })


@handle_http_errors(
    default_data={"advice": [], "count": 0},
    operation_name="building start/sit advice"
)
async def get_start_sit_advice(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                               user_id: str, position: Optional[str] = None,
                               week: Optional[int] = None) -> dict:
    week = await _resolve_week(client, week)
    roster = await joiner.find_user_roster(league_id, user_id)
    if roster is None:
        return _user_not_in_league({"advice": [], "count": 0})

    details = await joiner.roster_with_owner(roster, league_id)
    players = details.all_players
    if position:
        wanted = position.upper()
        players = [p for p in players if wanted in (p.get("fantasy_positions") or [])]

    items = [
        {
            "player": p,
            "is_currently_starting": p.get("is_starter", False),
            "recommendation": advice.start_sit_recommendation(p),
            "confidence": advice.recommendation_confidence(p),
            "reasoning": advice.start_sit_reasoning(p),
            "projected_points": advice.projected_points(p),
        }
        for p in players
    ]
    items.sort(key=advice.start_sit_sort_key)

    return create_success_response({
        "advice": items,
        "user": details.user.to_dict(),
        "week": week,
        "position_filter": position,
        "count": len(items),
        "message": f"Generated start/sit advice for {len(items)} players" + (f" at {position}" if position else ""),
    })


@handle_http_errors(
    default_data={"suggestions": [], "count": 0},
    operation_name="building waiver suggestions"
)
async def get_waiver_suggestions(client: SleeperClient, joiner: EnrichmentJoiner, league_id: str,
                                 user_id: str, position: Optional[str] = None) -> dict:
    """Active trending adds the user does not already roster, optionally filtered by position."""
    trending = await client.get_trending("add", 24, 50)
    roster = await joiner.find_user_roster(league_id, user_id)
    owned = set(roster.players) if roster else set()
    active = {p.player_id for p in await joiner.cache.get_active_players(position)}

    available = [t for t in trending if t.player_id not in owned and t.player_id in active]
    counts = {t.player_id: t.count for t in available}
    players = await joiner.get_players_with_details(t.player_id for t in available[:20])

    suggestions = [
        {
            "player": p,
            "trending_adds": counts.get(p["player_id"], 0),
            "priority": advice.waiver_priority(index),
            "reason": advice.waiver_reason(p, counts.get(p["player_id"], 0)),
        }
        for index, p in enumerate(players)
    ]
    return create_success_response({
        "suggestions": suggestions,
        "position_filter": position,
        "count": len(suggestions),
        "message": f"Generated {len(suggestions)} waiver suggestions" + (f" for {position}" if position else ""),
    })


# ---------------------------------------------------------------------------
# Player cache operations
# ---------------------------------------------------------------------------

@handle_http_errors(
    default_data={"cache": None},
    operation_name="refreshing player cache"
)
async def refresh_player_cache(cache: PlayerCache, force: bool = True) -> dict:
    """Make the player catalog fresh; ``force`` refetches even when within TTL.

    ``fetched`` tells whether a remote fetch actually landed. A forced call
    that joins a population already in progress may be served without one.
    """
    fetches_before = cache.fetch_count
    await cache.ensure_fresh(force_refresh=force)
    status = cache.status()
    fetched = cache.fetch_count > fetches_before
    if fetched:
        message = f"Fetched {status['player_count']} players from Sleeper"
    else:
        message = f"Player cache already fresh with {status['player_count']} players, no fetch made"
    return create_success_response({
        "cache": status,
        "forced": force,
        "fetched": fetched,
        "message": message,
    })


async def get_cache_status(cache: PlayerCache) -> dict:
    return create_success_response({"cache": cache.status()})


@handle_http_errors(
    default_data={"action": None},
    operation_name="clearing player cache"
)
async def clear_cache(cache: PlayerCache, confirm: bool = False) -> dict:
    """
    Delete the persisted catalog and empty the in-memory cache.

    Without ``confirm`` nothing is touched and the result is a declined
    (not failed) operation.
    """
    if not confirm:
        return create_error_response(
            "Cache clear requires confirmation. Set 'confirm' to true to proceed.",
            ErrorType.DECLINED,
            {
                "action": "cache_clear_declined",
                "message": "Cache clear operation cancelled - confirmation required",
            },
        )

    cleared = await cache.reset()
    if not cleared:
        return create_error_response(
            "Failed to delete one or more cache files",
            ErrorType.CACHE_IO,
            {"action": "cache_clear_partial"},
        )
    return create_success_response({
        "action": "cache_cleared",
        "message": "Player data cache cleared successfully. Fresh data will be fetched on next request.",
    })
