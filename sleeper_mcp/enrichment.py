"""
Joins between the cached player catalog and per-request Sleeper collections.

The joiner keeps no state of its own. Rosters, league users, matchups,
trending lists and transactions are fetched fresh on every call; players are
resolved through the shared PlayerCache. Inconsistent upstream data (a
missing owner, a matchup without exactly two sides) comes back as a
placeholder or None, never as an exception.
"""

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, UTC
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import (
    LeagueUser, Matchup, MatchupSide, Roster, RosterWithDetails, TrendingEntry, enrich_player,
)
from .player_cache import PlayerCache
from .sleeper_client import SleeperClient

logger = logging.getLogger(__name__)


class EnrichmentJoiner:
    def __init__(self, cache: PlayerCache, source: SleeperClient):
        self.cache = cache
        self.source = source

    # Players

    async def get_players_with_details(self, player_ids: Iterable[str],
                                       is_starter: Optional[bool] = None) -> List[Dict[str, Any]]:
        """Enriched records for the known ids, in request order."""
        players = await self.cache.get_many(player_ids)
        return [enrich_player(p, is_starter=is_starter) for p in players]

    async def player_details(self, player_ids: Iterable[str]) -> Dict[str, Any]:
        requested = list(player_ids)
        players = await self.get_players_with_details(requested)
        return {"players": players, "count": len(players), "requested_count": len(requested)}

    # Rosters

    async def roster_with_details(self, roster: Roster,
                                  user: Optional[LeagueUser] = None) -> RosterWithDetails:
        """Resolve a roster's players and split them into starters and bench.

        Starters are resolved from the starter list itself, so a starter that is
        missing from the roster's player list still shows up as a starter.
        """
        all_players = await self.cache.get_many(roster.players)
        starters = await self.cache.get_many(roster.starters)

        starter_ids = set(roster.starters)
        all_enriched = [enrich_player(p, is_starter=p.player_id in starter_ids) for p in all_players]
        bench = [p for p in all_enriched if not p["is_starter"]]

        return RosterWithDetails(
            roster=roster,
            user=user or LeagueUser.placeholder(),
            starters=[enrich_player(p, is_starter=True) for p in starters],
            bench=bench,
            all_players=all_enriched,
        )

    @staticmethod
    def attach_owner(roster: Optional[Roster], users_by_id: Mapping[str, LeagueUser]) -> LeagueUser:
        if roster is None or roster.owner_id is None:
            return LeagueUser.placeholder()
        return users_by_id.get(roster.owner_id) or LeagueUser.placeholder()

    async def roster_with_owner(self, roster: Roster, league_id: str) -> RosterWithDetails:
        users = await self.source.get_league_users(league_id)
        owner = self.attach_owner(roster, {u.user_id: u for u in users})
        return await self.roster_with_details(roster, owner)

    async def league_rosters_with_details(self, league_id: str) -> List[RosterWithDetails]:
        """Every roster in the league with players and owner; one fetch each for rosters and users."""
        rosters, users = await asyncio.gather(
            self.source.get_league_rosters(league_id),
            self.source.get_league_users(league_id),
        )
        users_by_id = {u.user_id: u for u in users}
        return list(await asyncio.gather(*(
            self.roster_with_details(r, self.attach_owner(r, users_by_id)) for r in rosters
        )))

    async def find_user_roster(self, league_id: str, user_id: str) -> Optional[Roster]:
        rosters = await self.source.get_league_rosters(league_id)
        return _roster_owned_by(rosters, user_id)

    # Matchups

    async def matchup_details(self, league_id: str, week: int, user_id: str) -> Optional[List[MatchupSide]]:
        """Both sides of the user's matchup for ``week``, or None.

        None covers every case where a clean pair cannot be built: the user has
        no roster, the roster has no matchup that week, or the matchup group
        does not hold exactly two sides.
        """
        rosters = await self.source.get_league_rosters(league_id)
        roster = _roster_owned_by(rosters, user_id)
        if roster is None:
            return None

        matchups = await self.source.get_matchups(league_id, week)
        own_side = next((m for m in matchups if m.roster_id == roster.roster_id), None)
        if own_side is None or own_side.matchup_id is None:
            return None

        sides = [m for m in matchups if m.matchup_id == own_side.matchup_id]
        if len(sides) != 2:
            logger.info(
                f"Matchup {own_side.matchup_id} in league {league_id} week {week} has {len(sides)} side(s)"
            )
            return None

        users = await self.source.get_league_users(league_id)
        users_by_id = {u.user_id: u for u in users}
        rosters_by_id = {r.roster_id: r for r in rosters}

        return list(await asyncio.gather(*(
            self._matchup_side(side, self.attach_owner(rosters_by_id.get(side.roster_id), users_by_id))
            for side in sides
        )))

    async def _matchup_side(self, side: Matchup, owner: LeagueUser) -> MatchupSide:
        starter_ids = set(side.starters)
        starters = await self.get_players_with_details(side.starters, is_starter=True)
        bench = await self.get_players_with_details(
            [pid for pid in side.players if pid not in starter_ids], is_starter=False
        )
        return MatchupSide(
            roster_id=side.roster_id,
            matchup_id=side.matchup_id,
            user=owner,
            points=side.points,
            starters=starters,
            bench=bench,
            total_players=len(side.players),
        )

    @staticmethod
    def group_matchups(matchups: Iterable[Matchup]) -> Dict[int, List[Matchup]]:
        # Sides without a matchup id (bye weeks) are left out.
        grouped: Dict[int, List[Matchup]] = OrderedDict()
        for matchup in matchups:
            if matchup.matchup_id is None:
                continue
            grouped.setdefault(matchup.matchup_id, []).append(matchup)
        return dict(grouped)

    # Trending

    @staticmethod
    def join_trending(entries: Iterable[TrendingEntry],
                      details: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        by_id = {d["player_id"]: d for d in details}
        return [
            {"player_id": e.player_id, "count": e.count, "player": by_id.get(e.player_id)}
            for e in entries
        ]

    async def trending_with_details(self, trend_type: str = "add", lookback_hours: int = 24,
                                    limit: int = 25) -> List[Dict[str, Any]]:
        entries = await self.source.get_trending(trend_type, lookback_hours, limit)
        details = await self.get_players_with_details(e.player_id for e in entries)
        return self.join_trending(entries, details)

    # Transactions

    async def transactions_with_details(self, league_id: str, week: int) -> List[Dict[str, Any]]:
        transactions = await self.source.get_transactions(league_id, week)

        ids: List[str] = []
        for tx in transactions:
            ids.extend(str(pid) for pid in (tx.get("adds") or {}))
            ids.extend(str(pid) for pid in (tx.get("drops") or {}))
        by_id = {p["player_id"]: p for p in await self.get_players_with_details(ids)}

        def annotate(moves: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            if not moves:
                return None
            return {
                str(pid): {"roster_id": roster_id, "player": by_id.get(str(pid))}
                for pid, roster_id in moves.items()
            }

        enhanced = []
        for tx in transactions:
            item = dict(tx)
            item["enhanced_adds"] = annotate(tx.get("adds"))
            item["enhanced_drops"] = annotate(tx.get("drops"))
            item["formatted_date"] = _format_epoch_ms(tx.get("created"))
            enhanced.append(item)
        return enhanced


def _roster_owned_by(rosters: Iterable[Roster], user_id: str) -> Optional[Roster]:
    return next((r for r in rosters if r.owner_id == user_id), None)


def _format_epoch_ms(value: Any) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value / 1000, UTC).date().isoformat()
