"""
Entity and result types shared by the player cache and the enrichment layer.

Upstream Sleeper records are kept verbatim in ``raw`` so the durable snapshot
can persist the full catalog; typed fields cover what the joins and ranking
rules read. Derived values (full name, display position, injury display,
starter flag) are computed per call and never written back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

SENTINEL_RANK = 9999
UNKNOWN_POSITION = "UNK"
HEALTHY = "Healthy"

POSITION_PRIORITY = {"QB": 1, "RB": 2, "WR": 3, "TE": 4, "K": 5, "DEF": 6}
OTHER_POSITION_PRIORITY = 7


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


@dataclass(frozen=True)
class Player:
    """One entry of the player catalog."""

    player_id: str
    first_name: str = ""
    last_name: str = ""
    position: Optional[str] = None
    team: Optional[str] = None
    status: Optional[str] = None
    injury_status: Optional[str] = None
    injury_start_date: Optional[str] = None
    fantasy_positions: Tuple[str, ...] = ()
    search_rank: Optional[int] = None
    search_full_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, player_id: str, data: Dict[str, Any]) -> "Player":
        """Build a player from an upstream record; the catalog key is authoritative."""
        pid = str(player_id)
        raw = dict(data or {})
        raw["player_id"] = pid
        return cls(
            player_id=pid,
            first_name=str(raw.get("first_name") or ""),
            last_name=str(raw.get("last_name") or ""),
            position=_optional_str(raw.get("position")),
            team=_optional_str(raw.get("team")),
            status=_optional_str(raw.get("status")),
            injury_status=_optional_str(raw.get("injury_status")),
            injury_start_date=_optional_str(raw.get("injury_start_date")),
            fantasy_positions=tuple(_str_list(raw.get("fantasy_positions"))),
            search_rank=_optional_int(raw.get("search_rank")),
            search_full_name=_optional_str(raw.get("search_full_name")),
            raw=raw,
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_position(self) -> str:
        return self.position or UNKNOWN_POSITION

    @property
    def injury_display(self) -> str:
        if not self.injury_status:
            return HEALTHY
        if self.injury_start_date:
            return f"{self.injury_status} (since {self.injury_start_date})"
        return self.injury_status

    @property
    def rank_or_sentinel(self) -> int:
        return self.search_rank if self.search_rank is not None else SENTINEL_RANK

    @property
    def position_priority(self) -> int:
        return POSITION_PRIORITY.get(self.position or "", OTHER_POSITION_PRIORITY)

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on the searchable name fields.

        ``needle`` must already be lower-cased.
        """
        candidates = (self.search_full_name, self.first_name, self.last_name, self.full_name)
        return any(c and needle in c.lower() for c in candidates)


def search_sort_key(player: Player) -> Tuple[int, int]:
    """Ascending rank (unranked last), then skill-position priority."""
    return (player.rank_or_sentinel, player.position_priority)


def enrich_player(player: Player, is_starter: Optional[bool] = None) -> Dict[str, Any]:
    """Return a caller-ready copy of ``player`` with the derived fields attached."""
    data = dict(player.raw)
    data.update({
        "player_id": player.player_id,
        "full_name": player.full_name,
        "display_position": player.display_position,
        "injury_display": player.injury_display,
        "search_rank": player.search_rank,
    })
    if is_starter is not None:
        data["is_starter"] = is_starter
    return data


@dataclass(frozen=True)
class LeagueUser:
    """A league member; only used to attach an owner to a roster."""

    user_id: str
    username: str = ""
    display_name: str = ""
    avatar: Optional[str] = None
    is_owner: bool = False
    team_name: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False, hash=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "LeagueUser":
        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
        return cls(
            user_id=str(data.get("user_id") or ""),
            username=str(data.get("username") or ""),
            display_name=str(data.get("display_name") or data.get("username") or ""),
            avatar=data.get("avatar"),
            is_owner=bool(data.get("is_owner")),
            team_name=_optional_str(metadata.get("team_name")),
            raw=dict(data),
        )

    @classmethod
    def placeholder(cls) -> "LeagueUser":
        return cls(user_id="unknown", username="Unknown", display_name="Unknown User")

    @property
    def is_placeholder(self) -> bool:
        return self.user_id == "unknown"

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data.update({
            "user_id": self.user_id,
            "username": self.username,
            "display_name": self.display_name,
            "avatar": self.avatar,
            "is_owner": self.is_owner,
            "team_name": self.team_name,
        })
        return data


@dataclass
class Roster:
    roster_id: int
    owner_id: Optional[str] = None
    players: List[str] = field(default_factory=list)
    starters: List[str] = field(default_factory=list)
    reserve: List[str] = field(default_factory=list)
    taxi: List[str] = field(default_factory=list)
    settings: Dict[str, Any] = field(default_factory=dict)
    league_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Roster":
        return cls(
            roster_id=_optional_int(data.get("roster_id")) or 0,
            owner_id=_optional_str(data.get("owner_id")),
            players=_str_list(data.get("players")),
            # "0" marks an empty starter slot
            starters=[pid for pid in _str_list(data.get("starters")) if pid != "0"],
            reserve=_str_list(data.get("reserve")),
            taxi=_str_list(data.get("taxi")),
            settings=data.get("settings") if isinstance(data.get("settings"), dict) else {},
            league_id=_optional_str(data.get("league_id")),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.raw)
        data.update({
            "roster_id": self.roster_id,
            "owner_id": self.owner_id,
            "players": list(self.players),
            "starters": list(self.starters),
            "reserve": list(self.reserve),
            "taxi": list(self.taxi),
            "settings": dict(self.settings),
            "league_id": self.league_id,
        })
        return data


@dataclass
class Matchup:
    """One side of a weekly head-to-head, as Sleeper reports it."""

    roster_id: int
    matchup_id: Optional[int] = None
    points: float = 0.0
    players: List[str] = field(default_factory=list)
    starters: List[str] = field(default_factory=list)
    custom_points: Optional[float] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Matchup":
        points = data.get("points")
        return cls(
            roster_id=_optional_int(data.get("roster_id")) or 0,
            matchup_id=_optional_int(data.get("matchup_id")),
            points=float(points) if isinstance(points, (int, float)) else 0.0,
            players=_str_list(data.get("players")),
            starters=[pid for pid in _str_list(data.get("starters")) if pid != "0"],
            custom_points=data.get("custom_points"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roster_id": self.roster_id,
            "matchup_id": self.matchup_id,
            "points": self.points,
            "players": list(self.players),
            "starters": list(self.starters),
            "custom_points": self.custom_points,
        }


@dataclass(frozen=True)
class TrendingEntry:
    player_id: str
    count: int

    @classmethod
    def from_api(cls, data: Any) -> Optional["TrendingEntry"]:
        if isinstance(data, dict):
            player_id = data.get("player_id") or data.get("id")
            count = _optional_int(data.get("count")) or 0
        else:
            player_id, count = data, 0
        if not player_id:
            return None
        return cls(player_id=str(player_id), count=count)


@dataclass(frozen=True)
class CacheMetadata:
    """Sidecar describing a durable catalog snapshot."""

    last_updated: int  # epoch milliseconds
    player_count: int
    version: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdated": self.last_updated,
            "playerCount": self.player_count,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        """Parse the sidecar; raises ValueError/KeyError/TypeError on bad input."""
        last_updated = data["lastUpdated"]
        player_count = data["playerCount"]
        if isinstance(last_updated, bool) or not isinstance(last_updated, (int, float)):
            raise ValueError("lastUpdated must be numeric")
        if isinstance(player_count, bool) or not isinstance(player_count, int):
            raise ValueError("playerCount must be an integer")
        return cls(
            last_updated=int(last_updated),
            player_count=player_count,
            version=str(data.get("version") or ""),
        )


@dataclass
class RosterWithDetails:
    roster: Roster
    user: LeagueUser
    starters: List[Dict[str, Any]]
    bench: List[Dict[str, Any]]
    all_players: List[Dict[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roster": self.roster.to_dict(),
            "user": self.user.to_dict(),
            "starters": self.starters,
            "bench": self.bench,
            "all_players": self.all_players,
        }


@dataclass
class MatchupSide:
    roster_id: int
    matchup_id: Optional[int]
    user: LeagueUser
    points: float
    starters: List[Dict[str, Any]]
    bench: List[Dict[str, Any]]
    total_players: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "roster_id": self.roster_id,
            "matchup_id": self.matchup_id,
            "user": self.user.to_dict(),
            "points": self.points,
            "starters": self.starters,
            "bench": self.bench,
            "total_players": self.total_players,
        }
