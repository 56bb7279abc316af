"""
Async client for the read-only Sleeper API.

Every call is a path-addressed GET against the configured base URL. Failures
are raised as typed errors from ``errors``: 404 becomes NotFoundError, 429
becomes RateLimitedError, and every other non-2xx status or transport failure
becomes UpstreamError. Only transport failures and 5xx responses are retried.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .config import create_http_client, get_http_headers, DEFAULT_TIMEOUT, LONG_TIMEOUT
from .config_manager import get_config_manager
from .errors import NotFoundError, RateLimitedError, UpstreamError
from .models import LeagueUser, Matchup, Roster, TrendingEntry
from .retry_utils import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.sleeper.app/v1"
ACTIVE_SEASON_TYPES = ("regular", "post")


class _RetryableUpstreamError(UpstreamError):
    """Transport failure or 5xx; eligible for another attempt."""


def season_is_active(state: Dict[str, Any]) -> bool:
    """True during the regular season and playoffs of an NFL state record."""
    return state.get("season_type") in ACTIVE_SEASON_TYPES


class SleeperClient:
    """Thin typed wrapper over the Sleeper REST endpoints."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
    ):
        try:
            config = get_config_manager().config
            configured_base = config.server.base_url
            retry = config.retry
        except Exception:
            configured_base, retry = DEFAULT_BASE_URL, None

        self.base_url = (base_url or configured_base or DEFAULT_BASE_URL).rstrip("/")
        self.max_retries = max_retries if max_retries is not None else (retry.max_retries if retry else 2)
        self.initial_delay = initial_delay if initial_delay is not None else (retry.initial_delay if retry else 0.5)
        self.max_delay = max_delay if max_delay is not None else (retry.max_delay if retry else 10.0)
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = create_http_client()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get_once(self, path: str, service: str, params: Optional[Dict[str, Any]],
                        timeout: httpx.Timeout) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self.http_client.get(
                url, headers=get_http_headers(service), params=params, timeout=timeout
            )
        except httpx.TimeoutException as e:
            raise _RetryableUpstreamError(f"Request timed out: {path}", endpoint=path) from e
        except httpx.TransportError as e:
            raise _RetryableUpstreamError(f"Network error on {path}: {e}", endpoint=path) from e

        status = response.status_code
        if status == 404:
            raise NotFoundError(f"Resource not found: {path}", endpoint=path, status_code=status)
        if status == 429:
            raise RateLimitedError(
                "Rate limit exceeded. Please wait before making more requests.",
                endpoint=path, status_code=status,
            )
        if status >= 500:
            raise _RetryableUpstreamError(
                f"Sleeper API error: {status} {response.reason_phrase}", endpoint=path, status_code=status
            )
        if not response.is_success:
            raise UpstreamError(
                f"Sleeper API error: {status} {response.reason_phrase}", endpoint=path, status_code=status
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {path}", endpoint=path, status_code=status) from e

    async def get_json(self, path: str, service: str = "sleeper_league",
                       params: Optional[Dict[str, Any]] = None,
                       timeout: Optional[httpx.Timeout] = None) -> Any:
        """GET ``path`` and return the parsed body, retrying transient failures."""
        try:
            return await retry_with_backoff(
                self._get_once, path, service, params, timeout or DEFAULT_TIMEOUT,
                max_retries=self.max_retries,
                initial_delay=self.initial_delay,
                max_delay=self.max_delay,
                retry_on=(_RetryableUpstreamError,),
                operation_name=f"GET {path}",
            )
        except _RetryableUpstreamError as e:
            raise UpstreamError(str(e), endpoint=e.endpoint, status_code=e.status_code) from e

    # Users

    async def get_user(self, username_or_id: str) -> Dict[str, Any]:
        return await self.get_json(f"/user/{username_or_id}", "sleeper_user")

    async def get_user_leagues(self, user_id: str, season: str, sport: str = "nfl") -> List[Dict[str, Any]]:
        return await self.get_json(f"/user/{user_id}/leagues/{sport}/{season}", "sleeper_league") or []

    async def get_user_drafts(self, user_id: str, season: str, sport: str = "nfl") -> List[Dict[str, Any]]:
        return await self.get_json(f"/user/{user_id}/drafts/{sport}/{season}", "sleeper_drafts") or []

    # Leagues

    async def get_league(self, league_id: str) -> Dict[str, Any]:
        return await self.get_json(f"/league/{league_id}", "sleeper_league")

    async def get_league_rosters_raw(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/rosters", "sleeper_rosters") or []

    async def get_league_rosters(self, league_id: str) -> List[Roster]:
        return [Roster.from_api(r) for r in await self.get_league_rosters_raw(league_id) if isinstance(r, dict)]

    async def get_league_users_raw(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/users", "sleeper_users") or []

    async def get_league_users(self, league_id: str) -> List[LeagueUser]:
        return [LeagueUser.from_api(u) for u in await self.get_league_users_raw(league_id) if isinstance(u, dict)]

    async def get_matchups(self, league_id: str, week: int) -> List[Matchup]:
        data = await self.get_json(f"/league/{league_id}/matchups/{week}", "sleeper_matchups") or []
        return [Matchup.from_api(m) for m in data if isinstance(m, dict)]

    async def get_transactions(self, league_id: str, round_: int) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/transactions/{round_}", "sleeper_transactions") or []

    async def get_traded_picks(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/traded_picks", "sleeper_league") or []

    async def get_winners_bracket(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/winners_bracket", "sleeper_league") or []

    async def get_losers_bracket(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/losers_bracket", "sleeper_league") or []

    # Drafts

    async def get_league_drafts(self, league_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/league/{league_id}/drafts", "sleeper_drafts") or []

    async def get_draft(self, draft_id: str) -> Dict[str, Any]:
        return await self.get_json(f"/draft/{draft_id}", "sleeper_drafts")

    async def get_draft_picks(self, draft_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/draft/{draft_id}/picks", "sleeper_drafts") or []

    async def get_draft_traded_picks(self, draft_id: str) -> List[Dict[str, Any]]:
        return await self.get_json(f"/draft/{draft_id}/traded_picks", "sleeper_drafts") or []

    # NFL state and players

    async def get_nfl_state(self) -> Dict[str, Any]:
        return await self.get_json("/state/nfl", "sleeper_nfl_state")

    async def fetch_all_players(self, sport: str = "nfl") -> Dict[str, Dict[str, Any]]:
        """Fetch the whole player catalog (several MB); uses the long timeout."""
        logger.info("Fetching all players from Sleeper API (this may take a moment)...")
        data = await self.get_json(f"/players/{sport}", "sleeper_players", timeout=LONG_TIMEOUT)
        if not isinstance(data, dict):
            raise UpstreamError("Player catalog response is not an object", endpoint=f"/players/{sport}")
        return data

    async def get_trending(self, trend_type: str = "add", lookback_hours: int = 24,
                           limit: int = 25) -> List[TrendingEntry]:
        data = await self.get_json(
            f"/players/nfl/trending/{trend_type}",
            "sleeper_trending",
            params={"lookback_hours": lookback_hours, "limit": limit},
        ) or []
        entries = (TrendingEntry.from_api(item) for item in data)
        return [e for e in entries if e is not None]

    # NFL state helpers

    async def get_current_week(self) -> int:
        state = await self.get_nfl_state()
        return int(state.get("week") or 1)

    async def get_current_season(self) -> str:
        state = await self.get_nfl_state()
        return str(state.get("season"))
