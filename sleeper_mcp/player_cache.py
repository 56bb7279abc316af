"""
In-memory player catalog with durable hydration and single-flight refresh.

Freshness policy:

1. The first population attempt hydrates from the snapshot store and adopts
   the snapshot if it is younger than the TTL.
2. A non-empty catalog younger than the TTL is served with no I/O.
3. Otherwise the whole catalog is fetched once, swapped in as a new dict, and
   written back to the store on a best-effort basis.
4. A failed remote fetch propagates to the caller and leaves the current
   catalog untouched.

Only one population runs at a time. Callers that arrive while it is running
await the same task (through ``asyncio.shield``, so a cancelled caller does
not cancel the shared fetch).

``reset()`` bumps a generation counter. A population started under an older
generation drops its result instead of swapping it in or writing it to disk.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .metrics import get_metrics_collector, MetricsCollector
from .models import Player, search_sort_key
from .snapshot_store import DurableSnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60
QUESTIONABLE_STATUSES = ("Questionable", "Doubtful", "Out")


class PlayerSource(Protocol):
    async def fetch_all_players(self) -> Dict[str, Dict[str, Any]]:
        ...


class PlayerCache:
    """Reference cache for the Sleeper player catalog.

    One instance is built at startup and handed to whoever needs player
    lookups; there is no module-level instance.
    """

    def __init__(
        self,
        source: PlayerSource,
        store: Optional[DurableSnapshotStore] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._source = source
        self._store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._metrics = metrics or get_metrics_collector()

        self._players: Dict[str, Player] = {}
        self._last_refreshed_at: Optional[float] = None
        self._initialized = False
        self._inflight: Optional[asyncio.Future] = None
        self._generation = 0
        self._inflight_generation = 0
        self._fetch_count = 0
        # Serializes snapshot writes against reset's delete.
        self._store_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def fetch_count(self) -> int:
        """Remote catalog fetches that were swapped into memory."""
        return self._fetch_count

    @property
    def last_refreshed_at(self) -> Optional[float]:
        return self._last_refreshed_at

    def __len__(self) -> int:
        return len(self._players)

    def age_seconds(self) -> Optional[float]:
        if self._last_refreshed_at is None:
            return None
        return self._clock() - self._last_refreshed_at

    def is_fresh(self) -> bool:
        age = self.age_seconds()
        return bool(self._players) and age is not None and age < self.ttl_seconds

    async def ensure_fresh(self, force_refresh: bool = False) -> Dict[str, Player]:
        """Make sure the catalog is loaded and within TTL; returns the live map.

        A forced refresh that arrives while a population is already running
        joins it instead of starting another fetch. If the cache is reset
        while the caller waits, the population runs again from scratch.
        """
        while True:
            if self._initialized and not force_refresh and self.is_fresh():
                self._metrics.increment_counter("player_cache_hits_total")
                return self._players

            task = self._inflight
            if task is None:
                task = asyncio.ensure_future(self._populate(force_refresh, self._generation))
                self._inflight = task
                self._inflight_generation = self._generation
            elif self._inflight_generation != self._generation:
                logger.debug("Waiting out a population started before the cache was cleared")
                await asyncio.wait({task})
                continue
            else:
                logger.debug("Joining in-flight player catalog population")

            generation = self._inflight_generation
            await asyncio.shield(task)
            if generation == self._generation:
                return self._players

    async def _populate(self, force_refresh: bool, generation: int) -> None:
        try:
            if not self._initialized:
                await self._hydrate(generation)
                if generation != self._generation:
                    return
                self._initialized = True

            if not force_refresh and self.is_fresh():
                return

            await self._refresh_from_remote(generation)
        finally:
            self._inflight = None

    async def _hydrate(self, generation: int) -> None:
        if self._store is None:
            return
        try:
            loaded = await asyncio.to_thread(self._store.load)
        except Exception as e:
            logger.info(f"Player cache hydration failed, treating as empty: {e}")
            return
        if loaded is None:
            logger.info("No valid persistent cache found, will fetch fresh player data")
            return

        raw_players, meta = loaded
        players = {
            str(pid): Player.from_api(pid, record)
            for pid, record in raw_players.items()
            if isinstance(record, dict)
        }
        refreshed_at = meta.last_updated / 1000
        if not players or self._clock() - refreshed_at >= self.ttl_seconds:
            return
        if generation != self._generation:
            return

        self._players = players
        self._last_refreshed_at = refreshed_at
        self._metrics.increment_counter("player_cache_hydrations_total")
        logger.info(f"Hydrated {len(players)} players from persistent cache")

    async def _refresh_from_remote(self, generation: int) -> None:
        self._metrics.increment_counter("player_cache_remote_fetches_total")
        try:
            raw_players = await self._source.fetch_all_players()
        except Exception as e:
            self._metrics.increment_counter("player_cache_remote_failures_total")
            logger.error(f"Player catalog refresh failed: {type(e).__name__}: {e}")
            raise

        players = {
            str(pid): Player.from_api(pid, record)
            for pid, record in raw_players.items()
            if isinstance(record, dict)
        }
        refreshed_at = self._clock()
        if generation != self._generation:
            logger.info("Player cache was cleared during refresh, discarding fetched catalog")
            return

        # Readers keep the old dict until this single rebinding.
        self._players = players
        self._last_refreshed_at = refreshed_at
        self._fetch_count += 1
        logger.info(f"Loaded {len(players)} players into memory cache")

        if self._store is not None:
            metadata = self._store.make_metadata(len(players), refreshed_at)
            payload = {pid: player.raw for pid, player in players.items()}
            async with self._store_lock:
                if generation != self._generation:
                    return
                await asyncio.to_thread(self._store.save, payload, metadata)

    async def get(self, player_id: str) -> Optional[Player]:
        players = await self.ensure_fresh()
        return players.get(str(player_id))

    async def get_many(self, player_ids: Iterable[str]) -> List[Player]:
        """Resolve ids in order, skipping any the catalog does not know."""
        players = await self.ensure_fresh()
        found = (players.get(str(pid)) for pid in player_ids)
        return [p for p in found if p is not None]

    async def search(self, query: str, limit: int = 10) -> List[Player]:
        """First ``limit`` name matches in catalog order, then ranked."""
        players = await self.ensure_fresh()
        needle = query.lower()
        results: List[Player] = []
        for player in players.values():
            if len(results) >= limit:
                break
            if player.matches(needle):
                results.append(player)
        return sorted(results, key=search_sort_key)

    async def get_active_players(self, position: Optional[str] = None) -> List[Player]:
        """Active, not ruled out, optionally eligible at ``position``; best rank first."""
        players = await self.ensure_fresh()
        wanted = position.upper() if position else None
        results = [
            p for p in players.values()
            if p.status == "Active"
            and p.injury_status != "Out"
            and (wanted is None or wanted in p.fantasy_positions)
        ]
        return sorted(results, key=lambda p: p.rank_or_sentinel)

    async def get_questionable(self, player_ids: Iterable[str]) -> List[Player]:
        players = await self.get_many(player_ids)
        return [p for p in players if p.injury_status in QUESTIONABLE_STATUSES]

    async def reset(self) -> bool:
        """Drop the durable pair and the in-memory catalog.

        The next lookup re-hydrates (and, with nothing on disk, refetches).
        A population already running when this is called is discarded.
        """
        self._generation += 1
        cleared = True
        if self._store is not None:
            async with self._store_lock:
                cleared = await asyncio.to_thread(self._store.clear)
        self._players = {}
        self._last_refreshed_at = None
        self._initialized = False
        logger.info("Player cache cleared")
        return cleared

    def status(self) -> Dict[str, Any]:
        return {
            "player_count": len(self._players),
            "last_refreshed_at": self._last_refreshed_at,
            "age_seconds": self.age_seconds(),
            "ttl_seconds": self.ttl_seconds,
            "is_fresh": self.is_fresh(),
            "initialized": self._initialized,
            "refresh_in_flight": self._inflight is not None,
            "fetch_count": self._fetch_count,
        }
