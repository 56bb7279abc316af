"""
Durable on-disk snapshot of the player catalog.

Two JSON files live in the cache directory: the id-keyed catalog itself and a
small metadata sidecar ({"lastUpdated": epoch-ms, "playerCount": n,
"version": "1.0.0"}). A snapshot is only usable when both files parse, the
count in the sidecar matches the catalog, and it is younger than the TTL.

Nothing here raises to callers; every failure is logged and reported as
"no snapshot" (load) or False (save/clear). The methods do blocking file I/O
and are meant to be run in a worker thread.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .errors import CacheIOError
from .models import CacheMetadata

logger = logging.getLogger(__name__)

DEFAULT_PLAYERS_FILE = "players.json"
DEFAULT_META_FILE = "cache-meta.json"
DEFAULT_FORMAT_VERSION = "1.0.0"


def _read_json_object(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        raise CacheIOError(f"Could not read {path}: {e}") from e
    if not isinstance(data, dict):
        raise CacheIOError(f"{path} does not contain a JSON object")
    return data


def _write_json_atomic(path: Path, payload: Dict[str, Any]) -> None:
    temp = path.with_suffix(path.suffix + ".tmp")
    with temp.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh)
    temp.replace(path)


class DurableSnapshotStore:
    """File-pair persistence for the player catalog."""

    def __init__(
        self,
        directory: Union[str, Path] = ".cache",
        ttl_seconds: float = 24 * 60 * 60,
        players_file: str = DEFAULT_PLAYERS_FILE,
        meta_file: str = DEFAULT_META_FILE,
        version: str = DEFAULT_FORMAT_VERSION,
        clock: Callable[[], float] = time.time,
    ):
        self.directory = Path(directory)
        self.ttl_seconds = ttl_seconds
        self.players_path = self.directory / players_file
        self.meta_path = self.directory / meta_file
        self.version = version
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def load(self) -> Optional[Tuple[Dict[str, Dict[str, Any]], CacheMetadata]]:
        """Return (players, metadata) for a valid, unexpired snapshot, else None."""
        if not self.players_path.exists() or not self.meta_path.exists():
            logger.debug("No persistent player cache found")
            return None

        try:
            meta = CacheMetadata.from_dict(_read_json_object(self.meta_path))
        except (CacheIOError, KeyError, TypeError, ValueError) as e:
            logger.info(f"Ignoring unreadable cache metadata: {e}")
            return None

        age_ms = self._now_ms() - meta.last_updated
        if age_ms >= self.ttl_seconds * 1000:
            logger.info(f"Persistent cache expired (age: {age_ms / 3_600_000:.1f}h), will fetch fresh data")
            return None

        try:
            players = _read_json_object(self.players_path)
        except CacheIOError as e:
            logger.info(f"Ignoring unreadable player cache: {e}")
            return None

        if meta.player_count != len(players):
            logger.info(
                f"Cache metadata count mismatch (meta={meta.player_count}, file={len(players)}); ignoring snapshot"
            )
            return None

        logger.info(f"Loaded {len(players)} players from persistent cache (age: {age_ms / 3_600_000:.1f}h)")
        return players, meta

    def save(self, players: Dict[str, Dict[str, Any]], metadata: CacheMetadata) -> bool:
        """Write the catalog then its sidecar; returns False on any failure."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            _write_json_atomic(self.players_path, players)
            _write_json_atomic(self.meta_path, metadata.to_dict())
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save players cache: {e}")
            return False
        logger.info(f"Saved {metadata.player_count} players to persistent cache")
        return True

    def clear(self) -> bool:
        """Remove both files; already-missing files are fine."""
        ok = True
        for path in (self.players_path, self.meta_path):
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to remove {path}: {e}")
                ok = False
        return ok

    def make_metadata(self, player_count: int, refreshed_at: float) -> CacheMetadata:
        return CacheMetadata(
            last_updated=int(refreshed_at * 1000),
            player_count=player_count,
            version=self.version,
        )
