import re
import time
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple
from app.core.config import settings
from app.core.exceptions import CacheError
from app.schemas.odds import OddsEvent

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_]")


@dataclass
class CacheEntry:
    data: List[OddsEvent]
    captured_at: float
    stale: bool = False


class OddsCache:
    """
    In-memory odds store keyed by sport.

    An entry is fresh for `stale_after` seconds, then served flagged as stale
    until it hard-expires after `ttl` seconds. Reads never block on staleness;
    refreshing is the caller's job.
    """

    def __init__(
        self,
        ttl: int = settings.CACHE_TTL_SECONDS,
        stale_after: int = settings.CACHE_STALE_SECONDS,
        max_keys: int = settings.CACHE_MAX_KEYS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.stale_after = stale_after
        self.max_keys = max_keys
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

        logger.info(f"Odds cache initialized (ttl={ttl}s, stale_after={stale_after}s, max_keys={max_keys})")

    @staticmethod
    def key_for(sport: str) -> str:
        if not sport or not isinstance(sport, str):
            raise CacheError(f"Invalid sport key: {sport!r}")
        return f"odds:{_UNSAFE_KEY_CHARS.sub('_', sport)}"

    def _live_entry(self, key: str, now: float) -> Optional[CacheEntry]:
        """Entry for key unless it hard-expired (expired entries are dropped). Lock must be held."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if now - entry.captured_at > self.ttl:
            del self._entries[key]
            logger.debug(f"Cache key expired: {key}")
            return None
        return entry

    def get(self, sport: str) -> Optional[Tuple[List[OddsEvent], bool]]:
        """Cached events and their stale flag, or None on a miss."""
        try:
            key = self.key_for(sport)
            with self._lock:
                now = self._clock()
                entry = self._live_entry(key, now)
                if entry is None:
                    self._stats["misses"] += 1
                    logger.debug(f"Cache miss: {key}")
                    return None
                entry.stale = now - entry.captured_at > self.stale_after
                self._stats["hits"] += 1
                logger.debug(f"Cache hit: {key} ({len(entry.data)} events, stale={entry.stale})")
                return entry.data, entry.stale
        except CacheError as e:
            logger.warning(f"Cache get failed for {sport!r}, treating as miss: {e}")
            return None

    def set(self, sport: str, data: List[OddsEvent]):
        try:
            if not isinstance(data, list):
                raise CacheError(f"Refusing to cache {type(data).__name__} for {sport!r}")
            key = self.key_for(sport)
            with self._lock:
                now = self._clock()
                if key not in self._entries and len(self._entries) >= self.max_keys:
                    self._make_room(now)
                self._entries[key] = CacheEntry(data=data, captured_at=now, stale=False)
                self._stats["sets"] += 1
            logger.debug(f"Cache set: {key} ({len(data)} events)")
        except CacheError as e:
            logger.warning(f"Cache set skipped: {e}")

    def _make_room(self, now: float):
        """Drop expired entries, then the oldest one if still full. Lock must be held."""
        for key in [k for k, e in self._entries.items() if now - e.captured_at > self.ttl]:
            del self._entries[key]
            self._stats["evictions"] += 1
        if len(self._entries) >= self.max_keys:
            oldest = min(self._entries, key=lambda k: self._entries[k].captured_at)
            del self._entries[oldest]
            self._stats["evictions"] += 1
            logger.warning(f"Cache full ({self.max_keys} keys), evicted {oldest}")

    def has(self, sport: str) -> bool:
        return self.get_age(sport) is not None

    def delete(self, sport: str):
        try:
            key = self.key_for(sport)
        except CacheError:
            return
        with self._lock:
            self._entries.pop(key, None)
        logger.debug(f"Cache deleted: {key}")

    def clear(self):
        with self._lock:
            self._entries.clear()
        logger.info("Cache cleared")

    def get_age(self, sport: str) -> Optional[float]:
        """Seconds since the entry was stored, None when absent or expired."""
        try:
            key = self.key_for(sport)
        except CacheError:
            return None
        with self._lock:
            now = self._clock()
            entry = self._live_entry(key, now)
            return None if entry is None else now - entry.captured_at

    def is_fresh(self, sport: str) -> bool:
        age = self.get_age(sport)
        return age is not None and age <= self.stale_after

    def is_stale(self, sport: str) -> bool:
        age = self.get_age(sport)
        return age is not None and age > self.stale_after

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {**self._stats, "keys": len(self._entries), "max_keys": self.max_keys}
