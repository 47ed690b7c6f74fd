import asyncio
import logging
from typing import List, Optional, Set, Tuple
from app.core.config import settings
from app.core.exceptions import UpstreamError
from app.schemas.odds import OddsEvent
from app.services.cache import OddsCache
from app.services.request_coalescer import RequestCoalescer
from app.services.snapshot_store import SnapshotStore
from app.services.the_odds_api import TheOddsAPIClient

logger = logging.getLogger(__name__)


class OddsService:
    """
    Read path for current odds.

    Cache first; a stale hit is served immediately while a coalesced refresh
    runs in the background. A miss waits on the coalesced upstream fetch,
    falling back to the latest stored snapshots when upstream is down.
    """

    def __init__(
        self,
        client: TheOddsAPIClient,
        cache: OddsCache,
        coalescer: RequestCoalescer,
        store: Optional[SnapshotStore] = None,
        read_timeout: float = settings.READ_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.cache = cache
        self.coalescer = coalescer
        self.store = store
        self.read_timeout = read_timeout
        self._background: Set[asyncio.Task] = set()

    async def _fetch_and_cache(self, sport: str) -> List[OddsEvent]:
        events = await self.client.fetch_odds(sport)
        self.cache.set(sport, events)
        return events

    async def refresh(self, sport: str) -> List[OddsEvent]:
        """Fetch from upstream (shared with any concurrent caller) and update the cache."""
        return await self.coalescer.get_or_create(sport, lambda: self._fetch_and_cache(sport))

    def _refresh_in_background(self, sport: str):
        if self.coalescer.is_pending(sport):
            return
        task = asyncio.create_task(self._safe_refresh(sport))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _safe_refresh(self, sport: str):
        try:
            await self.refresh(sport)
        except Exception as e:
            logger.warning(f"Background refresh failed for {sport}, keeping stale odds: {e}")

    async def get_odds_with_source(self, sport: str) -> Tuple[List[OddsEvent], bool, str]:
        """Events, stale flag and where they came from (cache, upstream, database)."""
        cached = self.cache.get(sport)
        if cached is not None:
            data, is_stale = cached
            if is_stale:
                logger.info(f"Serving stale odds for {sport} while refreshing")
                self._refresh_in_background(sport)
            else:
                logger.info(f"Returning cached odds for {sport} ({len(data)} events)")
            return data, is_stale, "cache"

        try:
            return await self.refresh(sport), False, "upstream"
        except UpstreamError:
            if self.store is None:
                raise
            stored = await self.store.latest_per_game(sport)
            if not stored:
                raise
            logger.warning(f"Upstream failed for {sport}, serving {len(stored)} stored snapshots")
            return stored, True, "database"

    async def get_odds(self, sport: str) -> List[OddsEvent]:
        data, _, _ = await self.get_odds_with_source(sport)
        return data

    async def get_odds_with_timeout(self, sport: str) -> Tuple[List[OddsEvent], bool, str]:
        """
        Same as get_odds_with_source but gives up after `read_timeout` seconds.
        The shared fetch keeps running and still fills the cache for the next caller.
        """
        return await asyncio.wait_for(self.get_odds_with_source(sport), timeout=self.read_timeout)

    async def close(self):
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
