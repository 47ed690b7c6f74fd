import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_odds_service, get_snapshot_store, get_poller, get_tracker
from app.core.constants import DEFAULT_SPORT, MARKETS
from app.core.exceptions import UpstreamError
from app.core.security import get_api_key
from app.schemas.odds import OddsResponse, HistoryResponse, OddsStatusResponse, PollerStatus
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.odds_service import OddsService
from app.services.scheduler import AdaptivePoller
from app.services.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_api_key)])

@router.get("/odds", response_model=OddsResponse)
async def read_odds(
    sport: str = DEFAULT_SPORT,
    odds_service: OddsService = Depends(get_odds_service),
):
    logger.info(f"Odds API request for {sport}")
    try:
        data, stale, source = await odds_service.get_odds_with_timeout(sport)
    except asyncio.TimeoutError:
        logger.error(f"Odds request for {sport} timed out")
        return JSONResponse(status_code=504, content={"error": "Timed out fetching odds"})
    except UpstreamError as e:
        logger.error(f"Failed to fetch odds for {sport}: {e}")
        return JSONResponse(status_code=502, content={"error": "Failed to fetch odds"})
    return OddsResponse(data=data, stale=stale, source=source)

@router.get("/odds/latest", response_model=OddsResponse)
async def read_latest_stored_odds(
    sport: str = DEFAULT_SPORT,
    store: SnapshotStore = Depends(get_snapshot_store),
):
    data = await store.latest_per_game(sport)
    return OddsResponse(data=data, stale=False, source="database")

@router.get("/odds/history/{game_id}", response_model=HistoryResponse)
async def read_odds_history(
    game_id: str,
    market: Optional[str] = Query(None, description="Limit payloads to one market key"),
    store: SnapshotStore = Depends(get_snapshot_store),
):
    snapshots = await store.history(game_id, market)
    if market and market in MARKETS:
        snapshots = [
            s.model_copy(update={"odds_data": s.odds_data.only_market(market)})
            for s in snapshots
        ]
    return HistoryResponse(game_id=game_id, market=market, snapshots=snapshots)

@router.get("/odds/status", response_model=OddsStatusResponse)
async def read_odds_status(
    odds_service: OddsService = Depends(get_odds_service),
    poller: AdaptivePoller = Depends(get_poller),
    tracker: GameLifecycleTracker = Depends(get_tracker),
    db: AsyncSession = Depends(get_db),
):
    return OddsStatusResponse(
        cache=odds_service.cache.stats(),
        pending_fetches=odds_service.coalescer.pending_keys(),
        api_usage=dict(odds_service.client.api_usage),
        poller=[PollerStatus(**job) for job in poller.status()],
        games_by_status=await tracker.status_counts(db),
    )
