from fastapi import Request
from app.db.session import get_db
from app.services.odds_service import OddsService
from app.services.snapshot_store import SnapshotStore
from app.services.scheduler import AdaptivePoller
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.saved_bets import SavedBetsService
from app.services.user_profile import UserProfileService

__all__ = [
    "get_db",
    "get_odds_service",
    "get_snapshot_store",
    "get_poller",
    "get_tracker",
    "get_saved_bets_service",
    "get_profile_service",
]

# Services are built once in the lifespan and live on app.state

async def get_odds_service(request: Request) -> OddsService:
    return request.app.state.odds_service

async def get_snapshot_store(request: Request) -> SnapshotStore:
    return request.app.state.snapshot_store

async def get_poller(request: Request) -> AdaptivePoller:
    return request.app.state.poller

async def get_tracker(request: Request) -> GameLifecycleTracker:
    return request.app.state.tracker

async def get_saved_bets_service(request: Request) -> SavedBetsService:
    return request.app.state.saved_bets_service

async def get_profile_service(request: Request) -> UserProfileService:
    return request.app.state.profile_service
