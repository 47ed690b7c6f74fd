import logging
import asyncio
import uvicorn
from app.core.config import settings
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Depends
from fastapi.responses import JSONResponse
from app.routers import odds, bets, profile
from app.core.security import AppStartupFailedException, AppStartupLoadingException, check_startup

# Configure Logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

from app.db.session import engine, AsyncSessionLocal, init_db
from app.services.cache import OddsCache
from app.services.request_coalescer import RequestCoalescer
from app.services.the_odds_api import TheOddsAPIClient
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.snapshot_store import SnapshotStore
from app.services.odds_service import OddsService
from app.services.scheduler import AdaptivePoller
from app.services.saved_bets import SavedBetsService
from app.services.user_profile import UserProfileService

def build_services(app: FastAPI, session_factory=AsyncSessionLocal):
    """Composition root: every shared service is created once here."""
    cache = OddsCache()
    coalescer = RequestCoalescer()
    client = TheOddsAPIClient()
    tracker = GameLifecycleTracker()
    store = SnapshotStore(session_factory, tracker)
    odds_service = OddsService(client, cache, coalescer, store)
    poller = AdaptivePoller(settings.POLLER_SPORTS, odds_service, store, tracker, session_factory)

    app.state.tracker = tracker
    app.state.snapshot_store = store
    app.state.odds_service = odds_service
    app.state.poller = poller
    app.state.saved_bets_service = SavedBetsService(tracker)
    app.state.profile_service = UserProfileService()

@asynccontextmanager
async def lifespan(app: FastAPI):

    app.state.startup_status = "starting" # starting, ready, failed
    app.state.startup_error = None
    build_services(app)

    async def run_startup_tasks():
        try:
            await init_db()
            if settings.POLLER_ENABLED:
                app.state.poller.start(run_immediately=True)
            else:
                logger.info("Poller disabled by configuration.")
            app.state.startup_status = "ready"
            logger.info("Background Startup: Complete. App is ready.")
        except Exception as e:
            logger.error(f"Background Startup failed: {str(e)}", exc_info=True)
            app.state.startup_status = "failed"
            app.state.startup_error = str(e)

    startup_task = asyncio.create_task(run_startup_tasks())

    yield

    if not startup_task.done():
        startup_task.cancel()

    # In-flight poll ticks are cancelled before the engine goes away
    await app.state.poller.stop()
    await app.state.odds_service.close()

    # Close database engine pool
    logger.info("Disposing database engine...")
    await engine.dispose()

    logger.info("Shutting down complete.")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Include Routers - API
app.include_router(odds.router, prefix=settings.API_V1_STR, tags=["Odds"], dependencies=[Depends(check_startup)])
app.include_router(bets.router, prefix=settings.API_V1_STR, tags=["Bets"], dependencies=[Depends(check_startup)])
app.include_router(profile.router, prefix=settings.API_V1_STR, tags=["Profile"], dependencies=[Depends(check_startup)])

@app.exception_handler(AppStartupFailedException)
async def startup_exception_handler(request: Request, exc: AppStartupFailedException):
    return JSONResponse(status_code=503, content={"detail": "Service failed to start", "error": exc.message})

@app.exception_handler(AppStartupLoadingException)
async def loading_exception_handler(request: Request, exc: AppStartupLoadingException):
    return JSONResponse(status_code=503, content={"detail": "Service is starting"})

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error in {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )

@app.get("/health")
def health_check():
    return {"status": app.state.startup_status if hasattr(app.state, "startup_status") else "ok", "project": settings.PROJECT_NAME}

def run_dev():
    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)

def run_prod():
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT)
