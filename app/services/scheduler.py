import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.base import JobLookupError
from sqlalchemy.ext.asyncio import async_sessionmaker
from app.core.config import settings
from app.core.constants import (
    LIVE_POLL_INTERVAL, PREGAME_POLL_INTERVAL, IDLE_POLL_INTERVAL, PREGAME_WINDOW_HOURS,
)
from app.core.enums import GameStatus
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.odds_service import OddsService
from app.services.snapshot_store import SnapshotStore, BatchResult
from app.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)

EVALUATOR_JOB_ID = "poller:evaluate"


def poll_job_id(sport_key: str) -> str:
    return f"poll:{sport_key}"


def resolve_poll_interval(games: Iterable[Tuple[str, datetime]], now: Optional[datetime] = None) -> int:
    """
    Poll interval in seconds for a sport given its (status, commence_time) games:
    60 with any live game, 120 with a game starting within the pre-game window,
    3600 otherwise.
    """
    now = now or utcnow()
    horizon = now + timedelta(hours=PREGAME_WINDOW_HOURS)
    games = list(games)

    if any(status == GameStatus.LIVE.value for status, _ in games):
        return LIVE_POLL_INTERVAL

    if any(
        status == GameStatus.SCHEDULED.value and now < ensure_utc(commence_time) <= horizon
        for status, commence_time in games
    ):
        return PREGAME_POLL_INTERVAL

    return IDLE_POLL_INTERVAL


class AdaptivePoller:
    """
    Polls a fixed set of sports at a cadence that follows their games.

    An evaluator job re-derives each sport's interval every few minutes and
    (re)installs one interval job per sport. A tick fetches odds through the
    coalesced read path, refreshes the cache and stores a snapshot batch.
    """

    def __init__(
        self,
        sports: List[str],
        odds_service: OddsService,
        store: SnapshotStore,
        tracker: GameLifecycleTracker,
        session_factory: async_sessionmaker,
        evaluate_minutes: int = settings.POLLER_EVALUATE_MINUTES,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.sports = list(dict.fromkeys(sports))
        self.odds_service = odds_service
        self.store = store
        self.tracker = tracker
        self.session_factory = session_factory
        self.evaluate_minutes = evaluate_minutes
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self.intervals: Dict[str, int] = {}
        self._in_flight: Set[asyncio.Task] = set()

    def start(self, run_immediately: bool = True):
        """
        Start the evaluator. If run_immediately is True, the first evaluation
        (and with it the first poll of every sport) happens right now.
        """
        # An explicit next_run_time=None would add the job paused
        extra = {"next_run_time": datetime.now(timezone.utc)} if run_immediately else {}
        self.scheduler.add_job(
            self.evaluate,
            "interval",
            minutes=self.evaluate_minutes,
            id=EVALUATOR_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **extra,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Adaptive poller started for {self.sports} (evaluating every {self.evaluate_minutes} min)")

    async def stop(self):
        """Stop scheduling, then cancel ticks still running so nothing writes after shutdown."""
        logger.info("Stopping adaptive poller...")
        try:
            self.scheduler.remove_all_jobs()
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
        except Exception as e:
            logger.error(f"Error during poller shutdown: {e}")
        running = [task for task in self._in_flight if task is not asyncio.current_task()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
            logger.info(f"Cancelled {len(running)} in-flight poller tasks")
        self._in_flight.clear()
        self.intervals.clear()

    def _track_current_task(self) -> Optional[asyncio.Task]:
        task = asyncio.current_task()
        if task is not None:
            self._in_flight.add(task)
        return task

    async def evaluate(self) -> Dict[str, int]:
        """Re-derive every sport's interval. One sport failing does not affect the others."""
        task = self._track_current_task()
        try:
            outcomes = await asyncio.gather(
                *(self._evaluate_sport(sport) for sport in self.sports),
                return_exceptions=True,
            )
        finally:
            self._in_flight.discard(task)
        resolved = {}
        for sport, outcome in zip(self.sports, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to evaluate poll interval for {sport}: {outcome}")
            else:
                resolved[sport] = outcome
        return resolved

    async def _evaluate_sport(self, sport: str) -> int:
        now = utcnow()
        async with self.session_factory() as db:
            games = await self.tracker.games_for_interval(db, sport, now=now)
        interval = resolve_poll_interval(games, now=now)
        self.schedule_sport(sport, interval)
        return interval

    def schedule_sport(self, sport: str, interval: int):
        """Install the sport's poll job, replacing the previous one when the interval changed."""
        job_id = poll_job_id(sport)
        if self.intervals.get(sport) == interval and self.scheduler.get_job(job_id):
            return

        # Stop then replace: never two jobs for one sport
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass

        self.scheduler.add_job(
            self.poll_sport,
            "interval",
            seconds=interval,
            args=[sport],
            id=job_id,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(timezone.utc),
        )
        previous = self.intervals.get(sport)
        self.intervals[sport] = interval
        logger.info(f"Polling {sport} every {interval}s (was {previous}s)" if previous else f"Polling {sport} every {interval}s")

    async def poll_sport(self, sport: str) -> Optional[BatchResult]:
        """One tick for a sport. Errors are logged here and never reach the scheduler."""
        task = self._track_current_task()
        try:
            events = await self.odds_service.refresh(sport)
            result = await self.store.save_batch(events)
            logger.info(f"Polled {sport}: {len(events)} events, {len(result.saved)} snapshots saved, {len(result.failed)} failed")
            return result
        except Exception as e:
            logger.error(f"Failed to poll {sport}: {e}", exc_info=True)
            return None
        finally:
            self._in_flight.discard(task)

    def status(self) -> List[Dict]:
        jobs = []
        for sport in self.sports:
            job = self.scheduler.get_job(poll_job_id(sport))
            jobs.append({
                "sport_key": sport,
                "interval_seconds": self.intervals.get(sport),
                "next_run_time": getattr(job, "next_run_time", None) if job else None,
            })
        return jobs
