import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.constants import CLOSING_WINDOW_MINUTES, PREGAME_WINDOW_HOURS, PLACEHOLDER_TEAM
from app.core.enums import GameStatus, SnapshotType
from app.core.exceptions import PersistenceError
from app.db.models import GameMetadata
from app.schemas.odds import OddsEvent
from app.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    return ensure_utc(dt).astimezone(timezone.utc)


class GameLifecycleTracker:
    """
    Owns the per-game metadata rows: lifecycle status, whether the opening and
    closing lines were captured and when the last snapshot was taken.

    Methods take the caller's session and never commit; the caller decides the
    transaction boundary.
    """

    def __init__(self, closing_window: timedelta = timedelta(minutes=CLOSING_WINDOW_MINUTES)):
        self.closing_window = closing_window

    async def get(self, db: AsyncSession, game_id: str) -> Optional[GameMetadata]:
        result = await db.execute(select(GameMetadata).where(GameMetadata.game_id == game_id))
        return result.scalar_one_or_none()

    async def get_or_create(self, db: AsyncSession, event: OddsEvent, now: Optional[datetime] = None) -> GameMetadata:
        now = now or utcnow()
        commence_time = _as_utc(event.commence_time)

        metadata = await self.get(db, event.id)
        if metadata:
            if metadata.home_team == PLACEHOLDER_TEAM or metadata.away_team == PLACEHOLDER_TEAM:
                # Row was created from a saved bet before the game was ever polled
                metadata.home_team = event.home_team
                metadata.away_team = event.away_team
                metadata.sport_title = event.sport_title
                metadata.commence_time = commence_time
                await db.flush()
                logger.info(f"Filled placeholder game metadata for {event.id}")
            return metadata

        status = GameStatus.LIVE if commence_time <= now else GameStatus.SCHEDULED
        metadata = GameMetadata(
            game_id=event.id,
            sport_key=event.sport_key,
            sport_title=event.sport_title,
            home_team=event.home_team,
            away_team=event.away_team,
            commence_time=commence_time,
            status=status.value,
            opening_line_captured=False,
            closing_line_captured=False,
        )
        db.add(metadata)
        await db.flush()
        logger.info(f"Created game metadata for {event.id} ({event.sport_key}, {status.value})")
        return metadata

    async def ensure_placeholder(self, db: AsyncSession, game_id: str, sport_key: str) -> GameMetadata:
        """Metadata row for a game only known from a saved bet; team names get filled in by the first poll."""
        metadata = await self.get(db, game_id)
        if metadata:
            return metadata

        metadata = GameMetadata(
            game_id=game_id,
            sport_key=sport_key,
            home_team=PLACEHOLDER_TEAM,
            away_team=PLACEHOLDER_TEAM,
            commence_time=utcnow(),
            status=GameStatus.SCHEDULED.value,
            opening_line_captured=False,
            closing_line_captured=False,
        )
        db.add(metadata)
        await db.flush()
        logger.info(f"Created placeholder game metadata for {game_id}")
        return metadata

    def classify(
        self,
        metadata: Optional[GameMetadata],
        commence_time: datetime,
        is_first_snapshot: bool,
        now: Optional[datetime] = None,
    ) -> SnapshotType:
        """
        Snapshot type for a capture taken now. Priority order:

        1. first snapshot ever for the game -> opening
        2. game finished, or kickoff within the closing window -> closing
        3. kickoff already passed -> live_60s
        4. otherwise -> hourly
        """
        now = now or utcnow()
        time_until_game = _as_utc(commence_time) - now
        is_finished = metadata is not None and metadata.status == GameStatus.FINISHED.value

        if is_first_snapshot:
            return SnapshotType.OPENING

        if is_finished or (timedelta(0) < time_until_game <= self.closing_window):
            return SnapshotType.CLOSING

        if time_until_game <= timedelta(0):
            return SnapshotType.LIVE

        return SnapshotType.HOURLY

    async def record_snapshot(
        self,
        db: AsyncSession,
        game_id: str,
        snapshot_type: SnapshotType,
        timestamp: datetime,
        now: Optional[datetime] = None,
    ) -> GameMetadata:
        metadata = await self.get(db, game_id)
        if metadata is None:
            raise PersistenceError(game_id, "no game metadata to update")

        now = now or utcnow()
        metadata.last_snapshot_time = timestamp

        if snapshot_type == SnapshotType.OPENING:
            metadata.opening_line_captured = True
        elif snapshot_type == SnapshotType.CLOSING:
            metadata.closing_line_captured = True

        if metadata.status == GameStatus.SCHEDULED.value and _as_utc(metadata.commence_time) <= now:
            metadata.status = GameStatus.LIVE.value
            logger.info(f"Game {game_id} is now live")

        await db.flush()
        return metadata

    async def games_for_interval(
        self, db: AsyncSession, sport_key: str, now: Optional[datetime] = None
    ) -> List[Tuple[str, datetime]]:
        """(status, commence_time) of live games and games scheduled within the pre-game window."""
        now = now or utcnow()
        horizon = now + timedelta(hours=PREGAME_WINDOW_HOURS)

        result = await db.execute(
            select(GameMetadata.status, GameMetadata.commence_time).where(
                GameMetadata.sport_key == sport_key,
                or_(
                    GameMetadata.status == GameStatus.LIVE.value,
                    and_(
                        GameMetadata.status == GameStatus.SCHEDULED.value,
                        GameMetadata.commence_time <= horizon,
                    ),
                ),
            )
        )
        return [(status, _as_utc(commence_time)) for status, commence_time in result.all()]

    async def status_counts(self, db: AsyncSession, sport_key: Optional[str] = None) -> Dict[str, int]:
        stmt = select(GameMetadata.status, func.count()).group_by(GameMetadata.status)
        if sport_key:
            stmt = stmt.where(GameMetadata.sport_key == sport_key)
        result = await db.execute(stmt)
        return {status: count for status, count in result.all()}
