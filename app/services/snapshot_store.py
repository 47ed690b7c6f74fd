import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import ValidationError
from sqlalchemy import select, func, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from app.core.config import settings
from app.core.enums import SnapshotType
from app.core.exceptions import PersistenceError
from app.db.models import OddsSnapshot
from app.schemas.odds import OddsEvent, HistoricalSnapshot
from app.services.game_lifecycle import GameLifecycleTracker
from app.utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    saved: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.saved) + len(self.failed)


def _load_payload(raw: Any) -> OddsEvent:
    """Stored odds_data back into an event. Raises on malformed payloads."""
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    return OddsEvent.model_validate(raw)


class SnapshotStore:
    """
    Append-only odds history. Each save writes one immutable snapshot row for
    a game and updates the game's metadata in the same transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        tracker: GameLifecycleTracker,
        write_concurrency: int = settings.SNAPSHOT_WRITE_CONCURRENCY,
    ):
        self.session_factory = session_factory
        self.tracker = tracker
        self._write_slots = asyncio.Semaphore(write_concurrency)

    async def save(
        self,
        event: OddsEvent,
        snapshot_type: Optional[SnapshotType] = None,
        now: Optional[datetime] = None,
    ) -> SnapshotType:
        """Persist one snapshot. Returns the type it was stored as."""
        snapshot_time = now or utcnow()
        try:
            async with self._write_slots, self.session_factory() as db:
                async with db.begin():
                    metadata = await self.tracker.get_or_create(db, event, now=snapshot_time)

                    final_type = snapshot_type
                    if final_type is None:
                        is_first_snapshot = not metadata.opening_line_captured
                        final_type = self.tracker.classify(
                            metadata, event.commence_time, is_first_snapshot, now=snapshot_time
                        )

                    db.add(OddsSnapshot(
                        game_id=event.id,
                        sport_key=event.sport_key,
                        commence_time=ensure_utc(event.commence_time),
                        snapshot_type=final_type.value,
                        snapshot_timestamp=snapshot_time,
                        odds_data=event.to_document(),
                    ))
                    await self.tracker.record_snapshot(
                        db, event.id, final_type, snapshot_time, now=snapshot_time
                    )
        except PersistenceError:
            logger.error(f"Failed to save snapshot for {event.id}: no metadata row")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Failed to save snapshot for {event.id}: {e}")
            raise PersistenceError(event.id, str(e)) from e

        logger.debug(f"Snapshot saved for {event.id} ({event.sport_key}, {final_type.value})")
        return final_type

    async def save_batch(
        self,
        events: List[OddsEvent],
        snapshot_type: Optional[SnapshotType] = None,
        now: Optional[datetime] = None,
    ) -> BatchResult:
        """Save every event independently. Individual failures are collected, never raised."""
        outcomes = await asyncio.gather(
            *(self.save(event, snapshot_type, now=now) for event in events),
            return_exceptions=True,
        )

        batch = BatchResult()
        for event, outcome in zip(events, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                batch.failed[event.id] = str(outcome)
                logger.error(f"Failed to save snapshot in batch for {event.id}: {outcome}")
            else:
                batch.saved.append(event.id)

        logger.info(
            f"Batch snapshots saved: {len(batch.saved)}/{batch.total} "
            f"(type={snapshot_type.value if snapshot_type else 'auto'})"
        )
        return batch

    async def latest_per_game(self, sport_key: str) -> List[OddsEvent]:
        """Most recent stored payload for each game of a sport."""
        latest = (
            select(
                OddsSnapshot.game_id,
                func.max(OddsSnapshot.snapshot_timestamp).label("max_ts"),
            )
            .where(OddsSnapshot.sport_key == sport_key)
            .group_by(OddsSnapshot.game_id)
            .subquery()
        )
        stmt = (
            select(OddsSnapshot.id, OddsSnapshot.game_id, OddsSnapshot.odds_data)
            .join(
                latest,
                and_(
                    OddsSnapshot.game_id == latest.c.game_id,
                    OddsSnapshot.snapshot_timestamp == latest.c.max_ts,
                ),
            )
            .where(OddsSnapshot.sport_key == sport_key)
            # Equal timestamps: the later insert wins
            .order_by(OddsSnapshot.game_id, OddsSnapshot.id.desc())
        )

        async with self.session_factory() as db:
            rows = (await db.execute(stmt)).all()

        events: List[OddsEvent] = []
        seen = set()
        for row_id, game_id, odds_data in rows:
            if game_id in seen:
                continue
            seen.add(game_id)
            try:
                events.append(_load_payload(odds_data))
            except (ValidationError, ValueError) as e:
                logger.error(f"Skipping malformed snapshot {row_id} for game {game_id}: {e}")

        logger.info(f"Retrieved latest odds from database for {sport_key}: {len(events)} games")
        return events

    async def history(self, game_id: str, market_key: Optional[str] = None) -> List[HistoricalSnapshot]:
        """
        Every snapshot of a game, oldest first. `market_key` is only passed
        through for the caller's filtering; stored payloads hold all markets.
        """
        stmt = (
            select(OddsSnapshot)
            .where(OddsSnapshot.game_id == game_id)
            .order_by(OddsSnapshot.snapshot_timestamp.asc(), OddsSnapshot.id.asc())
        )
        async with self.session_factory() as db:
            snapshots = (await db.execute(stmt)).scalars().all()

        history: List[HistoricalSnapshot] = []
        for snapshot in snapshots:
            try:
                history.append(HistoricalSnapshot(
                    snapshot_timestamp=ensure_utc(snapshot.snapshot_timestamp),
                    snapshot_type=SnapshotType(snapshot.snapshot_type),
                    odds_data=_load_payload(snapshot.odds_data),
                ))
            except (ValidationError, ValueError) as e:
                logger.error(f"Skipping malformed snapshot {snapshot.id} for game {game_id}: {e}")

        logger.info(
            f"Retrieved {len(history)}/{len(snapshots)} historical snapshots for {game_id}"
            + (f" (market={market_key})" if market_key else "")
        )
        return history

    async def snapshot_summary(self, limit: int = 10) -> Dict[str, Any]:
        """Counts per snapshot type plus the most recent rows."""
        async with self.session_factory() as db:
            counts = await db.execute(
                select(OddsSnapshot.snapshot_type, func.count()).group_by(OddsSnapshot.snapshot_type)
            )
            recent = await db.execute(
                select(
                    OddsSnapshot.game_id,
                    OddsSnapshot.sport_key,
                    OddsSnapshot.snapshot_type,
                    OddsSnapshot.snapshot_timestamp,
                )
                .order_by(OddsSnapshot.snapshot_timestamp.desc(), OddsSnapshot.id.desc())
                .limit(limit)
            )
            return {
                "by_type": {snapshot_type: count for snapshot_type, count in counts.all()},
                "recent": [
                    {
                        "game_id": game_id,
                        "sport_key": sport_key,
                        "snapshot_type": snapshot_type,
                        "snapshot_timestamp": ensure_utc(ts),
                    }
                    for game_id, sport_key, snapshot_type, ts in recent.all()
                ],
            }
