"""
Shared fixtures: a throwaway SQLite database per test and a factory for
provider-shaped odds events.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.db.base import Base
import app.db.models  # noqa: F401
from app.schemas.odds import OddsEvent

NOW = datetime(2026, 10, 19, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _event(
    event_id: str = "evt_1",
    commence_time: Optional[datetime] = None,
    sport_key: str = "basketball_nba",
    home_price: float = -110,
    away_price: float = -110,
    home_team: str = "Boston Celtics",
    away_team: str = "New York Knicks",
) -> OddsEvent:
    commence_time = commence_time or NOW + timedelta(days=1)
    return OddsEvent.model_validate({
        "id": event_id,
        "sport_key": sport_key,
        "sport_title": "NBA",
        "commence_time": commence_time.isoformat(),
        "home_team": home_team,
        "away_team": away_team,
        "bookmakers": [
            {
                "key": "draftkings",
                "title": "DraftKings",
                "last_update": commence_time.isoformat(),
                "markets": [
                    {
                        "key": "h2h",
                        "outcomes": [
                            {"name": away_team, "price": away_price},
                            {"name": home_team, "price": home_price},
                        ],
                    },
                    {
                        "key": "totals",
                        "outcomes": [
                            {"name": "Over", "price": -105, "point": 221.5},
                            {"name": "Under", "price": -115, "point": 221.5},
                        ],
                    },
                ],
            }
        ],
    })


@pytest.fixture
def make_event():
    return _event
