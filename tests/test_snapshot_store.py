from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.enums import GameStatus, SnapshotType
from app.core.exceptions import PersistenceError
from app.db.models import GameMetadata, OddsSnapshot
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.snapshot_store import SnapshotStore


@pytest.fixture
def store(session_factory):
    return SnapshotStore(session_factory, GameLifecycleTracker())


async def _rows(session_factory, model):
    async with session_factory() as db:
        return (await db.execute(select(model).order_by(model.id))).scalars().all()


async def test_first_save_is_opening_then_classified(store, session_factory, make_event, now):
    event = make_event("evt_1", now + timedelta(hours=3))

    assert await store.save(event, now=now) == SnapshotType.OPENING
    assert await store.save(event, now=now + timedelta(hours=1)) == SnapshotType.HOURLY
    assert await store.save(event, now=now + timedelta(hours=2, minutes=57)) == SnapshotType.CLOSING
    assert await store.save(event, now=now + timedelta(hours=4)) == SnapshotType.LIVE

    snapshots = await _rows(session_factory, OddsSnapshot)
    assert [s.snapshot_type for s in snapshots] == ["opening", "hourly", "closing", "live_60s"]

    games = await _rows(session_factory, GameMetadata)
    assert len(games) == 1
    game = games[0]
    assert game.opening_line_captured is True
    assert game.closing_line_captured is True
    assert game.status == GameStatus.LIVE.value


async def test_explicit_type_is_respected(store, session_factory, make_event, now):
    event = make_event("evt_1", now + timedelta(days=1))

    assert await store.save(event, SnapshotType.HOURLY, now=now) == SnapshotType.HOURLY

    games = await _rows(session_factory, GameMetadata)
    assert games[0].opening_line_captured is False


async def test_save_stores_full_payload(store, session_factory, make_event, now):
    event = make_event("evt_1")
    await store.save(event, now=now)

    snapshot = (await _rows(session_factory, OddsSnapshot))[0]
    assert snapshot.odds_data == event.to_document()
    assert snapshot.sport_key == "basketball_nba"


async def test_batch_isolates_failures(store, session_factory, make_event, now, monkeypatch):
    events = [make_event("evt_1"), make_event("evt_bad"), make_event("evt_3")]
    original_save = store.save

    async def flaky_save(event, snapshot_type=None, now=None):
        if event.id == "evt_bad":
            raise PersistenceError(event.id, "disk full")
        return await original_save(event, snapshot_type, now=now)

    monkeypatch.setattr(store, "save", flaky_save)

    result = await store.save_batch(events, now=now)

    assert sorted(result.saved) == ["evt_1", "evt_3"]
    assert list(result.failed) == ["evt_bad"]
    assert result.total == 3
    assert len(await _rows(session_factory, OddsSnapshot)) == 2


async def test_batch_of_nothing(store):
    result = await store.save_batch([])
    assert result.total == 0


async def test_latest_per_game_returns_newest_payload(store, make_event, now):
    await store.save(make_event("evt_1", home_price=-110), now=now)
    await store.save(make_event("evt_1", home_price=-150), now=now + timedelta(minutes=1))
    await store.save(make_event("evt_2", home_price=120), now=now)
    await store.save(make_event("evt_mlb", sport_key="baseball_mlb"), now=now)

    latest = {e.id: e for e in await store.latest_per_game("basketball_nba")}

    assert sorted(latest) == ["evt_1", "evt_2"]
    h2h = latest["evt_1"].bookmakers[0].markets[0]
    assert h2h.outcomes[1].price == -150


async def test_latest_per_game_breaks_timestamp_ties_by_insert_order(store, make_event, now):
    await store.save(make_event("evt_1", home_price=-110), now=now)
    await store.save(make_event("evt_1", home_price=-125), now=now)

    latest = await store.latest_per_game("basketball_nba")

    assert len(latest) == 1
    assert latest[0].bookmakers[0].markets[0].outcomes[1].price == -125


async def test_latest_per_game_empty(store):
    assert await store.latest_per_game("icehockey_nhl") == []


async def test_history_is_chronological(store, make_event, now):
    event = make_event("evt_1", now + timedelta(hours=6))
    for minutes in (0, 60, 120):
        await store.save(event, now=now + timedelta(minutes=minutes))

    history = await store.history("evt_1")

    assert [h.snapshot_type for h in history] == [SnapshotType.OPENING, SnapshotType.HOURLY, SnapshotType.HOURLY]
    timestamps = [h.snapshot_timestamp for h in history]
    assert timestamps == sorted(timestamps)
    assert timestamps[0] == now


async def test_history_skips_malformed_rows(store, session_factory, make_event, now):
    await store.save(make_event("evt_1"), now=now)
    async with session_factory() as db:
        db.add(OddsSnapshot(
            game_id="evt_1",
            sport_key="basketball_nba",
            commence_time=now,
            snapshot_type="hourly",
            snapshot_timestamp=now + timedelta(minutes=5),
            odds_data={"unexpected": True},
        ))
        await db.commit()

    history = await store.history("evt_1")

    assert len(history) == 1


async def test_snapshot_summary(store, make_event, now):
    await store.save(make_event("evt_1"), now=now)
    await store.save(make_event("evt_1"), now=now + timedelta(minutes=1))

    summary = await store.snapshot_summary(limit=1)

    assert summary["by_type"] == {"opening": 1, "hourly": 1}
    assert len(summary["recent"]) == 1
    assert summary["recent"][0]["snapshot_type"] == "hourly"


async def test_latest_per_game_skips_malformed_newest_row(store, session_factory, make_event, now):
    await store.save(make_event("evt_1"), now=now)
    await store.save(make_event("evt_2"), now=now)
    async with session_factory() as db:
        db.add(OddsSnapshot(
            game_id="evt_2",
            sport_key="basketball_nba",
            commence_time=now,
            snapshot_type="hourly",
            snapshot_timestamp=now + timedelta(minutes=5),
            odds_data={"bookmakers": "not a list"},
        ))
        await db.commit()

    latest = await store.latest_per_game("basketball_nba")

    assert [e.id for e in latest] == ["evt_1"]
