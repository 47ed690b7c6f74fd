from datetime import timedelta

import pytest

from app.core.constants import PLACEHOLDER_TEAM
from app.core.enums import GameStatus, SnapshotType
from app.core.exceptions import PersistenceError
from app.db.models import GameMetadata
from app.services.game_lifecycle import GameLifecycleTracker


@pytest.fixture
def tracker():
    return GameLifecycleTracker()


def _metadata(status=GameStatus.SCHEDULED, opening=True):
    return GameMetadata(game_id="evt_1", status=status.value, opening_line_captured=opening)


def test_first_snapshot_is_always_opening(tracker, now):
    for offset in (timedelta(days=2), timedelta(minutes=3), timedelta(minutes=-30)):
        assert tracker.classify(None, now + offset, True, now=now) == SnapshotType.OPENING


def test_hourly_outside_closing_window(tracker, now):
    assert tracker.classify(_metadata(), now + timedelta(hours=2), False, now=now) == SnapshotType.HOURLY
    assert tracker.classify(_metadata(), now + timedelta(minutes=5, seconds=1), False, now=now) == SnapshotType.HOURLY


def test_closing_inside_window(tracker, now):
    assert tracker.classify(_metadata(), now + timedelta(minutes=5), False, now=now) == SnapshotType.CLOSING
    assert tracker.classify(_metadata(), now + timedelta(seconds=1), False, now=now) == SnapshotType.CLOSING


def test_live_once_game_started(tracker, now):
    assert tracker.classify(_metadata(GameStatus.LIVE), now, False, now=now) == SnapshotType.LIVE
    assert tracker.classify(_metadata(GameStatus.LIVE), now - timedelta(hours=1), False, now=now) == SnapshotType.LIVE


def test_finished_game_is_closing(tracker, now):
    metadata = _metadata(GameStatus.FINISHED)
    assert tracker.classify(metadata, now - timedelta(hours=3), False, now=now) == SnapshotType.CLOSING


def test_lifecycle_timeline(tracker, now):
    kickoff = now + timedelta(hours=4)
    steps = [
        (now, True, SnapshotType.OPENING),
        (now + timedelta(hours=1), False, SnapshotType.HOURLY),
        (kickoff - timedelta(minutes=4), False, SnapshotType.CLOSING),
        (kickoff + timedelta(minutes=10), False, SnapshotType.LIVE),
    ]
    for at, first, expected in steps:
        assert tracker.classify(_metadata(), kickoff, first, now=at) == expected


async def test_get_or_create_sets_status_from_kickoff(tracker, session_factory, make_event, now):
    async with session_factory() as db:
        upcoming = await tracker.get_or_create(db, make_event("evt_up", now + timedelta(hours=1)), now=now)
        started = await tracker.get_or_create(db, make_event("evt_live", now - timedelta(minutes=1)), now=now)
        await db.commit()

    assert upcoming.status == GameStatus.SCHEDULED.value
    assert started.status == GameStatus.LIVE.value
    assert upcoming.opening_line_captured is False


async def test_get_or_create_is_idempotent(tracker, session_factory, make_event, now):
    event = make_event("evt_1")
    async with session_factory() as db:
        first = await tracker.get_or_create(db, event, now=now)
        second = await tracker.get_or_create(db, event, now=now)
        await db.commit()

    assert first.id == second.id


async def test_placeholder_filled_by_first_poll(tracker, session_factory, make_event, now):
    async with session_factory() as db:
        placeholder = await tracker.ensure_placeholder(db, "evt_1", "basketball_nba")
        assert placeholder.home_team == PLACEHOLDER_TEAM
        await db.commit()

    event = make_event("evt_1", now + timedelta(hours=5))
    async with session_factory() as db:
        metadata = await tracker.get_or_create(db, event, now=now)
        await db.commit()

    assert metadata.home_team == "Boston Celtics"
    assert metadata.away_team == "New York Knicks"
    assert metadata.sport_title == "NBA"


async def test_record_snapshot_sets_flags(tracker, session_factory, make_event, now):
    event = make_event("evt_1", now + timedelta(hours=2))
    async with session_factory() as db:
        await tracker.get_or_create(db, event, now=now)
        metadata = await tracker.record_snapshot(db, "evt_1", SnapshotType.OPENING, now, now=now)
        assert metadata.opening_line_captured is True
        assert metadata.closing_line_captured is False

        metadata = await tracker.record_snapshot(db, "evt_1", SnapshotType.CLOSING, now, now=now)
        assert metadata.closing_line_captured is True
        assert metadata.last_snapshot_time == now
        await db.commit()


async def test_record_snapshot_moves_started_game_to_live(tracker, session_factory, make_event, now):
    event = make_event("evt_1", now + timedelta(minutes=30))
    async with session_factory() as db:
        metadata = await tracker.get_or_create(db, event, now=now)
        assert metadata.status == GameStatus.SCHEDULED.value

        later = now + timedelta(minutes=45)
        metadata = await tracker.record_snapshot(db, "evt_1", SnapshotType.LIVE, later, now=later)
        assert metadata.status == GameStatus.LIVE.value
        await db.commit()


async def test_record_snapshot_without_metadata_fails(tracker, session_factory, now):
    async with session_factory() as db:
        with pytest.raises(PersistenceError):
            await tracker.record_snapshot(db, "missing", SnapshotType.HOURLY, now, now=now)


async def test_games_for_interval_and_status_counts(tracker, session_factory, make_event, now):
    async with session_factory() as db:
        await tracker.get_or_create(db, make_event("soon", now + timedelta(hours=1)), now=now)
        await tracker.get_or_create(db, make_event("later", now + timedelta(days=2)), now=now)
        await tracker.get_or_create(db, make_event("live", now - timedelta(minutes=20)), now=now)
        await tracker.get_or_create(
            db, make_event("other_sport", now + timedelta(hours=1), sport_key="baseball_mlb"), now=now
        )
        await db.commit()

    async with session_factory() as db:
        games = await tracker.games_for_interval(db, "basketball_nba", now=now)
        counts = await tracker.status_counts(db)
        nba_counts = await tracker.status_counts(db, "basketball_nba")

    assert sorted(status for status, _ in games) == ["live", "scheduled"]
    assert all(commence.tzinfo is not None for _, commence in games)
    assert counts == {"scheduled": 3, "live": 1}
    assert nba_counts == {"scheduled": 2, "live": 1}
