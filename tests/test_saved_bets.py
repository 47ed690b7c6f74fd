from datetime import timedelta

import pytest

from app.core.constants import PLACEHOLDER_TEAM
from app.core.enums import BetStatus
from app.domain.schemas import SavedBetCreate, SavedBetUpdate, UserProfileUpdate
from app.services.game_lifecycle import GameLifecycleTracker
from app.services.saved_bets import SavedBetsService
from app.services.snapshot_store import SnapshotStore
from app.services.user_profile import UserProfileService


@pytest.fixture
def tracker():
    return GameLifecycleTracker()


@pytest.fixture
def service(tracker):
    return SavedBetsService(tracker)


def _bet(game_id="evt_1", **overrides):
    data = {
        "game_id": game_id,
        "sport_key": "basketball_nba",
        "bookmaker_key": "draftkings",
        "market_key": "h2h",
        "outcome_name": "Boston Celtics",
        "locked_price": -110,
    }
    data.update(overrides)
    return SavedBetCreate(**data)


async def test_bet_on_unpolled_game_creates_placeholder(service, tracker, session_factory):
    async with session_factory() as db:
        bet = await service.create_bet(db, "user_1", _bet("evt_unknown"))
        assert bet.status == BetStatus.PENDING.value

    async with session_factory() as db:
        bets = await service.get_user_bets(db, "user_1")
        game = await tracker.get(db, "evt_unknown")

    assert game.home_team == PLACEHOLDER_TEAM
    assert len(bets) == 1
    assert bets[0].game_info.game_id == "evt_unknown"


async def test_bet_list_carries_polled_game_info(service, tracker, session_factory, make_event, now):
    store = SnapshotStore(session_factory, tracker)
    await store.save(make_event("evt_1", now + timedelta(hours=2)), now=now)

    async with session_factory() as db:
        await service.create_bet(db, "user_1", _bet("evt_1"))
        await service.create_bet(db, "user_2", _bet("evt_1", outcome_name="New York Knicks"))

    async with session_factory() as db:
        bets = await service.get_user_bets(db, "user_1")

    assert len(bets) == 1
    assert bets[0].game_info.home_team == "Boston Celtics"
    assert bets[0].game_info.opening_line_captured is True


async def test_bets_are_scoped_to_their_owner(service, session_factory):
    async with session_factory() as db:
        bet = await service.create_bet(db, "user_1", _bet())

    async with session_factory() as db:
        assert await service.get_bet(db, "user_2", bet.id) is None
        assert await service.update_bet(db, "user_2", bet.id, SavedBetUpdate(notes="mine now")) is None
        assert await service.delete_bet(db, "user_2", bet.id) is False
        assert await service.get_bet(db, "user_1", bet.id) is not None


async def test_update_and_delete_bet(service, session_factory):
    async with session_factory() as db:
        bet = await service.create_bet(db, "user_1", _bet())

    async with session_factory() as db:
        updated = await service.update_bet(
            db, "user_1", bet.id, SavedBetUpdate(edited_price=-105, status=BetStatus.WON)
        )
        assert updated.edited_price == -105
        assert updated.status == BetStatus.WON.value
        assert updated.locked_price == -110

    async with session_factory() as db:
        assert await service.delete_bet(db, "user_1", bet.id) is True
        assert await service.get_user_bets(db, "user_1") == []


async def test_profile_created_on_first_read_and_updated(session_factory):
    profiles = UserProfileService()

    async with session_factory() as db:
        profile = await profiles.get_or_create_profile(db, "user_1")
        assert profile.display_name is None

    async with session_factory() as db:
        profile = await profiles.update_profile(db, "user_1", UserProfileUpdate(display_name="Sharp"))
        assert profile.display_name == "Sharp"

    async with session_factory() as db:
        again = await profiles.get_or_create_profile(db, "user_1")
        assert again.id == profile.id
        assert again.display_name == "Sharp"


async def test_bet_stats_count_by_status(service, session_factory):
    async with session_factory() as db:
        bets = [await service.create_bet(db, "user_1", _bet(f"evt_{i}")) for i in range(5)]
        await service.create_bet(db, "user_2", _bet("evt_other"))

    settled = [BetStatus.WON, BetStatus.WON, BetStatus.LOST, BetStatus.VOID]
    async with session_factory() as db:
        for bet, status in zip(bets, settled):
            await service.update_bet(db, "user_1", bet.id, SavedBetUpdate(status=status))

    async with session_factory() as db:
        stats = await service.get_user_bet_stats(db, "user_1")

    assert (stats.total, stats.pending, stats.won, stats.lost) == (5, 1, 2, 1)
    assert stats.win_rate == 66.67


async def test_bet_stats_without_settled_bets(service, session_factory):
    async with session_factory() as db:
        await service.create_bet(db, "user_1", _bet())
        stats = await service.get_user_bet_stats(db, "user_1")

    assert stats.total == 1
    assert stats.win_rate == 0.0


async def test_null_status_update_is_ignored(service, session_factory):
    async with session_factory() as db:
        bet = await service.create_bet(db, "user_1", _bet())

    async with session_factory() as db:
        updated = await service.update_bet(db, "user_1", bet.id, SavedBetUpdate(status=None, notes="hold"))

    assert updated.status == BetStatus.PENDING.value
    assert updated.notes == "hold"
