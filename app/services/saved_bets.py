import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.enums import BetStatus
from app.domain.schemas import SavedBetCreate, SavedBetUpdate, SavedBetWithGame, GameMetadataRead, BetStats
from app.db.models import UserSavedBet
from app.repositories.saved_bets import SavedBetRepository
from app.services.game_lifecycle import GameLifecycleTracker

logger = logging.getLogger(__name__)

class SavedBetsService:
    def __init__(self, tracker: GameLifecycleTracker, repo: Optional[SavedBetRepository] = None):
        self.tracker = tracker
        self.repo = repo or SavedBetRepository()

    async def create_bet(self, db: AsyncSession, user_id: str, bet_in: SavedBetCreate) -> UserSavedBet:
        """
        Save a bet for a user. The game may not have been polled yet, in which
        case a placeholder metadata row is created in the same transaction.
        """
        try:
            await self.tracker.ensure_placeholder(db, bet_in.game_id, bet_in.sport_key)

            bet_data = bet_in.model_dump()
            bet_data["user_id"] = user_id
            bet_data["status"] = BetStatus.PENDING.value
            bet = await self.repo.create(db, obj_in=bet_data)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create bet for user {user_id} on game {bet_in.game_id}: {e}")
            raise

        logger.info(f"Bet {bet.id} saved for user {user_id} on game {bet_in.game_id}")
        return bet

    async def get_user_bets(self, db: AsyncSession, user_id: str) -> List[SavedBetWithGame]:
        rows = await self.repo.list_with_games(db, user_id)
        bets = []
        for bet, game in rows:
            item = SavedBetWithGame.model_validate(bet)
            if game is not None:
                item.game_info = GameMetadataRead.model_validate(game)
            bets.append(item)
        return bets

    async def get_user_bet_stats(self, db: AsyncSession, user_id: str) -> BetStats:
        counts = await self.repo.count_by_status(db, user_id)
        won = counts.get(BetStatus.WON.value, 0)
        lost = counts.get(BetStatus.LOST.value, 0)
        settled = won + lost
        win_rate = (won / settled) * 100 if settled else 0.0
        return BetStats(
            total=sum(counts.values()),
            pending=counts.get(BetStatus.PENDING.value, 0),
            won=won,
            lost=lost,
            win_rate=round(win_rate, 2),
        )

    async def get_bet(self, db: AsyncSession, user_id: str, bet_id: int) -> Optional[UserSavedBet]:
        return await self.repo.get_for_user(db, user_id, bet_id)

    async def update_bet(
        self, db: AsyncSession, user_id: str, bet_id: int, bet_in: SavedBetUpdate
    ) -> Optional[UserSavedBet]:
        bet = await self.repo.get_for_user(db, user_id, bet_id)
        if not bet:
            return None

        changes = bet_in.model_dump(exclude_unset=True)
        # A bet always has a status; an explicit null leaves it unchanged
        if changes.get("status") is None:
            changes.pop("status", None)
        else:
            changes["status"] = BetStatus(changes["status"]).value

        try:
            bet = await self.repo.update(db, db_obj=bet, obj_in=changes)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to update bet {bet_id} for user {user_id}: {e}")
            raise
        logger.info(f"Bet {bet_id} updated for user {user_id}: {sorted(changes)}")
        return bet

    async def delete_bet(self, db: AsyncSession, user_id: str, bet_id: int) -> bool:
        bet = await self.repo.get_for_user(db, user_id, bet_id)
        if not bet:
            return False
        await self.repo.delete(db, db_obj=bet)
        await db.commit()
        logger.info(f"Bet {bet_id} deleted for user {user_id}")
        return True
