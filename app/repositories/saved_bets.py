from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from app.repositories.base import BaseRepository
from app.db.models import UserSavedBet, GameMetadata, UserProfile

class SavedBetRepository(BaseRepository[UserSavedBet]):
    def __init__(self):
        super().__init__(UserSavedBet)

    async def get_for_user(
        self, db: AsyncSession, user_id: str, bet_id: int
    ) -> Optional[UserSavedBet]:
        query = select(self.model).where(
            self.model.id == bet_id,
            self.model.user_id == user_id
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def list_with_games(
        self, db: AsyncSession, user_id: str
    ) -> List[Tuple[UserSavedBet, Optional[GameMetadata]]]:
        query = (
            select(self.model, GameMetadata)
            .outerjoin(GameMetadata, GameMetadata.game_id == self.model.game_id)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        result = await db.execute(query)
        return [(bet, game) for bet, game in result.all()]

    async def count_by_status(self, db: AsyncSession, user_id: str) -> Dict[str, int]:
        query = (
            select(self.model.status, func.count())
            .where(self.model.user_id == user_id)
            .group_by(self.model.status)
        )
        result = await db.execute(query)
        return {status: count for status, count in result.all()}

class UserProfileRepository(BaseRepository[UserProfile]):
    def __init__(self):
        super().__init__(UserProfile)

    async def get_by_user_id(self, db: AsyncSession, user_id: str) -> Optional[UserProfile]:
        result = await db.execute(select(self.model).where(self.model.user_id == user_id))
        return result.scalar_one_or_none()
