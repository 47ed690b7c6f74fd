import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from app.db.models import UserProfile
from app.domain.schemas import UserProfileUpdate
from app.repositories.saved_bets import UserProfileRepository

logger = logging.getLogger(__name__)

class UserProfileService:
    def __init__(self, repo: Optional[UserProfileRepository] = None):
        self.repo = repo or UserProfileRepository()

    async def get_or_create_profile(self, db: AsyncSession, user_id: str) -> UserProfile:
        profile = await self.repo.get_by_user_id(db, user_id)
        if profile:
            return profile

        profile = await self.repo.create(db, obj_in={"user_id": user_id})
        await db.commit()
        logger.info(f"User profile created for {user_id}")
        return profile

    async def update_profile(self, db: AsyncSession, user_id: str, profile_in: UserProfileUpdate) -> UserProfile:
        profile = await self.get_or_create_profile(db, user_id)
        profile = await self.repo.update(db, db_obj=profile, obj_in=profile_in.model_dump(exclude_unset=True))
        await db.commit()
        return profile
