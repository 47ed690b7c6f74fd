from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_profile_service
from app.core.security import get_api_key, get_current_user_id
from app.domain import schemas
from app.services.user_profile import UserProfileService

router = APIRouter(dependencies=[Depends(get_api_key)])

@router.get("/profile", response_model=schemas.UserProfileRead)
async def read_profile(
    user_id: str = Depends(get_current_user_id),
    service: UserProfileService = Depends(get_profile_service),
    db: AsyncSession = Depends(get_db)
):
    return await service.get_or_create_profile(db, user_id)

@router.patch("/profile", response_model=schemas.UserProfileRead)
async def update_profile(
    profile_in: schemas.UserProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    service: UserProfileService = Depends(get_profile_service),
    db: AsyncSession = Depends(get_db)
):
    return await service.update_profile(db, user_id, profile_in)
