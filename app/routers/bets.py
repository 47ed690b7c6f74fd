from typing import List
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from app.api.deps import get_db, get_saved_bets_service
from app.core.security import get_api_key, get_current_user_id
from app.domain import schemas
from app.services.saved_bets import SavedBetsService

router = APIRouter(dependencies=[Depends(get_api_key)])

@router.get("/bets", response_model=List[schemas.SavedBetWithGame])
async def read_bets(
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    return await service.get_user_bets(db, user_id)

@router.post("/bets", response_model=schemas.SavedBetRead, status_code=201)
async def save_bet(
    bet_in: schemas.SavedBetCreate,
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    return await service.create_bet(db, user_id, bet_in)

@router.get("/bets/stats", response_model=schemas.BetStats)
async def read_bet_stats(
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    return await service.get_user_bet_stats(db, user_id)

@router.get("/bets/{bet_id}", response_model=schemas.SavedBetRead)
async def read_bet(
    bet_id: int,
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    bet = await service.get_bet(db, user_id, bet_id)
    if not bet:
        raise HTTPException(status_code=404, detail="Bet not found")
    return bet

@router.patch("/bets/{bet_id}", response_model=schemas.SavedBetRead)
async def update_bet(
    bet_id: int,
    bet_in: schemas.SavedBetUpdate,
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    bet = await service.update_bet(db, user_id, bet_id, bet_in)
    if not bet:
        raise HTTPException(status_code=404, detail="Bet not found")
    return bet

@router.delete("/bets/{bet_id}", status_code=204)
async def delete_bet(
    bet_id: int,
    user_id: str = Depends(get_current_user_id),
    service: SavedBetsService = Depends(get_saved_bets_service),
    db: AsyncSession = Depends(get_db)
):
    if not await service.delete_bet(db, user_id, bet_id):
        raise HTTPException(status_code=404, detail="Bet not found")
    return Response(status_code=204)
