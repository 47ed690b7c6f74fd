from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from app.core.enums import BetStatus, GameStatus

class GameMetadataRead(BaseModel):
    game_id: str
    sport_key: str
    sport_title: Optional[str] = None
    home_team: str
    away_team: str
    commence_time: datetime
    status: GameStatus
    opening_line_captured: bool
    closing_line_captured: bool
    last_snapshot_time: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class SavedBetBase(BaseModel):
    game_id: str = Field(min_length=1)
    sport_key: str = Field(min_length=1)
    bookmaker_key: str = Field(min_length=1)
    market_key: str = Field(min_length=1)
    outcome_name: str = Field(min_length=1)
    locked_price: float
    locked_point: Optional[float] = None
    notes: Optional[str] = None

class SavedBetCreate(SavedBetBase):
    pass

class SavedBetUpdate(BaseModel):
    edited_price: Optional[float] = None
    edited_point: Optional[float] = None
    notes: Optional[str] = None
    status: Optional[BetStatus] = None

class SavedBetRead(SavedBetBase):
    id: int
    user_id: str
    edited_price: Optional[float] = None
    edited_point: Optional[float] = None
    status: BetStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class SavedBetWithGame(SavedBetRead):
    game_info: Optional[GameMetadataRead] = None

class UserProfileUpdate(BaseModel):
    telegram_id: Optional[str] = None
    display_name: Optional[str] = None

class UserProfileRead(BaseModel):
    user_id: str
    telegram_id: Optional[str] = None
    display_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class BetStats(BaseModel):
    total: int
    pending: int
    won: int
    lost: int
    win_rate: float # Percent of settled (won + lost) bets, 2 decimals
