from typing import Optional
from datetime import datetime
from sqlalchemy import String, Boolean, Integer, Float, JSON, DateTime, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base, TimestampMixin
from app.core.enums import GameStatus, BetStatus

class GameMetadata(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[str] = mapped_column(String, unique=True, index=True) # The-Odds-API Event ID
    sport_key: Mapped[str] = mapped_column(String, index=True)
    sport_title: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    home_team: Mapped[str] = mapped_column(String)
    away_team: Mapped[str] = mapped_column(String)
    commence_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    status: Mapped[str] = mapped_column(String, default=GameStatus.SCHEDULED.value) # See GameStatus enum: scheduled, live, finished
    opening_line_captured: Mapped[bool] = mapped_column(Boolean, default=False)
    closing_line_captured: Mapped[bool] = mapped_column(Boolean, default=False)
    last_snapshot_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_game_metadata_sport_status', 'sport_key', 'status'),
    )

class OddsSnapshot(Base):
    __tablename__ = "odds_snapshots"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    game_id: Mapped[str] = mapped_column(String, index=True)
    sport_key: Mapped[str] = mapped_column(String, index=True)
    commence_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    snapshot_type: Mapped[str] = mapped_column(String) # See SnapshotType enum: opening, hourly, live_60s, closing
    snapshot_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Full event payload as delivered by the provider
    odds_data: Mapped[dict] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('ix_odds_snapshots_game_timestamp', 'game_id', 'snapshot_timestamp'),
        Index('ix_odds_snapshots_sport_timestamp', 'sport_key', 'snapshot_timestamp'),
    )

class UserSavedBet(Base, TimestampMixin):
    __tablename__ = "user_saved_bets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, index=True)
    # No foreign key: a bet may reference a game that has not been polled yet
    game_id: Mapped[str] = mapped_column(String, index=True)
    sport_key: Mapped[str] = mapped_column(String)

    bookmaker_key: Mapped[str] = mapped_column(String)
    market_key: Mapped[str] = mapped_column(String)
    outcome_name: Mapped[str] = mapped_column(String)

    locked_price: Mapped[float] = mapped_column(Float)
    locked_point: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    edited_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    edited_point: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default=BetStatus.PENDING.value) # See BetStatus enum: pending, won, lost, void

class UserProfile(Base, TimestampMixin):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    telegram_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
