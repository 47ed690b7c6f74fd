from typing import List, Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from app.core.enums import SnapshotType

class OddsOutcome(BaseModel):
    name: str
    price: float
    point: Optional[float] = None # Spread or total line

class OddsMarket(BaseModel):
    key: str # h2h, spreads, totals
    last_update: Optional[datetime] = None
    # Order matters for two-sided markets: [away|over, home|under]
    outcomes: List[OddsOutcome] = []

class OddsBookmaker(BaseModel):
    key: str
    title: str
    last_update: Optional[datetime] = None
    markets: List[OddsMarket] = []

class OddsEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str  # Provider-assigned event ID
    sport_key: str
    sport_title: Optional[str] = None
    commence_time: datetime
    home_team: str
    away_team: str
    bookmakers: List[OddsBookmaker] = []

    def to_document(self) -> Dict[str, Any]:
        """Serialized payload stored with every snapshot."""
        return self.model_dump(mode="json")

    def only_market(self, market_key: str) -> "OddsEvent":
        """Copy of the event keeping only one market per bookmaker."""
        bookmakers = []
        for bookmaker in self.bookmakers:
            markets = [m for m in bookmaker.markets if m.key == market_key]
            if markets:
                bookmakers.append(bookmaker.model_copy(update={"markets": markets}))
        return self.model_copy(update={"bookmakers": bookmakers})

class HistoricalSnapshot(BaseModel):
    snapshot_timestamp: datetime
    snapshot_type: SnapshotType
    odds_data: OddsEvent

class OddsResponse(BaseModel):
    data: List[OddsEvent]
    stale: bool = False
    source: str = "cache" # cache, upstream, database

class HistoryResponse(BaseModel):
    game_id: str
    market: Optional[str] = None
    snapshots: List[HistoricalSnapshot]

class PollerStatus(BaseModel):
    sport_key: str
    interval_seconds: Optional[int] = None
    next_run_time: Optional[datetime] = None

class OddsStatusResponse(BaseModel):
    cache: Dict[str, Any]
    pending_fetches: List[str]
    api_usage: Dict[str, Any]
    poller: List[PollerStatus]
    games_by_status: Dict[str, int]
