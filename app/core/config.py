from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Odds Snapshot Hub"
    API_V1_STR: str = "/api"
    ENVIRONMENT: str = "production"

    @property
    def is_dev(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    # Security
    API_ACCESS_KEY: Optional[str] = None

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./odds_hub.db"

    # External APIs
    ODDS_API_KEY: str = "changeme"
    ODDS_API_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_API_BOOKMAKERS: str = "draftkings,fanduel,betmgm,espnbet,pointsbetus,caesars,bet365"
    ODDS_API_MARKETS: str = "h2h,spreads,totals"
    ODDS_API_ODDS_FORMAT: str = "american"

    # Upstream retry policy
    UPSTREAM_TIMEOUT_SECONDS: float = 20.0
    UPSTREAM_MAX_ATTEMPTS: int = 3
    UPSTREAM_BASE_DELAY_SECONDS: float = 1.0

    # Cache
    CACHE_TTL_SECONDS: int = 300
    CACHE_STALE_SECONDS: int = 60
    CACHE_MAX_KEYS: int = 100

    # SQLite allows a single writer
    SNAPSHOT_WRITE_CONCURRENCY: int = 1

    # Read path
    READ_TIMEOUT_SECONDS: float = 30.0

    # Logging
    LOG_LEVEL: str = "WARNING"

    # Scheduler
    POLLER_ENABLED: bool = True
    POLLER_SPORTS: List[str] = ["americanfootball_nfl", "basketball_nba", "baseball_mlb"]
    POLLER_EVALUATE_MINUTES: int = 5

    # Server
    PORT: int = 8123

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @field_validator("PORT")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError(f"Invalid PORT: {v}. Must be between 1 and 65535")
        return v

    @field_validator("CACHE_TTL_SECONDS", "CACHE_STALE_SECONDS")
    @classmethod
    def validate_cache_seconds(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Invalid cache window: {v}. Must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_stale_window(self):
        if self.CACHE_STALE_SECONDS > self.CACHE_TTL_SECONDS:
            raise ValueError("CACHE_STALE_SECONDS must not exceed CACHE_TTL_SECONDS")
        if self.UPSTREAM_MAX_ATTEMPTS < 1:
            raise ValueError("UPSTREAM_MAX_ATTEMPTS must be at least 1")
        if self.SNAPSHOT_WRITE_CONCURRENCY < 1:
            raise ValueError("SNAPSHOT_WRITE_CONCURRENCY must be at least 1")
        return self

settings = Settings()
