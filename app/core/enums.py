from enum import Enum

class SnapshotType(str, Enum):
    OPENING = "opening"    # First capture for a game
    HOURLY = "hourly"      # Pre-game, outside the closing window
    LIVE = "live_60s"      # Game underway
    CLOSING = "closing"    # Last pre-game capture (or finished game)

class GameStatus(str, Enum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"  # Set by the results process, never by the poller

class BetStatus(str, Enum):
    PENDING = "pending" # Initial state
    WON = "won"         # Result: Won
    LOST = "lost"       # Result: Lost
    VOID = "void"       # Result: Voided
