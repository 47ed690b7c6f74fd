SPORTS = {
    "nfl": {"key": "americanfootball_nfl", "title": "NFL"},
    "nba": {"key": "basketball_nba", "title": "NBA"},
    "mlb": {"key": "baseball_mlb", "title": "MLB"},
    "nhl": {"key": "icehockey_nhl", "title": "NHL"},
    "college_football": {"key": "americanfootball_ncaaf", "title": "College Football"},
    "college_basketball": {"key": "basketball_ncaab", "title": "College Basketball"},
}

MARKETS = {
    "h2h": {"key": "h2h", "title": "Moneyline"},
    "spreads": {"key": "spreads", "title": "Spread"},
    "totals": {"key": "totals", "title": "Totals"},
}

DEFAULT_SPORT = SPORTS["nfl"]["key"]

# Poll cadences (seconds)
LIVE_POLL_INTERVAL = 60
PREGAME_POLL_INTERVAL = 120
IDLE_POLL_INTERVAL = 3600

# A scheduled game inside this window counts as pre-game activity
PREGAME_WINDOW_HOURS = 3

# Last snapshot before kickoff inside this window is the closing line
CLOSING_WINDOW_MINUTES = 5

PLACEHOLDER_TEAM = "Unknown Team"
