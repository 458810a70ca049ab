"""Shared settings for the snapshot pipeline.

This module provides:
- Settings class with the run configuration
- Cached accessor that loads the Odds API key from the environment
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional
import os


class Settings:
    """Pipeline settings - treated as immutable once a run starts"""
    # Sport
    SPORT_PATH = "football"
    LEAGUE = "nfl"
    ODDS_SPORT_KEY = "americanfootball_nfl"
    SEASON: Optional[int] = None  # None = current calendar year

    # External APIs
    ESPN_CORE_API = "https://sports.core.api.espn.com/v2/sports"
    ODDS_API_BASE = "https://api.the-odds-api.com/v4"
    ODDS_API_KEY = ""
    FPI_URL = "https://www.espn.com/nfl/fpi/_/view/projections"

    # Storage
    DATA_DIR = Path(__file__).parent.parent / "data"
    SNAPSHOT_FILE = "predictions.json"

    # Extraction / fetching
    MIN_PROJECTION_RECORDS = 24  # most of a 32-team league
    MAX_CONCURRENT_FETCHES = 8
    HTTP_TIMEOUT = 15.0

    # Provenance strings written into the snapshot
    SOURCES = {
        "nextGame": "The Odds API (h2h)",
        "futures": "ESPN futures (auto-discovered)",
        "projections": "ESPN FPI projections page",
        "winTotals": "ESPN futures (win totals)",
    }

    def futures_index_url(self, season: int) -> str:
        return (
            f"{self.ESPN_CORE_API}/{self.SPORT_PATH}/leagues/{self.LEAGUE}"
            f"/seasons/{season}/futures"
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached Settings instance with the Odds API key loaded from environment."""
    settings = Settings()
    settings.ODDS_API_KEY = os.getenv("ODDS_API_KEY", "")
    return settings
