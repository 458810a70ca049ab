"""
Odds and projections module
- Moneyline → probability and vig removal
- Futures market classification
- ESPN futures auto-discovery (team markets)
- The Odds API next-game moneylines
- ESPN FPI projections scraping (see odds.fpi_scraper)
"""

from .devig import price_to_probability, devigorize, two_way_no_vig
from .classifier import OutcomeKind, classify_market, is_win_total_market
from .entity_resolver import EntityNameCache, resolve_entity_name, normalize_entity_name
from .espn_futures import (
    FuturesResult,
    discover_market_refs,
    fetch_espn_futures,
    merge_market_probs,
)
from .client import OddsAPIClient, next_game_probs

__all__ = [
    # Normalizer
    "price_to_probability",
    "devigorize",
    "two_way_no_vig",
    # Classifier
    "OutcomeKind",
    "classify_market",
    "is_win_total_market",
    # Entities
    "EntityNameCache",
    "resolve_entity_name",
    "normalize_entity_name",
    # Futures
    "FuturesResult",
    "discover_market_refs",
    "fetch_espn_futures",
    "merge_market_probs",
    # Next game
    "OddsAPIClient",
    "next_game_probs",
]
