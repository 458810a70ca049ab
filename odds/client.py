"""
The Odds API Client
Next-game moneylines (h2h) → de-vigged win probability per team
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

import httpx

from .devig import price_to_probability, two_way_no_vig
from .entity_resolver import normalize_entity_name

if TYPE_CHECKING:
    from snapshot.deps import Settings
    from snapshot.services.http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)


class OddsAPIClient:
    """Client for The Odds API"""

    def __init__(self, http: "AsyncHTTPClient", settings: "Settings"):
        self.http = http
        self.settings = settings
        self.api_key = settings.ODDS_API_KEY
        self.requests_remaining = None
        self.requests_used = None

    def _update_quota(self, headers) -> None:
        """Track API quota from response headers"""
        self.requests_remaining = headers.get("x-requests-remaining")
        self.requests_used = headers.get("x-requests-used")

    async def get_odds(
        self,
        regions: str = "us",
        markets: str = "h2h",
        odds_format: str = "american",
    ) -> list[dict]:
        """
        Get upcoming events with prices for the configured sport.

        Args:
            regions: Comma-separated regions (us, uk, eu, au)
            markets: Comma-separated markets (h2h, spreads, totals)
            odds_format: american or decimal
        """
        params = {
            "apiKey": self.api_key,
            "regions": regions,
            "markets": markets,
            "oddsFormat": odds_format,
        }
        response = await self.http.get_response(
            f"{self.settings.ODDS_API_BASE}/sports/{self.settings.ODDS_SPORT_KEY}/odds",
            params=params,
        )
        self._update_quota(response.headers)
        return response.json()

    def get_quota(self) -> dict:
        """Get current API quota status"""
        return {
            "requests_remaining": self.requests_remaining,
            "requests_used": self.requests_used,
        }

    async def fetch_next_game_probs(self) -> List[Dict]:
        """De-vigged next-game win probability per team.

        Returns [] when no API key is configured or the feed is unreachable.
        """
        if not self.api_key:
            logger.info("odds_api: ODDS_API_KEY not set, skipping next-game odds")
            return []
        try:
            events = await self.get_odds()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"odds_api: h2h fetch failed: {e}")
            return []

        probs = next_game_probs(events if isinstance(events, list) else [])
        logger.info(
            f"odds_api: next-game probs for {len(probs)} teams "
            f"(quota remaining={self.requests_remaining})"
        )
        return probs


def _h2h_market(event: dict) -> Optional[dict]:
    """First bookmaker's h2h market only."""
    books = event.get("bookmakers") or []
    if not books or not isinstance(books[0], dict):
        return None
    for market in books[0].get("markets") or []:
        if isinstance(market, dict) and market.get("key") == "h2h":
            return market
    return None


def _outcome_price(market: dict, team: str):
    for outcome in market.get("outcomes") or []:
        if isinstance(outcome, dict) and normalize_entity_name(outcome.get("name")) == team:
            return outcome.get("price")
    return None


def next_game_probs(events: List[dict]) -> List[Dict]:
    """Fold h2h events into one entry per team.

    A team listed in several upcoming events keeps the last one seen.
    """
    by_team: Dict[str, Dict] = {}
    for event in events:
        if not isinstance(event, dict):
            continue
        market = _h2h_market(event)
        if market is None:
            continue
        home = normalize_entity_name(event.get("home_team"))
        away = normalize_entity_name(event.get("away_team"))
        if not home or not away:
            continue
        p_home = price_to_probability(_outcome_price(market, home))
        p_away = price_to_probability(_outcome_price(market, away))
        if p_home is None or p_away is None:
            continue
        n_home, n_away = two_way_no_vig(p_home, p_away)
        by_team[home] = {"entity": home, "impliedNextGameWinProb": n_home}
        by_team[away] = {"entity": away, "impliedNextGameWinProb": n_away}
    return list(by_team.values())
