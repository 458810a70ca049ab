"""
ESPN Futures Pipeline
Auto-discovers every futures market ESPN publishes for a season, keeps the
team markets, classifies them and folds de-vigged probabilities into one
per-team record. Free core API, no key required.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import httpx

from .classifier import OutcomeKind, classify_market, is_win_total_market
from .devig import devigorize, price_to_probability
from .entity_resolver import EntityNameCache, resolve_entity_name

if TYPE_CHECKING:
    from snapshot.deps import Settings
    from snapshot.services.http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)

FuturesRecord = Dict[str, Dict[OutcomeKind, float]]

INDEX_PAGE_LIMIT = 1000
LINE_FIELDS = ("line", "total", "points", "handicap")


@dataclass
class FuturesMarket:
    ref: str
    title: str
    outcomes: List[dict]  # priced outcomes of the chosen line
    lines: List[dict] = field(default_factory=list)

    @property
    def team_only(self) -> bool:
        return bool(self.outcomes) and all(_team_ref(o) for o in self.outcomes)


@dataclass
class MarketOutcome:
    ref: str
    kind: Optional[OutcomeKind] = None
    probs: Dict[str, float] = field(default_factory=dict)
    win_totals: Dict[str, float] = field(default_factory=dict)


@dataclass
class FuturesResult:
    futures: FuturesRecord = field(default_factory=dict)
    win_totals: Dict[str, float] = field(default_factory=dict)
    markets_seen: int = 0
    markets_used: int = 0


# ============================================================================
# Discovery
# ============================================================================

def current_season(settings: "Settings") -> int:
    return settings.SEASON or datetime.now().year


async def _fetch_index(http: "AsyncHTTPClient", url: str) -> List[str]:
    try:
        data = await http.get_json(url, params={"limit": INDEX_PAGE_LIMIT})
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("futures: index unreachable %s: %s", url, e)
        return []
    if not isinstance(data, dict):
        return []
    items = data.get("items") or data.get("entries") or []
    return [x["$ref"] for x in items if isinstance(x, dict) and x.get("$ref")]


async def discover_market_refs(
    http: "AsyncHTTPClient",
    settings: "Settings",
    season: Optional[int] = None,
) -> List[str]:
    """List market references for a season.

    Seasons roll over around the new year, so an empty or unreachable index
    is retried once against the prior season.
    """
    season = season or current_season(settings)
    refs = await _fetch_index(http, settings.futures_index_url(season))
    if refs:
        return refs
    logger.info("futures: no markets for %d, trying %d", season, season - 1)
    return await _fetch_index(http, settings.futures_index_url(season - 1))


# ============================================================================
# Market parsing
# ============================================================================

def _team_ref(outcome: dict) -> Optional[str]:
    team = outcome.get("team")
    return team.get("$ref") if isinstance(team, dict) else None


def extract_price(outcome: dict) -> Any:
    """Moneyline price of one outcome; field names vary by API revision."""
    price = outcome.get("price")
    if isinstance(price, dict):
        if price.get("american") is not None:
            return price["american"]
    elif price is not None:
        return price
    if outcome.get("oddsAmerican") is not None:
        return outcome["oddsAmerican"]
    odds = outcome.get("odds")
    if isinstance(odds, dict) and odds.get("american") is not None:
        return odds["american"]
    return outcome.get("value")


def extract_line(outcome: dict) -> Optional[float]:
    for name in LINE_FIELDS:
        value = outcome.get(name)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def priced_outcomes(line: dict) -> List[dict]:
    books = line.get("books") if isinstance(line, dict) else None
    if not isinstance(books, list):
        return []
    return [
        b for b in books
        if isinstance(b, dict) and price_to_probability(extract_price(b)) is not None
    ]


def choose_line(lines: List[dict]) -> List[dict]:
    """Priced outcomes of the line with the most of them (first on ties)."""
    best: List[dict] = []
    for line in lines:
        priced = priced_outcomes(line)
        if len(priced) > len(best):
            best = priced
    return best


def parse_market(ref: str, data: dict) -> FuturesMarket:
    title = data.get("name") or data.get("title") or ""
    lines = data.get("futures") if isinstance(data.get("futures"), list) else []
    return FuturesMarket(ref=ref, title=title, outcomes=choose_line(lines), lines=lines)


async def fetch_market(http: "AsyncHTTPClient", ref: str) -> FuturesMarket:
    data = await http.get_json(ref)
    if not isinstance(data, dict):
        raise ValueError(f"market payload is not an object: {ref}")
    return parse_market(ref, data)


# ============================================================================
# Extraction
# ============================================================================

async def extract_team_probs(
    market: FuturesMarket,
    cache: EntityNameCache,
    http: "AsyncHTTPClient",
) -> Dict[str, float]:
    """De-vigged probability per team for one market.

    Duplicate listings of a team within the line keep the highest raw
    probability before de-vig.
    """
    raw: Dict[str, float] = {}
    for outcome in market.outcomes:
        team = await resolve_entity_name(_team_ref(outcome), cache, http)
        p = price_to_probability(extract_price(outcome))
        if team and p is not None:
            raw[team] = max(raw.get(team, 0.0), p)
    return devigorize(raw)


async def extract_win_totals(
    market: FuturesMarket,
    cache: EntityNameCache,
    http: "AsyncHTTPClient",
) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for line in market.lines:
        books = line.get("books") if isinstance(line, dict) else None
        for outcome in books if isinstance(books, list) else []:
            if not isinstance(outcome, dict) or not _team_ref(outcome):
                continue
            value = extract_line(outcome)
            if value is None:
                continue
            team = await resolve_entity_name(_team_ref(outcome), cache, http)
            if team and team not in totals:
                totals[team] = value
    return totals


def merge_market_probs(
    record: FuturesRecord,
    kind: OutcomeKind,
    probs: Dict[str, float],
) -> FuturesRecord:
    """Fold one market into the record, keeping the max per (team, kind).

    Returns a new record; the input is left untouched.
    """
    merged = {team: dict(kinds) for team, kinds in record.items()}
    for team, p in probs.items():
        kinds = merged.setdefault(team, {})
        if kind not in kinds or p > kinds[kind]:
            kinds[kind] = p
    return merged


# ============================================================================
# Pipeline
# ============================================================================

async def process_market(
    ref: str,
    http: "AsyncHTTPClient",
    cache: EntityNameCache,
    semaphore: asyncio.Semaphore,
) -> MarketOutcome:
    """FetchMarket → Classify → ExtractProbabilities for one reference."""
    async with semaphore:
        market = await fetch_market(http, ref)

    if is_win_total_market(market.title):
        totals = await extract_win_totals(market, cache, http)
        logger.debug("futures: %r win totals for %d teams", market.title, len(totals))
        return MarketOutcome(ref=ref, win_totals=totals)

    if not market.outcomes:
        logger.debug("futures: %r has no priced outcomes", market.title)
        return MarketOutcome(ref=ref)
    if not market.team_only:
        logger.debug("futures: %r is not a team market", market.title)
        return MarketOutcome(ref=ref)

    kind = classify_market(market.title, len(market.outcomes))
    if kind is None:
        logger.debug("futures: %r (%d outcomes) unclassified", market.title, len(market.outcomes))
        return MarketOutcome(ref=ref)

    probs = await extract_team_probs(market, cache, http)
    return MarketOutcome(ref=ref, kind=kind, probs=probs)


async def fetch_espn_futures(
    http: "AsyncHTTPClient",
    settings: "Settings",
    cache: Optional[EntityNameCache] = None,
) -> FuturesResult:
    """Run discovery and every market; never raises for a single bad market."""
    cache = cache if cache is not None else EntityNameCache()
    refs = await discover_market_refs(http, settings)
    if not refs:
        logger.warning("futures: no market references discovered")
        return FuturesResult()

    semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_FETCHES)
    results = await asyncio.gather(
        *(process_market(ref, http, cache, semaphore) for ref in refs),
        return_exceptions=True,
    )

    futures: FuturesRecord = {}
    win_totals: Dict[str, float] = {}
    used = 0
    for ref, result in zip(refs, results):
        if isinstance(result, BaseException):
            logger.warning("futures: skipping market %s: %s: %s", ref, type(result).__name__, result)
            continue
        if result.kind is not None and result.probs:
            futures = merge_market_probs(futures, result.kind, result.probs)
            used += 1
        for team, value in result.win_totals.items():
            win_totals.setdefault(team, value)

    logger.info(
        "futures: markets=%d used=%d teams=%d win_totals=%d",
        len(refs), used, len(futures), len(win_totals),
    )
    return FuturesResult(
        futures=futures, win_totals=win_totals,
        markets_seen=len(refs), markets_used=used,
    )
