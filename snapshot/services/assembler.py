"""Snapshot assembly and the full pipeline run.

One run:
1. Load the previous snapshot (cache fallback source)
2. Fetch next-game odds, ESPN futures and FPI projections concurrently
3. Assemble a new Snapshot and apply the cache fallback
4. Persist it atomically
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from odds.client import OddsAPIClient
from odds.entity_resolver import EntityNameCache
from odds.espn_futures import FuturesResult, fetch_espn_futures
from odds.fpi_scraper import ExtractionResult, fetch_fpi_projections
from snapshot.deps import Settings, get_settings
from snapshot.models import ProjectionRecord, Snapshot
from snapshot.services.http_client import AsyncHTTPClient
from snapshot.services.snapshot_cache import apply_cache_fallback
from snapshot.services.storage import StorageService

logger = logging.getLogger(__name__)


def build_snapshot(
    next_game: List[Dict],
    futures: Dict,
    projections: Dict[str, ProjectionRecord],
    win_totals: Dict[str, float],
    sources: Optional[Dict[str, str]] = None,
    generated_at: Optional[str] = None,
) -> Snapshot:
    """Compose the four sections into one Snapshot document."""
    return Snapshot(
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(),
        sources=dict(sources if sources is not None else Settings.SOURCES),
        next_game=next_game,
        futures=futures,
        projections=projections,
        win_totals=win_totals,
    )


async def _gather_sources(http: AsyncHTTPClient, settings: Settings):
    odds_client = OddsAPIClient(http, settings)
    results = await asyncio.gather(
        odds_client.fetch_next_game_probs(),
        fetch_espn_futures(http, settings, EntityNameCache()),
        fetch_fpi_projections(http, settings),
        return_exceptions=True,
    )
    labels = ("nextGame", "futures", "projections")
    defaults = ([], FuturesResult(), ExtractionResult())
    resolved = []
    for label, result, default in zip(labels, results, defaults):
        if isinstance(result, Exception):
            logger.warning(f"pipeline: {label} source failed: {type(result).__name__}: {result}")
            result = default
        resolved.append(result)
    return resolved


async def run_pipeline(
    settings: Optional[Settings] = None,
    http: Optional[AsyncHTTPClient] = None,
    storage: Optional[StorageService] = None,
) -> Snapshot:
    """Run every source once and write the resulting snapshot.

    Source failures only empty their own section; the previous snapshot
    then fills that section in. A storage write failure propagates.
    """
    settings = settings or get_settings()
    storage = storage or StorageService(settings.DATA_DIR)
    own_http = http is None
    http = http or AsyncHTTPClient(timeout=settings.HTTP_TIMEOUT)

    previous = await storage.load_snapshot(settings.SNAPSHOT_FILE)
    try:
        next_game, futures, fpi = await _gather_sources(http, settings)
    finally:
        if own_http:
            await http.close()

    current = build_snapshot(
        next_game=next_game,
        futures=futures.futures,
        projections=fpi.records,
        win_totals=futures.win_totals,
        sources=settings.SOURCES,
    )
    snapshot = apply_cache_fallback(current, previous)
    await storage.save_snapshot(settings.SNAPSHOT_FILE, snapshot)

    logger.info(
        "pipeline: wrote %s nextGame=%d futures=%d projections=%d winTotals=%d carried=%s",
        settings.SNAPSHOT_FILE,
        len(snapshot.next_game), len(snapshot.futures),
        len(snapshot.projections), len(snapshot.win_totals),
        snapshot.carried_forward or "-",
    )
    return snapshot
