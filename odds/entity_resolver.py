"""
Entity (team) name resolution for ESPN core API references.

Futures outcomes point at teams through opaque `$ref` URLs. Resolving one
costs a remote call, so names are memoized in an EntityNameCache that is
created per pipeline run and passed explicitly to every lookup.
"""
import asyncio
import logging
import re
from typing import TYPE_CHECKING, Dict, Optional

import httpx

if TYPE_CHECKING:
    from snapshot.services.http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)

# Preferred display-name fields, most descriptive first
NAME_FIELDS = ("displayName", "name", "abbreviation")


def normalize_entity_name(name: Optional[str]) -> str:
    """Upper-case, trim and collapse internal whitespace."""
    return re.sub(r"\s+", " ", (name or "").upper()).strip()


class EntityNameCache:
    """Run-scoped reference → canonical name cache.

    Holds one asyncio.Lock per reference so that concurrent resolutions of
    the same reference issue a single fetch.
    """

    def __init__(self):
        self._names: Dict[str, str] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, reference: str) -> Optional[str]:
        return self._names.get(reference)

    def set(self, reference: str, name: str) -> None:
        self._names[reference] = name

    def lock_for(self, reference: str) -> asyncio.Lock:
        lock = self._locks.get(reference)
        if lock is None:
            lock = self._locks[reference] = asyncio.Lock()
        return lock


def extract_display_name(payload: dict) -> str:
    """Pick the first non-empty name field from a team payload."""
    if not isinstance(payload, dict):
        return ""
    for field in NAME_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value.strip():
            return normalize_entity_name(value)
    return ""


async def resolve_entity_name(
    reference: Optional[str],
    cache: EntityNameCache,
    http: "AsyncHTTPClient",
) -> Optional[str]:
    """Resolve a team reference to its canonical upper-case name.

    Returns the cached name without a remote call when present. On a miss
    the reference is fetched once; failures return None and are not cached
    so a later call can retry.
    """
    if not reference:
        return None

    cached = cache.get(reference)
    if cached is not None:
        return cached

    async with cache.lock_for(reference):
        cached = cache.get(reference)
        if cached is not None:
            return cached

        try:
            payload = await http.get_json(reference)
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("entity: failed to resolve %s: %s", reference, e)
            return None

        name = extract_display_name(payload)
        if not name:
            logger.debug("entity: no name fields in %s", reference)
            return None
        cache.set(reference, name)
        return name
