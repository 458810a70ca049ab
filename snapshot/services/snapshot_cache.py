"""Last-known-good fallback between consecutive snapshots.

A section that came back empty this run is replaced by the previous run's
value when that one was non-empty. Sections are handled independently.
"""
import logging
from typing import Optional

from snapshot.models import SECTIONS, Snapshot, section_field

logger = logging.getLogger(__name__)


def apply_cache_fallback(current: Snapshot, previous: Optional[Snapshot]) -> Snapshot:
    """Return a new Snapshot with empty sections carried forward.

    Args:
        current: Snapshot assembled from this run's fetches
        previous: Snapshot written by the prior run, if any

    Returns:
        A copy of `current` with substitutions applied, `carriedForward`
        listing substituted sections and `emptySections` listing sections
        that remain empty.
    """
    updates = {}
    sources = dict(current.sources)
    carried = []

    for name in SECTIONS:
        if current.section(name) or previous is None or not previous.section(name):
            continue
        updates[section_field(name)] = previous.section(name)
        base = current.sources.get(name) or name
        sources[name] = f"{base} (carried forward from {previous.generated_at})"
        carried.append(name)
        logger.warning(
            "snapshot_cache: %s empty this run, carrying forward %d entries from %s",
            name, len(previous.section(name)), previous.generated_at,
        )

    merged = current.model_copy(update={**updates, "sources": sources})
    empty = [name for name in SECTIONS if not merged.section(name)]
    if empty:
        logger.warning("snapshot_cache: sections with no data: %s", ", ".join(empty))
    return merged.model_copy(update={"carried_forward": carried, "empty_sections": empty})
