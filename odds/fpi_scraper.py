"""
ESPN FPI Projections Scraper
Extracts per-team projections (projected wins, playoff/division/conference/
Super Bowl odds) from the public FPI page. The page has no API contract, so
extraction runs an ordered cascade of strategies:

1. embedded data object (brace-counted JSON after a known marker)
2. header-driven table mapping
3. permissive row scan (last resort)
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from pydantic import ValidationError

from snapshot.models import ProjectionRecord
from .entity_resolver import normalize_entity_name

if TYPE_CHECKING:
    from snapshot.deps import Settings
    from snapshot.services.http_client import AsyncHTTPClient

logger = logging.getLogger(__name__)

# Canonical probability field order (also the row-scan column order)
PROB_FIELDS = (
    "playoff",
    "division",
    "conference",
    "championship_appearance",
    "championship_win",
)

EMBEDDED_MARKERS = (
    "window['__espnfitt__']",
    'window["__espnfitt__"]',
    "window.__espnfitt__",
    "__INITIAL_STATE__",
    "__NEXT_DATA__",
)

NAME_KEYS = ("displayName", "teamName", "name")
ABBREV_KEYS = ("abbreviation", "abbrev", "teamAbbreviation", "abbr")
PROJ_WINS_KEYS = ("projectedWins", "projWins", "projW", "proj_w", "projectedRecord", "projWL")
EMBEDDED_FIELD_KEYS = {
    "playoff": ("playoffPct", "makePlayoffsPct", "makePlayoffs", "playoff"),
    "division": ("winDivPct", "winDivisionPct", "winDivision", "division"),
    "conference": ("makeConfPct", "winConfPct", "confPct", "conference"),
    "championship_appearance": ("makeSBPct", "sbAppearancePct", "makeSuperBowl", "sbAppearance"),
    "championship_win": ("winSBPct", "sbWinPct", "winSuperBowl", "winSB"),
}

HEADER_ALIASES = {
    "projected_record": ("PROJ W-L", "PROJECTED W-L", "PROJ. W-L"),
    "playoff": ("PLAYOFF%", "MAKE PLAYOFFS%", "PLAYOFFS%"),
    "division": ("WIN DIV%", "DIVISION%"),
    "conference": ("MAKE CONF%", "WIN CONF%", "CONF%"),
    "championship_appearance": ("MAKE SB%", "SB APP%", "SUPER BOWL%"),
    "championship_win": ("WIN SB%", "SB WIN%"),
}
REQUIRED_COLUMNS = ("projected_record", "championship_win")

TEAM_LINK = re.compile(r"/teams?/")
RECORD_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[-–]\s*(\d+(?:\.\d+)?)\s*$")
PCT_RE = re.compile(r"^\s*<?\s*(\d{1,3}(?:\.\d+)?)\s*%?\s*$")
PLACEHOLDERS = {"--", "—", "–", "-", "N/A", "NA"}


@dataclass
class ExtractionResult:
    records: Dict[str, ProjectionRecord] = field(default_factory=dict)
    strategy: Optional[str] = None


class Page:
    """Raw markup plus a lazily-built parse tree shared by the strategies."""

    def __init__(self, html: str):
        self.html = html or ""

    @cached_property
    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "lxml")


# ============================================================================
# Defensive value parsing
# ============================================================================

def _to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).replace(",", "").replace("%", "").replace("<", "").strip()
    try:
        return float(text)
    except ValueError:
        return None


def pct_to_prob(value: Any) -> Optional[float]:
    """Percentage points → probability in [0, 1]; None if unusable."""
    n = _to_number(value)
    if n is None:
        return None
    p = n / 100
    return p if 0 <= p <= 1 else None


def parse_projected_wins(value: Any) -> Optional[float]:
    """Projected wins from a number or a "W-L" record string."""
    if isinstance(value, str):
        m = RECORD_RE.match(value)
        if m:
            return float(m.group(1))
    n = _to_number(value)
    return n if n is not None and n >= 0 else None


def build_record(projected_wins: Optional[float], probs: Dict[str, Optional[float]]) -> Optional[ProjectionRecord]:
    if projected_wins is None:
        return None
    try:
        return ProjectionRecord(
            projected_wins=projected_wins,
            **{k: v for k, v in probs.items() if v is not None},
        )
    except ValidationError as e:
        logger.debug("fpi: dropping invalid record: %s", e)
        return None


# ============================================================================
# Strategy 1: embedded data object
# ============================================================================

def extract_braced_block(text: str, start: int) -> Optional[str]:
    """Balanced {...} block beginning at the first brace at/after `start`.

    Braces inside quoted strings are ignored.
    """
    open_at = text.find("{", start)
    if open_at < 0:
        return None
    depth = 0
    quote = None
    escaped = False
    for i in range(open_at, len(text)):
        ch = text[i]
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_at:i + 1]
    return None


def _embedded_objects(html: str) -> Iterator[Any]:
    for marker in EMBEDDED_MARKERS:
        pos = html.find(marker)
        while pos >= 0:
            block = extract_braced_block(html, pos + len(marker))
            if block:
                try:
                    yield json.loads(block)
                except ValueError:
                    logger.debug("fpi: unparsable block after %s", marker)
            pos = html.find(marker, pos + len(marker))


def _walk_dicts(node: Any) -> Iterator[dict]:
    """Every dict in a parsed JSON tree, in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        if isinstance(current, dict):
            yield current
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))


def _first(obj: dict, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        value = obj.get(key)
        if value is not None and value != "":
            return value
    return None


def record_from_embedded(obj: dict) -> Optional[Tuple[str, ProjectionRecord]]:
    team = obj.get("team") if isinstance(obj.get("team"), dict) else {}
    name = _first(obj, NAME_KEYS) or _first(team, NAME_KEYS)
    abbrev = _first(obj, ABBREV_KEYS) or _first(team, ABBREV_KEYS)
    wins_raw = _first(obj, PROJ_WINS_KEYS)
    if not isinstance(name, str) or not abbrev or wins_raw is None:
        return None
    probs = {f: pct_to_prob(_first(obj, keys)) for f, keys in EMBEDDED_FIELD_KEYS.items()}
    record = build_record(parse_projected_wins(wins_raw), probs)
    if record is None:
        return None
    return normalize_entity_name(name), record


def extract_embedded(page: Page) -> Dict[str, ProjectionRecord]:
    records: Dict[str, ProjectionRecord] = {}
    for blob in _embedded_objects(page.html):
        for obj in _walk_dicts(blob):
            found = record_from_embedded(obj)
            if found and found[0]:
                records.setdefault(*found)
    return records


# ============================================================================
# Shared row helpers
# ============================================================================

def _cell_text(cell) -> str:
    return re.sub(r"\s+", " ", cell.get_text(" ", strip=True)).strip()


def _has_team_link(row) -> bool:
    return row.find("a", href=TEAM_LINK) is not None


def _slug_name(href: str) -> str:
    parts = [p for p in urlparse(href).path.split("/") if p]
    return parts[-1].replace("-", " ") if parts else ""


def entity_name_from_cell(cell) -> str:
    """Visible text, then aria-label, then title, then the link slug."""
    text = _cell_text(cell)
    if text:
        return normalize_entity_name(text)
    nodes = [cell, *cell.find_all(True)]
    for attr in ("aria-label", "title"):
        for node in nodes:
            value = node.get(attr)
            if isinstance(value, str) and value.strip():
                return normalize_entity_name(value)
    link = cell.find("a", href=True) if cell.name != "a" else cell
    if link is not None and link.get("href"):
        return normalize_entity_name(_slug_name(link["href"]))
    return ""


def _first_record_index(texts: List[str]) -> Optional[int]:
    for i, text in enumerate(texts):
        if RECORD_RE.match(text):
            return i
    return None


# ============================================================================
# Strategy 2: header-driven table mapping
# ============================================================================

def _normalize_header(text: str) -> str:
    return re.sub(r"\s+", " ", text.upper()).strip().replace(" %", "%")


def map_header(header: List[str]) -> Dict[str, int]:
    """Logical column name → physical index for the aliases present."""
    columns: Dict[str, int] = {}
    for logical, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            if alias in header:
                columns[logical] = header.index(alias)
                break
    return columns


def _header_rows(table) -> list:
    thead = table.find("thead")
    if thead is not None:
        return thead.find_all("tr")
    first = table.find("tr")
    return [first] if first is not None else []


def find_projection_table(soup: BeautifulSoup):
    """First table with a usable header row, as (table, header_row, header, columns)."""
    for table in soup.find_all("table"):
        for row in _header_rows(table):
            header = [_normalize_header(_cell_text(c)) for c in row.find_all(["th", "td"])]
            columns = map_header(header)
            if all(c in columns for c in REQUIRED_COLUMNS):
                return table, row, header, columns
    return None


def extract_header_table(page: Page) -> Dict[str, ProjectionRecord]:
    found = find_projection_table(page.soup)
    if found is None:
        return {}
    table, header_row, header, columns = found
    logger.debug("fpi: matched table header=%s", " | ".join(header))

    body = table.find("tbody") or table
    records: Dict[str, ProjectionRecord] = {}
    for row in body.find_all("tr"):
        if row is header_row or not _has_team_link(row):
            continue
        cells = row.find_all(["td", "th"])
        if not cells:
            continue
        texts = [_cell_text(c) for c in cells]
        # Header rows often omit the team column the body rows carry
        offset = max(0, len(cells) - len(header))

        def cell_at(logical: str) -> Optional[str]:
            idx = columns.get(logical)
            if idx is None or idx + offset >= len(texts):
                return None
            return texts[idx + offset]

        projected = cell_at("projected_record")
        if projected is None or not RECORD_RE.match(projected):
            rec_idx = _first_record_index(texts)
            projected = texts[rec_idx] if rec_idx is not None else None

        name = entity_name_from_cell(cells[0])
        record = build_record(
            parse_projected_wins(projected) if projected else None,
            {f: pct_to_prob(cell_at(f)) for f in PROB_FIELDS},
        )
        if name and record is not None:
            records.setdefault(name, record)
    return records


# ============================================================================
# Strategy 3: permissive row scan
# ============================================================================

def _ordered_percentages(texts: List[str]) -> List[Optional[float]]:
    values: List[Optional[float]] = []
    for text in texts:
        if text.upper() in PLACEHOLDERS:
            values.append(None)
            continue
        if PCT_RE.match(text):
            values.append(pct_to_prob(text))
    return values


def extract_row_scan(page: Page) -> Dict[str, ProjectionRecord]:
    records: Dict[str, ProjectionRecord] = {}
    for row in page.soup.find_all("tr"):
        if not _has_team_link(row):
            continue
        cells = row.find_all(["td", "th"])
        if not cells:
            continue
        texts = [_cell_text(c) for c in cells]
        rec_idx = _first_record_index(texts)
        if rec_idx is None:
            continue
        pcts = _ordered_percentages(texts[rec_idx + 1:])
        name = entity_name_from_cell(cells[0])
        record = build_record(
            parse_projected_wins(texts[rec_idx]),
            dict(zip(PROB_FIELDS, pcts)),
        )
        if name and record is not None:
            records.setdefault(name, record)
    return records


# ============================================================================
# Cascade
# ============================================================================

STRATEGIES: List[Tuple[str, Callable[[Page], Dict[str, ProjectionRecord]]]] = [
    ("embedded", extract_embedded),
    ("header_table", extract_header_table),
    ("row_scan", extract_row_scan),
]


def extract_projections(html: str, min_records: int = 24) -> ExtractionResult:
    """Run the strategy cascade over one page.

    The first strategy reaching `min_records` wins. When none does, the
    first strategy that produced anything is used. Outputs are never merged.
    """
    page = Page(html)
    partial: Optional[ExtractionResult] = None
    for name, strategy in STRATEGIES:
        records = strategy(page)
        logger.debug("fpi: strategy %s found %d teams", name, len(records))
        if len(records) >= min_records:
            return ExtractionResult(records=records, strategy=name)
        if records and partial is None:
            partial = ExtractionResult(records=records, strategy=name)
    return partial or ExtractionResult()


async def fetch_fpi_projections(http: "AsyncHTTPClient", settings: "Settings") -> ExtractionResult:
    """Fetch the FPI page and extract projections; transport errors → empty."""
    try:
        html = await http.get_text(settings.FPI_URL)
    except httpx.HTTPError as e:
        logger.warning(f"fpi: page fetch failed: {e}")
        return ExtractionResult()

    result = extract_projections(html, settings.MIN_PROJECTION_RECORDS)
    if result.strategy is None:
        logger.warning("fpi: no projections found on page")
    else:
        logger.info(f"fpi: {len(result.records)} teams via {result.strategy}")
    return result
