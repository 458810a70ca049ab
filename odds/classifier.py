"""
Futures market classifier.

Maps a market title and its outcome count to one OutcomeKind. Text rules
are checked first in a fixed priority order; size heuristics only apply
when no text rule matches. Unrecognized markets classify as None.
"""
import re
from enum import Enum
from typing import Optional


class OutcomeKind(str, Enum):
    DIVISION_WINNER = "division_winner"
    REACH_CHAMPIONSHIP = "reach_championship"
    CHAMPIONSHIP_WINNER = "championship_winner"
    MAKE_PLAYOFFS = "make_playoffs"


# Order matters: a conference title can also contain "division"
TITLE_RULES = [
    (OutcomeKind.CHAMPIONSHIP_WINNER, ("SUPER BOWL", "CHAMPIONSHIP WINNER")),
    (OutcomeKind.REACH_CHAMPIONSHIP, (
        "CONFERENCE CHAMP", "WIN AFC", "AFC CHAMPION", "WIN NFC", "NFC CHAMPION",
    )),
    (OutcomeKind.MAKE_PLAYOFFS, ("MAKE PLAYOFFS", "MAKE THE PLAYOFFS")),
    (OutcomeKind.DIVISION_WINNER, ("DIVISION",)),
]

WIN_TOTAL_PHRASES = ("WIN TOTAL", "REGULAR SEASON WINS", "TOTAL WINS")

GEOGRAPHIC_QUALIFIER = re.compile(r"\b(EAST|NORTH|SOUTH|WEST)\b")

FULL_LEAGUE_MIN = 30
CONFERENCE_SIZE = (14, 18)
DIVISION_SIZE = (4, 6)


def _normalize_title(title: Optional[str]) -> str:
    return (title or "").upper().strip()


def classify_market(title: Optional[str], outcome_count: int) -> Optional[OutcomeKind]:
    """Classify a futures market.

    Args:
        title: Market title as published upstream (may be empty)
        outcome_count: Number of priced outcomes in the market's chosen line

    Returns:
        The OutcomeKind, or None when the market should be dropped.
    """
    t = _normalize_title(title)

    for kind, phrases in TITLE_RULES:
        if any(p in t for p in phrases):
            return kind

    if outcome_count >= FULL_LEAGUE_MIN:
        return OutcomeKind.CHAMPIONSHIP_WINNER
    if CONFERENCE_SIZE[0] <= outcome_count <= CONFERENCE_SIZE[1]:
        return OutcomeKind.REACH_CHAMPIONSHIP
    if DIVISION_SIZE[0] <= outcome_count <= DIVISION_SIZE[1] and GEOGRAPHIC_QUALIFIER.search(t):
        return OutcomeKind.DIVISION_WINNER
    return None


def is_win_total_market(title: Optional[str]) -> bool:
    """True for regular-season win-total markets (lines, not probabilities)."""
    t = _normalize_title(title)
    return any(p in t for p in WIN_TOTAL_PHRASES)
