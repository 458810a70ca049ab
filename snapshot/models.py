"""Pydantic models for the snapshot document.

The snapshot is the only contract with downstream consumers, so the JSON
field names (camelCase) are fixed by aliases here.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from odds.classifier import OutcomeKind


# Section names as they appear in the JSON document
SECTIONS = ("nextGame", "futures", "projections", "winTotals")


class ProjectionRecord(BaseModel):
    """Per-team projection extracted from a ratings page.

    Probability fields are absent (None) when the page does not expose them.
    """
    model_config = ConfigDict(frozen=True)

    projected_wins: float = Field(..., ge=0)
    playoff: Optional[float] = Field(None, ge=0, le=1)
    division: Optional[float] = Field(None, ge=0, le=1)
    conference: Optional[float] = Field(None, ge=0, le=1)
    championship_appearance: Optional[float] = Field(None, ge=0, le=1)
    championship_win: Optional[float] = Field(None, ge=0, le=1)


class NextGameProbability(BaseModel):
    """De-vigged win probability for a team's next game."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    entity: str = Field(..., min_length=1)
    implied_next_game_win_prob: float = Field(..., ge=0, le=1, alias="impliedNextGameWinProb")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Snapshot(BaseModel):
    """One pipeline run's output document."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    generated_at: str = Field(default_factory=_now_iso, alias="generatedAt")
    sources: dict[str, str] = Field(default_factory=dict)
    next_game: list[NextGameProbability] = Field(default_factory=list, alias="nextGame")
    futures: dict[str, dict[OutcomeKind, float]] = Field(default_factory=dict)
    projections: dict[str, ProjectionRecord] = Field(default_factory=dict)
    win_totals: dict[str, float] = Field(default_factory=dict, alias="winTotals")
    carried_forward: list[str] = Field(default_factory=list, alias="carriedForward")
    empty_sections: list[str] = Field(default_factory=list, alias="emptySections")

    def section(self, name: str):
        """Get a section by its JSON name (e.g. "nextGame")."""
        return getattr(self, _SECTION_FIELDS[name])

    def is_empty(self) -> bool:
        return all(not self.section(name) for name in SECTIONS)

    def to_document(self) -> dict:
        """JSON-ready dict with camelCase keys and absent optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_SECTION_FIELDS = {
    "nextGame": "next_game",
    "futures": "futures",
    "projections": "projections",
    "winTotals": "win_totals",
}


def section_field(name: str) -> str:
    """Map a JSON section name to the Snapshot attribute name."""
    return _SECTION_FIELDS[name]
