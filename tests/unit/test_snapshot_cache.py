"""Tests for carrying empty sections forward from the previous snapshot."""
import pytest

from odds.classifier import OutcomeKind
from snapshot.models import NextGameProbability, ProjectionRecord, Snapshot
from snapshot.services.snapshot_cache import apply_cache_fallback

SOURCES = {
    "nextGame": "odds",
    "futures": "futures",
    "projections": "fpi",
    "winTotals": "totals",
}


def full_snapshot(generated_at="2025-09-01T12:00:00+00:00") -> Snapshot:
    return Snapshot(
        generated_at=generated_at,
        sources=SOURCES,
        next_game=[NextGameProbability(entity="BUFFALO BILLS", implied_next_game_win_prob=0.6)],
        futures={"BUFFALO BILLS": {OutcomeKind.DIVISION_WINNER: 0.55}},
        projections={"BUFFALO BILLS": ProjectionRecord(projected_wins=12.1, playoff=0.9)},
        win_totals={"BUFFALO BILLS": 11.5},
    )


class TestApplyCacheFallback:

    def test_no_previous_leaves_empty_sections(self):
        current = Snapshot(sources=SOURCES)
        result = apply_cache_fallback(current, None)
        assert result.carried_forward == []
        assert result.empty_sections == ["nextGame", "futures", "projections", "winTotals"]
        assert result.is_empty()

    def test_full_current_untouched(self):
        current = full_snapshot("2025-09-02T12:00:00+00:00")
        result = apply_cache_fallback(current, full_snapshot())
        assert result.carried_forward == []
        assert result.empty_sections == []
        assert result.sources == SOURCES
        assert result.generated_at == "2025-09-02T12:00:00+00:00"

    def test_empty_section_carried_forward(self):
        previous = full_snapshot()
        current = Snapshot(
            generated_at="2025-09-02T12:00:00+00:00",
            sources=SOURCES,
            futures={"MIAMI DOLPHINS": {OutcomeKind.MAKE_PLAYOFFS: 0.4}},
        )
        result = apply_cache_fallback(current, previous)

        assert result.carried_forward == ["nextGame", "projections", "winTotals"]
        assert result.empty_sections == []
        assert result.futures == {"MIAMI DOLPHINS": {OutcomeKind.MAKE_PLAYOFFS: 0.4}}
        assert result.projections == previous.projections
        assert result.win_totals == {"BUFFALO BILLS": 11.5}
        assert result.sources["projections"] == "fpi (carried forward from 2025-09-01T12:00:00+00:00)"
        assert result.sources["futures"] == "futures"
        assert result.generated_at == "2025-09-02T12:00:00+00:00"

    def test_empty_in_both_stays_empty(self):
        previous = full_snapshot().model_copy(update={"win_totals": {}})
        current = Snapshot(sources=SOURCES, futures=previous.futures)
        result = apply_cache_fallback(current, previous)
        assert "winTotals" not in result.carried_forward
        assert result.empty_sections == ["winTotals"]

    def test_inputs_not_mutated(self):
        previous = full_snapshot()
        current = Snapshot(sources=SOURCES)
        apply_cache_fallback(current, previous)
        assert current.projections == {}
        assert current.sources == SOURCES
        assert current.carried_forward == []

    def test_repeated_carry_does_not_stack_labels(self):
        first = apply_cache_fallback(Snapshot(generated_at="t2", sources=SOURCES), full_snapshot("t1"))
        second = apply_cache_fallback(Snapshot(generated_at="t3", sources=SOURCES), first)
        assert second.sources["nextGame"] == "odds (carried forward from t2)"
        assert second.next_game == full_snapshot().next_game


class TestSnapshotDocument:

    def test_camel_case_keys(self):
        doc = full_snapshot().to_document()
        assert set(doc) == {
            "generatedAt", "sources", "nextGame", "futures",
            "projections", "winTotals", "carriedForward", "emptySections",
        }
        assert doc["nextGame"] == [{"entity": "BUFFALO BILLS", "impliedNextGameWinProb": 0.6}]
        assert doc["futures"] == {"BUFFALO BILLS": {"division_winner": 0.55}}

    def test_absent_probabilities_omitted(self):
        doc = full_snapshot().to_document()
        assert doc["projections"]["BUFFALO BILLS"] == {"projected_wins": 12.1, "playoff": 0.9}

    def test_round_trips_through_validation(self):
        original = full_snapshot()
        assert Snapshot.model_validate(original.to_document()) == original

    def test_probability_bounds_enforced(self):
        with pytest.raises(ValueError):
            ProjectionRecord(projected_wins=10, playoff=1.5)
        with pytest.raises(ValueError):
            NextGameProbability(entity="X", impliedNextGameWinProb=-0.1)
