"""Unit tests for the futures market classifier."""
import pytest

from odds.classifier import OutcomeKind, classify_market, is_win_total_market


# ============================================================================
# classify_market() tests
# ============================================================================

class TestClassifyMarket:
    """Test market title + size → OutcomeKind classification."""

    @pytest.mark.parametrize("title,size,expected", [
        # text rules
        ("Super Bowl LX Winner", 32, OutcomeKind.CHAMPIONSHIP_WINNER),
        ("NFL Championship Winner 2025", 3, OutcomeKind.CHAMPIONSHIP_WINNER),
        ("2025 AFC Championship", 16, OutcomeKind.REACH_CHAMPIONSHIP),
        ("To Win NFC", 16, OutcomeKind.REACH_CHAMPIONSHIP),
        ("NFC Champion 2025-26", 2, OutcomeKind.REACH_CHAMPIONSHIP),
        ("Conference Championship - AFC", 40, OutcomeKind.REACH_CHAMPIONSHIP),
        ("Kansas City Chiefs to Make Playoffs", 2, OutcomeKind.MAKE_PLAYOFFS),
        ("Team to Make the Playoffs", 32, OutcomeKind.MAKE_PLAYOFFS),
        ("AFC West Division Winner", 4, OutcomeKind.DIVISION_WINNER),
        ("Division Winner", 12, OutcomeKind.DIVISION_WINNER),

        # size fallback
        ("Outright Futures", 32, OutcomeKind.CHAMPIONSHIP_WINNER),
        ("Futures 2025", 30, OutcomeKind.CHAMPIONSHIP_WINNER),
        ("AFC Futures", 16, OutcomeKind.REACH_CHAMPIONSHIP),
        ("Outright", 14, OutcomeKind.REACH_CHAMPIONSHIP),
        ("Outright", 18, OutcomeKind.REACH_CHAMPIONSHIP),
        ("NFC North", 4, OutcomeKind.DIVISION_WINNER),
        ("AFC South Odds", 6, OutcomeKind.DIVISION_WINNER),

        # unclassifiable
        ("NFC North", 8, None),
        ("Outright", 5, None),
        ("Westbrook Props", 3, None),
        ("MVP", 29, None),
        ("", 0, None),
    ])
    def test_classify_market(self, title, size, expected):
        assert classify_market(title, size) == expected

    def test_championship_beats_division(self):
        """A title with both tokens takes the higher-priority rule."""
        assert classify_market("Division Round to Super Bowl", 4) == OutcomeKind.CHAMPIONSHIP_WINNER

    def test_conference_beats_division(self):
        assert classify_market("AFC Championship incl. Division Winners", 6) == OutcomeKind.REACH_CHAMPIONSHIP

    def test_text_rule_beats_size(self):
        assert classify_market("2025 AFC Championship", 32) == OutcomeKind.REACH_CHAMPIONSHIP

    def test_none_title(self):
        assert classify_market(None, 32) == OutcomeKind.CHAMPIONSHIP_WINNER
        assert classify_market(None, 5) is None

    def test_case_insensitivity(self):
        assert classify_market("super bowl winner", 2) == OutcomeKind.CHAMPIONSHIP_WINNER
        assert classify_market("nfc east", 4) == OutcomeKind.DIVISION_WINNER

    def test_kind_values(self):
        assert {k.value for k in OutcomeKind} == {
            "division_winner", "reach_championship", "championship_winner", "make_playoffs",
        }


class TestWinTotalMarkets:

    @pytest.mark.parametrize("title,expected", [
        ("2025 Regular Season Wins", True),
        ("Win Total - Chiefs", True),
        ("Total Wins O/U", True),
        ("Super Bowl Winner", False),
        (None, False),
    ])
    def test_is_win_total_market(self, title, expected):
        assert is_win_total_market(title) is expected
