"""Unit tests for fuzzy status matching."""

import pytest

from src.status.matcher import (
    StatusMatcher,
    best_match,
    normalize_status_text,
    similarity,
)


TARGETS = ["active", "ready to sell", "lent"]


class TestSimilarity:
    """Tests for the similarity score."""

    def test_identical(self) -> None:
        """Test that equal text scores 1.0."""
        assert similarity("active", "active") == 1.0

    def test_case_whitespace_and_underscores_ignored(self) -> None:
        """Test that formatting differences still compare equal."""
        assert similarity("  Ready_To_Sell ", "ready to sell") == 1.0
        assert normalize_status_text("In   Laundry") == "in laundry"

    def test_unrelated_below_threshold(self) -> None:
        """Test that dissimilar statuses do not reach the default threshold."""
        assert similarity("active", "lent") < 0.5

    def test_containment(self) -> None:
        """Test that containment scores 0.8."""
        assert similarity("inactive", "active") == 0.8
        assert similarity("lent", "lent out") == 0.8

    def test_word_overlap(self) -> None:
        """Test that shared words score by overlap."""
        # "sell" shared; 1 of max(3, 2) words
        assert similarity("ready to sell", "will sell") == pytest.approx(0.2)

    def test_positional_characters(self) -> None:
        """Test the positional character fallback."""
        # l-l, e-a, n-n, t-d -> 2 of 4
        assert similarity("lent", "land") == pytest.approx(0.2)

    def test_empty_input(self) -> None:
        """Test that an empty side scores zero unless both are empty."""
        assert similarity("", "active") == 0.0
        assert similarity("", "") == 1.0

    @pytest.mark.parametrize(
        ("first", "second"),
        [("Active", "needs repair"), ("Donated", "lent"), ("x", "at cleaners")],
    )
    def test_bounded(self, first: str, second: str) -> None:
        """Test that scores stay within [0, 1]."""
        assert 0.0 <= similarity(first, second) <= 1.0


class TestBestMatch:
    """Tests for best target selection."""

    def test_picks_highest(self) -> None:
        """Test that the highest scoring target wins."""
        result = best_match("Ready_To_Sell", TARGETS)

        assert result is not None
        assert result.target == "ready to sell"
        assert result.score == 1.0

    def test_none_below_threshold(self) -> None:
        """Test that no match is returned below the threshold."""
        assert best_match("Donated", TARGETS) is None

    def test_ties_favor_first_target(self) -> None:
        """Test that equal scores keep the earlier target."""
        result = best_match("lent", ["lent out", "lent again"])

        assert result is not None
        assert result.target == "lent out"

    def test_custom_threshold(self) -> None:
        """Test that a lower threshold admits weaker matches."""
        assert best_match("will sell", TARGETS, threshold=0.5) is None
        result = best_match("will sell", TARGETS, threshold=0.1)
        assert result is not None
        assert result.target == "ready to sell"


class TestClassify:
    """Tests for status classification."""

    def test_scenario(self) -> None:
        """Test the canonical active/unmatched split."""
        result = StatusMatcher(TARGETS).classify(["Active", "Ready_To_Sell", "Donated"])

        assert result.active_statuses == ["Active", "Ready_To_Sell"]
        assert result.unmatched_statuses == ["Donated"]
        assert [(m.actual, m.target) for m in result.matches] == [
            ("Active", "active"),
            ("Ready_To_Sell", "ready to sell"),
        ]

    def test_active_statuses_equal_match_actuals(self) -> None:
        """Test that active statuses are exactly the matched values."""
        result = StatusMatcher(TARGETS).classify(
            ["lent", "lent", "in storage", "active", "sold"]
        )

        assert result.active_statuses == [m.actual for m in result.matches]
        assert set(result.active_statuses).isdisjoint(result.unmatched_statuses)
        assert len(result.active_statuses) + len(result.unmatched_statuses) == 4

    def test_deterministic(self) -> None:
        """Test that identical input yields identical output."""
        matcher = StatusMatcher(TARGETS)
        statuses = ["active", "in laundry", "donated", "ready_to_sell"]

        assert matcher.classify(statuses) == matcher.classify(list(statuses))
