"""
Tests for selection scoring.

Tests the additive rubric, ranking determinism, tie handling and the
rejection reasons given to runners-up.
"""

import pytest

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.selection.scoring import (
    DEFAULT_RUBRIC,
    ScoringRubric,
    SelectionStage,
    score_candidate,
    select_best,
)
from itinerary_agents.shared.contracts.discovery import Coordinates, DiscoveryCandidate
from itinerary_agents.shared.contracts.validation import (
    AvailabilityCheck,
    ValidatedPlace,
    ValidationResult,
)


# ============================================================================
# Test Fixtures
# ============================================================================


def _make_result(
    name="Louvre",
    fit="medium",
    quality=None,
    rating=None,
    coordinates=None,
    availability=None,
):
    """Create a valid ValidationResult with optional validator data."""
    candidate = DiscoveryCandidate(
        name=name, address=f"{name} Street", strategic_fit=fit, city="Paris"
    )
    place = ValidatedPlace.from_candidate(
        candidate,
        {"quality_score": quality, "rating": rating, "coordinates": coordinates},
    )
    return ValidationResult(
        candidate=candidate,
        valid=True,
        confidence=0.9,
        place=place,
        availability=availability,
    )


# ============================================================================
# TestScoreCandidate
# ============================================================================


class TestScoreCandidate:
    """Tests for the per-candidate rubric."""

    def test_quality_points(self):
        """Quality 0.8 should add 32 points."""
        score, reasoning = score_candidate(_make_result(fit="low", quality=0.8))

        assert score == pytest.approx(32.0)
        assert reasoning == "Quality: 0.80 (+32.0pts)"

    def test_quality_points_capped(self):
        """Quality above 1.0 should never exceed the cap."""
        score, _ = score_candidate(_make_result(fit="low", quality=1.5))

        assert score == pytest.approx(DEFAULT_RUBRIC.QUALITY_MAX_POINTS)

    @pytest.mark.parametrize(
        "rating, expected",
        [(4.6, 20), (4.5, 20), (4.2, 10), (3.6, 5), (3.0, 0)],
    )
    def test_rating_tiers(self, rating, expected):
        """Rating tiers should add 20, 10 or 5 points."""
        score, _ = score_candidate(_make_result(fit="low", rating=rating))

        assert score == expected

    def test_strategic_fit(self):
        """High fit adds 20, medium 10, low nothing."""
        assert score_candidate(_make_result(fit="high"))[0] == 20
        assert score_candidate(_make_result(fit="medium"))[0] == 10
        assert score_candidate(_make_result(fit="low"))[0] == 0

    def test_proximity(self):
        """A place 300m away should add 15 points."""
        last = Coordinates(lat=48.8606, lng=2.3376)
        nearby = Coordinates(lat=48.8630, lng=2.3400)

        score, reasoning = score_candidate(_make_result(fit="low", coordinates=nearby), last)

        assert score == 15
        assert reasoning.startswith("Nearby:")

    def test_proximity_needs_last_location(self):
        """Without a last location, proximity adds nothing."""
        nearby = Coordinates(lat=48.8630, lng=2.3400)

        assert score_candidate(_make_result(fit="low", coordinates=nearby))[0] == 0

    def test_far_place_gets_no_proximity_points(self):
        """A place kilometres away adds nothing."""
        last = Coordinates(lat=48.8606, lng=2.3376)
        far = Coordinates(lat=48.90, lng=2.40)

        assert score_candidate(_make_result(fit="low", coordinates=far), last)[0] == 0

    def test_closed_penalty(self):
        """A closed place should lose 10 points."""
        closed = AvailabilityCheck(status=False, confidence=0.9)

        score, reasoning = score_candidate(_make_result(fit="medium", availability=closed))

        assert score == 0
        assert "CLOSED at scheduled time (-10pts)" in reasoning

    def test_availability_confidence(self):
        """Open with high or good confidence adds 5 or 3 points."""
        high = AvailabilityCheck(status=True, confidence=0.95)
        good = AvailabilityCheck(status=True, confidence=0.75)
        weak = AvailabilityCheck(status=True, confidence=0.5)

        assert score_candidate(_make_result(fit="low", availability=high))[0] == 5
        assert score_candidate(_make_result(fit="low", availability=good))[0] == 3
        assert score_candidate(_make_result(fit="low", availability=weak))[0] == 0

    def test_reasoning_joins_contributions(self):
        """Every contribution should appear in order, joined by '; '."""
        _, reasoning = score_candidate(_make_result(fit="high", quality=0.5, rating=4.7))

        assert reasoning == (
            "Quality: 0.50 (+20.0pts); Excellent rating: 4.7 (+20pts); "
            "High strategic fit (+20pts)"
        )

    def test_custom_rubric(self):
        """Rubric values should be configurable."""
        rubric = ScoringRubric(FIT_POINTS=(("high", 50),))

        assert score_candidate(_make_result(fit="high"), rubric=rubric)[0] == 50


# ============================================================================
# TestSelectBest
# ============================================================================


class TestSelectBest:
    """Tests for ranking and winner selection."""

    def test_highest_score_wins(self):
        """The best-scoring candidate should win with runners-up ranked."""
        results = [
            _make_result("A", fit="medium"),
            _make_result("B", fit="high", rating=4.6),
            _make_result("C", fit="low"),
        ]

        outcome = select_best(results)

        assert outcome.place.name == "B"
        assert outcome.score == 40
        assert outcome.confidence == pytest.approx(0.4)
        assert [s.result.candidate.name for s in outcome.ranked] == ["B", "A", "C"]

    def test_rejection_reasons(self):
        """Runners-up should carry their point gap to the winner."""
        outcome = select_best([_make_result("A", fit="high"), _make_result("B", fit="medium")])

        assert outcome.ranked[0].rejection_reason is None
        assert outcome.alternatives[0].rejection_reason == "Lower score by 10.0 points"

    def test_ties_keep_input_order(self):
        """Equal scores should keep discovery order."""
        results = [_make_result("First"), _make_result("Second"), _make_result("Third")]

        outcome = select_best(results)

        assert [s.result.candidate.name for s in outcome.ranked] == ["First", "Second", "Third"]
        assert outcome.alternatives[0].rejection_reason == "Lower score by 0.0 points"

    def test_deterministic(self):
        """Repeated selection over the same inputs should agree."""
        results = [_make_result("A", quality=0.7), _make_result("B", rating=4.1, fit="high")]

        assert select_best(results).place.name == select_best(results).place.name

    def test_confidence_is_clamped(self):
        """Confidence should stay within [0, 1]."""
        high = select_best([_make_result(fit="high", quality=1.0, rating=5.0,
                                         availability=AvailabilityCheck(status=True, confidence=1.0))])
        negative = select_best([_make_result(fit="low", availability=AvailabilityCheck(status=False))])

        assert high.confidence == pytest.approx(0.85)
        assert negative.score == -10
        assert negative.confidence == 0.0

    def test_empty_input_raises(self):
        """Selection requires at least one valid candidate."""
        with pytest.raises(ValueError):
            select_best([])


# ============================================================================
# TestSelectionStage
# ============================================================================


class TestSelectionStage:
    """Tests for context-bound selection."""

    def test_uses_context_last_location(self):
        """Proximity should use the context's last location."""
        context = SharedContext("run-s")
        context.update_last_location(Coordinates(lat=48.8606, lng=2.3376))
        near = _make_result("Near", coordinates=Coordinates(lat=48.8610, lng=2.3380))
        far = _make_result("Far", coordinates=Coordinates(lat=48.95, lng=2.50))

        outcome = SelectionStage(context).select([far, near])

        assert outcome.place.name == "Near"
