"""
Selection scoring for validated candidates.

Scores each valid candidate with a fixed additive rubric, ranks them and
picks the winner. Scoring is a pure function of the candidates and the
last known location, so the same inputs always pick the same winner.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.shared.contracts.discovery import Coordinates
from itinerary_agents.shared.contracts.selection import SelectionOutcome, SelectionScore
from itinerary_agents.shared.contracts.validation import ValidatedPlace, ValidationResult
from itinerary_agents.shared.geo import distance_between


logger = logging.getLogger(__name__)


@dataclass
class ScoringRubric:
    """
    Point values and thresholds of the selection rubric.

    Each contribution is independent, so every point in a total can be
    traced back to one line of the reasoning string.
    """

    # Quality score (0..1) from the validator
    QUALITY_MULTIPLIER: float = 40.0
    QUALITY_MAX_POINTS: float = 40.0

    # Rating tiers: (min rating, points), checked in order
    RATING_TIERS: Tuple[Tuple[float, int], ...] = ((4.5, 20), (4.0, 10), (3.5, 5))

    # Strategic fit
    FIT_POINTS: Tuple[Tuple[str, int], ...] = (("high", 20), ("medium", 10))

    # Proximity tiers: (max km, points), checked in order
    PROXIMITY_TIERS: Tuple[Tuple[float, int], ...] = ((0.5, 15), (1.0, 10), (2.0, 5))

    # Availability
    AVAILABILITY_HIGH_CONFIDENCE: float = 0.9
    AVAILABILITY_HIGH_POINTS: int = 5
    AVAILABILITY_GOOD_CONFIDENCE: float = 0.7
    AVAILABILITY_GOOD_POINTS: int = 3
    CLOSED_PENALTY: int = -10


DEFAULT_RUBRIC = ScoringRubric()


def _rating_label(min_rating: float) -> str:
    if min_rating >= 4.5:
        return "Excellent"
    if min_rating >= 4.0:
        return "Good"
    return "Fair"


def score_candidate(
    result: ValidationResult,
    last_location: Optional[Coordinates] = None,
    rubric: ScoringRubric = DEFAULT_RUBRIC,
) -> Tuple[float, str]:
    """
    Score one valid candidate.

    Args:
        result: A valid ValidationResult
        last_location: Where the previous activity was, if known
        rubric: Point values to apply

    Returns:
        Tuple of (score, reasoning). Reasoning joins every contribution
        with "; ".
    """
    place: ValidatedPlace = result.place or ValidatedPlace.from_candidate(result.candidate)
    score = 0.0
    parts: List[str] = []

    # 1. Quality
    if place.quality_score:
        points = min(place.quality_score * rubric.QUALITY_MULTIPLIER, rubric.QUALITY_MAX_POINTS)
        score += points
        parts.append(f"Quality: {place.quality_score:.2f} (+{points:.1f}pts)")

    # 2. Rating
    if place.rating:
        for min_rating, points in rubric.RATING_TIERS:
            if place.rating >= min_rating:
                score += points
                parts.append(f"{_rating_label(min_rating)} rating: {place.rating} (+{points}pts)")
                break

    # 3. Strategic fit
    for fit, points in rubric.FIT_POINTS:
        if result.candidate.strategic_fit == fit:
            score += points
            parts.append(f"{fit.capitalize()} strategic fit (+{points}pts)")
            break

    # 4. Proximity
    if last_location is not None and place.coordinates is not None:
        distance_km = distance_between(last_location, place.coordinates)
        for max_km, points in rubric.PROXIMITY_TIERS:
            if distance_km < max_km:
                score += points
                parts.append(f"Nearby: {distance_km:.2f}km (+{points}pts)")
                break

    # 5. Availability
    availability = result.availability
    if availability is not None:
        if not availability.status:
            score += rubric.CLOSED_PENALTY
            parts.append(f"CLOSED at scheduled time ({rubric.CLOSED_PENALTY}pts)")
        elif availability.confidence >= rubric.AVAILABILITY_HIGH_CONFIDENCE:
            score += rubric.AVAILABILITY_HIGH_POINTS
            parts.append(f"High availability confidence (+{rubric.AVAILABILITY_HIGH_POINTS}pts)")
        elif availability.confidence >= rubric.AVAILABILITY_GOOD_CONFIDENCE:
            score += rubric.AVAILABILITY_GOOD_POINTS
            parts.append(f"Good availability confidence (+{rubric.AVAILABILITY_GOOD_POINTS}pts)")

    return score, "; ".join(parts)


def select_best(
    valid_results: List[ValidationResult],
    last_location: Optional[Coordinates] = None,
    rubric: ScoringRubric = DEFAULT_RUBRIC,
) -> SelectionOutcome:
    """
    Rank valid candidates and pick the winner.

    Equal scores keep their input order. Every runner-up gets a
    ``rejection_reason`` with its point gap to the winner.

    Raises:
        ValueError: If ``valid_results`` is empty
    """
    if not valid_results:
        raise ValueError("select_best requires at least one valid candidate")

    scored = []
    for result in valid_results:
        score, reasoning = score_candidate(result, last_location, rubric)
        scored.append(SelectionScore(result=result, score=score, reasoning=reasoning))

    # sorted() is stable; ties keep discovery order
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    best = ranked[0]
    for runner_up in ranked[1:]:
        runner_up.rejection_reason = f"Lower score by {best.score - runner_up.score:.1f} points"

    return SelectionOutcome(
        place=best.place,
        score=best.score,
        reasoning=best.reasoning,
        confidence=max(0.0, min(best.score / 100, 1.0)),
        ranked=ranked,
    )


class SelectionStage:
    """Selection bound to a run's shared context."""

    def __init__(self, context: SharedContext, rubric: ScoringRubric = DEFAULT_RUBRIC):
        self.context = context
        self.rubric = rubric

    def select(self, valid_results: List[ValidationResult]) -> SelectionOutcome:
        outcome = select_best(valid_results, self.context.get_last_location(), self.rubric)
        logger.info(
            f"[run={self.context.run_id}] [graph=feedback_loop] [node=select] "
            f"Selected {outcome.place.name} | score={outcome.score:.1f}, "
            f"alternatives={len(outcome.alternatives)}"
        )
        return outcome
