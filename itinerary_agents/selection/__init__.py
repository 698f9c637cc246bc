"""
Selection of one candidate from the validated set.
"""

from itinerary_agents.selection.scoring import (
    ScoringRubric,
    DEFAULT_RUBRIC,
    SelectionStage,
    score_candidate,
    select_best,
)

__all__ = [
    "ScoringRubric",
    "DEFAULT_RUBRIC",
    "SelectionStage",
    "score_candidate",
    "select_best",
]
