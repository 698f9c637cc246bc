"""
State schema for the feedback-loop graph.
"""

from typing import List, Literal, Optional, TypedDict

from itinerary_agents.shared.contracts.discovery import DiscoveryCandidate, DiscoveryRequest
from itinerary_agents.shared.contracts.selection import DiscoveryOutcome
from itinerary_agents.shared.contracts.validation import ValidationResult


LoopStatus = Literal[
    "pending",
    "discovered",
    "no_candidates",
    "validated",
    "no_valid",
    "feedback_applied",
    "error",
    "success",
    "failed",
]


class FeedbackLoopState(TypedDict):
    """
    State carried between the loop's nodes for one discovery request.

    ``request`` is replaced (never mutated) when feedback adds constraints.
    """

    run_id: str
    request: DiscoveryRequest
    attempt: int
    max_attempts: int
    status: LoopStatus

    # Current attempt
    candidates: List[DiscoveryCandidate]
    validation_results: List[ValidationResult]

    # Last exception raised by an attempt, cleared when a new attempt starts
    error: Optional[BaseException]
    failure_reason: Optional[str]

    outcome: Optional[DiscoveryOutcome]
