"""
Selection and discovery-outcome contracts.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from itinerary_agents.shared.contracts.validation import ValidatedPlace, ValidationResult


class SelectionScore(BaseModel):
    """A valid candidate with its rubric score."""

    result: ValidationResult
    score: float
    reasoning: str = ""
    rejection_reason: Optional[str] = None

    @property
    def place(self) -> ValidatedPlace:
        if self.result.place is not None:
            return self.result.place
        return ValidatedPlace.from_candidate(self.result.candidate)


class SelectionOutcome(BaseModel):
    """The winner of a selection round plus the full ranking."""

    place: ValidatedPlace
    score: float
    reasoning: str
    confidence: float = Field(ge=0, le=1)
    ranked: List[SelectionScore] = Field(default_factory=list)

    @property
    def alternatives(self) -> List[SelectionScore]:
        return self.ranked[1:]


class DiscoveryOutcome(BaseModel):
    """Result of one discover-validate-select loop."""

    success: bool
    attempts: int
    place: Optional[ValidatedPlace] = None
    reasoning: Optional[str] = None
    confidence: Optional[float] = None
    score: Optional[float] = None
    alternatives: int = 0
    reason: Optional[str] = None
    fallback: bool = False
