"""
Failure analysis for the feedback loop.

After a validation round with no valid candidate, classify why each
candidate failed and turn that into request adjustments for the next
discovery round.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from itinerary_agents.shared.contracts.discovery import DiscoveryRequest
from itinerary_agents.shared.contracts.validation import ValidationResult


# suggestion -> (request flag, human-readable constraint)
SUGGESTION_ADJUSTMENTS = {
    "emphasize_opening_hours": ("emphasize_opening_hours", "Emphasize opening hours verification"),
    "require_open_confirmation": ("require_open_confirmation", "Require explicit confirmation place is open"),
    "require_exact_address": ("require_exact_address", "Require exact street address"),
    "prefer_well_known": ("prefer_well_known", "Prefer well-known, established venues"),
    "avoid_generic_names": ("avoid_generic_names", "Avoid generic activity descriptions"),
    "require_unique_identifiers": ("require_unique_identifiers", "Include unique identifying details"),
}


@dataclass
class CandidateFailure:
    name: str
    reason: str


@dataclass
class FailureAnalysis:
    """
    Why a validation round produced nothing usable.

    Failures fall into three buckets; a failure may match none of them
    (e.g. status ``error``) and still be recorded in ``failures``.
    """

    failures: List[CandidateFailure] = field(default_factory=list)
    closed: List[CandidateFailure] = field(default_factory=list)
    not_found: List[CandidateFailure] = field(default_factory=list)
    ambiguous: List[CandidateFailure] = field(default_factory=list)
    feedback: str = ""
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "failures": [f.__dict__ for f in self.failures],
            "closed": len(self.closed),
            "not_found": len(self.not_found),
            "ambiguous": len(self.ambiguous),
            "feedback": self.feedback,
            "suggestions": list(self.suggestions),
        }


def _failure_reason(result: ValidationResult) -> str:
    return result.status or result.reason or "unknown"


def analyze_validation_failures(results: List[ValidationResult]) -> FailureAnalysis:
    """
    Classify invalid results into closed, not-found and ambiguous buckets.

    Args:
        results: Results of one validation round

    Returns:
        FailureAnalysis with the derived suggestions, in a fixed order
    """
    analysis = FailureAnalysis()

    for result in results:
        if result.valid:
            continue
        failure = CandidateFailure(name=result.candidate.name, reason=_failure_reason(result))
        analysis.failures.append(failure)

        reason = failure.reason.lower()
        if "closed" in reason or "unavailable" in reason:
            analysis.closed.append(failure)
        if reason == "not_found":
            analysis.not_found.append(failure)
        if reason == "ambiguous" or "confidence" in reason:
            analysis.ambiguous.append(failure)

    feedback_parts = []
    if analysis.closed:
        feedback_parts.append(f"{len(analysis.closed)} places closed at scheduled time.")
        analysis.suggestions += ["emphasize_opening_hours", "require_open_confirmation"]
    if analysis.not_found:
        feedback_parts.append(f"{len(analysis.not_found)} places not found.")
        analysis.suggestions += ["require_exact_address", "prefer_well_known"]
    if analysis.ambiguous:
        feedback_parts.append(f"{len(analysis.ambiguous)} places had low confidence matches.")
        analysis.suggestions += ["avoid_generic_names", "require_unique_identifiers"]

    analysis.feedback = " ".join(feedback_parts) or "Unknown validation failures"
    return analysis


def update_request_with_feedback(
    request: DiscoveryRequest,
    analysis: FailureAnalysis,
) -> DiscoveryRequest:
    """
    Return a copy of the request with the analysis' suggestions applied.

    Each suggestion sets its request flag and appends its constraint text
    to ``updated_constraints`` once.
    """
    update: Dict[str, Any] = {}
    constraints = list(request.updated_constraints)

    for suggestion in analysis.suggestions:
        adjustment = SUGGESTION_ADJUSTMENTS.get(suggestion)
        if adjustment is None:
            continue
        flag, text = adjustment
        update[flag] = True
        if text not in constraints:
            constraints.append(text)

    update["updated_constraints"] = constraints
    return request.model_copy(update=update)
