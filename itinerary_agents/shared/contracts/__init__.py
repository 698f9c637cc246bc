"""
Contracts exchanged between the discovery, validation and selection
stages and the phase runner.
"""

from itinerary_agents.shared.contracts.trip import TripPreferences, TripRequest
from itinerary_agents.shared.contracts.discovery import (
    Coordinates,
    DiscoveryCandidate,
    DiscoveryRequest,
    DiscoveryResult,
    DiscoveryStrategy,
    TimeWindow,
)
from itinerary_agents.shared.contracts.validation import (
    AvailabilityCheck,
    PlaceLookup,
    SchedulingContext,
    ValidatedPlace,
    ValidationResult,
)
from itinerary_agents.shared.contracts.selection import (
    DiscoveryOutcome,
    SelectionOutcome,
    SelectionScore,
)

__all__ = [
    "TripPreferences",
    "TripRequest",
    "Coordinates",
    "DiscoveryCandidate",
    "DiscoveryRequest",
    "DiscoveryResult",
    "DiscoveryStrategy",
    "TimeWindow",
    "AvailabilityCheck",
    "PlaceLookup",
    "SchedulingContext",
    "ValidatedPlace",
    "ValidationResult",
    "DiscoveryOutcome",
    "SelectionOutcome",
    "SelectionScore",
]
