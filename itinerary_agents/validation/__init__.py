"""
Validation of discovered candidates against an authoritative source.
"""

from itinerary_agents.validation.stage import (
    PlaceValidator,
    ValidationConfig,
    ValidationStage,
    DEFAULT_VALIDATION_CONFIG,
)

__all__ = [
    "PlaceValidator",
    "ValidationConfig",
    "ValidationStage",
    "DEFAULT_VALIDATION_CONFIG",
]
