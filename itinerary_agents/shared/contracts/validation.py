"""
Validation contracts.

Defines what the authoritative place validator returns and the
per-candidate result the validation stage hands to selection.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from itinerary_agents.shared.contracts.discovery import Coordinates, DiscoveryCandidate


class ValidatedPlace(BaseModel):
    """A candidate enriched with authoritative place data."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: str = "general"
    address: Optional[str] = None
    estimated_duration: Optional[int] = None
    estimated_cost: Optional[float] = None
    energy_level: Optional[str] = None
    opening_hours: Optional[str] = None
    city: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    quality_score: Optional[float] = Field(
        default=None, ge=0, description="Validator quality estimate, 0..1"
    )
    verified_name: Optional[str] = None
    place_id: Optional[str] = None

    @classmethod
    def from_candidate(
        cls,
        candidate: DiscoveryCandidate,
        overlay: Optional[Dict[str, Any]] = None,
    ) -> "ValidatedPlace":
        """
        Build a place from a candidate, overlaid with validator data.

        The candidate's name is kept as the cache key even when the
        validator reports a differently spelled ``verified_name``.
        """
        data = candidate.model_dump(
            include={
                "name", "type", "address", "estimated_duration",
                "estimated_cost", "energy_level", "opening_hours", "city",
            }
        )
        for key, value in (overlay or {}).items():
            if value is not None and key != "name":
                data[key] = value
        return cls.model_validate(data)


class PlaceLookup(BaseModel):
    """Return value of PlaceValidator.validate."""

    valid: bool
    confidence: float = Field(default=0.0, ge=0, le=1)
    status: Optional[str] = Field(
        default=None, description="validated, not_found, ambiguous, closed, ..."
    )
    place: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None


class AvailabilityCheck(BaseModel):
    """Whether a place is open at the scheduled time."""

    status: bool = Field(description="True when open at the scheduled time")
    confidence: float = Field(default=0.0, ge=0, le=1)
    reason: Optional[str] = None


class SchedulingContext(BaseModel):
    """When a candidate would be visited."""

    run_id: Optional[str] = None
    date: Optional[str] = Field(default=None, description="YYYY-MM-DD")
    scheduled_time: Optional[str] = Field(default=None, description="HH:MM")

    @property
    def has_datetime(self) -> bool:
        return bool(self.date and self.scheduled_time)

    def scheduled_datetime(self) -> Optional[datetime]:
        if not self.has_datetime:
            return None
        return datetime.strptime(f"{self.date} {self.scheduled_time}", "%Y-%m-%d %H:%M")


class ValidationResult(BaseModel):
    """Per-candidate validation verdict."""

    candidate: DiscoveryCandidate
    valid: bool
    confidence: float = Field(default=0.0, ge=0, le=1)
    status: str = "validated"
    place: Optional[ValidatedPlace] = None
    availability: Optional[AvailabilityCheck] = None
    reason: Optional[str] = None
