"""
Trip request contract.

Defines the trip description and preferences an itinerary-generation
run starts from.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, Field


class TripPreferences(BaseModel):
    """Traveller preferences that shape discovery."""

    budget_total: Optional[float] = Field(
        default=None, ge=0, description="Total trip budget (None if untracked)"
    )
    travel_style: str = Field(
        default="best-overall", description="Travel-style tag (e.g. 'culture', 'foodie')"
    )
    pace: str = Field(
        default="moderate", description="Pace preference: relaxed, moderate, packed"
    )
    preferred_activity_types: List[str] = Field(default_factory=list)
    avoid_activity_types: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)


class TripRequest(BaseModel):
    """A multi-day, multi-city trip to build an itinerary for."""

    origin: Optional[str] = Field(default=None, description="Trip origin")
    destination: str = Field(description="Final destination")
    cities: List[str] = Field(
        default_factory=list, description="Cities visited, in order"
    )
    start_date: str = Field(description="Trip start date (YYYY-MM-DD)")
    end_date: str = Field(description="Trip end date (YYYY-MM-DD)")
    preferences: TripPreferences = Field(default_factory=TripPreferences)

    @property
    def total_days(self) -> int:
        start = datetime.strptime(self.start_date, "%Y-%m-%d").date()
        end = datetime.strptime(self.end_date, "%Y-%m-%d").date()
        return (end - start).days + 1

    def days(self) -> List[date]:
        """Calendar dates covered by the trip, first to last."""
        start = datetime.strptime(self.start_date, "%Y-%m-%d").date()
        return [start + timedelta(days=offset) for offset in range(self.total_days)]

    def itinerary_cities(self) -> List[str]:
        """Cities to plan for; falls back to the destination."""
        return list(self.cities) or [self.destination]
