"""
Discovery contracts.

Defines the request a discovery attempt is made for, the strategy built
from the shared context, and the unvalidated candidates returned by the
knowledge source.
"""

import re
import time
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


_CLOCK_TIME = re.compile(r"([01]\d|2[0-3]):[0-5]\d")

MINUTES_PER_DAY = 24 * 60


class Coordinates(BaseModel):
    """A latitude/longitude pair."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class TimeWindow(BaseModel):
    """
    A scheduling window within one day, in 24h HH:MM.

    A window whose end is earlier than its start runs past midnight.
    """

    start: str = Field(description="Window start (HH:MM)")
    end: str = Field(description="Window end (HH:MM)")

    @field_validator("start", "end")
    @classmethod
    def _check_clock_time(cls, v: str) -> str:
        if not _CLOCK_TIME.fullmatch(v):
            raise ValueError(f"expected HH:MM between 00:00 and 23:59, got {v!r}")
        return v

    @model_validator(mode="after")
    def _check_not_empty(self) -> "TimeWindow":
        if self.start == self.end:
            raise ValueError("time window start and end are equal")
        return self

    @staticmethod
    def _minutes(value: str) -> int:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)

    @property
    def start_hour(self) -> int:
        return int(self.start.split(":")[0])

    def duration_minutes(self) -> int:
        """Length of the window in minutes, wrapping past midnight."""
        return (self._minutes(self.end) - self._minutes(self.start)) % MINUTES_PER_DAY


class DiscoveryRequest(BaseModel):
    """
    One slot to fill: a city, a time window and what the slot is for.

    The feedback flags are set by the orchestrator after a failed
    validation round and are read back by the strategy builder.
    """

    city: str = Field(description="City to discover in")
    time_window: TimeWindow
    day_theme: str = Field(default="", description="Theme of the day")
    day_of_week: Optional[str] = Field(default=None, description="e.g. 'Monday'")
    date: Optional[str] = Field(default=None, description="Date (YYYY-MM-DD)")
    purpose: Optional[str] = Field(default=None, description="What the window is for")
    category: Literal["activity", "restaurant"] = "activity"

    # Feedback-loop adjustments
    emphasize_opening_hours: bool = False
    require_open_confirmation: bool = False
    require_exact_address: bool = False
    prefer_well_known: bool = False
    avoid_generic_names: bool = False
    require_unique_identifiers: bool = False
    updated_constraints: List[str] = Field(default_factory=list)


class DiscoveryStrategy(BaseModel):
    """Constraints, preferences and avoidances derived from the shared context."""

    focus: Optional[str] = None
    constraints: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)
    avoidance: List[str] = Field(default_factory=list)
    reasoning: str = ""


class DiscoveryCandidate(BaseModel):
    """An unvalidated suggestion naming a real-world place."""

    name: str = Field(min_length=1)
    type: str = Field(default="general", description="museum, outdoor, restaurant, ...")
    address: str = Field(min_length=1)
    estimated_duration: Optional[int] = Field(default=None, description="Minutes")
    estimated_cost: Optional[float] = Field(default=None, ge=0)
    energy_level: Optional[str] = Field(default=None, description="relaxed, moderate, high")
    opening_hours: Optional[str] = None
    why_recommended: str = ""
    strategic_fit: Literal["low", "medium", "high"] = "medium"
    city: Optional[str] = None
    source: str = "knowledge_source"
    discovered_at: float = Field(default_factory=time.time)


class DiscoveryResult(BaseModel):
    """Output of one discovery attempt."""

    candidates: List[DiscoveryCandidate] = Field(default_factory=list)
    strategy: DiscoveryStrategy
    reasoning: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
