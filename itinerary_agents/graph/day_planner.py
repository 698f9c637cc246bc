"""
Day structure planning.

The first phase of a run decides, for every trip day, the city, a theme
and the time slots to fill. Later phases discover places for those slots.
MockDayPlanner produces a hardcoded but contextually aware structure for
running the pipeline without LLM calls.
"""

from datetime import datetime
from typing import List, Literal, Protocol

from pydantic import BaseModel, Field

from itinerary_agents.shared.contracts.discovery import TimeWindow
from itinerary_agents.shared.contracts.trip import TripRequest


class TimeSlot(BaseModel):
    """One window of a day to fill with an activity or a meal."""

    slot_id: str = Field(description="Unique id, e.g. 'd2_s3'")
    category: Literal["activity", "restaurant"]
    time_window: TimeWindow
    purpose: str = Field(description="What the window is for")


class DayStructure(BaseModel):
    day_number: int
    date: str = Field(description="YYYY-MM-DD")
    day_of_week: str
    city: str
    theme: str
    slots: List[TimeSlot] = Field(default_factory=list)


class ItineraryStructure(BaseModel):
    """Skeleton of the itinerary produced by the day planner."""

    trip_title: str
    days: List[DayStructure] = Field(default_factory=list)
    metadata: dict = Field(default_factory=dict)

    @property
    def slot_count(self) -> int:
        return sum(len(day.slots) for day in self.days)


class DayPlanner(Protocol):
    async def plan(self, trip: TripRequest) -> ItineraryStructure:
        ...


DAY_THEMES = [
    "Arrival & Exploration",
    "Cultural Immersion",
    "Adventure Day",
    "Local Experience",
    "Nature & Relaxation",
    "Hidden Gems",
    "Departure Day",
]

# (category, start, end, purpose); pace decides how many are used
_SLOT_TEMPLATES = [
    ("activity", "09:00", "11:30", "Morning sightseeing"),
    ("restaurant", "12:30", "13:30", "Lunch"),
    ("activity", "14:30", "17:00", "Afternoon activity"),
    ("activity", "17:30", "18:45", "Early evening stroll"),
    ("restaurant", "19:30", "21:00", "Dinner"),
]

_PACE_SLOTS = {
    "relaxed": (0, 1, 4),
    "moderate": (0, 1, 2, 4),
    "packed": (0, 1, 2, 3, 4),
}


def _theme_for(day_number: int, total_days: int) -> str:
    if day_number == 1:
        return DAY_THEMES[0]
    if day_number == total_days:
        return DAY_THEMES[-1]
    return DAY_THEMES[((day_number - 1) % (len(DAY_THEMES) - 2)) + 1]


class MockDayPlanner:
    """Deterministic day planner: cities split evenly, themes rotated."""

    async def plan(self, trip: TripRequest) -> ItineraryStructure:
        cities = trip.itinerary_cities()
        total_days = trip.total_days
        slot_indexes = _PACE_SLOTS.get(trip.preferences.pace, _PACE_SLOTS["moderate"])

        days = []
        for day_number, day_date in enumerate(trip.days(), start=1):
            city_idx = min((day_number - 1) * len(cities) // total_days, len(cities) - 1)

            slots = []
            for index in slot_indexes:
                category, start, end, purpose = _SLOT_TEMPLATES[index]
                # Arrival day starts after lunch; departure day ends with it
                if total_days > 1 and day_number == 1 and start < "12:00":
                    continue
                if total_days > 1 and day_number == total_days and start > "14:00":
                    continue
                slots.append(
                    TimeSlot(
                        slot_id=f"d{day_number}_s{len(slots) + 1}",
                        category=category,
                        time_window=TimeWindow(start=start, end=end),
                        purpose=purpose,
                    )
                )

            days.append(
                DayStructure(
                    day_number=day_number,
                    date=day_date.isoformat(),
                    day_of_week=day_date.strftime("%A"),
                    city=cities[city_idx],
                    theme=_theme_for(day_number, total_days),
                    slots=slots,
                )
            )

        return ItineraryStructure(
            trip_title=f"{trip.destination}: {total_days}-Day Journey",
            days=days,
            metadata={
                "data_source": "mock",
                "generated_at": datetime.now().isoformat(),
            },
        )
