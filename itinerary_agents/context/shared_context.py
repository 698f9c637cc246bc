"""
Shared context: the per-run knowledge base all agents coordinate through.

One SharedContext is created when an itinerary-generation run starts and
discarded when it ends. Every stage (discovery, validation, selection, the
feedback loop and the phase runner's tasks) receives it explicitly.

Tasks of a parallel phase share the instance. They all run on one event
loop, so each individual update below is atomic; a read followed by a
write across an ``await`` is not (see ``needs_diversification``).
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from itinerary_agents.shared.contracts.discovery import Coordinates
from itinerary_agents.shared.contracts.trip import TripPreferences, TripRequest
from itinerary_agents.shared.contracts.validation import ValidatedPlace


logger = logging.getLogger(__name__)

DIVERSIFICATION_TYPE_THRESHOLD = 3
DIVERSIFICATION_MIN_ACTIVITIES = 5
ENERGY_IMBALANCE_THRESHOLD = 2

SUMMARY_PHASES = ("discovery", "validation", "selection", "feedback")


@dataclass
class BudgetConstraint:
    total: Optional[float] = None
    remaining: Optional[float] = None


@dataclass
class TimeConstraint:
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    total_days: int = 0


@dataclass
class TripConstraints:
    """Hard constraints for the run. Only ``budget.remaining`` changes after init."""

    budget: BudgetConstraint = field(default_factory=BudgetConstraint)
    time: TimeConstraint = field(default_factory=TimeConstraint)
    cities: List[str] = field(default_factory=list)
    travel_style: str = "best-overall"


@dataclass
class ScheduleState:
    """Run-scoped counters, updated as the itinerary is built."""

    current_day: int = 0
    current_city: Optional[str] = None
    activities_scheduled: int = 0
    restaurants_scheduled: int = 0
    budget_spent: float = 0.0
    last_location: Optional[Coordinates] = None
    last_activity_time: Optional[str] = None


@dataclass
class ScheduleStatistics:
    activity_type_count: Dict[str, int] = field(default_factory=dict)
    energy_level_count: Dict[str, int] = field(default_factory=dict)


@dataclass
class BudgetStatus:
    total: Optional[float]
    spent: float
    remaining: Optional[float]
    percent_used: Optional[float]


@dataclass
class DiversificationAdvice:
    needs_diversification: bool
    overrepresented_type: Optional[str] = None
    count: Optional[int] = None
    suggestion: Optional[str] = None


class SharedContext:
    """
    Central knowledge base for one itinerary-generation run.

    Holds the trip constraints, the schedule state, the positive and
    negative place caches, diversification statistics, and the
    append-only decision and communication logs.
    """

    def __init__(
        self,
        run_id: str,
        constraints: Optional[TripConstraints] = None,
        preferences: Optional[TripPreferences] = None,
        city_scoped_negative_cache: bool = False,
    ):
        self.run_id = run_id
        self.constraints = constraints or TripConstraints()
        self.preferences = preferences or TripPreferences()
        self.city_scoped_negative_cache = city_scoped_negative_cache

        self.state = ScheduleState()
        self.statistics = ScheduleStatistics()

        # name -> {"place", "timestamp", "used_in_itinerary"}
        self.validated_places: Dict[str, Dict[str, Any]] = {}
        # cache key -> {"name", "reason", "city", "timestamp"}
        self.invalid_places: Dict[str, Dict[str, Any]] = {}

        self.decisions: List[Dict[str, Any]] = []
        self.communications: List[Dict[str, Any]] = []

        self.start_time = time.time()

    @classmethod
    def from_trip(
        cls,
        run_id: str,
        trip: TripRequest,
        city_scoped_negative_cache: bool = False,
    ) -> "SharedContext":
        """Create a context with constraints taken from the trip request."""
        budget_total = trip.preferences.budget_total
        constraints = TripConstraints(
            budget=BudgetConstraint(total=budget_total, remaining=budget_total),
            time=TimeConstraint(
                start_date=trip.start_date,
                end_date=trip.end_date,
                total_days=trip.total_days,
            ),
            cities=trip.itinerary_cities(),
            travel_style=trip.preferences.travel_style,
        )
        return cls(
            run_id,
            constraints=constraints,
            preferences=trip.preferences.model_copy(deep=True),
            city_scoped_negative_cache=city_scoped_negative_cache,
        )

    def _elapsed_ms(self) -> float:
        return round((time.time() - self.start_time) * 1000, 1)

    # ========== DECISION LOGGING ==========

    def record_decision(
        self,
        phase: str,
        reasoning: Optional[str] = None,
        alternatives: Optional[List[Dict[str, Any]]] = None,
        agent: Optional[str] = None,
        **details: Any,
    ) -> Dict[str, Any]:
        """
        Append a decision made by any stage and return the stored record.

        Ids increase monotonically in the order calls complete.
        """
        record = {
            "id": len(self.decisions) + 1,
            "timestamp": time.time(),
            "elapsed_ms": self._elapsed_ms(),
            "run_id": self.run_id,
            "phase": phase,
            "agent": agent,
            "reasoning": reasoning,
            "alternatives": alternatives or [],
            **details,
        }
        self.decisions.append(record)

        logger.debug(
            f"[run={self.run_id}] Decision #{record['id']}: {phase} - "
            f"{reasoning or 'see details'}"
        )
        return record

    def get_decisions_by_phase(self, phase: str) -> List[Dict[str, Any]]:
        return [d for d in self.decisions if d["phase"] == phase]

    def get_decision_history(self) -> List[Dict[str, Any]]:
        return list(self.decisions)

    async def persist_decisions(self, store: Any) -> int:
        """
        Write the decision log to a run store for audit.

        Store failures are logged and stop the flush; they never fail the run.

        Returns:
            Number of decisions written
        """
        written = 0
        try:
            for decision in self.decisions:
                await store.record_decision(self.run_id, decision)
                written += 1
        except Exception as e:
            logger.warning(
                f"[run={self.run_id}] Failed to persist decisions after "
                f"{written}/{len(self.decisions)}: {e}"
            )
        return written

    # ========== AGENT COMMUNICATION ==========

    def log_communication(
        self,
        sender: str,
        recipient: str,
        message: str,
        data: Optional[Any] = None,
    ) -> Dict[str, Any]:
        """Record a message passed between agents."""
        comm = {
            "id": len(self.communications) + 1,
            "timestamp": time.time(),
            "from": sender,
            "to": recipient,
            "message": message,
            "data": data,
        }
        self.communications.append(comm)
        logger.debug(f"[run={self.run_id}] {sender} -> {recipient}: {message}")
        return comm

    def get_communications(self) -> List[Dict[str, Any]]:
        return list(self.communications)

    # ========== PLACE MANAGEMENT ==========

    def _invalid_key(self, name: str, city: Optional[str]) -> str:
        if self.city_scoped_negative_cache and city:
            return f"{city.strip().lower()}::{name}"
        return name

    def has_tried_place(self, name: str, city: Optional[str] = None) -> bool:
        return name in self.validated_places or self.is_place_invalid(name, city)

    def get_validated_place(self, name: str) -> Optional[ValidatedPlace]:
        entry = self.validated_places.get(name)
        return entry["place"] if entry else None

    def add_validated_place(self, place: ValidatedPlace) -> bool:
        """
        Cache a validated place.

        A place in the negative cache is not displaced by a later valid
        result; call ``clear_invalid_place`` first.

        Returns:
            True if the place is now cached as valid
        """
        if self.is_place_invalid(place.name, place.city):
            logger.info(
                f"[run={self.run_id}] Not caching '{place.name}' as valid: "
                f"marked invalid ({self.get_invalid_reason(place.name, place.city)})"
            )
            return False

        self.validated_places[place.name] = {
            "place": place,
            "timestamp": time.time(),
            "used_in_itinerary": False,
        }
        logger.info(f"[run={self.run_id}] Added validated place: {place.name}")
        return True

    def mark_place_invalid(self, name: str, reason: str, city: Optional[str] = None) -> None:
        """Put a place in the negative cache for the rest of the run."""
        self.invalid_places[self._invalid_key(name, city)] = {
            "name": name,
            "reason": reason,
            "city": city,
            "timestamp": time.time(),
        }
        logger.info(f"[run={self.run_id}] Marked place invalid: {name} ({reason})")

    def is_place_invalid(self, name: str, city: Optional[str] = None) -> bool:
        return self._invalid_key(name, city) in self.invalid_places

    def get_invalid_reason(self, name: str, city: Optional[str] = None) -> Optional[str]:
        entry = self.invalid_places.get(self._invalid_key(name, city))
        return entry["reason"] if entry else None

    def get_invalid_places(self, city: Optional[str] = None) -> List[str]:
        """
        Names in the negative cache.

        With a city-scoped cache and a ``city`` given, only entries for
        that city (or entries recorded without a city) are returned.
        """
        names = []
        for entry in self.invalid_places.values():
            if self.city_scoped_negative_cache and city and entry["city"]:
                if entry["city"].strip().lower() != city.strip().lower():
                    continue
            if entry["name"] not in names:
                names.append(entry["name"])
        return names

    def clear_invalid_place(self, name: str, city: Optional[str] = None) -> bool:
        return self.invalid_places.pop(self._invalid_key(name, city), None) is not None

    # ========== STATE MANAGEMENT ==========

    def update_budget(self, amount: float) -> BudgetStatus:
        """
        Add to the amount spent.

        Remaining budget may go negative; over-budget is reported, not blocked.
        """
        self.state.budget_spent += amount
        if self.constraints.budget.remaining is not None:
            self.constraints.budget.remaining -= amount

        logger.debug(
            f"[run={self.run_id}] Budget updated: +{amount}, "
            f"remaining={self.constraints.budget.remaining}"
        )
        return self.get_budget_status()

    def get_budget_status(self) -> BudgetStatus:
        total = self.constraints.budget.total
        spent = self.state.budget_spent
        return BudgetStatus(
            total=total,
            spent=spent,
            remaining=self.constraints.budget.remaining,
            percent_used=(spent / total * 100) if total else None,
        )

    def increment_activity_count(self) -> None:
        self.state.activities_scheduled += 1

    def increment_restaurant_count(self) -> None:
        self.state.restaurants_scheduled += 1

    def update_last_location(self, coordinates: Coordinates) -> None:
        self.state.last_location = coordinates

    def get_last_location(self) -> Optional[Coordinates]:
        return self.state.last_location

    def update_last_activity_time(self, value: str) -> None:
        self.state.last_activity_time = value

    def set_current_day(self, day: int, city: Optional[str]) -> None:
        self.state.current_day = day
        self.state.current_city = city

    # ========== STATISTICS & ANALYSIS ==========

    def track_activity_type(self, activity_type: str) -> None:
        counts = self.statistics.activity_type_count
        counts[activity_type] = counts.get(activity_type, 0) + 1

    def track_energy_level(self, level: str) -> None:
        counts = self.statistics.energy_level_count
        counts[level] = counts.get(level, 0) + 1

    def get_schedule_statistics(self) -> Dict[str, Any]:
        return {
            "total_activities": self.state.activities_scheduled,
            "total_restaurants": self.state.restaurants_scheduled,
            "activity_type_breakdown": dict(self.statistics.activity_type_count),
            "energy_level_breakdown": dict(self.statistics.energy_level_count),
            "budget_status": asdict(self.get_budget_status()),
        }

    def needs_diversification(self) -> DiversificationAdvice:
        """
        Whether upcoming discovery should steer away from what is over-represented.

        The answer is advisory: concurrent slot discoveries may read it
        before a sibling's selection is tracked.
        """
        total = self.state.activities_scheduled
        for activity_type, count in self.statistics.activity_type_count.items():
            if count >= DIVERSIFICATION_TYPE_THRESHOLD and total > DIVERSIFICATION_MIN_ACTIVITIES:
                return DiversificationAdvice(
                    needs_diversification=True,
                    overrepresented_type=activity_type,
                    count=count,
                    suggestion=f"Avoid {activity_type} activities - already scheduled {count}",
                )

        high = self.statistics.energy_level_count.get("high", 0)
        relaxed = self.statistics.energy_level_count.get("relaxed", 0)
        if high > relaxed + ENERGY_IMBALANCE_THRESHOLD:
            return DiversificationAdvice(
                needs_diversification=True,
                overrepresented_type="high_energy",
                count=high,
                suggestion="Add more relaxed activities for balance",
            )

        return DiversificationAdvice(needs_diversification=False)

    # ========== EXPORT & REPORTING ==========

    def export(self) -> Dict[str, Any]:
        """Full context snapshot for debugging and audit."""
        return {
            "run_id": self.run_id,
            "constraints": asdict(self.constraints),
            "preferences": self.preferences.model_dump(),
            "state": {
                **asdict(self.state),
                "last_location": (
                    self.state.last_location.model_dump()
                    if self.state.last_location
                    else None
                ),
            },
            "statistics": asdict(self.statistics),
            "validated_places": {
                name: {**entry, "place": entry["place"].model_dump()}
                for name, entry in self.validated_places.items()
            },
            "invalid_places": dict(self.invalid_places),
            "decisions": self.get_decision_history(),
            "communications": self.get_communications(),
            "total_decisions": len(self.decisions),
            "total_communications": len(self.communications),
            "elapsed_ms": self._elapsed_ms(),
        }

    def generate_summary(self) -> Dict[str, Any]:
        """Compact run report."""
        stats = self.get_schedule_statistics()
        return {
            "run_id": self.run_id,
            "decisions": {
                "total": len(self.decisions),
                "by_phase": {
                    phase: len(self.get_decisions_by_phase(phase))
                    for phase in SUMMARY_PHASES
                },
            },
            "schedule": {
                "activities": stats["total_activities"],
                "restaurants": stats["total_restaurants"],
                "activity_types": stats["activity_type_breakdown"],
            },
            "budget": stats["budget_status"],
            "validated_places": len(self.validated_places),
            "invalid_places": len(self.invalid_places),
            "communications": len(self.communications),
            "elapsed_ms": self._elapsed_ms(),
        }
