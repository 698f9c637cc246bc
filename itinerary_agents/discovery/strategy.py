"""
Discovery strategy building.

Turns the shared context plus a discovery request into named hard
constraints, soft preferences and an avoidance list. Rules run in a fixed
order and only ever add to what earlier rules produced.
"""

from typing import List

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.shared.contracts.discovery import DiscoveryRequest, DiscoveryStrategy


LOW_BUDGET_REMAINING = 100
BUDGET_VALUE_PERCENT = 70
EARLY_START_HOUR = 10
EVENING_START_HOUR = 19
ENERGY_BALANCE_MARGIN = 1
SHORT_WINDOW_MINUTES = 90
LONG_WINDOW_MINUTES = 240

# Days on which many venues close
DAY_OPEN_CONSTRAINTS = {
    "Monday": ("must_be_open_monday", "Monday - many museums closed, need open venues"),
    "Sunday": ("must_be_open_sunday", "Sunday - verifying opening hours crucial"),
}

# Request flags set by the feedback loop -> hard constraint tags
FEEDBACK_FLAG_CONSTRAINTS = (
    ("emphasize_opening_hours", "verify_opening_hours"),
    ("require_open_confirmation", "must_confirm_open"),
    ("require_exact_address", "must_have_address"),
    ("prefer_well_known", "well_known_only"),
    ("avoid_generic_names", "no_generic_names"),
    ("require_unique_identifiers", "unique_identifiers"),
)

_CONSTRAINT_TEXT = {
    "free_or_low_cost": "Must be free or under 10 EUR",
    "must_be_open_monday": "MUST be open on Monday (many museums closed)",
    "must_be_open_sunday": "MUST be open on Sunday",
    "short_duration": "Must be completable in under 90 minutes",
    "must_have_address": "Must provide exact street address",
    "verify_opening_hours": "Opening hours must be verified for the scheduled day",
    "must_confirm_open": "Must be confirmed open during the time window",
    "well_known_only": "Prefer well-known, established venues",
    "no_generic_names": "No generic activity descriptions",
    "unique_identifiers": "Include unique identifying details",
}

_PREFERENCE_TEXT = {
    "early_opening": "Opens before 10 AM",
    "breakfast_friendly": "Suitable for morning visits",
    "evening_activity": "Available in evening hours",
    "night_life": "Evening/nighttime venue",
    "relaxed": "Low energy, leisurely pace",
    "leisurely": "Calm, unhurried experience",
    "active": "Engaging, dynamic activity",
    "engaging": "Interesting, interactive",
    "good_value": "High quality for reasonable price",
    "free": "Free admission preferred",
    "under_10_euros": "Under 10 EUR entrance fee",
    "nearby_previous": "Close to previous location (walking distance)",
    "substantial": "Can occupy 3+ hours",
    "immersive": "Deep, thorough experience",
}


def humanize_constraint(constraint: str) -> str:
    """Prompt phrase for a constraint tag (the tag itself if unknown)."""
    return _CONSTRAINT_TEXT.get(constraint, constraint)


def humanize_preference(preference: str) -> str:
    """Prompt phrase for a preference tag (the tag itself if unknown)."""
    return _PREFERENCE_TEXT.get(preference, preference)


def _extend_unique(target: List[str], values: List[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def build_discovery_strategy(
    context: SharedContext,
    request: DiscoveryRequest,
) -> DiscoveryStrategy:
    """
    Build the discovery strategy for one request.

    Rules, in order:
        1. diversification   6. travel style
        2. budget            7. previously invalid places
        3. time of day       8. proximity to last location
        4. day of week       9. window duration
        5. energy balance   10. feedback-loop adjustments

    Args:
        context: Shared context of the run
        request: The slot being filled

    Returns:
        DiscoveryStrategy with ``reasoning`` listing every triggered rule
    """
    strategy = DiscoveryStrategy()
    reasoning_parts: List[str] = []

    # 1. Diversification
    diversification = context.needs_diversification()
    if diversification.needs_diversification:
        _extend_unique(strategy.avoidance, [diversification.overrepresented_type])
        strategy.focus = "diversify"
        reasoning_parts.append(diversification.suggestion)

    # 2. Budget awareness
    budget = context.get_budget_status()
    if budget.remaining is not None:
        if budget.remaining < LOW_BUDGET_REMAINING:
            _extend_unique(strategy.constraints, ["free_or_low_cost"])
            _extend_unique(strategy.preferences, ["free", "under_10_euros"])
            reasoning_parts.append("Low budget remaining - prioritizing free/cheap activities")
        elif budget.percent_used is not None and budget.percent_used >= BUDGET_VALUE_PERCENT:
            _extend_unique(strategy.preferences, ["good_value"])
            reasoning_parts.append(f"Budget {BUDGET_VALUE_PERCENT}% used - seeking value")

    # 3. Time of day
    start_hour = request.time_window.start_hour
    if start_hour < EARLY_START_HOUR:
        _extend_unique(strategy.preferences, ["early_opening", "breakfast_friendly"])
        _extend_unique(strategy.avoidance, ["late_opening"])
        reasoning_parts.append("Early morning - need early-opening venues")
    elif start_hour >= EVENING_START_HOUR:
        _extend_unique(strategy.preferences, ["evening_activity", "night_life"])
        reasoning_parts.append("Evening - seeking nighttime activities")

    # 4. Day of week
    day_rule = DAY_OPEN_CONSTRAINTS.get(request.day_of_week or "")
    if day_rule:
        constraint, explanation = day_rule
        _extend_unique(strategy.constraints, [constraint])
        reasoning_parts.append(explanation)

    # 5. Energy balancing
    energy = context.statistics.energy_level_count
    high = energy.get("high", 0)
    relaxed = energy.get("relaxed", 0)
    if high > relaxed + ENERGY_BALANCE_MARGIN:
        _extend_unique(strategy.preferences, ["relaxed", "leisurely"])
        _extend_unique(strategy.avoidance, ["strenuous", "high_energy"])
        reasoning_parts.append("Balancing energy - need relaxed activity")
    elif relaxed > high + ENERGY_BALANCE_MARGIN:
        _extend_unique(strategy.preferences, ["active", "engaging"])
        reasoning_parts.append("Adding active element for variety")

    # 6. Travel style
    _extend_unique(strategy.preferences, [f"{context.constraints.travel_style}_style"])

    # 7. Learn from failures
    invalid_places = context.get_invalid_places(city=request.city)
    if invalid_places:
        _extend_unique(strategy.avoidance, invalid_places)
        reasoning_parts.append(f"Avoiding {len(invalid_places)} previously failed places")

    # 8. Location continuity
    if context.get_last_location() is not None:
        _extend_unique(strategy.preferences, ["nearby_previous"])
        reasoning_parts.append("Preferring locations near previous activity")

    # 9. Window duration
    window_minutes = request.time_window.duration_minutes()
    if window_minutes < SHORT_WINDOW_MINUTES:
        _extend_unique(strategy.constraints, ["short_duration"])
        reasoning_parts.append(f"Short window ({window_minutes}min) - need quick activities")
    elif window_minutes > LONG_WINDOW_MINUTES:
        _extend_unique(strategy.preferences, ["substantial", "immersive"])
        reasoning_parts.append(f"Long window ({window_minutes}min) - can do immersive activities")

    # 10. Feedback from failed validation rounds
    feedback_constraints = [
        tag for flag, tag in FEEDBACK_FLAG_CONSTRAINTS if getattr(request, flag)
    ]
    if feedback_constraints:
        _extend_unique(strategy.constraints, feedback_constraints)
        reasoning_parts.append(
            f"Applying {len(feedback_constraints)} adjustments from failed validation"
        )

    strategy.reasoning = (
        "; ".join(reasoning_parts)
        if reasoning_parts
        else "Standard discovery with no special constraints"
    )
    return strategy
