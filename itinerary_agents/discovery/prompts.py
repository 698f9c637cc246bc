"""
Prompt builders for the LLM knowledge source.

Construct the messages sent to the LLM from a discovery request and the
strategy built for it.
"""

from typing import Dict, List

from itinerary_agents.discovery.strategy import humanize_constraint, humanize_preference
from itinerary_agents.shared.contracts.discovery import DiscoveryRequest, DiscoveryStrategy


SYSTEM_PROMPT = (
    "You are a strategic travel discovery agent. Return ONLY valid JSON with "
    "multiple candidate options, no markdown, no code blocks, no explanations."
)

DISCOVERY_PROMPT_TEMPLATE = """You are a {travel_style} travel expert discovering {category} CANDIDATES for {city}.

CONTEXT:
- Time window: {window_start} - {window_end}
- Day: {day_of_week}, {date}
- Day theme: {day_theme}
- Window purpose: {purpose}

STRATEGY:
{reasoning}
{constraints_text}{preferences_text}{avoidance_text}

YOUR TASK:
Find {min_candidates}-{max_candidates} CANDIDATE places (options for selection, not a single answer).
Each must be a REAL, SPECIFIC place with an exact address, open during the time window.

OUTPUT FORMAT (JSON only):
{{"candidates": [{{"name": "...", "type": "museum", "address": "...",
  "estimated_duration": 120, "estimated_cost": 8, "energy_level": "relaxed",
  "opening_hours": "...", "why_recommended": "...", "strategic_fit": "high"}}]}}
"""


def _section(title: str, lines: List[str]) -> str:
    if not lines:
        return ""
    return f"\n\n{title}:\n" + "\n".join(f"- {line}" for line in lines)


def build_discovery_prompt(
    request: DiscoveryRequest,
    strategy: DiscoveryStrategy,
    travel_style: str,
    max_candidates: int = 5,
    avoidance_limit: int = 10,
) -> str:
    """
    Build the user prompt for one discovery call.

    Args:
        request: The slot being filled
        strategy: Strategy built for the request
        travel_style: Travel-style tag of the run
        max_candidates: Upper bound on requested candidates
        avoidance_limit: Avoidance entries rendered (newest are kept)

    Returns:
        Prompt string
    """
    avoid = [a for a in strategy.avoidance if "/" not in a][-avoidance_limit:]

    return DISCOVERY_PROMPT_TEMPLATE.format(
        travel_style=travel_style,
        category=request.category,
        city=request.city,
        window_start=request.time_window.start,
        window_end=request.time_window.end,
        day_of_week=request.day_of_week or "unspecified day",
        date=request.date or "unspecified date",
        day_theme=request.day_theme or "general",
        purpose=request.purpose or "General activities",
        reasoning=strategy.reasoning,
        constraints_text=_section(
            "CRITICAL CONSTRAINTS (MUST follow)",
            [humanize_constraint(c) for c in strategy.constraints],
        ),
        preferences_text=_section(
            "PREFERENCES (strongly favor)",
            [humanize_preference(p) for p in strategy.preferences],
        ),
        avoidance_text=_section("AVOID", avoid),
        min_candidates=min(3, max_candidates),
        max_candidates=max_candidates,
    )


def build_discovery_messages(
    request: DiscoveryRequest,
    strategy: DiscoveryStrategy,
    travel_style: str,
    max_candidates: int = 5,
    avoidance_limit: int = 10,
) -> List[Dict[str, str]]:
    """System + user messages for the chat completion call."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": build_discovery_prompt(
                request, strategy, travel_style, max_candidates, avoidance_limit
            ),
        },
    ]
