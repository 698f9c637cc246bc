"""
Mock knowledge source.

Generates hardcoded but contextually aware candidates for running the
pipeline without LLM calls. Output depends only on the request and the
strategy, so repeated runs are reproducible.
"""

import logging
from typing import Dict, List

from itinerary_agents.shared.contracts.discovery import (
    DiscoveryCandidate,
    DiscoveryRequest,
    DiscoveryStrategy,
)


logger = logging.getLogger(__name__)


# Templates by category; names get the city prefixed
_ACTIVITY_TEMPLATES: List[Dict] = [
    {
        "name": "National Museum",
        "type": "museum",
        "estimated_duration": 150,
        "estimated_cost": 12,
        "energy_level": "relaxed",
        "opening_hours": "09:00-18:00",
        "why_recommended": "Comprehensive museum covering local history and art",
        "strategic_fit": "high",
    },
    {
        "name": "Old Town Walking Route",
        "type": "walking_tour",
        "estimated_duration": 90,
        "estimated_cost": 0,
        "energy_level": "moderate",
        "opening_hours": "00:00-23:59",
        "why_recommended": "Self-guided route through the historic centre",
        "strategic_fit": "medium",
    },
    {
        "name": "Riverside Park",
        "type": "outdoor",
        "estimated_duration": 60,
        "estimated_cost": 0,
        "energy_level": "relaxed",
        "opening_hours": "06:00-22:00",
        "why_recommended": "Green space for a slower hour between sights",
        "strategic_fit": "medium",
    },
    {
        "name": "Panorama Tower",
        "type": "viewpoint",
        "estimated_duration": 75,
        "estimated_cost": 9,
        "energy_level": "high",
        "opening_hours": "10:00-23:00",
        "why_recommended": "Climb for views over the whole city",
        "strategic_fit": "medium",
    },
    {
        "name": "Central Market",
        "type": "market",
        "estimated_duration": 90,
        "estimated_cost": 0,
        "energy_level": "moderate",
        "opening_hours": "07:00-14:00",
        "why_recommended": "Vibrant local market with street food and crafts",
        "strategic_fit": "low",
    },
    {
        "name": "Contemporary Art Gallery",
        "type": "gallery",
        "estimated_duration": 120,
        "estimated_cost": 8,
        "energy_level": "relaxed",
        "opening_hours": "11:00-19:00",
        "why_recommended": "Rotating exhibitions from regional artists",
        "strategic_fit": "medium",
    },
]

_RESTAURANT_TEMPLATES: List[Dict] = [
    {
        "name": "Local Flavors Bistro",
        "type": "restaurant",
        "estimated_duration": 90,
        "estimated_cost": 25,
        "energy_level": "relaxed",
        "opening_hours": "12:00-23:00",
        "why_recommended": "Highly rated regional cuisine",
        "strategic_fit": "high",
    },
    {
        "name": "Market Hall Eatery",
        "type": "restaurant",
        "estimated_duration": 60,
        "estimated_cost": 12,
        "energy_level": "relaxed",
        "opening_hours": "08:00-16:00",
        "why_recommended": "Quick, cheap stalls inside the market hall",
        "strategic_fit": "medium",
    },
    {
        "name": "Corner Cafe",
        "type": "cafe",
        "estimated_duration": 45,
        "estimated_cost": 8,
        "energy_level": "relaxed",
        "opening_hours": "07:00-19:00",
        "why_recommended": "Coffee and pastries near the centre",
        "strategic_fit": "medium",
    },
    {
        "name": "Riverside Brasserie",
        "type": "restaurant",
        "estimated_duration": 120,
        "estimated_cost": 40,
        "energy_level": "relaxed",
        "opening_hours": "18:00-23:30",
        "why_recommended": "Evening dining with a terrace",
        "strategic_fit": "medium",
    },
]


class MockKnowledgeSource:
    """
    Deterministic offline knowledge source.

    Skips anything named in the strategy's avoidance list and honors the
    ``free_or_low_cost`` constraint, so feedback-loop behavior can be
    exercised without network access.
    """

    def __init__(self, max_candidates: int = 5):
        self.max_candidates = max_candidates
        self.calls = 0

    async def discover(
        self,
        request: DiscoveryRequest,
        strategy: DiscoveryStrategy,
    ) -> List[DiscoveryCandidate]:
        self.calls += 1
        templates = (
            _RESTAURANT_TEMPLATES if request.category == "restaurant" else _ACTIVITY_TEMPLATES
        )
        avoided = set(strategy.avoidance)
        low_cost = "free_or_low_cost" in strategy.constraints

        # Rotate by day theme so different slots see different orderings
        offset = sum(ord(ch) for ch in request.day_theme + request.time_window.start) % len(templates)
        ordered = templates[offset:] + templates[:offset]

        candidates = []
        for template in ordered:
            name = f"{request.city} {template['name']}"
            if name in avoided or template["type"] in avoided:
                continue
            if low_cost and template["estimated_cost"] > 10:
                continue
            candidates.append(
                DiscoveryCandidate(
                    **{**template, "name": name},
                    address=f"{len(name) * 3} {template['name']} Street, {request.city}",
                    city=request.city,
                    source="mock",
                )
            )
            if len(candidates) >= self.max_candidates:
                break

        logger.debug(
            f"Mock discovery for {request.city} ({request.category}): "
            f"{len(candidates)} candidates"
        )
        return candidates
