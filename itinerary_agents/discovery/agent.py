"""
Discovery agent.

Builds a strategy from the shared context, asks the knowledge source for
candidates matching it, and normalizes whatever comes back. A knowledge
source that returns nothing usable degrades to a single synthetic
fallback candidate instead of raising.
"""

import logging
from typing import Any, List, Optional, Protocol

from pydantic import ValidationError

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.discovery.config import DEFAULT_CONFIG, DiscoveryConfig
from itinerary_agents.discovery.parser import normalize_candidate
from itinerary_agents.discovery.strategy import build_discovery_strategy
from itinerary_agents.shared.contracts.discovery import (
    DiscoveryCandidate,
    DiscoveryRequest,
    DiscoveryResult,
    DiscoveryStrategy,
)


logger = logging.getLogger(__name__)

AGENT_NAME = "discovery"


class KnowledgeSource(Protocol):
    """
    External source of candidate places.

    Implementations return an empty list when the service is unreachable
    and raise only for fatal configuration problems.
    """

    async def discover(
        self,
        request: DiscoveryRequest,
        strategy: DiscoveryStrategy,
    ) -> List[Any]:
        ...


def fallback_candidate(city: str) -> DiscoveryCandidate:
    """Generic low-confidence placeholder used when discovery yields nothing."""
    return DiscoveryCandidate(
        name=f"Explore {city} City Center",
        type="general",
        address=f"{city} City Center",
        estimated_duration=120,
        estimated_cost=0,
        energy_level="moderate",
        why_recommended="Fallback option - explore the city center",
        strategic_fit="low",
        city=city,
        source="fallback",
    )


def _coerce_candidate(raw: Any, city: str) -> Optional[DiscoveryCandidate]:
    if isinstance(raw, DiscoveryCandidate):
        return raw if raw.city else raw.model_copy(update={"city": city})
    if hasattr(raw, "model_dump"):
        raw = raw.model_dump()
    return normalize_candidate(raw, city=city)


class DiscoveryAgent:
    """Strategic candidate discovery for one slot at a time."""

    def __init__(
        self,
        context: SharedContext,
        knowledge_source: KnowledgeSource,
        config: DiscoveryConfig = DEFAULT_CONFIG,
    ):
        self.context = context
        self.knowledge_source = knowledge_source
        self.config = config

    async def discover_candidates(self, request: DiscoveryRequest) -> DiscoveryResult:
        """
        Discover candidates for a request.

        Args:
            request: The slot being filled

        Returns:
            DiscoveryResult with 1..max_candidates candidates. When the
            knowledge source yields nothing usable, the only candidate is
            the fallback and ``metadata["fallback"]`` is True.
        """
        _log = f"[run={self.context.run_id}] [graph=feedback_loop] [node=discover] "

        self.context.log_communication(
            "orchestrator",
            AGENT_NAME,
            f"Discover {request.category} candidates in {request.city}",
            {
                "time_window": request.time_window.model_dump(),
                "day_theme": request.day_theme,
            },
        )

        strategy = build_discovery_strategy(self.context, request)
        logger.info(f"{_log}Strategy built | {strategy.reasoning}")

        raw = await self.knowledge_source.discover(request, strategy)

        candidates: List[DiscoveryCandidate] = []
        if isinstance(raw, list):
            for item in raw:
                try:
                    candidate = _coerce_candidate(item, request.city)
                except ValidationError as e:
                    logger.debug(f"{_log}Dropping malformed candidate: {e}")
                    candidate = None
                if candidate is not None:
                    candidates.append(candidate)
        else:
            logger.warning(f"{_log}Knowledge source returned {type(raw).__name__}, expected list")

        candidates = candidates[: self.config.max_candidates]

        used_fallback = not candidates
        if used_fallback:
            logger.warning(f"{_log}No usable candidates, using fallback for {request.city}")
            candidates = [fallback_candidate(request.city)]

        self.context.record_decision(
            "discovery",
            reasoning=strategy.reasoning,
            agent=AGENT_NAME,
            request={
                "city": request.city,
                "category": request.category,
                "time_window": request.time_window.model_dump(),
                "day_of_week": request.day_of_week,
            },
            strategy=strategy.model_dump(),
            candidates=[c.name for c in candidates],
            fallback=used_fallback,
        )

        logger.info(
            f"{_log}Discovery complete | candidates={len(candidates)}, "
            f"fallback={used_fallback}"
        )

        return DiscoveryResult(
            candidates=candidates,
            strategy=strategy,
            reasoning=strategy.reasoning,
            metadata={
                "city": request.city,
                "category": request.category,
                "candidate_count": len(candidates),
                "fallback": used_fallback,
            },
        )
