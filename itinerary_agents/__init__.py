"""
Itinerary agents: orchestration core for multi-day itinerary generation.

This package contains:
- shared/: Common infrastructure (LLM client, logging, contracts, errors)
- context/: Per-run shared context all agents coordinate through
- discovery/: Strategy building and candidate acquisition
- validation/: Candidate validation against an authoritative source
- selection/: Rubric scoring and winner selection
- orchestration/: Discover -> validate -> select feedback loop
- graph/: Phased execution graph, tasks and the generation service
- jobs/: Single-slot background job queue
- persistence/: Run store interface
"""

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.graph.build import create_itinerary_graph
from itinerary_agents.graph.runner import AgentOrchestrator
from itinerary_agents.graph.service import ItineraryGenerationService
from itinerary_agents.jobs.queue import JobQueue
from itinerary_agents.orchestration.agent import OrchestratorAgent

__all__ = [
    "SharedContext",
    "create_itinerary_graph",
    "AgentOrchestrator",
    "ItineraryGenerationService",
    "JobQueue",
    "OrchestratorAgent",
]
