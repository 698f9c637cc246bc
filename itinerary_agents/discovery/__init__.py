"""
Discovery: strategy building and candidate acquisition.
"""

from itinerary_agents.discovery.agent import DiscoveryAgent, KnowledgeSource, fallback_candidate
from itinerary_agents.discovery.config import DiscoveryConfig, DEFAULT_CONFIG, get_config
from itinerary_agents.discovery.knowledge_source import LLMKnowledgeSource
from itinerary_agents.discovery.mock_source import MockKnowledgeSource
from itinerary_agents.discovery.strategy import (
    build_discovery_strategy,
    humanize_constraint,
    humanize_preference,
)

__all__ = [
    "DiscoveryAgent",
    "KnowledgeSource",
    "fallback_candidate",
    "DiscoveryConfig",
    "DEFAULT_CONFIG",
    "get_config",
    "LLMKnowledgeSource",
    "MockKnowledgeSource",
    "build_discovery_strategy",
    "humanize_constraint",
    "humanize_preference",
]
