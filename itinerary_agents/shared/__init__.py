"""
Shared infrastructure for all agents.

Modules:
- llm: OpenAI client with retry logic
- logging: Structured JSON logging and per-run audit logs
- contracts: Models exchanged between stages
- exceptions: Error taxonomy
- resilience: Timeout + backoff for external calls
- geo: Great-circle distance
"""

from itinerary_agents.shared.llm.client import get_cached_client, call_llm
from itinerary_agents.shared.logging.config import setup_logging, log_state_transition

__all__ = [
    "get_cached_client",
    "call_llm",
    "setup_logging",
    "log_state_transition",
]
