"""LLM client utilities."""

from itinerary_agents.shared.llm.client import call_llm, get_cached_client, has_api_key

__all__ = ["call_llm", "get_cached_client", "has_api_key"]
