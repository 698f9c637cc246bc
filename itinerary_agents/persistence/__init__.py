from itinerary_agents.persistence.store import InMemoryRunStore, RunStore

__all__ = ["InMemoryRunStore", "RunStore"]
