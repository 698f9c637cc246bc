"""
Per-run shared context (knowledge base, caches, decision log).
"""

from itinerary_agents.context.shared_context import (
    BudgetStatus,
    DiversificationAdvice,
    SharedContext,
    TripConstraints,
)

__all__ = ["BudgetStatus", "DiversificationAdvice", "SharedContext", "TripConstraints"]
