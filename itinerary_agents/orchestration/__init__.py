"""
Discovery feedback loop: discover, validate, select, and learn from failures.
"""

from itinerary_agents.orchestration.agent import OrchestratorAgent
from itinerary_agents.orchestration.config import FeedbackLoopConfig, DEFAULT_CONFIG, get_config
from itinerary_agents.orchestration.feedback import (
    FailureAnalysis,
    analyze_validation_failures,
    update_request_with_feedback,
)
from itinerary_agents.orchestration.graph import create_feedback_loop_graph
from itinerary_agents.orchestration.schemas import FeedbackLoopState

__all__ = [
    "OrchestratorAgent",
    "FeedbackLoopConfig",
    "DEFAULT_CONFIG",
    "get_config",
    "FailureAnalysis",
    "analyze_validation_failures",
    "update_request_with_feedback",
    "create_feedback_loop_graph",
    "FeedbackLoopState",
]
