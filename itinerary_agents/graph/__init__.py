"""
Execution graph: phased scheduling of itinerary-generation tasks.

    day_planner -> (activities | restaurants) -> [extras] -> budget

Phases run in order; tasks of a parallel phase run concurrently and fail
independently, a failing sequential task aborts the run.
"""

from itinerary_agents.graph.build import create_itinerary_graph
from itinerary_agents.graph.events import LoggingObserver, ProgressEvent, ProgressObserver
from itinerary_agents.graph.registry import AgentTask, CallableTask, TaskRegistry
from itinerary_agents.graph.runner import AgentOrchestrator, ExecutionMetrics, ExecutionResult
from itinerary_agents.graph.schemas import ExecutionGraph, ExecutionMode, Phase, TaskInput, TaskSpec
from itinerary_agents.graph.service import ItineraryGenerationService

__all__ = [
    "create_itinerary_graph",
    "LoggingObserver",
    "ProgressEvent",
    "ProgressObserver",
    "AgentTask",
    "CallableTask",
    "TaskRegistry",
    "AgentOrchestrator",
    "ExecutionMetrics",
    "ExecutionResult",
    "ExecutionGraph",
    "ExecutionMode",
    "Phase",
    "TaskInput",
    "TaskSpec",
    "ItineraryGenerationService",
]
