"""
Default itinerary execution graph.

The graph structure is:
    phase 1 (sequential): day_planner
    phase 2 (parallel):   activities, restaurants        (deps: day_planner)
    phase 3 (parallel):   caller-supplied extras         (deps: day_planner), optional
    phase 4 (sequential): budget                         (deps: *)
"""

import logging
from typing import Any, Dict, List, Optional

from itinerary_agents.discovery.agent import KnowledgeSource
from itinerary_agents.discovery.config import DEFAULT_CONFIG as DEFAULT_DISCOVERY_CONFIG
from itinerary_agents.discovery.config import DiscoveryConfig
from itinerary_agents.graph.day_planner import DayPlanner, MockDayPlanner
from itinerary_agents.graph.registry import TaskRegistry
from itinerary_agents.graph.schemas import ALL_PRIOR, ExecutionGraph
from itinerary_agents.graph.tasks import (
    DAY_PLANNER_TASK,
    BudgetTask,
    DayStructureTask,
    SlotDiscoveryTask,
)
from itinerary_agents.orchestration.config import DEFAULT_CONFIG as DEFAULT_LOOP_CONFIG
from itinerary_agents.orchestration.config import FeedbackLoopConfig
from itinerary_agents.validation.stage import ValidationStage


logger = logging.getLogger(__name__)


def build_registry(
    knowledge_source: KnowledgeSource,
    validation_stage: Optional[ValidationStage] = None,
    day_planner: Optional[DayPlanner] = None,
    extras: Optional[Dict[str, Any]] = None,
    discovery_config: DiscoveryConfig = DEFAULT_DISCOVERY_CONFIG,
    loop_config: FeedbackLoopConfig = DEFAULT_LOOP_CONFIG,
) -> TaskRegistry:
    """Register the built-in tasks plus any extras under their ids."""
    validation_stage = validation_stage or ValidationStage()

    registry = TaskRegistry()
    registry.register(DAY_PLANNER_TASK, DayStructureTask(day_planner or MockDayPlanner()))
    for name, category in (("activities", "activity"), ("restaurants", "restaurant")):
        registry.register(
            name,
            SlotDiscoveryTask(
                category,
                knowledge_source,
                validation_stage,
                discovery_config=discovery_config,
                loop_config=loop_config,
            ),
        )
    registry.register("budget", BudgetTask(["activities", "restaurants"]))

    for name, task in (extras or {}).items():
        registry.register(name, task)
    return registry


def itinerary_declaration(extra_tasks: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Plain-data declaration of the default phases."""
    declaration = [
        {
            "name": "day_structure",
            "mode": "sequential",
            "tasks": [{"name": DAY_PLANNER_TASK}],
        },
        {
            "name": "core_content",
            "mode": "parallel",
            "tasks": [
                {"name": "activities", "depends_on": [DAY_PLANNER_TASK]},
                {"name": "restaurants", "depends_on": [DAY_PLANNER_TASK]},
            ],
        },
    ]
    if extra_tasks:
        declaration.append(
            {
                "name": "enrichment",
                "mode": "parallel",
                "tasks": [
                    {"name": name, "depends_on": [DAY_PLANNER_TASK]} for name in extra_tasks
                ],
            }
        )
    declaration.append(
        {
            "name": "budget",
            "mode": "sequential",
            "tasks": [{"name": "budget", "depends_on": [ALL_PRIOR]}],
        }
    )
    return declaration


def create_itinerary_graph(
    knowledge_source: KnowledgeSource,
    validation_stage: Optional[ValidationStage] = None,
    day_planner: Optional[DayPlanner] = None,
    extras: Optional[Dict[str, Any]] = None,
    discovery_config: DiscoveryConfig = DEFAULT_DISCOVERY_CONFIG,
    loop_config: FeedbackLoopConfig = DEFAULT_LOOP_CONFIG,
) -> ExecutionGraph:
    """
    Create the default itinerary-generation graph.

    Args:
        knowledge_source: Candidate source for the slot tasks
        validation_stage: Validation for the slot tasks (unvalidated if None)
        day_planner: Day planner (MockDayPlanner if None)
        extras: Phase-3 tasks by name (AgentTask objects or coroutine functions)

    Returns:
        Validated ExecutionGraph
    """
    registry = build_registry(
        knowledge_source,
        validation_stage,
        day_planner,
        extras,
        discovery_config,
        loop_config,
    )
    graph = ExecutionGraph.from_declaration(
        itinerary_declaration(list(extras or {})), registry
    )
    logger.debug(f"Built itinerary graph: {graph.describe()}")
    return graph
