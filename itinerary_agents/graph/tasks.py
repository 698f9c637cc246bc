"""
Itinerary-generation tasks for the execution graph.

- DayStructureTask: plans cities, themes and time slots per day
- SlotDiscoveryTask: fills every slot of one category through the
  discovery feedback loop
- BudgetTask: rolls up what the selected places cost against the budget
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.discovery.agent import DiscoveryAgent, KnowledgeSource, fallback_candidate
from itinerary_agents.discovery.config import DEFAULT_CONFIG as DEFAULT_DISCOVERY_CONFIG
from itinerary_agents.discovery.config import DiscoveryConfig
from itinerary_agents.graph.day_planner import DayPlanner, ItineraryStructure
from itinerary_agents.graph.schemas import TaskInput
from itinerary_agents.orchestration.agent import OrchestratorAgent
from itinerary_agents.orchestration.config import DEFAULT_CONFIG as DEFAULT_LOOP_CONFIG
from itinerary_agents.orchestration.config import FeedbackLoopConfig
from itinerary_agents.selection.scoring import DEFAULT_RUBRIC, ScoringRubric, SelectionStage
from itinerary_agents.shared.contracts.discovery import DiscoveryRequest
from itinerary_agents.shared.contracts.validation import ValidatedPlace
from itinerary_agents.validation.stage import ValidationStage


logger = logging.getLogger(__name__)

DAY_PLANNER_TASK = "day_planner"


class DayStructureTask:
    """Phase-1 task: builds the day skeleton every later phase fills."""

    def __init__(self, planner: DayPlanner):
        self.planner = planner

    async def execute(self, task_input: TaskInput, context: SharedContext) -> ItineraryStructure:
        if task_input.trip is None:
            raise ValueError("Day structure planning requires a trip request")

        structure = await self.planner.plan(task_input.trip)
        if not structure.days:
            raise ValueError("Day planner returned no days")

        first = structure.days[0]
        context.set_current_day(first.day_number, first.city)
        context.record_decision(
            "day_structure",
            reasoning=f"Planned {len(structure.days)} days with {structure.slot_count} slots",
            agent=task_input.task_name,
            cities=sorted({day.city for day in structure.days}),
        )
        return structure


class SlotDiscoveryTask:
    """
    Fills every slot of one category with a selected place.

    A slot whose feedback loop gives up gets the generic fallback place
    with ``fallback=True``. An exception re-raised by the loop fails the
    whole task.
    """

    def __init__(
        self,
        category: Literal["activity", "restaurant"],
        knowledge_source: KnowledgeSource,
        validation_stage: Optional[ValidationStage] = None,
        discovery_config: DiscoveryConfig = DEFAULT_DISCOVERY_CONFIG,
        loop_config: FeedbackLoopConfig = DEFAULT_LOOP_CONFIG,
        rubric: ScoringRubric = DEFAULT_RUBRIC,
        structure_task: str = DAY_PLANNER_TASK,
    ):
        self.category = category
        self.knowledge_source = knowledge_source
        self.validation_stage = validation_stage or ValidationStage()
        self.discovery_config = discovery_config
        self.loop_config = loop_config
        self.rubric = rubric
        self.structure_task = structure_task

    def _orchestrator(self, context: SharedContext) -> OrchestratorAgent:
        return OrchestratorAgent(
            context,
            DiscoveryAgent(context, self.knowledge_source, self.discovery_config),
            self.validation_stage,
            SelectionStage(context, self.rubric),
            self.loop_config,
        )

    async def execute(self, task_input: TaskInput, context: SharedContext) -> Dict[str, Any]:
        _log = f"[run={task_input.run_id}] [graph=execution] [node={task_input.task_name}] "

        structure = task_input.results.get(self.structure_task)
        if structure is None:
            raise ValueError(f"Missing '{self.structure_task}' result")
        if isinstance(structure, dict):
            structure = ItineraryStructure.model_validate(structure)

        orchestrator = self._orchestrator(context)
        days: List[Dict[str, Any]] = []
        filled = 0
        fallbacks = 0

        for day in structure.days:
            slots = []
            for slot in day.slots:
                if slot.category != self.category:
                    continue

                request = DiscoveryRequest(
                    city=day.city,
                    time_window=slot.time_window,
                    day_theme=day.theme,
                    day_of_week=day.day_of_week,
                    date=day.date,
                    purpose=slot.purpose,
                    category=self.category,
                )
                outcome = await orchestrator.discover_and_select(request)

                place: ValidatedPlace
                if outcome.success and outcome.place is not None:
                    place = outcome.place
                    filled += 1
                else:
                    place = ValidatedPlace.from_candidate(fallback_candidate(day.city))
                    fallbacks += 1

                slots.append(
                    {
                        "slot_id": slot.slot_id,
                        "time_window": slot.time_window.model_dump(),
                        "purpose": slot.purpose,
                        "place": place.model_dump(mode="json"),
                        "success": outcome.success,
                        "fallback": outcome.fallback,
                        "attempts": outcome.attempts,
                        "score": outcome.score,
                        "confidence": outcome.confidence,
                        "reasoning": outcome.reasoning or outcome.reason,
                    }
                )

            days.append(
                {
                    "day_number": day.day_number,
                    "date": day.date,
                    "city": day.city,
                    "slots": slots,
                }
            )

        logger.info(f"{_log}Filled {filled} {self.category} slots, {fallbacks} fallbacks")
        return {
            "category": self.category,
            "days": days,
            "filled": filled,
            "fallbacks": fallbacks,
        }


class BudgetTask:
    """Final task: cost roll-up of every slot task's selected places."""

    def __init__(self, slot_tasks: Optional[List[str]] = None):
        self.slot_tasks = slot_tasks

    async def execute(self, task_input: TaskInput, context: SharedContext) -> Dict[str, Any]:
        by_category: Dict[str, float] = {}
        names = self.slot_tasks or [
            name
            for name, result in task_input.results.items()
            if isinstance(result, dict) and "days" in result and "category" in result
        ]

        for name in names:
            result = task_input.results.get(name)
            if not result:
                continue
            cost = 0.0
            for day in result["days"]:
                for slot in day["slots"]:
                    if not slot.get("fallback"):
                        cost += slot["place"].get("estimated_cost") or 0
            by_category[name] = round(cost, 2)

        status = context.get_budget_status()
        total_days = max(context.constraints.time.total_days, 1)
        summary = {
            "total": status.total,
            "spent": round(status.spent, 2),
            "remaining": round(status.remaining, 2) if status.remaining is not None else None,
            "percent_used": round(status.percent_used, 1) if status.percent_used is not None else None,
            "by_task": by_category,
            "daily_average": round(status.spent / total_days, 2),
            "over_budget": status.remaining is not None and status.remaining < 0,
        }

        context.record_decision(
            "budget",
            reasoning=(
                f"Spent {summary['spent']} of {status.total}"
                if status.total is not None
                else f"Spent {summary['spent']} (no budget set)"
            ),
            agent=task_input.task_name,
            summary=summary,
        )
        return summary
