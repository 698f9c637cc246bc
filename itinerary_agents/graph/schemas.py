"""
Execution graph declarations.

An ExecutionGraph is an ordered list of phases. Each phase runs its
tasks one after another (sequential) or concurrently (parallel). A task
may only depend on tasks of strictly earlier phases, or on ``"*"`` (every
earlier task); this is checked when the graph is built.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

from itinerary_agents.shared.contracts.trip import TripRequest
from itinerary_agents.shared.exceptions import GraphDefinitionError

if TYPE_CHECKING:
    from itinerary_agents.graph.registry import AgentTask, TaskRegistry


ALL_PRIOR = "*"


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


@dataclass
class TaskSpec:
    """A named, schedulable unit of work within a phase."""

    name: str
    task: "AgentTask"
    depends_on: Tuple[str, ...] = ()


@dataclass
class Phase:
    name: str
    mode: ExecutionMode
    tasks: List[TaskSpec] = field(default_factory=list)

    @property
    def task_names(self) -> List[str]:
        return [t.name for t in self.tasks]


@dataclass
class TaskInput:
    """
    What a task receives when it runs.

    ``results`` maps the names of every task that completed in earlier
    phases (or earlier in the same sequential phase) to their results.
    """

    run_id: str
    trip: Optional[TripRequest]
    results: Dict[str, Any]
    phase: str
    task_name: str


class ExecutionGraph:
    """
    Ordered, validated list of phases.

    Raises:
        GraphDefinitionError: On an empty phase, a duplicate task name, or
            a dependency not satisfied by a strictly earlier phase
    """

    def __init__(self, phases: Sequence[Phase]):
        self.phases: List[Phase] = list(phases)
        self._validate()

    def _validate(self) -> None:
        seen: List[str] = []
        phase_names = set()

        for phase in self.phases:
            if phase.name in phase_names:
                raise GraphDefinitionError(f"Duplicate phase name '{phase.name}'")
            phase_names.add(phase.name)

            if not phase.tasks:
                raise GraphDefinitionError(f"Phase '{phase.name}' has no tasks")

            for spec in phase.tasks:
                if spec.name in seen or phase.task_names.count(spec.name) > 1:
                    raise GraphDefinitionError(f"Duplicate task name '{spec.name}'")
                for dep in spec.depends_on:
                    if dep != ALL_PRIOR and dep not in seen:
                        raise GraphDefinitionError(
                            f"Task '{spec.name}' in phase '{phase.name}' depends on "
                            f"'{dep}', which is not in an earlier phase"
                        )

            seen.extend(phase.task_names)

    @property
    def task_names(self) -> List[str]:
        return [name for phase in self.phases for name in phase.task_names]

    @property
    def total_tasks(self) -> int:
        return sum(len(phase.tasks) for phase in self.phases)

    def describe(self) -> List[Dict[str, Any]]:
        """Plain-dict view of the graph, for logs and progress payloads."""
        return [
            {
                "phase": phase.name,
                "mode": phase.mode.value,
                "tasks": [
                    {"name": t.name, "depends_on": list(t.depends_on)} for t in phase.tasks
                ],
            }
            for phase in self.phases
        ]

    @classmethod
    def from_declaration(
        cls,
        declaration: Sequence[Dict[str, Any]],
        registry: "TaskRegistry",
    ) -> "ExecutionGraph":
        """
        Build a graph from plain data, resolving task ids in the registry.

        Each phase is ``{"name", "mode", "tasks": [{"name", "task", "depends_on"}]}``;
        ``task`` defaults to ``name``.

        Raises:
            GraphDefinitionError: On an unknown task id or mode, or an
                inconsistent graph
        """
        phases = []
        for entry in declaration:
            try:
                mode = ExecutionMode(entry.get("mode", ExecutionMode.SEQUENTIAL.value))
            except ValueError:
                raise GraphDefinitionError(
                    f"Phase '{entry.get('name')}' has unknown mode '{entry.get('mode')}'"
                )
            tasks = [
                TaskSpec(
                    name=task["name"],
                    task=registry.resolve(task.get("task", task["name"])),
                    depends_on=tuple(task.get("depends_on", ())),
                )
                for task in entry.get("tasks", [])
            ]
            phases.append(Phase(name=entry["name"], mode=mode, tasks=tasks))
        return cls(phases)
