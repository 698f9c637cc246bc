"""
Task registry.

Maps task identifiers to objects with a uniform ``execute`` interface so
graphs can be declared as data and resolved once, at build time.
"""

from typing import Any, Awaitable, Callable, Dict, List, Protocol

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.graph.schemas import TaskInput
from itinerary_agents.shared.exceptions import GraphDefinitionError


class AgentTask(Protocol):
    async def execute(self, task_input: TaskInput, context: SharedContext) -> Any:
        ...


class CallableTask:
    """Adapts a plain coroutine function to the AgentTask interface."""

    def __init__(self, func: Callable[[TaskInput, SharedContext], Awaitable[Any]]):
        self.func = func

    async def execute(self, task_input: TaskInput, context: SharedContext) -> Any:
        return await self.func(task_input, context)

    def __repr__(self) -> str:
        return f"CallableTask({getattr(self.func, '__name__', self.func)!r})"


class TaskRegistry:
    def __init__(self):
        self._tasks: Dict[str, AgentTask] = {}

    def register(self, task_id: str, task: Any) -> None:
        """
        Register a task under an id.

        Plain coroutine functions are wrapped in CallableTask.

        Raises:
            GraphDefinitionError: If the id is taken or the object is not a task
        """
        if task_id in self._tasks:
            raise GraphDefinitionError(f"Task id '{task_id}' is already registered")
        if not hasattr(task, "execute"):
            if not callable(task):
                raise GraphDefinitionError(f"Task '{task_id}' has no execute() method")
            task = CallableTask(task)
        self._tasks[task_id] = task

    def resolve(self, task_id: str) -> AgentTask:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise GraphDefinitionError(f"Unknown task id '{task_id}'")

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    @property
    def task_ids(self) -> List[str]:
        return list(self._tasks)
