"""
Phase runner for execution graphs.

Runs the phases of an ExecutionGraph strictly in order:

- sequential phase: tasks run one at a time; the first failure aborts the
  whole run and ``execute()`` raises it
- parallel phase: tasks run concurrently; a failing task is recorded in
  the metrics and its siblings carry on, unless it is a
  ConfigurationError, which aborts the run once the phase has settled

After every phase the partial results are written to the run store so
pollers can see progress before the run ends.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.graph import events
from itinerary_agents.graph.events import ProgressEvent, ProgressObserver, notify
from itinerary_agents.graph.schemas import ExecutionGraph, ExecutionMode, Phase, TaskInput, TaskSpec
from itinerary_agents.persistence.store import RunStore
from itinerary_agents.shared.contracts.trip import TripRequest
from itinerary_agents.shared.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 1)


def to_jsonable(value: Any) -> Any:
    """Convert task results (pydantic models, nested containers) to plain data."""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


@dataclass
class ExecutionMetrics:
    agent_timings: Dict[str, float] = field(default_factory=dict)
    errors: List[Dict[str, str]] = field(default_factory=list)
    total_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "agent_timings": dict(self.agent_timings),
            "errors": list(self.errors),
            "total_time_ms": self.total_time_ms,
        }


@dataclass
class ExecutionResult:
    """
    Aggregated outcome of a run.

    A run whose parallel tasks all failed still completes; inspect
    ``metrics.errors`` for gaps.
    """

    run_id: str
    results: Dict[str, Any]
    metrics: ExecutionMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "results": to_jsonable(self.results),
            "metrics": self.metrics.to_dict(),
        }


class AgentOrchestrator:
    """
    Executes an ExecutionGraph against one run's shared context.

    Args:
        graph: Validated execution graph
        context: Shared context of the run
        store: Optional run store for progress persistence
        observer: Optional progress observer
        trip: Trip being planned, passed to every task
        run_id: Existing run id in the store; created on first execute if None
    """

    def __init__(
        self,
        graph: ExecutionGraph,
        context: SharedContext,
        store: Optional[RunStore] = None,
        observer: Optional[ProgressObserver] = None,
        trip: Optional[TripRequest] = None,
        run_id: Optional[str] = None,
    ):
        self.graph = graph
        self.context = context
        self.store = store
        self.observer = observer
        self.trip = trip
        self.run_id = run_id

        self.results: Dict[str, Any] = {}
        self.metrics = ExecutionMetrics()
        self._phases_done = 0

    def _log(self, node: str) -> str:
        return f"[run={self.run_id or self.context.run_id}] [graph=execution] [node={node}] "

    def _emit(self, event_type: str, **fields: Any) -> None:
        notify(self.observer, ProgressEvent(type=event_type, run_id=self.run_id, **fields))

    def _percent(self) -> int:
        return int(self._phases_done * 100 / max(len(self.graph.phases), 1))

    # ========== RUN ==========

    async def execute(self) -> ExecutionResult:
        """
        Run every phase to completion.

        Returns:
            ExecutionResult keyed by task name, plus metrics

        Raises:
            The exception of a failed sequential-phase task, or a
            ConfigurationError from any task (after the run is marked
            failed in the store)
        """
        start = time.time()

        if self.run_id is None:
            if self.store is not None:
                self.run_id = await self.store.create_run(
                    {
                        "run_id": self.context.run_id,
                        "trip": self.trip.model_dump() if self.trip else None,
                        "graph": self.graph.describe(),
                    }
                )
            else:
                self.run_id = self.context.run_id

        _log = self._log("execute")
        logger.info(
            f"{_log}Starting execution | phases={len(self.graph.phases)}, "
            f"tasks={self.graph.total_tasks}"
        )
        self._emit(
            events.ORCHESTRATOR_STARTED,
            percent_complete=0,
            message=f"Running {len(self.graph.phases)} phases",
        )

        try:
            for phase in self.graph.phases:
                self._emit(
                    events.PHASE_START,
                    phase=phase.name,
                    percent_complete=self._percent(),
                    message=f"{phase.mode.value} phase with {len(phase.tasks)} tasks",
                    data={"mode": phase.mode.value, "tasks": phase.task_names},
                )

                if phase.mode is ExecutionMode.PARALLEL:
                    await self._run_parallel(phase)
                else:
                    await self._run_sequential(phase)

                self._phases_done += 1
                self._emit(
                    events.PHASE_COMPLETE,
                    phase=phase.name,
                    percent_complete=self._percent(),
                    message=f"Phase {phase.name} complete",
                )
                await self._persist_progress(phase)

            self.metrics.total_time_ms = _elapsed_ms(start)
            result = ExecutionResult(run_id=self.run_id, results=self.results, metrics=self.metrics)

            if self.store is not None:
                await self.store.finalize_run(
                    self.run_id, to_jsonable(self.results), self.metrics.to_dict()
                )

        except Exception as e:
            self.metrics.total_time_ms = _elapsed_ms(start)
            logger.error(f"{_log}Execution failed: {e}")
            self._emit(events.ORCHESTRATOR_ERROR, status="failed", error=str(e), message=str(e))
            await self._mark_failed(str(e))
            raise

        logger.info(
            f"{_log}Execution complete in {self.metrics.total_time_ms:.0f}ms | "
            f"errors={len(self.metrics.errors)}"
        )
        self._emit(
            events.ORCHESTRATOR_COMPLETE,
            percent_complete=100,
            status="completed",
            duration_ms=self.metrics.total_time_ms,
            data={"metrics": self.metrics.to_dict()},
        )
        return result

    # ========== PHASES ==========

    async def _run_task(self, phase: Phase, spec: TaskSpec) -> Any:
        """Run one task, recording timing and errors. Re-raises on failure."""
        start = time.time()
        self._emit(events.AGENT_START, phase=phase.name, agent=spec.name, status="running")

        task_input = TaskInput(
            run_id=self.run_id,
            trip=self.trip,
            results=dict(self.results),
            phase=phase.name,
            task_name=spec.name,
        )
        try:
            result = await spec.task.execute(task_input, self.context)
        except Exception as e:
            duration = _elapsed_ms(start)
            self.metrics.agent_timings[spec.name] = duration
            self.metrics.errors.append({"agent": spec.name, "phase": phase.name, "error": str(e)})
            logger.error(f"{self._log(spec.name)}Task failed after {duration:.0f}ms: {e}")
            self._emit(
                events.AGENT_ERROR,
                phase=phase.name,
                agent=spec.name,
                status="failed",
                duration_ms=duration,
                error=str(e),
            )
            raise

        duration = _elapsed_ms(start)
        self.metrics.agent_timings[spec.name] = duration
        logger.info(f"{self._log(spec.name)}Task complete in {duration:.0f}ms")
        self._emit(
            events.AGENT_COMPLETE,
            phase=phase.name,
            agent=spec.name,
            status="completed",
            duration_ms=duration,
            data={"has_data": result is not None},
        )
        return result

    async def _run_sequential(self, phase: Phase) -> None:
        for spec in phase.tasks:
            self.results[spec.name] = await self._run_task(phase, spec)

    async def _run_parallel(self, phase: Phase) -> None:
        outcomes = await asyncio.gather(
            *(self._run_task(phase, spec) for spec in phase.tasks),
            return_exceptions=True,
        )
        for spec, outcome in zip(phase.tasks, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, ConfigurationError):
                raise outcome
            if isinstance(outcome, Exception):
                # already recorded in metrics by _run_task
                continue
            self.results[spec.name] = outcome

    # ========== PERSISTENCE ==========

    async def _persist_progress(self, phase: Phase) -> None:
        if self.store is None:
            return
        try:
            await self.store.update_run_progress(
                self.run_id,
                {
                    "phase": phase.name,
                    "percent_complete": self._percent(),
                    "results": to_jsonable(self.results),
                },
            )
        except Exception as e:
            logger.warning(f"{self._log('persist')}Failed to persist progress: {e}")

    async def _mark_failed(self, error: str) -> None:
        if self.store is None or self.run_id is None:
            return
        try:
            await self.store.mark_run_failed(self.run_id, error)
        except Exception as e:
            logger.warning(f"{self._log('persist')}Failed to mark run failed: {e}")
