"""
Tests for the execution graph and its phase runner.

Tests graph validation, the task registry, sequential and parallel
phase semantics, progress events, run-store persistence, and the
built-in itinerary tasks.
"""

import asyncio

import pytest

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.discovery.mock_source import MockKnowledgeSource
from itinerary_agents.graph import events
from itinerary_agents.graph.build import create_itinerary_graph, itinerary_declaration
from itinerary_agents.graph.day_planner import MockDayPlanner
from itinerary_agents.graph.events import ObserverGroup
from itinerary_agents.graph.registry import CallableTask, TaskRegistry
from itinerary_agents.graph.runner import AgentOrchestrator
from itinerary_agents.graph.schemas import (
    ExecutionGraph,
    ExecutionMode,
    Phase,
    TaskInput,
    TaskSpec,
)
from itinerary_agents.graph.tasks import BudgetTask, DayStructureTask, SlotDiscoveryTask
from itinerary_agents.orchestration.config import get_config as get_loop_config
from itinerary_agents.persistence.store import InMemoryRunStore
from itinerary_agents.shared.contracts.trip import TripPreferences, TripRequest
from itinerary_agents.shared.contracts.validation import PlaceLookup
from itinerary_agents.shared.exceptions import ConfigurationError, GraphDefinitionError
from itinerary_agents.validation.stage import ValidationStage


# ============================================================================
# Test Fixtures
# ============================================================================


def _make_trip(cities=("Paris", "Lyon"), start="2025-06-02", end="2025-06-04", pace="moderate", budget=500.0):
    """Create a trip request for the runner tests."""
    return TripRequest(
        destination=cities[-1],
        cities=list(cities),
        start_date=start,
        end_date=end,
        preferences=TripPreferences(budget_total=budget, pace=pace),
    )


def _make_context(trip=None, run_id="run-exec"):
    return SharedContext.from_trip(run_id, trip or _make_trip())


def _returning(value):
    """Task whose execute() returns ``value`` and records what it saw."""

    async def run(task_input, context):
        run.seen = dict(task_input.results)
        return value

    run.seen = None
    return CallableTask(run)


def _failing(message):
    async def run(task_input, context):
        raise RuntimeError(message)

    return CallableTask(run)


def _phase(name, mode, *specs):
    return Phase(name=name, mode=mode, tasks=list(specs))


class _RecordingObserver:
    def __init__(self):
        self.events = []

    def on_event(self, event):
        self.events.append(event)

    def types(self):
        return [e.type for e in self.events]


class _BrokenObserver:
    def on_event(self, event):
        raise RuntimeError("observer down")


def _run(runner):
    return asyncio.run(runner.execute())


# ============================================================================
# TestExecutionGraph
# ============================================================================


class TestExecutionGraph:
    """Tests for graph validation at build time."""

    def test_valid_graph(self):
        """A well-formed graph should expose its tasks in order."""
        graph = ExecutionGraph([
            _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1))),
            _phase("two", ExecutionMode.PARALLEL, TaskSpec("b", _returning(2), ("a",)), TaskSpec("c", _returning(3), ("*",))),
        ])

        assert graph.task_names == ["a", "b", "c"]
        assert graph.total_tasks == 3
        assert graph.describe()[1]["mode"] == "parallel"

    def test_empty_phase_rejected(self):
        """A phase without tasks should be rejected."""
        with pytest.raises(GraphDefinitionError):
            ExecutionGraph([_phase("one", ExecutionMode.SEQUENTIAL)])

    def test_duplicate_task_name_rejected(self):
        """Task names must be unique across the graph."""
        with pytest.raises(GraphDefinitionError):
            ExecutionGraph([
                _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1))),
                _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(2))),
            ])

    def test_duplicate_phase_name_rejected(self):
        """Phase names must be unique."""
        with pytest.raises(GraphDefinitionError):
            ExecutionGraph([
                _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1))),
                _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("b", _returning(2))),
            ])

    def test_same_phase_dependency_rejected(self):
        """Dependencies must come from strictly earlier phases."""
        with pytest.raises(GraphDefinitionError):
            ExecutionGraph([
                _phase(
                    "one",
                    ExecutionMode.PARALLEL,
                    TaskSpec("a", _returning(1)),
                    TaskSpec("b", _returning(2), ("a",)),
                ),
            ])

    def test_later_phase_dependency_rejected(self):
        """A dependency on a later task should be rejected."""
        with pytest.raises(GraphDefinitionError):
            ExecutionGraph([
                _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1), ("b",))),
                _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("b", _returning(2))),
            ])

    def test_from_declaration(self):
        """Declarations should resolve task ids in the registry."""
        registry = TaskRegistry()
        registry.register("first", _returning(1))
        registry.register("second", _returning(2))

        graph = ExecutionGraph.from_declaration(
            [
                {"name": "p1", "mode": "sequential", "tasks": [{"name": "first"}]},
                {"name": "p2", "mode": "parallel", "tasks": [{"name": "alias", "task": "second", "depends_on": ["first"]}]},
            ],
            registry,
        )

        assert graph.task_names == ["first", "alias"]
        assert graph.phases[1].mode is ExecutionMode.PARALLEL

    def test_from_declaration_unknown_mode(self):
        """An unknown mode should be a definition error."""
        registry = TaskRegistry()
        registry.register("first", _returning(1))

        with pytest.raises(GraphDefinitionError):
            ExecutionGraph.from_declaration(
                [{"name": "p1", "mode": "eventually", "tasks": [{"name": "first"}]}], registry
            )

    def test_default_declaration_with_extras(self):
        """Extras should add an enrichment phase before the budget phase."""
        declaration = itinerary_declaration(["weather"])

        assert [p["name"] for p in declaration] == [
            "day_structure", "core_content", "enrichment", "budget",
        ]


# ============================================================================
# TestTaskRegistry
# ============================================================================


class TestTaskRegistry:
    """Tests for registering and resolving tasks."""

    def test_plain_coroutines_are_wrapped(self):
        """A coroutine function should be adapted to execute()."""
        registry = TaskRegistry()

        async def enrich(task_input, context):
            return "ok"

        registry.register("enrich", enrich)

        assert isinstance(registry.resolve("enrich"), CallableTask)
        assert "enrich" in registry

    def test_duplicate_id_rejected(self):
        """Registering an id twice should fail."""
        registry = TaskRegistry()
        registry.register("a", _returning(1))

        with pytest.raises(GraphDefinitionError):
            registry.register("a", _returning(2))

    def test_unknown_id_rejected(self):
        """Resolving an unknown id should fail."""
        with pytest.raises(GraphDefinitionError):
            TaskRegistry().resolve("missing")

    def test_non_task_rejected(self):
        """Objects without execute() that are not callable should be rejected."""
        with pytest.raises(GraphDefinitionError):
            TaskRegistry().register("bad", 42)


# ============================================================================
# TestAgentOrchestrator
# ============================================================================


class TestAgentOrchestrator:
    """Tests for phase execution semantics."""

    def test_results_flow_between_phases(self):
        """Later tasks should see earlier results."""
        second = _returning("b-result")
        graph = ExecutionGraph([
            _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning("a-result"))),
            _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("b", second, ("a",))),
        ])

        result = _run(AgentOrchestrator(graph, _make_context()))

        assert result.results == {"a": "a-result", "b": "b-result"}
        assert second.func.seen == {"a": "a-result"}
        assert set(result.metrics.agent_timings) == {"a", "b"}
        assert result.run_id == "run-exec"

    def test_parallel_tasks_run_concurrently(self):
        """Parallel siblings should be able to wait on each other."""
        first_ready = asyncio.Event()
        second_ready = asyncio.Event()

        async def first(task_input, context):
            first_ready.set()
            await asyncio.wait_for(second_ready.wait(), timeout=1)
            return "first"

        async def second(task_input, context):
            second_ready.set()
            await asyncio.wait_for(first_ready.wait(), timeout=1)
            return "second"

        graph = ExecutionGraph([
            _phase("both", ExecutionMode.PARALLEL, TaskSpec("x", CallableTask(first)), TaskSpec("y", CallableTask(second))),
        ])

        result = _run(AgentOrchestrator(graph, _make_context()))

        assert result.results == {"x": "first", "y": "second"}

    def test_parallel_failure_is_isolated(self):
        """A failing parallel task should not stop its siblings."""
        graph = ExecutionGraph([
            _phase("core", ExecutionMode.PARALLEL, TaskSpec("good", _returning("ok")), TaskSpec("bad", _failing("boom"))),
            _phase("after", ExecutionMode.SEQUENTIAL, TaskSpec("final", _returning("done"))),
        ])
        store = InMemoryRunStore()

        result = _run(AgentOrchestrator(graph, _make_context(), store=store))

        assert result.results == {"good": "ok", "final": "done"}
        assert result.metrics.errors == [{"agent": "bad", "phase": "core", "error": "boom"}]
        assert store.get_run("run-exec")["status"] == "completed"

    def test_parallel_configuration_error_aborts(self):
        """A ConfigurationError in a parallel task should fail the whole run."""
        async def misconfigured(task_input, context):
            raise ConfigurationError("PLACES_API_KEY is not set")

        later = _returning("never")
        graph = ExecutionGraph([
            _phase("core", ExecutionMode.PARALLEL, TaskSpec("good", _returning("ok")), TaskSpec("bad", CallableTask(misconfigured))),
            _phase("after", ExecutionMode.SEQUENTIAL, TaskSpec("final", later)),
        ])
        store = InMemoryRunStore()

        with pytest.raises(ConfigurationError, match="PLACES_API_KEY"):
            _run(AgentOrchestrator(graph, _make_context(), store=store))

        assert later.func.seen is None
        assert store.get_run("run-exec")["status"] == "failed"

    def test_sequential_failure_aborts(self):
        """A failing sequential task should stop the run and raise."""
        later = _returning("never")
        graph = ExecutionGraph([
            _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1)), TaskSpec("b", _failing("fatal"))),
            _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("c", later)),
        ])
        store = InMemoryRunStore()
        observer = _RecordingObserver()
        runner = AgentOrchestrator(graph, _make_context(), store=store, observer=observer)

        with pytest.raises(RuntimeError, match="fatal"):
            _run(runner)

        assert later.func.seen is None
        run = store.get_run("run-exec")
        assert run["status"] == "failed"
        assert run["error"] == "fatal"
        assert observer.types()[-1] == events.ORCHESTRATOR_ERROR

    def test_event_order(self):
        """Events should bracket phases and tasks in emission order."""
        graph = ExecutionGraph([
            _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1))),
            _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("b", _returning(2))),
        ])
        observer = _RecordingObserver()

        _run(AgentOrchestrator(graph, _make_context(), observer=observer))

        assert observer.types() == [
            events.ORCHESTRATOR_STARTED,
            events.PHASE_START,
            events.AGENT_START,
            events.AGENT_COMPLETE,
            events.PHASE_COMPLETE,
            events.PHASE_START,
            events.AGENT_START,
            events.AGENT_COMPLETE,
            events.PHASE_COMPLETE,
            events.ORCHESTRATOR_COMPLETE,
        ]
        completes = [e.percent_complete for e in observer.events if e.type == events.PHASE_COMPLETE]
        assert completes == [50, 100]

    def test_agent_error_event(self):
        """A failing parallel task should emit agent:error."""
        graph = ExecutionGraph([
            _phase("core", ExecutionMode.PARALLEL, TaskSpec("bad", _failing("boom")), TaskSpec("good", _returning(1))),
        ])
        observer = _RecordingObserver()

        _run(AgentOrchestrator(graph, _make_context(), observer=observer))

        errors = [e for e in observer.events if e.type == events.AGENT_ERROR]
        assert len(errors) == 1
        assert errors[0].agent == "bad"
        assert errors[0].error == "boom"

    def test_observer_failure_is_ignored(self):
        """A raising observer should not affect the run or other observers."""
        graph = ExecutionGraph([_phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1)))])
        recorder = _RecordingObserver()
        observers = ObserverGroup([_BrokenObserver(), None, recorder])

        result = _run(AgentOrchestrator(graph, _make_context(), observer=observers))

        assert result.results == {"a": 1}
        assert recorder.types()[-1] == events.ORCHESTRATOR_COMPLETE

    def test_progress_persisted_after_each_phase(self):
        """The store should see partial results and the final result."""
        snapshots = []

        class _SpyStore(InMemoryRunStore):
            async def update_run_progress(self, run_id, partial):
                snapshots.append(dict(partial))
                await super().update_run_progress(run_id, partial)

        graph = ExecutionGraph([
            _phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning({"x": 1}))),
            _phase("two", ExecutionMode.SEQUENTIAL, TaskSpec("b", _returning(2))),
        ])
        store = _SpyStore()

        _run(AgentOrchestrator(graph, _make_context(), store=store))

        assert [s["phase"] for s in snapshots] == ["one", "two"]
        assert snapshots[0]["results"] == {"a": {"x": 1}}
        assert snapshots[0]["percent_complete"] == 50
        run = store.get_run("run-exec")
        assert run["result"] == {"a": {"x": 1}, "b": 2}
        assert run["meta"]["graph"][0]["phase"] == "one"

    def test_progress_failure_does_not_fail_run(self):
        """A store that cannot save progress should only be logged."""

        class _FlakyStore(InMemoryRunStore):
            async def update_run_progress(self, run_id, partial):
                raise RuntimeError("disk full")

        graph = ExecutionGraph([_phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1)))])
        store = _FlakyStore()

        result = _run(AgentOrchestrator(graph, _make_context(), store=store))

        assert result.results == {"a": 1}
        assert store.get_run("run-exec")["status"] == "completed"

    def test_existing_run_id_is_used(self):
        """A run created by the caller should not be created again."""
        store = InMemoryRunStore()
        run_id = asyncio.run(store.create_run({"run_id": "pre-made"}))
        graph = ExecutionGraph([_phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("a", _returning(1)))])

        result = _run(AgentOrchestrator(graph, _make_context(), store=store, run_id=run_id))

        assert result.run_id == "pre-made"
        assert store.list_runs() == ["pre-made"]

    def test_to_dict_is_plain_data(self):
        """Model results should be dumped to dicts."""
        trip = _make_trip()
        graph = ExecutionGraph([_phase("one", ExecutionMode.SEQUENTIAL, TaskSpec("trip", _returning(trip)))])

        payload = _run(AgentOrchestrator(graph, _make_context())).to_dict()

        assert payload["results"]["trip"]["cities"] == ["Paris", "Lyon"]


# ============================================================================
# TestItineraryTasks
# ============================================================================


class TestItineraryTasks:
    """Tests for the built-in itinerary tasks and default graph."""

    def test_mock_day_planner(self):
        """Arrival and departure days should be trimmed; cities split evenly."""
        structure = asyncio.run(MockDayPlanner().plan(_make_trip()))

        assert [d.city for d in structure.days] == ["Paris", "Paris", "Lyon"]
        assert structure.days[0].day_of_week == "Monday"
        assert all(s.time_window.start >= "12:00" for s in structure.days[0].slots)
        assert all(s.time_window.start <= "14:00" for s in structure.days[-1].slots)
        assert len(structure.days[1].slots) == 4

    def test_single_day_trip_keeps_all_slots(self):
        """A one-day trip should not trim morning or evening slots."""
        trip = _make_trip(cities=("Paris",), end="2025-06-02", pace="packed")

        structure = asyncio.run(MockDayPlanner().plan(trip))

        assert structure.slot_count == 5

    def test_full_graph_with_mock_source(self):
        """The default graph should fill every slot and roll up the budget."""
        trip = _make_trip()
        context = _make_context(trip)
        store = InMemoryRunStore()
        graph = create_itinerary_graph(MockKnowledgeSource(), loop_config=get_loop_config(max_attempts=2))

        result = _run(AgentOrchestrator(graph, context, store=store, trip=trip))

        assert set(result.results) == {"day_planner", "activities", "restaurants", "budget"}
        assert result.metrics.errors == []
        activities = result.results["activities"]
        restaurants = result.results["restaurants"]
        assert activities["fallbacks"] == 0
        assert activities["filled"] + restaurants["filled"] == context.state.activities_scheduled
        assert restaurants["filled"] == context.state.restaurants_scheduled
        budget = result.results["budget"]
        assert budget["spent"] == pytest.approx(context.state.budget_spent)
        assert budget["by_task"]["activities"] + budget["by_task"]["restaurants"] == pytest.approx(budget["spent"])
        assert store.get_run("run-exec")["status"] == "completed"

    def test_extra_task_runs_in_enrichment_phase(self):
        """Extras should see the day structure and land in the results."""
        trip = _make_trip(cities=("Paris",), end="2025-06-02")

        async def weather(task_input, context):
            return {"days": len(task_input.results["day_planner"].days)}

        graph = create_itinerary_graph(MockKnowledgeSource(), extras={"weather": weather})
        result = _run(AgentOrchestrator(graph, _make_context(trip), trip=trip))

        assert result.results["weather"] == {"days": 1}

    def test_day_structure_requires_trip(self):
        """Without a trip the first phase should fail the run."""
        graph = create_itinerary_graph(MockKnowledgeSource())

        with pytest.raises(ValueError):
            _run(AgentOrchestrator(graph, _make_context()))

    def test_slot_task_fallback_marks_slot(self):
        """A slot whose loop gives up should get the fallback place."""

        class _AlwaysInvalid:
            async def validate(self, candidate, city, scheduling):
                return PlaceLookup(valid=False, status="not_found")

            async def check_availability(self, place, when):
                raise AssertionError("not reached")

        trip = _make_trip(cities=("Paris",), end="2025-06-02", pace="relaxed")
        graph = create_itinerary_graph(
            MockKnowledgeSource(),
            ValidationStage(_AlwaysInvalid()),
            loop_config=get_loop_config(max_attempts=1),
        )

        result = _run(AgentOrchestrator(graph, _make_context(trip), trip=trip))

        activities = result.results["activities"]
        slot = activities["days"][0]["slots"][0]
        assert activities["fallbacks"] == 1
        assert slot["fallback"] is True
        assert slot["place"]["name"] == "Explore Paris City Center"
        assert result.results["budget"]["spent"] == 0

    def test_budget_task_skips_fallbacks(self):
        """Fallback slots should not count toward the per-task cost."""
        context = _make_context()
        results = {
            "activities": {
                "category": "activity",
                "days": [{"slots": [
                    {"fallback": False, "place": {"estimated_cost": 12}},
                    {"fallback": True, "place": {"estimated_cost": 99}},
                ]}],
            },
        }
        summary = asyncio.run(
            BudgetTask().execute(
                TaskInput(run_id="r", trip=None, results=results, phase="budget", task_name="budget"),
                context,
            )
        )

        assert summary["by_task"] == {"activities": 12}
        assert summary["over_budget"] is False
        assert context.get_decisions_by_phase("budget")[0]["summary"] == summary

    def test_day_structure_task_sets_current_day(self):
        """The first day should become the context's current day."""
        context = _make_context()
        task_input = TaskInput(run_id="r", trip=_make_trip(), results={}, phase="p", task_name="day_planner")

        asyncio.run(DayStructureTask(MockDayPlanner()).execute(task_input, context))

        assert context.state.current_day == 1
        assert context.state.current_city == "Paris"

    def test_slot_task_requires_structure(self):
        """A slot task without the day structure should fail."""
        task = SlotDiscoveryTask("activity", MockKnowledgeSource())
        task_input = TaskInput(run_id="r", trip=None, results={}, phase="p", task_name="activities")

        with pytest.raises(ValueError):
            asyncio.run(task.execute(task_input, _make_context()))
