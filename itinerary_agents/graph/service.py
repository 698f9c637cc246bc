"""
Itinerary generation service.

Entry point for callers: checks preconditions, creates the run record and
its SharedContext, and submits the phase runner to the single-slot job
queue. Status combines the queue's view with the persisted progress.
"""

import logging
from typing import Any, Dict, Optional

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.discovery.agent import KnowledgeSource
from itinerary_agents.discovery.config import DEFAULT_CONFIG as DEFAULT_DISCOVERY_CONFIG
from itinerary_agents.discovery.config import DiscoveryConfig
from itinerary_agents.graph.build import create_itinerary_graph
from itinerary_agents.graph.day_planner import DayPlanner
from itinerary_agents.graph.events import LoggingObserver, ObserverGroup, ProgressObserver
from itinerary_agents.graph.runner import AgentOrchestrator
from itinerary_agents.jobs.queue import JobQueue
from itinerary_agents.orchestration.config import DEFAULT_CONFIG as DEFAULT_LOOP_CONFIG
from itinerary_agents.orchestration.config import FeedbackLoopConfig
from itinerary_agents.persistence.store import InMemoryRunStore, RunStore
from itinerary_agents.shared.contracts.trip import TripRequest
from itinerary_agents.shared.logging.audit_logger import (
    get_or_create_audit_logger,
    remove_audit_logger,
)
from itinerary_agents.validation.stage import PlaceValidator, ValidationStage


logger = logging.getLogger(__name__)


class ItineraryGenerationService:
    """
    Submits itinerary-generation runs and reports their status.

    Args:
        knowledge_source: Candidate source for discovery
        store: Run store (in-memory if None)
        queue: Job queue (a private one if None)
        validator: Authoritative place validator (validation skipped if None)
        day_planner: Day planner (mock if None)
        extras: Optional phase-3 tasks by name
        audit_dir: Directory for per-run audit logs (disabled if None)
    """

    def __init__(
        self,
        knowledge_source: KnowledgeSource,
        store: Optional[RunStore] = None,
        queue: Optional[JobQueue] = None,
        validator: Optional[PlaceValidator] = None,
        day_planner: Optional[DayPlanner] = None,
        extras: Optional[Dict[str, Any]] = None,
        audit_dir: Optional[str] = None,
        discovery_config: DiscoveryConfig = DEFAULT_DISCOVERY_CONFIG,
        loop_config: FeedbackLoopConfig = DEFAULT_LOOP_CONFIG,
    ):
        self.knowledge_source = knowledge_source
        self.store = store if store is not None else InMemoryRunStore()
        self.queue = queue if queue is not None else JobQueue()
        self.validation_stage = ValidationStage(validator)
        self.day_planner = day_planner
        self.extras = extras
        self.audit_dir = audit_dir
        self.discovery_config = discovery_config
        self.loop_config = loop_config

    def preflight(self) -> None:
        """
        Check hard preconditions before any job is queued.

        Raises:
            ConfigurationError: If a collaborator is missing its credentials
        """
        check = getattr(self.knowledge_source, "preflight", None)
        if check is not None:
            check()

    async def submit(self, trip: TripRequest, observer: Optional[ProgressObserver] = None) -> str:
        """
        Create a run and queue it.

        Returns:
            The run id, usable with ``status``
        """
        self.preflight()

        run_id = await self.store.create_run({"trip": trip.model_dump()})
        _log = f"[run={run_id}] [graph=execution] [api=submit] "
        logger.info(
            f"{_log}Run submitted | destination={trip.destination}, "
            f"cities={trip.itinerary_cities()}, days={trip.total_days}, "
            f"budget={trip.preferences.budget_total}"
        )

        context = SharedContext.from_trip(
            run_id,
            trip,
            city_scoped_negative_cache=self.loop_config.city_scoped_negative_cache,
        )

        async def process() -> Dict[str, Any]:
            return await self._run(run_id, trip, context, observer)

        self.queue.add_job(
            run_id,
            process,
            {"destination": trip.destination, "days": trip.total_days},
        )
        return run_id

    async def _run(
        self,
        run_id: str,
        trip: TripRequest,
        context: SharedContext,
        observer: Optional[ProgressObserver],
    ) -> Dict[str, Any]:
        audit = get_or_create_audit_logger(run_id, self.audit_dir) if self.audit_dir else None
        observers = ObserverGroup([LoggingObserver(logging.DEBUG), audit, observer])

        graph = create_itinerary_graph(
            self.knowledge_source,
            self.validation_stage,
            self.day_planner,
            self.extras,
            self.discovery_config,
            self.loop_config,
        )
        runner = AgentOrchestrator(
            graph, context, store=self.store, observer=observers, trip=trip, run_id=run_id
        )

        try:
            result = await runner.execute()
            return {**result.to_dict(), "summary": context.generate_summary()}
        finally:
            await context.persist_decisions(self.store)
            if audit is not None:
                audit.log_decisions(context)
                audit.log_run_summary(context.generate_summary())
                remove_audit_logger(run_id)

    def status(self, run_id: str) -> Optional[Dict[str, Any]]:
        """
        Snapshot of a run: queue state, timestamps, error and progress.

        Returns None for an unknown run id.
        """
        job = self.queue.get_job_status(run_id)
        run = self.store.get_run(run_id) if hasattr(self.store, "get_run") else None
        if job is None and run is None:
            return None

        snapshot: Dict[str, Any] = {"run_id": run_id}
        if job is not None:
            snapshot.update(
                {
                    "state": job["status"],
                    "created_at": job["created_at"],
                    "started_at": job["started_at"],
                    "completed_at": job["completed_at"],
                    "error": job["error"],
                }
            )
        if run is not None:
            snapshot.setdefault("state", run["status"])
            snapshot.setdefault("error", run["error"])
            snapshot["progress"] = run["progress"]
            snapshot["run_status"] = run["status"]
        return snapshot

    async def wait(self) -> None:
        """Wait until every submitted run has finished."""
        await self.queue.join()
