"""
Orchestrator agent: the discover → validate → select feedback loop.

Drives one discovery request to either a selected, validated place or a
fallback marker. When a validation round yields nothing, the failures are
analyzed, the failed names go to the negative cache, and the request is
tightened before discovery runs again.
"""

import logging
from typing import Any, Dict, List, Optional

from itinerary_agents.context.shared_context import SharedContext
from itinerary_agents.discovery.agent import DiscoveryAgent
from itinerary_agents.orchestration.config import (
    DEFAULT_CONFIG,
    FeedbackLoopConfig,
    recursion_limit_for,
)
from itinerary_agents.orchestration.feedback import (
    analyze_validation_failures,
    update_request_with_feedback,
)
from itinerary_agents.orchestration.graph import create_feedback_loop_graph
from itinerary_agents.orchestration.schemas import FeedbackLoopState
from itinerary_agents.selection.scoring import SelectionStage
from itinerary_agents.shared.contracts.discovery import DiscoveryRequest
from itinerary_agents.shared.contracts.selection import DiscoveryOutcome, SelectionOutcome
from itinerary_agents.shared.contracts.validation import (
    SchedulingContext,
    ValidatedPlace,
    ValidationResult,
)
from itinerary_agents.shared.exceptions import ConfigurationError
from itinerary_agents.shared.logging.config import log_state_transition
from itinerary_agents.validation.stage import ValidationStage


logger = logging.getLogger(__name__)

AGENT_NAME = "orchestrator"


class OrchestratorAgent:
    """
    Coordinates discovery, validation and selection for single slots.

    The loop itself is a LangGraph state machine; this class provides its
    nodes and commits the winner's side effects to the shared context.
    """

    def __init__(
        self,
        context: SharedContext,
        discovery_agent: DiscoveryAgent,
        validation_stage: Optional[ValidationStage] = None,
        selection_stage: Optional[SelectionStage] = None,
        config: FeedbackLoopConfig = DEFAULT_CONFIG,
    ):
        self.context = context
        self.discovery_agent = discovery_agent
        self.validation_stage = validation_stage or ValidationStage()
        self.selection_stage = selection_stage or SelectionStage(context)
        self.config = config
        self._app = create_feedback_loop_graph(self)

    def _log(self, node: str) -> str:
        return f"[run={self.context.run_id}] [graph=feedback_loop] [node={node}] "

    # ========== ENTRY POINT ==========

    async def discover_and_select(
        self,
        request: DiscoveryRequest,
        max_attempts: Optional[int] = None,
    ) -> DiscoveryOutcome:
        """
        Run the feedback loop for one request.

        Args:
            request: The slot to fill
            max_attempts: Discovery rounds allowed (config default if None)

        Returns:
            DiscoveryOutcome; ``success=False, fallback=True`` when the
            budget is spent without a valid candidate.

        Raises:
            The exception of the final attempt, when that attempt raised.
            ConfigurationError on the attempt it occurs.
            ValueError: If max_attempts is below 1.
        """
        if max_attempts is None:
            max_attempts = self.config.max_attempts
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        logger.info(
            f"{self._log('entry')}Starting discovery for {request.purpose or request.category} | "
            f"city={request.city}, window={request.time_window.start}-{request.time_window.end}, "
            f"max_attempts={max_attempts}"
        )

        initial: FeedbackLoopState = {
            "run_id": self.context.run_id,
            "request": request,
            "attempt": 0,
            "max_attempts": max_attempts,
            "status": "pending",
            "candidates": [],
            "validation_results": [],
            "error": None,
            "failure_reason": None,
            "outcome": None,
        }

        final = await self._app.ainvoke(
            initial,
            config={"recursion_limit": recursion_limit_for(self.config, max_attempts)},
        )

        if final["status"] == "error":
            raise final["error"]

        return final["outcome"]

    # ========== NODES ==========

    def _record_error(self, state: FeedbackLoopState, node: str, error: Exception) -> Dict[str, Any]:
        if isinstance(error, ConfigurationError):
            raise error
        logger.error(f"{self._log(node)}Attempt {state['attempt']} error: {error}")
        self.context.record_decision(
            "error",
            reasoning=str(error),
            agent=AGENT_NAME,
            attempt=state["attempt"],
            node=node,
            error=str(error),
            error_type=type(error).__name__,
        )
        return {"status": "error", "error": error}

    async def discover(self, state: FeedbackLoopState) -> Dict[str, Any]:
        attempt = state["attempt"] + 1
        request = state["request"]
        state = {**state, "attempt": attempt, "error": None}
        log_state_transition("discover", state, logger=logger)

        try:
            result = await self.discovery_agent.discover_candidates(request)
        except Exception as e:
            return {"attempt": attempt, **self._record_error(state, "discover", e)}

        if not result.candidates:
            logger.warning(f"{self._log('discover')}No candidates discovered")
            self.context.record_decision(
                "discovery_failed",
                reasoning="No candidates discovered",
                agent=AGENT_NAME,
                attempt=attempt,
                city=request.city,
            )
            return {
                "attempt": attempt,
                "error": None,
                "status": "no_candidates",
                "candidates": [],
                "failure_reason": "No candidates could be discovered",
            }

        logger.info(
            f"{self._log('discover')}Attempt {attempt}/{state['max_attempts']} | "
            f"discovered {len(result.candidates)} candidates"
        )
        return {
            "attempt": attempt,
            "error": None,
            "status": "discovered",
            "candidates": result.candidates,
            "validation_results": [],
        }

    async def validate(self, state: FeedbackLoopState) -> Dict[str, Any]:
        request = state["request"]
        candidates = state["candidates"]
        scheduling = SchedulingContext(
            run_id=self.context.run_id,
            date=request.date,
            scheduled_time=request.time_window.start,
        )

        # Known-bad names are not sent to the validator again
        fresh = [c for c in candidates if not self.context.is_place_invalid(c.name, request.city)]

        try:
            checked = await self.validation_stage.validate(fresh, request.city, scheduling)
        except Exception as e:
            return self._record_error(state, "validate", e)

        by_name = {result.candidate.name: result for result in checked}
        results: List[ValidationResult] = []
        for candidate in candidates:
            result = by_name.get(candidate.name)
            if result is None:
                result = ValidationResult(
                    candidate=candidate,
                    valid=False,
                    status="previously_invalid",
                    reason=self.context.get_invalid_reason(candidate.name, request.city),
                )
            results.append(result)

        valid_count = sum(1 for r in results if r.valid)
        self.context.record_decision(
            "validation",
            reasoning=f"{valid_count}/{len(results)} candidates valid",
            agent=AGENT_NAME,
            attempt=state["attempt"],
            total_candidates=len(results),
            valid_candidates=valid_count,
            invalid_candidates=len(results) - valid_count,
            validation_results=[
                {
                    "name": r.candidate.name,
                    "valid": r.valid,
                    "confidence": r.confidence,
                    "status": r.status,
                }
                for r in results
            ],
        )

        return {
            "status": "validated" if valid_count else "no_valid",
            "validation_results": results,
        }

    async def select(self, state: FeedbackLoopState) -> Dict[str, Any]:
        request = state["request"]
        valid = [r for r in state["validation_results"] if r.valid]

        try:
            selection = self.selection_stage.select(valid)
        except Exception as e:
            return self._record_error(state, "select", e)

        self.context.record_decision(
            "selection",
            reasoning=selection.reasoning,
            alternatives=[
                {
                    "name": alt.place.name,
                    "score": alt.score,
                    "why_not_selected": alt.rejection_reason,
                }
                for alt in selection.alternatives
            ],
            agent=AGENT_NAME,
            attempt=state["attempt"],
            selected={
                "name": selection.place.name,
                "score": selection.score,
                "confidence": selection.confidence,
                "reasoning": selection.reasoning,
            },
            valid_candidates=len(valid),
            total_candidates=len(state["validation_results"]),
        )

        place = self._commit_selection(request, selection)

        outcome = DiscoveryOutcome(
            success=True,
            attempts=state["attempt"],
            place=place,
            reasoning=selection.reasoning,
            confidence=selection.confidence,
            score=selection.score,
            alternatives=len(selection.alternatives),
        )
        log_state_transition(
            "success", {**state, "status": "success"}, {"place": selection.place.name}, logger
        )
        return {"status": "success", "outcome": outcome}

    async def feedback(self, state: FeedbackLoopState) -> Dict[str, Any]:
        request = state["request"]
        analysis = analyze_validation_failures(state["validation_results"])
        logger.info(f"{self._log('feedback')}Failure analysis: {analysis.feedback}")

        for failure in analysis.failures:
            # keep the first recorded reason
            if not self.context.is_place_invalid(failure.name, request.city):
                self.context.mark_place_invalid(failure.name, failure.reason, city=request.city)

        updated = update_request_with_feedback(request, analysis)
        retrying = state["attempt"] < state["max_attempts"]

        self.context.record_decision(
            "feedback",
            reasoning=analysis.feedback,
            agent=AGENT_NAME,
            attempt=state["attempt"],
            failure_analysis=analysis.to_dict(),
            updated_constraints=list(updated.updated_constraints),
            next_action="retry_with_updated_strategy" if retrying else "give_up",
        )
        log_state_transition(
            "feedback", state, {"suggestions": analysis.suggestions}, logger
        )

        return {
            "status": "feedback_applied",
            "request": updated,
            "failure_reason": "No valid candidates found after all attempts",
        }

    async def failure(self, state: FeedbackLoopState) -> Dict[str, Any]:
        reason = state.get("failure_reason") or "No valid candidates found after all attempts"
        if state["status"] == "error" and state.get("error") is not None:
            reason = str(state["error"])

        self.context.record_decision(
            "failure",
            reasoning=reason,
            agent=AGENT_NAME,
            attempt=state["attempt"],
            city=state["request"].city,
            fallback=True,
        )
        log_state_transition("failure", state, {"reason": reason}, logger)

        return {
            # an exhausted loop whose last attempt raised re-raises it
            "status": "error" if state["status"] == "error" else "failed",
            "outcome": DiscoveryOutcome(
                success=False,
                attempts=state["max_attempts"],
                reason=reason,
                fallback=True,
            ),
        }

    # ========== SIDE EFFECTS ==========

    def _commit_selection(
        self, request: DiscoveryRequest, selection: SelectionOutcome
    ) -> ValidatedPlace:
        place = selection.place
        if place.city is None:
            place = place.model_copy(update={"city": request.city})

        self.context.add_validated_place(place)
        if place.estimated_cost:
            self.context.update_budget(place.estimated_cost)
        if place.coordinates is not None:
            self.context.update_last_location(place.coordinates)
        if place.type:
            self.context.track_activity_type(place.type)
        if place.energy_level:
            self.context.track_energy_level(place.energy_level)

        # activities_scheduled counts every scheduled place, restaurants included
        self.context.increment_activity_count()
        if request.category == "restaurant":
            self.context.increment_restaurant_count()
        self.context.update_last_activity_time(request.time_window.end)
        return place
