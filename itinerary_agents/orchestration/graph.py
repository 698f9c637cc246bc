"""
Graph construction and routing for the discovery feedback loop.

The graph structure is:
    Entry → discover → route_after_discover()
                          ├→ candidates found → validate
                          ├→ nothing / error, attempts left → discover
                          └→ nothing / error, budget spent → failure
            validate → route_after_validate()
                          ├→ ≥1 valid → select → END
                          ├→ none valid → feedback → route_after_feedback()
                          │                           ├→ attempts left → discover
                          │                           └→ budget spent → failure
                          └→ error → discover | failure
            failure → END
"""

import logging
from typing import Any, Literal, Protocol

from langgraph.graph import END, StateGraph

from itinerary_agents.orchestration.schemas import FeedbackLoopState


logger = logging.getLogger(__name__)


class FeedbackLoopNodes(Protocol):
    """Node callables the loop graph is built from."""

    async def discover(self, state: FeedbackLoopState) -> dict: ...

    async def validate(self, state: FeedbackLoopState) -> dict: ...

    async def select(self, state: FeedbackLoopState) -> dict: ...

    async def feedback(self, state: FeedbackLoopState) -> dict: ...

    async def failure(self, state: FeedbackLoopState) -> dict: ...


def _log_prefix(state: FeedbackLoopState, router: str) -> str:
    return f"[run={state.get('run_id', 'unknown')}] [graph=feedback_loop] [router={router}] "


def _attempts_left(state: FeedbackLoopState) -> bool:
    return state["attempt"] < state["max_attempts"]


def _retry_or_fail(state: FeedbackLoopState, router: str) -> Literal["discover", "failure"]:
    if _attempts_left(state):
        logger.info(
            f"{_log_prefix(state, router)}Routing to 'discover' (retry) | "
            f"attempt={state['attempt']}/{state['max_attempts']}, status={state['status']}"
        )
        return "discover"
    logger.info(
        f"{_log_prefix(state, router)}Routing to 'failure' | "
        f"attempts exhausted ({state['max_attempts']}), status={state['status']}"
    )
    return "failure"


def route_after_discover(state: FeedbackLoopState) -> Literal["validate", "discover", "failure"]:
    if state["status"] == "discovered":
        return "validate"
    return _retry_or_fail(state, "route_after_discover")


def route_after_validate(
    state: FeedbackLoopState,
) -> Literal["select", "feedback", "discover", "failure"]:
    status = state["status"]
    if status == "validated":
        return "select"
    if status == "no_valid":
        return "feedback"
    return _retry_or_fail(state, "route_after_validate")


def route_after_select(state: FeedbackLoopState) -> Literal["end", "discover", "failure"]:
    if state["status"] == "success":
        return "end"
    return _retry_or_fail(state, "route_after_select")


def route_after_feedback(state: FeedbackLoopState) -> Literal["discover", "failure"]:
    return _retry_or_fail(state, "route_after_feedback")


def create_feedback_loop_graph(nodes: FeedbackLoopNodes) -> Any:
    """
    Create and compile the LangGraph workflow for one discovery request.

    Args:
        nodes: Object providing the five node coroutines

    Returns:
        Compiled LangGraph application; run it with ``ainvoke``.
    """
    graph = StateGraph(FeedbackLoopState)

    graph.add_node("discover", nodes.discover)
    graph.add_node("validate", nodes.validate)
    graph.add_node("select", nodes.select)
    graph.add_node("feedback", nodes.feedback)
    graph.add_node("failure", nodes.failure)

    graph.set_entry_point("discover")

    graph.add_conditional_edges(
        "discover",
        route_after_discover,
        {"validate": "validate", "discover": "discover", "failure": "failure"},
    )
    graph.add_conditional_edges(
        "validate",
        route_after_validate,
        {
            "select": "select",
            "feedback": "feedback",
            "discover": "discover",
            "failure": "failure",
        },
    )
    graph.add_conditional_edges(
        "select",
        route_after_select,
        {"end": END, "discover": "discover", "failure": "failure"},
    )
    graph.add_conditional_edges(
        "feedback",
        route_after_feedback,
        {"discover": "discover", "failure": "failure"},
    )
    graph.add_edge("failure", END)

    return graph.compile()
