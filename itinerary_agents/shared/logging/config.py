"""
JSON log records for itinerary-generation runs.

``setup_logging`` routes a logger through StructuredFormatter, and
``log_state_transition`` emits one record per feedback-loop node with a
compact view of the loop state attached under ``transition``.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

PACKAGE_LOGGER = "itinerary_agents"

# Record attributes copied into the JSON entry when a log call sets them
CONTEXT_FIELDS = ("run_id", "graph", "node", "transition")


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Always has timestamp, level, logger and message; run context
    (``run_id``, ``graph``, ``node``, ``transition``) is added when the
    call passed it through ``extra=``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    logger_name: str = PACKAGE_LOGGER,
    console: bool = True,
) -> logging.Logger:
    """
    Replace a logger's handlers with JSON-lines handlers.

    Args:
        level: Logging level (default: INFO)
        log_file: Append JSON lines to this file when given
        logger_name: Logger to configure
        console: Also write JSON lines to stderr

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list = []
    if console:
        handlers.append(logging.StreamHandler())
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    formatter = StructuredFormatter()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def summarize_loop_state(state: Mapping[str, Any]) -> Dict[str, Any]:
    """JSON-safe view of a feedback-loop state: counters, slot and outcome so far."""
    results = state.get("validation_results") or []
    summary: Dict[str, Any] = {
        "attempt": state.get("attempt"),
        "max_attempts": state.get("max_attempts"),
        "status": state.get("status"),
        "candidates": len(state.get("candidates") or []),
        "valid": sum(1 for result in results if result.valid),
    }

    request = state.get("request")
    if request is not None:
        summary["city"] = request.city
        summary["category"] = request.category

    if state.get("failure_reason"):
        summary["failure_reason"] = state["failure_reason"]
    return summary


def log_state_transition(
    event: str,
    state: Mapping[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a feedback-loop node transition at INFO.

    Plain-text handlers see a one-line message; StructuredFormatter also
    writes ``run_id``, ``node`` and the state summary.

    Args:
        event: Node or outcome name ("discover", "feedback", "success", ...)
        state: Current FeedbackLoopState
        extra: Event-specific details (suggestions, chosen place, ...)
        logger: Logger to use (package logger if None)
    """
    logger = logger or logging.getLogger(PACKAGE_LOGGER)

    transition: Dict[str, Any] = {"event": event, "state": summarize_loop_state(state)}
    if extra:
        transition["details"] = extra

    logger.info(
        f"[run={state.get('run_id') or 'unknown'}] [graph=feedback_loop] [node={event}] "
        f"State transition: {event} | attempt={state.get('attempt')}/{state.get('max_attempts')}, "
        f"status={state.get('status')}",
        extra={
            "run_id": state.get("run_id"),
            "graph": "feedback_loop",
            "node": event,
            "transition": transition,
        },
    )
