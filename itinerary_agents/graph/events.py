"""
Progress events emitted by the phase runner.

Observers receive every event synchronously, in emission order. An
observer that raises is logged and otherwise ignored.
"""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Protocol


logger = logging.getLogger(__name__)

ORCHESTRATOR_STARTED = "orchestrator:started"
ORCHESTRATOR_COMPLETE = "orchestrator:complete"
ORCHESTRATOR_ERROR = "orchestrator:error"
PHASE_START = "phase:start"
PHASE_COMPLETE = "phase:complete"
AGENT_START = "agent:start"
AGENT_COMPLETE = "agent:complete"
AGENT_ERROR = "agent:error"


@dataclass
class ProgressEvent:
    type: str
    run_id: str
    phase: Optional[str] = None
    percent_complete: Optional[int] = None
    message: Optional[str] = None
    agent: Optional[str] = None
    status: Optional[str] = None
    duration_ms: Optional[float] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


class ProgressObserver(Protocol):
    def on_event(self, event: ProgressEvent) -> None:
        ...


class LoggingObserver:
    """Writes every event to the log."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def on_event(self, event: ProgressEvent) -> None:
        details = ", ".join(
            f"{key}={value}"
            for key, value in (
                ("phase", event.phase),
                ("agent", event.agent),
                ("status", event.status),
                ("progress", event.percent_complete),
                ("duration_ms", event.duration_ms),
            )
            if value is not None
        )
        logger.log(
            self.level,
            f"[run={event.run_id}] [graph=execution] {event.type} | {details}"
            + (f" | {event.message}" if event.message else ""),
        )


class ObserverGroup:
    """Fans one event stream out to several observers."""

    def __init__(self, observers: List[ProgressObserver]):
        self.observers = [o for o in observers if o is not None]

    def on_event(self, event: ProgressEvent) -> None:
        for observer in self.observers:
            notify(observer, event)


def notify(observer: Optional[ProgressObserver], event: ProgressEvent) -> None:
    """Deliver an event, logging (not raising) observer failures."""
    if observer is None:
        return
    try:
        observer.on_event(event)
    except Exception as e:
        logger.warning(
            f"[run={event.run_id}] Progress observer {type(observer).__name__} "
            f"failed on {event.type}: {e}"
        )
