"""Logging configuration and utilities."""

from itinerary_agents.shared.logging.config import (
    StructuredFormatter,
    log_state_transition,
    setup_logging,
    summarize_loop_state,
)
from itinerary_agents.shared.logging.audit_logger import (
    RunAuditLogger,
    get_or_create_audit_logger,
    remove_audit_logger,
    read_audit_log,
)

__all__ = [
    "setup_logging",
    "log_state_transition",
    "StructuredFormatter",
    "summarize_loop_state",
    "RunAuditLogger",
    "get_or_create_audit_logger",
    "remove_audit_logger",
    "read_audit_log",
]
