"""
Audit logger for itinerary-generation runs.

Writes per-run JSON Lines files (decisions, orchestration events and a
closing summary) to the logs/ directory.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


# Run-based logger registry to ensure same instance is reused
_logger_registry: Dict[str, "RunAuditLogger"] = {}


def get_or_create_audit_logger(run_id: str, logs_dir: str = "logs") -> "RunAuditLogger":
    """
    Get an existing audit logger for the run or create a new one.

    The same instance is shared by the phase runner, the job processor
    and anything else that writes audit entries for the run, so that
    event counts accumulate in one place.

    Args:
        run_id: Itinerary-generation run identifier
        logs_dir: Directory to store log files (default: "logs")

    Returns:
        RunAuditLogger instance for this run
    """
    if run_id not in _logger_registry:
        _logger_registry[run_id] = RunAuditLogger(run_id, logs_dir)
    return _logger_registry[run_id]


def remove_audit_logger(run_id: str) -> None:
    """Remove a logger from the registry (e.g., after the run ends)."""
    _logger_registry.pop(run_id, None)


def read_audit_log(log_file_path: str, entry_type: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Load the entries of an existing audit log file.

    Malformed lines are skipped.

    Args:
        log_file_path: Path to the JSON Lines audit file
        entry_type: Only return entries whose ``type`` matches

    Returns:
        List of decoded entries in file order
    """
    entries = []
    with open(log_file_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if entry_type is None or entry.get("type") == entry_type:
                entries.append(entry)
    return entries


class RunAuditLogger:
    """
    Audit logger that writes one JSON Lines file per run.

    Doubles as a progress observer: pass it to the phase runner and every
    orchestration event is appended to the file.
    """

    def __init__(self, run_id: str, logs_dir: str = "logs"):
        self.run_id = run_id
        self.base_logs_dir = Path(logs_dir)
        self.run_dir = self.base_logs_dir / run_id
        self.log_file = self.run_dir / "audit.jsonl"

        self.run_dir.mkdir(parents=True, exist_ok=True)

        self._event_count = 0
        self._decision_count = 0
        self._error_count = 0

    def _get_timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _append_to_log(self, entry: Dict[str, Any]) -> None:
        with open(self.log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def on_event(self, event: Any) -> None:
        """Progress-observer hook: append an orchestration event."""
        payload = event.to_dict() if hasattr(event, "to_dict") else dict(event)
        payload["kind"] = payload.pop("type", None)
        payload.pop("timestamp", None)
        self.log_event(payload)

    def log_event(self, payload: Dict[str, Any]) -> None:
        """
        Append an orchestration event.

        Args:
            payload: Event fields (kind, phase, agent, status, ...)
        """
        self._event_count += 1
        if payload.get("status") == "error" or payload.get("error"):
            self._error_count += 1

        self._append_to_log({
            **payload,
            "type": "event",
            "timestamp": self._get_timestamp(),
            "run_id": self.run_id,
        })

    def log_decisions(self, context: Any) -> int:
        """
        Flush the decision log of a SharedContext to the audit file.

        Only decisions not yet written are appended, so the method can be
        called after every phase.

        Returns:
            Number of decisions written by this call
        """
        history = context.get_decision_history()
        fresh = history[self._decision_count:]
        for record in fresh:
            self._append_to_log({
                "type": "decision",
                "timestamp": self._get_timestamp(),
                "run_id": self.run_id,
                "decision": record,
            })
        self._decision_count += len(fresh)
        return len(fresh)

    def log_run_summary(self, summary: Dict[str, Any]) -> Dict[str, Any]:
        """
        Log and return a run summary with totals.

        Args:
            summary: Context summary (see SharedContext.generate_summary)

        Returns:
            The summary entry as written
        """
        entry = {
            "type": "run_summary",
            "timestamp": self._get_timestamp(),
            "run_id": self.run_id,
            "events": self._event_count,
            "decisions": self._decision_count,
            "errors": self._error_count,
            "context": summary,
        }
        self._append_to_log(entry)
        return entry

    def get_accumulated_stats(self) -> Dict[str, int]:
        """Current totals without logging."""
        return {
            "events": self._event_count,
            "decisions": self._decision_count,
            "errors": self._error_count,
        }
