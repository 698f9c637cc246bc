"""
Run persistence.

The phase runner writes run progress through the RunStore interface so
pollers can see partial results before a run finishes. InMemoryRunStore
keeps everything in process memory.
"""

import copy
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Protocol


logger = logging.getLogger(__name__)


class RunStore(Protocol):
    async def create_run(self, meta: Dict[str, Any]) -> str:
        ...

    async def update_run_progress(self, run_id: str, partial: Dict[str, Any]) -> None:
        ...

    async def finalize_run(self, run_id: str, result: Dict[str, Any], metrics: Dict[str, Any]) -> None:
        ...

    async def mark_run_failed(self, run_id: str, error: str) -> None:
        ...

    async def record_decision(self, run_id: str, record: Dict[str, Any]) -> None:
        ...


class InMemoryRunStore:
    """RunStore backed by a dict; snapshots returned by ``get_run`` are copies."""

    def __init__(self):
        self._runs: Dict[str, Dict[str, Any]] = {}
        self._decisions: Dict[str, List[Dict[str, Any]]] = {}

    def _require(self, run_id: str) -> Dict[str, Any]:
        run = self._runs.get(run_id)
        if run is None:
            raise KeyError(f"Unknown run: {run_id}")
        return run

    async def create_run(self, meta: Dict[str, Any]) -> str:
        run_id = meta.get("run_id") or str(uuid.uuid4())
        now = time.time()
        self._runs[run_id] = {
            "run_id": run_id,
            "status": "pending",
            "meta": dict(meta),
            "progress": {},
            "result": None,
            "metrics": None,
            "error": None,
            "created_at": now,
            "updated_at": now,
        }
        self._decisions[run_id] = []
        logger.debug(f"[run={run_id}] Run created")
        return run_id

    async def update_run_progress(self, run_id: str, partial: Dict[str, Any]) -> None:
        run = self._require(run_id)
        run["status"] = "processing"
        run["progress"].update(copy.deepcopy(partial))
        run["updated_at"] = time.time()

    async def finalize_run(self, run_id: str, result: Dict[str, Any], metrics: Dict[str, Any]) -> None:
        run = self._require(run_id)
        run["status"] = "completed"
        run["result"] = copy.deepcopy(result)
        run["metrics"] = copy.deepcopy(metrics)
        run["updated_at"] = time.time()
        logger.debug(f"[run={run_id}] Run finalized")

    async def mark_run_failed(self, run_id: str, error: str) -> None:
        run = self._require(run_id)
        run["status"] = "failed"
        run["error"] = error
        run["updated_at"] = time.time()

    async def record_decision(self, run_id: str, record: Dict[str, Any]) -> None:
        self._require(run_id)
        self._decisions[run_id].append(copy.deepcopy(record))

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        run = self._runs.get(run_id)
        return copy.deepcopy(run) if run is not None else None

    def get_decisions(self, run_id: str) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._decisions.get(run_id, []))

    def list_runs(self) -> List[str]:
        return list(self._runs)
