"""Process-level run telemetry."""

from __future__ import annotations

import json
import time
import uuid
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import config
from .error_codes import ErrorCode
from .utils import log_warning


def _ts() -> str:
    return time.strftime("%Y%m%d_%H%M%S")


class RunTelemetry:
    """Collect one telemetry entry per run under a single process operation.

    Implements the run-loop observer hooks; ``flush`` persists the operation
    as ``run_<operation_id>.json`` under ``RUNS_DIR``.
    """

    def __init__(self, operation: str = "AVD test") -> None:
        self.operation = operation
        self.operation_id = f"{_ts()}_{uuid.uuid4().hex[:8]}"
        self.started_at = time.time()
        self.entries: List[Dict[str, Any]] = []
        self.summary: Dict[str, Any] = defaultdict(int)
        self._run_started_at: Optional[float] = None

    def add(self, status: str, reason: str, meta: Dict[str, Any]) -> None:
        self.entries.append(
            {
                "status": status,
                "reason": reason,
                **meta,
            }
        )
        self.summary[f"count_{status}"] += 1

    def _duration(self) -> Optional[float]:
        if self._run_started_at is None:
            return None
        return round(time.time() - self._run_started_at, 3)

    def run_started(self) -> None:
        self._run_started_at = time.time()

    def run_succeeded(self, region_count: int) -> None:
        if region_count:
            self.add("ok", "", {"regions": region_count, "duration_s": self._duration()})
        else:
            self.add("empty", ErrorCode.NO_REGIONS, {"regions": 0, "duration_s": self._duration()})
        self._run_started_at = None

    def run_failed(self, error: BaseException, reason: str = ErrorCode.INTERNAL) -> None:
        self.add(
            "failed",
            reason,
            {"error": f"{type(error).__name__}: {error}", "duration_s": self._duration()},
        )
        self._run_started_at = None

    def flush(self, extra: Optional[Dict[str, Any]] = None) -> str:
        payload = {
            "operation": self.operation,
            "operation_id": self.operation_id,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "summary": dict(self.summary),
            "entries": self.entries,
            **(extra or {}),
        }
        runs_dir = Path(config.RUNS_DIR)
        runs_dir.mkdir(parents=True, exist_ok=True)
        path = runs_dir / f"run_{self.operation_id}.json"
        with path.open("w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        return str(path)


def prune_old_exports(keep: Optional[int] = None) -> None:
    """Delete the oldest ``.xlsx`` exports beyond ``EXPORTS_KEEP_MAX``."""

    exports_dir = Path(config.EXPORTS_DIR)
    if not exports_dir.is_dir():
        return
    limit = config.EXPORTS_KEEP_MAX if keep is None else keep
    # Export names embed a sortable timestamp.
    workbooks = sorted(exports_dir.glob("*.xlsx"))
    for stale in workbooks[: max(len(workbooks) - limit, 0)]:
        try:
            stale.unlink()
        except OSError as exc:
            log_warning(f"[EXPORT] Unable to delete old export {stale}: {exc}")


__all__ = [
    "RunTelemetry",
    "prune_old_exports",
]
