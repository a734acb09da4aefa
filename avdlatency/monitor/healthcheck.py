from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .config_validation import validate_runtime_config
from .csv_store import CsvStore, PersistenceError
from .logging_utils import _monitor_event
from .utils import log_line


@dataclass
class HealthResult:
    ok: bool
    checks: dict[str, dict[str, Any]]


def _nearest_existing_dir(path: Path) -> Path:
    candidate = path
    while not candidate.exists() and candidate != candidate.parent:
        candidate = candidate.parent
    return candidate


def run_health_checks(entrypoint: str = "cli", store: Optional[CsvStore] = None) -> HealthResult:
    checks: dict[str, dict[str, Any]] = {}
    store = store or CsvStore()

    try:
        validate_runtime_config(entrypoint or "cli")  # type: ignore[arg-type]
        checks["config"] = {"ok": True}
    except ValueError as exc:
        checks["config"] = {"ok": False, "error": str(exc)}

    csv_dir = _nearest_existing_dir(store.path.parent)
    checks["filesystem"] = {
        "ok": csv_dir.is_dir() and os.access(csv_dir, os.W_OK),
        "csv_path": str(store.path),
    }

    try:
        checks["csv"] = {
            "ok": True,
            "exists": store.path.exists(),
            "has_header": store.has_header(),
        }
    except PersistenceError as exc:
        checks["csv"] = {"ok": False, "error": str(exc)}

    overall_ok = all(check.get("ok", False) for check in checks.values())

    _monitor_event(
        "state" if overall_ok else "error",
        phase="health",
        context="healthcheck",
        ok=overall_ok,
        checks=checks,
    )

    return HealthResult(ok=overall_ok, checks=checks)


if __name__ == "__main__":  # pragma: no cover
    result = run_health_checks(entrypoint="cli")
    for name, info in result.checks.items():
        status = "OK" if info.get("ok") else "FAIL"
        log_line(f"[HEALTH] {name}: {status} {info}")
    raise SystemExit(0 if result.ok else 1)
