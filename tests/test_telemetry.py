from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from avdlatency.monitor import config, telemetry
from avdlatency.monitor.csv_store import PersistenceError
from avdlatency.monitor.telemetry import RunTelemetry


def test_flush_writes_operation_payload(temp_paths: Path) -> None:
    tele = RunTelemetry()

    tele.run_started()
    tele.run_succeeded(3)
    tele.run_started()
    tele.run_succeeded(0)
    tele.run_started()
    tele.run_failed(PersistenceError("disk full"), "persistence_failed")

    path = Path(tele.flush({"exit": "cancelled"}))

    assert path.parent == Path(config.RUNS_DIR)
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["operation"] == "AVD test"
    assert payload["exit"] == "cancelled"
    assert payload["summary"] == {"count_ok": 1, "count_empty": 1, "count_failed": 1}
    statuses = [(e["status"], e["reason"]) for e in payload["entries"]]
    assert statuses == [("ok", ""), ("empty", "no_regions"), ("failed", "persistence_failed")]
    assert payload["entries"][0]["regions"] == 3
    assert payload["entries"][2]["error"] == "PersistenceError: disk full"
    assert payload["entries"][0]["duration_s"] >= 0


def test_flush_without_runs(temp_paths: Path) -> None:
    payload = json.loads(Path(RunTelemetry().flush()).read_text(encoding="utf-8"))

    assert payload["entries"] == []
    assert payload["summary"] == {}


def test_prune_old_exports_keeps_newest(temp_paths: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    exports = Path(config.EXPORTS_DIR)
    exports.mkdir(parents=True)
    for index in range(4):
        (exports / f"latencies_2024010{index}_000000.xlsx").write_bytes(b"x")
    (exports / "notes.txt").write_text("keep", encoding="utf-8")
    monkeypatch.setattr(config, "EXPORTS_KEEP_MAX", 2)

    telemetry.prune_old_exports()

    assert sorted(os.listdir(exports)) == [
        "latencies_20240102_000000.xlsx",
        "latencies_20240103_000000.xlsx",
        "notes.txt",
    ]
