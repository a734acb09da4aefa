from __future__ import annotations

from pathlib import Path

import pytest

from avdlatency.monitor import config, utils


def _configure_temp_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setattr(config, "CSV_OUTPUT_FILE_PATH", data_dir / "output.csv")
    monkeypatch.setattr(config, "LOG_FILE_PATH", data_dir / "log.txt")
    monkeypatch.setattr(config, "RUNS_DIR", data_dir / "runs")
    monkeypatch.setattr(config, "EXPORTS_DIR", data_dir / "exports")
    monkeypatch.setattr(config, "EDGE_DRIVER_DOWNLOAD_PATH", None)
    monkeypatch.setattr(config, "EDGE_DRIVER_DOWNLOAD_URI", None)
    utils.setup_logger(data_dir / "log.txt")


@pytest.fixture(autouse=True)
def temp_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    _configure_temp_paths(tmp_path, monkeypatch)
    return tmp_path / "data"
