from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from avdlatency.monitor import config
from avdlatency.monitor.csv_store import CsvStore, PersistenceError
from avdlatency.monitor.models import Latency, RegionName

HEADER_LINE = "Timestamp,Region,Latency (ms)"
T1 = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
T2 = datetime(2024, 1, 2, 3, 9, 5, tzinfo=timezone.utc)


def _lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


def test_default_path_comes_from_config(temp_paths: Path) -> None:
    assert CsvStore().path == config.CSV_OUTPUT_FILE_PATH


def test_empty_batch_does_not_create_file(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "output.csv")

    assert store.append(T1, {}) == 0
    assert not store.path.exists()


def test_empty_batch_leaves_existing_bytes_unchanged(tmp_path: Path) -> None:
    path = tmp_path / "output.csv"
    path.write_bytes(b"garbage,without\r\nnewline")
    store = CsvStore(path)

    store.append(T1, {})

    assert path.read_bytes() == b"garbage,without\r\nnewline"


def test_first_append_writes_header_then_rows(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "output.csv")

    written = store.append(T1, {RegionName("West US"): Latency(42)})

    assert written == 1
    assert _lines(store.path) == [HEADER_LINE, "2024-01-02T03:04:05+00:00,West US,42"]


def test_second_append_keeps_single_header(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "output.csv")

    store.append(T1, {RegionName("West US"): Latency(42)})
    store.append(T2, {RegionName("West US"): Latency(40), RegionName("North Europe"): Latency(7)})

    lines = _lines(store.path)
    assert lines.count(HEADER_LINE) == 1
    assert lines[0] == HEADER_LINE
    assert lines[1:] == [
        "2024-01-02T03:04:05+00:00,West US,42",
        "2024-01-02T03:09:05+00:00,West US,40",
        "2024-01-02T03:09:05+00:00,North Europe,7",
    ]


def test_header_only_file_counts_as_having_header(tmp_path: Path) -> None:
    path = tmp_path / "output.csv"
    path.write_text(HEADER_LINE + "\r\n", encoding="utf-8")
    store = CsvStore(path)

    assert store.has_header() is True
    store.append(T1, {RegionName("West US"): Latency(42)})

    assert _lines(path) == [HEADER_LINE, "2024-01-02T03:04:05+00:00,West US,42"]


# Files holding only blank rows have nothing to keep, so the header replaces them.
@pytest.mark.parametrize("content", ["", "\r\n", " , ,\r\n", "\r\n\r\n \r\n"])
def test_blank_only_file_gets_header(tmp_path: Path, content: str) -> None:
    path = tmp_path / "output.csv"
    path.write_text(content, encoding="utf-8")
    store = CsvStore(path)

    assert store.has_header() is False
    store.append(T1, {RegionName("West US"): Latency(42)})

    assert _lines(path)[0] == HEADER_LINE
    assert len(_lines(path)) == 2


def test_region_with_comma_is_quoted_and_read_back(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "output.csv")

    store.append(T1, {RegionName("Virginia, US"): Latency(3)})

    assert _lines(store.path)[1] == '2024-01-02T03:04:05+00:00,"Virginia, US",3'
    assert [str(r.region) for r in store.read_records()] == ["Virginia, US"]


def test_creates_missing_parent_directory(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "nested" / "dir" / "output.csv")

    store.append(T1, {RegionName("West US"): Latency(42)})

    assert store.path.exists()


def test_read_records_and_latest_batch(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "output.csv")
    store.append(T1, {RegionName("West US"): Latency(42)})
    store.append(T2, {RegionName("West US"): Latency(40), RegionName("North Europe"): Latency(7)})
    with store.path.open("a", encoding="utf-8", newline="") as handle:
        handle.write("broken row\r\n")

    records = store.read_records()
    latest = store.latest_batch()

    assert [r.latency.to_int() for r in records] == [42, 40, 7]
    assert [r.as_dict() for r in latest] == [
        {"timestamp": "2024-01-02T03:09:05+00:00", "region": "West US", "latency_ms": 40},
        {"timestamp": "2024-01-02T03:09:05+00:00", "region": "North Europe", "latency_ms": 7},
    ]


def test_missing_file_reads_as_empty(tmp_path: Path) -> None:
    store = CsvStore(tmp_path / "absent.csv")

    assert store.read_records() == []
    assert store.latest_batch() == []


def test_write_failure_raises_persistence_error(tmp_path: Path) -> None:
    # A directory in place of the file makes every open() fail.
    path = tmp_path / "output.csv"
    path.mkdir()
    store = CsvStore(path)

    with pytest.raises(PersistenceError):
        store.append(T1, {RegionName("West US"): Latency(42)})


@pytest.mark.parametrize("leading", ["\r\n", " , ,\r\n", "\r\n\r\n"])
def test_blank_lines_before_header_keep_history(tmp_path: Path, leading: str) -> None:
    path = tmp_path / "output.csv"
    path.write_text(
        leading + HEADER_LINE + "\r\n2024-01-01T00:00:00+00:00,West US,40\r\n", encoding="utf-8"
    )
    store = CsvStore(path)

    assert store.has_header() is True
    store.append(T1, {RegionName("North Europe"): Latency(7)})

    lines = [line for line in _lines(path) if line.strip(" ,")]
    assert lines == [
        HEADER_LINE,
        "2024-01-01T00:00:00+00:00,West US,40",
        "2024-01-02T03:04:05+00:00,North Europe,7",
    ]
    assert [str(r.region) for r in store.read_records()] == ["West US", "North Europe"]


def test_missing_trailing_newline_does_not_merge_rows(tmp_path: Path) -> None:
    path = tmp_path / "output.csv"
    path.write_text(HEADER_LINE + "\r\n2024-01-01T00:00:00+00:00,West US,40", encoding="utf-8")
    store = CsvStore(path)

    store.append(T1, {RegionName("North Europe"): Latency(7)})

    assert _lines(path) == [
        HEADER_LINE,
        "2024-01-01T00:00:00+00:00,West US,40",
        "2024-01-02T03:04:05+00:00,North Europe,7",
    ]


def test_undecodable_file_raises_persistence_error(tmp_path: Path) -> None:
    path = tmp_path / "output.csv"
    path.write_bytes(b"\xff\xfe\x00T\x00i\x00m\x00e\r\n")
    store = CsvStore(path)

    with pytest.raises(PersistenceError):
        store.has_header()
    with pytest.raises(PersistenceError):
        store.read_records()
    with pytest.raises(PersistenceError):
        store.append(T1, {RegionName("West US"): Latency(42)})
    assert path.read_bytes() == b"\xff\xfe\x00T\x00i\x00m\x00e\r\n"
