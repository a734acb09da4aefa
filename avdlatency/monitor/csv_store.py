"""Append-only CSV persistence for scraped region latencies.

The file starts with a single ``Timestamp,Region,Latency (ms)`` header row,
written only when the file is missing or has no header, and every run's rows
are appended after it. Existing rows are never rewritten.
"""
from __future__ import annotations

import csv
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, TextIO

from . import config
from .models import Latency, LatencyRecord, RegionLatencyMap, RegionName, format_timestamp
from .utils import log_line


class PersistenceError(OSError):
    """Raised when the CSV store cannot be read or written."""


def _is_blank(row: List[str]) -> bool:
    return not any(cell.strip() for cell in row)


def _non_blank_rows(handle: TextIO) -> Iterator[List[str]]:
    return (row for row in csv.reader(handle) if not _is_blank(row))


class CsvStore:
    """Region latency log stored as CSV at ``path``."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else Path(config.CSV_OUTPUT_FILE_PATH)

    def has_header(self) -> bool:
        """Return ``True`` when the file holds any non-blank row.

        Blank lines are skipped, so the first non-blank row is the header.
        A file without one holds nothing worth keeping and may be rewritten.
        """

        if not self.path.exists():
            return False

        try:
            with self.path.open("r", encoding="utf-8", newline="") as handle:
                return next(_non_blank_rows(handle), None) is not None
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read CSV file {self.path}: {exc}") from exc

    def write_header(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8", newline="") as handle:
                csv.writer(handle).writerow(config.CSV_HEADER)
        except OSError as exc:
            raise PersistenceError(f"Unable to write CSV header to {self.path}: {exc}") from exc

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as handle:
            if handle.seek(0, 2) == 0:
                return True
            handle.seek(-1, 2)
            return handle.read(1) in (b"\n", b"\r")

    def append(self, timestamp: datetime, latencies: RegionLatencyMap) -> int:
        """Append one row per region and return the number of rows written."""

        if not latencies:
            log_line("No region latencies were found, skipping writing to CSV.")
            return 0

        if not self.has_header():
            log_line(f"CSV file {self.path} does not have any entries, creating header row...")
            self.write_header()

        rendered = format_timestamp(timestamp)
        try:
            needs_newline = not self._ends_with_newline()
            with self.path.open("a", encoding="utf-8", newline="") as handle:
                if needs_newline:
                    handle.write("\r\n")
                writer = csv.writer(handle)
                for region, latency in latencies.items():
                    writer.writerow([rendered, str(region), latency.to_int()])
        except OSError as exc:
            raise PersistenceError(f"Unable to append records to {self.path}: {exc}") from exc

        log_line(f"Finished writing records to CSV file {self.path}.")
        return len(latencies)

    def iter_records(self) -> Iterator[LatencyRecord]:
        """Yield stored records in append order, skipping the header and bad rows."""

        if not self.path.exists():
            return

        try:
            with self.path.open("r", encoding="utf-8", newline="") as handle:
                reader = _non_blank_rows(handle)
                next(reader, None)
                for row in reader:
                    if len(row) < 3:
                        continue
                    region = RegionName.try_parse(row[1])
                    latency = Latency.try_parse(row[2])
                    if region is None or latency is None or not row[0].strip():
                        continue
                    yield LatencyRecord(timestamp=row[0].strip(), region=region, latency=latency)
        except (OSError, UnicodeDecodeError) as exc:
            raise PersistenceError(f"Unable to read CSV file {self.path}: {exc}") from exc

    def read_records(self) -> List[LatencyRecord]:
        return list(self.iter_records())

    def latest_batch(self) -> List[LatencyRecord]:
        """Return the records written by the most recent append."""

        records = self.read_records()
        if not records:
            return []
        latest = records[-1].timestamp
        return [record for record in records if record.timestamp == latest]


__all__ = ["CsvStore", "PersistenceError"]
