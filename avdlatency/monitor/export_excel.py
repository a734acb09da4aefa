"""Excel export and summary helpers for the latency history."""

from __future__ import annotations

import os
import time
from typing import Optional

import pandas as pd

from . import config
from .csv_store import CsvStore
from .telemetry import prune_old_exports

SUMMARY_COLUMNS = ["region", "samples", "min_ms", "mean_ms", "max_ms", "last_ms"]


def load_history_frame(store: Optional[CsvStore] = None) -> pd.DataFrame:
    """Return the stored records as a DataFrame (timestamp, region, latency_ms)."""

    store = store or CsvStore()
    records = [record.as_dict() for record in store.iter_records()]
    return pd.DataFrame(records, columns=["timestamp", "region", "latency_ms"])


def summarise_history(df: pd.DataFrame) -> pd.DataFrame:
    """Per-region sample count, min/mean/max and most recent latency."""

    if df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    grouped = df.groupby("region", sort=True)["latency_ms"]
    summary = pd.DataFrame(
        {
            "samples": grouped.size(),
            "min_ms": grouped.min(),
            "mean_ms": grouped.mean().round(1),
            "max_ms": grouped.max(),
            "last_ms": grouped.last(),
        }
    ).reset_index()
    return summary[SUMMARY_COLUMNS]


def export_history_to_excel(
    dest_path: Optional[str] = None, store: Optional[CsvStore] = None
) -> str:
    """Create an Excel workbook with the full history and a per-region summary."""

    df = load_history_frame(store)
    if df.empty:
        raise FileNotFoundError("No latency history available to export")

    summary = summarise_history(df)

    os.makedirs(config.EXPORTS_DIR, exist_ok=True)
    if not dest_path:
        basename = f"latencies_{time.strftime('%Y%m%d_%H%M%S')}.xlsx"
        dest_path = os.path.join(str(config.EXPORTS_DIR), basename)

    with pd.ExcelWriter(dest_path, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="History")
        summary.to_excel(writer, index=False, sheet_name="Summary_Region")

    prune_old_exports()
    return dest_path


__all__ = ["load_history_frame", "summarise_history", "export_history_to_excel"]
