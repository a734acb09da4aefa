"""Configuration constants for the AVD latency monitor."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Values already present in the environment win over the .env file.
load_dotenv()

# Directory holding the ``avdlatency`` package; default outputs live beside it.
BASE_DIR: Path = Path(__file__).resolve().parents[2]

TARGET_URL: str = (
    "https://azure.microsoft.com/en-us/services/virtual-desktop/assessment/#estimation-tool"
)
REGION_TABLE_ID: str = "azure-regions"

CSV_HEADER: tuple[str, str, str] = ("Timestamp", "Region", "Latency (ms)")

DEFAULT_DELAY_PER_RUN_SECONDS: int = 300


def _parse_int(env_var: str, default: int) -> int:
    """Parse an integer from the environment, falling back to ``default``."""

    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _optional_path(env_var: str) -> Optional[Path]:
    raw = (os.getenv(env_var) or "").strip()
    return Path(raw) if raw else None


DELAY_PER_RUN_SECONDS: int = _parse_int(
    "DELAY_PER_RUN_IN_SECONDS", DEFAULT_DELAY_PER_RUN_SECONDS
)
CSV_OUTPUT_FILE_PATH: Path = _optional_path("CSV_OUTPUT_FILE_PATH") or BASE_DIR / "output.csv"

# When unset, every acquisition extracts into a fresh directory under the temp dir.
EDGE_DRIVER_DOWNLOAD_PATH: Optional[Path] = _optional_path("EDGE_DRIVER_DOWNLOAD_PATH")
EDGE_DRIVER_DOWNLOAD_URI: Optional[str] = (os.getenv("EDGE_DRIVER_DOWNLOAD_URI") or "").strip() or None
EDGE_DRIVER_DOWNLOAD_BASE_URL: str = os.getenv(
    "EDGE_DRIVER_DOWNLOAD_BASE_URL", "https://msedgedriver.microsoft.com"
).rstrip("/")
DRIVER_DOWNLOAD_TIMEOUT_SECONDS: int = _parse_int("DRIVER_DOWNLOAD_TIMEOUT_SECONDS", 120)

# Selenium waits (seconds)
PAGE_IMPLICIT_WAIT_SECONDS: int = _parse_int("PAGE_IMPLICIT_WAIT_SECONDS", 10)
HEADLESS: bool = os.getenv("HEADLESS", "true").strip().lower() not in {"0", "false"}

# Run loop pacing (seconds)
WARMUP_DELAY_SECONDS: float = _parse_float("WARMUP_DELAY_SECONDS", 1.0)
SHUTDOWN_GRACE_SECONDS: float = _parse_float("SHUTDOWN_GRACE_SECONDS", 5.0)

LOG_FILE_PATH: Path = _optional_path("LOG_FILE_PATH") or BASE_DIR / "log.txt"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
RUNS_DIR: Path = _optional_path("RUNS_DIR") or BASE_DIR / "runs"
EXPORTS_DIR: Path = _optional_path("EXPORTS_DIR") or BASE_DIR / "exports"
EXPORTS_KEEP_MAX: int = _parse_int("EXPORTS_KEEP_MAX", 5)

COMMON_HEADERS: dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0"
    ),
    "Accept": "*/*",
}


__all__ = [
    "BASE_DIR",
    "TARGET_URL",
    "REGION_TABLE_ID",
    "CSV_HEADER",
    "DELAY_PER_RUN_SECONDS",
    "CSV_OUTPUT_FILE_PATH",
    "EDGE_DRIVER_DOWNLOAD_PATH",
    "EDGE_DRIVER_DOWNLOAD_URI",
    "EDGE_DRIVER_DOWNLOAD_BASE_URL",
    "DRIVER_DOWNLOAD_TIMEOUT_SECONDS",
    "PAGE_IMPLICIT_WAIT_SECONDS",
    "HEADLESS",
    "WARMUP_DELAY_SECONDS",
    "SHUTDOWN_GRACE_SECONDS",
    "LOG_FILE_PATH",
    "LOG_LEVEL",
    "RUNS_DIR",
    "EXPORTS_DIR",
    "EXPORTS_KEEP_MAX",
    "COMMON_HEADERS",
]
