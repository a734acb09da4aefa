"""Validated value objects for scraped region latencies."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

_INTEGER_PATTERN = re.compile(r"\s*[+-]?([0-9]+)\s*")

# Largest value the page can report (signed 32-bit).
MAX_LATENCY_MS = 2_147_483_647


class ValidationError(ValueError):
    """Raised when a value object is constructed from invalid input."""


@dataclass(frozen=True)
class RegionName:
    """Display name of an Azure region, never empty or whitespace-only."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValidationError("Region name cannot be empty.")
        object.__setattr__(self, "value", self.value.strip())

    @classmethod
    def try_parse(cls, text: Optional[str]) -> Optional["RegionName"]:
        """Return a ``RegionName`` for ``text`` or ``None`` if it is blank."""

        try:
            return cls(text)  # type: ignore[arg-type]
        except ValidationError:
            return None

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Latency:
    """Round-trip latency in whole milliseconds (never negative)."""

    milliseconds: int

    def __post_init__(self) -> None:
        if isinstance(self.milliseconds, bool) or not isinstance(self.milliseconds, int):
            raise ValidationError("Latency must be an integer number of milliseconds.")
        if self.milliseconds < 0:
            raise ValidationError("Latency cannot be less than zero.")
        if self.milliseconds > MAX_LATENCY_MS:
            raise ValidationError(f"Latency cannot exceed {MAX_LATENCY_MS} milliseconds.")

    @classmethod
    def from_int(cls, value: int) -> Optional["Latency"]:
        try:
            return cls(value)
        except ValidationError:
            return None

    @classmethod
    def try_parse(cls, text: Optional[str]) -> Optional["Latency"]:
        """Parse a base-10 integer such as ``"42"``; ``None`` when invalid or out of range."""

        match = _INTEGER_PATTERN.fullmatch(text) if text is not None else None
        if match is None:
            return None
        digits = match.group(1).lstrip("0") or "0"
        if len(digits) > len(str(MAX_LATENCY_MS)):
            return None
        value = int(digits)
        return cls.from_int(-value if text.lstrip().startswith("-") else value)

    def to_int(self) -> int:
        return self.milliseconds

    def __str__(self) -> str:
        return str(self.milliseconds)


# Built fresh per scrape; dict insertion order is the order rows were seen.
RegionLatencyMap = Dict[RegionName, Latency]


@dataclass(frozen=True)
class LatencyRecord:
    """One persisted CSV row read back from the store."""

    timestamp: str
    region: RegionName
    latency: Latency

    def as_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "region": str(self.region),
            "latency_ms": self.latency.to_int(),
        }


def format_timestamp(timestamp: datetime) -> str:
    """Render ``timestamp`` the way it is written to the CSV store."""

    return timestamp.isoformat(timespec="seconds")


__all__ = [
    "ValidationError",
    "RegionName",
    "Latency",
    "MAX_LATENCY_MS",
    "RegionLatencyMap",
    "LatencyRecord",
    "format_timestamp",
]
