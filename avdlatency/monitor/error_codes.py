from __future__ import annotations

"""Reason codes recorded against each run in telemetry and structured logs.

The taxonomy is small and internal-only but should stay stable for the
telemetry JSON consumers.
"""


class ErrorCode:
    SCRAPE_FAILED = "scrape_failed"
    NO_REGIONS = "no_regions"
    PERSISTENCE_FAILED = "persistence_failed"
    PROVISIONING_FAILED = "provisioning_failed"
    INTERNAL = "internal_error"


__all__ = ["ErrorCode"]
