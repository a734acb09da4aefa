from __future__ import annotations

from typing import Literal

from . import config
from .edge_driver import ProvisioningError, validate_download_uri
from .logging_utils import _monitor_event
from .utils import log_line

Entrypoint = Literal["cli", "web", "tests"]


def _raise_config_error(message: str, *, entrypoint: Entrypoint, error: str) -> None:
    _monitor_event(
        "error",
        phase="config",
        context="runtime_validation",
        error=error,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {message} (entrypoint={entrypoint})")
    raise ValueError(message)


def _clamp_non_negative(field_name: str, *, entrypoint: Entrypoint) -> None:
    value = getattr(config, field_name)
    if value >= 0:
        return
    _monitor_event(
        "state",
        phase="config",
        context="runtime_validation",
        kind="config_adjustment",
        field=field_name,
        value=value,
        adjusted=0,
        entrypoint=entrypoint,
    )
    log_line(f"[CONFIG] {field_name} < 0; clamping to 0.")
    setattr(config, field_name, 0)


def validate_runtime_config(entrypoint: Entrypoint) -> None:
    """Validate runtime configuration for the given entrypoint.

    Raises ``ValueError`` when a blocking misconfiguration is detected.
    Non-fatal adjustments (negative warm-up or grace delays) are logged and
    clamped.
    """

    if config.DELAY_PER_RUN_SECONDS < 1:
        _raise_config_error(
            "DELAY_PER_RUN_IN_SECONDS must be at least 1 second.",
            entrypoint=entrypoint,
            error="invalid_delay",
        )

    if config.PAGE_IMPLICIT_WAIT_SECONDS <= 0:
        _raise_config_error(
            "PAGE_IMPLICIT_WAIT_SECONDS must be greater than zero.",
            entrypoint=entrypoint,
            error="invalid_timeout",
        )

    if config.EDGE_DRIVER_DOWNLOAD_URI:
        try:
            validate_download_uri(config.EDGE_DRIVER_DOWNLOAD_URI)
        except ProvisioningError as exc:
            _raise_config_error(
                f"EDGE_DRIVER_DOWNLOAD_URI is invalid: {exc}",
                entrypoint=entrypoint,
                error="invalid_download_uri",
            )

    _clamp_non_negative("WARMUP_DELAY_SECONDS", entrypoint=entrypoint)
    _clamp_non_negative("SHUTDOWN_GRACE_SECONDS", entrypoint=entrypoint)


__all__ = ["validate_runtime_config", "Entrypoint"]
