from __future__ import annotations

from typing import Any

from .utils import log_line, log_warning


def _render(value: Any) -> str:
    if isinstance(value, str):
        return repr(value)
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}={_render(v)}" for k, v in value.items()) + "}"
    return str(value)


def _monitor_event(event: str, *, phase: str, **fields: Any) -> None:
    """Log a ``[MONITOR][EVENT][PHASE] key=value ...`` line.

    ``event`` is ``"state"`` or ``"error"``; error events go out at warning
    level. Formatting or handler failures are dropped so an event can never
    abort a run.
    """

    try:
        payload = " ".join(f"{k}={_render(v)}" for k, v in sorted(fields.items()))
        line = f"[MONITOR][{event.upper()}][{phase.upper()}] {payload}".rstrip()
        if event == "error":
            log_warning(line)
        else:
            log_line(line)
    except Exception:  # noqa: BLE001
        return


__all__ = ["_monitor_event"]
