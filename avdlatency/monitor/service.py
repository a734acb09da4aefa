"""Periodic scrape-and-persist loop for AVD region latencies.

``LatencyMonitor`` performs one run (acquire driver, scrape, append to CSV).
``RunLoop`` repeats a run callback on a fixed interval until its stop event
is set, then releases resources, flushes telemetry and waits a short grace
period before returning.
"""
from __future__ import annotations

import argparse
import signal
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol

from selenium.webdriver.edge.service import Service as EdgeService

from . import config
from .config_validation import validate_runtime_config
from .csv_store import CsvStore, PersistenceError
from .edge_driver import EdgeDriverProvisioner, ProvisioningError
from .error_codes import ErrorCode
from .logging_utils import _monitor_event
from .models import RegionLatencyMap
from .selenium_client import get_region_latencies
from .telemetry import RunTelemetry
from .utils import log_exception, log_line, setup_logger

Scraper = Callable[[EdgeService], RegionLatencyMap]


class RunObserver(Protocol):
    def run_started(self) -> None: ...

    def run_succeeded(self, region_count: int) -> None: ...

    def run_failed(self, error: BaseException, reason: str) -> None: ...

    def flush(self) -> Any: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _failure_reason(error: BaseException) -> str:
    if isinstance(error, ProvisioningError):
        return ErrorCode.PROVISIONING_FAILED
    if isinstance(error, PersistenceError):
        return ErrorCode.PERSISTENCE_FAILED
    return ErrorCode.INTERNAL


class LatencyMonitor:
    """One scrape-and-persist run against a lazily provisioned Edge driver."""

    def __init__(
        self,
        *,
        provisioner: Optional[EdgeDriverProvisioner] = None,
        store: Optional[CsvStore] = None,
        scraper: Optional[Scraper] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.provisioner = provisioner or EdgeDriverProvisioner()
        self.store = store or CsvStore()
        self._scraper = scraper or get_region_latencies
        self._clock = clock

    def run_once(self) -> int:
        """Run a single cycle and return the number of CSV rows written."""

        service, _ = self.provisioner.acquire()

        latencies = self._scraper(service)
        for region, latency in latencies.items():
            log_line(f"Region: {region}, Latency: {latency}")

        log_line(f"Writing records to CSV file {self.store.path}...")
        return self.store.append(self._clock(), latencies)

    def shutdown(self) -> None:
        self.provisioner.release()


class RunLoop:
    """Run ``on_run`` every ``interval_seconds`` until stopped.

    States are ``idle`` and ``running``. The stop event is checked between
    runs and interrupts the warm-up and inter-run waits; a run in progress is
    never interrupted. ``on_shutdown`` is called exactly once on exit, even
    when a run raised, followed by ``observer.flush()`` and the grace delay.
    """

    IDLE = "idle"
    RUNNING = "running"

    def __init__(
        self,
        on_run: Callable[[], int],
        on_shutdown: Callable[[], None],
        *,
        interval_seconds: Optional[float] = None,
        warmup_seconds: Optional[float] = None,
        grace_seconds: Optional[float] = None,
        observer: Optional[RunObserver] = None,
        stop_event: Optional[threading.Event] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._on_run = on_run
        self._on_shutdown = on_shutdown
        self.interval_seconds = float(
            config.DELAY_PER_RUN_SECONDS if interval_seconds is None else interval_seconds
        )
        self.warmup_seconds = float(
            config.WARMUP_DELAY_SECONDS if warmup_seconds is None else warmup_seconds
        )
        self.grace_seconds = float(
            config.SHUTDOWN_GRACE_SECONDS if grace_seconds is None else grace_seconds
        )
        self._observer = observer
        self._stop_event = stop_event or threading.Event()
        self._sleep = sleep
        self.state = self.IDLE
        self.runs_completed = 0
        self._shutdown_done = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request cancellation; the loop exits at its next checkpoint."""

        if not self._stop_event.is_set():
            log_line("Cancellation requested, stopping...")
        self._stop_event.set()

    def run(self, max_runs: Optional[int] = None) -> None:
        try:
            if self.warmup_seconds > 0 and self._stop_event.wait(self.warmup_seconds):
                log_line("Cancelled before the first run.")
                return

            while not self._stop_event.is_set():
                log_line("Beginning execution...")
                self._execute_run()

                if max_runs is not None and self.runs_completed >= max_runs:
                    break

                next_run = datetime.now().astimezone() + timedelta(seconds=self.interval_seconds)
                log_line(f"Finished execution, sleeping until {next_run.isoformat(timespec='seconds')}...")
                if self._stop_event.wait(self.interval_seconds):
                    break

            if self._stop_event.is_set():
                log_line("Monitor loop cancelled; shutting down.")
        except Exception:
            log_exception("Monitor loop terminated by an unhandled error")
            raise
        finally:
            self._teardown()

    def _execute_run(self) -> None:
        self.state = self.RUNNING
        if self._observer is not None:
            self._observer.run_started()
        try:
            written = self._on_run()
        except Exception as exc:
            reason = _failure_reason(exc)
            _monitor_event("error", phase="run", error_code=reason, error=str(exc))
            if self._observer is not None:
                self._observer.run_failed(exc, reason)
            raise
        finally:
            self.state = self.IDLE

        self.runs_completed += 1
        _monitor_event("state", phase="run", kind="completed", rows_written=written, run=self.runs_completed)
        if self._observer is not None:
            self._observer.run_succeeded(written)

    def _teardown(self) -> None:
        if self._shutdown_done:
            return
        self._shutdown_done = True

        try:
            self._on_shutdown()
        except Exception:  # noqa: BLE001
            log_exception("Error while releasing monitor resources")

        if self._observer is not None:
            try:
                path = self._observer.flush()
                log_line(f"Flushed telemetry to {path}")
            except Exception:  # noqa: BLE001
                log_exception("Error while flushing telemetry")

        if self.grace_seconds > 0:
            self._sleep(self.grace_seconds)


def _install_signal_handlers(loop: RunLoop) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def _handler(signum, frame) -> None:  # noqa: ARG001
        log_line(f"Received signal {signum}.")
        loop.stop()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape AVD region latencies into a CSV file")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single scrape-and-persist cycle and exit.",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        help="Seconds between runs (default: DELAY_PER_RUN_IN_SECONDS).",
    )
    parser.add_argument(
        "--csv",
        dest="csv_path",
        type=Path,
        default=None,
        help="CSV output path (default: CSV_OUTPUT_FILE_PATH).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the monitor process."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    setup_logger()
    if args.interval is not None:
        config.DELAY_PER_RUN_SECONDS = args.interval
    try:
        validate_runtime_config("cli")
    except ValueError as exc:
        parser.error(str(exc))

    monitor = LatencyMonitor(store=CsvStore(args.csv_path) if args.csv_path else None)
    loop = RunLoop(monitor.run_once, monitor.shutdown, observer=RunTelemetry())
    _install_signal_handlers(loop)

    try:
        loop.run(max_runs=1 if args.once else None)
    except Exception:  # noqa: BLE001
        # Already logged with its traceback by the loop.
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())


__all__ = ["LatencyMonitor", "RunLoop", "RunObserver", "main"]
