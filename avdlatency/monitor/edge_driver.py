"""Provision a local msedgedriver service for Selenium sessions.

The driver is downloaded as a zip archive, extracted into a working folder
and started as a long-lived ``Service``. Browser sessions are created per
run against that service; the service and its folder are torn down once,
on shutdown, through :meth:`EdgeDriverProvisioner.release`.
"""
from __future__ import annotations

import platform
import shutil
import stat
import sys
import tempfile
import uuid
import zipfile
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from selenium.webdriver.edge.service import Service as EdgeService

from . import config
from .lazy import Lazy
from .logging_utils import _monitor_event
from .utils import log_line, log_warning

EDGE_VERSION_REGISTRY_KEY = r"Software\Microsoft\Edge\BLBeacon"

ReleaseAction = Callable[[], None]


class ProvisioningError(RuntimeError):
    """Raised when the Edge driver cannot be downloaded, extracted or started."""


def build_http_session() -> requests.Session:
    """Return a requests session configured for driver downloads."""

    session = requests.Session()
    session.headers.update(config.COMMON_HEADERS)
    return session


def _is_64bit_os() -> bool:
    return platform.machine().lower().endswith("64")


def driver_executable_name() -> str:
    return "msedgedriver.exe" if sys.platform == "win32" else "msedgedriver"


def get_edge_version() -> str:
    """Read the installed Edge version from the Windows registry."""

    if sys.platform != "win32":
        raise ProvisioningError(
            "Getting the Edge version is only supported on Windows. "
            f"Current operating system is {platform.platform()}."
        )

    import winreg

    try:
        with winreg.OpenKey(winreg.HKEY_CURRENT_USER, EDGE_VERSION_REGISTRY_KEY) as key:
            version, _ = winreg.QueryValueEx(key, "version")
    except OSError as exc:
        raise ProvisioningError("Could not find Edge version from registry.") from exc

    version = str(version or "").strip()
    if not version:
        raise ProvisioningError("Could not find Edge version from registry.")
    return version


def validate_download_uri(raw: str) -> str:
    """Return ``raw`` if it is an absolute http(s) URL, else raise."""

    parsed = urlparse(raw.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ProvisioningError(f"'{raw}' is not a valid URL.")
    return raw.strip()


def get_edge_driver_download_uri() -> str:
    """Return the configured download URI or derive one from the Edge version."""

    if config.EDGE_DRIVER_DOWNLOAD_URI:
        return validate_download_uri(config.EDGE_DRIVER_DOWNLOAD_URI)

    log_line("Getting Edge version...")
    edge_version = get_edge_version()
    log_line(f"Found Edge version {edge_version}...")

    arch = "64" if _is_64bit_os() else "32"
    return f"{config.EDGE_DRIVER_DOWNLOAD_BASE_URL}/{edge_version}/edgedriver_win{arch}.zip"


def get_edge_driver_folder() -> Path:
    if config.EDGE_DRIVER_DOWNLOAD_PATH is not None:
        return Path(config.EDGE_DRIVER_DOWNLOAD_PATH)
    return Path(tempfile.gettempdir()) / f"edgedriver_{uuid.uuid4().hex[:12]}"


def download_edge_driver(session: requests.Session, uri: str, out_path: Path) -> None:
    """Stream the driver archive at ``uri`` to ``out_path``."""

    log_line(f"Downloading Edge driver from {uri} to {out_path}...")
    try:
        with session.get(uri, stream=True, timeout=config.DRIVER_DOWNLOAD_TIMEOUT_SECONDS) as response:
            response.raise_for_status()
            with out_path.open("wb") as handle:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        handle.write(chunk)
    except requests.RequestException as exc:
        out_path.unlink(missing_ok=True)
        raise ProvisioningError(f"Failed to download Edge driver from {uri}: {exc}") from exc

    if out_path.stat().st_size == 0:
        out_path.unlink(missing_ok=True)
        raise ProvisioningError(f"Edge driver download from {uri} was empty")


def extract_edge_driver(archive_path: Path, folder: Path) -> Path:
    """Extract ``archive_path`` into ``folder`` and return the driver executable."""

    log_line(f"Extracting zip file {archive_path} to directory {folder}...")
    folder.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(archive_path) as archive:
            archive.extractall(folder)
    except zipfile.BadZipFile as exc:
        raise ProvisioningError(f"Edge driver archive {archive_path} is not a valid zip file") from exc

    name = driver_executable_name()
    candidates = sorted(folder.rglob(name))
    if not candidates:
        raise ProvisioningError(f"Edge driver archive did not contain {name}")

    executable = candidates[0]
    executable.chmod(executable.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return executable


class EdgeDriverProvisioner:
    """Acquire the Edge driver service once and release it once."""

    def __init__(
        self,
        *,
        session_factory: Callable[[], requests.Session] = build_http_session,
        service_factory: Callable[..., EdgeService] = EdgeService,
    ) -> None:
        self._session_factory = session_factory
        self._service_factory = service_factory
        self._lazy: Lazy[EdgeService] = Lazy(self._provision)
        self._folder: Optional[Path] = None
        self._archive_path: Optional[Path] = None
        self._service: Optional[EdgeService] = None
        self._released = False

    def acquire(self) -> tuple[EdgeService, ReleaseAction]:
        """Return the running driver service and its release action.

        The download/extract/start sequence runs on the first call only.
        """

        return self._lazy.get(), self.release

    @property
    def is_started(self) -> bool:
        return self._lazy.is_started

    @property
    def is_released(self) -> bool:
        return self._released

    def _provision(self) -> EdgeService:
        try:
            return self._create_service()
        except ProvisioningError as exc:
            _monitor_event("error", phase="provision", error=str(exc))
            raise
        except Exception as exc:  # noqa: BLE001
            _monitor_event("error", phase="provision", error=str(exc))
            raise ProvisioningError(f"Failed to provision Edge driver: {exc}") from exc

    def _create_service(self) -> EdgeService:
        log_line("Creating Edge driver service...")

        self._folder = get_edge_driver_folder()
        download_uri = get_edge_driver_download_uri()

        self._archive_path = Path(tempfile.gettempdir()) / f"edgedriver_{uuid.uuid4().hex[:12]}.zip"
        session = self._session_factory()
        try:
            download_edge_driver(session, download_uri, self._archive_path)
        finally:
            session.close()

        executable = extract_edge_driver(self._archive_path, self._folder)

        log_line(f"Deleting temporary zip file {self._archive_path}...")
        self._archive_path.unlink(missing_ok=True)
        self._archive_path = None

        log_line("Creating Edge driver...")
        self._service = self._service_factory(executable_path=str(executable))
        self._service.start()
        _monitor_event(
            "state",
            phase="provision",
            executable=str(executable),
            service_url=self._service.service_url,
        )
        return self._service

    def release(self) -> None:
        """Stop the driver service and delete its on-disk artifacts."""

        if self._released:
            log_line("Edge driver resources already released; ignoring.")
            return
        self._released = True

        if self._service is not None:
            log_line("Stopping Edge driver service...")
            try:
                self._service.stop()
            except Exception as exc:  # noqa: BLE001
                log_warning(f"[DRIVER] Error stopping Edge driver service: {exc}")
            self._service = None

        if self._archive_path is not None:
            self._archive_path.unlink(missing_ok=True)
            self._archive_path = None

        if self._folder is not None and self._folder.exists():
            log_line(f"Deleting Edge driver directory {self._folder}...")
            try:
                shutil.rmtree(self._folder)
            except OSError as exc:
                log_warning(f"[DRIVER] Unable to delete {self._folder}: {exc}")


__all__ = [
    "ProvisioningError",
    "EdgeDriverProvisioner",
    "build_http_session",
    "driver_executable_name",
    "get_edge_version",
    "validate_download_uri",
    "get_edge_driver_download_uri",
    "get_edge_driver_folder",
    "download_edge_driver",
    "extract_edge_driver",
]
