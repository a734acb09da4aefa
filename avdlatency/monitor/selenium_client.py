"""Selenium helpers for reading the AVD region latency table."""
from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.edge.options import Options
from selenium.webdriver.edge.service import Service as EdgeService
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement

from . import config
from .error_codes import ErrorCode
from .logging_utils import _monitor_event
from .models import Latency, RegionLatencyMap, RegionName
from .utils import log_exception, log_line, log_warning

SessionFactory = Callable[[EdgeService], WebDriver]


def make_session(service: EdgeService) -> WebDriver:
    """Open a new Edge browser session on the already running driver ``service``."""

    edge_options = Options()
    if config.HEADLESS:
        edge_options.add_argument("--headless=new")
    edge_options.add_argument("--disable-gpu")
    edge_options.add_argument("--window-size=1920,1080")
    return webdriver.Remote(command_executor=service.service_url, options=edge_options)


def get_region_latency_rows(driver: WebDriver) -> List[WebElement]:
    table = driver.find_element(By.ID, config.REGION_TABLE_ID)
    return table.find_elements(By.TAG_NAME, "tr")


def get_row_columns(row: WebElement) -> List[str]:
    return [cell.text for cell in row.find_elements(By.TAG_NAME, "td")]


def region_latency_from_columns(columns: Sequence[str]) -> Optional[tuple[RegionName, Latency]]:
    """Map ``[region, latency, ...]`` cell texts to a validated pair.

    Rows with fewer than two cells, a blank region or a latency that is not a
    non-negative integer yield ``None``.
    """

    if len(columns) < 2:
        return None

    region = RegionName.try_parse(columns[0])
    latency = Latency.try_parse(columns[1])
    if region is None or latency is None:
        return None
    return region, latency


def parse_region_latencies(rows: Iterable[Sequence[str]]) -> RegionLatencyMap:
    """Build the region map from raw rows, dropping malformed ones.

    A region that appears more than once keeps its last latency.
    """

    latencies: RegionLatencyMap = {}
    for columns in rows:
        pair = region_latency_from_columns(columns)
        if pair is None:
            continue
        region, latency = pair
        latencies[region] = latency
    return latencies


def read_region_latencies(driver: WebDriver) -> RegionLatencyMap:
    return parse_region_latencies(get_row_columns(row) for row in get_region_latency_rows(driver))


def get_region_latencies(
    service: EdgeService,
    *,
    session_factory: SessionFactory = make_session,
    url: Optional[str] = None,
) -> RegionLatencyMap:
    """Scrape the region latency table using a fresh browser session.

    Any failure while driving the browser is logged and yields an empty map.
    The session is always quit before returning.
    """

    target = url or config.TARGET_URL
    try:
        driver = session_factory(service)
    except Exception:  # noqa: BLE001
        log_exception("Failed to start an Edge browser session")
        return {}

    try:
        log_line(
            "Setting up timeout; will navigate to site and wait for "
            f"{config.PAGE_IMPLICIT_WAIT_SECONDS} seconds before extracting data..."
        )
        driver.implicitly_wait(config.PAGE_IMPLICIT_WAIT_SECONDS)

        log_line("Navigating to site...")
        driver.get(target)

        log_line("Getting regions from site...")
        return read_region_latencies(driver)
    except Exception as exc:  # noqa: BLE001
        log_exception(f"Failed to scrape region latencies from {target}")
        _monitor_event("error", phase="scrape", error_code=ErrorCode.SCRAPE_FAILED, error=str(exc))
        return {}
    finally:
        try:
            driver.quit()
        except Exception as exc:  # noqa: BLE001
            log_warning(f"[SCRAPE] Error quitting browser session: {exc}")


__all__ = [
    "make_session",
    "get_region_latency_rows",
    "get_row_columns",
    "region_latency_from_columns",
    "parse_region_latencies",
    "read_region_latencies",
    "get_region_latencies",
]
