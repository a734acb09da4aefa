from avdlatency.monitor import config
from avdlatency.monitor.config_validation import validate_runtime_config
import pytest


def test_defaults_are_valid() -> None:
    validate_runtime_config("tests")


def test_delay_below_one_second(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "DELAY_PER_RUN_SECONDS", 0)
    with pytest.raises(ValueError, match="DELAY_PER_RUN_IN_SECONDS"):
        validate_runtime_config("cli")


def test_invalid_implicit_wait(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "PAGE_IMPLICIT_WAIT_SECONDS", 0)
    with pytest.raises(ValueError):
        validate_runtime_config("cli")


def test_invalid_download_uri(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "EDGE_DRIVER_DOWNLOAD_URI", "msedgedriver.zip")
    with pytest.raises(ValueError, match="EDGE_DRIVER_DOWNLOAD_URI"):
        validate_runtime_config("cli")


def test_negative_delays_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, "WARMUP_DELAY_SECONDS", -1.0)
    monkeypatch.setattr(config, "SHUTDOWN_GRACE_SECONDS", -3.0)

    validate_runtime_config("tests")

    assert config.WARMUP_DELAY_SECONDS == 0
    assert config.SHUTDOWN_GRACE_SECONDS == 0


def test_unparseable_delay_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DELAY_PER_RUN_IN_SECONDS", "five minutes")
    assert config._parse_int("DELAY_PER_RUN_IN_SECONDS", 300) == 300

    monkeypatch.setenv("DELAY_PER_RUN_IN_SECONDS", " 45 ")
    assert config._parse_int("DELAY_PER_RUN_IN_SECONDS", 300) == 45
