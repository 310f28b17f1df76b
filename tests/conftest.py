"""
pytest configuration for soil-health-tracker tests.

Isolates configuration, the HTTP cache and logging handlers per test.
"""

import logging
from datetime import datetime, timezone

import pytest
import requests_cache

from soil_health import http_cache
from soil_health.config import clear_settings_cache
from soil_health.models import (
    LocationOption,
    LocationRef,
    MeasurementKind,
    MeasurementRecord,
    Visibility,
)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Fresh settings from defaults for every test, free of shell overrides."""
    for name in (
        "SOIL_HEALTH_CONFIG_DIR",
        "SOIL_HEALTH_PTF_MODEL",
        "SOIL_HEALTH_GPS_PRECISION",
        "SOIL_HEALTH_MONGO_URI",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def _route_http_cache_to_tmp(tmp_path, monkeypatch):
    """Route the HTTP cache to a temp directory so tests never share entries."""
    monkeypatch.setenv("CACHE_NAME", str(tmp_path / "test_cache"))
    requests_cache.uninstall_cache()
    http_cache.reset_session()
    yield
    http_cache.reset_session()


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """CLI invocations reconfigure the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def ts(day: int, hour: int = 12) -> datetime:
    """Aware UTC timestamp in October 2024."""
    return datetime(2024, 10, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def north_field():
    return LocationRef(option=LocationOption.MANUAL, label="North Field")


@pytest.fixture
def gps_point():
    return LocationRef(
        option=LocationOption.GPS,
        latitude=40.416775,
        longitude=-3.70379,
        country="Spain",
        region="Community of Madrid",
        city="Madrid",
    )


@pytest.fixture
def vess_record(north_field):
    return MeasurementRecord(
        record_id="r-vess",
        owner_id="user-1",
        timestamp=ts(1),
        location=north_field,
        kind=MeasurementKind.VESS,
        visual_score=4,
    )


@pytest.fixture
def composition_record(north_field):
    return MeasurementRecord(
        record_id="r-comp",
        owner_id="user-1",
        timestamp=ts(5),
        location=north_field,
        kind=MeasurementKind.COMPOSITION,
        sand_depth=6.0,
        clay_depth=2.0,
        silt_depth=2.0,
        sand_percent=60,
        clay_percent=20,
        silt_percent=20,
        visibility=Visibility.PUBLIC,
    )
