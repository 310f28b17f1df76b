"""Configuration management for soil-health-tracker.

Settings are loaded from ``config/defaults.yaml`` (when present) and then
overridden by environment variables. A ``.env`` file in the working
directory is honoured but never overrides variables already set.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from soil_health.logging_config import get_logger

logger = get_logger(__name__)

CONFIG_DIR_ENV = "SOIL_HEALTH_CONFIG_DIR"
DEFAULTS_FILE = "defaults.yaml"

# Registry names understood by soil_health.soil.pedotransfer
MODEL_NAMES = ("saxton_rawls_2006", "linear")


class MongoSettings(BaseModel):
    """Document database configuration."""

    uri_env: str = "SOIL_HEALTH_MONGO_URI"
    database_name: str = "soil_health"
    records_collection: str = "soil_data"
    settings_collection: str = "user_settings"
    timeout_ms: int = 5000


class GeocodingSettings(BaseModel):
    """Reverse geocoding configuration."""

    endpoint: str = "https://nominatim.openstreetmap.org/reverse"
    user_agent: str = "soil-health-tracker/0.1"
    timeout_s: float = 20.0
    language: str = "en"


class AppSettings(BaseModel):
    """Main application settings."""

    gps_key_precision: int = Field(4, ge=0, le=8)
    pedotransfer_model: str = "saxton_rawls_2006"
    organic_matter_percent: float = Field(2.5, ge=0.0, le=8.0)
    comparison_threshold_percent: float = Field(10.0, ge=0.0)
    mongo: MongoSettings = MongoSettings()
    geocoding: GeocodingSettings = GeocodingSettings()

    @field_validator("pedotransfer_model")
    @classmethod
    def validate_pedotransfer_model(cls, v: str) -> str:
        if v not in MODEL_NAMES:
            raise ValueError(
                f"Unknown pedotransfer model {v!r}; choose one of {', '.join(MODEL_NAMES)}"
            )
        return v


def get_config_dir() -> Path | None:
    """Get the configuration directory path.

    ``SOIL_HEALTH_CONFIG_DIR`` wins when set and must exist. Otherwise the
    ``config/`` directory next to the package is used if it exists.
    """
    explicit = os.getenv(CONFIG_DIR_ENV)
    if explicit:
        config_dir = Path(explicit)
        if not config_dir.is_dir():
            raise FileNotFoundError(f"Configuration directory not found: {config_dir}")
        return config_dir

    project_root = Path(__file__).resolve().parent.parent
    config_dir = project_root / "config"
    return config_dir if config_dir.is_dir() else None


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")

    logger.debug(f"Loaded configuration from {path}")
    return data or {}


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}

    model = os.getenv("SOIL_HEALTH_PTF_MODEL")
    if model:
        overrides["pedotransfer_model"] = model

    precision = os.getenv("SOIL_HEALTH_GPS_PRECISION")
    if precision:
        try:
            overrides["gps_key_precision"] = int(precision)
        except ValueError:
            logger.warning(
                f"Ignoring non-integer SOIL_HEALTH_GPS_PRECISION: {precision!r}"
            )

    return overrides


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Get application settings with YAML and environment override support.

    This is the single source of truth for configuration. Loading is lazy
    so importing the package has no filesystem side effects.
    """
    load_dotenv(override=False)

    data: dict[str, Any] = {}
    config_dir = get_config_dir()
    if config_dir is not None:
        defaults_path = config_dir / DEFAULTS_FILE
        if defaults_path.exists():
            data = load_yaml_config(defaults_path)

    data.update(_env_overrides())
    settings = AppSettings(**data)
    logger.debug(f"Resolved settings: {settings.model_dump()}")
    return settings


def clear_settings_cache() -> None:
    """Clear settings cache to force reload from current environment."""
    get_settings.cache_clear()


def get_mongo_uri(settings: AppSettings | None = None) -> str | None:
    """Get the MongoDB connection string from the configured variable."""
    settings = settings or get_settings()
    uri = os.getenv(settings.mongo.uri_env)
    if not uri:
        logger.warning(f"Environment variable {settings.mongo.uri_env} not set")
        return None
    return uri
