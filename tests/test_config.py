"""Tests for settings loading and overrides."""

import pytest
from pydantic import ValidationError

from soil_health.config import (
    AppSettings,
    clear_settings_cache,
    get_config_dir,
    get_settings,
    load_yaml_config,
)


class TestSettings:
    """Test YAML defaults and environment overrides."""

    def test_defaults(self):
        settings = get_settings()

        assert settings.gps_key_precision == 4
        assert settings.pedotransfer_model == "saxton_rawls_2006"
        assert settings.organic_matter_percent == 2.5
        assert settings.comparison_threshold_percent == 10.0
        assert settings.mongo.records_collection == "soil_data"
        assert settings.geocoding.endpoint.endswith("/reverse")

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SOIL_HEALTH_PTF_MODEL", "linear")
        monkeypatch.setenv("SOIL_HEALTH_GPS_PRECISION", "2")
        clear_settings_cache()

        settings = get_settings()

        assert settings.pedotransfer_model == "linear"
        assert settings.gps_key_precision == 2

    def test_bad_precision_ignored(self, monkeypatch):
        monkeypatch.setenv("SOIL_HEALTH_GPS_PRECISION", "four")
        clear_settings_cache()

        assert get_settings().gps_key_precision == 4

    def test_config_dir_override(self, tmp_path, monkeypatch):
        (tmp_path / "defaults.yaml").write_text(
            "gps_key_precision: 3\ngeocoding:\n  language: es\n"
        )
        monkeypatch.setenv("SOIL_HEALTH_CONFIG_DIR", str(tmp_path))
        clear_settings_cache()

        settings = get_settings()

        assert get_config_dir() == tmp_path
        assert settings.gps_key_precision == 3
        assert settings.geocoding.language == "es"
        assert settings.pedotransfer_model == "saxton_rawls_2006"

    def test_missing_config_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SOIL_HEALTH_CONFIG_DIR", str(tmp_path / "nowhere"))

        with pytest.raises(FileNotFoundError):
            get_config_dir()

    def test_validation(self):
        with pytest.raises(ValidationError):
            AppSettings(gps_key_precision=12)
        with pytest.raises(ValidationError):
            AppSettings(organic_matter_percent=-1)

    def test_unknown_pedotransfer_model_rejected(self, monkeypatch):
        monkeypatch.setenv("SOIL_HEALTH_PTF_MODEL", "bogus")
        clear_settings_cache()

        with pytest.raises(ValidationError, match="Unknown pedotransfer model 'bogus'"):
            get_settings()


class TestLoadYamlConfig:
    """Test YAML file loading errors."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_config(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("gps_key_precision: [4\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_yaml_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ValueError, match="Expected a mapping"):
            load_yaml_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_yaml_config(path) == {}
