"""Tests for pedotransfer models and available water estimates."""

import math

import pytest

from soil_health.config import AppSettings, clear_settings_cache
from soil_health.soil.pedotransfer import (
    LinearTexturePTF,
    PedotransferModel,
    SaxtonRawls2006,
    calculate_soil_properties,
    derive_available_water,
    get_pedotransfer_model,
)


class TestSaxtonRawls2006:
    """Test the default Saxton & Rawls (2006) model."""

    def test_sandy_clay_loam(self):
        """Clay 20 %, sand 60 % with 2.5 % organic matter."""
        props = SaxtonRawls2006().estimate(20, 60)

        assert props.wilting_point == pytest.approx(13.75, abs=0.01)
        assert props.field_capacity == pytest.approx(24.05, abs=0.01)
        assert props.available_water == pytest.approx(10.30, abs=0.01)
        assert 1.3 < props.bulk_density < 1.7
        assert props.model == "saxton_rawls_2006"

    def test_heavy_clay_has_no_negative_available_water(self):
        """Pure clay: the equations put FC below WP, so available water clamps to 0."""
        props = SaxtonRawls2006().estimate(100, 0)

        assert props.available_water == 0.0
        assert props.field_capacity == props.wilting_point

    def test_more_organic_matter_holds_more_water_in_sand(self):
        low = SaxtonRawls2006(organic_matter_percent=1.0).estimate(5, 85)
        high = SaxtonRawls2006(organic_matter_percent=5.0).estimate(5, 85)

        assert high.field_capacity > low.field_capacity

    def test_reference_cites_paper(self):
        assert "Saxton" in SaxtonRawls2006().reference
        assert "70:1569-1578" in SaxtonRawls2006().reference


class TestLinearTexturePTF:
    """Test the linear regression model."""

    def test_known_values(self):
        props = LinearTexturePTF().estimate(20, 60)

        assert props.wilting_point == pytest.approx(19.77)
        assert props.field_capacity == pytest.approx(37.32)
        assert props.available_water == pytest.approx(17.55)
        assert props.bulk_density == pytest.approx(1.52)
        assert props.model == "linear"


class TestModelRegistry:
    """Test model lookup by name and configuration."""

    def test_default_model(self):
        model = get_pedotransfer_model()

        assert isinstance(model, SaxtonRawls2006)
        assert model.organic_matter_percent == 2.5

    def test_named_model(self):
        assert isinstance(get_pedotransfer_model("linear"), LinearTexturePTF)

    def test_settings_choose_model(self):
        settings = AppSettings(pedotransfer_model="linear")

        assert get_pedotransfer_model(settings=settings).name == "linear"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SOIL_HEALTH_PTF_MODEL", "linear")
        clear_settings_cache()

        assert get_pedotransfer_model().name == "linear"

    def test_unknown_model(self):
        with pytest.raises(KeyError, match="Unknown pedotransfer model"):
            get_pedotransfer_model("van_genuchten")

    def test_models_share_base_class(self):
        for name in ("saxton_rawls_2006", "linear"):
            assert isinstance(get_pedotransfer_model(name), PedotransferModel)


class TestDeriveAvailableWater:
    """Test null propagation and bounds of available water estimates."""

    def test_end_to_end_value(self):
        result = derive_available_water(20, 60)

        assert result is not None
        assert math.isfinite(result.available_water)
        assert result.available_water >= 0
        assert result.model == "saxton_rawls_2006"

    def test_missing_inputs_return_none(self):
        assert derive_available_water(None, 40) is None
        assert derive_available_water(30, None) is None

    @pytest.mark.parametrize(
        ("clay", "sand"),
        [("30", 40), (True, 40), (float("nan"), 40), (120, 10), (30, -1)],
    )
    def test_invalid_inputs_return_none(self, clay, sand):
        assert derive_available_water(clay, sand) is None
        assert calculate_soil_properties(clay, sand) is None

    def test_never_negative_across_textures(self):
        for model in (SaxtonRawls2006(), LinearTexturePTF()):
            for clay in range(0, 101, 10):
                for sand in range(0, 101 - clay, 10):
                    result = derive_available_water(clay, sand, model)
                    assert result.available_water >= 0, (model.name, clay, sand)

    def test_explicit_model(self):
        result = derive_available_water(20, 60, LinearTexturePTF())

        assert result.available_water == pytest.approx(17.55)
