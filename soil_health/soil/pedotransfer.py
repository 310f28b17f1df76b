"""Pedotransfer models estimating soil water properties from texture.

The default model is Saxton & Rawls (2006), "Soil water characteristic
estimates by texture and organic matter for hydrologic solutions",
Soil Sci. Soc. Am. J. 70:1569-1578. Organic matter is not measured by the
settling test, so a configurable constant is assumed.
"""

import math
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from soil_health.config import MODEL_NAMES, AppSettings, get_settings
from soil_health.logging_config import get_logger

logger = get_logger(__name__)


class SoilProperties(BaseModel):
    """Water retention and density estimates for one texture."""

    wilting_point: float = Field(description="Water content at -1500 kPa (vol. %)")
    field_capacity: float = Field(description="Water content at -33 kPa (vol. %)")
    available_water: float = Field(ge=0.0, description="FC - WP (vol. %)")
    bulk_density: float = Field(description="Bulk density (g/cm³)")
    model: str = Field(description="Pedotransfer model used")


class AvailableWater(BaseModel):
    """Total available water capacity estimate."""

    available_water: float = Field(ge=0.0, description="Available water (vol. %)")
    model: str


class PedotransferModel(ABC):
    """Abstract base class for pedotransfer functions.

    Implementations receive validated clay and sand percentages (0-100) and
    return percentages of volumetric water content.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry name for identification and configuration."""
        pass

    @property
    @abstractmethod
    def reference(self) -> str:
        """Citation of the published equations."""
        pass

    @abstractmethod
    def estimate(self, clay_percent: float, sand_percent: float) -> SoilProperties:
        """Estimate soil properties for a texture."""
        pass

    def _properties(
        self, wilting_point: float, field_capacity: float, bulk_density: float
    ) -> SoilProperties:
        """Clamp to physical bounds and round to two decimals."""
        wp = max(0.0, min(100.0, wilting_point))
        # Field capacity never below wilting point, so available water >= 0
        fc = max(wp, min(100.0, field_capacity))
        return SoilProperties(
            wilting_point=round(wp, 2),
            field_capacity=round(fc, 2),
            available_water=round(fc - wp, 2),
            bulk_density=round(bulk_density, 2),
            model=self.name,
        )


class SaxtonRawls2006(PedotransferModel):
    """Saxton & Rawls (2006) equations for θ1500, θ33 and normal density."""

    def __init__(self, organic_matter_percent: float = 2.5) -> None:
        self.organic_matter_percent = organic_matter_percent

    @property
    def name(self) -> str:
        return "saxton_rawls_2006"

    @property
    def reference(self) -> str:
        return (
            "Saxton, K.E. & Rawls, W.J. (2006). Soil water characteristic estimates "
            "by texture and organic matter for hydrologic solutions. "
            "Soil Sci. Soc. Am. J. 70:1569-1578."
        )

    def estimate(self, clay_percent: float, sand_percent: float) -> SoilProperties:
        s = sand_percent / 100.0
        c = clay_percent / 100.0
        om = self.organic_matter_percent

        # Eq. 1: permanent wilting point, -1500 kPa
        t1500 = (
            -0.024 * s + 0.487 * c + 0.006 * om
            + 0.005 * (s * om) - 0.013 * (c * om) + 0.068 * (s * c) + 0.031
        )
        theta_1500 = t1500 + (0.14 * t1500 - 0.02)

        # Eq. 2: field capacity, -33 kPa
        t33 = (
            -0.251 * s + 0.195 * c + 0.011 * om
            + 0.006 * (s * om) - 0.027 * (c * om) + 0.452 * (s * c) + 0.299
        )
        theta_33 = t33 + (1.283 * t33**2 - 0.374 * t33 - 0.015)

        # Eqs. 3, 5, 6: saturation and normal density
        ts33 = (
            0.278 * s + 0.034 * c + 0.022 * om
            - 0.018 * (s * om) - 0.027 * (c * om) - 0.584 * (s * c) + 0.078
        )
        theta_s33 = ts33 + (0.636 * ts33 - 0.107)
        theta_s = theta_33 + theta_s33 - 0.097 * s + 0.043
        bulk_density = (1.0 - theta_s) * 2.65

        return self._properties(theta_1500 * 100, theta_33 * 100, bulk_density)


class LinearTexturePTF(PedotransferModel):
    """Linear clay/sand regression used by earlier releases of the app."""

    @property
    def name(self) -> str:
        return "linear"

    @property
    def reference(self) -> str:
        return (
            "Linear texture regression: WP = 0.0673 + 0.00064C + 0.00196S, "
            "FC = 0.2576 + 0.00203C + 0.00125S, BD = 1.6 - 0.004C"
        )

    def estimate(self, clay_percent: float, sand_percent: float) -> SoilProperties:
        wp = (0.0673 + 0.00064 * clay_percent + 0.00196 * sand_percent) * 100
        fc = (0.2576 + 0.00203 * clay_percent + 0.00125 * sand_percent) * 100
        bd = 1.6 - 0.004 * clay_percent

        wp = min(60.0, wp)
        fc = min(70.0, fc)
        bd = max(0.8, min(1.8, bd))
        return self._properties(wp, fc, bd)


def get_pedotransfer_model(
    name: str | None = None, settings: AppSettings | None = None
) -> PedotransferModel:
    """Build a pedotransfer model by registry name.

    Args:
        name: Model name; defaults to the configured model
        settings: Settings to read defaults from

    Raises:
        KeyError: If the model name is unknown
    """
    settings = settings or get_settings()
    name = name or settings.pedotransfer_model

    if name == "saxton_rawls_2006":
        return SaxtonRawls2006(organic_matter_percent=settings.organic_matter_percent)
    if name == "linear":
        return LinearTexturePTF()

    raise KeyError(
        f"Unknown pedotransfer model {name!r}; choose one of {', '.join(MODEL_NAMES)}"
    )


def _valid_percent(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return not math.isnan(value) and 0 <= value <= 100


def calculate_soil_properties(
    clay_percent: float | None,
    sand_percent: float | None,
    model: PedotransferModel | None = None,
) -> SoilProperties | None:
    """Estimate wilting point, field capacity, available water and bulk density.

    Returns None when either percentage is missing, non-numeric or outside
    0-100; callers treat that as "insufficient data".
    """
    if not (_valid_percent(clay_percent) and _valid_percent(sand_percent)):
        logger.debug(
            f"Cannot estimate soil properties for clay={clay_percent!r}, "
            f"sand={sand_percent!r}"
        )
        return None

    model = model or get_pedotransfer_model()
    return model.estimate(float(clay_percent), float(sand_percent))


def derive_available_water(
    clay_percent: float | None,
    sand_percent: float | None,
    model: PedotransferModel | None = None,
) -> AvailableWater | None:
    """Estimate total available water capacity from clay and sand percentages."""
    properties = calculate_soil_properties(clay_percent, sand_percent, model)
    if properties is None:
        return None
    return AvailableWater(available_water=properties.available_water, model=properties.model)
