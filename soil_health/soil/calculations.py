"""Composition percentages and texture classification from settling-test depths."""

import math

from pydantic import BaseModel, Field

from soil_health.logging_config import get_logger

logger = get_logger(__name__)


class CompositionPercentages(BaseModel):
    """Integer particle-size shares that always sum to 100."""

    sand_percent: int = Field(ge=0, le=100)
    clay_percent: int = Field(ge=0, le=100)
    silt_percent: int = Field(ge=0, le=100)

    @property
    def texture_class(self) -> str:
        return classify_texture(self.sand_percent, self.silt_percent, self.clay_percent)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _largest(values: list[float], secondary: list[float] | None = None) -> int:
    """Index of the largest value; ties go to the earliest.

    ``secondary`` is compared before position. For equal raw shares the
    rounding errors are equal too, so in practice position decides.
    """
    secondary = secondary or [0.0] * len(values)
    return max(range(len(values)), key=lambda i: (values[i], secondary[i], -i))


def derive_percentages(
    sand_depth: float | None,
    clay_depth: float | None,
    silt_depth: float | None,
) -> CompositionPercentages | None:
    """Convert raw fraction depths (cm) into integer percentages summing to 100.

    Missing depths count as zero. Returns None when any depth is negative or
    the total depth is not positive, since no meaningful ratio can be formed.

    Each share is rounded half-up independently. When the rounded shares do
    not add up to 100, the share with the largest raw value absorbs the
    difference (ties: largest rounding error, then sand, clay, silt order).
    Any share pushed below zero is clamped, and a remaining difference goes
    to the currently largest rounded share.
    """
    depths = [d or 0.0 for d in (sand_depth, clay_depth, silt_depth)]
    if any(d < 0 for d in depths):
        logger.debug(f"Cannot derive percentages from negative depths {depths}")
        return None

    total = sum(depths)
    if total <= 0:
        logger.debug(f"Cannot derive percentages from non-positive total {total}")
        return None

    raw = [d / total * 100 for d in depths]
    rounded = [_round_half_up(r) for r in raw]

    diff = 100 - sum(rounded)
    if diff != 0:
        errors = [abs(r - n) for r, n in zip(raw, rounded)]
        rounded[_largest(raw, errors)] += diff

        rounded = [max(0, n) for n in rounded]
        remaining = 100 - sum(rounded)
        if remaining != 0:
            rounded[_largest([float(n) for n in rounded])] += remaining

    sand, clay, silt = rounded
    return CompositionPercentages(sand_percent=sand, clay_percent=clay, silt_percent=silt)


USDA_TEXTURE_CLASSES = (
    "Sand",
    "Loamy sand",
    "Sandy loam",
    "Loam",
    "Silt loam",
    "Silt",
    "Sandy clay loam",
    "Clay loam",
    "Silty clay loam",
    "Sandy clay",
    "Silty clay",
    "Clay",
)


def classify_texture(sand_pct: float, silt_pct: float, clay_pct: float) -> str:
    """Classify soil texture using the USDA texture triangle.

    Args:
        sand_pct: Sand percentage (0-100)
        silt_pct: Silt percentage (0-100)
        clay_pct: Clay percentage (0-100)

    Returns:
        USDA texture class name

    Raises:
        ValueError: If percentages don't sum to ~100% or are out of range
    """
    if any(pct < 0 or pct > 100 for pct in (sand_pct, silt_pct, clay_pct)):
        raise ValueError("All percentages must be between 0 and 100")

    total = sand_pct + silt_pct + clay_pct
    if not (95 <= total <= 105):
        raise ValueError(f"Sand + silt + clay must sum to ~100%, got {total}%")

    factor = 100.0 / total
    sand = sand_pct * factor
    silt = silt_pct * factor
    clay = clay_pct * factor

    # NRCS texture triangle boundaries, checked from coarsest to finest
    if silt + 1.5 * clay < 15:
        return "Sand"
    if silt + 2 * clay < 30:
        return "Loamy sand"
    if clay < 7 and silt < 50 or 7 <= clay < 20 and sand > 52:
        return "Sandy loam"
    if 7 <= clay < 27 and 28 <= silt < 50 and sand <= 52:
        return "Loam"
    if silt >= 80 and clay < 12:
        return "Silt"
    if silt >= 50 and clay < 27:
        return "Silt loam"
    if 20 <= clay < 35 and silt < 28 and sand > 45:
        return "Sandy clay loam"
    if clay >= 35 and sand > 45:
        return "Sandy clay"
    if 27 <= clay < 40:
        return "Silty clay loam" if sand <= 20 else "Clay loam"
    if clay >= 40:
        return "Silty clay" if silt >= 40 else "Clay"

    # Remaining slivers along the loam / clay loam edge
    return "Loam" if clay < 27 else "Clay loam"
