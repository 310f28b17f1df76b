"""Soil metrics for field measurements.

Provides the calculations behind recorded soil observations:
- Composition percentages from settling-test depths
- Available water and related properties via pedotransfer models
- Representative-record selection per location
- Comparison axes against reference averages
"""

from soil_health.soil.calculations import (
    CompositionPercentages,
    classify_texture,
    derive_percentages,
)
from soil_health.soil.comparison import (
    ComparisonAxis,
    ComparisonMetrics,
    build_comparison_axes,
    normalize_for_comparison,
    simulated_country_average,
    summarize_axes,
)
from soil_health.soil.locations import (
    LocationGroup,
    group_by_location,
    location_key,
    select_representative_record,
    unique_locations,
)
from soil_health.soil.pedotransfer import (
    AvailableWater,
    SoilProperties,
    calculate_soil_properties,
    derive_available_water,
    get_pedotransfer_model,
)
from soil_health.soil.records import build_record, normalize_stored_fields

__all__ = [
    "AvailableWater",
    "ComparisonAxis",
    "ComparisonMetrics",
    "CompositionPercentages",
    "LocationGroup",
    "SoilProperties",
    "build_comparison_axes",
    "build_record",
    "calculate_soil_properties",
    "classify_texture",
    "derive_available_water",
    "derive_percentages",
    "get_pedotransfer_model",
    "group_by_location",
    "location_key",
    "normalize_for_comparison",
    "normalize_stored_fields",
    "select_representative_record",
    "simulated_country_average",
    "summarize_axes",
    "unique_locations",
]
