"""Shape records into time series and tables for charts and exports."""

import math
from collections.abc import Iterable
from datetime import datetime

import pandas as pd
from pydantic import BaseModel

from soil_health.logging_config import get_logger
from soil_health.models import MeasurementKind, MeasurementRecord
from soil_health.soil.locations import location_name, record_location_key
from soil_health.soil.pedotransfer import PedotransferModel, derive_available_water

logger = get_logger(__name__)

TABLE_COLUMNS = [
    "record_id",
    "timestamp",
    "location_key",
    "location",
    "kind",
    "visual_score",
    "sand_depth",
    "clay_depth",
    "silt_depth",
    "sand_percent",
    "clay_percent",
    "silt_percent",
    "visibility",
]


class VessPoint(BaseModel):
    timestamp: datetime
    visual_score: int


class CompositionPoint(BaseModel):
    timestamp: datetime
    sand_percent: int | None = None
    clay_percent: int | None = None
    silt_percent: int | None = None


class AvailableWaterPoint(BaseModel):
    timestamp: datetime
    record_id: str | None = None
    available_water: float


def _is_number(value: object) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and not math.isnan(value)
    )


def _dated(records: Iterable[MeasurementRecord]) -> list[MeasurementRecord]:
    dated = []
    for record in records:
        if record.timestamp is None:
            logger.warning(f"Skipping record {record.record_id} without a timestamp")
            continue
        dated.append(record)
    return sorted(dated, key=lambda r: r.timestamp)


def vess_series(records: Iterable[MeasurementRecord]) -> list[VessPoint]:
    """VESS scores in ascending time order."""
    return [
        VessPoint(timestamp=r.timestamp, visual_score=r.visual_score)
        for r in _dated(records)
        if r.kind == MeasurementKind.VESS and _is_number(r.visual_score)
    ]


def composition_series(records: Iterable[MeasurementRecord]) -> list[CompositionPoint]:
    """Composition percentages in ascending time order.

    Records with no percentage at all are skipped.
    """
    points = []
    for record in _dated(records):
        if record.kind != MeasurementKind.COMPOSITION:
            continue
        percents = (record.sand_percent, record.clay_percent, record.silt_percent)
        if not any(_is_number(p) for p in percents):
            logger.warning(
                f"Skipping composition record {record.record_id} with no percentages"
            )
            continue
        points.append(
            CompositionPoint(
                timestamp=record.timestamp,
                sand_percent=record.sand_percent,
                clay_percent=record.clay_percent,
                silt_percent=record.silt_percent,
            )
        )
    return points


def available_water_series(
    records: Iterable[MeasurementRecord], model: PedotransferModel | None = None
) -> list[AvailableWaterPoint]:
    """Estimated available water per composition record, ascending in time."""
    points = []
    for record in _dated(records):
        if record.kind != MeasurementKind.COMPOSITION:
            continue
        water = derive_available_water(record.clay_percent, record.sand_percent, model)
        if water is None:
            logger.warning(
                f"Skipping record {record.record_id}: missing or invalid clay/sand "
                "percentages for the available water estimate"
            )
            continue
        points.append(
            AvailableWaterPoint(
                timestamp=record.timestamp,
                record_id=record.record_id,
                available_water=water.available_water,
            )
        )
    return points


def records_to_frame(records: Iterable[MeasurementRecord]) -> pd.DataFrame:
    """Table view of records, newest first."""
    rows = []
    for record in records:
        rows.append(
            {
                "record_id": record.record_id,
                "timestamp": record.timestamp,
                "location_key": record_location_key(record),
                "location": location_name(record.location),
                "kind": record.kind.value,
                "visual_score": record.visual_score,
                "sand_depth": record.sand_depth,
                "clay_depth": record.clay_depth,
                "silt_depth": record.silt_depth,
                "sand_percent": record.sand_percent,
                "clay_percent": record.clay_percent,
                "silt_percent": record.silt_percent,
                "visibility": record.visibility.value,
            }
        )

    df = pd.DataFrame(rows, columns=TABLE_COLUMNS)
    if not df.empty:
        df = df.sort_values("timestamp", ascending=False, na_position="last")
        df = df.reset_index(drop=True)
    return df
