"""Location keys, grouping and representative-record selection."""

import re
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from soil_health.config import get_settings
from soil_health.logging_config import get_logger
from soil_health.models import LocationOption, LocationRef, MeasurementRecord

logger = get_logger(__name__)

MAX_DETAILS_LENGTH = 30
UNKNOWN_NAME = "Unknown Location"
UNKNOWN_DETAILS = "No valid location data"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class LocationSummary(BaseModel):
    """A distinct location with its display strings."""

    key: str
    name: str
    full_details: str


class LocationGroup(BaseModel):
    """Records sharing an owner and a location key. Derived, never stored."""

    owner_id: str | None
    key: str
    name: str
    full_details: str
    records: list[MeasurementRecord] = Field(default_factory=list)

    @property
    def latest(self) -> MeasurementRecord | None:
        return _latest(self.records)


def location_key(
    location: LocationRef | None,
    precision: int | None = None,
    record_id: str | None = None,
) -> str:
    """Stable grouping key for a location.

    Manual labels are trimmed, lowercased and have whitespace runs replaced by
    underscores. GPS fixes are rounded to ``precision`` decimals (default from
    settings) so repeated visits to the same spot share a key. A record with no
    usable location gets a key of its own.
    """
    if location is None:
        return f"unknown_{record_id or 'location'}"

    if location.option == LocationOption.MANUAL:
        label = re.sub(r"\s+", "_", (location.label or "").strip().lower())
        return f"manual_{label}"

    if precision is None:
        precision = get_settings().gps_key_precision
    return f"gps_{location.latitude:.{precision}f}_{location.longitude:.{precision}f}"


def record_location_key(record: MeasurementRecord, precision: int | None = None) -> str:
    return location_key(record.location, precision, record.record_id)


def _place_parts(location: LocationRef) -> list[str]:
    return [p for p in (location.city, location.region, location.country) if p]


def location_name(location: LocationRef | None) -> str:
    """Short display name, e.g. ``GPS: 40.42, -3.70 (Madrid, Spain)``."""
    if location is None:
        return UNKNOWN_NAME
    if location.option == LocationOption.MANUAL:
        return (location.label or "").strip()

    parts = _place_parts(location)
    details = f" ({', '.join(parts)})" if parts else ""
    if len(details) > MAX_DETAILS_LENGTH:
        details = details[: MAX_DETAILS_LENGTH - 3] + "..."
    return f"GPS: {location.latitude:.2f}, {location.longitude:.2f}{details}"


def location_details(location: LocationRef | None) -> str:
    """Full, untruncated description of a location."""
    if location is None:
        return UNKNOWN_DETAILS
    if location.option == LocationOption.MANUAL:
        return (location.label or "").strip()

    parts = _place_parts(location)
    details = f" ({', '.join(parts)})" if parts else ""
    return f"Lat: {location.latitude:.5f}, Lon: {location.longitude:.5f}{details}"


def unique_locations(
    records: Iterable[MeasurementRecord], precision: int | None = None
) -> list[LocationSummary]:
    """Distinct locations among records, sorted by display name.

    The first record seen for a key provides its display strings.
    """
    seen: dict[str, LocationSummary] = {}
    for record in records:
        key = record_location_key(record, precision)
        if key not in seen:
            seen[key] = LocationSummary(
                key=key,
                name=location_name(record.location),
                full_details=location_details(record.location),
            )
    return sorted(seen.values(), key=lambda loc: loc.name.casefold())


def group_by_location(
    records: Iterable[MeasurementRecord], precision: int | None = None
) -> list[LocationGroup]:
    """Group records by (owner, location key), preserving input order within groups."""
    groups: dict[tuple[str | None, str], LocationGroup] = {}
    for record in records:
        key = record_location_key(record, precision)
        group = groups.get((record.owner_id, key))
        if group is None:
            group = LocationGroup(
                owner_id=record.owner_id,
                key=key,
                name=location_name(record.location),
                full_details=location_details(record.location),
            )
            groups[(record.owner_id, key)] = group
        group.records.append(record)

    logger.debug(f"Grouped records into {len(groups)} location groups")
    return list(groups.values())


def _latest(records: Iterable[MeasurementRecord]) -> MeasurementRecord | None:
    latest = None
    for record in records:
        # ">=" so the last of several equal timestamps wins
        if latest is None or (record.timestamp or _EPOCH) >= (latest.timestamp or _EPOCH):
            latest = record
    return latest


def select_representative_record(
    records: Iterable[MeasurementRecord],
    location_key_value: str,
    precision: int | None = None,
) -> MeasurementRecord | None:
    """The chronologically latest record at a location, whatever its kind.

    Kinds are never merged: if the latest entry is a VESS score, composition
    metrics for the location are simply absent.
    """
    matching = [
        r for r in records if record_location_key(r, precision) == location_key_value
    ]
    if not matching:
        logger.debug(f"No records for location {location_key_value}")
        return None
    return _latest(matching)
