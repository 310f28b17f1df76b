"""Normalization of raw measurement fields into stored records."""

from typing import Any

from soil_health.logging_config import get_logger
from soil_health.models import (
    KIND_FIELDS,
    CompositionReading,
    LocationOption,
    LocationRef,
    MeasurementInput,
    MeasurementKind,
    MeasurementRecord,
    UserSettings,
    VessReading,
)
from soil_health.soil.calculations import derive_percentages

logger = get_logger(__name__)

# Document field names written by earlier clients, mapped to record fields
FIELD_ALIASES = {
    "id": "record_id",
    "_id": "record_id",
    "userId": "owner_id",
    "ownerId": "owner_id",
    "date": "timestamp",
    "measurementType": "kind",
    "vessScore": "visual_score",
    "visualScore": "visual_score",
    "sand": "sand_depth",
    "clay": "clay_depth",
    "silt": "silt_depth",
    "sandDepth": "sand_depth",
    "clayDepth": "clay_depth",
    "siltDepth": "silt_depth",
    "sandPercent": "sand_percent",
    "clayPercent": "clay_percent",
    "siltPercent": "silt_percent",
    "privacy": "visibility",
    "locationOption": "location_option",
    "locationRef": "location",
}

_FLAT_LOCATION_FIELDS = ("latitude", "longitude", "country", "region", "city")
_RECORD_FIELDS = set(MeasurementRecord.model_fields)


def _location_from_fields(fields: dict[str, Any]) -> LocationRef | None:
    """Build a LocationRef from either a nested value or flat document fields."""
    location = fields.get("location")
    option = fields.get("location_option")

    if isinstance(location, LocationRef):
        return location
    if isinstance(location, dict):
        return LocationRef(**location)

    label = location if isinstance(location, str) else None
    flat = {k: fields.get(k) for k in _FLAT_LOCATION_FIELDS}

    if option is None:
        # Older documents did not record how the location was entered
        if flat["latitude"] is not None and flat["longitude"] is not None:
            option = LocationOption.GPS
        elif label:
            option = LocationOption.MANUAL
        else:
            return None

    return LocationRef(option=option, label=label, **flat)


def canonical_fields(raw_fields: dict[str, Any]) -> dict[str, Any]:
    """Map aliased keys to record field names and assemble the location.

    Unknown keys are dropped.
    """
    fields: dict[str, Any] = {}
    for key, value in raw_fields.items():
        fields[FIELD_ALIASES.get(key, key)] = value

    if "record_id" in fields and fields["record_id"] is not None:
        fields["record_id"] = str(fields["record_id"])

    location = _location_from_fields(fields)
    result = {k: v for k, v in fields.items() if k in _RECORD_FIELDS}
    result["location"] = location
    return result


def normalize_stored_fields(
    kind: MeasurementKind | str, raw_fields: dict[str, Any]
) -> MeasurementRecord:
    """Build a record in which only ``kind``'s measurement fields are populated.

    Every field of the other kind is set to None explicitly, so editing a
    composition record into a VESS record cannot leave stale percentages
    behind. Composition percentages are always re-derived from the depths.

    Raises:
        pydantic.ValidationError: If the resulting record is invalid
    """
    kind = MeasurementKind(kind)
    fields = canonical_fields(raw_fields)
    fields["kind"] = kind

    for other_kind, names in KIND_FIELDS.items():
        if other_kind != kind:
            for name in names:
                fields[name] = None

    if kind != MeasurementKind.COMPOSITION:
        return MeasurementRecord(**fields)

    # Validate depths first, then derive percentages from the coerced values.
    # A valid composition record has a positive depth, so derivation succeeds.
    fields.update(sand_percent=None, clay_percent=None, silt_percent=None)
    record = MeasurementRecord(**fields)
    percentages = derive_percentages(record.sand_depth, record.clay_depth, record.silt_depth)
    return record.model_copy(update=percentages.model_dump())


def build_record(
    owner_id: str,
    measurement: MeasurementInput,
    settings: UserSettings | None = None,
    record_id: str | None = None,
) -> MeasurementRecord:
    """Turn a data-entry submission into a record ready to store.

    Visibility falls back to the owner's default when not chosen explicitly.
    """
    settings = settings or UserSettings()
    reading = measurement.reading

    raw: dict[str, Any] = {
        "record_id": record_id,
        "owner_id": owner_id,
        "timestamp": measurement.timestamp,
        "location": measurement.location,
        "visibility": measurement.visibility or settings.default_visibility,
    }
    if isinstance(reading, VessReading):
        raw["visual_score"] = reading.visual_score
    elif isinstance(reading, CompositionReading):
        raw.update(
            sand_depth=reading.sand_depth,
            clay_depth=reading.clay_depth,
            silt_depth=reading.silt_depth,
        )

    record = normalize_stored_fields(reading.kind, raw)
    logger.debug(f"Built {record.kind.value} record for owner {owner_id}")
    return record
