"""
Pydantic models for soil measurement records.

Defines the stored record shape (flat, with explicit nulls for the fields of
the other measurement kind), the tagged-union reading submitted by data
entry forms, and per-user settings.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class MeasurementKind(str, Enum):
    """Discriminates which measurement fields of a record are meaningful."""

    VESS = "vess"
    COMPOSITION = "composition"


class Visibility(str, Enum):
    """Who may read a record besides its owner."""

    PUBLIC = "public"
    PRIVATE = "private"


class LocationOption(str, Enum):
    """How the sampling location was entered."""

    MANUAL = "manual"
    GPS = "gps"


VESS_FIELDS = ("visual_score",)
COMPOSITION_FIELDS = (
    "sand_depth",
    "clay_depth",
    "silt_depth",
    "sand_percent",
    "clay_percent",
    "silt_percent",
)
KIND_FIELDS: dict[MeasurementKind, tuple[str, ...]] = {
    MeasurementKind.VESS: VESS_FIELDS,
    MeasurementKind.COMPOSITION: COMPOSITION_FIELDS,
}

VESS_DESCRIPTIONS: dict[int, str] = {
    1: "Very Poor: Dense, large clods, difficult root penetration.",
    2: "Poor: Mostly large, firm aggregates with few roots.",
    3: "Moderate: Mix of aggregate sizes, some porosity.",
    4: "Good: Mostly small aggregates, porous, roots throughout.",
    5: "Excellent: Friable, crumbly structure with abundant roots.",
}


def _as_utc_datetime(value: Any) -> Any:
    """Coerce dates and naive datetimes to timezone-aware UTC datetimes."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value  # let pydantic report it
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime) and value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


class LocationRef(BaseModel):
    """Where a sample was taken: a manual label or a GPS fix."""

    option: LocationOption = Field(description="How the location was entered")
    label: str | None = Field(None, description="Free-text location/field name")
    latitude: float | None = Field(
        None, ge=-90, le=90, description="Latitude in decimal degrees"
    )
    longitude: float | None = Field(
        None, ge=-180, le=180, description="Longitude in decimal degrees"
    )

    # Reverse-geocoded enrichment (GPS only)
    country: str | None = None
    region: str | None = None
    city: str | None = None

    @model_validator(mode="after")
    def check_option_fields(self) -> "LocationRef":
        if self.option == LocationOption.MANUAL:
            if not self.label or not self.label.strip():
                raise ValueError("Manual location name is required when selected.")
            self.latitude = None
            self.longitude = None
        else:
            if self.latitude is None or self.longitude is None:
                raise ValueError("GPS locations need both latitude and longitude")
            self.label = None
        return self


class MeasurementRecord(BaseModel):
    """One stored soil observation.

    Fields of the kind that does not apply are always present and ``None``,
    so "not applicable" is distinguishable from "not yet entered". Owner,
    timestamp and location may be absent on a bare field bag; records read
    from the store always carry them.
    """

    record_id: str | None = Field(None, description="Document id in the store")
    owner_id: str | None = Field(None, description="Contributing user")
    timestamp: datetime | None = Field(None, description="When the sample was taken")
    location: LocationRef | None = None
    kind: MeasurementKind

    # VESS
    visual_score: int | None = Field(
        None, ge=1, le=5, description="Visual structure score (1=very poor, 5=excellent)"
    )

    # Composition (settling test depths in cm, derived integer percentages)
    sand_depth: float | None = Field(None, ge=0.0)
    clay_depth: float | None = Field(None, ge=0.0)
    silt_depth: float | None = Field(None, ge=0.0)
    sand_percent: int | None = Field(None, ge=0, le=100)
    clay_percent: int | None = Field(None, ge=0, le=100)
    silt_percent: int | None = Field(None, ge=0, le=100)

    visibility: Visibility = Visibility.PRIVATE

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Any:
        return _as_utc_datetime(v)

    @model_validator(mode="after")
    def check_kind_invariants(self) -> "MeasurementRecord":
        for kind, fields in KIND_FIELDS.items():
            if kind == self.kind:
                continue
            populated = [f for f in fields if getattr(self, f) is not None]
            if populated:
                raise ValueError(
                    f"{self.kind.value} record must not populate {', '.join(populated)}"
                )

        if self.kind == MeasurementKind.VESS:
            if self.visual_score is None:
                raise ValueError("vess record requires a visual_score")
        else:
            depths = (self.sand_depth, self.clay_depth, self.silt_depth)
            if not any(d is not None and d > 0 for d in depths):
                raise ValueError(
                    "At least one measurement (sand, clay or silt) must be provided"
                )
            percents = (self.sand_percent, self.clay_percent, self.silt_percent)
            if all(p is not None for p in percents) and sum(percents) != 100:
                raise ValueError(f"Percentages must sum to 100, got {sum(percents)}")

        return self

    @property
    def is_public(self) -> bool:
        return self.visibility == Visibility.PUBLIC

    def to_document(self) -> dict[str, Any]:
        """Render the document stored in the database (nulls kept)."""
        document = self.model_dump(mode="json", exclude={"record_id"})
        # Stored as a native date, not an ISO string
        document["timestamp"] = self.timestamp
        return document


class VessReading(BaseModel):
    """A visual evaluation of soil structure."""

    kind: Literal["vess"] = "vess"
    visual_score: int = Field(3, ge=1, le=5)


class CompositionReading(BaseModel):
    """Raw depths (cm) of each particle-size fraction in a settling test."""

    kind: Literal["composition"] = "composition"
    sand_depth: float | None = Field(None, ge=0.0, description="Cannot be negative")
    clay_depth: float | None = Field(None, ge=0.0, description="Cannot be negative")
    silt_depth: float | None = Field(None, ge=0.0, description="Cannot be negative")

    @model_validator(mode="after")
    def check_total(self) -> "CompositionReading":
        total = (self.sand_depth or 0) + (self.clay_depth or 0) + (self.silt_depth or 0)
        if total <= 0:
            raise ValueError(
                "At least one measurement (sand, clay or silt) must be provided"
            )
        return self


Reading = Annotated[VessReading | CompositionReading, Field(discriminator="kind")]


class MeasurementInput(BaseModel):
    """A data-entry submission, before derivation and normalization."""

    timestamp: datetime
    location: LocationRef
    reading: Reading
    visibility: Visibility | None = Field(
        None, description="Falls back to the owner's default visibility"
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v: Any) -> Any:
        return _as_utc_datetime(v)


class UserSettings(BaseModel):
    """Per-user preferences."""

    default_visibility: Visibility = Visibility.PRIVATE
