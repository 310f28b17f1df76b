"""Soil Health Tracker: record, compare and chart field soil measurements."""

__version__ = "0.1.0"

from .models import MeasurementKind, MeasurementRecord, Visibility

__all__ = ["MeasurementKind", "MeasurementRecord", "Visibility"]
