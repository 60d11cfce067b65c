"""
Data models for Sprout.
"""

from .growth import (
    PERCENTILE_COLUMNS,
    Sex,
    MeasurementType,
    ReferenceRow,
    WeightMeasurement,
    LengthMeasurement,
    HeadCircumferenceMeasurement,
    MeasurementRecord,
    AnnotatedMeasurement,
    ChartPoint,
    DisplayUnits,
    GrowthChart,
    make_measurement,
    measurement_from_log,
    parse_measurements,
)

__all__ = [
    "PERCENTILE_COLUMNS",
    "Sex",
    "MeasurementType",
    "ReferenceRow",
    "WeightMeasurement",
    "LengthMeasurement",
    "HeadCircumferenceMeasurement",
    "MeasurementRecord",
    "AnnotatedMeasurement",
    "ChartPoint",
    "DisplayUnits",
    "GrowthChart",
    "make_measurement",
    "measurement_from_log",
    "parse_measurements",
]
