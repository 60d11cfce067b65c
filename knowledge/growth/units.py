"""
Unit conversion between logged units and CDC canonical units.

CDC reference tables are expressed in kilograms (weight) and centimeters
(length, head circumference). Unit codes are free-form strings from the
tracker (LB, OZ, G, KG, IN, CM) and are compared case- and
whitespace-insensitively. Unknown units are treated as already canonical.
"""

from __future__ import annotations

from src.models import MeasurementType

# unit code -> multiplier into the canonical unit
WEIGHT_FACTORS: dict[str, float] = {
    "LB": 0.453592,
    "OZ": 0.0283495,
    "G": 0.001,
    "KG": 1.0,
}

LENGTH_FACTORS: dict[str, float] = {
    "IN": 2.54,
    "CM": 1.0,
}


def normalize_unit(unit: str | None) -> str:
    return (unit or "").strip().upper()


def _factors(measurement_type: MeasurementType) -> dict[str, float]:
    if measurement_type == MeasurementType.WEIGHT:
        return WEIGHT_FACTORS
    return LENGTH_FACTORS


def to_canonical(value: float, unit: str | None, measurement_type: MeasurementType) -> float:
    """Convert a logged value to kg (weight) or cm (length/head circumference)."""
    code = normalize_unit(unit)
    if measurement_type == MeasurementType.WEIGHT and code == "G":
        return value / 1000
    factor = _factors(measurement_type).get(code)
    if factor is None:
        return value
    return value * factor


def from_canonical(value: float, measurement_type: MeasurementType, display_unit: str | None) -> float:
    """Convert a canonical value to the requested display unit."""
    code = normalize_unit(display_unit)
    if measurement_type == MeasurementType.WEIGHT and code == "G":
        return value * 1000
    factor = _factors(measurement_type).get(code)
    if factor is None:
        return value
    return value / factor


def unit_label(measurement_type: MeasurementType, display_unit: str | None) -> str:
    """Axis label for a display unit (metric unless LB/IN is requested)."""
    code = normalize_unit(display_unit)
    if measurement_type == MeasurementType.WEIGHT:
        return "lb" if code == "LB" else "kg"
    return "in" if code == "IN" else "cm"


def is_valid_display_unit(measurement_type: MeasurementType, display_unit: str | None) -> bool:
    return normalize_unit(display_unit) in _factors(measurement_type)
