"""
Growth chart data models for Sprout.

These Pydantic models define the reference rows, logged measurements and the
derived chart data produced by the growth engine. Everything here is
immutable; derived models are rebuilt on every computation.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


# Curve columns of a CDC reference row, lowest to highest
PERCENTILE_COLUMNS: tuple[str, ...] = (
    "p3", "p5", "p10", "p25", "p50", "p75", "p90", "p95", "p97",
)


# =============================================================================
# ENUMS
# =============================================================================


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"

    @classmethod
    def from_cdc_code(cls, code: int) -> Sex:
        """CDC tables encode sex as 1 (male) or 2 (female)."""
        if code == 1:
            return cls.MALE
        if code == 2:
            return cls.FEMALE
        raise ValueError(f"Unknown CDC sex code: {code}")

    @classmethod
    def from_gender(cls, gender: str | None) -> Sex:
        """Map a baby profile gender to a chart sex. Unknown values chart as male."""
        if gender and gender.strip().upper() == "FEMALE":
            return cls.FEMALE
        return cls.MALE

    @property
    def cdc_code(self) -> int:
        return 1 if self is Sex.MALE else 2


class MeasurementType(str, Enum):
    WEIGHT = "weight"
    LENGTH = "length"
    HEAD_CIRCUMFERENCE = "head_circumference"

    @classmethod
    def from_log_type(cls, log_type: str | None) -> MeasurementType | None:
        """Map an activity-log measurement type (WEIGHT, HEIGHT, ...) to a chart type."""
        return _LOG_TYPES.get((log_type or "").strip().upper())

    @property
    def canonical_unit(self) -> str:
        return "KG" if self is MeasurementType.WEIGHT else "CM"

    @property
    def log_type(self) -> str:
        return next(key for key, value in _LOG_TYPES.items() if value is self)


_LOG_TYPES: dict[str, MeasurementType] = {
    "WEIGHT": MeasurementType.WEIGHT,
    "HEIGHT": MeasurementType.LENGTH,
    "HEAD_CIRCUMFERENCE": MeasurementType.HEAD_CIRCUMFERENCE,
}


# =============================================================================
# REFERENCE DATA
# =============================================================================


class ReferenceRow(BaseModel):
    """One CDC population reference point (canonical units: kg or cm)."""
    model_config = ConfigDict(frozen=True)

    sex: Sex
    age_months: float = Field(ge=0)
    l: float
    m: float
    s: float
    p3: float
    p5: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float
    p97: float

    @property
    def is_usable(self) -> bool:
        return self.m != 0 and self.s != 0

    def curves(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in PERCENTILE_COLUMNS}


# =============================================================================
# LOGGED MEASUREMENTS
# =============================================================================


class _Measurement(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime
    value: float
    unit: str = ""


class WeightMeasurement(_Measurement):
    """A logged weight (LB, OZ, G or KG)."""
    measurement_type: Literal["weight"] = "weight"


class LengthMeasurement(_Measurement):
    """A logged length/height (IN or CM)."""
    measurement_type: Literal["length"] = "length"


class HeadCircumferenceMeasurement(_Measurement):
    """A logged head circumference (IN or CM)."""
    measurement_type: Literal["head_circumference"] = "head_circumference"


MeasurementRecord = Annotated[
    Union[WeightMeasurement, LengthMeasurement, HeadCircumferenceMeasurement],
    Field(discriminator="measurement_type"),
]

_MEASUREMENT_CLASSES: dict[MeasurementType, type[_Measurement]] = {
    MeasurementType.WEIGHT: WeightMeasurement,
    MeasurementType.LENGTH: LengthMeasurement,
    MeasurementType.HEAD_CIRCUMFERENCE: HeadCircumferenceMeasurement,
}

_measurement_list = TypeAdapter(list[MeasurementRecord])


def make_measurement(
    measurement_type: MeasurementType,
    date: datetime,
    value: float,
    unit: str = "",
) -> MeasurementRecord:
    """Build the measurement variant for a chart type."""
    return _MEASUREMENT_CLASSES[MeasurementType(measurement_type)](
        date=date, value=value, unit=unit or "",
    )


def measurement_from_log(entry: dict[str, Any]) -> MeasurementRecord | None:
    """
    Convert an activity-log entry into a measurement record.

    Log entries use the tracker vocabulary (type WEIGHT/HEIGHT/
    HEAD_CIRCUMFERENCE/TEMPERATURE). Types with no growth chart return None.
    """
    measurement_type = MeasurementType.from_log_type(entry.get("type"))
    if measurement_type is None:
        return None
    return _MEASUREMENT_CLASSES[measurement_type].model_validate({
        "date": entry["date"],
        "value": entry["value"],
        "unit": entry.get("unit") or "",
    })


def parse_measurements(data: list[dict[str, Any]]) -> list[MeasurementRecord]:
    """Validate a list of measurement dicts tagged with ``measurement_type``."""
    return _measurement_list.validate_python(data)


# =============================================================================
# DERIVED CHART DATA
# =============================================================================


class AnnotatedMeasurement(BaseModel):
    """A measurement placed on the chart: age, values and percentile."""
    model_config = ConfigDict(frozen=True)

    age_months: float
    canonical_value: float
    display_value: float
    percentile: float
    date: datetime
    unit: str


class ChartPoint(BaseModel):
    """One x-axis tick: the nine curves plus an optional measurement."""
    model_config = ConfigDict(frozen=True)

    age_months: float
    p3: float
    p5: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float
    p97: float
    measurement_value: float | None = None
    measurement_percentile: float | None = None
    measurement_date: datetime | None = None

    @property
    def has_measurement(self) -> bool:
        return self.measurement_value is not None

    def curves(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in PERCENTILE_COLUMNS}


class DisplayUnits(BaseModel):
    """Display unit preferences per measurement type."""
    weight_unit: str = "KG"
    length_unit: str = "CM"

    def for_type(self, measurement_type: MeasurementType) -> str:
        if measurement_type == MeasurementType.WEIGHT:
            return self.weight_unit or "KG"
        return self.length_unit or "CM"


class GrowthChart(BaseModel):
    """Everything a chart renderer needs for one measurement type."""
    measurement_type: MeasurementType
    sex: Sex
    display_unit: str
    unit_label: str
    max_age_months: float
    measurements: list[AnnotatedMeasurement] = Field(default_factory=list)
    series: list[ChartPoint] = Field(default_factory=list)
    y_axis_domain: tuple[float, float] | None = None
