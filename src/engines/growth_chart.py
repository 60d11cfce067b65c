"""
Growth chart engine.

Turns logged measurements into percentile-annotated points and merges them
with the CDC reference curves into a single age-ordered series for charting.
All functions are pure; GrowthChartEngine only carries configuration.
"""

from __future__ import annotations

import bisect
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Sequence

from knowledge.growth import (
    age_in_months,
    chart_window_months,
    from_canonical,
    get_reference_table,
    percentile,
    row_for_age,
    to_canonical,
    unit_label,
)
from src.models import (
    PERCENTILE_COLUMNS,
    AnnotatedMeasurement,
    ChartPoint,
    DisplayUnits,
    GrowthChart,
    MeasurementRecord,
    MeasurementType,
    ReferenceRow,
    Sex,
)

logger = logging.getLogger("sprout.engines")

# 36-month CDC infant tables plus a half-month buffer
DEFAULT_MAX_AGE_MONTHS = 36.5

# Percentile used when no reference row covers a measurement
FALLBACK_PERCENTILE = 50


def half_month_bucket(age_months: float) -> float:
    """Round an age to the nearest half month (halves round up)."""
    return math.floor(age_months * 2 + 0.5) / 2


def annotate_measurement(
    record: MeasurementRecord,
    reference_table: Sequence[ReferenceRow],
    birth_date: date | datetime,
    display_unit: str,
) -> AnnotatedMeasurement:
    """
    Place one measurement against the reference population.

    Measurements without a usable reference row chart at the 50th
    percentile instead of being dropped.
    """
    measurement_type = MeasurementType(record.measurement_type)
    age = age_in_months(birth_date, record.date)
    canonical = to_canonical(record.value, record.unit, measurement_type)
    row = row_for_age(reference_table, age)
    if row is None or not row.is_usable:
        logger.debug("No usable %s reference at %.2f months", measurement_type.value, age)
        pct = FALLBACK_PERCENTILE
    else:
        pct = percentile(canonical, row.l, row.m, row.s)

    return AnnotatedMeasurement(
        age_months=age,
        canonical_value=canonical,
        display_value=from_canonical(canonical, measurement_type, display_unit),
        percentile=pct,
        date=record.date,
        unit=display_unit,
    )


def map_measurements(
    measurements: Iterable[MeasurementRecord],
    reference_table: Sequence[ReferenceRow],
    measurement_type: MeasurementType,
    birth_date: date | datetime,
    display_unit: str,
    max_age_months: float = DEFAULT_MAX_AGE_MONTHS,
) -> list[AnnotatedMeasurement]:
    """
    Annotate measurements of one type with age, converted values and percentile.

    Points outside 0..max_age_months are left out.

    Returns:
        Annotated measurements sorted by age
    """
    measurement_type = MeasurementType(measurement_type)
    annotated = [
        annotate_measurement(record, reference_table, birth_date, display_unit)
        for record in measurements
        if record.measurement_type == measurement_type
    ]

    in_range = [m for m in annotated if 0 <= m.age_months <= max_age_months]
    in_range.sort(key=lambda m: m.age_months)

    logger.debug(
        "Mapped %s %s measurements (%s out of range)",
        len(in_range), measurement_type.value, len(annotated) - len(in_range),
    )
    return in_range


def _interpolate_curves(lower: ChartPoint, upper: ChartPoint, age_months: float) -> dict[str, float]:
    ratio = (age_months - lower.age_months) / (upper.age_months - lower.age_months)
    return {
        name: getattr(lower, name) + ratio * (getattr(upper, name) - getattr(lower, name))
        for name in PERCENTILE_COLUMNS
    }


def build_series(
    reference_table: Sequence[ReferenceRow],
    annotated: Sequence[AnnotatedMeasurement],
    display_unit: str,
    measurement_type: MeasurementType,
    max_age_months: float,
) -> list[ChartPoint]:
    """
    Merge reference curves and measurements into one chart series.

    Every reference age up to max_age_months becomes a tick. Measurements are
    bucketed to the nearest half month; the first measurement (by age) in a
    bucket wins. Buckets matching a reference age attach to that tick, the
    rest get a new tick with curves interpolated between the neighbouring
    reference ticks, or are dropped when there are no neighbours.
    """
    measurement_type = MeasurementType(measurement_type)

    base = [
        ChartPoint(
            age_months=row.age_months,
            **{
                name: from_canonical(value, measurement_type, display_unit)
                for name, value in row.curves().items()
            },
        )
        for row in reference_table
        if row.age_months <= max_age_months
    ]

    buckets: dict[float, AnnotatedMeasurement] = {}
    for measurement in sorted(annotated, key=lambda m: m.age_months):
        key = half_month_bucket(measurement.age_months)
        if key not in buckets:
            buckets[key] = measurement

    series: list[ChartPoint] = []
    for point in base:
        measurement = buckets.pop(point.age_months, None)
        if measurement is not None:
            point = point.model_copy(update={
                "measurement_value": measurement.display_value,
                "measurement_date": measurement.date,
                "measurement_percentile": measurement.percentile,
            })
        series.append(point)

    base_ages = [point.age_months for point in base]
    dropped = 0
    for age, measurement in buckets.items():
        upper_idx = bisect.bisect_right(base_ages, age)
        if upper_idx == 0 or upper_idx >= len(base):
            dropped += 1
            continue
        lower, upper = base[upper_idx - 1], base[upper_idx]
        series.append(ChartPoint(
            age_months=age,
            **_interpolate_curves(lower, upper, age),
            measurement_value=measurement.display_value,
            measurement_date=measurement.date,
            measurement_percentile=measurement.percentile,
        ))

    if dropped:
        logger.debug("Dropped %s measurements outside the chart's reference ages", dropped)

    series.sort(key=lambda p: p.age_months)
    return series


def y_axis_domain(series: Sequence[ChartPoint]) -> tuple[float, float] | None:
    """Value range of the series padded by 10%, never below zero."""
    values = [
        v
        for point in series
        for v in (*point.curves().values(), point.measurement_value)
        if v is not None and not math.isnan(v)
    ]
    if not values:
        return None

    low, high = min(values), max(values)
    spread = high - low
    padding = spread * 0.1 if spread > 0 else (high or 1) * 0.1
    return max(0.0, low - padding), high + padding


def bracketing_curves(point: ChartPoint) -> tuple[tuple[str, float] | None, tuple[str, float] | None]:
    """
    Percentile curves just below and above a point's measurement.

    Returns:
        (lower, upper) as (curve name, value) pairs. upper is None when the
        measurement is above every curve; lower is None when it is at or
        below the lowest curve.
    """
    if point.measurement_value is None:
        return None, None

    curves = sorted(point.curves().items(), key=lambda item: item[1])
    for idx, (name, value) in enumerate(curves):
        if value >= point.measurement_value:
            lower = curves[idx - 1] if idx > 0 else None
            return lower, (name, value)
    return curves[-1], None


class GrowthChartEngine:
    """
    Builds growth charts for a child.

    Holds where reference tables come from and the default display units;
    every build recomputes from its inputs.
    """

    def __init__(
        self,
        reference_dir: Path | None = None,
        display_units: DisplayUnits | None = None,
        max_age_months: float = DEFAULT_MAX_AGE_MONTHS,
    ):
        self.reference_dir = reference_dir
        self.display_units = display_units or DisplayUnits()
        self.max_age_months = max_age_months

    def reference_table(self, measurement_type: MeasurementType, sex: Sex) -> list[ReferenceRow]:
        return get_reference_table(measurement_type, sex, self.reference_dir)

    def build(
        self,
        measurements: Iterable[MeasurementRecord],
        measurement_type: MeasurementType,
        sex: Sex,
        birth_date: date | datetime,
        display_unit: str | None = None,
        today: date | datetime | None = None,
        window_months: float | None = None,
    ) -> GrowthChart:
        """
        Run the full pipeline for one measurement type.

        Args:
            measurements: Logged measurements (any type; others are ignored)
            measurement_type: Chart to build
            sex: Reference population
            birth_date: Child's date of birth
            display_unit: Unit code for values; defaults to the engine's preference
            today: Reference date for the x-axis window (defaults to today)
            window_months: Explicit x-axis upper bound, overriding the age-based window

        Returns:
            GrowthChart with annotated measurements and the merged series
        """
        measurement_type = MeasurementType(measurement_type)
        unit = display_unit or self.display_units.for_type(measurement_type)
        table = self.reference_table(measurement_type, sex)

        annotated = map_measurements(
            measurements, table, measurement_type, birth_date, unit, self.max_age_months,
        )
        max_age = window_months if window_months is not None else chart_window_months(birth_date, today)
        series = build_series(table, annotated, unit, measurement_type, max_age)

        return GrowthChart(
            measurement_type=measurement_type,
            sex=sex,
            display_unit=unit,
            unit_label=unit_label(measurement_type, unit),
            max_age_months=max_age,
            measurements=annotated,
            series=series,
            y_axis_domain=y_axis_domain(series),
        )


def build_growth_chart(
    measurements: Iterable[MeasurementRecord],
    measurement_type: MeasurementType,
    sex: Sex,
    birth_date: date | datetime,
    display_unit: str | None = None,
    today: date | datetime | None = None,
) -> GrowthChart:
    """Build a chart against the built-in reference tables."""
    return GrowthChartEngine().build(
        measurements, measurement_type, sex, birth_date, display_unit, today,
    )
