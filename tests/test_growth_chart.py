"""
Tests for the growth chart engine: measurement mapping and series building.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from datetime import date, datetime

import pytest

from src.models import (
    AnnotatedMeasurement,
    ChartPoint,
    LengthMeasurement,
    MeasurementType,
    ReferenceRow,
    Sex,
    WeightMeasurement,
)

NAMES = ["p3", "p5", "p10", "p25", "p50", "p75", "p90", "p95", "p97"]


def make_row(age, m, l=1.0, s=0.1):
    """Reference row with curves at m - 4 ... m + 4."""
    curves = {name: m + off for name, off in zip(NAMES, range(-4, 5))}
    return ReferenceRow(sex=Sex.MALE, age_months=age, l=l, m=m, s=s, **curves)


def annotated(age, value=5.0, pct=50.0, day=1):
    return AnnotatedMeasurement(
        age_months=age,
        canonical_value=value,
        display_value=value,
        percentile=pct,
        date=datetime(2024, 6, day),
        unit="KG",
    )


@pytest.fixture
def table():
    return [make_row(0, 10.0), make_row(1, 12.0), make_row(2, 14.0), make_row(3, 16.0)]


class TestMapMeasurements:
    """Test measurement annotation."""

    def test_percentile_and_display_value(self):
        from src.engines import map_measurements

        ref = [make_row(0, 10.0), make_row(12, 10.0)]
        records = [WeightMeasurement(date=datetime(2024, 7, 15), value=11, unit="KG")]

        result = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "LB")

        assert len(result) == 1
        point = result[0]
        assert point.age_months == 6.0
        assert point.canonical_value == 11
        assert point.percentile == 84.1
        assert point.display_value == pytest.approx(11 / 0.453592)
        assert point.unit == "LB"

    def test_converts_logged_units(self):
        from src.engines import map_measurements

        ref = [make_row(0, 10.0), make_row(12, 10.0)]
        records = [WeightMeasurement(date=datetime(2024, 7, 15), value=10, unit="LB")]

        point = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "KG")[0]

        assert point.canonical_value == pytest.approx(4.53592)
        assert point.display_value == pytest.approx(4.53592)

    def test_filters_other_types(self):
        from src.engines import map_measurements

        ref = [make_row(0, 50.0), make_row(12, 75.0)]
        records = [
            WeightMeasurement(date=datetime(2024, 3, 15), value=6.1, unit="KG"),
            LengthMeasurement(date=datetime(2024, 3, 15), value=58.0, unit="CM"),
        ]

        result = map_measurements(records, ref, MeasurementType.LENGTH, date(2024, 1, 15), "CM")

        assert [m.canonical_value for m in result] == [58.0]

    def test_no_reference_coverage_charts_at_median(self):
        from src.engines import map_measurements

        records = [WeightMeasurement(date=datetime(2024, 4, 15), value=30, unit="LB")]

        result = map_measurements(records, [], MeasurementType.WEIGHT, date(2024, 1, 15), "KG")

        assert len(result) == 1
        assert result[0].percentile == 50

    def test_degenerate_row_charts_at_median(self):
        from src.engines import map_measurements

        ref = [make_row(0, 10.0, s=0), make_row(12, 10.0, s=0)]
        records = [WeightMeasurement(date=datetime(2024, 4, 15), value=14, unit="KG")]

        result = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "KG")

        assert result[0].percentile == 50

    def test_drops_ages_outside_domain(self):
        from src.engines import map_measurements

        ref = [make_row(0, 10.0), make_row(36, 14.0)]
        records = [
            WeightMeasurement(date=datetime(2027, 6, 15), value=15, unit="KG"),  # 41 months
            WeightMeasurement(date=datetime(2027, 1, 20), value=14, unit="KG"),  # ~36.2 months
        ]

        result = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "KG")

        assert len(result) == 1
        assert result[0].canonical_value == 14

        narrow = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "KG", 24)
        assert narrow == []

    def test_sorted_by_age(self):
        from src.engines import map_measurements

        ref = [make_row(0, 10.0), make_row(12, 10.0)]
        records = [
            WeightMeasurement(date=datetime(2024, 9, 1), value=9, unit="KG"),
            WeightMeasurement(date=datetime(2024, 2, 1), value=5, unit="KG"),
            WeightMeasurement(date=datetime(2024, 5, 1), value=7, unit="KG"),
        ]

        result = map_measurements(records, ref, MeasurementType.WEIGHT, date(2024, 1, 15), "KG")

        ages = [m.age_months for m in result]
        assert ages == sorted(ages)
        assert [m.canonical_value for m in result] == [5, 7, 9]

    def test_annotate_single_measurement(self):
        from src.engines import FALLBACK_PERCENTILE, annotate_measurement
        from src.models import make_measurement

        ref = [make_row(0, 10.0), make_row(12, 10.0)]
        record = make_measurement(MeasurementType.WEIGHT, datetime(2024, 7, 15), 11, "KG")

        point = annotate_measurement(record, ref, date(2024, 1, 15), "KG")

        assert point.age_months == 6.0
        assert point.percentile == 84.1
        assert annotate_measurement(record, [], date(2024, 1, 15), "KG").percentile == FALLBACK_PERCENTILE

    def test_annotate_matches_mapper(self):
        from src.engines import annotate_measurement, map_measurements

        ref = [make_row(0, 10.0), make_row(12, 13.0)]
        record = WeightMeasurement(date=datetime(2024, 9, 3), value=19.5, unit="LB")

        mapped = map_measurements([record], ref, MeasurementType.WEIGHT, date(2024, 1, 15), "LB")

        assert mapped == [annotate_measurement(record, ref, date(2024, 1, 15), "LB")]


class TestBuildSeries:
    """Test merging measurements into reference ticks."""

    def test_base_ticks_only(self, table):
        from src.engines import build_series

        series = build_series(table, [], "KG", MeasurementType.WEIGHT, 36)

        assert [p.age_months for p in series] == [0, 1, 2, 3]
        assert not any(p.has_measurement for p in series)
        assert series[1].p50 == 12.0

    def test_max_age_limits_ticks(self, table):
        from src.engines import build_series

        series = build_series(table, [], "KG", MeasurementType.WEIGHT, 2)

        assert [p.age_months for p in series] == [0, 1, 2]

    def test_curves_in_display_unit(self, table):
        from src.engines import build_series

        series = build_series(table, [], "LB", MeasurementType.WEIGHT, 36)

        assert series[0].p50 == pytest.approx(10.0 / 0.453592)

    def test_measurement_attaches_to_matching_tick(self, table):
        from src.engines import build_series

        series = build_series(table, [annotated(1.1, value=12.5, pct=61.2)], "KG", MeasurementType.WEIGHT, 36)

        assert len(series) == 4
        tick = series[1]
        assert tick.age_months == 1
        assert tick.measurement_value == 12.5
        assert tick.measurement_percentile == 61.2
        assert tick.measurement_date == datetime(2024, 6, 1)

    def test_inserts_tick_between_reference_ages(self, table):
        from src.engines import build_series

        base = build_series(table, [], "KG", MeasurementType.WEIGHT, 36)
        series = build_series(table, [annotated(1.5, value=13.1)], "KG", MeasurementType.WEIGHT, 36)

        assert len(series) == len(base) + 1
        inserted = [p for p in series if p.age_months == 1.5]
        assert len(inserted) == 1
        assert inserted[0].p50 == pytest.approx(13.0)
        assert inserted[0].p3 == pytest.approx(9.0)
        assert inserted[0].measurement_value == 13.1
        assert [p.age_months for p in series] == [0, 1, 1.5, 2, 3]

    def test_first_measurement_in_bucket_wins(self, table):
        from src.engines import build_series

        measurements = [annotated(1.2, value=12.9, day=9), annotated(1.1, value=12.4, day=5)]
        series = build_series(table, measurements, "KG", MeasurementType.WEIGHT, 36)

        assert len(series) == 4
        assert series[1].measurement_value == 12.4
        assert series[1].measurement_date == datetime(2024, 6, 5)

    def test_half_months_round_up(self, table):
        from src.engines import build_series, half_month_bucket

        assert half_month_bucket(0.25) == 0.5
        assert half_month_bucket(0.24) == 0.0
        assert half_month_bucket(0.75) == 1.0

        series = build_series(table, [annotated(0.75)], "KG", MeasurementType.WEIGHT, 36)
        assert len(series) == 4
        assert series[1].has_measurement

    def test_measurement_outside_ticks_is_dropped(self, table):
        from src.engines import build_series

        series = build_series(table, [annotated(5.0)], "KG", MeasurementType.WEIGHT, 36)
        assert len(series) == 4
        assert not any(p.has_measurement for p in series)

        # 2.9 buckets to 3.0, which is past the window
        series = build_series(table, [annotated(2.9)], "KG", MeasurementType.WEIGHT, 2)
        assert [p.age_months for p in series] == [0, 1, 2]
        assert not any(p.has_measurement for p in series)

    def test_series_strictly_sorted(self, table):
        from src.engines import build_series

        measurements = [annotated(age) for age in (2.4, 0.1, 1.6, 0.6)]
        series = build_series(table, measurements, "KG", MeasurementType.WEIGHT, 36)

        ages = [p.age_months for p in series]
        assert ages == sorted(set(ages))
        assert ages == [0, 0.5, 1, 1.5, 2, 2.5, 3]


class TestChartHelpers:
    """Test y-axis domain and tooltip bracketing."""

    def point(self, measurement=None):
        return ChartPoint(
            age_months=1,
            **{name: float(i + 1) for i, name in enumerate(NAMES)},
            measurement_value=measurement,
        )

    def test_y_axis_domain(self):
        from src.engines import y_axis_domain

        low, high = y_axis_domain([self.point(12.0)])

        assert low == pytest.approx(0.0)
        assert high == pytest.approx(13.1)

    def test_y_axis_domain_padding(self):
        from src.engines import y_axis_domain

        point = ChartPoint(age_months=0, **{name: 10.0 for name in NAMES}, measurement_value=12.0)
        low, high = y_axis_domain([point])

        assert low == pytest.approx(9.8)
        assert high == pytest.approx(12.2)

    def test_y_axis_domain_flat_series(self):
        from src.engines import y_axis_domain

        point = ChartPoint(age_months=0, **{name: 5.0 for name in NAMES})

        assert y_axis_domain([point]) == pytest.approx((4.5, 5.5))
        assert y_axis_domain([]) is None

    def test_bracketing_curves(self):
        from src.engines import bracketing_curves

        assert bracketing_curves(self.point(4.5)) == (("p25", 4.0), ("p50", 5.0))
        assert bracketing_curves(self.point(10.0)) == (("p97", 9.0), None)
        assert bracketing_curves(self.point(0.5)) == (None, ("p3", 1.0))
        assert bracketing_curves(self.point()) == (None, None)


class TestGrowthChartEngine:
    """Test the full pipeline against the built-in tables."""

    def records(self):
        return [
            WeightMeasurement(date=datetime(2024, 1, 15), value=3.53, unit="KG"),
            WeightMeasurement(date=datetime(2024, 5, 30), value=15.0, unit="lb"),
            LengthMeasurement(date=datetime(2024, 5, 30), value=24.0, unit="IN"),
        ]

    def test_build(self):
        from src.engines import GrowthChartEngine

        chart = GrowthChartEngine().build(
            self.records(),
            MeasurementType.WEIGHT,
            Sex.MALE,
            date(2024, 1, 15),
            display_unit="LB",
            today=date(2024, 7, 20),
        )

        assert chart.max_age_months == 7
        assert chart.unit_label == "lb"
        assert len(chart.measurements) == 2
        assert chart.measurements[0].percentile == pytest.approx(50, abs=0.1)
        # ticks 0, 1, 2, 3, 6 plus the 4.5 month measurement
        assert [p.age_months for p in chart.series] == [0, 1, 2, 3, 4.5, 6]
        assert chart.series[0].measurement_value == pytest.approx(3.53 / 0.453592)
        assert chart.series[4].measurement_value == pytest.approx(15.0)
        assert chart.y_axis_domain is not None

    def test_default_display_unit_from_preferences(self):
        from src.engines import GrowthChartEngine
        from src.models import DisplayUnits

        engine = GrowthChartEngine(display_units=DisplayUnits(weight_unit="LB", length_unit="IN"))
        chart = engine.build(
            self.records(), MeasurementType.LENGTH, Sex.FEMALE, date(2024, 1, 15), today=date(2024, 7, 20),
        )

        assert chart.display_unit == "IN"
        assert chart.unit_label == "in"
        assert chart.measurements[0].display_value == pytest.approx(24.0)
        assert chart.measurements[0].canonical_value == pytest.approx(60.96)

    def test_explicit_window(self):
        from src.engines import GrowthChartEngine

        chart = GrowthChartEngine().build(
            self.records(), MeasurementType.WEIGHT, Sex.MALE, date(2024, 1, 15), window_months=36,
        )

        assert chart.series[-1].age_months == 36

    def test_pipeline_is_idempotent(self):
        from src.engines import build_growth_chart

        args = (self.records(), MeasurementType.WEIGHT, Sex.FEMALE, date(2024, 1, 15), "KG", date(2024, 9, 1))
        first = build_growth_chart(*args)
        second = build_growth_chart(*args)

        assert first.model_dump() == second.model_dump()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
