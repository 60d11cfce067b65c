"""
Growth chart engines.
"""

from .growth_chart import (
    DEFAULT_MAX_AGE_MONTHS,
    FALLBACK_PERCENTILE,
    GrowthChartEngine,
    annotate_measurement,
    bracketing_curves,
    build_growth_chart,
    build_series,
    half_month_bucket,
    map_measurements,
    y_axis_domain,
)

__all__ = [
    "DEFAULT_MAX_AGE_MONTHS",
    "FALLBACK_PERCENTILE",
    "GrowthChartEngine",
    "annotate_measurement",
    "bracketing_curves",
    "build_growth_chart",
    "build_series",
    "half_month_bucket",
    "map_measurements",
    "y_axis_domain",
]
