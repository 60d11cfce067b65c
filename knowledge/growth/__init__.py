"""
Growth chart calculations.
"""

from .age import age_in_months, chart_window_months
from .lms import (
    erf,
    percentile,
    percentile_curve_value,
    percentile_from_z,
    row_for_age,
    value_from_lms_z,
    z_score_from_lms,
)
from .reference import (
    ReferenceDataError,
    bundled_reference_table,
    get_reference_table,
    load_reference_csv,
)
from .units import from_canonical, to_canonical, unit_label

__all__ = [
    "age_in_months",
    "chart_window_months",
    "erf",
    "percentile",
    "percentile_curve_value",
    "percentile_from_z",
    "row_for_age",
    "value_from_lms_z",
    "z_score_from_lms",
    "ReferenceDataError",
    "bundled_reference_table",
    "get_reference_table",
    "load_reference_csv",
    "from_canonical",
    "to_canonical",
    "unit_label",
]
