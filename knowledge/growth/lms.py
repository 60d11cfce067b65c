"""
CDC growth percentiles using the LMS method.

Reference: https://www.cdc.gov/growthcharts/

The LMS method expresses growth as:
- L (lambda): Box-Cox power transformation
- M (mu): Median
- S (sigma): Coefficient of variation

Z-score = ((value/M)^L - 1) / (L * S)  when L ≠ 0
Z-score = ln(value/M) / S              when L = 0

Percentile = Φ(Z-score) where Φ is the standard normal CDF
"""

from __future__ import annotations

import math
from typing import Sequence

from scipy import stats

from src.models import PERCENTILE_COLUMNS, ReferenceRow

# Abramowitz & Stegun 7.1.26 coefficients (|error| < 1.5e-7)
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911

MIN_PERCENTILE = 0.1
MAX_PERCENTILE = 99.9

_INTERPOLATED_FIELDS = ("l", "m", "s") + PERCENTILE_COLUMNS


def row_for_age(table: Sequence[ReferenceRow], age_months: float) -> ReferenceRow | None:
    """
    Reference row for an age, linearly interpolated between bracketing rows.

    Ages outside the table return the nearest edge row; there is no
    extrapolation.
    """
    if not table:
        return None

    lower: ReferenceRow | None = None
    upper: ReferenceRow | None = None
    for row in table:
        if row.age_months <= age_months:
            lower = row
        if row.age_months >= age_months:
            upper = row
            break

    if lower is None and upper is None:
        return None
    if lower is None:
        return upper
    if upper is None:
        return lower
    if lower.age_months == upper.age_months:
        return lower

    ratio = (age_months - lower.age_months) / (upper.age_months - lower.age_months)
    values = {
        name: getattr(lower, name) + ratio * (getattr(upper, name) - getattr(lower, name))
        for name in _INTERPOLATED_FIELDS
    }
    return ReferenceRow(sex=lower.sex, age_months=age_months, **values)


def z_score_from_lms(value: float, l: float, m: float, s: float) -> float:
    """Calculate Z-score from value and LMS parameters."""
    if l == 0:
        return math.log(value / m) / s
    return (math.pow(value / m, l) - 1) / (l * s)


def value_from_lms_z(z: float, l: float, m: float, s: float) -> float:
    """Calculate value from Z-score and LMS parameters."""
    if l == 0:
        return m * math.exp(z * s)
    return m * math.pow(1 + l * s * z, 1 / l)


def erf(x: float) -> float:
    """Error function, polynomial approximation applied to |x|."""
    sign = -1 if x < 0 else 1
    x = abs(x)
    t = 1.0 / (1.0 + _P * x)
    y = 1.0 - (((((_A5 * t + _A4) * t) + _A3) * t + _A2) * t + _A1) * t * math.exp(-x * x)
    return sign * y


def percentile_from_z(z: float) -> float:
    """Convert Z-score to percentile (0-100) using the normal CDF."""
    return 0.5 * (1 + erf(z / math.sqrt(2))) * 100


def percentile(value: float, l: float, m: float, s: float) -> float:
    """
    Percentile of a canonical-unit value against LMS parameters.

    Degenerate parameters (M or S of zero) give the median. The result is
    clamped to 0.1-99.9 and rounded to one decimal.
    """
    if m == 0 or s == 0:
        return 50
    if value <= 0:
        return MIN_PERCENTILE
    z = z_score_from_lms(value, l, m, s)
    result = max(MIN_PERCENTILE, min(MAX_PERCENTILE, percentile_from_z(z)))
    # half-up rounding to one decimal
    return math.floor(result * 10 + 0.5) / 10


def percentile_curve_value(target_percentile: float, l: float, m: float, s: float) -> float:
    """Value sitting on a percentile curve (e.g. 3 for the P3 curve)."""
    z = stats.norm.ppf(target_percentile / 100)
    return value_from_lms_z(float(z), l, m, s)
