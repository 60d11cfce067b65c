"""
CDC infant reference tables (birth to 36 months).

Tables come from the CDC infant CSV files (wtageinf.csv, lenageinf.csv,
hcageinf.csv) when a reference directory is configured, otherwise from the
built-in LMS key points below, expanded into P3-P97 curve values.
"""

from __future__ import annotations

import csv
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError

from src.models import PERCENTILE_COLUMNS, MeasurementType, ReferenceRow, Sex

from .lms import percentile_curve_value

logger = logging.getLogger("sprout.growth")


class ReferenceDataError(ValueError):
    """A reference table file could not be read."""


REFERENCE_FILES: dict[MeasurementType, str] = {
    MeasurementType.WEIGHT: "wtageinf.csv",
    MeasurementType.LENGTH: "lenageinf.csv",
    MeasurementType.HEAD_CIRCUMFERENCE: "hcageinf.csv",
}

# LMS parameters for CDC 2000 infant charts
# Format: age_months -> (L, M, S)

# Weight-for-age (kg)
WEIGHT_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (-0.3053, 3.530, 0.1514),
    1: (0.0977, 4.470, 0.1359),
    2: (0.1890, 5.380, 0.1296),
    3: (0.1346, 6.123, 0.1256),
    6: (-0.0171, 7.934, 0.1215),
    9: (-0.1667, 9.180, 0.1182),
    12: (-0.2714, 10.15, 0.1149),
    18: (-0.3823, 11.47, 0.1127),
    24: (-0.4242, 12.59, 0.1139),
    36: (-0.4669, 14.34, 0.1198),
}

WEIGHT_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (-0.3821, 3.399, 0.1433),
    1: (0.1744, 4.187, 0.1319),
    2: (0.3421, 5.030, 0.1253),
    3: (0.3181, 5.720, 0.1216),
    6: (0.0813, 7.351, 0.1192),
    9: (-0.0810, 8.475, 0.1175),
    12: (-0.1887, 9.363, 0.1162),
    18: (-0.3076, 10.67, 0.1165),
    24: (-0.3523, 11.91, 0.1202),
    36: (-0.3964, 13.86, 0.1294),
}

# Recumbent length-for-age (cm)
LENGTH_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (0.3487, 49.99, 0.0379),
    1: (0.1550, 54.72, 0.0370),
    2: (0.0093, 58.42, 0.0365),
    3: (-0.0928, 61.43, 0.0363),
    6: (-0.2623, 67.62, 0.0358),
    9: (-0.3040, 72.03, 0.0356),
    12: (-0.2847, 75.75, 0.0356),
    18: (-0.1884, 82.39, 0.0357),
    24: (-0.0554, 87.78, 0.0363),
    36: (0.1957, 96.10, 0.0393),
}

LENGTH_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (0.3809, 49.29, 0.0379),
    1: (0.1700, 53.69, 0.0369),
    2: (0.0178, 57.07, 0.0365),
    3: (-0.0858, 59.80, 0.0361),
    6: (-0.2777, 65.73, 0.0353),
    9: (-0.3379, 70.11, 0.0350),
    12: (-0.3433, 73.96, 0.0349),
    18: (-0.2962, 80.80, 0.0352),
    24: (-0.2046, 86.40, 0.0362),
    36: (0.0047, 94.86, 0.0399),
}

# Head circumference-for-age (cm)
HC_FOR_AGE_MALE: dict[int, tuple[float, float, float]] = {
    0: (1.8758, 34.71, 0.0369),
    1: (1.3893, 37.31, 0.0349),
    2: (1.0199, 39.21, 0.0338),
    3: (0.7459, 40.56, 0.0331),
    6: (0.2426, 43.34, 0.0318),
    9: (-0.0100, 45.19, 0.0311),
    12: (-0.1532, 46.55, 0.0308),
    18: (-0.2902, 48.15, 0.0304),
    24: (-0.3510, 49.27, 0.0303),
    36: (-0.3934, 50.65, 0.0305),
}

HC_FOR_AGE_FEMALE: dict[int, tuple[float, float, float]] = {
    0: (2.1539, 33.88, 0.0359),
    1: (1.5817, 36.42, 0.0341),
    2: (1.1416, 38.22, 0.0331),
    3: (0.8108, 39.53, 0.0324),
    6: (0.2618, 42.17, 0.0312),
    9: (-0.0362, 43.93, 0.0306),
    12: (-0.2078, 45.23, 0.0304),
    18: (-0.3685, 46.76, 0.0303),
    24: (-0.4463, 47.84, 0.0304),
    36: (-0.5101, 49.13, 0.0308),
}

_LMS_TABLES: dict[tuple[MeasurementType, Sex], dict[int, tuple[float, float, float]]] = {
    (MeasurementType.WEIGHT, Sex.MALE): WEIGHT_FOR_AGE_MALE,
    (MeasurementType.WEIGHT, Sex.FEMALE): WEIGHT_FOR_AGE_FEMALE,
    (MeasurementType.LENGTH, Sex.MALE): LENGTH_FOR_AGE_MALE,
    (MeasurementType.LENGTH, Sex.FEMALE): LENGTH_FOR_AGE_FEMALE,
    (MeasurementType.HEAD_CIRCUMFERENCE, Sex.MALE): HC_FOR_AGE_MALE,
    (MeasurementType.HEAD_CIRCUMFERENCE, Sex.FEMALE): HC_FOR_AGE_FEMALE,
}

# CSV header aliases -> ReferenceRow field
_HEADER_ALIASES: dict[str, str] = {
    "sex": "sex",
    "agemos": "age_months",
    "agemonths": "age_months",
    "age_months": "age_months",
    "l": "l",
    "m": "m",
    "s": "s",
    **{name: name for name in PERCENTILE_COLUMNS},
}


def row_from_lms(sex: Sex, age_months: float, l: float, m: float, s: float) -> ReferenceRow:
    """Build a reference row whose curve columns are derived from L, M and S."""
    curves = {
        name: round(percentile_curve_value(float(name[1:]), l, m, s), 4)
        for name in PERCENTILE_COLUMNS
    }
    return ReferenceRow(sex=sex, age_months=age_months, l=l, m=m, s=s, **curves)


@lru_cache(maxsize=None)
def bundled_reference_table(
    measurement_type: MeasurementType,
    sex: Sex,
) -> tuple[ReferenceRow, ...]:
    """Built-in CDC key points for 0-36 months, sorted by age."""
    lms_table = _LMS_TABLES[(MeasurementType(measurement_type), Sex(sex))]
    return tuple(
        row_from_lms(Sex(sex), float(age), *lms_table[age])
        for age in sorted(lms_table)
    )


def load_reference_csv(path: Path, sex: Sex | None = None) -> list[ReferenceRow]:
    """
    Parse a CDC infant growth CSV.

    Args:
        path: CSV with columns Sex,Agemos,L,M,S,P3,P5,P10,P25,P50,P75,P90,P95,P97
        sex: Only keep rows for this sex

    Returns:
        Reference rows sorted by age

    Raises:
        ReferenceDataError: If the file is missing or a row is malformed
    """
    path = Path(path)
    if not path.exists():
        raise ReferenceDataError(f"Reference file not found: {path}")

    rows: list[ReferenceRow] = []
    logger.info("Loading reference table: %s", path)
    # utf-8-sig strips the BOM some CDC exports carry
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        headers = {h: _HEADER_ALIASES.get(h.strip().lower()) for h in reader.fieldnames or []}
        missing = {"sex", "age_months", "l", "m", "s", *PERCENTILE_COLUMNS} - set(headers.values())
        if missing:
            raise ReferenceDataError(f"{path}: missing columns {sorted(missing)}")

        for line_no, record in enumerate(reader, start=2):
            values = {
                field: (record.get(header) or "").strip()
                for header, field in headers.items()
                if field is not None
            }
            if not any(values.values()):
                continue
            try:
                values["sex"] = Sex.from_cdc_code(int(float(values["sex"])))
                row = ReferenceRow.model_validate(values)
            except (ValueError, ValidationError) as e:
                raise ReferenceDataError(f"{path}:{line_no}: {e}") from e
            if sex is None or row.sex == sex:
                rows.append(row)

    rows.sort(key=lambda r: r.age_months)
    logger.info("Loaded %s reference rows from %s", len(rows), path)
    return rows


def get_reference_table(
    measurement_type: MeasurementType,
    sex: Sex,
    reference_dir: Path | None = None,
) -> list[ReferenceRow]:
    """
    Reference table for a measurement type and sex.

    Reads the CDC CSV from reference_dir when available, otherwise falls
    back to the built-in table.
    """
    measurement_type = MeasurementType(measurement_type)
    if reference_dir is not None:
        path = Path(reference_dir) / REFERENCE_FILES[measurement_type]
        if path.exists():
            return load_reference_csv(path, sex=Sex(sex))
        logger.warning("%s not found, using built-in %s table", path, measurement_type.value)
    return list(bundled_reference_table(measurement_type, Sex(sex)))
