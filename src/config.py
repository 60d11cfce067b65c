"""
Configuration for Sprout.

Settings come from environment variables and are loaded once per process.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from knowledge.growth.units import LENGTH_FACTORS, WEIGHT_FACTORS, is_valid_display_unit, normalize_unit
from src.engines import DEFAULT_MAX_AGE_MONTHS, GrowthChartEngine
from src.models import DisplayUnits, MeasurementType

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class SproutConfig:
    """Configuration for growth chart computation."""

    def __init__(self):
        reference_dir = os.environ.get("SPROUT_REFERENCE_DIR")
        self.reference_dir = Path(reference_dir) if reference_dir else None
        self.weight_unit = normalize_unit(os.environ.get("SPROUT_WEIGHT_UNIT")) or "KG"
        self.length_unit = normalize_unit(os.environ.get("SPROUT_LENGTH_UNIT")) or "CM"
        self.max_age_months = float(
            os.environ.get("SPROUT_MAX_AGE_MONTHS", DEFAULT_MAX_AGE_MONTHS)
        )
        self.log_level = os.environ.get("SPROUT_LOG_LEVEL", "INFO").upper()

    @property
    def display_units(self) -> DisplayUnits:
        return DisplayUnits(weight_unit=self.weight_unit, length_unit=self.length_unit)

    def validate(self) -> None:
        """Raise error if settings are unusable."""
        if self.reference_dir is not None and not self.reference_dir.is_dir():
            raise ValueError(f"SPROUT_REFERENCE_DIR does not exist: {self.reference_dir}")
        if not is_valid_display_unit(MeasurementType.WEIGHT, self.weight_unit):
            raise ValueError(f"SPROUT_WEIGHT_UNIT must be one of {sorted(WEIGHT_FACTORS)}")
        if not is_valid_display_unit(MeasurementType.LENGTH, self.length_unit):
            raise ValueError(f"SPROUT_LENGTH_UNIT must be one of {sorted(LENGTH_FACTORS)}")
        if self.max_age_months <= 0:
            raise ValueError("SPROUT_MAX_AGE_MONTHS must be positive")


# -----------------------------------------------------------------------------
# Singleton instances
# -----------------------------------------------------------------------------

_config: Optional[SproutConfig] = None
_engine: Optional[GrowthChartEngine] = None


def get_config() -> SproutConfig:
    """Get the configuration (singleton)."""
    global _config
    if _config is None:
        _config = SproutConfig()
    return _config


def get_engine() -> GrowthChartEngine:
    """
    Get the growth chart engine (singleton).

    Validates the configuration on first use.
    """
    global _engine
    if _engine is None:
        config = get_config()
        config.validate()
        _engine = GrowthChartEngine(
            reference_dir=config.reference_dir,
            display_units=config.display_units,
            max_age_months=config.max_age_months,
        )
    return _engine


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once, at the configured level."""
    logging.basicConfig(
        level=(level or get_config().log_level).upper(),
        format=LOG_FORMAT,
    )


def reset_config() -> None:
    """Reset singletons (useful for testing)."""
    global _config, _engine
    _config = None
    _engine = None
