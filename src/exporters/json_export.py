"""
JSON exporter for Sprout.

Exports growth charts as clean, human-readable JSON.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from src.models import GrowthChart


def export_chart_json(
    chart: GrowthChart,
    output_path: Path | None = None,
    indent: int = 2,
    include_nulls: bool = False,
) -> str:
    """
    Export a growth chart to JSON format.
    
    Args:
        chart: The chart to export
        output_path: Optional path to write the JSON file
        indent: JSON indentation level
        include_nulls: Whether to include null values (ticks without a measurement)
    
    Returns:
        JSON string representation of the chart
    """
    data = chart.model_dump(mode="json", exclude_none=not include_nulls)
    json_str = json.dumps(data, indent=indent)
    
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_str)
    
    return json_str


def export_chart_summary(chart: GrowthChart) -> dict[str, Any]:
    """
    Export a summary of the chart (useful for listings/previews).
    
    Returns a dict with the latest measurement and its percentile.
    """
    latest = chart.measurements[-1] if chart.measurements else None
    return {
        "measurement_type": chart.measurement_type.value,
        "sex": chart.sex.value,
        "unit": chart.unit_label,
        "measurement_count": len(chart.measurements),
        "tick_count": len(chart.series),
        "latest_age_months": round(latest.age_months, 2) if latest else None,
        "latest_value": round(latest.display_value, 2) if latest else None,
        "latest_percentile": latest.percentile if latest else None,
        "latest_date": latest.date.isoformat() if latest else None,
    }
