"""
Export functionality for Sprout.
"""

from .json_export import export_chart_json, export_chart_summary

__all__ = [
    "export_chart_json",
    "export_chart_summary",
]
