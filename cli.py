#!/usr/bin/env python3
"""
Sprout CLI

Command-line interface for baby growth percentiles and growth chart series.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()

TYPE_CHOICES = ["weight", "length", "head_circumference"]


def setup_paths():
    """Add the project root to sys.path for imports."""
    root = Path(__file__).parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


setup_paths()


def load_measurement_log(path: Path) -> list:
    """
    Load logged measurements from a JSON file.

    Expects a list of activity-log entries:
    [{"date": "2024-07-15", "type": "WEIGHT", "value": 16.5, "unit": "LB"}, ...]
    Entries with no growth chart (e.g. TEMPERATURE) are skipped.
    """
    from src.models import measurement_from_log

    data = json.loads(path.read_text())
    if isinstance(data, dict):
        data = data.get("data", [])
    records = []
    for entry in data:
        record = measurement_from_log(entry)
        if record is not None:
            records.append(record)
    return records


@click.group()
@click.version_option(version="0.1.0", prog_name="sprout")
def cli():
    """
    Sprout - Baby Growth Percentiles

    Compute CDC growth percentiles for weight, length and head
    circumference, and build chart series with the reference curves.
    """
    from src.config import configure_logging
    configure_logging()


@cli.command()
@click.option("--type", "measurement_type", type=click.Choice(TYPE_CHOICES), required=True,
              help="Measurement type")
@click.option("--sex", type=click.Choice(["male", "female"]), required=True, help="Child's sex")
@click.option("--birth-date", type=click.DateTime(formats=["%Y-%m-%d"]), required=True,
              help="Date of birth (YYYY-MM-DD)")
@click.option("--date", "measured_on", type=click.DateTime(formats=["%Y-%m-%d"]), required=True,
              help="Measurement date (YYYY-MM-DD)")
@click.option("--value", type=float, required=True, help="Measured value")
@click.option("--unit", type=str, default="", help="Unit of the value (LB, OZ, G, KG, IN, CM)")
def percentile(
    measurement_type: str,
    sex: str,
    birth_date,
    measured_on,
    value: float,
    unit: str,
):
    """
    Calculate the percentile of a single measurement.

    Examples:

        sprout percentile --type weight --sex male --birth-date 2024-01-15 --date 2024-07-15 --value 16.5 --unit LB
    """
    from knowledge.growth import ReferenceDataError
    from src.config import get_engine
    from src.engines import annotate_measurement
    from src.models import MeasurementType, Sex, make_measurement

    kind = MeasurementType(measurement_type)
    try:
        engine = get_engine()
        table = engine.reference_table(kind, Sex(sex))
    except (ReferenceDataError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    record = make_measurement(kind, measured_on, value, unit)
    point = annotate_measurement(record, table, birth_date, kind.canonical_unit)

    console.print(Panel(
        f"[bold]{kind.value.replace('_', ' ').title()}[/bold]\n"
        f"Age: {point.age_months:.2f} months\n"
        f"Value: {point.canonical_value:.2f} {kind.canonical_unit.lower()}\n"
        f"Percentile: [bold green]{point.percentile:.1f}[/bold green]",
        title="Growth Percentile",
        border_style="green",
    ))


@cli.command()
@click.argument("measurements_path", type=click.Path(exists=True))
@click.option("--type", "measurement_type", type=click.Choice(TYPE_CHOICES), required=True,
              help="Measurement type to chart")
@click.option("--sex", type=click.Choice(["male", "female"]), required=True, help="Child's sex")
@click.option("--birth-date", type=click.DateTime(formats=["%Y-%m-%d"]), required=True,
              help="Date of birth (YYYY-MM-DD)")
@click.option("--display-unit", type=str, help="Display unit (KG/LB or CM/IN)")
@click.option("--max-age", type=float, help="Chart x-axis limit in months (default: current age + 1)")
@click.option("--format", "fmt", type=click.Choice(["table", "json"]), default="table",
              help="Output format")
@click.option("--output", "-o", type=click.Path(), help="Write JSON to this file")
@click.option("--all-ticks", is_flag=True, help="Show reference ticks without a measurement")
def chart(
    measurements_path: str,
    measurement_type: str,
    sex: str,
    birth_date,
    display_unit: Optional[str],
    max_age: Optional[float],
    fmt: str,
    output: Optional[str],
    all_ticks: bool,
):
    """
    Build a growth chart series from a measurement log.

    Examples:

        sprout chart ./measurements.json --type weight --sex female --birth-date 2024-01-15

        sprout chart ./measurements.json --type length --sex male --birth-date 2024-01-15 --format json -o chart.json
    """
    from knowledge.growth import ReferenceDataError
    from src.config import get_engine
    from src.engines import bracketing_curves
    from src.exporters import export_chart_json
    from src.models import MeasurementType, Sex

    try:
        engine = get_engine()
        records = load_measurement_log(Path(measurements_path))
        growth = engine.build(
            records,
            MeasurementType(measurement_type),
            Sex(sex),
            birth_date,
            display_unit=display_unit,
            window_months=max_age,
        )
    except (ReferenceDataError, ValueError, KeyError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    if fmt == "json" or output:
        json_str = export_chart_json(growth, Path(output) if output else None)
        if output:
            console.print(f"[green]✓ Exported to {output}[/green]")
        else:
            click.echo(json_str)
        return

    label = growth.unit_label
    table = Table(title=f"{growth.measurement_type.value.replace('_', ' ').title()} ({label})")
    table.add_column("Age (mo)", justify="right")
    table.add_column("P3", justify="right", style="dim")
    table.add_column("P50", justify="right", style="cyan")
    table.add_column("P97", justify="right", style="dim")
    table.add_column("Measured", justify="right", style="bold")
    table.add_column("Percentile", justify="right", style="green")
    table.add_column("Between")

    for point in growth.series:
        if not point.has_measurement and not all_ticks:
            continue
        measured = pct = between = ""
        if point.has_measurement:
            lower, upper = bracketing_curves(point)
            measured = f"{point.measurement_value:.2f}"
            pct = f"{point.measurement_percentile:.1f}"
            between = " - ".join(curve[0].upper() for curve in (lower, upper) if curve)
        table.add_row(
            f"{point.age_months:.1f}",
            f"{point.p3:.2f}",
            f"{point.p50:.2f}",
            f"{point.p97:.2f}",
            measured,
            pct,
            between,
        )

    console.print(table)
    console.print(f"[dim]{len(growth.measurements)} measurements charted, "
                  f"{len(growth.series)} ticks up to {growth.max_age_months:g} months[/dim]")


@cli.command()
@click.option("--type", "measurement_type", type=click.Choice(TYPE_CHOICES), required=True,
              help="Measurement type")
@click.option("--sex", type=click.Choice(["male", "female"]), required=True, help="Reference sex")
@click.option("--reference-dir", type=click.Path(exists=True, file_okay=False),
              help="Directory with CDC CSV files (wtageinf.csv, lenageinf.csv, hcageinf.csv)")
@click.option("--all-curves", is_flag=True, help="Show all nine percentile curves, not just P3/P50/P97")
def reference(measurement_type: str, sex: str, reference_dir: Optional[str], all_curves: bool):
    """
    Show the CDC reference table in use.
    """
    from knowledge.growth import ReferenceDataError, get_reference_table
    from src.config import get_config
    from src.models import PERCENTILE_COLUMNS, MeasurementType, Sex

    source = Path(reference_dir) if reference_dir else get_config().reference_dir
    try:
        rows = get_reference_table(MeasurementType(measurement_type), Sex(sex), source)
    except ReferenceDataError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(1)

    curves = PERCENTILE_COLUMNS if all_curves else ("p3", "p50", "p97")

    table = Table(title=f"CDC {measurement_type.replace('_', ' ')} for age ({sex})")
    table.add_column("Age", justify="right", style="cyan", no_wrap=True)
    for name in ("L", "M", "S", *[c.upper() for c in curves]):
        table.add_column(name, justify="right", no_wrap=True)

    for row in rows:
        table.add_row(
            f"{row.age_months:g}",
            f"{row.l:.4f}",
            f"{row.m:.3f}",
            f"{row.s:.4f}",
            *[f"{getattr(row, name):.2f}" for name in curves],
        )

    # all nine curves need more than 80 columns
    out = Console(width=max(console.width, 132)) if all_curves else console
    out.print(table)


@cli.command()
def info():
    """
    Show information about Sprout.
    """
    console.print(Panel(
        "[bold]Sprout[/bold]\n\n"
        "Growth percentiles for babies and toddlers:\n"
        "• Weight-for-age\n"
        "• Length-for-age\n"
        "• Head circumference-for-age\n\n"
        "[dim]Uses the CDC LMS method on infant reference tables (0-36 months).[/dim]",
        title="About",
        border_style="blue",
    ))

    console.print("\n[bold]Quick Start:[/bold]")
    console.print("  sprout percentile --type weight --sex male --birth-date 2024-01-15 --date 2024-07-15 --value 16.5 --unit LB")
    console.print("  sprout chart ./measurements.json --type weight --sex female --birth-date 2024-01-15")
    console.print("  sprout reference --type length --sex male")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
