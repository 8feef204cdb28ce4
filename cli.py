#!/usr/bin/env python3
"""
growthtrack CLI

Command-line interface for recording growth visits and inspecting the
reference percentile tables.
"""

import json
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATUS_STYLES = {
    "info": "dim",
    "error": "red",
    "warn": "yellow",
    "success": "green",
}


def _recorder():
    """
    Recorder on the configured storage backend, or exit with a message.

    In-memory storage does not outlive a CLI invocation, so it is only used
    when asked for with GROWTHTRACK_STORAGE=memory.
    """
    from growthtrack.config import get_settings
    from growthtrack.db import create_repositories
    from growthtrack.engines import VisitRecorder
    from growthtrack.engines.recorder import NOT_CONFIGURED
    from growthtrack.errors import StorageNotConfigured

    settings = get_settings()
    if settings.storage == "memory" and not settings.storage_explicit:
        console.print(f"[red]{NOT_CONFIGURED}[/red]")
        sys.exit(1)

    try:
        patients, visits = create_repositories(settings.storage)
    except StorageNotConfigured as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    return VisitRecorder(patients, visits)


def _tables(table_dir: Optional[str]) -> dict:
    from growthtrack.config import get_settings
    from growthtrack.models import Metric
    from knowledge.growth import ReferenceTableCache

    cache = ReferenceTableCache.from_directory(Path(table_dir) if table_dir else get_settings().table_dir)
    return {metric.value: cache.get(metric) for metric in Metric}


def _load_or_exit(resident_id: str):
    from growthtrack.errors import StorageError

    try:
        result = _recorder().load(resident_id)
    except StorageError:
        console.print("[red]Could not load the patient. Please try again later.[/red]")
        sys.exit(1)
    if result is None:
        console.print("[red]Patient not found[/red]")
        sys.exit(1)
    return result


def _print_visits(result) -> None:
    from growthtrack.engines.resident_id import format_age
    from growthtrack.engines.visits import format_bmi

    table = Table(title=f"Visits - {result.patient.name}")
    table.add_column("Date", style="cyan")
    table.add_column("Age")
    table.add_column("Height (cm)", justify="right")
    table.add_column("Weight (kg)", justify="right")
    table.add_column("BMI", justify="right")
    table.add_column("Injections")

    for visit in result.visits:
        injections = ", ".join(
            name for name, given in (
                ("growth", visit.growth_injection),
                ("suppression", visit.suppression_injection),
            ) if given
        )
        table.add_row(
            visit.created_at.strftime("%Y-%m-%d"),
            format_age(visit.age_months),
            f"{visit.height_cm:.1f}",
            f"{visit.weight_kg:.1f}",
            format_bmi(visit.bmi),
            injections,
        )
    console.print(table)

    delta = result.delta
    if delta:
        console.print(
            f"Since {delta.previous_date.strftime('%Y-%m-%d')} ({delta.elapsed_days} days): "
            f"height {delta.height_label}, weight {delta.weight_label}"
        )


@click.group()
@click.version_option(version="0.1.0", prog_name="growthtrack")
@click.option("--log-level", type=click.Choice(["debug", "info", "warning", "error", "critical"]),
              default=None, help="Logging level (default: $LOGLEVEL or info)")
def cli(log_level: Optional[str]):
    """
    growthtrack - Clinical growth tracking

    Record height/weight visits and compare them against national
    growth percentile curves.
    """
    from growthtrack.config import configure_logging

    configure_logging(log_level)


@cli.command("parse-id")
@click.argument("resident_id")
@click.option("--on", "on_date", type=click.DateTime(formats=["%Y-%m-%d"]), help="Reference date (default: today)")
def parse_id(resident_id: str, on_date):
    """
    Decode birth date and age from a resident registration number.

    Example:

        growthtrack parse-id 990101-1234567 --on 2024-06-15
    """
    from growthtrack.engines.resident_id import (
        age_bucket,
        format_age,
        mask_resident_id,
        parse_resident_id,
        sex_key,
    )

    reference = on_date.date() if on_date else date.today()
    age = parse_resident_id(resident_id, reference)
    if age is None:
        console.print("[red]Please check the resident registration number format.[/red]")
        sys.exit(1)

    sex = {"1": "male", "2": "female"}.get(sex_key(resident_id), "unknown")
    console.print(Panel(
        f"[bold]{mask_resident_id(resident_id)}[/bold]\n"
        f"Birth date: {age.birth.isoformat()}\n"
        f"Age on {reference.isoformat()}: {format_age(age.age_months)} ({age.age_months} months)\n"
        f"Group: {age_bucket(age.age_months)}\n"
        f"Sex: {sex}",
        title="Resident Id",
        border_style="cyan",
    ))


@cli.command()
@click.argument("metric", type=click.Choice(["height", "weight"]))
@click.option("--sex", type=click.Choice(["1", "2"]), default="1", help="Sex key (1 male, 2 female)")
@click.option("--file", "file_path", type=click.Path(exists=True), help="Parse this file instead of the configured table")
@click.option("--json", "as_json", is_flag=True, help="Print the table as JSON")
def table(metric: str, sex: str, file_path: Optional[str], as_json: bool):
    """Show a reference percentile table."""
    from growthtrack.config import get_settings
    from knowledge.growth import ReferenceTableCache, parse_growth_table

    if file_path:
        growth_table = parse_growth_table(Path(file_path).read_text(encoding="utf-8"))
    else:
        growth_table = ReferenceTableCache.from_directory(get_settings().table_dir).get(metric)

    if as_json:
        click.echo(json.dumps(growth_table.to_dict(metric), ensure_ascii=False, indent=2))
        return

    curve = growth_table.curve(sex)
    if curve is None:
        console.print("[yellow]No reference data available[/yellow]")
        return

    out = Table(title=f"{metric.title()} percentiles (sex {sex})")
    out.add_column("Age (months)", style="cyan", justify="right")
    for label in growth_table.percentile_labels:
        out.add_column(label, justify="right", style="bold" if label == "50th" else None)
    for index, age in enumerate(curve.ages):
        values = [curve.percentiles[label][index] for label in growth_table.percentile_labels]
        out.add_row(str(age), *[f"{v:.1f}" if v == v else "-" for v in values])
    console.print(out)


@cli.command()
@click.option("--name", required=True, help="Patient name")
@click.option("--resident-id", required=True, help="Resident registration number")
@click.option("--chart-no", default="", help="Chart number (optional)")
@click.option("--date", "visit_date", default=lambda: date.today().isoformat(), help="Visit date (YYYY-MM-DD)")
@click.option("--height", required=True, help="Height in cm")
@click.option("--weight", required=True, help="Weight in kg")
@click.option("--growth-injection", is_flag=True, help="Growth injection given")
@click.option("--suppression-injection", is_flag=True, help="Suppression injection given")
def record(
    name: str,
    resident_id: str,
    chart_no: str,
    visit_date: str,
    height: str,
    weight: str,
    growth_injection: bool,
    suppression_injection: bool,
):
    """
    Record a visit.

    Example:

        growthtrack record --name "Hong Gildong" --resident-id 200101-3234567 --height 100.5 --weight 15.2
    """
    from growthtrack.models import VisitForm

    form = VisitForm(
        name=name,
        resident_id=resident_id,
        chart_no=chart_no,
        visit_date=visit_date,
        height=height,
        weight=weight,
        growth_injection=growth_injection,
        suppression_injection=suppression_injection,
    )
    status, result = _recorder().submit(form)
    style = STATUS_STYLES[status.type.value]
    console.print(f"[{style}]{status.message}[/{style}]")
    if result is None:
        sys.exit(1)
    _print_visits(result)


@cli.command()
@click.argument("resident_id")
def history(resident_id: str):
    """List all visits of a patient."""
    _print_visits(_load_or_exit(resident_id))


@cli.command()
@click.argument("resident_id")
@click.option("--metric", type=click.Choice(["height", "weight"]), default="height")
@click.option("--output", "-o", type=click.Path(), required=True, help="SVG output file")
@click.option("--tables", "table_dir", type=click.Path(exists=True, file_okay=False),
              help="Directory with the reference tables")
def chart(resident_id: str, metric: str, output: str, table_dir: Optional[str]):
    """Render a patient's growth chart as SVG."""
    from growthtrack.engines import build_view_model
    from growthtrack.exporters import render_svg
    from growthtrack.models import VisitForm

    result = _load_or_exit(resident_id)
    view = build_view_model(VisitForm(), result.patient, result.visits, _tables(table_dir))
    path = Path(output)
    render_svg(view.charts[metric], path)
    console.print(f"[green]Chart written to {path}[/green]")


@cli.command()
@click.argument("resident_id")
@click.option("--output", "-o", type=click.Path(), help="Write the report to this file")
@click.option("--tables", "table_dir", type=click.Path(exists=True, file_okay=False),
              help="Directory with the reference tables")
def report(resident_id: str, output: Optional[str], table_dir: Optional[str]):
    """Print the Markdown growth report of a patient."""
    from growthtrack.engines import build_view_model
    from growthtrack.exporters import export_report
    from growthtrack.models import VisitForm

    result = _load_or_exit(resident_id)
    view = build_view_model(VisitForm(), result.patient, result.visits, _tables(table_dir))
    md = export_report(result.patient, view, Path(output) if output else None)
    if output:
        console.print(f"[green]Report written to {output}[/green]")
    else:
        click.echo(md)


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", type=int, default=8000, help="Port")
def serve(host: str, port: int):
    """Run the HTTP API."""
    from server import run_server

    run_server(host=host, port=port)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
