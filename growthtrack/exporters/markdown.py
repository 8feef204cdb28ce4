"""
Markdown exporter for growthtrack.

Exports the printable visit report: patient summary, change since the
previous visit and recent history.
"""

from __future__ import annotations

from pathlib import Path

from growthtrack.engines.view_model import ViewModel
from growthtrack.engines.visits import format_bmi
from growthtrack.models import Patient


def export_report(
    patient: Patient,
    view: ViewModel,
    output_path: Path | None = None,
) -> str:
    """
    Export a patient's current growth status to Markdown.

    Args:
        patient: The patient the view was built for
        view: Derived view values (see build_view_model)
        output_path: Optional path to write the Markdown file

    Returns:
        Markdown string
    """
    lines = []

    # Header
    lines.append(f"# Growth Record: {patient.name}")
    lines.append("")

    # Current status
    lines.append("## Current Status")
    lines.append("")
    if view.summary:
        for label, value in view.summary:
            lines.append(f"- **{label}:** {value}")
        for metric, position in view.positions.items():
            if position:
                lines.append(f"- **{metric.title()} percentile:** {position}")
    else:
        lines.append("*No visits recorded*")
    lines.append("")

    # Change since last visit
    lines.append("## Change Since Previous Visit")
    lines.append("")
    delta = view.delta
    if delta:
        lines.append(f"- **Height change:** {delta.height_label}")
        lines.append(f"- **Weight change:** {delta.weight_label}")
        lines.append(f"- **Previous visit:** {delta.previous_date.strftime('%Y-%m-%d')}")
        lines.append(f"- **Elapsed:** {delta.elapsed_days} days")
    else:
        lines.append("*No previous visit*")
    lines.append("")

    # History
    if view.history:
        lines.append("## Recent Visits")
        lines.append("")
        lines.append("| Date | Height | Weight | BMI | Injections |")
        lines.append("|------|--------|--------|-----|------------|")
        for visit in view.history:
            injections = ", ".join(
                name for name, given in (
                    ("growth", visit.growth_injection),
                    ("suppression", visit.suppression_injection),
                ) if given
            ) or "-"
            lines.append(
                f"| {visit.created_at.strftime('%Y-%m-%d')} | {visit.height_cm:.1f} cm "
                f"| {visit.weight_kg:.1f} kg | {format_bmi(visit.bmi)} | {injections} |"
            )
        lines.append("")

    md = "\n".join(lines)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(md)

    return md
