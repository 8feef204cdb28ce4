"""
Derived view values.

Every value shown next to the form is a pure function of three snapshots:
the form state, the patient's visits and the reference tables. Callers
re-run ``build_view_model`` whenever one of them changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

from growthtrack.engines.chart import build_chart
from growthtrack.engines.recorder import DEFAULT_STATUS, parse_visit_date
from growthtrack.engines.resident_id import (
    AgeInfo,
    age_bucket,
    format_age,
    mask_resident_id,
    parse_resident_id,
    sex_key,
)
from growthtrack.engines.visits import (
    VisitDelta,
    age_range,
    bmi_status,
    compute_delta,
    format_bmi,
    recent_history,
    select_current_previous,
    sort_visits,
)
from growthtrack.models import (
    ChartEvent,
    ChartScene,
    EventCategory,
    Metric,
    Patient,
    Point,
    ReferenceSeries,
    Status,
    StatusType,
    Visit,
    VisitForm,
)
from knowledge.growth.reference_table import GrowthTable, locate_percentile

EVENT_LABELS = {
    EventCategory.GROWTH: "Growth inj.",
    EventCategory.SUPPRESSION: "Suppression inj.",
}
INVALID_RESIDENT_ID_FORMAT = "Please check the resident registration number format."


@dataclass(frozen=True)
class ViewModel:
    age: Optional[AgeInfo]
    age_label: str
    age_bucket: str
    sex_key: Optional[str]
    status: Status
    current: Optional[Visit]
    previous: Optional[Visit]
    delta: Optional[VisitDelta]
    summary: list[tuple[str, str]]
    history: list[Visit]
    events: list[ChartEvent]
    charts: dict[str, ChartScene] = field(default_factory=dict)
    positions: dict[str, Optional[str]] = field(default_factory=dict)


def form_reference_date(form: VisitForm) -> date:
    """The visit date of the form, today when not (yet) valid."""
    return parse_visit_date(form.visit_date) or date.today()


def derive_age(form: VisitForm) -> Optional[AgeInfo]:
    return parse_resident_id(form.resident_id, form_reference_date(form))


def resident_id_status(form: VisitForm) -> Status:
    """Live feedback while the resident id is typed."""
    if not form.resident_id.strip():
        return DEFAULT_STATUS
    age = derive_age(form)
    if age is None:
        return Status(message=INVALID_RESIDENT_ID_FORMAT, type=StatusType.ERROR)
    return Status(message=f"{format_age(age.age_months)} · {age_bucket(age.age_months)}")


def reference_series(table: Optional[GrowthTable], key: Optional[str]) -> list[ReferenceSeries]:
    """One point series per percentile label of the table, for one sex."""
    if table is None or key is None:
        return []
    curve = table.curve(key)
    if curve is None:
        return []
    return [
        ReferenceSeries(label, [Point(age, value) for age, value in curve.series(label)])
        for label in table.percentile_labels
    ]


def injection_events(visits: list[Visit]) -> list[ChartEvent]:
    """Chart markers for the injections given at each visit."""
    events = []
    for visit in sort_visits(visits):
        if visit.growth_injection:
            events.append(ChartEvent(
                x=visit.age_months,
                label=EVENT_LABELS[EventCategory.GROWTH],
                category=EventCategory.GROWTH.value,
            ))
        if visit.suppression_injection:
            events.append(ChartEvent(
                x=visit.age_months,
                label=EVENT_LABELS[EventCategory.SUPPRESSION],
                category=EventCategory.SUPPRESSION.value,
            ))
    return events


def live_point(form: VisitForm, metric: Metric) -> Optional[Point]:
    """Unsaved form input as a chart point, if complete enough to plot."""
    age = derive_age(form)
    raw = form.height if metric == Metric.HEIGHT else form.weight
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if age is None or value <= 0:
        return None
    return Point(age.age_months, value)


def metric_chart(
    metric: Metric,
    visits: list[Visit],
    curves: list[ReferenceSeries],
    events: list[ChartEvent],
    highlight: Optional[Point] = None,
) -> ChartScene:
    """Chart of one metric on the visits' padded age window."""
    ordered = sort_visits(visits)
    return build_chart(
        metric.value,
        [Point(v.age_months, v.value_for(metric)) for v in ordered],
        reference_curves=curves,
        highlight=highlight,
        events=events,
        x_range=age_range(ordered),
        x_label_formatter=lambda value: format_age(round(value)),
    )


def visit_summary(patient: Optional[Patient], current: Optional[Visit]) -> list[tuple[str, str]]:
    """Label/value rows describing the current visit."""
    if patient is None or current is None:
        return []
    return [
        ("Patient", patient.name),
        ("Age", format_age(current.age_months)),
        ("Height", f"{current.height_cm:.1f} cm"),
        ("Weight", f"{current.weight_kg:.1f} kg"),
        ("BMI (reference)", f"{format_bmi(current.bmi)} · {bmi_status(current.bmi)}"),
        ("Group", age_bucket(current.age_months)),
        ("Chart no.", patient.chart_no or "-"),
        ("Resident id", mask_resident_id(patient.resident_id)),
    ]


def build_view_model(
    form: VisitForm,
    patient: Optional[Patient],
    visits: list[Visit],
    tables: Mapping[str, Optional[GrowthTable]],
    focus_visit_id: Optional[str] = None,
) -> ViewModel:
    """
    Derive everything the form page shows.

    Args:
        form: Current (possibly unsaved) form state
        patient: Loaded patient, if any
        visits: That patient's visits, any order
        tables: Growth tables keyed by metric name; missing or empty
            tables simply produce charts without reference curves
        focus_visit_id: Visit to treat as current instead of the latest
    """
    age = derive_age(form)
    current, previous = select_current_previous(visits, focus_visit_id)
    key = sex_key(patient.resident_id if patient else form.resident_id)
    events = injection_events(visits)

    charts = {}
    positions = {}
    for metric in Metric:
        table = tables.get(metric.value)
        curves = reference_series(table, key)
        highlight = live_point(form, metric)
        if highlight is None and current is not None:
            highlight = Point(current.age_months, current.value_for(metric))
        charts[metric.value] = metric_chart(metric, visits, curves, events, highlight)

        curve = table.curve(key) if table is not None else None
        if curve is not None and current is not None:
            positions[metric.value] = locate_percentile(
                curve, table.percentile_labels, current.age_months, current.value_for(metric)
            )
        else:
            positions[metric.value] = None

    return ViewModel(
        age=age,
        age_label=format_age(age.age_months) if age else "",
        age_bucket=age_bucket(age.age_months) if age else "",
        sex_key=key,
        status=resident_id_status(form),
        current=current,
        previous=previous,
        delta=compute_delta(current, previous),
        summary=visit_summary(patient, current),
        history=recent_history(visits),
        events=events,
        charts=charts,
        positions=positions,
    )
