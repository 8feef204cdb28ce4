"""
Tests for derived view values and the exporters.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest


HEIGHT_CSV = """\
,,백분위수,,
성별,만나이(개월),3rd,50th,97th
1,48,95.0,103.0,111.0
1,60,101.0,109.0,117.0
2,48,94.0,102.0,110.0
"""

WEIGHT_CSV = """\
,,백분위수,,
성별,만나이(개월),3rd,50th,97th
1,48,13.0,16.0,20.0
1,60,14.5,18.0,23.0
"""


def make_tables():
    from knowledge.growth import parse_growth_table

    return {"height": parse_growth_table(HEIGHT_CSV), "weight": parse_growth_table(WEIGHT_CSV)}


def make_history():
    """A boy (sex key "1") with two saved visits."""
    from growthtrack.db import MemoryPatientRepository, MemoryVisitRepository
    from growthtrack.engines import VisitRecorder
    from growthtrack.models import VisitForm

    recorder = VisitRecorder(MemoryPatientRepository(), MemoryVisitRepository())
    base = {"name": "Hong Gildong", "resident_id": "200101-3234567"}
    recorder.record(VisitForm(**base, visit_date="2024-03-15", height="99.0", weight="15.0",
                              growth_injection=True))
    return recorder.record(VisitForm(**base, visit_date="2024-06-15", height="101.0", weight="15.6",
                                     growth_injection=True, suppression_injection=True))


class TestResidentIdStatus:
    """Live feedback on the resident id field."""

    def test_empty_is_default(self):
        from growthtrack.engines.recorder import DEFAULT_STATUS
        from growthtrack.engines.view_model import resident_id_status
        from growthtrack.models import VisitForm

        assert resident_id_status(VisitForm()) == DEFAULT_STATUS

    def test_invalid(self):
        from growthtrack.engines.view_model import INVALID_RESIDENT_ID_FORMAT, resident_id_status
        from growthtrack.models import StatusType, VisitForm

        status = resident_id_status(VisitForm(resident_id="12345"))
        assert status.type == StatusType.ERROR
        assert status.message == INVALID_RESIDENT_ID_FORMAT

    def test_valid_uses_visit_date(self):
        from growthtrack.engines.view_model import resident_id_status
        from growthtrack.models import StatusType, VisitForm

        status = resident_id_status(VisitForm(resident_id="200101-3234567", visit_date="2024-06-15"))
        assert status.type == StatusType.INFO
        assert status.message.startswith("4 yr 5 mo")


class TestBuildViewModel:
    """Everything derived from form, visits and tables."""

    def test_no_patient(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        view = build_view_model(VisitForm(), None, [], make_tables())
        assert view.current is None
        assert view.summary == []
        assert view.charts["height"].empty
        assert view.charts["weight"].empty
        assert view.positions == {"height": None, "weight": None}

    def test_reference_curves_without_visits(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        form = VisitForm(resident_id="200101-3234567", visit_date="2024-06-15")
        view = build_view_model(form, None, [], make_tables())
        assert view.sex_key == "1"
        assert not view.charts["height"].empty
        assert [c.key for c in view.charts["height"].curves] == ["3rd", "50th", "97th"]

    def test_with_visits(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        result = make_history()
        view = build_view_model(VisitForm(), result.patient, result.visits, make_tables())

        assert view.current.height_cm == 101.0
        assert view.previous.height_cm == 99.0
        assert view.delta.height_label == "+2.0 cm"
        assert [v.height_cm for v in view.history] == [101.0, 99.0]
        assert dict(view.summary)["Resident id"] == "200101-3******"
        assert len(view.charts["height"].trajectory) == 2
        assert view.charts["height"].highlight is not None
        assert view.charts["weight"].highlight is not None
        assert view.positions["height"] == "between 3rd and 50th"

    def test_injection_events(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        result = make_history()
        view = build_view_model(VisitForm(), result.patient, result.visits, make_tables())
        assert [(e.x, e.category) for e in view.events] == [
            (50, "growth"),
            (53, "growth"),
            (53, "suppression"),
        ]
        assert len(view.charts["height"].events) == 3

    def test_focus_visit(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        result = make_history()
        first = result.visits[0]
        view = build_view_model(VisitForm(), result.patient, result.visits, make_tables(),
                                focus_visit_id=first.id)
        assert view.current.id == first.id
        assert view.previous is None

    def test_missing_table(self):
        from growthtrack.engines import build_view_model
        from growthtrack.models import VisitForm

        result = make_history()
        view = build_view_model(VisitForm(), result.patient, result.visits, {})
        assert view.charts["height"].curves == []
        assert view.positions["height"] is None

    def test_live_point(self):
        from growthtrack.engines.view_model import live_point
        from growthtrack.models import Metric, VisitForm

        form = VisitForm(resident_id="200101-3234567", visit_date="2024-06-15", height="101", weight="")
        point = live_point(form, Metric.HEIGHT)
        assert (point.x, point.y) == (53, 101.0)
        assert live_point(form, Metric.WEIGHT) is None


class TestExporters:
    """SVG and Markdown output."""

    def test_svg_empty(self):
        from growthtrack.engines.chart import EMPTY_PLACEHOLDER, build_chart
        from growthtrack.exporters import render_svg

        svg = render_svg(build_chart("height", []))
        assert svg.startswith("<svg")
        assert EMPTY_PLACEHOLDER in svg
        assert "chart-dot" not in svg

    def test_svg_chart(self, tmp_path):
        from growthtrack.engines import build_view_model
        from growthtrack.exporters import render_svg
        from growthtrack.models import VisitForm

        result = make_history()
        view = build_view_model(VisitForm(), result.patient, result.visits, make_tables())
        output = tmp_path / "height.svg"
        svg = render_svg(view.charts["height"], output)

        assert output.read_text() == svg
        assert svg.count('class="chart-dot"') == 2
        assert 'class="chart-percentile major"' in svg
        assert 'class="chart-current"' in svg
        assert "chart-event-suppression" in svg

    def test_svg_escapes_labels(self):
        from xml.etree import ElementTree as ET

        from growthtrack.engines.chart import build_chart
        from growthtrack.exporters import render_svg
        from growthtrack.models import ChartEvent, Point

        event = ChartEvent(x=12, label='<dose> & "A"', category="growth")
        svg = render_svg(build_chart("height", [Point(0, 10), Point(12, 20)], events=[event]))

        root = ET.fromstring(svg)
        assert root.tag == "{http://www.w3.org/2000/svg}svg"
        texts = [el.text for el in root.iter("{http://www.w3.org/2000/svg}text")]
        assert '<dose> & "A"' in texts

    def test_markdown_report(self):
        from growthtrack.engines import build_view_model
        from growthtrack.exporters import export_report
        from growthtrack.models import VisitForm

        result = make_history()
        view = build_view_model(VisitForm(), result.patient, result.visits, make_tables())
        md = export_report(result.patient, view)

        assert "# Growth Record: Hong Gildong" in md
        assert "**Height change:** +2.0 cm" in md
        assert "| 2024-06-15 |" in md
        assert "growth, suppression" in md

    def test_markdown_without_visits(self):
        from growthtrack.engines import build_view_model
        from growthtrack.exporters import export_report
        from growthtrack.models import Patient, VisitForm

        patient = Patient(id="p1", name="Kim", resident_id="2001013234567")
        view = build_view_model(VisitForm(), patient, [], {})
        md = export_report(patient, view)
        assert "*No visits recorded*" in md
        assert "*No previous visit*" in md


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
