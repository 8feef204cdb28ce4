"""
growthtrack Web Server

FastAPI-based web server for recording growth visits and serving the
reference percentile tables and charts.
"""

import logging
import threading
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel, Field

from growthtrack import __version__
from growthtrack.config import configure_logging, get_settings
from growthtrack.db import create_repositories
from growthtrack.engines import (
    RecordResult,
    VisitRecorder,
    age_bucket,
    build_view_model,
    format_age,
    mask_resident_id,
    parse_resident_id,
    scene_to_dict,
    sex_key,
)
from growthtrack.errors import StorageError, StorageNotConfigured, ValidationError
from growthtrack.exporters import export_report, render_svg
from growthtrack.models import Metric, Status, StatusType, VisitForm
from knowledge.growth import ReferenceTableCache

configure_logging()
_LOGGER = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title="growthtrack",
    description="growthtrack - Clinical growth tracking API",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Parsed reference tables, shared by every request for the process lifetime
table_cache = ReferenceTableCache.from_directory(get_settings().table_dir)

_recorder: Optional[VisitRecorder] = None
_recorder_lock = threading.Lock()


def get_table_cache() -> ReferenceTableCache:
    return table_cache


def get_recorder() -> VisitRecorder:
    """Recorder on the configured storage backend (created once)."""
    global _recorder
    # handlers run in the threadpool; only one recorder may own the store
    with _recorder_lock:
        if _recorder is None:
            try:
                patients, visits = create_repositories(get_settings().storage)
            except StorageNotConfigured as e:
                raise HTTPException(status_code=503, detail=str(e))
            _recorder = VisitRecorder(patients, visits)
    return _recorder


def _parse_metric(metric: str) -> Metric:
    try:
        return Metric(metric)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid metric")


# Request/Response models
class UpdateVisitRequest(BaseModel):
    """Corrected measurements for a saved visit."""
    height_cm: float = Field(..., gt=0, description="Height in cm")
    weight_kg: float = Field(..., gt=0, description="Weight in kg")
    growth_injection: Optional[bool] = Field(None, description="Growth injection given")
    suppression_injection: Optional[bool] = Field(None, description="Suppression injection given")


def _result_payload(result: RecordResult) -> dict:
    delta = result.delta
    return {
        "status": result.status.model_dump(mode="json"),
        "patient": result.patient.model_dump(mode="json"),
        "current": result.current.model_dump(mode="json") if result.current else None,
        "previous": result.previous.model_dump(mode="json") if result.previous else None,
        "delta": delta.to_dict() if delta else None,
        "visits": [visit.model_dump(mode="json") for visit in result.visits],
    }


def _error(status_code: int, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=Status(message=message, type=StatusType.ERROR).model_dump(mode="json"),
    )


# Routes
@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "storage": get_settings().storage}


@app.get("/api/growth-table")
def get_growth_table(
    metric: str = Query(..., description="height or weight"),
    cache: ReferenceTableCache = Depends(get_table_cache),
):
    """
    Reference percentile table for a metric.

    Returns an empty table (no labels, no curves) when the reference file
    is unavailable.
    """
    selected = _parse_metric(metric)
    return cache.get(selected).to_dict(selected.value)


@app.get("/api/resident-id/{resident_id}")
def decode_resident_id(
    resident_id: str,
    on: Optional[date] = Query(None, description="Reference date (default: today)"),
):
    """Decode birth date and age from a resident registration number."""
    age = parse_resident_id(resident_id, on)
    if age is None:
        raise HTTPException(status_code=400, detail="Invalid resident registration number")
    return {
        "birthDate": age.birth.isoformat(),
        "ageMonths": age.age_months,
        "sexKey": sex_key(resident_id),
        "ageLabel": format_age(age.age_months),
        "ageBucket": age_bucket(age.age_months),
        "masked": mask_resident_id(resident_id),
    }


@app.post("/api/visits")
def record_visit(form: VisitForm, recorder: VisitRecorder = Depends(get_recorder)):
    """
    Save a visit from the form.

    Finds the patient by resident id (then chart number) or creates it,
    then inserts the visit.
    """
    try:
        result = recorder.record(form)
    except ValidationError as e:
        raise _error(400, e.message)
    except StorageError:
        _LOGGER.exception("Saving visit failed")
        raise _error(503, "An error occurred while saving. Please try again later.")
    return _result_payload(result)


@app.put("/api/visits/{visit_id}")
def update_visit(
    visit_id: str,
    request: UpdateVisitRequest,
    recorder: VisitRecorder = Depends(get_recorder),
):
    """Correct a saved visit; the response is focused on that visit."""
    try:
        result = recorder.update_visit(
            visit_id,
            request.height_cm,
            request.weight_kg,
            growth_injection=request.growth_injection,
            suppression_injection=request.suppression_injection,
        )
    except LookupError:
        raise HTTPException(status_code=404, detail="Visit not found")
    except ValidationError as e:
        raise _error(400, e.message)
    except StorageError:
        _LOGGER.exception("Updating visit %s failed", visit_id)
        raise _error(503, "An error occurred while saving. Please try again later.")
    return _result_payload(result)


def _load(recorder: VisitRecorder, resident_id: str) -> RecordResult:
    try:
        result = recorder.load(resident_id)
    except StorageError:
        raise _error(503, "Could not load the patient. Please try again later.")
    if result is None:
        raise HTTPException(status_code=404, detail="Patient not found")
    return result


@app.get("/api/patients/{resident_id}/visits")
def get_patient_visits(resident_id: str, recorder: VisitRecorder = Depends(get_recorder)):
    """All visits of a patient, oldest first, with the latest change."""
    return _result_payload(_load(recorder, resident_id))


@app.get("/api/patients/{resident_id}/chart/{metric}")
def get_patient_chart(
    resident_id: str,
    metric: str,
    format: str = Query("json", pattern="^(json|svg)$"),
    recorder: VisitRecorder = Depends(get_recorder),
    cache: ReferenceTableCache = Depends(get_table_cache),
):
    """
    Growth chart of a patient against the reference percentiles.

    Supports json (scene description) and svg.
    """
    selected = _parse_metric(metric)
    result = _load(recorder, resident_id)
    tables = {m.value: cache.get(m) for m in Metric}
    view = build_view_model(VisitForm(), result.patient, result.visits, tables)
    scene = view.charts[selected.value]

    if format == "svg":
        return Response(content=render_svg(scene), media_type="image/svg+xml")
    return scene_to_dict(scene)


@app.get("/api/patients/{resident_id}/report")
def get_patient_report(
    resident_id: str,
    recorder: VisitRecorder = Depends(get_recorder),
    cache: ReferenceTableCache = Depends(get_table_cache),
):
    """Printable Markdown report of the patient's growth status."""
    result = _load(recorder, resident_id)
    tables = {m.value: cache.get(m) for m in Metric}
    view = build_view_model(VisitForm(), result.patient, result.visits, tables)
    return {"markdown": export_report(result.patient, view)}


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
