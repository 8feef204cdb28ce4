"""
Growth tracking engines.
"""

from .resident_id import (
    AgeInfo,
    age_bucket,
    age_in_months,
    format_age,
    mask_resident_id,
    normalize_resident_id,
    parse_resident_id,
    sex_key,
)
from .visits import (
    VisitDelta,
    calculate_bmi,
    compute_delta,
    select_current_previous,
    sort_visits,
)
from .chart import build_chart, scene_to_dict
from .recorder import RecordResult, VisitRecorder
from .view_model import ViewModel, build_view_model

__all__ = [
    "AgeInfo",
    "age_bucket",
    "age_in_months",
    "format_age",
    "mask_resident_id",
    "normalize_resident_id",
    "parse_resident_id",
    "sex_key",
    "VisitDelta",
    "calculate_bmi",
    "compute_delta",
    "select_current_previous",
    "sort_visits",
    "build_chart",
    "scene_to_dict",
    "RecordResult",
    "VisitRecorder",
    "ViewModel",
    "build_view_model",
]
