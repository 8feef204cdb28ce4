"""
National growth reference tables (percentile form).

The reference files are comma separated with two header rows:

    row 0   group headers, sparse (e.g. "백분위수" spanning the percentile columns)
    row 1   column headers ("성별", "만나이(개월)", "3rd", ..., "97th")
    row 2+  one row per (sex, age in months)

The effective name of a column is its row-1 header, or the row-0 header
when row 1 is blank. The sex column uses the same codes as the sex key
derived from the resident id: "1" male, "2" female.

Tables are parsed into one ReferenceCurve per sex. Missing or unparsable
values are kept as NaN so that every percentile list stays parallel to
the age list; they are dropped when a curve is turned into points.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

from growthtrack.errors import ReferenceDataUnavailable

SEX_COLUMN = "성별"
AGE_MONTHS_MARKER = "만나이(개월"
PERCENTILE_PATTERN = re.compile(r"^\d+(st|nd|rd|th)$", re.IGNORECASE)

TABLE_FILES: dict[str, str] = {
    "height": "korea-growth-table_height.csv",
    "weight": "korea-growth-table_weight.csv",
}

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_LOGGER = logging.getLogger(__name__)


@dataclass
class ReferenceCurve:
    """One sex's curves: ages plus a parallel value list per percentile."""
    ages: list[int] = field(default_factory=list)
    percentiles: dict[str, list[float]] = field(default_factory=dict)

    def series(self, label: str) -> list[tuple[int, float]]:
        """(age, value) pairs for ``label`` with missing values dropped."""
        values = self.percentiles.get(label, [])
        return [
            (age, value)
            for age, value in zip(self.ages, values)
            if math.isfinite(value)
        ]

    def value_at(self, label: str, age_months: float) -> Optional[float]:
        """
        Percentile value at an arbitrary age.

        Uses linear interpolation between the bracketing table ages and
        clamps to the first/last age outside the table range.
        """
        points = self.series(label)
        if not points:
            return None

        if age_months <= points[0][0]:
            return points[0][1]
        if age_months >= points[-1][0]:
            return points[-1][1]

        for (lower_age, lower_value), (upper_age, upper_value) in zip(points, points[1:]):
            if age_months == lower_age:
                return lower_value
            if lower_age < age_months < upper_age:
                t = (age_months - lower_age) / (upper_age - lower_age)
                return lower_value + t * (upper_value - lower_value)
            if age_months == upper_age:
                return upper_value
        return None


@dataclass
class GrowthTable:
    """Parsed reference table for one metric."""
    percentile_labels: list[str] = field(default_factory=list)
    by_sex: dict[str, ReferenceCurve] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.by_sex

    def curve(self, sex_key: Optional[str]) -> Optional[ReferenceCurve]:
        if sex_key is None:
            return None
        return self.by_sex.get(sex_key)

    def to_dict(self, metric: str) -> dict[str, Any]:
        """JSON-ready representation; missing values become None."""
        return {
            "metric": metric,
            "percentileLabels": list(self.percentile_labels),
            "bySex": {
                key: {
                    "ages": list(curve.ages),
                    "percentiles": {
                        label: [value if math.isfinite(value) else None for value in values]
                        for label, values in curve.percentiles.items()
                    },
                }
                for key, curve in self.by_sex.items()
            },
        }


# =============================================================================
# PARSING
# =============================================================================


def parse_csv_line(line: str) -> list[str]:
    """
    Split one delimited line into trimmed cells.

    A quote anywhere in a cell opens or closes a quoted section, inside
    which commas do not split; a doubled quote inside a quoted section is
    a literal quote. ``ab"c,d"e`` is the single cell ``abc,de``.
    """
    cells = []
    current = []
    in_quotes = False
    index = 0
    while index < len(line):
        char = line[index]
        if char == '"':
            if in_quotes and line[index + 1:index + 2] == '"':
                current.append('"')
                index += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        index += 1
    cells.append("".join(current).strip())
    return cells


def _parse_int(value: Optional[str]) -> Optional[int]:
    match = _INT_PREFIX.match(value or "")
    return int(match.group(1)) if match else None


def _parse_float(value: Optional[str]) -> float:
    match = _FLOAT_PREFIX.match(value or "")
    if not match:
        return math.nan
    parsed = float(match.group(1))
    return parsed if math.isfinite(parsed) else math.nan


def _cell(cells: list[str], index: int) -> Optional[str]:
    return cells[index] if index < len(cells) else None


def parse_growth_table(
    content: str,
    sex_column: str = SEX_COLUMN,
    age_marker: str = AGE_MONTHS_MARKER,
) -> GrowthTable:
    """
    Parse a two-row-header percentile table.

    Args:
        content: Raw file contents
        sex_column: Exact header of the sex column
        age_marker: Substring identifying the age-in-months column

    Returns:
        GrowthTable. It is empty (no labels, no curves) when the table has
        no data rows or the sex/age columns cannot be found; this is not an
        error.
    """
    content = content.removeprefix("\ufeff")
    lines = [line for line in content.splitlines() if line.strip()]
    if len(lines) < 3:
        return GrowthTable()

    header_top = parse_csv_line(lines[0])
    header_bottom = parse_csv_line(lines[1])

    width = max(len(header_top), len(header_bottom))
    columns = []
    for index in range(width):
        bottom = (_cell(header_bottom, index) or "").strip()
        columns.append(bottom or (_cell(header_top, index) or "").strip())

    sex_index = next((i for i, name in enumerate(columns) if name == sex_column), None)
    age_index = next((i for i, name in enumerate(columns) if age_marker in name), None)
    if sex_index is None or age_index is None:
        _LOGGER.warning("Growth table has no %r / %r column", sex_column, age_marker)
        return GrowthTable()

    percentile_columns = [
        (name, index)
        for index, name in enumerate(columns)
        if PERCENTILE_PATTERN.match(name)
    ]

    by_sex: dict[str, ReferenceCurve] = {}
    for line in lines[2:]:
        cells = parse_csv_line(line)
        sex_value = _parse_int(_cell(cells, sex_index))
        age_value = _parse_int(_cell(cells, age_index))
        if sex_value is None or age_value is None:
            continue

        key = str(sex_value)
        curve = by_sex.get(key)
        if curve is None:
            curve = ReferenceCurve(percentiles={name: [] for name, _ in percentile_columns})
            by_sex[key] = curve

        curve.ages.append(age_value)
        for name, index in percentile_columns:
            curve.percentiles[name].append(_parse_float(_cell(cells, index)))

    return GrowthTable(
        percentile_labels=[name for name, _ in percentile_columns],
        by_sex=by_sex,
    )


# =============================================================================
# PERCENTILE POSITION
# =============================================================================


def percentile_number(label: str) -> Optional[int]:
    """Numeric part of a percentile label ("97th" -> 97)."""
    if not PERCENTILE_PATTERN.match(label.strip()):
        return None
    return int(re.match(r"\d+", label.strip()).group(0))


def locate_percentile(
    curve: ReferenceCurve,
    labels: list[str],
    age_months: float,
    value: float,
) -> Optional[str]:
    """
    Describe where ``value`` lies among the percentile curves at an age.

    Descriptive only: "below 3rd", "between 50th and 75th", "at 50th" or
    "above 97th". Returns None when no curve has a value at that age.
    """
    known = []
    for label in labels:
        number = percentile_number(label)
        reference = curve.value_at(label, age_months)
        if number is not None and reference is not None:
            known.append((number, label, reference))
    if not known:
        return None
    known.sort()

    for _, label, reference in known:
        if math.isclose(value, reference, abs_tol=1e-9):
            return f"at {label}"
    if value < known[0][2]:
        return f"below {known[0][1]}"
    if value > known[-1][2]:
        return f"above {known[-1][1]}"
    for (_, lower, lower_value), (_, upper, upper_value) in zip(known, known[1:]):
        if lower_value < value < upper_value:
            return f"between {lower} and {upper}"
    return None


# =============================================================================
# LOADING + CACHE
# =============================================================================


def _metric_key(metric: Any) -> str:
    return str(getattr(metric, "value", metric))


def read_table_file(table_dir: Path, metric: Any) -> str:
    """
    Read the raw reference file for ``metric`` from ``table_dir``.

    Raises:
        ValueError: Unknown metric
        ReferenceDataUnavailable: The file is missing or unreadable
    """
    key = _metric_key(metric)
    if key not in TABLE_FILES:
        raise ValueError(f"Unknown metric: {key}")
    path = Path(table_dir) / TABLE_FILES[key]
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ReferenceDataUnavailable(key, str(e)) from e


class ReferenceTableCache:
    """
    Parsed tables per metric for the lifetime of the process.

    Empty at construction, filled on the first successful load of each
    metric and never evicted; the source files are static. Two concurrent
    first requests may both parse, which is harmless.
    """

    def __init__(self, loader: Callable[[str], str]):
        """
        Args:
            loader: Returns the raw file contents for a metric name. May
                raise ReferenceDataUnavailable.
        """
        self._loader = loader
        self._tables: dict[str, GrowthTable] = {}

    @classmethod
    def from_directory(cls, table_dir: Path) -> "ReferenceTableCache":
        return cls(lambda metric: read_table_file(table_dir, metric))

    def __contains__(self, metric: Any) -> bool:
        return _metric_key(metric) in self._tables

    def get(self, metric: Any) -> GrowthTable:
        """
        Table for ``metric``.

        An unavailable file degrades to an empty table, which is not cached
        so that a later request can succeed.

        Raises:
            ValueError: Unknown metric
        """
        key = _metric_key(metric)
        if key not in TABLE_FILES:
            raise ValueError(f"Unknown metric: {key}")

        cached = self._tables.get(key)
        if cached is not None:
            _LOGGER.debug("Growth table cache hit for %s", key)
            return cached

        try:
            content = self._loader(key)
        except ReferenceDataUnavailable as e:
            _LOGGER.warning("%s", e)
            return GrowthTable()

        table = parse_growth_table(content)
        _LOGGER.info(
            "Loaded %s growth table: %d percentiles, sexes %s",
            key,
            len(table.percentile_labels),
            ", ".join(table.by_sex) or "none",
        )
        self._tables[key] = table
        return table
