"""
Growth reference tables.
"""

from .reference_table import (
    GrowthTable,
    ReferenceCurve,
    ReferenceTableCache,
    TABLE_FILES,
    locate_percentile,
    parse_csv_line,
    parse_growth_table,
    percentile_number,
    read_table_file,
)

__all__ = [
    "GrowthTable",
    "ReferenceCurve",
    "ReferenceTableCache",
    "TABLE_FILES",
    "locate_percentile",
    "parse_csv_line",
    "parse_growth_table",
    "percentile_number",
    "read_table_file",
]
