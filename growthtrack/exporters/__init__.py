"""
Export functionality for growthtrack.
"""

from .markdown import export_report
from .svg import render_svg

__all__ = [
    "export_report",
    "render_svg",
]
