"""
growthtrack - clinical growth tracking.

Records height/weight visits, derives age from the resident registration
number and compares measurements against national percentile curves.
"""

__version__ = "0.1.0"
