"""
AOI Coverage & Pass Estimation

Estimates whether archived satellite imagery is likely to exist for an
area of interest, and when tracked satellites will next pass over it.
All outputs are advisory.
"""

from .aggregation import build_coverage_index
from .catalog import CatalogClient
from .geo import BoundingBox
from .models import CoverageIndicator, Level, PassResult, PassWindow, TimeWindow
from .predictor import PassPredictor
from .tle import TLEStore

__version__ = "0.1.0"

__all__ = [
    "BoundingBox",
    "TimeWindow",
    "Level",
    "CoverageIndicator",
    "PassWindow",
    "PassResult",
    "CatalogClient",
    "TLEStore",
    "PassPredictor",
    "build_coverage_index",
]
