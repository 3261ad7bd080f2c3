"""
Body measurement extraction module.

Provides tools for extracting body proportions from person segmentation masks.
"""

from .calibration import CalibratedMeasurements, calibrate, pixels_per_inch
from .extractor import BAND_NAMES, BodyMetrics, MeasurementExtractor

__all__ = [
    "BAND_NAMES",
    "BodyMetrics",
    "CalibratedMeasurements",
    "MeasurementExtractor",
    "calibrate",
    "pixels_per_inch",
]
