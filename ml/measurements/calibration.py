"""
Pixel to inch conversion for body metrics.

Uses the subject's known height and the height of their silhouette in the
mask to estimate how many pixels make up one inch at the subject's distance
from the camera.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .extractor import BodyMetrics


class CalibratedMeasurements(BaseModel):
    """Band widths converted to inches."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    shoulders_in: float | None = None
    chest_in: float | None = None
    waist_in: float | None = None
    hips_in: float | None = None
    pixels_per_inch: float
    calibration_factor: float


def pixels_per_inch(
    silhouette_height_px: Optional[float], user_height_in: Optional[float]
) -> Optional[float]:
    """Pixels per inch implied by the silhouette height, or None if either input is unusable."""
    if not silhouette_height_px or not user_height_in:
        return None
    if silhouette_height_px <= 0 or user_height_in <= 0:
        return None
    return silhouette_height_px / user_height_in


def calibrate(
    metrics: BodyMetrics,
    px_per_inch: float,
    calibration_factor: float = 1.0,
) -> CalibratedMeasurements:
    """
    Convert the present pixel widths of `metrics` to inches.

    Args:
        metrics: Pixel measurements
        px_per_inch: Scale from `pixels_per_inch()`; must be positive
        calibration_factor: User-adjustable multiplier applied after scaling

    Returns:
        CalibratedMeasurements with None for bands absent from `metrics`
    """
    if px_per_inch <= 0:
        raise ValueError("px_per_inch must be positive")
    if calibration_factor <= 0:
        raise ValueError("calibration_factor must be positive")

    converted = {
        f"{name}_in": round(px / px_per_inch * calibration_factor, 1)
        for name, px in metrics.widths().items()
    }
    return CalibratedMeasurements(
        **converted,
        pixels_per_inch=px_per_inch,
        calibration_factor=calibration_factor,
    )

