"""
Body measurement extractor from person segmentation masks.

Scans a binary foreground/background mask at fixed fractions of the frame
height and derives pixel widths for shoulders, chest, waist and hips, plus
the waist/shoulder and hip/waist ratios.

Each band is measured over a small window of rows around its target row so
that a single noisy row from the segmentation model does not skew the result.
"""

import math
from typing import Optional, Sequence, Union

import numpy as np
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Band names in anatomical (top-to-bottom) order
BAND_NAMES = ("shoulders", "chest", "waist", "hips")

# Default band positions as fractions of frame height from the top
DEFAULT_BAND_FRACTIONS = (0.15, 0.25, 0.45, 0.65)

MaskLike = Union[np.ndarray, Sequence[int]]


class BodyMetrics(BaseModel):
    """
    Body proportions measured from one segmentation mask.

    Widths are in pixels of the frame the mask was computed on. A field is
    None when that band did not contain enough foreground pixels.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    shoulders: int | None = Field(None, ge=0, description="Shoulder width in pixels")
    chest: int | None = Field(None, ge=0, description="Chest width in pixels")
    waist: int | None = Field(None, ge=0, description="Waist width in pixels")
    hips: int | None = Field(None, ge=0, description="Hip width in pixels")
    waist_to_shoulder_ratio: float | None = Field(None, description="waist / shoulders")
    hip_to_waist_ratio: float | None = Field(None, description="hips / waist")
    is_valid_scan: bool = Field(False, description="At least 3 of the 4 bands were measured")

    def widths(self) -> dict[str, int]:
        """Present band widths keyed by band name."""
        return {
            name: getattr(self, name) for name in BAND_NAMES if getattr(self, name) is not None
        }


def _safe_ratio(numerator: Optional[int], denominator: Optional[int]) -> Optional[float]:
    """Ratio of two measurements, or None when either is absent or the denominator is zero."""
    if numerator is None or denominator is None or denominator == 0:
        return None
    ratio = numerator / denominator
    return ratio if math.isfinite(ratio) else None


class MeasurementExtractor:
    """
    Extract body measurements from a per-pixel person mask.

    The extractor holds only configuration; `extract` is a pure function of
    its inputs and never raises for a well-formed mask.
    """

    def __init__(
        self,
        band_fractions: Sequence[float] = DEFAULT_BAND_FRACTIONS,
        window_half_height: int = 3,
        min_foreground_pixels: int = 15,
        min_valid_bands: int = 3,
    ):
        """
        Initialize the measurement extractor.

        Args:
            band_fractions: Row positions for shoulders, chest, waist and hips,
                            as fractions of frame height. Must be increasing.
            window_half_height: Rows scanned above and below each target row
            min_foreground_pixels: A band is accepted only if its window holds
                                   more foreground pixels than this
            min_valid_bands: Bands needed for a scan to count as valid
        """
        if len(band_fractions) != len(BAND_NAMES):
            raise ValueError(f"Expected {len(BAND_NAMES)} band fractions, got {len(band_fractions)}")
        if any(a >= b for a, b in zip(band_fractions, band_fractions[1:])):
            raise ValueError("Band fractions must be ordered top-to-bottom")

        self.band_fractions = tuple(band_fractions)
        self.window_half_height = window_half_height
        self.min_foreground_pixels = min_foreground_pixels
        self.min_valid_bands = min_valid_bands

    @classmethod
    def from_settings(cls, settings) -> "MeasurementExtractor":
        """Build an extractor from `MeasurementSettings`."""
        return cls(
            band_fractions=settings.band_fractions,
            window_half_height=settings.window_half_height,
            min_foreground_pixels=settings.min_foreground_pixels,
            min_valid_bands=settings.min_valid_bands,
        )

    def extract(self, mask: MaskLike, width: int, height: int) -> BodyMetrics:
        """
        Measure band widths and ratios from a segmentation mask.

        Args:
            mask: Foreground (1) / background (0) values, either flat row-major
                  of length width*height or shaped (height, width)
            width: Frame width in pixels
            height: Frame height in pixels

        Returns:
            BodyMetrics with absent fields for bands that could not be measured
        """
        grid = self._as_grid(mask, width, height)
        if grid is None:
            return BodyMetrics()

        widths: dict[str, int] = {}
        for name, fraction in zip(BAND_NAMES, self.band_fractions):
            band_width = self._measure_band(grid, math.floor(height * fraction))
            if band_width is not None:
                widths[name] = band_width

        metrics = BodyMetrics(
            **widths,
            waist_to_shoulder_ratio=_safe_ratio(widths.get("waist"), widths.get("shoulders")),
            hip_to_waist_ratio=_safe_ratio(widths.get("hips"), widths.get("waist")),
            is_valid_scan=len(widths) >= self.min_valid_bands,
        )

        logger.debug(f"Extracted metrics: {metrics.model_dump(exclude_none=True)}")
        return metrics

    def silhouette_height(self, mask: MaskLike, width: int, height: int) -> Optional[int]:
        """
        Vertical pixel span of the foreground, top row to bottom row.

        Returns None when the mask holds no foreground.
        """
        grid = self._as_grid(mask, width, height)
        if grid is None:
            return None

        rows = np.flatnonzero(grid.any(axis=1))
        if rows.size == 0:
            return None
        return int(rows[-1] - rows[0])

    def _measure_band(self, grid: np.ndarray, target_row: int) -> Optional[int]:
        """
        Width of the foreground across the row window centred on target_row.

        Rows falling outside the frame are skipped. Returns None if the window
        does not hold enough foreground pixels.
        """
        height = grid.shape[0]
        first = max(0, target_row - self.window_half_height)
        last = min(height - 1, target_row + self.window_half_height)
        if first > last:
            return None

        columns = np.nonzero(grid[first : last + 1])[1]
        if columns.size <= self.min_foreground_pixels:
            return None

        return max(0, int(columns.max()) - int(columns.min()))

    @staticmethod
    def _as_grid(mask: MaskLike, width: int, height: int) -> Optional[np.ndarray]:
        """Reshape a mask to a boolean (height, width) grid of foreground pixels."""
        if width <= 0 or height <= 0:
            logger.warning(f"Invalid frame size {width}x{height}")
            return None

        values = np.asarray(mask)
        if values.size != width * height:
            logger.warning(
                f"Mask size ({values.size}) does not match frame {width}x{height}"
            )
            return None

        return values.reshape(height, width) == 1
