"""
Capture/reset state for a body scanning session.

The session is either live (metrics replaced every sampling cycle) or
captured (a frozen snapshot the diet plan is generated from). This module
holds the state and its transitions only; it performs no I/O.
"""

from enum import Enum
from typing import Optional

from loguru import logger

from app.errors import ScanStateError
from ml.measurements import BodyMetrics, CalibratedMeasurements, calibrate

NO_CAPTURE_MESSAGE = "Please capture your body measurements first"


class ScanMode(str, Enum):
    """Whether metrics are being updated or frozen."""

    LIVE = "live"
    CAPTURED = "captured"


class ScanState:
    """State container for one scanning session."""

    def __init__(self):
        self.metrics = BodyMetrics()
        self.pixels_per_inch: Optional[float] = None
        self.captured: Optional[BodyMetrics] = None
        self.captured_pixels_per_inch: Optional[float] = None
        self.diet_plan = ""
        self.loading = False
        self.camera_error: Optional[str] = None

    @property
    def mode(self) -> ScanMode:
        return ScanMode.CAPTURED if self.captured is not None else ScanMode.LIVE

    @property
    def current(self) -> BodyMetrics:
        """Metrics on display: the snapshot when captured, else the latest live metrics."""
        return self.captured if self.captured is not None else self.metrics

    def update_live(self, metrics: BodyMetrics, pixels_per_inch: Optional[float] = None) -> bool:
        """
        Store the latest sampling cycle's metrics.

        Ignored while captured. Returns True if the live metrics changed.
        """
        if self.mode is ScanMode.CAPTURED:
            return False
        self.metrics = metrics
        self.pixels_per_inch = pixels_per_inch
        self.camera_error = None
        return True

    def capture(self) -> bool:
        """
        Freeze the live metrics.

        Only allowed when the live scan is valid; otherwise the state is left
        unchanged and False is returned.
        """
        if self.mode is ScanMode.CAPTURED:
            return True
        if not self.metrics.is_valid_scan:
            logger.info("Capture rejected: live scan is not valid")
            return False

        self.captured = self.metrics.model_copy()
        self.captured_pixels_per_inch = self.pixels_per_inch
        logger.info(f"Measurements captured: {self.captured.model_dump(exclude_none=True)}")
        return True

    def reset(self) -> None:
        """Discard the snapshot and any diet plan text, returning to live."""
        self.captured = None
        self.captured_pixels_per_inch = None
        self.diet_plan = ""
        logger.info("Measurements reset")

    def calibrated(self, calibration_factor: float = 1.0) -> Optional[CalibratedMeasurements]:
        """Inch estimates for the displayed metrics, when a pixel scale is known."""
        scale = (
            self.captured_pixels_per_inch if self.captured is not None else self.pixels_per_inch
        )
        if scale is None:
            return None
        return calibrate(self.current, scale, calibration_factor)

    def begin_diet_request(self) -> Optional[BodyMetrics]:
        """
        Start a diet plan request for the captured snapshot.

        Returns the snapshot to send, or None when nothing is captured (the
        plan text then asks the user to capture first).

        Raises:
            ScanStateError: If a request is already in flight
        """
        if self.loading:
            raise ScanStateError("A diet plan is already being generated")
        if self.captured is None:
            self.diet_plan = NO_CAPTURE_MESSAGE
            return None

        self.loading = True
        self.diet_plan = ""
        return self.captured

    def finish_diet_request(self, plan: str) -> None:
        self.loading = False
        # Dropped if the snapshot was reset while the request was in flight
        if self.captured is not None:
            self.diet_plan = plan

    def fail_diet_request(self, message: str) -> None:
        self.loading = False
        if self.captured is not None:
            self.diet_plan = f"Error generating diet plan: {message}"
