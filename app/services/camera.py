"""
Camera device service.

Wraps an OpenCV VideoCapture handle. The device is a single shared resource:
it is opened on first read and must be released whenever scanning stops.
"""

from typing import Optional

import cv2
import numpy as np
from loguru import logger


class CameraError(RuntimeError):
    """Camera could not be opened or returned no frame."""


class Camera:
    """
    Video capture device.

    Usable as a context manager; the device is released on exit.
    """

    def __init__(self, device_index: int = 0):
        self.device_index = device_index
        self._capture: Optional[cv2.VideoCapture] = None

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def open(self) -> None:
        """Open the capture device if it is not already open."""
        if self._capture is not None:
            return

        capture = cv2.VideoCapture(self.device_index)
        if not capture.isOpened():
            capture.release()
            raise CameraError(
                f"Could not open camera {self.device_index}. "
                "Check that a camera is connected and access is permitted."
            )

        self._capture = capture
        logger.info(f"Camera {self.device_index} opened")

    def read(self) -> np.ndarray:
        """
        Grab one BGR frame, opening the device first if needed.

        Raises:
            CameraError: If the device cannot be opened or returns no frame
        """
        self.open()
        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraError(f"Camera {self.device_index} returned no frame")
        return frame

    def release(self) -> None:
        """Stop capturing and free the device."""
        if self._capture is None:
            return
        self._capture.release()
        self._capture = None
        logger.info(f"Camera {self.device_index} released")

    def __enter__(self) -> "Camera":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
