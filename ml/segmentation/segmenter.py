"""
Person segmentation wrapper.

Runs MediaPipe selfie segmentation on camera frames and thresholds the
per-pixel confidence into a binary foreground/background mask, the input
expected by `ml.measurements.MeasurementExtractor`.
"""

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
from loguru import logger


@dataclass(frozen=True)
class SegmentationResult:
    """Binary person mask plus the size of the frame it was computed on."""

    mask: np.ndarray  # (height, width) uint8, 1 = person
    width: int
    height: int


class BodySegmenter:
    """
    Person segmentation for single video frames.

    The MediaPipe graph is created lazily on first use and reused for every
    following frame until `close()` is called.
    """

    def __init__(
        self,
        model_selection: int = 1,
        flip_horizontal: bool = True,
        threshold: float = 0.5,
        frame_scale: float = 0.5,
    ):
        """
        Initialize the segmenter.

        Args:
            model_selection: 0 = general model (256x256), 1 = landscape model (144x256, faster)
            flip_horizontal: Mirror frames before segmenting (selfie view)
            threshold: Minimum person confidence for a pixel to count as foreground
            frame_scale: Resize factor applied to frames before segmenting
        """
        self.model_selection = model_selection
        self.flip_horizontal = flip_horizontal
        self.threshold = threshold
        self.frame_scale = frame_scale
        self._model: Optional[object] = None

    @classmethod
    def from_settings(cls, settings) -> "BodySegmenter":
        """Build a segmenter from `SegmentationSettings`."""
        return cls(
            model_selection=settings.model_selection,
            flip_horizontal=settings.flip_horizontal,
            threshold=settings.threshold,
            frame_scale=settings.frame_scale,
        )

    @property
    def model(self):
        """Lazy initialization of the MediaPipe segmentation model."""
        if self._model is None:
            logger.info(f"Loading selfie segmentation model (selection={self.model_selection})")
            import mediapipe as mp

            self._model = mp.solutions.selfie_segmentation.SelfieSegmentation(
                model_selection=self.model_selection,
            )
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def segment(self, frame: np.ndarray) -> SegmentationResult:
        """
        Segment the person in a BGR frame.

        Args:
            frame: OpenCV BGR image (H, W, 3)

        Returns:
            SegmentationResult with the mask at the (scaled) frame size
        """
        if self.frame_scale != 1.0:
            h, w = frame.shape[:2]
            size = (max(1, int(w * self.frame_scale)), max(1, int(h * self.frame_scale)))
            frame = cv2.resize(frame, size, interpolation=cv2.INTER_AREA)

        if self.flip_horizontal:
            frame = cv2.flip(frame, 1)

        height, width = frame.shape[:2]
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self.model.process(rgb)

        if results.segmentation_mask is None:
            return SegmentationResult(np.zeros((height, width), dtype=np.uint8), width, height)

        mask = (results.segmentation_mask >= self.threshold).astype(np.uint8)
        return SegmentationResult(mask, width, height)

    def close(self) -> None:
        """Release MediaPipe resources."""
        if self._model is not None:
            self._model.close()
            self._model = None
