"""
Person segmentation module.

Provides a wrapper around MediaPipe selfie segmentation that turns camera
frames into binary foreground masks.
"""

from .segmenter import BodySegmenter, SegmentationResult

__all__ = ["BodySegmenter", "SegmentationResult"]
