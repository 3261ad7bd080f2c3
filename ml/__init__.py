"""
Machine learning modules for body scanning.

This package contains:
- segmentation: MediaPipe person segmentation (frame -> binary mask)
- measurements: Body proportion extraction from segmentation masks
"""
