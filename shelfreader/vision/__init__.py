"""
Computer Vision Module for ShelfReader

Locates book spines in a shelf photograph and emits rotation-corrected,
independently encoded crops ordered left to right.
"""

from shelfreader.vision.segmenter import SpineSegmenter, Segment, Rect

__all__ = [
    "SpineSegmenter",
    "Segment",
    "Rect",
]
