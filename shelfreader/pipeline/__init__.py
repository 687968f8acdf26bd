"""
Pipeline Module

Segmentation -> per-segment OCR, parsing and genre tagging -> ordered result.
"""

from shelfreader.pipeline.processor import SegmentProcessor, SegmentProcessingResult
from shelfreader.pipeline.service import (
    BookshelfPipeline,
    PipelineResult,
    Diagnostics,
    DiagnosticsBuilder,
)

__all__ = [
    "SegmentProcessor",
    "SegmentProcessingResult",
    "BookshelfPipeline",
    "PipelineResult",
    "Diagnostics",
    "DiagnosticsBuilder",
]
