"""
ShelfReader

Turns a photograph of a bookshelf into candidate books:
- Spine segmentation (OpenCV contours + rotation correction)
- Pooled multi-orientation OCR (Tesseract)
- Heuristic title/author parsing and confidence scoring
- Keyword genre tagging
"""

__version__ = "0.1.0"

from shelfreader.config import Settings
from shelfreader.exceptions import ShelfReaderError, ImageTooLargeError, ConfigurationError
from shelfreader.pipeline.service import BookshelfPipeline, PipelineResult, Diagnostics

__all__ = [
    "Settings",
    "ShelfReaderError",
    "ImageTooLargeError",
    "ConfigurationError",
    "BookshelfPipeline",
    "PipelineResult",
    "Diagnostics",
]
