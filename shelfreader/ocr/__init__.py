"""
OCR & Text Processing Module

Handles text extraction from spine crops:
- Pooled Tesseract engines behind a concurrency gate
- Multi-orientation retry (0°, 90°, 270°)
- Title/author parsing and confidence scoring
"""

from shelfreader.ocr.ocr_engine import OCREngine, OCRResult, EnginePool, TesseractWorker
from shelfreader.ocr.book_parser import BookParser, BookCandidate

__all__ = [
    "OCREngine",
    "OCRResult",
    "EnginePool",
    "TesseractWorker",
    "BookParser",
    "BookCandidate",
]
