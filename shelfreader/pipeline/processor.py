"""
Segment Processor

Runs Recognition -> Parsing -> Classification for one segment and isolates
any failure into a diagnostic note.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import uuid

from loguru import logger

from shelfreader.intelligence.genre_classifier import KeywordGenreClassifier
from shelfreader.ocr.book_parser import BookCandidate, BookParser
from shelfreader.ocr.ocr_engine import OCREngine
from shelfreader.vision.segmenter import Segment


@dataclass
class SegmentProcessingResult:
    """Candidate for a segment, or the notes explaining why there is none."""
    candidate: Optional[BookCandidate] = None
    notes: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, note: str) -> "SegmentProcessingResult":
        return cls(candidate=None, notes=[note])


class SegmentProcessor:
    """
    Processes a single spine segment.

    Any exception from recognition, parsing or classification becomes a
    "Segment <index>: <message>" note. Cancellation is not an Exception
    and propagates untouched.
    """

    def __init__(
        self,
        ocr_engine: OCREngine,
        parser: Optional[BookParser] = None,
        classifier: Optional[KeywordGenreClassifier] = None
    ):
        self.ocr_engine = ocr_engine
        self.parser = parser or BookParser()
        self.classifier = classifier or KeywordGenreClassifier()

    async def process(
        self,
        segment: Segment,
        index: int,
        run_id: uuid.UUID
    ) -> SegmentProcessingResult:
        try:
            ocr_result = await self.ocr_engine.recognize(segment.image_data)
            candidate = self.parser.parse(segment, ocr_result)
            self.classifier.apply(candidate)

            if len(ocr_result.attempts) > 1:
                labels = OCREngine.rotation_labels(len(ocr_result.attempts))
                candidate.notes.append("OCR tried rotations: " + ", ".join(labels))

            return SegmentProcessingResult(candidate=candidate)

        except Exception as e:
            logger.error(f"Failed to process segment {index} for image {run_id}: {e}")
            return SegmentProcessingResult.failure(f"Segment {index}: {e}")
