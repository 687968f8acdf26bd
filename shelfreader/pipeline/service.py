"""
Bookshelf Pipeline

Image bytes in, ordered book candidates plus diagnostics out.
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, List, Union
import asyncio
import time
import uuid

from loguru import logger

from shelfreader.ocr.book_parser import BookCandidate
from shelfreader.pipeline.processor import SegmentProcessor
from shelfreader.vision.segmenter import SpineSegmenter


@dataclass
class Diagnostics:
    """Per-run metadata."""
    segment_count: int = 0
    elapsed_ms: int = 0
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "segment_count": self.segment_count,
            "elapsed_ms": self.elapsed_ms,
            "notes": list(self.notes),
        }


class DiagnosticsBuilder:
    """Collects notes during a run; the segment count is fixed up front."""

    def __init__(self, segment_count: int):
        self._segment_count = segment_count
        self._notes: List[str] = []
        self._elapsed_ms = 0

    def add_notes(self, notes: Iterable[str]) -> None:
        self._notes.extend(notes)

    def set_elapsed(self, elapsed_ms: int) -> None:
        self._elapsed_ms = elapsed_ms

    def build(self) -> Diagnostics:
        return Diagnostics(
            segment_count=self._segment_count,
            elapsed_ms=self._elapsed_ms,
            notes=list(self._notes),
        )


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    run_id: uuid.UUID
    books: List[BookCandidate] = field(default_factory=list)
    diagnostics: Diagnostics = field(default_factory=Diagnostics)

    def to_dict(self) -> dict:
        return {
            "run_id": str(self.run_id),
            "books": [book.to_dict() for book in self.books],
            "diagnostics": self.diagnostics.to_dict(),
        }


class BookshelfPipeline:
    """
    Orchestrates a bookshelf scan.

    Segmentation runs once; segments are then processed one at a time in
    left-to-right order so results keep segment order. Concurrency comes
    from separate pipeline runs sharing the OCR engine pool.

    Usage:
        pipeline = BookshelfPipeline(segmenter, processor)
        result = await pipeline.process(image_bytes)
        for book in result.books:
            print(book.title, book.author)
    """

    def __init__(
        self,
        segmenter: SpineSegmenter,
        processor: SegmentProcessor,
    ):
        self.segmenter = segmenter
        self.processor = processor

    async def process(self, image: Union[bytes, BinaryIO]) -> PipelineResult:
        """
        Run the full pipeline.

        Args:
            image: Encoded image bytes or a readable binary stream

        Returns:
            PipelineResult with candidates for every segment that processed

        Raises:
            ImageTooLargeError: Image exceeds the pixel budget (no partial result)
            asyncio.CancelledError: Run was cancelled (no partial result)
        """
        start_time = time.perf_counter()
        run_id = uuid.uuid4()

        image_data = self._read(image)

        loop = asyncio.get_running_loop()
        segments = await loop.run_in_executor(None, self.segmenter.segment, image_data)
        logger.info(f"Segmentation produced {len(segments)} segments for image {run_id}")

        books: List[BookCandidate] = []
        diagnostics = DiagnosticsBuilder(len(segments))

        for index, segment in enumerate(segments):
            # Cancellation point between segments
            await asyncio.sleep(0)

            segment_result = await self.processor.process(segment, index, run_id)
            if segment_result.candidate is not None:
                books.append(segment_result.candidate)
            diagnostics.add_notes(segment_result.notes)

        diagnostics.set_elapsed(int((time.perf_counter() - start_time) * 1000))

        return PipelineResult(
            run_id=run_id,
            books=books,
            diagnostics=diagnostics.build(),
        )

    @staticmethod
    def _read(image: Union[bytes, BinaryIO]) -> bytes:
        if isinstance(image, (bytes, bytearray, memoryview)):
            return bytes(image)

        if image.seekable():
            image.seek(0)
        return image.read()
