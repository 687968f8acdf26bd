"""
Service wiring for ShelfReader.

Builds each component once from Settings and shares it. The OCR engine pool
in particular must be shared so its gate bounds recognition across every
concurrent pipeline run.
"""

from typing import Optional

from shelfreader.config import Settings


class ServiceContainer:
    """Lazily constructed, cached services."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = (settings or Settings.from_env()).validate()

        self._segmenter = None
        self._ocr_engine = None
        self._parser = None
        self._classifier = None
        self._processor = None
        self._pipeline = None
        self._lookup_client = None

    @property
    def segmenter(self):
        """Get spine segmenter instance."""
        if self._segmenter is None:
            from shelfreader.vision.segmenter import SpineSegmenter
            self._segmenter = SpineSegmenter(self.settings.segmentation)
        return self._segmenter

    @property
    def ocr_engine(self):
        """Get OCR engine instance."""
        if self._ocr_engine is None:
            from shelfreader.ocr.ocr_engine import OCREngine
            self._ocr_engine = OCREngine(self.settings.ocr)
        return self._ocr_engine

    @property
    def parser(self):
        """Get book parser instance."""
        if self._parser is None:
            from shelfreader.ocr.book_parser import BookParser
            self._parser = BookParser(self.settings.parsing)
        return self._parser

    @property
    def classifier(self):
        """Get genre classifier instance."""
        if self._classifier is None:
            from shelfreader.intelligence.genre_classifier import KeywordGenreClassifier
            self._classifier = KeywordGenreClassifier()
        return self._classifier

    @property
    def processor(self):
        """Get segment processor instance."""
        if self._processor is None:
            from shelfreader.pipeline.processor import SegmentProcessor
            self._processor = SegmentProcessor(
                ocr_engine=self.ocr_engine,
                parser=self.parser,
                classifier=self.classifier,
            )
        return self._processor

    @property
    def pipeline(self):
        """Get bookshelf pipeline instance."""
        if self._pipeline is None:
            from shelfreader.pipeline.service import BookshelfPipeline
            self._pipeline = BookshelfPipeline(
                segmenter=self.segmenter,
                processor=self.processor,
            )
        return self._pipeline

    @property
    def lookup_client(self):
        """Get catalog lookup client instance."""
        if self._lookup_client is None:
            from shelfreader.identification.open_library import OpenLibraryClient
            self._lookup_client = OpenLibraryClient(self.settings.lookup)
        return self._lookup_client

    def close(self) -> None:
        if self._ocr_engine is not None:
            self._ocr_engine.close()
