"""
Book Text Parser for ShelfReader

Turns raw spine OCR text into a book candidate:
- Line cleanup and de-duplication
- Title selection (longest line) and title casing
- Author detection (indicator tokens, then short byline heuristic)
- Blended confidence score
- Alternative title hints for near-duplicate lines
"""

from typing import List, Optional, Tuple
from dataclasses import dataclass, field
from difflib import SequenceMatcher
import re
import unicodedata

from loguru import logger

from shelfreader.config import ParsingConfig
from shelfreader.ocr.ocr_engine import OCRResult
from shelfreader.vision.segmenter import Rect, Segment


NO_TEXT_NOTE = "OCR returned no text"
UNPARSABLE_NOTE = "Unable to parse OCR lines"
ALTERNATIVE_TITLE_PREFIX = "Alternative title candidate:"

# Confidence is never reported as certain
MAX_CONFIDENCE = 0.99


@dataclass
class BookCandidate:
    """A probable book read from one spine."""

    bounding_box: Rect
    title: str = ""
    author: str = ""
    genres: List[str] = field(default_factory=list)
    confidence: float = 0.0
    raw_text: str = ""
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bounding_box": self.bounding_box.to_dict(),
            "title": self.title,
            "author": self.author,
            "genres": list(self.genres),
            "confidence": round(self.confidence, 4),
            "raw_text": self.raw_text,
            "notes": list(self.notes),
        }


class BookParser:
    """
    Heuristic title/author extraction from spine OCR output.

    Spines rarely say which line is the title. The author comes from a
    "by ..." style line or, failing that, the shortest byline-shaped line;
    the longest remaining line is taken as the title.

    Usage:
        parser = BookParser()
        candidate = parser.parse(segment, ocr_result)
        print(candidate.title, candidate.author)
    """

    # Punctuation that may survive cleanup; letters and digits of any script are kept
    ALLOWED_PUNCTUATION = frozenset("'&,:;.- ")

    # Byline heuristic limits
    MAX_AUTHOR_WORDS = 4
    MAX_AUTHOR_WORD_LENGTH = 12

    # Title length bonus saturates at 0.4 (20 characters)
    TITLE_LENGTH_DIVISOR = 50.0
    MAX_TITLE_BONUS = 0.4
    AUTHOR_BONUS = 0.2

    ALTERNATIVE_LIMIT = 3

    def __init__(self, config: Optional[ParsingConfig] = None):
        self.config = config or ParsingConfig()

        # Earliest token in a line wins; longer tokens first on ties
        tokens = sorted(self.config.author_tokens, key=len, reverse=True)
        self._author_pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(t) for t in tokens) + r")\b",
            re.IGNORECASE
        ) if tokens else None

    def parse(self, segment: Segment, ocr: OCRResult) -> BookCandidate:
        """
        Parse one segment's OCR result.

        Args:
            segment: Segment the text was read from
            ocr: Recognition result for the segment

        Returns:
            BookCandidate; confidence 0 with an explanatory note when the
            text is empty or nothing survives cleanup
        """
        candidate = BookCandidate(
            bounding_box=segment.bounding_box,
            raw_text=ocr.text or ""
        )

        if not candidate.raw_text.strip():
            candidate.notes.append(NO_TEXT_NOTE)
            logger.debug(f"OCR returned empty text for bounding box {segment.bounding_box}")
            return candidate

        lines = self.normalize_lines(candidate.raw_text)
        if not lines:
            candidate.notes.append(UNPARSABLE_NOTE)
            logger.debug(f"OCR produced no parsable lines for bounding box {segment.bounding_box}")
            return candidate

        byline, author = self.find_byline(lines)
        probable_title = self.determine_title([l for l in lines if l != byline] or lines)
        if not author:
            author = self.fallback_author(lines, probable_title)

        candidate.title = self.to_title_case(probable_title)
        candidate.author = self.to_title_case(author)
        candidate.confidence = self.calculate_confidence(
            candidate.title, candidate.author, ocr.confidence
        )

        alternative = self.find_alternative_title(probable_title, lines)
        if alternative:
            candidate.notes.append(f"{ALTERNATIVE_TITLE_PREFIX} {alternative}")

        return candidate

    def normalize_lines(self, text: str) -> List[str]:
        """
        Clean each line, dropping repeated lines and lines with no letter
        or digit left (order kept).
        """
        text = unicodedata.normalize('NFC', text)

        lines = []
        seen = set()
        for raw_line in text.splitlines():
            line = self._clean(raw_line)
            if any(c.isalnum() for c in line) and line not in seen:
                seen.add(line)
                lines.append(line)
        return lines

    def _clean(self, line: str) -> str:
        kept = ''.join(
            c if c.isalpha() or c.isdigit() or c in self.ALLOWED_PUNCTUATION else ' '
            for c in line
        )
        return re.sub(r' {2,}', ' ', kept).strip()

    @staticmethod
    def determine_title(lines: List[str]) -> str:
        """Longest line; first occurrence wins ties."""
        return max(lines, key=len)

    def find_byline(self, lines: List[str]) -> Tuple[Optional[str], str]:
        """
        First line carrying an author indicator token ("by", "author", ...).

        Tokens match whole words only, case-insensitively: "ABBY ROAD" has
        no byline even though it contains "by".

        Returns:
            (line, text after the token); (None, "") when no line qualifies
        """
        if self._author_pattern is None:
            return None, ""

        for line in lines:
            match = self._author_pattern.search(line)
            if match:
                author = line[match.end():].strip(" ,:;-")
                if author:
                    return line, author
        return None, ""

    def fallback_author(self, lines: List[str], title: str = "") -> str:
        """Shortest byline-shaped line that is not the title."""
        bylines = [
            line for line in lines
            if line != title and self._looks_like_byline(line)
        ]
        if not bylines:
            return ""
        return min(bylines, key=len)

    def _looks_like_byline(self, line: str) -> bool:
        words = line.split()
        return (
            any(c.isalpha() for c in line)
            and len(words) <= self.MAX_AUTHOR_WORDS
            and all(len(w) <= self.MAX_AUTHOR_WORD_LENGTH for w in words)
        )

    def calculate_confidence(self, title: str, author: str, ocr_confidence: float) -> float:
        """
        Blend textual evidence with the OCR-reported confidence.

        Returns:
            Confidence clamped to [0, 0.99]
        """
        confidence = self.config.base_confidence

        if title:
            confidence += min(self.MAX_TITLE_BONUS, len(title) / self.TITLE_LENGTH_DIVISOR)

        if author:
            confidence += self.AUTHOR_BONUS

        if ocr_confidence > 0:
            confidence = (confidence + ocr_confidence) / 2

        return max(0.0, min(MAX_CONFIDENCE, confidence))

    def find_alternative_title(self, title: str, lines: List[str]) -> Optional[str]:
        """
        Return a different line nearly identical to the title, if any.

        OCR sometimes reads the same spine text twice with small differences.
        """
        if len(lines) <= 1:
            return None

        ranked = sorted(
            ((self.similarity(title, line), line) for line in lines),
            key=lambda pair: pair[0],
            reverse=True
        )[:self.ALTERNATIVE_LIMIT]

        if len(ranked) > 1:
            score, line = ranked[1]
            if score > self.config.alternative_title_threshold and line != title:
                return line
        return None

    @staticmethod
    def similarity(a: str, b: str) -> float:
        """Similarity score on a 0-100 scale."""
        return SequenceMatcher(None, a.lower(), b.lower()).ratio() * 100

    @staticmethod
    def to_title_case(value: str) -> str:
        """
        Lower-case, then capitalize the first letter of each word.

        Scripts without case pass through unchanged.
        """
        if not value or not value.strip():
            return ""
        return re.sub(
            r'\S+',
            lambda m: m.group(0)[:1].upper() + m.group(0)[1:],
            value.lower()
        )
