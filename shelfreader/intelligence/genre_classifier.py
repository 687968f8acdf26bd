"""
Keyword Genre Classifier for ShelfReader

Tags a book candidate with genres by case-insensitive keyword matching over
its title and raw OCR text. Multi-label; an empty result is normal.
"""

from types import MappingProxyType
from typing import Iterable

from shelfreader.ocr.book_parser import BookCandidate


# keyword -> genre, matched as a case-insensitive substring
KEYWORD_GENRES = MappingProxyType({
    # Fantasy
    "dragon": "Fantasy",
    "wizard": "Fantasy",
    "sorcerer": "Fantasy",
    "enchanted": "Fantasy",
    # Science Fiction
    "spaceship": "Science Fiction",
    "galaxy": "Science Fiction",
    "robot": "Science Fiction",
    "interstellar": "Science Fiction",
    # Mystery
    "murder": "Mystery",
    "detective": "Mystery",
    "sleuth": "Mystery",
    # Romance
    "love": "Romance",
    "romance": "Romance",
    # Cooking
    "recipe": "Cooking",
    "cookbook": "Cooking",
    # History
    "history": "History",
    "historical": "History",
    # Biography
    "biography": "Biography",
    "memoir": "Biography",
})


class KeywordGenreClassifier:
    """
    Rule-based genre tagging.

    Usage:
        classifier = KeywordGenreClassifier()
        classifier.classify("A Tale of Dragons", "")  # {"Fantasy"}
    """

    def __init__(self, keyword_genres=KEYWORD_GENRES):
        self._table = {k.lower(): genre for k, genre in keyword_genres.items()}

    def classify(self, title: str, raw_text: str) -> set[str]:
        """
        Genres whose keywords occur in the title or raw text.

        Labels are de-duplicated case-insensitively; order is irrelevant.
        """
        genres: dict[str, str] = {}
        for text in (title, raw_text):
            for genre in self._match(text):
                genres.setdefault(genre.casefold(), genre)
        return set(genres.values())

    def _match(self, text: str) -> Iterable[str]:
        if not text or not text.strip():
            return []
        lowered = text.lower()
        return [genre for keyword, genre in self._table.items() if keyword in lowered]

    def apply(self, candidate: BookCandidate) -> BookCandidate:
        """Merge classified genres into the candidate's genre list."""
        existing = {g.casefold() for g in candidate.genres}
        for genre in sorted(self.classify(candidate.title, candidate.raw_text)):
            if genre.casefold() not in existing:
                candidate.genres.append(genre)
                existing.add(genre.casefold())
        return candidate
