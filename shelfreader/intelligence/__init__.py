"""
Book Intelligence Module

Genre tagging for parsed book candidates.
"""

from shelfreader.intelligence.genre_classifier import KeywordGenreClassifier, KEYWORD_GENRES

__all__ = [
    "KeywordGenreClassifier",
    "KEYWORD_GENRES",
]
