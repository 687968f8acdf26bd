"""
Book Identification Module

Catalog lookup of book metadata by title (Open Library).
"""

from shelfreader.identification.open_library import (
    OpenLibraryClient,
    BookMetadata,
    BookLookupResult,
)

__all__ = [
    "OpenLibraryClient",
    "BookMetadata",
    "BookLookupResult",
]
