"""
Open Library Client

Catalog lookup by free-text title, used for "search by name". The scan
pipeline does not call it.
"""

import asyncio
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import aiohttp
from loguru import logger

from shelfreader.config import LookupConfig


LOOKUP_FAILURE_MESSAGE = "Unable to reach the book lookup service. Please try again later."
COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-M.jpg"


@dataclass
class BookMetadata:
    """Standardized book metadata from the catalog."""
    title: str
    author: Optional[str] = None
    publish_year: Optional[int] = None
    isbn: Optional[str] = None
    cover_url: Optional[str] = None


@dataclass
class BookLookupResult:
    """Books found for a query, or the reason the lookup failed."""
    books: List[BookMetadata] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return not self.error_message

    @classmethod
    def success(cls, books: List[BookMetadata]) -> "BookLookupResult":
        return cls(books=list(books))

    @classmethod
    def failure(cls, message: str) -> "BookLookupResult":
        return cls(books=[], error_message=message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "books": [asdict(book) for book in self.books],
            "error": self.error_message,
        }


class OpenLibraryClient:
    """Client for the Open Library search API."""

    SEARCH_PATH = "search.json"

    def __init__(self, config: Optional[LookupConfig] = None):
        self.config = config or LookupConfig()

    async def lookup(self, query: str) -> BookLookupResult:
        """
        Search for books by title.

        Args:
            query: Free-text title query

        Returns:
            BookLookupResult with up to max_results books, newest first;
            a failure result when the service cannot be reached
        """
        if not query or not query.strip():
            return BookLookupResult.success([])

        url = urljoin(self.config.base_url, self.SEARCH_PATH)
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params={"title": query.strip()}) as resp:
                    resp.raise_for_status()
                    data = await resp.json()

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Open Library lookup failed for query '{query}': {e}")
            return BookLookupResult.failure(LOOKUP_FAILURE_MESSAGE)

        docs = (data or {}).get("docs") or []
        docs = sorted(docs, key=lambda d: d.get("first_publish_year") or 0, reverse=True)

        return BookLookupResult.success(
            [self._parse_doc(doc) for doc in docs[:self.config.max_results]]
        )

    @staticmethod
    def _parse_doc(doc: Dict[str, Any]) -> BookMetadata:
        """Parse a raw search doc into BookMetadata."""
        authors = doc.get("author_name") or []
        isbns = doc.get("isbn") or []
        cover_id = doc.get("cover_i")

        return BookMetadata(
            title=doc.get("title") or "",
            author=authors[0] if authors else None,
            publish_year=doc.get("first_publish_year"),
            isbn=isbns[0] if isbns else None,
            cover_url=COVER_URL_TEMPLATE.format(cover_id=cover_id) if cover_id is not None else None,
        )
