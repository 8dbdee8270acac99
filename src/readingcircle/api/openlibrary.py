"""Open Library search client for the add-book flow.

Open Library (openlibrary.org) provides free book metadata. Only the
search endpoint is used: results fill in title and author when adding a
book. No API key required.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import requests

from ..db.schemas import BookCreate, BookStatus

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
DEFAULT_LIMIT = 6
SEARCH_FIELDS = "key,title,author_name,first_publish_year,cover_i"


class OpenLibraryError(Exception):
    """Base exception for Open Library API errors."""

    pass


class OpenLibraryRateLimitError(OpenLibraryError):
    """Raised when rate limited by Open Library."""

    pass


@dataclass
class BookSearchResult:
    """A book result from Open Library search."""

    key: str
    title: str
    author: str
    first_publish_year: Optional[int] = None
    cover_url: Optional[str] = None

    def to_book_create(self, status: BookStatus = BookStatus.WANT_TO_READ) -> BookCreate:
        """Convert to BookCreate schema."""
        return BookCreate(title=self.title, author=self.author, status=status)


class OpenLibraryClient:
    """Client for the Open Library search API."""

    BASE_URL = "https://openlibrary.org"
    COVERS_URL = "https://covers.openlibrary.org"

    def __init__(self, timeout: int = 10):
        """Initialize client.

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({
            "User-Agent": "readingcircle/0.1 (reading lists shared with friends)"
        })
        self._last_request_time = 0.0
        self._min_request_interval = 0.5  # Be nice to free API

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.time()

    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        """Make GET request with error handling."""
        self._rate_limit()
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.Timeout:
            raise OpenLibraryError("Search timed out")
        except requests.exceptions.HTTPError as e:
            if e.response.status_code == 429:
                raise OpenLibraryRateLimitError("Rate limited by Open Library")
            raise OpenLibraryError(f"Failed to search books (HTTP {e.response.status_code})")
        except requests.exceptions.RequestException as e:
            raise OpenLibraryError(f"Search failed: {e}")
        except ValueError:
            raise OpenLibraryError("Open Library returned an unreadable response")

    def search(self, query: str, limit: int = DEFAULT_LIMIT) -> list[BookSearchResult]:
        """Search for books by free-text query.

        Args:
            query: Title, author or both
            limit: Maximum results to request

        Returns:
            Results that have both a title and an author. Queries shorter
            than two characters return an empty list without a request.
        """
        query = (query or "").strip()
        if len(query) < MIN_QUERY_LENGTH:
            return []

        params = {"q": query, "limit": limit, "fields": SEARCH_FIELDS}
        data = self._get(f"{self.BASE_URL}/search.json", params)

        results = []
        for doc in data.get("docs", []):
            result = self._doc_to_result(doc)
            if result:
                results.append(result)

        logger.debug("Search '%s' returned %d usable results", query, len(results))
        return results

    def cover_url(self, cover_id: Optional[int], size: str = "S") -> Optional[str]:
        """Cover image URL for a cover id; size is S, M or L."""
        if not cover_id:
            return None
        return f"{self.COVERS_URL}/b/id/{cover_id}-{size}.jpg"

    def _doc_to_result(self, doc: dict) -> Optional[BookSearchResult]:
        """Convert search document to BookSearchResult, dropping incomplete docs."""
        title = doc.get("title")
        authors = doc.get("author_name") or []
        if not title or not authors:
            return None

        return BookSearchResult(
            key=doc.get("key", ""),
            title=title,
            author=authors[0],
            first_publish_year=doc.get("first_publish_year"),
            cover_url=self.cover_url(doc.get("cover_i")),
        )
