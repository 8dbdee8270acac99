"""API module for external book metadata services."""

from .openlibrary import (
    OpenLibraryClient,
    OpenLibraryError,
    OpenLibraryRateLimitError,
    BookSearchResult,
)

__all__ = [
    "OpenLibraryClient",
    "OpenLibraryError",
    "OpenLibraryRateLimitError",
    "BookSearchResult",
]
