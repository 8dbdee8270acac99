"""Public shelf: up to five want-to-read books shown to other users."""

from .manager import PublicShelfManager, shelved_books
from .models import SHELF_SIZE, PublicShelfItem
from .schemas import ShelfEntry

__all__ = [
    "PublicShelfManager",
    "shelved_books",
    "SHELF_SIZE",
    "PublicShelfItem",
    "ShelfEntry",
]
