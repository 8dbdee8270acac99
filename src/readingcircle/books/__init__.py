"""Reading lists: want-to-read, currently-reading, have-read."""

from .manager import BookListManager, coerce_status

__all__ = [
    "BookListManager",
    "coerce_status",
]
