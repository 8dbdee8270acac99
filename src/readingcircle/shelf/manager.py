"""Manager for the five-slot public shelf.

The shelf keeps at most one row per slot and at most one row per book.
Placing a book in an occupied slot evicts the occupant; placing a book that
is already shelved moves it.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import Book, utcnow_iso
from ..db.schemas import BookResponse, BookStatus
from ..errors import PersistenceError, ValidationError, guarded
from ..manager import UserScopedManager
from ..profiles.manager import get_profile_by_username
from .models import SHELF_SIZE, PublicShelfItem
from .schemas import ShelfEntry

logger = logging.getLogger(__name__)


def shelved_books(session: Session, user_id: str) -> list[tuple[int, Book]]:
    """(position, book) pairs of a user's shelf, ordered by position."""
    stmt = (
        select(PublicShelfItem.position, Book)
        .join(Book, Book.id == PublicShelfItem.book_id)
        .where(PublicShelfItem.user_id == user_id, Book.user_id == user_id)
        .order_by(PublicShelfItem.position)
    )
    return [(position, book) for position, book in session.execute(stmt).all()]


class PublicShelfManager(UserScopedManager):
    """Manages the signed-in user's public shelf."""

    @guarded(default=False, message="Failed to update shelf")
    def add_to_shelf(self, book_id: str, position: int) -> bool:
        """Place a want-to-read book in slot ``position`` (1-5).

        Args:
            book_id: The user's book
            position: Target slot

        Returns:
            True on success
        """
        user_id = self._require_user()
        if position not in range(1, SHELF_SIZE + 1):
            raise ValidationError(f"Shelf position must be between 1 and {SHELF_SIZE}")

        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None or book.user_id != user_id:
                raise PersistenceError("Book not found")
            if book.status != BookStatus.WANT_TO_READ.value:
                raise ValidationError("Only want-to-read books can go on the public shelf")

            occupant = self._item_at(session, position)
            if occupant is not None and occupant.book_id != book_id:
                self._set_public(session, occupant.book_id, False)
                session.delete(occupant)
                session.flush()
                logger.debug("Evicted book %s from shelf slot %d", occupant.book_id, position)

            current = self._item_for(session, book_id)
            if current is None:
                session.add(PublicShelfItem(user_id=user_id, book_id=book_id, position=position))
            else:
                current.position = position
            book.is_public = True
            book.updated_at = utcnow_iso()

        logger.info("Book %s shelved at slot %d", book_id, position)
        return True

    def reorder_shelf(self, book_id: str, new_position: int) -> bool:
        """Move a shelved book to another slot, evicting any occupant."""
        return self.add_to_shelf(book_id, new_position)

    @guarded(default=False, message="Failed to update shelf")
    def remove_from_shelf(self, book_id: str) -> bool:
        """Take a book off the shelf. Removing an unshelved book is a no-op."""
        self._require_user()
        with self.db.get_session() as session:
            item = self._item_for(session, book_id)
            if item is None:
                return True
            session.delete(item)
            self._set_public(session, book_id, False)

        logger.info("Book %s removed from shelf", book_id)
        return True

    @guarded(default=list, message="Failed to fetch shelf")
    def list_shelf(self) -> list[ShelfEntry]:
        """The signed-in user's shelf, ordered by slot."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            return [
                ShelfEntry(position=position, book=BookResponse.model_validate(book))
                for position, book in shelved_books(session, self.user_id)
            ]

    @guarded(default=list, message="Failed to fetch shelf")
    def shelf_for_username(self, username: str) -> list[BookResponse]:
        """Another user's shelved books, ordered by slot.

        Readable without signing in.
        """
        with self.db.get_session() as session:
            profile = get_profile_by_username(session, username)
            if profile is None:
                raise PersistenceError(f"No user found with username '{username}'")
            return [
                BookResponse.model_validate(book)
                for _, book in shelved_books(session, profile.user_id)
            ]

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _item_at(self, session: Session, position: int) -> Optional[PublicShelfItem]:
        stmt = select(PublicShelfItem).where(
            PublicShelfItem.user_id == self.user_id,
            PublicShelfItem.position == position,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _item_for(self, session: Session, book_id: str) -> Optional[PublicShelfItem]:
        stmt = select(PublicShelfItem).where(
            PublicShelfItem.user_id == self.user_id,
            PublicShelfItem.book_id == book_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _set_public(self, session: Session, book_id: str, is_public: bool) -> None:
        book = session.get(Book, book_id)
        if book is not None and book.user_id == self.user_id:
            book.is_public = is_public
            book.updated_at = utcnow_iso()
