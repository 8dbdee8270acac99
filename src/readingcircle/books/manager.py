"""Manager for a user's three book lists.

Books are ordered by ``position`` inside each (user, status) bucket. Up to
three want-to-read books hold an exclusive "up next" priority slot.

Multi-row operations (move, set_priority, reorder) are planned from a read
and then applied as row writes. With ``atomic_writes`` the read and all
writes share one transaction. Without it each row write commits on its own
and a failure after the first committed write surfaces as
``PartialFailureError``. In that mode the priority swap is a read-then-write
race between concurrent sessions.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.models import Book, utcnow_iso
from ..db.schemas import (
    PRIORITY_SLOTS,
    BookCreate,
    BookResponse,
    BookStatus,
    BookUpdate,
    ReadingStats,
)
from ..db.sqlite import Database
from ..errors import PartialFailureError, PersistenceError, ValidationError, guarded
from ..manager import UserScopedManager
from ..shelf.models import PublicShelfItem

logger = logging.getLogger(__name__)

# A planned row write: (book id, column values)
RowWrite = tuple[str, dict]


def coerce_status(status: Union[BookStatus, str]) -> BookStatus:
    """Accept a status enum or its string value."""
    try:
        return BookStatus(status)
    except ValueError:
        valid = ", ".join(s.value for s in BookStatus)
        raise ValidationError(f"Unknown status '{status}' (expected one of: {valid})")


def _value(member) -> Optional[str]:
    return member.value if member is not None else None


class BookListManager(UserScopedManager):
    """Manages a user's books, their list positions and priority slots."""

    def __init__(
        self,
        db: Optional[Database] = None,
        user_id: Optional[str] = None,
        atomic_writes: bool = True,
    ):
        """Initialize the book list manager.

        Args:
            db: Database instance
            user_id: Signed-in user id
            atomic_writes: Run multi-row operations in a single transaction
        """
        super().__init__(db, user_id)
        self.atomic_writes = atomic_writes

    # ========================================================================
    # Book CRUD
    # ========================================================================

    @guarded(default=None, message="Failed to add book")
    def add(self, data: BookCreate) -> Optional[BookResponse]:
        """Add a book at the end of its status bucket.

        Args:
            data: Book data to create

        Returns:
            Created book, or None on failure (see ``error``)
        """
        user_id = self._require_user()
        if data.priority is not None and data.status != BookStatus.WANT_TO_READ:
            raise ValidationError("Only want-to-read books can hold a priority slot")

        completed_at = None
        if data.status == BookStatus.HAVE_READ:
            completed_at = (data.completed_at or datetime.now(timezone.utc)).isoformat()

        with self.db.get_session() as session:
            if data.priority is not None:
                self._release_slot(session, data.priority)

            book = Book(
                user_id=user_id,
                title=data.title,
                author=data.author,
                notes=data.notes,
                status=data.status.value,
                consumption_type=_value(data.consumption_type),
                listen_platform=_value(data.listen_platform),
                read_format=_value(data.read_format),
                recommended_by=data.recommended_by,
                priority=data.priority,
                position=self._next_position(session, data.status.value),
                completed_at=completed_at,
                is_public=False,
            )
            session.add(book)
            session.flush()

            logger.debug("Added book %s to %s at position %d", book.id, book.status, book.position)
            return BookResponse.model_validate(book)

    @guarded(default=None, message="Failed to fetch book")
    def get(self, book_id: str) -> Optional[BookResponse]:
        """Get one of the user's books by id."""
        self._require_user()
        with self.db.get_session() as session:
            return BookResponse.model_validate(self._get_owned(session, book_id))

    @guarded(default=None, message="Failed to update book")
    def update(self, book_id: str, data: BookUpdate) -> Optional[BookResponse]:
        """Apply an edit to a book.

        A status change puts the book at the end of its new bucket, clears the
        priority when leaving want-to-read and stamps ``completed_at`` when
        entering have-read. ``completed_at`` is never otherwise touched.

        Args:
            book_id: Book id
            data: Fields to update

        Returns:
            Updated book, or None on failure
        """
        self._require_user()
        changes = data.model_dump(exclude_unset=True, mode="json")

        with self.db.get_session() as session:
            book = self._get_owned(session, book_id)

            new_status = changes.pop("status", None)
            has_priority = "priority" in changes
            priority = changes.pop("priority", None)

            for field, value in changes.items():
                if value is None and field in ("title", "author"):
                    continue
                setattr(book, field, value)

            # Consumption details follow the consumption type
            if book.consumption_type == "read":
                book.listen_platform = None
            elif book.consumption_type == "listen":
                book.read_format = None

            if new_status is not None and new_status != book.status:
                position = self._next_position(session, new_status)
                self._change_status(book, new_status)
                book.position = position

            if has_priority:
                self._assign_slot(session, book, priority)

            book.updated_at = utcnow_iso()
            session.flush()
            return BookResponse.model_validate(book)

    @guarded(default=False, message="Failed to delete book")
    def delete(self, book_id: str) -> bool:
        """Hard-delete a book and its public shelf entry.

        Deleting a book that does not exist (or is not the user's) is a
        no-op that still reports success.
        """
        user_id = self._require_user()
        with self.db.get_session() as session:
            book = session.get(Book, book_id)
            if book is None or book.user_id != user_id:
                logger.debug("Delete of missing book %s ignored", book_id)
                return True

            session.execute(
                delete(PublicShelfItem).where(
                    PublicShelfItem.user_id == user_id,
                    PublicShelfItem.book_id == book_id,
                )
            )
            session.delete(book)

        logger.debug("Deleted book %s", book_id)
        return True

    # ========================================================================
    # Ordering and Priority
    # ========================================================================

    @guarded(default=False, message="Failed to move book")
    def move(self, book_id: str, new_status: Union[BookStatus, str], new_position: int) -> bool:
        """Move a book to a status bucket at a given position.

        Books already at or after ``new_position`` in the target bucket shift
        down by one when the position is taken.
        """
        self._require_user()
        status = coerce_status(new_status)
        if new_position < 0:
            raise ValidationError("Position cannot be negative")

        def plan(session: Session) -> list[RowWrite]:
            book = self._get_owned(session, book_id)
            bucket = self._bucket(session, status.value, exclude_id=book.id)

            writes: list[RowWrite] = []
            if any(other.position == new_position for other in bucket):
                writes.extend(
                    (other.id, {"position": other.position + 1})
                    for other in bucket
                    if other.position >= new_position
                )

            values: dict = {"status": status.value, "position": new_position}
            if book.is_want_to_read and status != BookStatus.WANT_TO_READ:
                values["priority"] = None
            if status == BookStatus.HAVE_READ and book.status != BookStatus.HAVE_READ.value:
                values["completed_at"] = utcnow_iso()
            writes.append((book.id, values))
            return writes

        self._run_writes(plan)
        return True

    @guarded(default=False, message="Failed to set priority")
    def set_priority(self, book_id: str, slot: Optional[int]) -> bool:
        """Put a want-to-read book in priority slot 1-3, or clear it with None.

        Whichever other book of the user held the slot loses it.
        """
        self._require_user()
        if slot is not None and slot not in PRIORITY_SLOTS:
            raise ValidationError("Priority must be 1, 2 or 3")

        def plan(session: Session) -> list[RowWrite]:
            book = self._get_owned(session, book_id)
            if slot is None:
                return [(book.id, {"priority": None})]
            if not book.is_want_to_read:
                raise ValidationError("Only want-to-read books can hold a priority slot")

            writes: list[RowWrite] = [
                (holder.id, {"priority": None})
                for holder in self._slot_holders(session, slot, exclude_id=book.id)
            ]
            writes.append((book.id, {"priority": slot}))
            return writes

        self._run_writes(plan)
        return True

    @guarded(default=False, message="Failed to reorder books")
    def reorder(self, book_ids: list[str], status: Union[BookStatus, str]) -> bool:
        """Rewrite positions so the bucket follows ``book_ids``.

        Listed books take positions 0..n-1 in the given order. Books of the
        bucket that are not listed follow them, keeping their relative order.
        Ids that are not the user's books in ``status`` are ignored.
        """
        self._require_user()
        status = coerce_status(status)
        ordered = list(dict.fromkeys(book_ids))

        def plan(session: Session) -> list[RowWrite]:
            bucket = [book.id for book in self._bucket(session, status.value)]
            listed = [book_id for book_id in ordered if book_id in bucket]
            rest = [book_id for book_id in bucket if book_id not in listed]
            return [
                (book_id, {"position": index})
                for index, book_id in enumerate(listed + rest)
            ]

        self._run_writes(plan)
        return True

    # ========================================================================
    # Reads
    # ========================================================================

    @guarded(default=list, message="Failed to fetch books")
    def list_by_status(self, status: Union[BookStatus, str]) -> list[BookResponse]:
        """Books in one bucket, ascending by position."""
        status = coerce_status(status)
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            return [BookResponse.model_validate(b) for b in self._bucket(session, status.value)]

    @guarded(default=list, message="Failed to fetch books")
    def list_all(self) -> list[BookResponse]:
        """All of the user's books, grouped by status then position."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            stmt = (
                select(Book)
                .where(Book.user_id == self.user_id)
                .order_by(Book.status, Book.position, Book.created_at)
            )
            return [BookResponse.model_validate(b) for b in session.execute(stmt).scalars()]

    @guarded(default=lambda: [None, None, None], message="Failed to fetch priorities")
    def priority_books(self) -> list[Optional[BookResponse]]:
        """The three up-next slots; index i holds the book with priority i+1."""
        slots: list[Optional[BookResponse]] = [None] * len(PRIORITY_SLOTS)
        if not self.user_id:
            return slots

        with self.db.get_session() as session:
            stmt = select(Book).where(
                Book.user_id == self.user_id,
                Book.status == BookStatus.WANT_TO_READ.value,
                Book.priority.is_not(None),
            )
            for book in session.execute(stmt).scalars():
                if book.priority in PRIORITY_SLOTS:
                    slots[book.priority - 1] = BookResponse.model_validate(book)
        return slots

    @guarded(default=None, message="Failed to compute reading stats")
    def get_stats(self, year: Optional[int] = None) -> Optional[ReadingStats]:
        """Per-list counts and books finished in ``year`` (default: this year)."""
        year = year or datetime.now(timezone.utc).year
        stats = ReadingStats(year=year)
        if not self.user_id:
            return stats

        with self.db.get_session() as session:
            counts = session.execute(
                select(Book.status, func.count())
                .where(Book.user_id == self.user_id)
                .group_by(Book.status)
            ).all()
            for status, count in counts:
                setattr(stats, status, count)

            completed = session.execute(
                select(Book.completed_at).where(
                    Book.user_id == self.user_id,
                    Book.status == BookStatus.HAVE_READ.value,
                    Book.completed_at.is_not(None),
                )
            ).scalars()
            stats.completed_this_year = sum(
                1 for value in completed if datetime.fromisoformat(value).year == year
            )

        return stats

    # ========================================================================
    # Helpers
    # ========================================================================

    def _get_owned(self, session: Session, book_id: str) -> Book:
        book = session.get(Book, book_id)
        if book is None or book.user_id != self.user_id:
            raise PersistenceError("Book not found")
        return book

    def _bucket(self, session: Session, status: str, exclude_id: Optional[str] = None) -> list[Book]:
        stmt = select(Book).where(Book.user_id == self.user_id, Book.status == status)
        if exclude_id:
            stmt = stmt.where(Book.id != exclude_id)
        stmt = stmt.order_by(Book.position, Book.created_at)
        return list(session.execute(stmt).scalars())

    def _next_position(self, session: Session, status: str) -> int:
        max_pos = session.execute(
            select(func.max(Book.position)).where(
                Book.user_id == self.user_id,
                Book.status == status,
            )
        ).scalar()
        return 0 if max_pos is None else max_pos + 1

    def _slot_holders(self, session: Session, slot: int, exclude_id: Optional[str] = None) -> list[Book]:
        stmt = select(Book).where(Book.user_id == self.user_id, Book.priority == slot)
        if exclude_id:
            stmt = stmt.where(Book.id != exclude_id)
        return list(session.execute(stmt).scalars())

    def _release_slot(self, session: Session, slot: int, keep_id: Optional[str] = None) -> None:
        for holder in self._slot_holders(session, slot, exclude_id=keep_id):
            holder.priority = None
            holder.updated_at = utcnow_iso()

    def _assign_slot(self, session: Session, book: Book, slot: Optional[int]) -> None:
        if slot is None:
            book.priority = None
            return
        if not book.is_want_to_read:
            raise ValidationError("Only want-to-read books can hold a priority slot")
        self._release_slot(session, slot, keep_id=book.id)
        book.priority = slot

    @staticmethod
    def _change_status(book: Book, new_status: str) -> None:
        if book.is_want_to_read and new_status != BookStatus.WANT_TO_READ.value:
            book.priority = None
        if new_status == BookStatus.HAVE_READ.value and book.status != BookStatus.HAVE_READ.value:
            book.completed_at = utcnow_iso()
        book.status = new_status

    def _run_writes(self, plan: Callable[[Session], list[RowWrite]]) -> None:
        if self.atomic_writes:
            with self.db.get_session() as session:
                for book_id, values in plan(session):
                    self._write_row(session, book_id, values)
            return

        with self.db.get_session() as session:
            writes = plan(session)

        applied = 0
        for book_id, values in writes:
            try:
                with self.db.get_session() as session:
                    self._write_row(session, book_id, values)
            except (SQLAlchemyError, PersistenceError) as e:
                if applied:
                    raise PartialFailureError(
                        f"Only {applied} of {len(writes)} book updates were saved"
                    ) from e
                raise
            applied += 1

    @staticmethod
    def _write_row(session: Session, book_id: str, values: dict) -> None:
        book = session.get(Book, book_id)
        if book is None:
            raise PersistenceError("Book no longer exists")
        for field, value in values.items():
            setattr(book, field, value)
        book.updated_at = utcnow_iso()
