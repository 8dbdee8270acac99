"""Tests for PublicShelfManager."""

import pytest
from sqlalchemy.exc import IntegrityError

from readingcircle.books import BookListManager
from readingcircle.db.schemas import BookCreate, BookStatus
from readingcircle.shelf import PublicShelfItem, PublicShelfManager

ALICE = "user-alice"
BOB = "user-bob"


@pytest.fixture
def wants(books: BookListManager) -> list:
    return [
        books.add(BookCreate(title=title, author="Test Author"))
        for title in ("Dune", "Emma", "Ulysses")
    ]


def shelf_layout(shelf: PublicShelfManager) -> list[tuple[int, str]]:
    return [(entry.position, entry.book.title) for entry in shelf.list_shelf()]


class TestAddToShelf:
    """Tests for placing books on the shelf."""

    def test_add(self, shelf: PublicShelfManager, books: BookListManager, wants):
        assert shelf.add_to_shelf(wants[0].id, 1)
        assert shelf.add_to_shelf(wants[1].id, 4)

        assert shelf_layout(shelf) == [(1, "Dune"), (4, "Emma")]
        assert books.get(wants[0].id).is_public is True

    def test_occupied_slot_evicts(self, shelf: PublicShelfManager, books: BookListManager, wants):
        shelf.add_to_shelf(wants[0].id, 3)

        assert shelf.add_to_shelf(wants[1].id, 3)

        assert shelf_layout(shelf) == [(3, "Emma")]
        assert books.get(wants[0].id).is_public is False

    def test_shelved_book_moves(self, shelf: PublicShelfManager, wants):
        shelf.add_to_shelf(wants[0].id, 1)

        assert shelf.reorder_shelf(wants[0].id, 5)

        assert shelf_layout(shelf) == [(5, "Dune")]

    def test_move_into_occupied_slot(self, shelf: PublicShelfManager, wants):
        shelf.add_to_shelf(wants[0].id, 1)
        shelf.add_to_shelf(wants[1].id, 2)

        assert shelf.add_to_shelf(wants[0].id, 2)

        assert shelf_layout(shelf) == [(2, "Dune")]

    def test_same_slot_again(self, shelf: PublicShelfManager, wants):
        shelf.add_to_shelf(wants[0].id, 2)

        assert shelf.add_to_shelf(wants[0].id, 2)
        assert shelf_layout(shelf) == [(2, "Dune")]

    @pytest.mark.parametrize("position", [0, 6, -1])
    def test_position_out_of_range(self, shelf: PublicShelfManager, wants, position):
        assert shelf.add_to_shelf(wants[0].id, position) is False
        assert shelf.error == "Shelf position must be between 1 and 5"

    def test_only_want_to_read(self, shelf: PublicShelfManager, books: BookListManager):
        book = books.add(BookCreate(title="Dune", author="X", status=BookStatus.HAVE_READ))

        assert shelf.add_to_shelf(book.id, 1) is False
        assert shelf.error == "Only want-to-read books can go on the public shelf"

    def test_other_users_book(self, db, shelf: PublicShelfManager):
        bobs = BookListManager(db, BOB).add(BookCreate(title="Dune", author="X"))

        assert shelf.add_to_shelf(bobs.id, 1) is False
        assert shelf.error == "Book not found"

    def test_store_rejects_duplicate_slot(self, db, wants):
        with pytest.raises(IntegrityError):
            with db.get_session() as session:
                session.add(PublicShelfItem(user_id=ALICE, book_id=wants[0].id, position=1))
                session.add(PublicShelfItem(user_id=ALICE, book_id=wants[1].id, position=1))


class TestRemoveAndView:
    """Tests for removing and viewing shelves."""

    def test_remove(self, shelf: PublicShelfManager, books: BookListManager, wants):
        shelf.add_to_shelf(wants[0].id, 1)

        assert shelf.remove_from_shelf(wants[0].id)

        assert shelf.list_shelf() == []
        assert books.get(wants[0].id).is_public is False

    def test_remove_unshelved_is_noop(self, shelf: PublicShelfManager, wants):
        assert shelf.remove_from_shelf(wants[0].id) is True
        assert shelf.error is None

    def test_shelf_survives_status_change(self, shelf: PublicShelfManager, books: BookListManager, wants):
        shelf.add_to_shelf(wants[0].id, 1)
        books.move(wants[0].id, BookStatus.CURRENTLY_READING, 0)

        assert shelf_layout(shelf) == [(1, "Dune")]

    def test_shelf_for_username(self, db, profiles, shelf: PublicShelfManager, wants):
        shelf.add_to_shelf(wants[2].id, 1)
        shelf.add_to_shelf(wants[0].id, 2)

        viewer = PublicShelfManager(db, None)
        shown = viewer.shelf_for_username("Alice")

        assert [b.title for b in shown] == ["Ulysses", "Dune"]

    def test_shelf_for_unknown_username(self, db):
        viewer = PublicShelfManager(db, BOB)

        assert viewer.shelf_for_username("nobody") == []
        assert viewer.error == "No user found with username 'nobody'"

    def test_signed_out_list(self, db):
        assert PublicShelfManager(db, None).list_shelf() == []
