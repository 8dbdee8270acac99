"""Tests for RecommendationManager: recommendations and requests."""

import pytest

from readingcircle.books import BookListManager
from readingcircle.db.schemas import BookStatus
from readingcircle.errors import PersistenceError
from readingcircle.recommendations import (
    Recommendation,
    RecommendationManager,
    RecommendationStatus,
    RequestStatus,
)

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"


@pytest.fixture
def circle_of_three(profiles, connect):
    """Alice is connected to Bob; Bob is connected to Carol."""
    connect(ALICE, BOB)
    connect(BOB, CAROL)


def only_pending(recs, user: str):
    pending = recs[user].incoming_recommendations(pending_only=True)
    assert len(pending) == 1
    return pending[0]


class TestSendRecommendation:
    """Tests for sending recommendations."""

    def test_dune_scenario(self, recs, circle_of_three):
        assert recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")

        pending = recs[BOB].incoming_recommendations(pending_only=True)
        assert len(pending) == 1
        assert pending[0].book_title == "Dune"
        assert pending[0].status == RecommendationStatus.PENDING
        assert pending[0].note is None
        assert pending[0].from_profile.display_name == "Alice Adams"

        assert recs[BOB].dismiss(pending[0].id)

        assert recs[BOB].incoming_recommendations(pending_only=True) == []
        everything = recs[BOB].incoming_recommendations()
        assert everything[0].status == RecommendationStatus.DISMISSED

    def test_sent_recommendations(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert", note="  Spice!  ")

        sent = recs[ALICE].sent_recommendations()
        assert len(sent) == 1
        assert sent[0].note == "Spice!"
        assert sent[0].to_profile.username == "bob"

    def test_newest_first(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        recs[ALICE].send_recommendation(BOB, "Emma", "Austen")

        assert [r.book_title for r in recs[BOB].incoming_recommendations()] == ["Emma", "Dune"]

    def test_cannot_recommend_to_self(self, recs):
        assert recs[ALICE].send_recommendation(ALICE, "Dune", "Herbert") is False
        assert recs[ALICE].error == "You cannot recommend a book to yourself"

    def test_title_required(self, recs):
        assert recs[ALICE].send_recommendation(BOB, "   ", "Herbert") is False
        assert recs[ALICE].error is not None

    def test_signed_out(self, db):
        manager = RecommendationManager(db, None)
        assert manager.send_recommendation(BOB, "Dune", "Herbert") is False
        assert manager.incoming_recommendations() == []


class TestRespondToRecommendation:
    """Tests for adding and dismissing recommendations."""

    def test_mark_added(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)

        assert recs[BOB].mark_added(rec.id)
        assert recs[BOB].incoming_recommendations()[0].status == RecommendationStatus.ADDED

    def test_terminal_once_responded(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)
        recs[BOB].dismiss(rec.id)

        assert recs[BOB].mark_added(rec.id) is False
        assert recs[BOB].error == "Recommendation was already dismissed"

    def test_only_recipient_can_respond(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)

        assert recs[ALICE].dismiss(rec.id) is False
        assert recs[ALICE].error == "Only the recipient can respond to this recommendation"

    def test_invalid_outcome(self, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)

        assert recs[BOB].respond_to_recommendation(rec.id, "pending") is False
        assert recs[BOB].respond_to_recommendation(rec.id, "loved") is False
        assert recs[BOB].error == "Outcome must be 'added' or 'dismissed'"

    def test_missing_recommendation(self, recs):
        assert recs[BOB].dismiss("missing") is False
        assert recs[BOB].error == "Recommendation not found"


class TestAddRecommendedBook:
    """Tests for importing a recommendation into the reading list."""

    def test_adds_book_and_marks_added(self, db, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)
        books = BookListManager(db, BOB)

        book = recs[BOB].add_recommended_book(rec.id, books)

        assert book.title == "Dune"
        assert book.status == BookStatus.WANT_TO_READ
        assert book.recommended_by == "Alice Adams"
        assert recs[BOB].incoming_recommendations()[0].status == RecommendationStatus.ADDED

    def test_requires_own_book_list(self, db, recs, circle_of_three):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)

        assert recs[BOB].add_recommended_book(rec.id, BookListManager(db, CAROL)) is None
        assert BookListManager(db, CAROL).list_all() == []

    def test_transition_failure_after_add_is_partial(self, db, recs, circle_of_three, monkeypatch):
        recs[ALICE].send_recommendation(BOB, "Dune", "Herbert")
        rec = only_pending(recs, BOB)
        books = BookListManager(db, BOB)
        real = RecommendationManager._get_received_pending
        calls = []

        def flaky(self, session, recommendation_id):
            calls.append(recommendation_id)
            if len(calls) == 2:
                raise PersistenceError("connection lost")
            return real(self, session, recommendation_id)

        monkeypatch.setattr(RecommendationManager, "_get_received_pending", flaky)

        assert recs[BOB].add_recommended_book(rec.id, books) is None
        assert recs[BOB].error == "Book added but the recommendation could not be marked as added"
        assert [b.title for b in books.list_all()] == ["Dune"]

        with db.get_session() as session:
            assert session.get(Recommendation, rec.id).status == "pending"


class TestRequests:
    """Tests for recommendation requests and broadcast visibility."""

    def test_direct_request(self, recs, circle_of_three):
        assert recs[ALICE].request_recommendation(BOB, "Something cozy")

        incoming = recs[BOB].incoming_requests()
        assert len(incoming) == 1
        assert incoming[0].note == "Something cozy"
        assert incoming[0].is_broadcast is False
        assert incoming[0].from_profile.username == "alice"
        assert recs[CAROL].incoming_requests() == []

    def test_broadcast_visible_to_circle_only(self, recs, circle_of_three):
        assert recs[BOB].request_recommendation(note="Anything")

        assert len(recs[ALICE].incoming_requests()) == 1
        assert len(recs[CAROL].incoming_requests()) == 1
        assert recs[BOB].incoming_requests() == []

    def test_broadcast_not_visible_beyond_circle(self, recs, circle_of_three):
        recs[ALICE].request_recommendation()

        assert len(recs[BOB].incoming_requests()) == 1
        assert recs[CAROL].incoming_requests() == []

    def test_broadcast_hidden_after_connection_removed(self, recs, circles, circle_of_three):
        recs[BOB].request_recommendation()
        circles[ALICE].remove_connection(BOB)

        assert recs[ALICE].incoming_requests() == []
        assert len(recs[CAROL].incoming_requests()) == 1

    def test_my_requests_and_close(self, recs, circle_of_three):
        recs[ALICE].request_recommendation()
        request = recs[ALICE].my_requests()[0]
        assert request.is_broadcast
        assert request.status == RequestStatus.OPEN

        assert recs[ALICE].close_request(request.id)

        assert recs[ALICE].my_requests()[0].status == RequestStatus.CLOSED
        assert recs[BOB].incoming_requests() == []

    def test_close_twice(self, recs):
        recs[ALICE].request_recommendation(BOB)
        request = recs[ALICE].my_requests()[0]
        recs[ALICE].close_request(request.id)

        assert recs[ALICE].close_request(request.id) is False
        assert recs[ALICE].error == "Request is already closed"

    def test_only_sender_can_close(self, recs):
        recs[ALICE].request_recommendation(BOB)
        request = recs[ALICE].my_requests()[0]

        assert recs[BOB].close_request(request.id) is False
        assert recs[BOB].error == "Only the sender can close a request"

    def test_cannot_ask_self(self, recs):
        assert recs[ALICE].request_recommendation(ALICE) is False
        assert recs[ALICE].error == "You cannot ask yourself for recommendations"

    def test_blank_recipient_is_broadcast(self, recs):
        recs[ALICE].request_recommendation("  ", "  ")

        request = recs[ALICE].my_requests()[0]
        assert request.to_user_id is None
        assert request.note is None
