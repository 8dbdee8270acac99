"""Manager for recommendations and recommendation requests.

Two message kinds share one addressing rule. A recommendation always has a
recipient. A request either names a recipient or, with no recipient, goes
to the sender's whole circle; it is then visible to user U only while the
sender is in U's circle.
"""

import logging
from typing import Optional, Union

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..books.manager import BookListManager
from ..circle.manager import member_ids_for
from ..db.models import utcnow_iso
from ..db.schemas import BookCreate, BookResponse, BookStatus
from ..errors import (
    ConflictError,
    PartialFailureError,
    PersistenceError,
    ReadingCircleError,
    ValidationError,
    guarded,
)
from ..manager import UserScopedManager
from ..profiles.manager import fetch_profiles
from .models import Recommendation, RecommendationRequest
from .schemas import (
    RecommendationCreate,
    RecommendationResponse,
    RecommendationStatus,
    RequestCreate,
    RequestResponse,
    RequestStatus,
)

logger = logging.getLogger(__name__)

RESPONSE_OUTCOMES = (RecommendationStatus.ADDED, RecommendationStatus.DISMISSED)


def visible_requests_filter(user_id: str, member_ids: set[str]):
    """Open requests addressed to ``user_id`` directly or broadcast by a circle member."""
    condition = RecommendationRequest.to_user_id == user_id
    if member_ids:
        condition = or_(
            condition,
            and_(
                RecommendationRequest.to_user_id.is_(None),
                RecommendationRequest.from_user_id.in_(member_ids),
            ),
        )
    return and_(condition, RecommendationRequest.status == RequestStatus.OPEN.value)


class RecommendationManager(UserScopedManager):
    """Manages recommendations sent and received by the signed-in user."""

    # -------------------------------------------------------------------------
    # Recommendations
    # -------------------------------------------------------------------------

    @guarded(default=False, message="Failed to send recommendation")
    def send_recommendation(
        self,
        to_user_id: str,
        book_title: str,
        book_author: str,
        note: Optional[str] = None,
    ) -> bool:
        """Recommend a book to another user.

        Circle membership of the recipient is not checked here; callers only
        offer circle members as recipients.
        """
        user_id = self._require_user()
        data = RecommendationCreate(
            to_user_id=to_user_id,
            book_title=book_title,
            book_author=book_author,
            note=note,
        )
        if data.to_user_id == user_id:
            raise ValidationError("You cannot recommend a book to yourself")

        with self.db.get_session() as session:
            session.add(Recommendation(
                from_user_id=user_id,
                to_user_id=data.to_user_id,
                book_title=data.book_title,
                book_author=data.book_author,
                note=data.note,
                status=RecommendationStatus.PENDING.value,
            ))

        logger.info("Recommendation '%s' sent %s -> %s", data.book_title, user_id, data.to_user_id)
        return True

    @guarded(default=False, message="Failed to update recommendation")
    def respond_to_recommendation(
        self,
        recommendation_id: str,
        outcome: Union[RecommendationStatus, str],
    ) -> bool:
        """Mark a pending recommendation as added or dismissed.

        Marking it added does not create a book; pair it with
        ``BookListManager.add`` or use :meth:`add_recommended_book`.
        """
        self._require_user()
        try:
            outcome = RecommendationStatus(outcome)
        except ValueError:
            outcome = None
        if outcome not in RESPONSE_OUTCOMES:
            raise ValidationError("Outcome must be 'added' or 'dismissed'")

        with self.db.get_session() as session:
            recommendation = self._get_received_pending(session, recommendation_id)
            recommendation.status = outcome.value
            recommendation.updated_at = utcnow_iso()

        logger.info("Recommendation %s marked %s", recommendation_id, outcome.value)
        return True

    def mark_added(self, recommendation_id: str) -> bool:
        """Mark a recommendation as added to the reading list."""
        return self.respond_to_recommendation(recommendation_id, RecommendationStatus.ADDED)

    def dismiss(self, recommendation_id: str) -> bool:
        """Dismiss a recommendation."""
        return self.respond_to_recommendation(recommendation_id, RecommendationStatus.DISMISSED)

    @guarded(default=None, message="Failed to add recommended book")
    def add_recommended_book(
        self,
        recommendation_id: str,
        books: BookListManager,
    ) -> Optional[BookResponse]:
        """Add a recommended book to want-to-read and mark the recommendation added.

        The book's ``recommended_by`` is the sender's display name.

        Returns:
            The new book, or None on failure
        """
        user_id = self._require_user()
        if books.user_id != user_id:
            raise ValidationError("Books must be added to the recipient's own lists")

        with self.db.get_session() as session:
            recommendation = self._get_received_pending(session, recommendation_id)
            sender = fetch_profiles(session, [recommendation.from_user_id]).get(
                recommendation.from_user_id
            )
            data = BookCreate(
                title=recommendation.book_title,
                author=recommendation.book_author,
                status=BookStatus.WANT_TO_READ,
                recommended_by=sender.display_name if sender else None,
            )

        book = books.add(data)
        if book is None:
            raise PersistenceError(books.error or "Failed to add book")

        try:
            with self.db.get_session() as session:
                recommendation = self._get_received_pending(session, recommendation_id)
                recommendation.status = RecommendationStatus.ADDED.value
                recommendation.updated_at = utcnow_iso()
        except (SQLAlchemyError, ReadingCircleError) as e:
            raise PartialFailureError(
                "Book added but the recommendation could not be marked as added"
            ) from e

        logger.info("Recommendation %s added as book %s", recommendation_id, book.id)
        return book

    @guarded(default=list, message="Failed to fetch recommendations")
    def incoming_recommendations(self, pending_only: bool = False) -> list[RecommendationResponse]:
        """Recommendations sent to the signed-in user, newest first."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            stmt = select(Recommendation).where(Recommendation.to_user_id == self.user_id)
            if pending_only:
                stmt = stmt.where(Recommendation.status == RecommendationStatus.PENDING.value)
            stmt = stmt.order_by(Recommendation.created_at.desc())
            return self._recommendation_responses(session, list(session.execute(stmt).scalars()))

    @guarded(default=list, message="Failed to fetch recommendations")
    def sent_recommendations(self) -> list[RecommendationResponse]:
        """Recommendations the signed-in user has sent, newest first."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            stmt = (
                select(Recommendation)
                .where(Recommendation.from_user_id == self.user_id)
                .order_by(Recommendation.created_at.desc())
            )
            return self._recommendation_responses(session, list(session.execute(stmt).scalars()))

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    @guarded(default=False, message="Failed to create request")
    def request_recommendation(
        self,
        to_user_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> bool:
        """Ask one user, or the whole circle when ``to_user_id`` is None, for ideas."""
        user_id = self._require_user()
        data = RequestCreate(to_user_id=to_user_id, note=note)
        if data.to_user_id == user_id:
            raise ValidationError("You cannot ask yourself for recommendations")

        with self.db.get_session() as session:
            session.add(RecommendationRequest(
                from_user_id=user_id,
                to_user_id=data.to_user_id,
                note=data.note,
                status=RequestStatus.OPEN.value,
            ))

        logger.info("Recommendation request from %s to %s", user_id, data.to_user_id or "circle")
        return True

    @guarded(default=False, message="Failed to close request")
    def close_request(self, request_id: str) -> bool:
        """Close one of the signed-in user's open requests."""
        user_id = self._require_user()
        with self.db.get_session() as session:
            request = session.get(RecommendationRequest, request_id)
            if request is None:
                raise PersistenceError("Request not found")
            if request.from_user_id != user_id:
                raise ValidationError("Only the sender can close a request")
            if request.status != RequestStatus.OPEN.value:
                raise ConflictError(f"Request is already {request.status}")

            request.status = RequestStatus.CLOSED.value
            request.updated_at = utcnow_iso()

        logger.info("Recommendation request %s closed", request_id)
        return True

    @guarded(default=list, message="Failed to fetch requests")
    def incoming_requests(self) -> list[RequestResponse]:
        """Open requests the signed-in user can answer, newest first.

        Direct requests to the user plus broadcasts from current circle
        members. Membership is read at call time, so removing a connection
        hides that member's broadcasts immediately.
        """
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            members = member_ids_for(session, self.user_id)
            stmt = (
                select(RecommendationRequest)
                .where(visible_requests_filter(self.user_id, members))
                .order_by(RecommendationRequest.created_at.desc())
            )
            return self._request_responses(session, list(session.execute(stmt).scalars()))

    @guarded(default=list, message="Failed to fetch requests")
    def my_requests(self) -> list[RequestResponse]:
        """Every request the signed-in user has made, newest first."""
        if not self.user_id:
            return []

        with self.db.get_session() as session:
            stmt = (
                select(RecommendationRequest)
                .where(RecommendationRequest.from_user_id == self.user_id)
                .order_by(RecommendationRequest.created_at.desc())
            )
            return self._request_responses(session, list(session.execute(stmt).scalars()))

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_received_pending(self, session: Session, recommendation_id: str) -> Recommendation:
        recommendation = session.get(Recommendation, recommendation_id)
        if recommendation is None:
            raise PersistenceError("Recommendation not found")
        if recommendation.to_user_id != self.user_id:
            raise ValidationError("Only the recipient can respond to this recommendation")
        if recommendation.status != RecommendationStatus.PENDING.value:
            raise ConflictError(f"Recommendation was already {recommendation.status}")
        return recommendation

    @staticmethod
    def _recommendation_responses(
        session: Session, recommendations: list[Recommendation]
    ) -> list[RecommendationResponse]:
        profiles = fetch_profiles(
            session,
            [r.from_user_id for r in recommendations] + [r.to_user_id for r in recommendations],
        )
        return [
            RecommendationResponse(
                id=r.id,
                from_user_id=r.from_user_id,
                to_user_id=r.to_user_id,
                book_title=r.book_title,
                book_author=r.book_author,
                note=r.note,
                status=RecommendationStatus(r.status),
                created_at=r.created_at,
                updated_at=r.updated_at,
                from_profile=profiles.get(r.from_user_id),
                to_profile=profiles.get(r.to_user_id),
            )
            for r in recommendations
        ]

    @staticmethod
    def _request_responses(
        session: Session, requests: list[RecommendationRequest]
    ) -> list[RequestResponse]:
        profiles = fetch_profiles(
            session,
            [r.from_user_id for r in requests] + [r.to_user_id for r in requests if r.to_user_id],
        )
        return [
            RequestResponse(
                id=r.id,
                from_user_id=r.from_user_id,
                to_user_id=r.to_user_id,
                note=r.note,
                status=RequestStatus(r.status),
                created_at=r.created_at,
                updated_at=r.updated_at,
                from_profile=profiles.get(r.from_user_id),
                to_profile=profiles.get(r.to_user_id) if r.to_user_id else None,
            )
            for r in requests
        ]
