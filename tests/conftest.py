"""Pytest configuration and shared fixtures.

This module provides fixtures for testing readingcircle: an in-memory
database, a few user ids, and managers bound to those users.
"""

from typing import Generator

import pytest

from readingcircle.books import BookListManager
from readingcircle.circle import CircleManager
from readingcircle.config import reset_config
from readingcircle.db.sqlite import Database, reset_db
from readingcircle.profiles import ProfileManager
from readingcircle.recommendations import RecommendationManager
from readingcircle.shelf import PublicShelfManager

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def db() -> Generator[Database, None, None]:
    """Create an in-memory test database."""
    reset_db()
    reset_config()

    database = Database(":memory:")
    database.create_tables()
    yield database

    database.drop_tables()
    reset_db()


# ============================================================================
# Manager Fixtures
# ============================================================================


@pytest.fixture
def books(db: Database) -> BookListManager:
    return BookListManager(db, ALICE)


@pytest.fixture
def legacy_books(db: Database) -> BookListManager:
    """Book manager issuing one commit per row write."""
    return BookListManager(db, ALICE, atomic_writes=False)


@pytest.fixture
def profiles(db: Database) -> dict[str, ProfileManager]:
    """Profile managers for alice, bob and carol, each with a profile."""
    managers = {uid: ProfileManager(db, uid) for uid in (ALICE, BOB, CAROL)}
    managers[ALICE].create_profile("alice", "Alice Adams")
    managers[BOB].create_profile("bob", "Bob Brown")
    managers[CAROL].create_profile("carol", "Carol Chen")
    return managers


@pytest.fixture
def circles(db: Database) -> dict[str, CircleManager]:
    return {uid: CircleManager(db, uid) for uid in (ALICE, BOB, CAROL)}


@pytest.fixture
def recs(db: Database) -> dict[str, RecommendationManager]:
    return {uid: RecommendationManager(db, uid) for uid in (ALICE, BOB, CAROL)}


@pytest.fixture
def shelf(db: Database) -> PublicShelfManager:
    return PublicShelfManager(db, ALICE)


@pytest.fixture
def connect(circles: dict[str, CircleManager]):
    """Return a helper that invites ``b`` from ``a`` and accepts it."""

    def _connect(a: str, b: str) -> None:
        assert circles[a].send_invite(b), circles[a].error
        invite = next(i for i in circles[b].list_pending_received() if i.from_user_id == a)
        assert circles[b].accept_invite(invite.id), circles[b].error

    return _connect
