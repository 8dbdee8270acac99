"""Tests for the CLI interface."""

import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from typer.testing import CliRunner

from readingcircle.books import BookListManager
from readingcircle.circle import CircleManager
from readingcircle.cli import app
from readingcircle.config import reset_config
from readingcircle.db.schemas import BookStatus
from readingcircle.db.sqlite import get_db, reset_db
from readingcircle.recommendations import RecommendationManager

ALICE = "user-alice"
BOB = "user-bob"


@pytest.fixture(autouse=True)
def setup_test_db(monkeypatch):
    """Set up a test database for each test."""
    reset_db()
    reset_config()

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    monkeypatch.setenv("READINGCIRCLE_DB_PATH", db_path)
    monkeypatch.delenv("READINGCIRCLE_USER_ID", raising=False)
    monkeypatch.delenv("READINGCIRCLE_ATOMIC_WRITES", raising=False)
    monkeypatch.delenv("READINGCIRCLE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("READINGCIRCLE_SEARCH_TIMEOUT", raising=False)

    yield

    # Cleanup
    reset_db()
    reset_config()
    if Path(db_path).exists():
        Path(db_path).unlink()


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner: CliRunner):
    """Run a command as a given user."""

    def _invoke(*args: str, user: str = ALICE):
        return runner.invoke(app, ["--user", user, *args])

    return _invoke


@pytest.fixture
def two_friends(invoke):
    """Alice and Bob with profiles, connected."""
    assert invoke("profile", "create", "alice", "Alice Adams").exit_code == 0
    assert invoke("profile", "create", "bob", "Bob Brown", user=BOB).exit_code == 0
    assert invoke("circle", "invite", "bob").exit_code == 0
    invite = CircleManager(get_db(), BOB).list_pending_received()[0]
    assert invoke("circle", "accept", invite.id[:8], user=BOB).exit_code == 0


def alice_books() -> BookListManager:
    return BookListManager(get_db(), ALICE)


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "circle" in result.stdout

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout

    def test_requires_user(self, runner: CliRunner):
        result = runner.invoke(app, ["books", "list"])
        assert result.exit_code == 1
        assert "No user selected" in result.stdout

    def test_user_from_environment(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("READINGCIRCLE_USER_ID", ALICE)
        result = runner.invoke(app, ["books", "list"])
        assert result.exit_code == 0
        assert "No books found" in result.stdout

    def test_invalid_log_level_rejected(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("READINGCIRCLE_LOG_LEVEL", "chatty")
        result = runner.invoke(app, ["--user", ALICE, "books", "list"])
        assert result.exit_code == 1
        assert "Unknown log level: CHATTY" in result.stdout

    def test_non_positive_search_timeout_rejected(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("READINGCIRCLE_SEARCH_TIMEOUT", "0")
        result = runner.invoke(app, ["--user", ALICE, "books", "list"])
        assert result.exit_code == 1
        assert "Search timeout must be positive" in result.stdout


class TestProfileCommands:
    """Tests for profile commands."""

    def test_create_and_show(self, invoke):
        result = invoke("profile", "create", "Alice", "Alice Adams")
        assert result.exit_code == 0
        assert "@alice" in result.stdout

        result = invoke("profile", "show")
        assert result.exit_code == 0
        assert "Alice Adams" in result.stdout

    def test_invalid_username(self, invoke):
        result = invoke("profile", "create", "al", "Alice")
        assert result.exit_code == 1
        assert "at least 3 characters" in result.stdout

    def test_show_without_profile(self, invoke):
        result = invoke("profile", "show")
        assert result.exit_code == 0
        assert "No profile yet" in result.stdout

    def test_rename(self, invoke):
        invoke("profile", "create", "alice", "Alice")
        result = invoke("profile", "rename", "Ally")
        assert result.exit_code == 0
        assert "Ally" in result.stdout

    def test_find(self, invoke):
        invoke("profile", "create", "alice", "Alice")

        result = invoke("profile", "find", "ALICE", user=BOB)
        assert result.exit_code == 0
        assert ALICE in result.stdout

        result = invoke("profile", "find", "nobody", user=BOB)
        assert "available" in result.stdout


class TestBookCommands:
    """Tests for book commands."""

    def test_add_and_list(self, invoke):
        result = invoke("books", "add", "Dune", "Herbert")
        assert result.exit_code == 0
        assert "Added: Dune" in result.stdout

        result = invoke("books", "list")
        assert result.exit_code == 0
        assert "Dune" in result.stdout

    def test_add_with_status_and_details(self, invoke):
        result = invoke(
            "books", "add", "Emma", "Austen",
            "--status", "have_read", "--how", "listen", "--platform", "libby",
            "--completed", "2024-02-03",
        )
        assert result.exit_code == 0

        book = alice_books().list_by_status(BookStatus.HAVE_READ)[0]
        assert book.listen_platform.value == "libby"
        assert book.completed_at.year == 2024

    def test_add_invalid_consumption(self, invoke):
        result = invoke("books", "add", "Emma", "Austen", "--how", "read", "--platform", "audible")
        assert result.exit_code == 1
        assert "listen platform" in result.stdout

    def test_priority_rejected_for_read_book(self, invoke):
        result = invoke("books", "add", "Emma", "Austen", "--status", "have_read", "--priority", "1")
        assert result.exit_code == 1
        assert "want-to-read" in result.stdout

    def test_priority_and_board(self, invoke):
        invoke("books", "add", "Dune", "Herbert")
        book = alice_books().list_all()[0]

        result = invoke("books", "priority", book.id[:8], "1")
        assert result.exit_code == 0
        assert alice_books().priority_books()[0].id == book.id

        result = invoke("books", "board")
        assert result.exit_code == 0
        assert "Up Next" in result.stdout
        assert "Dune" in result.stdout

    def test_move_to_end(self, invoke):
        invoke("books", "add", "Dune", "Herbert", "--status", "currently_reading")
        invoke("books", "add", "Emma", "Austen")
        emma = alice_books().list_by_status(BookStatus.WANT_TO_READ)[0]

        result = invoke("books", "move", emma.id, "currently_reading")
        assert result.exit_code == 0

        reading = alice_books().list_by_status(BookStatus.CURRENTLY_READING)
        assert [b.title for b in reading] == ["Dune", "Emma"]

    def test_reorder(self, invoke):
        for title in ("A", "B", "C"):
            invoke("books", "add", title, "Author")
        a, b, c = alice_books().list_by_status(BookStatus.WANT_TO_READ)

        result = invoke("books", "reorder", "want_to_read", c.id, a.id, b.id)
        assert result.exit_code == 0
        assert [x.title for x in alice_books().list_by_status(BookStatus.WANT_TO_READ)] == ["C", "A", "B"]

    def test_edit(self, invoke):
        invoke("books", "add", "Dune", "Herbert")
        book = alice_books().list_all()[0]

        result = invoke("books", "edit", book.id, "--notes", "Spice")
        assert result.exit_code == 0
        assert alice_books().get(book.id).notes == "Spice"

    def test_delete(self, invoke):
        invoke("books", "add", "Dune", "Herbert")
        book = alice_books().list_all()[0]

        result = invoke("books", "delete", book.id, "--yes")
        assert result.exit_code == 0
        assert alice_books().list_all() == []

    def test_unknown_book(self, invoke):
        result = invoke("books", "delete", "nope", "--yes")
        assert result.exit_code == 1
        assert "No book matching" in result.stdout

    def test_stats(self, invoke):
        invoke("books", "add", "Dune", "Herbert")
        result = invoke("books", "stats")
        assert result.exit_code == 0
        assert "Want to read" in result.stdout

    def test_search_and_add(self, invoke):
        response = MagicMock()
        response.json.return_value = {
            "docs": [{"key": "/works/OL1W", "title": "Dune", "author_name": ["Frank Herbert"]}],
        }
        response.raise_for_status = MagicMock()

        with patch.object(requests.Session, "get", return_value=response):
            result = invoke("books", "search", "dune", "--add", "1")

        assert result.exit_code == 0
        assert "Added: Dune" in result.stdout
        assert alice_books().list_all()[0].author == "Frank Herbert"

    def test_search_error(self, invoke):
        with patch.object(requests.Session, "get", side_effect=requests.exceptions.Timeout()):
            result = invoke("books", "search", "dune")

        assert result.exit_code == 1
        assert "timed out" in result.stdout


class TestCircleCommands:
    """Tests for circle commands."""

    def test_invite_flow(self, invoke, two_friends):
        result = invoke("circle", "members")
        assert result.exit_code == 0
        assert "Bob Brown" in result.stdout

    def test_duplicate_invite(self, invoke, two_friends):
        result = invoke("circle", "invite", "bob")
        assert result.exit_code == 1
        assert "Already in your circle" in result.stdout

    def test_pending_invites(self, invoke):
        invoke("profile", "create", "alice", "Alice Adams")
        invoke("circle", "invite", BOB, "--id")

        result = invoke("circle", "invites", user=BOB)
        assert result.exit_code == 0
        assert "Alice Adams" in result.stdout

    def test_decline(self, invoke):
        invoke("circle", "invite", BOB, "--id")
        invite = CircleManager(get_db(), BOB).list_pending_received()[0]

        result = invoke("circle", "decline", invite.id, user=BOB)
        assert result.exit_code == 0
        assert CircleManager(get_db(), BOB).list_pending_received() == []

    def test_remove(self, invoke, two_friends):
        result = invoke("circle", "remove", "bob")
        assert result.exit_code == 0
        assert not CircleManager(get_db(), ALICE).is_member(BOB)


class TestRecommendationCommands:
    """Tests for recommendation and request commands."""

    def test_send_and_add(self, invoke, two_friends):
        result = invoke("recs", "send", "bob", "Dune", "Herbert", "--note", "Spice")
        assert result.exit_code == 0

        result = invoke("recs", "inbox", user=BOB)
        assert "Dune" in result.stdout

        rec = RecommendationManager(get_db(), BOB).incoming_recommendations()[0]
        result = invoke("recs", "add", rec.id[:8], user=BOB)
        assert result.exit_code == 0

        book = BookListManager(get_db(), BOB).list_all()[0]
        assert book.recommended_by == "Alice Adams"

    def test_send_to_non_member(self, invoke):
        result = invoke("recs", "send", "stranger", "Dune", "Herbert")
        assert result.exit_code == 1
        assert "not in your circle" in result.stdout

    def test_dismiss(self, invoke, two_friends):
        invoke("recs", "send", "bob", "Dune", "Herbert")
        rec = RecommendationManager(get_db(), BOB).incoming_recommendations()[0]

        result = invoke("recs", "dismiss", rec.id, user=BOB)
        assert result.exit_code == 0
        assert RecommendationManager(get_db(), BOB).incoming_recommendations(pending_only=True) == []

    def test_ask_circle(self, invoke, two_friends):
        result = invoke("requests", "ask", "--note", "Beach reads")
        assert result.exit_code == 0

        result = invoke("requests", "inbox", user=BOB)
        assert "Beach reads" in result.stdout

        request = RecommendationManager(get_db(), ALICE).my_requests()[0]
        result = invoke("requests", "close", request.id)
        assert result.exit_code == 0

        result = invoke("requests", "inbox", user=BOB)
        assert "No open requests" in result.stdout


class TestShelfCommands:
    """Tests for shelf commands."""

    def test_add_show_and_view(self, invoke, runner: CliRunner):
        invoke("profile", "create", "alice", "Alice")
        invoke("books", "add", "Dune", "Herbert")
        book = alice_books().list_all()[0]

        result = invoke("shelf", "add", book.id[:8], "2")
        assert result.exit_code == 0

        result = invoke("shelf", "show")
        assert "Dune" in result.stdout

        result = runner.invoke(app, ["shelf", "view", "alice"])
        assert result.exit_code == 0
        assert "Dune" in result.stdout

    def test_bad_slot(self, invoke):
        invoke("books", "add", "Dune", "Herbert")
        book = alice_books().list_all()[0]

        result = invoke("shelf", "add", book.id, "9")
        assert result.exit_code == 1
        assert "between 1 and 5" in result.stdout
