"""Command-line interface for readingcircle.

Built with Typer for commands and Rich for beautiful output.
"""

import logging
from datetime import datetime
from typing import List, Optional

import typer
from pydantic import ValidationError as SchemaValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import get_config
from .db import get_db
from .db.schemas import (
    PRIORITY_SLOTS,
    BookCreate,
    BookResponse,
    BookStatus,
    BookUpdate,
    ConsumptionType,
    ListenPlatform,
    ReadFormat,
)
from .errors import describe_schema_error
from .profiles.schemas import normalize_username
from .session import UserSession
from .shelf.models import SHELF_SIZE

# Create the main app
app = typer.Typer(
    name="readingcircle",
    help="Share reading lists and recommendations with your circle.",
    no_args_is_help=True,
)

# Create sub-apps for command groups
profile_app = typer.Typer(help="Create and view profiles.")
app.add_typer(profile_app, name="profile")

books_app = typer.Typer(help="Manage your want-to-read, reading and read lists.")
app.add_typer(books_app, name="books")

circle_app = typer.Typer(help="Invite friends and manage your circle.")
app.add_typer(circle_app, name="circle")

recs_app = typer.Typer(help="Send and receive book recommendations.")
app.add_typer(recs_app, name="recs")

requests_app = typer.Typer(help="Ask your circle for recommendations.")
app.add_typer(requests_app, name="requests")

shelf_app = typer.Typer(help="Curate the public shelf on your profile.")
app.add_typer(shelf_app, name="shelf")

# Rich console for pretty output
console = Console()

# Acting user, set by the app callback
_state: dict = {"user_id": None}


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def get_session(require_user: bool = True) -> UserSession:
    """Build a session for the acting user from the configured database."""
    config = get_config()
    user_id = _state["user_id"]
    if require_user and not user_id:
        print_error("No user selected. Pass --user or set READINGCIRCLE_USER_ID.")
        raise typer.Exit(1)
    return UserSession(get_db(str(config.db_path)), user_id, atomic_writes=config.atomic_writes)


def exit_on_error(manager) -> None:
    """Print the manager's last error and exit with status 1 if there is one."""
    if manager.error:
        print_error(manager.error)
        raise typer.Exit(1)


def resolve_id(ref: str, items: list, kind: str) -> str:
    """Match a full id or a unique id prefix against listed items."""
    matches = [item.id for item in items if item.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        print_error(f"'{ref}' matches more than one {kind}; use more characters")
    else:
        print_error(f"No {kind} matching '{ref}'")
    raise typer.Exit(1)


def resolve_member(session: UserSession, ref: str) -> str:
    """Find a circle member by username or user id."""
    members = session.circle.list_members()
    exit_on_error(session.circle)
    username = normalize_username(ref)
    for member in members:
        if member.user_id == ref or member.username == username:
            return member.user_id
    print_error(f"'{ref}' is not in your circle")
    raise typer.Exit(1)


def short_id(value: str) -> str:
    return value[:8]


def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def describe_consumption(book: BookResponse) -> str:
    if book.consumption_type == ConsumptionType.LISTEN:
        platform = book.listen_platform.value if book.listen_platform else None
        return f"listen ({platform})" if platform else "listen"
    if book.consumption_type == ConsumptionType.READ:
        fmt = book.read_format.value if book.read_format else None
        return f"read ({fmt})" if fmt else "read"
    return "-"


def format_book_table(books: list[BookResponse], title: str = "Books") -> Table:
    """Create a rich table for displaying books."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Up next", justify="center")
    table.add_column("How")
    table.add_column("From", max_width=20)
    table.add_column("Public", justify="center")

    for book in books:
        table.add_row(
            short_id(book.id),
            str(book.position),
            book.title,
            book.author,
            str(book.priority) if book.priority else "-",
            describe_consumption(book),
            book.recommended_by or "-",
            "★" if book.is_public else "",
        )

    return table


def format_invite_table(invites: list, title: str, incoming: bool) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("From" if incoming else "To", style="cyan")
    table.add_column("Sent", style="dim")

    for invite in invites:
        profile = invite.from_profile if incoming else invite.to_profile
        other_id = invite.from_user_id if incoming else invite.to_user_id
        label = f"{profile.display_name} (@{profile.username})" if profile else other_id
        table.add_row(short_id(invite.id), label, format_date(invite.created_at))

    return table


def profile_label(profile, user_id: Optional[str]) -> str:
    if profile:
        return f"{profile.display_name} (@{profile.username})"
    return user_id or "your circle"


# ============================================================================
# App Callback
# ============================================================================


@app.callback()
def main_callback(
    user: Optional[str] = typer.Option(
        None, "--user", "-u", envvar="READINGCIRCLE_USER_ID", help="Acting user id"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Share reading lists and recommendations with your circle."""
    config = get_config()
    problems = config.validate()
    for problem in problems:
        print_error(problem)
    if problems:
        raise typer.Exit(1)

    level = "DEBUG" if verbose else config.log_level
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state["user_id"] = user or config.user_id


# ============================================================================
# Profile Commands
# ============================================================================


@profile_app.command("create")
def profile_create(
    username: str = typer.Argument(..., help="3-20 characters: a-z, 0-9 and _"),
    display_name: str = typer.Argument(..., help="Name shown to your circle"),
) -> None:
    """Create your profile."""
    session = get_session()
    profile = session.profiles.create_profile(username, display_name)
    exit_on_error(session.profiles)
    print_success(f"Profile created: {profile.display_name} (@{profile.username})")


@profile_app.command("show")
def profile_show() -> None:
    """Show your profile and reading summary."""
    session = get_session()
    profile = session.profiles.get_profile()
    exit_on_error(session.profiles)
    if profile is None:
        print_info("No profile yet. Create one with 'readingcircle profile create'.")
        raise typer.Exit(0)

    stats = session.books.get_stats()
    members = session.circle.list_members()
    content = (
        f"[bold]{profile.display_name}[/bold] [dim]@{profile.username}[/dim]\n"
        f"User id: {profile.user_id}\n"
        f"Circle: {len(members)} member(s)\n"
    )
    if stats:
        content += (
            f"Want to read: {stats.want_to_read} | Reading: {stats.currently_reading} | "
            f"Read: {stats.have_read}"
        )
    console.print(Panel(content, title="Profile", border_style="cyan"))


@profile_app.command("rename")
def profile_rename(
    display_name: str = typer.Argument(..., help="New display name"),
) -> None:
    """Change your display name."""
    session = get_session()
    profile = session.profiles.update_display_name(display_name)
    exit_on_error(session.profiles)
    print_success(f"Display name is now {profile.display_name}")


@profile_app.command("find")
def profile_find(
    username: str = typer.Argument(..., help="Username to look up"),
) -> None:
    """Look up a user by username."""
    session = get_session(require_user=False)
    profile = session.profiles.find_by_username(username)
    exit_on_error(session.profiles)
    if profile is None:
        print_info(f"No user named '{normalize_username(username)}'. The username is available.")
        raise typer.Exit(0)

    console.print(f"[cyan]{profile.display_name}[/cyan] @{profile.username}  [dim]{profile.user_id}[/dim]")
    if session.user_id and session.circle.is_member(profile.user_id):
        print_info("In your circle")


# ============================================================================
# Book Commands
# ============================================================================


@books_app.command("add")
def books_add(
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Author"),
    status: BookStatus = typer.Option(BookStatus.WANT_TO_READ, "--status", "-s", help="List to add to"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Personal notes"),
    consumption: Optional[ConsumptionType] = typer.Option(None, "--how", help="read or listen"),
    platform: Optional[ListenPlatform] = typer.Option(None, "--platform", help="Audiobook platform"),
    read_format: Optional[ReadFormat] = typer.Option(None, "--format", help="paper or digital"),
    recommended_by: Optional[str] = typer.Option(None, "--from", help="Who recommended it"),
    priority: Optional[int] = typer.Option(None, "--priority", "-p", help="Up-next slot 1-3"),
    completed: Optional[datetime] = typer.Option(
        None, "--completed", formats=["%Y-%m-%d"], help="Finish date for read books"
    ),
) -> None:
    """Add a book to one of your lists."""
    session = get_session()
    try:
        data = BookCreate(
            title=title,
            author=author,
            status=status,
            notes=notes,
            consumption_type=consumption,
            listen_platform=platform,
            read_format=read_format,
            recommended_by=recommended_by,
            priority=priority,
            completed_at=completed,
        )
    except SchemaValidationError as e:
        print_error(describe_schema_error(e))
        raise typer.Exit(1)

    book = session.books.add(data)
    exit_on_error(session.books)
    print_success(f"Added: {book.title} by {book.author} to {book.status.display}")


@books_app.command("list")
def books_list(
    status: Optional[BookStatus] = typer.Option(None, "--status", "-s", help="Only this list"),
) -> None:
    """List your books."""
    session = get_session()
    statuses = [status] if status else list(BookStatus)
    shown = False
    for current in statuses:
        books = session.books.list_by_status(current)
        exit_on_error(session.books)
        if books:
            console.print(format_book_table(books, title=current.display))
            shown = True

    if not shown:
        print_info("No books found.")


@books_app.command("board")
def books_board() -> None:
    """Show your whole reading board: up-next slots and all three lists."""
    session = get_session()
    state = session.refresh()
    for error in state.errors:
        print_error(error)

    slots = Table(title="Up Next", show_header=False)
    slots.add_column("Slot", style="bold yellow", justify="center")
    slots.add_column("Book", style="cyan")
    for slot, book in zip(PRIORITY_SLOTS, state.priorities):
        slots.add_row(str(slot), f"{book.title} by {book.author}" if book else "[dim]empty[/dim]")
    console.print(slots)

    for status in BookStatus:
        books = state.books.get(status, [])
        if books:
            console.print(format_book_table(books, title=f"{status.display} ({len(books)})"))
        else:
            print_info(f"{status.display}: empty")

    if state.pending_received or state.recommendations or state.requests:
        console.print()
        print_info(
            f"{len(state.pending_received)} invite(s), "
            f"{len(state.recommendations)} recommendation(s) and "
            f"{len(state.requests)} request(s) waiting"
        )


@books_app.command("edit")
def books_edit(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="New author"),
    status: Optional[BookStatus] = typer.Option(None, "--status", "-s", help="Move to list"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Personal notes"),
    consumption: Optional[ConsumptionType] = typer.Option(None, "--how", help="read or listen"),
    platform: Optional[ListenPlatform] = typer.Option(None, "--platform", help="Audiobook platform"),
    read_format: Optional[ReadFormat] = typer.Option(None, "--format", help="paper or digital"),
    recommended_by: Optional[str] = typer.Option(None, "--from", help="Who recommended it"),
) -> None:
    """Edit a book's details."""
    session = get_session()
    book_id = resolve_id(book_ref, session.books.list_all(), "book")

    changes = {
        "title": title,
        "author": author,
        "status": status,
        "notes": notes,
        "consumption_type": consumption,
        "listen_platform": platform,
        "read_format": read_format,
        "recommended_by": recommended_by,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    if not changes:
        print_info("Nothing to change.")
        raise typer.Exit(0)

    try:
        data = BookUpdate(**changes)
    except SchemaValidationError as e:
        print_error(describe_schema_error(e))
        raise typer.Exit(1)

    book = session.books.update(book_id, data)
    exit_on_error(session.books)
    print_success(f"Updated: {book.title}")


@books_app.command("move")
def books_move(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
    status: BookStatus = typer.Argument(..., help="Target list"),
    position: Optional[int] = typer.Option(None, "--position", "-p", help="Position (default: end)"),
) -> None:
    """Move a book to another list, or to a new position in its list."""
    session = get_session()
    book_id = resolve_id(book_ref, session.books.list_all(), "book")

    if position is None:
        target = session.books.list_by_status(status)
        position = max((b.position for b in target if b.id != book_id), default=-1) + 1

    session.books.move(book_id, status, position)
    exit_on_error(session.books)
    print_success(f"Moved to {status.display} at position {position}")


@books_app.command("priority")
def books_priority(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
    slot: Optional[int] = typer.Argument(None, help="Slot 1-3; omit to clear"),
) -> None:
    """Put a want-to-read book in an up-next slot."""
    session = get_session()
    book_id = resolve_id(book_ref, session.books.list_all(), "book")
    session.books.set_priority(book_id, slot)
    exit_on_error(session.books)
    print_success(f"Book is up next #{slot}" if slot else "Priority cleared")


@books_app.command("reorder")
def books_reorder(
    status: BookStatus = typer.Argument(..., help="List to reorder"),
    book_refs: List[str] = typer.Argument(..., help="Book ids in the new order"),
) -> None:
    """Reorder a list; books are numbered in the order given."""
    session = get_session()
    books = session.books.list_by_status(status)
    exit_on_error(session.books)
    ordered = [resolve_id(ref, books, "book") for ref in book_refs]

    session.books.reorder(ordered, status)
    exit_on_error(session.books)
    print_success(f"Reordered {len(ordered)} book(s) in {status.display}")


@books_app.command("delete")
def books_delete(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a book."""
    session = get_session()
    books = session.books.list_all()
    book_id = resolve_id(book_ref, books, "book")
    book = next(b for b in books if b.id == book_id)

    if not yes and not typer.confirm(f"Delete '{book.title}'?", default=False):
        print_info("Cancelled.")
        raise typer.Exit(0)

    session.books.delete(book_id)
    exit_on_error(session.books)
    print_success(f"Deleted: {book.title}")


@books_app.command("stats")
def books_stats(
    year: Optional[int] = typer.Option(None, "--year", help="Year for the finished count"),
) -> None:
    """Show reading statistics."""
    session = get_session()
    stats = session.books.get_stats(year)
    exit_on_error(session.books)

    table = Table(title="Reading Overview", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Want to read", str(stats.want_to_read))
    table.add_row("Currently reading", str(stats.currently_reading))
    table.add_row("Have read", str(stats.have_read))
    table.add_row(f"Finished in {stats.year}", str(stats.completed_this_year))

    console.print(table)


@books_app.command("search")
def books_search(
    query: str = typer.Argument(..., help="Title and/or author"),
    limit: int = typer.Option(6, "--limit", "-l", help="Max search results"),
    add: Optional[int] = typer.Option(None, "--add", help="Add result number N to a list"),
    status: BookStatus = typer.Option(BookStatus.WANT_TO_READ, "--status", "-s", help="List for --add"),
) -> None:
    """Search Open Library for a book."""
    from .api import OpenLibraryClient, OpenLibraryError

    client = OpenLibraryClient(timeout=get_config().search_timeout)
    print_info(f"Searching Open Library for: {query}...")
    try:
        results = client.search(query, limit=limit)
    except OpenLibraryError as e:
        print_error(f"Open Library error: {e}")
        raise typer.Exit(1)

    if not results:
        print_info("No results found.")
        raise typer.Exit(0)

    table = Table(title="Search Results", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan", max_width=45)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Year", justify="center")
    for index, result in enumerate(results, 1):
        table.add_row(
            str(index),
            result.title,
            result.author,
            str(result.first_publish_year) if result.first_publish_year else "-",
        )
    console.print(table)

    if add is None:
        return
    if not 1 <= add <= len(results):
        print_error(f"Pick a result between 1 and {len(results)}")
        raise typer.Exit(1)

    session = get_session()
    book = session.books.add(results[add - 1].to_book_create(status=status))
    exit_on_error(session.books)
    print_success(f"Added: {book.title} by {book.author} to {book.status.display}")


# ============================================================================
# Circle Commands
# ============================================================================


@circle_app.command("invite")
def circle_invite(
    who: str = typer.Argument(..., help="Username to invite"),
    by_id: bool = typer.Option(False, "--id", help="Treat the argument as a user id"),
) -> None:
    """Invite someone to your circle."""
    session = get_session()
    if by_id:
        session.circle.send_invite(who)
    else:
        session.circle.send_invite_by_username(who)
    exit_on_error(session.circle)
    print_success(f"Invite sent to {who}")


@circle_app.command("accept")
def circle_accept(
    invite_ref: str = typer.Argument(..., help="Invite id or id prefix"),
) -> None:
    """Accept an invite you received."""
    session = get_session()
    invite_id = resolve_id(invite_ref, session.circle.list_pending_received(), "invite")
    session.circle.accept_invite(invite_id)
    exit_on_error(session.circle)
    print_success("Invite accepted. You are now connected.")


@circle_app.command("decline")
def circle_decline(
    invite_ref: str = typer.Argument(..., help="Invite id or id prefix"),
) -> None:
    """Decline an invite you received."""
    session = get_session()
    invite_id = resolve_id(invite_ref, session.circle.list_pending_received(), "invite")
    session.circle.decline_invite(invite_id)
    exit_on_error(session.circle)
    print_success("Invite declined")


@circle_app.command("remove")
def circle_remove(
    who: str = typer.Argument(..., help="Username or user id of the member"),
) -> None:
    """Remove someone from your circle."""
    session = get_session()
    other_id = resolve_member(session, who)
    session.circle.remove_connection(other_id)
    exit_on_error(session.circle)
    print_success(f"Removed {who} from your circle")


@circle_app.command("members")
def circle_members() -> None:
    """List the people in your circle."""
    session = get_session()
    members = session.circle.list_members()
    exit_on_error(session.circle)

    if not members:
        print_info("Your circle is empty. Invite someone with 'readingcircle circle invite'.")
        return

    table = Table(title=f"Your Circle ({len(members)})", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("User id", style="dim")
    for member in members:
        table.add_row(member.label, f"@{member.username}" if member.username else "-", member.user_id)
    console.print(table)


@circle_app.command("invites")
def circle_invites() -> None:
    """Show pending invites, received and sent."""
    session = get_session()
    received = session.circle.list_pending_received()
    sent = session.circle.list_pending_sent()
    exit_on_error(session.circle)

    if not received and not sent:
        print_info("No pending invites.")
        return
    if received:
        console.print(format_invite_table(received, "Received", incoming=True))
    if sent:
        console.print(format_invite_table(sent, "Sent", incoming=False))


# ============================================================================
# Recommendation Commands
# ============================================================================


@recs_app.command("send")
def recs_send(
    to: str = typer.Argument(..., help="Username or user id of a circle member"),
    title: str = typer.Argument(..., help="Book title"),
    author: str = typer.Argument(..., help="Author"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Why they should read it"),
) -> None:
    """Recommend a book to someone in your circle."""
    session = get_session()
    to_user_id = resolve_member(session, to)
    session.recommendations.send_recommendation(to_user_id, title, author, note)
    exit_on_error(session.recommendations)
    print_success(f"Recommended {title} to {to}")


@recs_app.command("inbox")
def recs_inbox(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include added and dismissed"),
) -> None:
    """Show recommendations sent to you."""
    session = get_session()
    recs = session.recommendations.incoming_recommendations(pending_only=not show_all)
    exit_on_error(session.recommendations)

    if not recs:
        print_info("No recommendations.")
        return

    table = Table(title="Recommendations for You", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("From", style="green")
    table.add_column("Note", max_width=40)
    table.add_column("Status", style="yellow")
    for rec in recs:
        table.add_row(
            short_id(rec.id),
            f"{rec.book_title} by {rec.book_author}",
            profile_label(rec.from_profile, rec.from_user_id),
            rec.note or "-",
            rec.status.value,
        )
    console.print(table)


@recs_app.command("sent")
def recs_sent() -> None:
    """Show recommendations you have sent."""
    session = get_session()
    recs = session.recommendations.sent_recommendations()
    exit_on_error(session.recommendations)

    if not recs:
        print_info("You have not sent any recommendations.")
        return

    table = Table(title="Sent Recommendations", show_header=True, header_style="bold magenta")
    table.add_column("Book", style="cyan", max_width=40)
    table.add_column("To", style="green")
    table.add_column("Sent", style="dim")
    table.add_column("Status", style="yellow")
    for rec in recs:
        table.add_row(
            f"{rec.book_title} by {rec.book_author}",
            profile_label(rec.to_profile, rec.to_user_id),
            format_date(rec.created_at),
            rec.status.value,
        )
    console.print(table)


@recs_app.command("add")
def recs_add(
    rec_ref: str = typer.Argument(..., help="Recommendation id or id prefix"),
) -> None:
    """Add a recommended book to your want-to-read list."""
    session = get_session()
    recs = session.recommendations.incoming_recommendations(pending_only=True)
    rec_id = resolve_id(rec_ref, recs, "recommendation")

    book = session.recommendations.add_recommended_book(rec_id, session.books)
    exit_on_error(session.recommendations)
    print_success(f"Added: {book.title} by {book.author} to {book.status.display}")


@recs_app.command("dismiss")
def recs_dismiss(
    rec_ref: str = typer.Argument(..., help="Recommendation id or id prefix"),
) -> None:
    """Dismiss a recommendation."""
    session = get_session()
    recs = session.recommendations.incoming_recommendations(pending_only=True)
    rec_id = resolve_id(rec_ref, recs, "recommendation")

    session.recommendations.dismiss(rec_id)
    exit_on_error(session.recommendations)
    print_success("Recommendation dismissed")


# ============================================================================
# Request Commands
# ============================================================================


def format_request_table(requests: list, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("From", style="green")
    table.add_column("To", style="cyan")
    table.add_column("Note", max_width=50)
    table.add_column("Status", style="yellow")
    for request in requests:
        table.add_row(
            short_id(request.id),
            profile_label(request.from_profile, request.from_user_id),
            profile_label(request.to_profile, request.to_user_id),
            request.note or "-",
            request.status.value,
        )
    return table


@requests_app.command("ask")
def requests_ask(
    to: Optional[str] = typer.Option(None, "--to", help="One circle member (default: whole circle)"),
    note: Optional[str] = typer.Option(None, "--note", "-n", help="What you are in the mood for"),
) -> None:
    """Ask for book recommendations."""
    session = get_session()
    to_user_id = resolve_member(session, to) if to else None
    session.recommendations.request_recommendation(to_user_id, note)
    exit_on_error(session.recommendations)
    print_success(f"Asked {to or 'your circle'} for recommendations")


@requests_app.command("inbox")
def requests_inbox() -> None:
    """Show open requests you can answer."""
    session = get_session()
    requests = session.recommendations.incoming_requests()
    exit_on_error(session.recommendations)

    if not requests:
        print_info("No open requests.")
        return
    console.print(format_request_table(requests, "Requests for You"))


@requests_app.command("mine")
def requests_mine() -> None:
    """Show requests you have made."""
    session = get_session()
    requests = session.recommendations.my_requests()
    exit_on_error(session.recommendations)

    if not requests:
        print_info("You have not asked for recommendations yet.")
        return
    console.print(format_request_table(requests, "Your Requests"))


@requests_app.command("close")
def requests_close(
    request_ref: str = typer.Argument(..., help="Request id or id prefix"),
) -> None:
    """Close one of your open requests."""
    session = get_session()
    request_id = resolve_id(request_ref, session.recommendations.my_requests(), "request")
    session.recommendations.close_request(request_id)
    exit_on_error(session.recommendations)
    print_success("Request closed")


# ============================================================================
# Shelf Commands
# ============================================================================


@shelf_app.command("add")
def shelf_add(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
    position: int = typer.Argument(..., help=f"Slot 1-{SHELF_SIZE}"),
) -> None:
    """Put a want-to-read book on your public shelf."""
    session = get_session()
    books = session.books.list_by_status(BookStatus.WANT_TO_READ)
    book_id = resolve_id(book_ref, books, "want-to-read book")
    session.shelf.add_to_shelf(book_id, position)
    exit_on_error(session.shelf)
    print_success(f"Shelved at slot {position}")


@shelf_app.command("remove")
def shelf_remove(
    book_ref: str = typer.Argument(..., help="Book id or id prefix"),
) -> None:
    """Take a book off your public shelf."""
    session = get_session()
    entries = session.shelf.list_shelf()
    book_id = resolve_id(book_ref, [entry.book for entry in entries], "shelved book")
    session.shelf.remove_from_shelf(book_id)
    exit_on_error(session.shelf)
    print_success("Removed from shelf")


@shelf_app.command("show")
def shelf_show() -> None:
    """Show your public shelf."""
    session = get_session()
    entries = session.shelf.list_shelf()
    exit_on_error(session.shelf)

    by_position = {entry.position: entry.book for entry in entries}
    table = Table(title="Your Public Shelf", show_header=True, header_style="bold magenta")
    table.add_column("Slot", justify="center")
    table.add_column("ID", style="dim")
    table.add_column("Book", style="cyan")
    for position in range(1, SHELF_SIZE + 1):
        book = by_position.get(position)
        if book:
            table.add_row(str(position), short_id(book.id), f"{book.title} by {book.author}")
        else:
            table.add_row(str(position), "", "[dim]empty[/dim]")
    console.print(table)


@shelf_app.command("view")
def shelf_view(
    username: str = typer.Argument(..., help="Whose shelf to view"),
) -> None:
    """View another user's public shelf."""
    session = get_session(require_user=False)
    books = session.shelf.shelf_for_username(username)
    exit_on_error(session.shelf)

    if not books:
        print_info(f"@{normalize_username(username)} has nothing on their shelf yet.")
        return

    table = Table(title=f"@{normalize_username(username)}'s Shelf", show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Author", style="green")
    for book in books:
        table.add_row(book.title, book.author)
    console.print(table)


# ============================================================================
# Version Command
# ============================================================================


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"readingcircle version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
