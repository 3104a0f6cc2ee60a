"""Command-line interface for BoardDB.

This module provides a Typer-based CLI for operating a board database.

Commands:
- init: Create the database schema
- status: Show configuration and per-table row counts
- seed: Load users, posts and comments from a JSON file
- show-post: Print a post detail response as JSON
- notifications: List a user's notifications
- metrics: Print Prometheus metrics

Example:
    $ boarddb init
    $ boarddb seed fixtures/board.json
    $ boarddb show-post 1 --viewer alice
    $ boarddb notifications bob
"""

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError as RecordValidationError
from rich.console import Console
from rich.table import Table

from boarddb.config import settings
from boarddb.database import DatabaseManager
from boarddb.errors import BoardError
from boarddb.logging import setup_logging as configure_logging
from boarddb.metrics import generate_metrics_output
from boarddb.models import CommentRecord, PostRecord, UserRecord
from boarddb.services import BoardService
from boarddb.utils import format_iso

# Initialize CLI app
app = typer.Typer(
    name="boarddb",
    help="Community board database: schema, seed data and inspection",
    add_completion=False,
)
console = Console()

DATABASE_URL_OPTION = typer.Option(
    None,
    "--database-url",
    "-d",
    help="SQLAlchemy database URL (defaults to the configured database)",
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Enable verbose logging",
)


# =============================================================================
# Helper Functions
# =============================================================================


def setup_logging(verbose: bool = False) -> None:
    """Send logs to stderr so command output on stdout stays clean.

    Args:
        verbose: If True, set DEBUG level; otherwise the configured level
    """
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_logs=settings.log_json,
        log_file=settings.log_file,
        sink=sys.stderr,
    )


def open_database(database_url: Optional[str]) -> DatabaseManager:
    """Create and initialize a DatabaseManager for ``database_url``."""
    db = DatabaseManager(database_url)
    db.initialize()
    return db


# =============================================================================
# CLI Commands
# =============================================================================


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Drop and recreate all board tables",
    ),
    database_url: Optional[str] = DATABASE_URL_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Initialize the database schema.

    Examples:
        # Create the schema
        $ boarddb init

        # Drop all board tables and recreate them
        $ boarddb init --force
    """
    setup_logging(verbose)

    console.print("🏗️  [bold cyan]BoardDB Initialization[/bold cyan]\n")

    db = DatabaseManager(database_url)
    db_path = db.sqlite_path
    if db_path is not None and db_path.exists() and not force:
        console.print(
            f"⚠️  Database already exists at {db_path}\n"
            "Use --force to recreate it."
        )
        return

    try:
        db.initialize()
        if force:
            db.drop_all()
            db.create_schema()
    except Exception as e:
        console.print(f"\n❌ [bold red]Initialization failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        db.close()

    console.print(f"✅ Database created at [yellow]{db_path or db.database_url}[/yellow]")
    console.print("\n✅ [bold green]Initialization complete![/bold green]")
    console.print("\nNext steps:")
    console.print("  1. Run: boarddb seed <file.json>")
    console.print("  2. Run: boarddb status")


@app.command()
def status(
    database_url: Optional[str] = DATABASE_URL_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show configuration and database statistics.

    Examples:
        $ boarddb status
    """
    setup_logging(verbose)

    console.print("📊 [bold cyan]BoardDB Status[/bold cyan]\n")

    db = DatabaseManager(database_url)
    try:
        db.initialize()
        counts = db.table_counts()
    except Exception as e:
        console.print(f"\n❌ [bold red]Status failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        db.close()

    config_table = Table(title="Configuration", show_header=False)
    config_table.add_column("Key", style="cyan")
    config_table.add_column("Value", style="yellow")

    config_table.add_row("Environment", settings.environment.value)
    config_table.add_row("Database", db.display_url())
    config_table.add_row("Default Page Size", str(settings.default_page_size))
    config_table.add_row("Max Page Size", str(settings.max_page_size))
    config_table.add_row("Log Level", settings.log_level)
    config_table.add_row("Metrics", "enabled" if settings.metrics_enabled else "disabled")

    console.print(config_table)
    console.print()

    stats_table = Table(title="Database Statistics")
    stats_table.add_column("Table", style="cyan")
    stats_table.add_column("Rows", justify="right", style="green")

    for table_name, count in counts.items():
        stats_table.add_row(table_name, f"{count:,}")

    console.print(stats_table)


@app.command()
def seed(
    file: Path = typer.Argument(..., help="JSON file with users, posts and comments"),
    database_url: Optional[str] = DATABASE_URL_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Load seed data from a JSON file.

    The file holds an object with optional "users", "posts" and "comments"
    arrays. Timestamps may be any ISO 8601 form; they are stored as UTC.

    Examples:
        $ boarddb seed fixtures/board.json
    """
    setup_logging(verbose)

    console.print(f"🌱 [bold cyan]Seeding from {file}[/bold cyan]\n")

    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
        users = [UserRecord.model_validate(u) for u in payload.get("users", [])]
        posts = [PostRecord.model_validate(p) for p in payload.get("posts", [])]
        comments = [CommentRecord.model_validate(c) for c in payload.get("comments", [])]
    except (OSError, json.JSONDecodeError, RecordValidationError) as e:
        console.print(f"\n❌ [bold red]Seed failed: {e}[/bold red]")
        raise typer.Exit(code=1)

    db = open_database(database_url)
    try:
        counts = BoardService(db).load_records(users, posts, comments)
    except BoardError as e:
        console.print(f"\n❌ [bold red]Seed failed: {e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        db.close()

    for table_name, count in counts.items():
        console.print(f"  • {table_name}: [green]{count:,}[/green]")
    console.print("\n✅ [bold green]Seed complete![/bold green]")


@app.command("show-post")
def show_post(
    post_id: int = typer.Argument(..., help="Post id"),
    viewer: Optional[str] = typer.Option(
        None,
        "--viewer",
        help="User id to render the per-viewer fields for",
    ),
    database_url: Optional[str] = DATABASE_URL_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print a post with its comments as JSON (does not count a view).

    Examples:
        $ boarddb show-post 1
        $ boarddb show-post 1 --viewer alice
    """
    setup_logging(verbose)

    db = open_database(database_url)
    try:
        detail = BoardService(db).get_post_detail(post_id, viewer_id=viewer, count_view=False)
    except BoardError as e:
        console.print(f"❌ [bold red]{e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        db.close()

    console.print_json(detail.to_json())


@app.command()
def notifications(
    user_id: str = typer.Argument(..., help="Recipient user id"),
    database_url: Optional[str] = DATABASE_URL_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List a user's notifications, newest first.

    Examples:
        $ boarddb notifications bob
    """
    setup_logging(verbose)

    db = open_database(database_url)
    try:
        board = BoardService(db)
        items = board.list_notifications(user_id)
        unread = board.unread_count(user_id).count
    except BoardError as e:
        console.print(f"❌ [bold red]{e}[/bold red]")
        raise typer.Exit(code=1)
    finally:
        db.close()

    table = Table(title=f"Notifications for {user_id} ({unread} unread)")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Kind", style="magenta")
    table.add_column("Message")
    table.add_column("Read", justify="center")
    table.add_column("Created", style="yellow")

    for item in items:
        table.add_row(
            str(item.notificationId),
            item.kind.value,
            item.message,
            "✓" if item.read else "",
            format_iso(item.createdDate) or "",
        )

    console.print(table)


@app.command()
def metrics() -> None:
    """Print Prometheus metrics collected in this process."""
    console.print(generate_metrics_output().decode("utf-8"), markup=False, highlight=False)


def main() -> None:
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
