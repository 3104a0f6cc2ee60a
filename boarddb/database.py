"""Database management for BoardDB.

This module provides:
- Engine construction for SQLite (file or in-memory) or any SQLAlchemy URL
- Foreign-key enforcement and WAL mode for SQLite
- Schema creation
- Unit-of-work transactions that commit or roll back as a whole and map
  driver errors onto the board error taxonomy

Example:
    >>> from boarddb.database import DatabaseManager
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>>
    >>> with db.transaction("create_post") as session:
    ...     session.add(PostRow(user_id="alice", category="general", title="Hi"))
    >>>
    >>> db.close()
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, func, select

from boarddb.config import settings
from boarddb.errors import ConflictError, PersistenceError
from boarddb.logging import logger
from boarddb.metrics import record_error, track_transaction
from boarddb.models import (
    CommentLikeRow,
    CommentRow,
    NotificationRow,
    PostLikeRow,
    PostRow,
    ReportRow,
    ScrapRow,
    UserRow,
)

# Tables in dependency order (referenced tables first)
TABLES: tuple[type[SQLModel], ...] = (
    UserRow,
    PostRow,
    CommentRow,
    PostLikeRow,
    CommentLikeRow,
    ScrapRow,
    ReportRow,
    NotificationRow,
)


def _sqlite_on_connect(dbapi_connection: Any, connection_record: Any, wal: bool) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON;")
    if wal:
        cursor.execute("PRAGMA journal_mode = WAL;")
        cursor.execute("PRAGMA synchronous = NORMAL;")
    cursor.close()


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """Owns the engine and hands out transactional sessions.

    Args:
        database_url: SQLAlchemy URL (defaults to settings.database_url)
        echo: Log emitted SQL (defaults to settings.sql_echo)

    Example:
        >>> db = DatabaseManager("sqlite://")
        >>> db.initialize()
        >>> with db.transaction("seed") as session:
        ...     session.add(UserRow(...))
        >>> db.table_counts()
        {'users': 1, 'posts': 0, ...}
    """

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        self.database_url = database_url or settings.database_url
        self.echo = settings.sql_echo if echo is None else echo
        self.engine: Engine | None = None

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_memory(self) -> bool:
        url = make_url(self.database_url)
        return self.is_sqlite and url.database in (None, "", ":memory:")

    @property
    def sqlite_path(self) -> Optional[Path]:
        """Database file of a file-based SQLite URL, else None."""
        if not self.is_sqlite or self.is_memory:
            return None
        return Path(str(make_url(self.database_url).database)).expanduser()

    def initialize(self) -> None:
        """Create the engine and all tables.

        Safe to call on an existing database: tables that already exist are
        left untouched.
        """
        kwargs: dict[str, Any] = {}
        if self.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
            if self.is_memory:
                # One shared connection, otherwise each session sees an empty database
                kwargs["poolclass"] = StaticPool
            elif self.sqlite_path is not None:
                self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
                # Seconds a writer waits for the SQLite write lock
                kwargs["connect_args"]["timeout"] = 30

        self.engine = create_engine(self.database_url, echo=self.echo, **kwargs)

        if self.is_sqlite:
            wal = not self.is_memory
            event.listen(
                self.engine,
                "connect",
                lambda conn, record: _sqlite_on_connect(conn, record, wal),
            )

        self.create_schema()
        logger.info(f"✅ Database initialized at {self.display_url()}")

    def create_schema(self) -> None:
        """Create any missing board tables."""
        engine = self._require_engine()
        SQLModel.metadata.create_all(engine, tables=[t.__table__ for t in TABLES])  # type: ignore[attr-defined]

    def drop_all(self) -> None:
        """Drop every board table (used by ``boarddb init --force``)."""
        engine = self._require_engine()
        SQLModel.metadata.drop_all(engine, tables=[t.__table__ for t in TABLES])  # type: ignore[attr-defined]
        logger.warning("Dropped all board tables")

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None

    # =========================================================================
    # Units of Work
    # =========================================================================

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Iterator[Session]:
        """Run a block as one unit of work.

        Commits when the block exits normally and rolls back otherwise.
        Objects stay readable after commit (``expire_on_commit=False``).

        Raises:
            ConflictError: On integrity violations (unique or foreign key)
            PersistenceError: On any other store-level failure
        """
        engine = self._require_engine()
        session = Session(engine, expire_on_commit=False)
        try:
            with track_transaction(operation):
                try:
                    yield session
                    session.commit()
                except IntegrityError as exc:
                    session.rollback()
                    record_error(exc, "database")
                    logger.warning(f"Integrity violation during {operation}: {exc.orig}")
                    raise ConflictError(f"{operation} conflicts with existing data") from exc
                except SQLAlchemyError as exc:
                    session.rollback()
                    record_error(exc, "database")
                    logger.error(f"Database failure during {operation}: {exc}")
                    raise PersistenceError(f"{operation} failed: database error") from exc
                except BaseException:
                    session.rollback()
                    raise
        finally:
            session.close()

    # =========================================================================
    # Statistics
    # =========================================================================

    def table_counts(self) -> dict[str, int]:
        """Row count per board table."""
        counts: dict[str, int] = {}
        with self.transaction("table_counts") as session:
            for table in TABLES:
                name = str(table.__tablename__)
                counts[name] = session.exec(select(func.count()).select_from(table)).one()
        return counts

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Database not initialized")
        return self.engine

    def display_url(self) -> str:
        return make_url(self.database_url).render_as_string(hide_password=True)


# =============================================================================
# Export Public API
# =============================================================================

__all__ = ["DatabaseManager", "TABLES"]
