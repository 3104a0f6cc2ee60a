"""Tests for DatabaseManager: schema, transactions and error mapping."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import inspect, text
from sqlmodel import select
from sqlalchemy.exc import OperationalError

from boarddb.database import TABLES, DatabaseManager
from boarddb.errors import ConflictError, NotFoundError, PersistenceError
from boarddb.models import NotificationRow, PostRow, UserRow
from boarddb.utils import parse_datetime


def user_row(user_id: str) -> UserRow:
    return UserRow(
        user_id=user_id,
        password="hash",
        email=f"{user_id}@example.com",
        name=user_id,
        phone_number="010",
        nickname=user_id,
    )


class TestInitialization:
    """Tests for engine and schema creation."""

    def test_tables_created(self, db):
        """Test every board table is created."""
        names = set(inspect(db.engine).get_table_names())

        assert names == {
            "users",
            "posts",
            "comments",
            "post_likes",
            "comment_likes",
            "scraps",
            "reports",
            "notifications",
        }
        assert len(TABLES) == 8

    def test_wire_column_names(self, db):
        """Test columns and keys use the wire names."""
        inspector = inspect(db.engine)
        columns = {c["name"] for c in inspector.get_columns("notifications")}

        assert {"user_id", "post_id", "comment_id", "post_like_id", "comment_like_id"} <= columns
        assert inspector.get_pk_constraint("comments")["constrained_columns"] == ["comment_id"]

    def test_foreign_keys_enforced(self, db):
        """Test the foreign_keys pragma is on."""
        with db.engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_requires_initialize(self):
        """Test transactions fail before initialize()."""
        manager = DatabaseManager("sqlite://")

        with pytest.raises(RuntimeError, match="not initialized"):
            with manager.transaction():
                pass

    def test_file_database(self, tmp_path):
        """Test a file database creates its parent directory."""
        path = tmp_path / "nested" / "board.db"
        manager = DatabaseManager(f"sqlite:///{path}")

        assert manager.sqlite_path == path
        manager.initialize()
        assert path.exists()
        manager.close()
        assert manager.engine is None

    def test_memory_detection(self):
        """Test in-memory URLs are recognized."""
        assert DatabaseManager("sqlite://").is_memory
        assert DatabaseManager("sqlite:///:memory:").is_memory
        assert DatabaseManager("sqlite://").sqlite_path is None

    def test_display_url_hides_password(self):
        """Test display_url masks the password."""
        manager = DatabaseManager("postgresql://board:secret@db/board")

        assert "secret" not in manager.display_url()

    def test_drop_and_recreate(self, db):
        """Test dropping and recreating the schema empties it."""
        with db.transaction() as session:
            session.add(user_row("alice"))

        db.drop_all()
        db.create_schema()

        assert db.table_counts()["users"] == 0


class TestTransactions:
    """Tests for the unit-of-work context manager."""

    def test_commit(self, db):
        """Test a clean block commits."""
        with db.transaction("create") as session:
            session.add(user_row("alice"))

        assert db.table_counts()["users"] == 1

    def test_objects_readable_after_commit(self, db):
        """Test attributes stay loaded after commit."""
        with db.transaction() as session:
            user = user_row("alice")
            session.add(user)

        assert user.nickname == "alice"

    def test_rollback_on_error(self, db):
        """Test an exception rolls the unit of work back."""
        with pytest.raises(NotFoundError):
            with db.transaction() as session:
                session.add(user_row("alice"))
                session.flush()
                raise NotFoundError("post", 1)

        assert db.table_counts()["users"] == 0

    def test_integrity_error_maps_to_conflict(self, db):
        """Test duplicate keys raise ConflictError."""
        with db.transaction() as session:
            session.add(user_row("alice"))

        with pytest.raises(ConflictError):
            with db.transaction() as session:
                session.add(user_row("alice"))

    def test_foreign_key_violation_is_conflict(self, db):
        """Test a dangling foreign key raises ConflictError."""
        with pytest.raises(ConflictError):
            with db.transaction() as session:
                session.add(PostRow(user_id="ghost", category="c", title="t"))

    def test_notification_single_target_check(self, db):
        """Test the at-most-one-target CHECK rejects the whole unit."""
        with db.transaction() as session:
            session.add(user_row("alice"))
            session.flush()
            post = PostRow(user_id="alice", category="c", title="t")
            session.add(post)

        with pytest.raises(ConflictError):
            with db.transaction() as session:
                session.add(
                    NotificationRow(
                        user_id="alice", post_id=post.post_id, post_like_id=None,
                        comment_id=None, message="ok",
                    )
                )
                session.flush()
                session.add(
                    NotificationRow(
                        user_id="alice", post_id=post.post_id, comment_id=post.post_id,
                        message="two targets",
                    )
                )

        assert db.table_counts()["notifications"] == 0

    def test_other_database_errors_map_to_persistence(self, db, mocker):
        """Test other database errors raise PersistenceError."""
        mocker.patch(
            "sqlmodel.Session.commit",
            side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")),
        )

        with pytest.raises(PersistenceError):
            with db.transaction() as session:
                session.add(user_row("alice"))

    def test_table_counts(self, db):
        """Test table_counts covers every table."""
        counts = db.table_counts()

        assert set(counts) == {t.__tablename__ for t in TABLES}
        assert all(v == 0 for v in counts.values())


class TestTimestamps:
    """Tests for timezone-aware timestamp columns."""

    @pytest.mark.parametrize("table", TABLES, ids=lambda t: t.__tablename__)
    def test_created_date_is_timezone_aware(self, table):
        """Test created_date columns are declared with timezone=True."""
        column = table.__table__.c.get("created_date")

        if column is None:
            pytest.skip(f"{table.__tablename__} has no created_date")
        assert column.type.timezone is True

    def test_aware_values_round_trip(self, file_db):
        """Test an aware UTC timestamp is written and read back unchanged."""
        written = datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=timezone.utc)
        with file_db.transaction() as session:
            session.add(user_row("alice"))
            session.add(PostRow(user_id="alice", category="c", title="t", created_date=written))

        with file_db.transaction() as session:
            stored = session.exec(select(PostRow)).one().created_date

        assert parse_datetime(stored) == written

    def test_service_write_returns_utc(self, file_board):
        """Test a post written by the service reads back as current UTC."""
        file_board.register_user("alice", "pw", "a@x.io", "Alice", "010", "alice")
        post = file_board.create_post("alice", "general", "Hi", "Hello")

        detail = file_board.get_post_detail(post.post_id, count_view=False)

        assert detail.createdDate.tzinfo == timezone.utc
        assert abs(datetime.now(timezone.utc) - detail.createdDate).total_seconds() < 60
