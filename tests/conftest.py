"""Pytest configuration and shared fixtures for BoardDB tests."""

import os
import sys
import tempfile
from collections.abc import Generator
from datetime import UTC, datetime

# Settings are read at import time; select the testing profile first
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="boarddb-test-"))

import pytest
from loguru import logger

from boarddb.database import DatabaseManager
from boarddb.models import CommentRow, PostRow, UserRow
from boarddb.services import BcryptHasher, BoardService


# =============================================================================
# Test Configuration
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Configure loguru for tests to avoid I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
        enqueue=True,
    )
    yield
    logger.remove()


@pytest.fixture(scope="function", autouse=True)
def reset_loguru():
    """Reset loguru handlers before each test to prevent I/O errors."""
    logger.remove()
    logger.add(
        sys.stderr,
        level="ERROR",
        format="{time} {level} {message}",
        catch=True,
        enqueue=True,
    )
    yield
    logger.remove()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db() -> Generator[DatabaseManager, None, None]:
    """Initialized in-memory database."""
    manager = DatabaseManager("sqlite://")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def board(db: DatabaseManager) -> BoardService:
    """Board service over the in-memory database with a fast hasher."""
    return BoardService(db, hasher=BcryptHasher(rounds=4))


@pytest.fixture
def file_db(tmp_path) -> Generator[DatabaseManager, None, None]:
    """Initialized file-based SQLite database (WAL journal, pooled connections)."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'board.db'}")
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def file_board(file_db: DatabaseManager) -> BoardService:
    """Board service over the file-based database."""
    return BoardService(file_db, hasher=BcryptHasher(rounds=4))


def register(board: BoardService, user_id: str, nickname: str | None = None, **kwargs):
    """Register a user with throwaway contact details."""
    return board.register_user(
        user_id=user_id,
        password=kwargs.pop("password", f"{user_id}-pw"),
        email=f"{user_id}@example.com",
        name=user_id.title(),
        phone_number="010-0000-0000",
        nickname=nickname or user_id,
        **kwargs,
    )


@pytest.fixture
def make_user(board: BoardService):
    """Callable registering a user: make_user(user_id, nickname=None, **kwargs)."""
    return lambda user_id, nickname=None, **kwargs: register(board, user_id, nickname, **kwargs)


@pytest.fixture
def seeded_board(board: BoardService) -> dict:
    """Board with alice, bob and carol; alice's post, bob's comment on it.

    Returns:
        Dictionary of the created ids: post_id, comment_id
    """
    register(board, "alice", profile_picture=b"\x89PNG-alice")
    register(board, "bob")
    register(board, "carol")
    post = board.create_post("alice", "general", "Hi", "Hello")
    comment = board.add_comment(post.post_id, "bob", "nice")
    return {"post_id": post.post_id, "comment_id": comment.commentId}


# =============================================================================
# Unattached Row Fixtures (for projection builders)
# =============================================================================


@pytest.fixture
def alice() -> UserRow:
    """User alice with a profile picture."""
    return UserRow(
        user_id="alice",
        password="x",
        email="alice@example.com",
        name="Alice",
        phone_number="010",
        nickname="Alice N",
        profile_picture=b"\x89PNG",
        created_date=datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def bob() -> UserRow:
    """User bob without a profile picture."""
    return UserRow(
        user_id="bob",
        password="x",
        email="bob@example.com",
        name="Bob",
        phone_number="010",
        nickname="Bobby",
        created_date=datetime(2024, 1, 2, 9, 0, tzinfo=UTC),
    )


@pytest.fixture
def hi_post(alice: UserRow) -> PostRow:
    """Post{postId=1, alice, general, "Hi", "Hello", no photo, 3 likes, 10 views}."""
    post = PostRow(
        post_id=1,
        user_id="alice",
        category="general",
        title="Hi",
        content="Hello",
        photo=b"",
        like_count=3,
        view_count=10,
        created_date=datetime(2024, 1, 15, 10, 30, 0, 123456, tzinfo=UTC),
    )
    post.user = alice
    return post


@pytest.fixture
def nice_comment(bob: UserRow) -> CommentRow:
    """Comment{commentId=5, bob, "nice", 0 likes} on post 1."""
    comment = CommentRow(
        comment_id=5,
        user_id="bob",
        post_id=1,
        content="nice",
        like_count=0,
        created_date=datetime(2024, 1, 15, 11, 0, 0, 654321, tzinfo=UTC),
    )
    comment.user = bob
    return comment
