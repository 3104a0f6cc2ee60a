"""Tests for the generic Repository[T] and RepositoryFactory."""

import pytest
from sqlmodel import col

from boarddb.errors import NotFoundError
from boarddb.models import CommentRow, PostLikeRow, PostRow, UserRow
from boarddb.repository import Repository, RepositoryFactory


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def session(db):
    """Session inside a unit of work that is committed at the end of the test."""
    with db.transaction() as session:
        yield session


@pytest.fixture
def users(session) -> Repository[UserRow]:
    repo = Repository[UserRow](session, UserRow)
    for user_id in ("alice", "bob", "carol"):
        repo.create(
            UserRow(
                user_id=user_id,
                password="hash",
                email=f"{user_id}@example.com",
                name=user_id,
                phone_number="010",
                nickname=user_id.upper(),
            )
        )
    return repo


@pytest.fixture
def posts(session, users) -> Repository[PostRow]:
    repo = Repository[PostRow](session, PostRow)
    for i, owner in enumerate(["alice", "alice", "bob"]):
        repo.create(PostRow(user_id=owner, category="general" if i else "qna", title=f"P{i}"))
    return repo


# =============================================================================
# Tests
# =============================================================================


class TestRepositoryReads:
    """Tests for lookups and counts."""

    def test_get_and_get_or_raise(self, users):
        """Test get returns None and get_or_raise raises for missing rows."""
        assert users.get("alice").nickname == "ALICE"
        assert users.get("nobody") is None

        with pytest.raises(NotFoundError) as exc_info:
            users.get_or_raise("nobody")
        assert str(exc_info.value) == "user 'nobody' not found"

    def test_entity_name_defaults_to_singular_table(self, session):
        """Test the entity name defaults to the singular table name."""
        assert Repository(session, PostLikeRow).name == "post_like"
        assert Repository(session, UserRow, name="account").name == "account"

    def test_get_all_pagination(self, users):
        """Test get_all with limit and offset."""
        assert [u.user_id for u in users.get_all()] == ["alice", "bob", "carol"]
        assert [u.user_id for u in users.get_all(limit=1, offset=1)] == ["bob"]

    def test_find_by(self, posts):
        """Test find_by with filters, ordering and limit."""
        alice_posts = posts.find_by(user_id="alice")
        newest_first = posts.find_by(order_by=col(PostRow.post_id).desc(), limit=2)

        assert [p.title for p in alice_posts] == ["P0", "P1"]
        assert [p.title for p in newest_first] == ["P2", "P1"]

    def test_find_by_in_filter(self, posts):
        """Test the __in filter suffix."""
        ids = [p.post_id for p in posts.get_all()]

        found = posts.find_by(post_id__in=ids[:2])

        assert len(found) == 2

    def test_find_by_none_matches_null(self, posts):
        """Test a None filter matches NULL columns."""
        assert len(posts.find_by(content=None)) == 3

    def test_unknown_filter_rejected(self, posts):
        """Test unknown filter columns raise ValueError."""
        with pytest.raises(ValueError):
            posts.find_by(colour="red")
        with pytest.raises(ValueError):
            posts.find_by(title__like="P%")

    def test_count_and_exists(self, posts):
        """Test count and exists_by with filters."""
        assert posts.count() == 3
        assert posts.count(user_id="alice") == 2
        assert posts.exists_by(category="qna")
        assert not posts.exists_by(category="news")
        assert posts.first_by(user_id="bob").title == "P2"


class TestRepositoryWrites:
    """Tests for create, update and delete."""

    def test_create_assigns_id(self, posts):
        """Test create flushes and assigns the primary key."""
        post = posts.create(PostRow(user_id="carol", category="c", title="new"))

        assert post.post_id is not None
        assert posts.exists(post.post_id)

    def test_update(self, posts):
        """Test update persists changed attributes."""
        post = posts.first_by(title="P0")
        post.title = "renamed"

        posts.update(post)

        assert posts.exists_by(title="renamed")

    def test_delete(self, posts):
        """Test delete by id reports whether a row was removed."""
        post = posts.first_by(title="P2")

        assert posts.delete(post.post_id) is True
        assert posts.delete(post.post_id) is False
        assert posts.count() == 2

    def test_delete_where(self, posts):
        """Test delete_where returns the number of rows removed."""
        assert posts.delete_where(user_id="alice") == 2
        assert posts.count() == 1

        with pytest.raises(ValueError):
            posts.delete_where()

    def test_update_where(self, posts):
        """Test update_where returns the number of rows changed."""
        changed = posts.update_where({"category": "archive"}, user_id="alice")

        assert changed == 2
        assert posts.count(category="archive") == 2


class TestIncrement:
    """Tests for atomic counter updates."""

    def test_increment(self, posts):
        """Test increment adds to a counter atomically."""
        post = posts.first_by(title="P0")

        assert posts.increment(post.post_id, "view_count") == 1
        assert posts.increment(post.post_id, "view_count", 5) == 6
        assert post.view_count == 6

    def test_decrement_stops_at_zero(self, posts):
        """Test decrements never go below zero."""
        post = posts.first_by(title="P0")
        posts.increment(post.post_id, "like_count")

        assert posts.increment(post.post_id, "like_count", -1) == 0
        assert posts.increment(post.post_id, "like_count", -1) == 0

    def test_increment_missing_row(self, posts):
        """Test incrementing a missing row returns None."""
        assert posts.increment(999, "like_count") is None


class TestRepositoryFactory:
    """Tests for RepositoryFactory."""

    def test_for_entity_caches(self, session):
        """Test the factory returns one repository per table."""
        factory = RepositoryFactory(session)

        first = factory.for_entity(CommentRow)

        assert isinstance(first, Repository)
        assert first.model is CommentRow
        assert factory.for_entity(CommentRow) is first
        assert factory.for_entity(PostRow) is not first
