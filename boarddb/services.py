"""Board service layer.

``BoardService`` implements every board operation (accounts, posts, comments,
likes, scraps, reports, notifications) on top of a ``DatabaseManager``. Each
public method is one unit of work: it runs inside a single transaction, tags
its log records with the operation name and a per-call request id, and counts
its outcome in the ``board_actions_total`` metric.

Counters (``like_count``, ``view_count``) are only ever changed with a single
``UPDATE ... SET col = col + delta`` statement in the same transaction as the
row that justifies the change, so concurrent likes and views never lose
updates. Like and scrap rows are unique per (user, target); a duplicate that
races past the existence check fails with ``ConflictError`` and the whole
unit of work is rolled back.

Example:
    >>> from boarddb.database import DatabaseManager
    >>> from boarddb.services import BoardService
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>> board = BoardService(db)
    >>> board.register_user("alice", "pw", "a@x.io", "Alice", "010", "alice")
    >>> post = board.create_post("alice", "general", "Hello", "First post")
    >>> board.like_post(post.post_id, "alice")
    LikeResponse(isLiked=True, likeCount=1)
"""

from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Optional

import bcrypt
from sqlalchemy import or_
from sqlmodel import Session, col, func, select

from boarddb.config import PostSort, settings
from boarddb.errors import (
    BoardError,
    ConflictError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from boarddb.interfaces import IDatabaseManager, IPasswordHasher
from boarddb.logging import logger, operation_context
from boarddb.metrics import record_action, record_error
from boarddb.models import (
    CommentLikeRow,
    CommentRecord,
    CommentRow,
    NotificationRow,
    PostLikeRow,
    PostRecord,
    PostRow,
    ReportReason,
    ReportRow,
    ScrapRow,
    UserRecord,
    UserRow,
)
from boarddb.repository import RepositoryFactory
from boarddb.schemas import (
    CommentListResponse,
    CommentResponse,
    LikeResponse,
    MyCommentResponse,
    NotificationResponse,
    PostDetailResponse,
    PostListResponse,
    PostPreview,
    ReportResponse,
    ScrapResponse,
    UnreadCountResponse,
    UserProfileResponse,
)
from boarddb.utils import page_bounds, require_text

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_PASSWORD_BYTES = 72

REPORT_TEXT_MAX_LENGTH = 1000

_POST_ORDER = {
    PostSort.LATEST: (col(PostRow.created_date).desc(), col(PostRow.post_id).desc()),
    PostSort.LIKES: (
        col(PostRow.like_count).desc(),
        col(PostRow.created_date).desc(),
        col(PostRow.post_id).desc(),
    ),
    PostSort.VIEWS: (
        col(PostRow.view_count).desc(),
        col(PostRow.created_date).desc(),
        col(PostRow.post_id).desc(),
    ),
}


# =============================================================================
# Password Hashing
# =============================================================================


class BcryptHasher:
    """bcrypt password hasher.

    Args:
        rounds: Work factor (defaults to settings.bcrypt_rounds)
    """

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds or settings.bcrypt_rounds

    def hash(self, password: str) -> str:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes"
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    def verify(self, password: str, hashed: str) -> bool:
        encoded = password.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("ascii"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


# =============================================================================
# Unit of Work
# =============================================================================


class _Work:
    """Repositories for every board table, bound to one session."""

    def __init__(self, session: Session):
        self.session = session
        self.status = "success"
        repos = RepositoryFactory(session)
        self.users = repos.for_entity(UserRow)
        self.posts = repos.for_entity(PostRow)
        self.comments = repos.for_entity(CommentRow)
        self.post_likes = repos.for_entity(PostLikeRow)
        self.comment_likes = repos.for_entity(CommentLikeRow)
        self.scraps = repos.for_entity(ScrapRow)
        self.reports = repos.for_entity(ReportRow)
        self.notifications = repos.for_entity(NotificationRow)


# =============================================================================
# Board Service
# =============================================================================


class BoardService:
    """All board operations.

    Args:
        db: Database manager providing transactions
        hasher: Password hasher (defaults to bcrypt)
        page_size: Default listing page size (defaults to settings)
        max_page_size: Largest accepted page size (defaults to settings)
    """

    def __init__(
        self,
        db: IDatabaseManager,
        hasher: Optional[IPasswordHasher] = None,
        page_size: Optional[int] = None,
        max_page_size: Optional[int] = None,
    ):
        self.db = db
        self.hasher = hasher or BcryptHasher()
        self.page_size = page_size or settings.default_page_size
        self.max_page_size = max_page_size or settings.max_page_size

    @contextmanager
    def _unit(self, action: str, viewer_id: Optional[str] = None) -> Iterator[_Work]:
        with operation_context(action, viewer_id=viewer_id):
            try:
                with self.db.transaction(action) as session:
                    work = _Work(session)
                    yield work
            except BoardError as exc:
                record_action(action, type(exc).__name__)
                if not isinstance(exc, PersistenceError):
                    record_error(exc, "service")
                    logger.warning(f"{action} rejected: {exc}")
                raise
            record_action(action, work.status)

    # =========================================================================
    # Users
    # =========================================================================

    def register_user(
        self,
        user_id: str,
        password: str,
        email: str,
        name: str,
        phone_number: str,
        nickname: str,
        authority: str = "USER",
        profile_picture: Optional[bytes] = None,
    ) -> UserProfileResponse:
        """Create an account.

        Raises:
            ValidationError: If a required field is blank or too long
            ConflictError: If the user id or nickname is already taken
        """
        user_id = require_text("user_id", user_id, max_length=100)
        nickname = require_text("nickname", nickname, max_length=100)
        if not password:
            raise ValidationError("password must not be empty")
        password_hash = self.hasher.hash(password)

        with self._unit("register_user") as w:
            if w.users.exists(user_id):
                raise ConflictError(f"user id {user_id!r} is already taken")
            if w.users.exists_by(nickname=nickname):
                raise ConflictError(f"nickname {nickname!r} is already taken")
            user = w.users.create(
                UserRow(
                    user_id=user_id,
                    password=password_hash,
                    email=require_text("email", email, max_length=100),
                    name=require_text("name", name, max_length=100),
                    phone_number=require_text("phone_number", phone_number, max_length=20),
                    nickname=nickname,
                    authority=require_text("authority", authority, max_length=100),
                    profile_picture=profile_picture or None,
                )
            )
            logger.info(f"Registered user {user_id}")
            return UserProfileResponse.from_row(user)

    def is_user_id_available(self, user_id: str) -> bool:
        with self._unit("is_user_id_available") as w:
            return not w.users.exists(user_id)

    def is_nickname_available(self, nickname: str) -> bool:
        with self._unit("is_nickname_available") as w:
            return not w.users.exists_by(nickname=nickname)

    def authenticate(self, user_id: str, password: str) -> UserRow:
        """Check credentials and return the account.

        Raises:
            NotFoundError: If the user does not exist
            PermissionDeniedError: If the password does not match
        """
        with self._unit("authenticate", user_id) as w:
            user = w.users.get_or_raise(user_id)
            if not self.hasher.verify(password, user.password):
                raise PermissionDeniedError("invalid password")
            logger.debug(f"Authenticated {user_id}")
            return user

    def get_user(self, user_id: str) -> UserRow:
        with self._unit("get_user", user_id) as w:
            return w.users.get_or_raise(user_id)

    def get_profile(self, user_id: str) -> UserProfileResponse:
        with self._unit("get_profile", user_id) as w:
            return UserProfileResponse.from_row(w.users.get_or_raise(user_id))

    def update_profile(
        self,
        user_id: str,
        *,
        email: Optional[str] = None,
        name: Optional[str] = None,
        phone_number: Optional[str] = None,
        nickname: Optional[str] = None,
        profile_picture: Optional[bytes] = None,
    ) -> UserProfileResponse:
        """Change the given profile fields; omitted fields stay as they are.

        Raises:
            NotFoundError: If the user does not exist
            ConflictError: If the new nickname belongs to someone else
        """
        with self._unit("update_profile", user_id) as w:
            user = w.users.get_or_raise(user_id)
            if nickname is not None:
                nickname = require_text("nickname", nickname, max_length=100)
                holder = w.users.first_by(nickname=nickname)
                if holder is not None and holder.user_id != user_id:
                    raise ConflictError(f"nickname {nickname!r} is already taken")
                user.nickname = nickname
            if email is not None:
                user.email = require_text("email", email, max_length=100)
            if name is not None:
                user.name = require_text("name", name, max_length=100)
            if phone_number is not None:
                user.phone_number = require_text("phone_number", phone_number, max_length=20)
            if profile_picture is not None:
                user.profile_picture = profile_picture or None
            w.users.update(user)
            logger.info(f"Updated profile of {user_id}")
            return UserProfileResponse.from_row(user)

    def get_profile_picture(self, user_id: str) -> Optional[bytes]:
        with self._unit("get_profile_picture") as w:
            return w.users.get_or_raise(user_id).profile_picture or None

    def delete_user(self, user_id: str, password: str) -> None:
        """Delete an account and everything it owns.

        Removes the user's posts (with their comments, likes, scraps and
        notifications), the user's comments on other posts, the user's likes
        (decrementing the liked rows' counters), scraps, reports and
        received notifications.

        Raises:
            NotFoundError: If the user does not exist
            PermissionDeniedError: If the password does not match
        """
        with self._unit("delete_user", user_id) as w:
            user = w.users.get_or_raise(user_id)
            if not self.hasher.verify(password, user.password):
                raise PermissionDeniedError("invalid password")

            for post in w.posts.find_by(user_id=user_id):
                self._purge_post(w, post.post_id)
            for comment in w.comments.find_by(user_id=user_id):
                self._purge_comment(w, comment.comment_id)
            for post_like in w.post_likes.find_by(user_id=user_id):
                self._remove_post_like(w, post_like)
            for comment_like in w.comment_likes.find_by(user_id=user_id):
                self._remove_comment_like(w, comment_like)
            w.scraps.delete_where(user_id=user_id)
            w.reports.delete_where(user_id=user_id)
            w.notifications.delete_where(user_id=user_id)
            w.users.delete(user_id)
            logger.info(f"Deleted user {user_id}")

    # =========================================================================
    # Posts
    # =========================================================================

    def create_post(
        self,
        user_id: str,
        category: str,
        title: str,
        content: str,
        photo: Optional[bytes] = None,
    ) -> PostRow:
        """Publish a post.

        Raises:
            ValidationError: If category, title or content is blank, or the
                title is longer than 100 characters
            NotFoundError: If the user does not exist
        """
        category = require_text("category", category, max_length=100)
        title = require_text("title", title, max_length=100)
        content = require_text("content", content)

        with self._unit("create_post", user_id) as w:
            w.users.get_or_raise(user_id)
            post = w.posts.create(
                PostRow(
                    user_id=user_id,
                    category=category,
                    title=title,
                    content=content,
                    photo=photo or None,
                )
            )
            logger.info(f"Created post {post.post_id} in {category}")
            return post

    def get_post_detail(
        self,
        post_id: int,
        viewer_id: Optional[str] = None,
        count_view: bool = True,
    ) -> PostDetailResponse:
        """Load a post with its comments as seen by ``viewer_id``.

        Args:
            post_id: Post to load
            viewer_id: Current viewer, None when anonymous
            count_view: Increment the post's view counter

        Raises:
            NotFoundError: If the post does not exist
        """
        with self._unit("get_post_detail", viewer_id) as w:
            post = w.posts.get_or_raise(post_id)
            if count_view:
                w.posts.increment(post_id, "view_count")

            comments = w.comments.find_by(
                post_id=post_id,
                order_by=(col(CommentRow.created_date), col(CommentRow.comment_id)),
            )
            liked_comment_ids: set[int] = set()
            liked = scrapped = reported = False
            if viewer_id is not None:
                liked_comment_ids = self._liked_comment_ids(
                    w, viewer_id, [c.comment_id for c in comments]
                )
                liked = w.post_likes.exists_by(user_id=viewer_id, post_id=post_id)
                scrapped = w.scraps.exists_by(user_id=viewer_id, post_id=post_id)
                reported = w.reports.exists_by(user_id=viewer_id, post_id=post_id)

            return PostDetailResponse.from_row(
                post,
                comments,
                viewer_id=viewer_id,
                liked_comment_ids=liked_comment_ids,
                liked=liked,
                scrapped=scrapped,
                report_count=w.reports.count(post_id=post_id),
                reported=reported,
            )

    def update_post(
        self,
        post_id: int,
        user_id: str,
        *,
        category: Optional[str] = None,
        title: Optional[str] = None,
        content: Optional[str] = None,
        photo: Optional[bytes] = None,
        remove_photo: bool = False,
    ) -> PostRow:
        """Edit a post. Only the owner may edit.

        Raises:
            NotFoundError: If the post does not exist
            PermissionDeniedError: If ``user_id`` does not own the post
            ValidationError: If a new value is blank or too long
        """
        if photo is not None and remove_photo:
            raise ValidationError("cannot replace and remove the photo at once")

        with self._unit("update_post", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            self._require_owner(post.user_id, user_id, "post", post_id)
            if category is not None:
                post.category = require_text("category", category, max_length=100)
            if title is not None:
                post.title = require_text("title", title, max_length=100)
            if content is not None:
                post.content = require_text("content", content)
            if photo is not None:
                post.photo = photo or None
            elif remove_photo:
                post.photo = None
            w.posts.update(post)
            logger.info(f"Updated post {post_id}")
            return post

    def delete_post(self, post_id: int, user_id: str) -> None:
        """Delete a post and its dependents. Only the owner may delete.

        Raises:
            NotFoundError: If the post does not exist
            PermissionDeniedError: If ``user_id`` does not own the post
        """
        with self._unit("delete_post", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            self._require_owner(post.user_id, user_id, "post", post_id)
            self._purge_post(w, post_id)
            logger.info(f"Deleted post {post_id}")

    def list_posts(
        self,
        page: int = 1,
        size: Optional[int] = None,
        category: Optional[str] = None,
        keyword: Optional[str] = None,
        sort: PostSort | str = PostSort.LATEST,
        viewer_id: Optional[str] = None,
    ) -> PostListResponse:
        """One page of posts.

        Args:
            page: 1-based page number
            size: Page size (defaults to the configured page size)
            category: Only posts in this category
            keyword: Case-insensitive match on title or content
            sort: LATEST, LIKES or VIEWS (ties broken by recency)
            viewer_id: Viewer for the isLiked/isScrapped flags

        Raises:
            ValidationError: On an invalid page, size or sort
        """
        offset, limit = page_bounds(
            page, self.page_size if size is None else size, self.max_page_size
        )
        try:
            order = _POST_ORDER[PostSort(str(sort).upper())]
        except ValueError as exc:
            raise ValidationError(f"unknown sort {sort!r}") from exc

        conditions: list[Any] = []
        if category:
            conditions.append(col(PostRow.category) == category)
        if keyword and keyword.strip():
            term = keyword.strip()
            conditions.append(
                or_(
                    col(PostRow.title).icontains(term, autoescape=True),
                    col(PostRow.content).icontains(term, autoescape=True),
                )
            )

        with self._unit("list_posts", viewer_id) as w:
            total = w.session.exec(
                select(func.count()).select_from(PostRow).where(*conditions)
            ).one()
            posts = w.session.exec(
                select(PostRow).where(*conditions).order_by(*order).offset(offset).limit(limit)
            ).all()
            logger.debug(f"Listed {len(posts)} of {total} posts (page {page})")
            return PostListResponse(
                posts=self._previews(w, posts, viewer_id),
                totalPostCount=total,
            )

    def list_user_posts(self, user_id: str) -> list[PostPreview]:
        """Posts written by ``user_id``, newest first."""
        with self._unit("list_user_posts", user_id) as w:
            w.users.get_or_raise(user_id)
            posts = w.posts.find_by(user_id=user_id, order_by=_POST_ORDER[PostSort.LATEST])
            return self._previews(w, posts, user_id)

    def category_stats(self) -> dict[str, int]:
        """Number of posts per category."""
        with self._unit("category_stats") as w:
            rows = w.session.exec(
                select(PostRow.category, func.count())
                .group_by(PostRow.category)
                .order_by(PostRow.category)
            ).all()
            return {category: count for category, count in rows}

    def get_post_photo(self, post_id: int) -> Optional[bytes]:
        with self._unit("get_post_photo") as w:
            return w.posts.get_or_raise(post_id).photo or None

    # =========================================================================
    # Comments
    # =========================================================================

    def add_comment(self, post_id: int, user_id: str, content: str) -> CommentResponse:
        """Comment on a post and notify its owner.

        Raises:
            ValidationError: If the content is blank
            NotFoundError: If the post or user does not exist
        """
        content = require_text("content", content)

        with self._unit("add_comment", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            author = w.users.get_or_raise(user_id)
            comment = w.comments.create(
                CommentRow(user_id=user_id, post_id=post_id, content=content)
            )
            if post.user_id != user_id:
                self._notify(
                    w,
                    post.user_id,
                    f"{author.nickname} commented on your post '{post.title}'",
                    comment_id=comment.comment_id,
                )
            logger.info(f"Added comment {comment.comment_id} to post {post_id}")
            return CommentResponse.from_row(comment, viewer_id=user_id)

    def update_comment(self, comment_id: int, user_id: str, content: str) -> CommentResponse:
        """Edit a comment. Only the author may edit."""
        content = require_text("content", content)

        with self._unit("update_comment", user_id) as w:
            comment = w.comments.get_or_raise(comment_id)
            self._require_owner(comment.user_id, user_id, "comment", comment_id)
            comment.content = content
            w.comments.update(comment)
            logger.info(f"Updated comment {comment_id}")
            liked = self._liked_comment_ids(w, user_id, [comment_id])
            return CommentResponse.from_row(comment, user_id, liked)

    def delete_comment(self, comment_id: int, user_id: str) -> None:
        """Delete a comment with its likes and notifications. Only the author may delete."""
        with self._unit("delete_comment", user_id) as w:
            comment = w.comments.get_or_raise(comment_id)
            self._require_owner(comment.user_id, user_id, "comment", comment_id)
            self._purge_comment(w, comment_id)
            logger.info(f"Deleted comment {comment_id}")

    def list_comments(
        self, post_id: int, viewer_id: Optional[str] = None
    ) -> CommentListResponse:
        """Comments of a post in creation order."""
        with self._unit("list_comments", viewer_id) as w:
            w.posts.get_or_raise(post_id)
            comments = w.comments.find_by(
                post_id=post_id,
                order_by=(col(CommentRow.created_date), col(CommentRow.comment_id)),
            )
            liked: set[int] = set()
            if viewer_id is not None:
                liked = self._liked_comment_ids(w, viewer_id, [c.comment_id for c in comments])
            return CommentListResponse(
                comments=[CommentResponse.from_row(c, viewer_id, liked) for c in comments],
                totalCount=len(comments),
            )

    def list_user_comments(self, user_id: str) -> list[MyCommentResponse]:
        """Comments written by ``user_id``, newest first."""
        with self._unit("list_user_comments", user_id) as w:
            w.users.get_or_raise(user_id)
            comments = w.comments.find_by(
                user_id=user_id,
                order_by=(col(CommentRow.created_date).desc(), col(CommentRow.comment_id).desc()),
            )
            return [MyCommentResponse.from_row(c) for c in comments]

    # =========================================================================
    # Likes
    # =========================================================================

    def like_post(self, post_id: int, user_id: str) -> LikeResponse:
        """Like a post. Liking an already-liked post changes nothing.

        Raises:
            NotFoundError: If the post or user does not exist
            ConflictError: If a concurrent like of the same post won the race
        """
        with self._unit("like_post", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            liker = w.users.get_or_raise(user_id)
            if w.post_likes.exists_by(user_id=user_id, post_id=post_id):
                w.status = "noop"
                return LikeResponse(isLiked=True, likeCount=post.like_count)

            like = w.post_likes.create(PostLikeRow(user_id=user_id, post_id=post_id))
            count = w.posts.increment(post_id, "like_count")
            if post.user_id != user_id:
                self._notify(
                    w,
                    post.user_id,
                    f"{liker.nickname} liked your post '{post.title}'",
                    post_like_id=like.post_like_id,
                )
            logger.info(f"Post {post_id} liked by {user_id}")
            return LikeResponse(isLiked=True, likeCount=count)

    def unlike_post(self, post_id: int, user_id: str) -> LikeResponse:
        """Withdraw a post like. Unliking a post that is not liked changes nothing."""
        with self._unit("unlike_post", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            like = w.post_likes.first_by(user_id=user_id, post_id=post_id)
            if like is None:
                w.status = "noop"
                return LikeResponse(isLiked=False, likeCount=post.like_count)

            count = self._remove_post_like(w, like)
            logger.info(f"Post {post_id} unliked by {user_id}")
            return LikeResponse(isLiked=False, likeCount=count)

    def like_comment(self, comment_id: int, user_id: str) -> LikeResponse:
        """Like a comment. Liking an already-liked comment changes nothing.

        Raises:
            NotFoundError: If the comment or user does not exist
            ConflictError: If a concurrent like of the same comment won the race
        """
        with self._unit("like_comment", user_id) as w:
            comment = w.comments.get_or_raise(comment_id)
            liker = w.users.get_or_raise(user_id)
            if w.comment_likes.exists_by(user_id=user_id, comment_id=comment_id):
                w.status = "noop"
                return LikeResponse(isLiked=True, likeCount=comment.like_count)

            like = w.comment_likes.create(CommentLikeRow(user_id=user_id, comment_id=comment_id))
            count = w.comments.increment(comment_id, "like_count")
            if comment.user_id != user_id:
                self._notify(
                    w,
                    comment.user_id,
                    f"{liker.nickname} liked your comment",
                    comment_like_id=like.comment_like_id,
                )
            logger.info(f"Comment {comment_id} liked by {user_id}")
            return LikeResponse(isLiked=True, likeCount=count)

    def unlike_comment(self, comment_id: int, user_id: str) -> LikeResponse:
        """Withdraw a comment like. Unliking a comment that is not liked changes nothing."""
        with self._unit("unlike_comment", user_id) as w:
            comment = w.comments.get_or_raise(comment_id)
            like = w.comment_likes.first_by(user_id=user_id, comment_id=comment_id)
            if like is None:
                w.status = "noop"
                return LikeResponse(isLiked=False, likeCount=comment.like_count)

            count = self._remove_comment_like(w, like)
            logger.info(f"Comment {comment_id} unliked by {user_id}")
            return LikeResponse(isLiked=False, likeCount=count)

    # =========================================================================
    # Scraps
    # =========================================================================

    def scrap_post(self, post_id: int, user_id: str) -> bool:
        """Bookmark a post. Returns the resulting scrapped state (always True)."""
        with self._unit("scrap_post", user_id) as w:
            w.posts.get_or_raise(post_id)
            w.users.get_or_raise(user_id)
            if w.scraps.exists_by(user_id=user_id, post_id=post_id):
                w.status = "noop"
                return True
            w.scraps.create(ScrapRow(user_id=user_id, post_id=post_id))
            logger.info(f"Post {post_id} scrapped by {user_id}")
            return True

    def unscrap_post(self, post_id: int, user_id: str) -> bool:
        """Remove a bookmark. Returns the resulting scrapped state (always False)."""
        with self._unit("unscrap_post", user_id) as w:
            w.posts.get_or_raise(post_id)
            removed = w.scraps.delete_where(user_id=user_id, post_id=post_id)
            if not removed:
                w.status = "noop"
            else:
                logger.info(f"Post {post_id} unscrapped by {user_id}")
            return False

    def toggle_scrap(self, post_id: int, user_id: str) -> bool:
        """Flip the bookmark state and return the new state."""
        with self._unit("toggle_scrap", user_id) as w:
            w.posts.get_or_raise(post_id)
            w.users.get_or_raise(user_id)
            if w.scraps.delete_where(user_id=user_id, post_id=post_id):
                return False
            w.scraps.create(ScrapRow(user_id=user_id, post_id=post_id))
            return True

    def list_scraps(self, user_id: str) -> list[ScrapResponse]:
        """Bookmarked posts of ``user_id``, most recently scrapped first."""
        with self._unit("list_scraps", user_id) as w:
            w.users.get_or_raise(user_id)
            scraps = w.scraps.find_by(
                user_id=user_id,
                order_by=(col(ScrapRow.created_date).desc(), col(ScrapRow.scrap_id).desc()),
            )
            return [ScrapResponse.from_row(s) for s in scraps]

    # =========================================================================
    # Reports
    # =========================================================================

    def report_post(
        self,
        post_id: int,
        user_id: str,
        reason: ReportReason | str,
        text: Optional[str] = None,
    ) -> ReportResponse:
        """File a report against someone else's post.

        Args:
            post_id: Reported post
            user_id: Reporting user
            reason: One of the ReportReason values (case-insensitive)
            text: Optional description, at most 1000 characters

        Raises:
            ValidationError: On an unknown reason, an overlong text, or a
                report of the reporter's own post
            NotFoundError: If the post or user does not exist
            ConflictError: If the user has already reported the post
        """
        try:
            reason = ReportReason(str(reason).strip().lower())
        except ValueError as exc:
            choices = ", ".join(r.value for r in ReportReason)
            raise ValidationError(
                f"unknown report reason {reason!r} (expected one of {choices})"
            ) from exc
        text = (text or "").strip() or None
        if text is not None and len(text) > REPORT_TEXT_MAX_LENGTH:
            raise ValidationError(
                f"report text must be at most {REPORT_TEXT_MAX_LENGTH} characters"
            )

        with self._unit("report_post", user_id) as w:
            post = w.posts.get_or_raise(post_id)
            w.users.get_or_raise(user_id)
            if post.user_id == user_id:
                raise ValidationError("cannot report your own post")
            if w.reports.exists_by(user_id=user_id, post_id=post_id):
                raise ConflictError(f"post {post_id} was already reported by {user_id!r}")
            report = w.reports.create(
                ReportRow(
                    user_id=user_id,
                    post_id=post_id,
                    report_reason=reason.value,
                    report_text=text,
                )
            )
            logger.info(f"Post {post_id} reported by {user_id} ({reason.value})")
            return ReportResponse.from_row(report)

    # =========================================================================
    # Notifications
    # =========================================================================

    def list_notifications(self, user_id: str) -> list[NotificationResponse]:
        """Notifications received by ``user_id``, newest first."""
        with self._unit("list_notifications", user_id) as w:
            w.users.get_or_raise(user_id)
            rows = w.notifications.find_by(
                user_id=user_id,
                order_by=(
                    col(NotificationRow.created_date).desc(),
                    col(NotificationRow.notification_id).desc(),
                ),
            )
            return [NotificationResponse.from_row(n) for n in rows]

    def mark_notification_read(self, notification_id: int, user_id: str) -> NotificationResponse:
        """Mark one notification read. Only its recipient may do so."""
        with self._unit("mark_notification_read", user_id) as w:
            notification = w.notifications.get_or_raise(notification_id)
            self._require_owner(notification.user_id, user_id, "notification", notification_id)
            if notification.read:
                w.status = "noop"
            else:
                notification.read = True
                w.notifications.update(notification)
            return NotificationResponse.from_row(notification)

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread notification of ``user_id`` read; returns how many changed."""
        with self._unit("mark_all_read", user_id) as w:
            w.users.get_or_raise(user_id)
            changed = w.notifications.update_where({"read": True}, user_id=user_id, read=False)
            logger.info(f"Marked {changed} notifications read for {user_id}")
            return changed

    def unread_count(self, user_id: str) -> UnreadCountResponse:
        with self._unit("unread_count", user_id) as w:
            return UnreadCountResponse(count=w.notifications.count(user_id=user_id, read=False))

    # =========================================================================
    # Bulk Loading
    # =========================================================================

    def load_records(
        self,
        users: Iterable[UserRecord] = (),
        posts: Iterable[PostRecord] = (),
        comments: Iterable[CommentRecord] = (),
    ) -> dict[str, int]:
        """Insert seed records in one transaction.

        Passwords are hashed; like and view counters start from the records
        (likes are not part of seed files, so like counts start at zero).

        Returns:
            Number of inserted rows per table
        """
        hashed_users = [(u, self.hasher.hash(u.password)) for u in users]
        with self._unit("load_records") as w:
            for user, password_hash in hashed_users:
                w.session.add(UserRow.from_pydantic(user, password_hash))
            w.session.flush()
            post_rows = [PostRow.from_pydantic(p) for p in posts]
            w.session.add_all(post_rows)
            w.session.flush()
            comment_rows = [CommentRow.from_pydantic(c) for c in comments]
            w.session.add_all(comment_rows)
            w.session.flush()
            counts = {
                "users": len(hashed_users),
                "posts": len(post_rows),
                "comments": len(comment_rows),
            }
            logger.info(f"Loaded records: {counts}")
            return counts

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_owner(owner_id: str, user_id: str, entity: str, key: Any) -> None:
        if owner_id != user_id:
            raise PermissionDeniedError(f"{user_id!r} does not own {entity} {key!r}")

    @staticmethod
    def _notify(w: _Work, recipient_id: str, message: str, **target: Optional[int]) -> NotificationRow:
        referenced = [name for name, value in target.items() if value is not None]
        if len(referenced) > 1:
            raise ValidationError(
                f"notification may reference at most one target, got {referenced}"
            )
        return w.notifications.create(
            NotificationRow(user_id=recipient_id, message=message[:255], **target)
        )

    @staticmethod
    def _liked_comment_ids(w: _Work, user_id: str, comment_ids: Sequence[Optional[int]]) -> set[int]:
        ids = [i for i in comment_ids if i is not None]
        if not ids:
            return set()
        return {
            like.comment_id
            for like in w.comment_likes.find_by(user_id=user_id, comment_id__in=ids)
        }

    def _previews(
        self, w: _Work, posts: Sequence[PostRow], viewer_id: Optional[str]
    ) -> list[PostPreview]:
        ids = [p.post_id for p in posts]
        if not ids:
            return []
        comment_counts: dict[int, int] = dict(
            w.session.exec(
                select(CommentRow.post_id, func.count())
                .where(col(CommentRow.post_id).in_(ids))
                .group_by(CommentRow.post_id)
            ).all()
        )
        report_counts: dict[int, int] = dict(
            w.session.exec(
                select(ReportRow.post_id, func.count())
                .where(col(ReportRow.post_id).in_(ids))
                .group_by(ReportRow.post_id)
            ).all()
        )
        liked: set[int] = set()
        scrapped: set[int] = set()
        if viewer_id is not None:
            liked = {like.post_id for like in w.post_likes.find_by(user_id=viewer_id, post_id__in=ids)}
            scrapped = {s.post_id for s in w.scraps.find_by(user_id=viewer_id, post_id__in=ids)}
        return [
            PostPreview.from_row(
                p,
                comment_count=comment_counts.get(p.post_id, 0),
                liked=p.post_id in liked,
                scrapped=p.post_id in scrapped,
                report_count=report_counts.get(p.post_id, 0),
            )
            for p in posts
        ]

    @staticmethod
    def _remove_post_like(w: _Work, like: PostLikeRow) -> int:
        w.notifications.delete_where(post_like_id=like.post_like_id)
        w.post_likes.delete(like.post_like_id)
        return w.posts.increment(like.post_id, "like_count", -1) or 0

    @staticmethod
    def _remove_comment_like(w: _Work, like: CommentLikeRow) -> int:
        w.notifications.delete_where(comment_like_id=like.comment_like_id)
        w.comment_likes.delete(like.comment_like_id)
        return w.comments.increment(like.comment_id, "like_count", -1) or 0

    @staticmethod
    def _purge_comment(w: _Work, comment_id: int) -> None:
        like_ids = [like.comment_like_id for like in w.comment_likes.find_by(comment_id=comment_id)]
        w.notifications.delete_where(comment_id=comment_id)
        if like_ids:
            w.notifications.delete_where(comment_like_id__in=like_ids)
        w.comment_likes.delete_where(comment_id=comment_id)
        w.comments.delete(comment_id)

    @staticmethod
    def _purge_post(w: _Work, post_id: int) -> None:
        comment_ids = [c.comment_id for c in w.comments.find_by(post_id=post_id)]
        post_like_ids = [like.post_like_id for like in w.post_likes.find_by(post_id=post_id)]
        comment_like_ids = (
            [like.comment_like_id for like in w.comment_likes.find_by(comment_id__in=comment_ids)]
            if comment_ids
            else []
        )

        w.notifications.delete_where(post_id=post_id)
        if comment_ids:
            w.notifications.delete_where(comment_id__in=comment_ids)
        if post_like_ids:
            w.notifications.delete_where(post_like_id__in=post_like_ids)
        if comment_like_ids:
            w.notifications.delete_where(comment_like_id__in=comment_like_ids)
        w.scraps.delete_where(post_id=post_id)
        w.reports.delete_where(post_id=post_id)
        w.post_likes.delete_where(post_id=post_id)
        if comment_ids:
            w.comment_likes.delete_where(comment_id__in=comment_ids)
        w.comments.delete_where(post_id=post_id)
        w.posts.delete(post_id)


__all__ = ["BoardService", "BcryptHasher", "BCRYPT_MAX_PASSWORD_BYTES"]
