"""Data models for BoardDB.

This module defines both Pydantic validation models (for records loaded from
seed files and other external input) and SQLModel ORM models (for database
persistence).

Models are organized into two sections:
1. Pydantic models for imported records
2. SQLModel tables for database persistence

Table and column names (``users.user_id``, ``posts.post_id``,
``comments.comment_id`` ...) are shared with other consumers of the same
database and must not change.

Relationship attributes on the tables are view-only: they are populated when
read through a join or lazy load and are never written back. Writes always go
through the owning row's own key columns (``user_id``, ``post_id`` ...).
"""

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy import CheckConstraint, DateTime, LargeBinary, Text, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from boarddb.utils import parse_datetime, utc_now

_VIEW_ONLY = {"viewonly": True}

# =============================================================================
# Section 1: Pydantic Models for Imported Records
# =============================================================================


class UserRecord(BaseModel):
    """User account as it appears in a seed file.

    Attributes:
        userId: Login id (unique)
        password: Plain-text password, hashed before storage
        email: Contact email
        name: Real name
        phoneNumber: Contact phone number
        nickname: Public display name
        authority: Role name (e.g. "USER", "ADMIN")
        createdDate: Account creation timestamp
    """

    model_config = ConfigDict(extra="ignore")

    userId: str
    password: str
    email: str
    name: str
    phoneNumber: str
    nickname: str
    authority: str = "USER"
    createdDate: Optional[datetime] = None

    @field_validator("createdDate", mode="before")
    @classmethod
    def _coerce_created_date(cls, v: Optional[str]) -> Optional[datetime]:
        return parse_datetime(v)


class PostRecord(BaseModel):
    """Post as it appears in a seed file.

    ``postId`` is optional; when omitted the database assigns one.
    """

    model_config = ConfigDict(extra="ignore")

    postId: Optional[int] = None
    userId: str
    category: str
    title: str
    content: Optional[str] = None
    viewCount: int = 0
    createdDate: Optional[datetime] = None

    @field_validator("createdDate", mode="before")
    @classmethod
    def _coerce_created_date(cls, v: Optional[str]) -> Optional[datetime]:
        return parse_datetime(v)


class CommentRecord(BaseModel):
    """Comment as it appears in a seed file."""

    model_config = ConfigDict(extra="ignore")

    commentId: Optional[int] = None
    userId: str
    postId: int
    content: str
    createdDate: Optional[datetime] = None

    @field_validator("createdDate", mode="before")
    @classmethod
    def _coerce_created_date(cls, v: Optional[str]) -> Optional[datetime]:
        return parse_datetime(v)


# =============================================================================
# Section 2: SQLModel Tables for Database Persistence
# =============================================================================


class UserRow(SQLModel, table=True):
    """Persisted user account.

    Attributes:
        user_id: Login id (primary key)
        password: bcrypt password hash
        email: Contact email
        name: Real name
        phone_number: Contact phone number
        nickname: Public display name
        authority: Role name
        created_date: UTC creation timestamp
        profile_picture: Optional picture bytes
    """

    __tablename__ = "users"  # type: ignore[assignment]

    user_id: str = Field(primary_key=True, max_length=100)
    password: str = Field(max_length=64)
    email: str = Field(max_length=100)
    name: str = Field(max_length=100)
    phone_number: str = Field(max_length=20)
    nickname: str = Field(max_length=100, index=True)
    authority: str = Field(default="USER", max_length=100)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    profile_picture: Optional[bytes] = Field(default=None, sa_type=LargeBinary)

    @classmethod
    def from_pydantic(cls, user: UserRecord, password_hash: str) -> "UserRow":
        """Create UserRow from an imported UserRecord and its password hash."""
        return cls(
            user_id=user.userId,
            password=password_hash,
            email=user.email,
            name=user.name,
            phone_number=user.phoneNumber,
            nickname=user.nickname,
            authority=user.authority,
            created_date=user.createdDate or utc_now(),
        )


class PostRow(SQLModel, table=True):
    """Persisted board post.

    Attributes:
        post_id: Generated primary key
        user_id: FK to users.user_id (owner)
        category: Board category name
        title: Post title
        content: Body text
        photo: Optional attached photo bytes
        like_count: Denormalized count of post_likes rows
        view_count: Number of detail views
        created_date: UTC creation timestamp (indexed)
        user: Owner (view-only)
    """

    __tablename__ = "posts"  # type: ignore[assignment]

    post_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100, index=True)
    category: str = Field(max_length=100, index=True)
    title: str = Field(max_length=100)
    content: Optional[str] = Field(default=None, sa_type=Text)
    photo: Optional[bytes] = Field(default=None, sa_type=LargeBinary)
    like_count: int = Field(default=0)
    view_count: int = Field(default=0)
    created_date: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), index=True
    )

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)

    @classmethod
    def from_pydantic(cls, post: PostRecord) -> "PostRow":
        """Create PostRow from an imported PostRecord."""
        return cls(
            post_id=post.postId,
            user_id=post.userId,
            category=post.category,
            title=post.title,
            content=post.content,
            view_count=post.viewCount,
            created_date=post.createdDate or utc_now(),
        )


class CommentRow(SQLModel, table=True):
    """Persisted comment on a post.

    Attributes:
        comment_id: Generated primary key
        user_id: FK to users.user_id (author)
        post_id: FK to posts.post_id (indexed)
        content: Body text
        like_count: Denormalized count of comment_likes rows
        created_date: UTC creation timestamp
        user: Author (view-only)
        post: Parent post (view-only)
    """

    __tablename__ = "comments"  # type: ignore[assignment]

    comment_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100, index=True)
    post_id: int = Field(foreign_key="posts.post_id", index=True)
    content: Optional[str] = Field(default=None, sa_type=Text)
    like_count: int = Field(default=0)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    post: Optional[PostRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)

    @classmethod
    def from_pydantic(cls, comment: CommentRecord) -> "CommentRow":
        """Create CommentRow from an imported CommentRecord."""
        return cls(
            comment_id=comment.commentId,
            user_id=comment.userId,
            post_id=comment.postId,
            content=comment.content,
            created_date=comment.createdDate or utc_now(),
        )


class PostLikeRow(SQLModel, table=True):
    """A user's like on a post. One row per (user, post).

    Attributes:
        post_like_id: Generated primary key
        user_id: FK to users.user_id
        post_id: FK to posts.post_id
        created_date: UTC timestamp of the like
    """

    __tablename__ = "post_likes"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_post_likes_user_post"),
    )

    post_like_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100)
    post_id: int = Field(foreign_key="posts.post_id", index=True)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    post: Optional[PostRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)


class CommentLikeRow(SQLModel, table=True):
    """A user's like on a comment. One row per (user, comment).

    Attributes:
        comment_like_id: Generated primary key
        user_id: FK to users.user_id
        comment_id: FK to comments.comment_id
        created_date: UTC timestamp of the like
    """

    __tablename__ = "comment_likes"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "comment_id", name="uq_comment_likes_user_comment"),
    )

    comment_like_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100)
    comment_id: int = Field(foreign_key="comments.comment_id", index=True)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    comment: Optional[CommentRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)


class ScrapRow(SQLModel, table=True):
    """A user's bookmark of a post. One row per (user, post).

    Attributes:
        scrap_id: Generated primary key
        user_id: FK to users.user_id
        post_id: FK to posts.post_id
        created_date: UTC timestamp of the scrap
    """

    __tablename__ = "scraps"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_scraps_user_post"),
    )

    scrap_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100, index=True)
    post_id: int = Field(foreign_key="posts.post_id", index=True)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    post: Optional[PostRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)


class ReportReason(StrEnum):
    """Why a post was reported."""

    SPAM = "spam"
    HARASSMENT = "harassment"
    INAPPROPRIATE = "inappropriate"
    COPYRIGHT = "copyright"
    MISINFORMATION = "misinformation"
    OTHER = "other"


class ReportRow(SQLModel, table=True):
    """A user's report of a post. One row per (reporter, post).

    Attributes:
        report_id: Generated primary key
        user_id: FK to users.user_id (reporter)
        post_id: FK to posts.post_id
        report_reason: One of the ReportReason values
        report_text: Optional free-text description
        created_date: UTC timestamp of the report
    """

    __tablename__ = "reports"  # type: ignore[assignment]
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_reports_user_post"),
    )

    report_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100, index=True)
    post_id: int = Field(foreign_key="posts.post_id", index=True)
    report_reason: str = Field(max_length=20)
    report_text: Optional[str] = Field(default=None, max_length=1000)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class NotificationKind(StrEnum):
    """Which record a notification points at."""

    POST = "POST"
    COMMENT = "COMMENT"
    POST_LIKE = "POST_LIKE"
    COMMENT_LIKE = "COMMENT_LIKE"
    NONE = "NONE"


_SINGLE_TARGET_SQL = " + ".join(
    f"(CASE WHEN {column} IS NULL THEN 0 ELSE 1 END)"
    for column in ("post_id", "comment_id", "post_like_id", "comment_like_id")
) + " <= 1"


class NotificationRow(SQLModel, table=True):
    """Activity notification for a recipient user.

    At most one of post_id / comment_id / post_like_id / comment_like_id is
    set; the table carries a CHECK constraint for it.

    Attributes:
        notification_id: Generated primary key
        user_id: FK to users.user_id (recipient)
        post_id: Optional FK to posts.post_id
        comment_id: Optional FK to comments.comment_id
        post_like_id: Optional FK to post_likes.post_like_id
        comment_like_id: Optional FK to comment_likes.comment_like_id
        message: Display text
        read: Whether the recipient has read it
        created_date: UTC creation timestamp
    """

    __tablename__ = "notifications"  # type: ignore[assignment]
    __table_args__ = (
        CheckConstraint(_SINGLE_TARGET_SQL, name="ck_notifications_single_target"),
    )

    notification_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.user_id", max_length=100, index=True)
    post_id: Optional[int] = Field(default=None, foreign_key="posts.post_id")
    comment_id: Optional[int] = Field(default=None, foreign_key="comments.comment_id")
    post_like_id: Optional[int] = Field(
        default=None, foreign_key="post_likes.post_like_id"
    )
    comment_like_id: Optional[int] = Field(
        default=None, foreign_key="comment_likes.comment_like_id"
    )
    message: str = Field(max_length=255)
    read: bool = Field(default=False)
    created_date: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    user: Optional[UserRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    post: Optional[PostRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    comment: Optional[CommentRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    post_like: Optional[PostLikeRow] = Relationship(sa_relationship_kwargs=_VIEW_ONLY)
    comment_like: Optional[CommentLikeRow] = Relationship(
        sa_relationship_kwargs=_VIEW_ONLY
    )

    @property
    def kind(self) -> NotificationKind:
        """Tag derived from whichever reference column is populated."""
        if self.post_like_id is not None:
            return NotificationKind.POST_LIKE
        if self.comment_like_id is not None:
            return NotificationKind.COMMENT_LIKE
        if self.comment_id is not None:
            return NotificationKind.COMMENT
        if self.post_id is not None:
            return NotificationKind.POST
        return NotificationKind.NONE


__all__ = [
    "UserRecord",
    "PostRecord",
    "CommentRecord",
    "UserRow",
    "PostRow",
    "CommentRow",
    "PostLikeRow",
    "CommentLikeRow",
    "ScrapRow",
    "ReportReason",
    "ReportRow",
    "NotificationKind",
    "NotificationRow",
    "SQLModel",
]
