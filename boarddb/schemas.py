"""Client-facing response models for BoardDB.

Each response is a Pydantic model whose field names are the JSON property
names consumed by API clients (camelCase, with ``isMine`` / ``isLiked`` /
``isScrapped`` spelled exactly so). The ``from_row`` classmethods are the
projection builders: they take persisted rows plus the current viewer's
identity and compute the per-viewer fields, which are never stored.

Builders expect their relationships to be resolved (a post's owner, a
comment's author) and raise PreconditionError otherwise. Only the picture URL
fields degrade to ``None``, when there are no picture bytes.

Example:
    >>> detail = PostDetailResponse.from_row(post, comments, viewer_id="alice")
    >>> detail.isMine
    True
    >>> detail.to_json()
    '{"postId":1,"categoryName":"general",...,"isMine":true,...}'
"""

from collections.abc import Container, Sequence
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict

from boarddb.errors import PreconditionError
from boarddb.models import (
    CommentRow,
    NotificationKind,
    NotificationRow,
    PostRow,
    ReportRow,
    ScrapRow,
    UserRow,
)
from boarddb.utils import parse_datetime, photo_url

# SQLite may hand timestamps back without tzinfo; responses always carry UTC
UTCDateTime = Annotated[datetime, BeforeValidator(parse_datetime)]


def _require_owner(row: Any, label: str) -> UserRow:
    owner = row.user
    if owner is None:
        raise PreconditionError(f"{label} has no resolved owner")
    return owner


def _require_post(row: Any, label: str) -> PostRow:
    post = row.post
    if post is None:
        raise PreconditionError(f"{label} has no resolved post")
    return post


class ResponseModel(BaseModel):
    """Base class for JSON responses."""

    model_config = ConfigDict(extra="forbid")

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible dictionary (datetimes as ISO strings)."""
        return self.model_dump(mode="json")

    def to_json(self) -> str:
        """Serialized JSON string."""
        return self.model_dump_json()


# =============================================================================
# Comments
# =============================================================================


class CommentResponse(ResponseModel):
    """A comment as shown under a post.

    Attributes:
        commentId: Comment id
        nickname: Author's nickname
        profilePictureUrl: Author's picture URL, None without a picture
        content: Body text
        likeCount: Number of likes
        createdDate: Creation timestamp
        userId: Author's user id
        isMine: Whether the viewer wrote this comment
        isLiked: Whether the viewer has liked this comment
    """

    commentId: int
    nickname: str
    profilePictureUrl: Optional[str] = None
    content: Optional[str] = None
    likeCount: int
    createdDate: UTCDateTime
    userId: str
    isMine: bool = False
    isLiked: bool = False

    @classmethod
    def from_row(
        cls,
        comment: CommentRow,
        viewer_id: Optional[str] = None,
        liked_comment_ids: Container[int] = (),
    ) -> "CommentResponse":
        """Project a comment for ``viewer_id``.

        Args:
            comment: Comment with its author resolved
            viewer_id: Current viewer, None when anonymous
            liked_comment_ids: Ids of comments the viewer has liked
        """
        if comment.comment_id is None:
            raise PreconditionError("comment has not been persisted")
        author = _require_owner(comment, f"comment {comment.comment_id}")
        return cls(
            commentId=comment.comment_id,
            nickname=author.nickname,
            profilePictureUrl=photo_url(author.user_id, author.profile_picture),
            content=comment.content,
            likeCount=comment.like_count,
            createdDate=comment.created_date,
            userId=author.user_id,
            isMine=viewer_id is not None and viewer_id == author.user_id,
            isLiked=viewer_id is not None and comment.comment_id in liked_comment_ids,
        )


class CommentListResponse(ResponseModel):
    """Comments of one post."""

    comments: list[CommentResponse]
    totalCount: int


class MyCommentResponse(ResponseModel):
    """A comment in the author's own activity list."""

    commentId: int
    postId: int
    postTitle: str
    content: Optional[str] = None
    likeCount: int
    createdDate: UTCDateTime

    @classmethod
    def from_row(cls, comment: CommentRow) -> "MyCommentResponse":
        post = _require_post(comment, f"comment {comment.comment_id}")
        return cls(
            commentId=comment.comment_id,
            postId=comment.post_id,
            postTitle=post.title,
            content=comment.content,
            likeCount=comment.like_count,
            createdDate=comment.created_date,
        )


# =============================================================================
# Posts
# =============================================================================


class PostDetailResponse(ResponseModel):
    """Full post view with its comments.

    Attributes:
        postId: Post id
        categoryName: Category the post belongs to
        title: Title
        content: Body text
        photoUrl: Photo URL, None when the post has no photo
        nickname: Owner's nickname
        createdDate: Creation timestamp
        likeCount: Number of likes
        viewCount: Number of views
        comments: Comment projections in display order
        authorProfilePictureUrl: Owner's picture URL, None without a picture
        isMine: Whether the viewer owns the post
        userId: Owner's user id
        isLiked: Whether the viewer has liked the post
        isScrapped: Whether the viewer has scrapped the post
        reportCount: Number of reports filed against the post
        reportedByCurrentUser: Whether the viewer has reported the post
    """

    postId: int
    categoryName: str
    title: str
    content: Optional[str] = None
    photoUrl: Optional[str] = None
    nickname: str
    createdDate: UTCDateTime
    likeCount: int
    viewCount: int
    comments: list[CommentResponse] = []
    authorProfilePictureUrl: Optional[str] = None
    isMine: bool = False
    userId: str
    isLiked: bool = False
    isScrapped: bool = False
    reportCount: int = 0
    reportedByCurrentUser: bool = False

    @classmethod
    def from_row(
        cls,
        post: PostRow,
        comments: Sequence[CommentRow] = (),
        viewer_id: Optional[str] = None,
        liked_comment_ids: Container[int] = (),
        liked: bool = False,
        scrapped: bool = False,
        report_count: int = 0,
        reported: bool = False,
    ) -> "PostDetailResponse":
        """Project a post and its comments for ``viewer_id``.

        Args:
            post: Post with its owner resolved
            comments: The post's comments, each with its author resolved,
                already in display order
            viewer_id: Current viewer, None when anonymous
            liked_comment_ids: Ids of comments the viewer has liked
            liked: Whether the viewer has liked the post
            scrapped: Whether the viewer has scrapped the post
            report_count: Number of reports against the post
            reported: Whether the viewer has reported the post

        Raises:
            PreconditionError: If the post or a comment lacks its owner
        """
        if post.post_id is None:
            raise PreconditionError("post has not been persisted")
        owner = _require_owner(post, f"post {post.post_id}")
        anonymous = viewer_id is None
        return cls(
            postId=post.post_id,
            categoryName=post.category,
            title=post.title,
            content=post.content,
            photoUrl=photo_url(owner.user_id, post.photo),
            nickname=owner.nickname,
            createdDate=post.created_date,
            likeCount=post.like_count,
            viewCount=post.view_count,
            comments=[
                CommentResponse.from_row(c, viewer_id, liked_comment_ids)
                for c in comments
            ],
            authorProfilePictureUrl=photo_url(owner.user_id, owner.profile_picture),
            isMine=not anonymous and viewer_id == owner.user_id,
            userId=owner.user_id,
            isLiked=not anonymous and liked,
            isScrapped=not anonymous and scrapped,
            reportCount=report_count,
            reportedByCurrentUser=not anonymous and reported,
        )


class PostPreview(ResponseModel):
    """Lightweight post entry for listings."""

    postId: int
    title: str
    content: Optional[str] = None
    nickname: str
    createdDate: UTCDateTime
    likeCount: int
    viewCount: int
    categoryName: str
    photoUrl: Optional[str] = None
    commentCount: int = 0
    authorProfilePictureUrl: Optional[str] = None
    isLiked: bool = False
    isScrapped: bool = False
    reportCount: int = 0

    @classmethod
    def from_row(
        cls,
        post: PostRow,
        comment_count: int = 0,
        liked: bool = False,
        scrapped: bool = False,
        report_count: int = 0,
    ) -> "PostPreview":
        owner = _require_owner(post, f"post {post.post_id}")
        return cls(
            postId=post.post_id,
            title=post.title,
            content=post.content,
            nickname=owner.nickname,
            createdDate=post.created_date,
            likeCount=post.like_count,
            viewCount=post.view_count,
            categoryName=post.category,
            photoUrl=photo_url(owner.user_id, post.photo),
            commentCount=comment_count,
            authorProfilePictureUrl=photo_url(owner.user_id, owner.profile_picture),
            isLiked=liked,
            isScrapped=scrapped,
            reportCount=report_count,
        )


class PostListResponse(ResponseModel):
    """One page of posts plus the total matching the filters."""

    posts: list[PostPreview]
    totalPostCount: int


# =============================================================================
# Users, Scraps, Likes, Notifications
# =============================================================================


class UserProfileResponse(ResponseModel):
    """A user's own profile, without the password hash."""

    userId: str
    email: str
    name: str
    phoneNumber: str
    nickname: str
    authority: str
    createdDate: UTCDateTime
    profilePictureUrl: Optional[str] = None

    @classmethod
    def from_row(cls, user: UserRow) -> "UserProfileResponse":
        return cls(
            userId=user.user_id,
            email=user.email,
            name=user.name,
            phoneNumber=user.phone_number,
            nickname=user.nickname,
            authority=user.authority,
            createdDate=user.created_date,
            profilePictureUrl=photo_url(user.user_id, user.profile_picture),
        )


class ScrapResponse(ResponseModel):
    """A scrapped post in the user's bookmark list."""

    scrapId: int
    postId: int
    postTitle: str
    postContent: Optional[str] = None
    postCreatedDate: UTCDateTime
    authorNickname: str
    postPhotoUrl: Optional[str] = None
    authorProfilePictureUrl: Optional[str] = None

    @classmethod
    def from_row(cls, scrap: ScrapRow) -> "ScrapResponse":
        post = _require_post(scrap, f"scrap {scrap.scrap_id}")
        author = _require_owner(post, f"post {post.post_id}")
        return cls(
            scrapId=scrap.scrap_id,
            postId=post.post_id,
            postTitle=post.title,
            postContent=post.content,
            postCreatedDate=post.created_date,
            authorNickname=author.nickname,
            postPhotoUrl=photo_url(author.user_id, post.photo),
            authorProfilePictureUrl=photo_url(author.user_id, author.profile_picture),
        )


class LikeResponse(ResponseModel):
    """Like state of a post or comment after a like/unlike."""

    isLiked: bool
    likeCount: int


class NotificationResponse(ResponseModel):
    """A notification as delivered to its recipient."""

    notificationId: int
    userId: str
    postId: Optional[int] = None
    commentId: Optional[int] = None
    postLikeId: Optional[int] = None
    commentLikeId: Optional[int] = None
    message: str
    read: bool
    createdDate: UTCDateTime
    kind: NotificationKind

    @classmethod
    def from_row(cls, notification: NotificationRow) -> "NotificationResponse":
        return cls(
            notificationId=notification.notification_id,
            userId=notification.user_id,
            postId=notification.post_id,
            commentId=notification.comment_id,
            postLikeId=notification.post_like_id,
            commentLikeId=notification.comment_like_id,
            message=notification.message,
            read=notification.read,
            createdDate=notification.created_date,
            kind=notification.kind,
        )


class ReportResponse(ResponseModel):
    """A report as acknowledged to its reporter."""

    reportId: int
    postId: int
    reportReason: str
    reportText: Optional[str] = None
    createdDate: UTCDateTime

    @classmethod
    def from_row(cls, report: ReportRow) -> "ReportResponse":
        return cls(
            reportId=report.report_id,
            postId=report.post_id,
            reportReason=report.report_reason,
            reportText=report.report_text,
            createdDate=report.created_date,
        )


class UnreadCountResponse(ResponseModel):
    """Number of unread notifications, serialized as ``{"count": n}``."""

    count: int


__all__ = [
    "ResponseModel",
    "CommentResponse",
    "CommentListResponse",
    "MyCommentResponse",
    "PostDetailResponse",
    "PostPreview",
    "PostListResponse",
    "UserProfileResponse",
    "ScrapResponse",
    "LikeResponse",
    "NotificationResponse",
    "ReportResponse",
    "UnreadCountResponse",
]
