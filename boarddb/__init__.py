"""BoardDB - persistence and response layer for a community board.

This package stores users, posts, comments, likes, scraps, reports and
notifications in a relational database and builds the per-viewer JSON
responses served to board clients.

Example:
    >>> from boarddb import BoardService, DatabaseManager
    >>>
    >>> db = DatabaseManager()
    >>> db.initialize()
    >>> board = BoardService(db)
    >>> detail = board.get_post_detail(1, viewer_id="alice")
    >>> detail.isMine
    True
"""

from boarddb.config import PostSort, settings
from boarddb.database import DatabaseManager
from boarddb.errors import (
    BoardError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    PreconditionError,
    ValidationError,
)
from boarddb.models import (
    CommentLikeRow,
    CommentRow,
    NotificationKind,
    NotificationRow,
    PostLikeRow,
    PostRow,
    ReportReason,
    ReportRow,
    ScrapRow,
    UserRow,
)
from boarddb.schemas import CommentResponse, PostDetailResponse
from boarddb.services import BoardService

__version__ = "0.1.0"

__all__ = [
    # Main components
    "BoardService",
    "DatabaseManager",
    # Configuration
    "settings",
    "PostSort",
    # Errors
    "BoardError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "PermissionDeniedError",
    "PreconditionError",
    "PersistenceError",
    # SQLModel tables
    "UserRow",
    "PostRow",
    "CommentRow",
    "PostLikeRow",
    "CommentLikeRow",
    "ScrapRow",
    "ReportRow",
    "ReportReason",
    "NotificationRow",
    "NotificationKind",
    # Responses
    "PostDetailResponse",
    "CommentResponse",
]
