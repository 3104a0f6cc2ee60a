"""Utility functions for BoardDB.

This module provides common helper functions for datetime handling,
asset URL construction and listing arithmetic.
"""

from datetime import UTC, datetime

from dateutil import parser as dateutil_parser  # type: ignore[import-untyped]

from boarddb.errors import ValidationError

PHOTO_URL_TEMPLATE = "/users/{user_id}/photo"


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ISO8601 timestamp string into timezone-aware UTC datetime.

    Args:
        value: ISO8601 timestamp string, datetime object, or None

    Returns:
        Parsed timezone-aware datetime in UTC, or None if input is None

    Raises:
        ValueError: If timestamp format is invalid

    Example:
        >>> dt = parse_datetime("2024-01-15T10:30:00Z")
        >>> dt.tzinfo
        datetime.timezone.utc
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    dt = dateutil_parser.isoparse(value)

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return dt.astimezone(UTC)


def utc_now() -> datetime:
    """Get current UTC timestamp as timezone-aware datetime."""
    return datetime.now(UTC)


def format_iso(dt: datetime | None) -> str | None:
    """Format datetime as ISO8601 string with 'Z' suffix.

    Naive datetimes are taken to be UTC.

    Example:
        >>> format_iso(datetime(2024, 1, 15, 10, 30))
        '2024-01-15T10:30:00Z'
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")


def photo_url(user_id: str, data: bytes | None) -> str | None:
    """Build the asset URL for a stored picture, or None when there are no bytes.

    Both post photos and profile pictures are exposed under the owning
    user's photo path.

    Example:
        >>> photo_url("alice", b"\\x89PNG")
        '/users/alice/photo'
        >>> photo_url("alice", b"") is None
        True
    """
    if not data:
        return None
    return PHOTO_URL_TEMPLATE.format(user_id=user_id)


def page_bounds(page: int, size: int, max_size: int) -> tuple[int, int]:
    """Translate a 1-based page number and size into (offset, limit).

    Raises:
        ValidationError: If page < 1 or size is outside 1..max_size

    Example:
        >>> page_bounds(3, 10, 100)
        (20, 10)
    """
    if page < 1:
        raise ValidationError(f"page must be >= 1, got {page}")
    if size < 1 or size > max_size:
        raise ValidationError(f"size must be between 1 and {max_size}, got {size}")
    return (page - 1) * size, size


def require_text(field: str, value: str | None, max_length: int | None = None) -> str:
    """Strip ``value`` and ensure it is non-empty (and within ``max_length``).

    Raises:
        ValidationError: If the value is missing, blank or too long
    """
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} must not be empty")
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text
