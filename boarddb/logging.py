"""Loguru configuration and per-operation log context.

Every ``BoardService`` call runs inside :func:`operation_context`, which tags
the records logged during the call with the operation name, the acting viewer
and a short ``request_id`` shared by everything the outermost call logs. A
loguru patcher copies those tags into ``record["extra"]``; the JSON sink emits
them as keys and the console sink prefixes the message with
``operation#request_id``.

Example:
    >>> from boarddb.logging import logger, operation_context
    >>> with operation_context("like_post", viewer_id="alice"):
    ...     logger.info("Post liked", post_id=1)
"""

import json
import sys
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import Any, TextIO

from loguru import logger

from boarddb.config import settings

_log_context: ContextVar[dict[str, str]] = ContextVar("board_log_context")


# =============================================================================
# Operation Context
# =============================================================================


def current_context() -> dict[str, str]:
    """Tags attached to records logged from the current context."""
    return dict(_log_context.get({}))


@contextmanager
def operation_context(operation: str, viewer_id: str | None = None) -> Iterator[dict[str, str]]:
    """Tag records logged inside the block.

    The outermost block draws a fresh ``request_id``. Nested blocks keep it,
    along with the outer viewer unless they name their own. The previous tags
    are restored on exit.

    Args:
        operation: Service operation name (e.g. "like_post")
        viewer_id: Acting user's id, if any

    Yields:
        The tags in effect inside the block
    """
    outer = _log_context.get({})
    tags = {
        "request_id": outer.get("request_id") or uuid.uuid4().hex[:12],
        "operation": operation,
    }
    viewer = viewer_id or outer.get("viewer_id")
    if viewer:
        tags["viewer_id"] = viewer

    token = _log_context.set(tags)
    try:
        yield tags
    finally:
        _log_context.reset(token)


def _tag_record(record: dict[str, Any]) -> None:
    # Values passed to logger.bind() win over context tags
    for key, value in _log_context.get({}).items():
        record["extra"].setdefault(key, value)


# =============================================================================
# Formats
# =============================================================================


def serialize(record: dict[str, Any]) -> str:
    """Render a loguru record as one JSON line.

    Bound and keyword extras sit next to the context tags. ``None`` values
    and private (underscore) keys are omitted.
    """
    payload: dict[str, Any] = {
        "time": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "line": record["line"],
        "message": record["message"],
    }
    payload.update(
        (key, value)
        for key, value in record["extra"].items()
        if value is not None and not key.startswith("_")
    )

    if record["exception"] is not None:
        exc_type, exc_value, exc_tb = record["exception"]
        payload["error"] = {
            "type": exc_type.__name__ if exc_type else None,
            "message": str(exc_value),
            "traceback": "".join(traceback.format_exception(exc_type, exc_value, exc_tb)),
        }

    return json.dumps(payload, default=str)


def _json_format(record: dict[str, Any]) -> str:
    record["extra"]["_json"] = serialize(record)
    return "{extra[_json]}\n"


def _console_format(record: dict[str, Any]) -> str:
    tag = ""
    if "operation" in record["extra"] and "request_id" in record["extra"]:
        tag = "<magenta>{extra[operation]}#{extra[request_id]}</magenta> | "
    return (
        "<green>{time:HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
        + tag
        + "<level>{message}</level>\n{exception}"
    )


# =============================================================================
# Logger Configuration
# =============================================================================


def setup_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: Path | None = None,
    sink: TextIO = sys.stdout,
) -> Any:
    """Replace loguru's handlers with the board's console and file sinks.

    Args:
        level: Minimum log level
        json_logs: Emit one JSON object per line instead of colored text
        log_file: Optional path of a rotating log file
        sink: Stream for console output

    Returns:
        The configured loguru logger
    """
    logger.configure(patcher=_tag_record)
    logger.remove()

    fmt = _json_format if json_logs else _console_format
    logger.add(sink, level=level, format=fmt, colorize=False if json_logs else None)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=_json_format,
            rotation="20 MB",
            retention=5,
            compression="gz",
            enqueue=True,
        )

    return logger


setup_logging(
    level=settings.log_level,
    json_logs=settings.log_json,
    log_file=settings.log_file,
)


__all__ = [
    "current_context",
    "logger",
    "operation_context",
    "serialize",
    "setup_logging",
]
