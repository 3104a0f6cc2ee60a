"""Error taxonomy for BoardDB.

Service operations raise these exceptions; the request-handling layer maps
them onto its own responses (e.g. NotFoundError -> 404, ConflictError -> 409).
"""

from typing import Any


class BoardError(Exception):
    """Base class for all board errors."""


class NotFoundError(BoardError, LookupError):
    """An entity id does not resolve.

    Attributes:
        entity: Entity name (e.g., "post", "user")
        key: The identifier that was looked up
    """

    def __init__(self, entity: str, key: Any):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class ConflictError(BoardError):
    """A write would violate a uniqueness rule.

    Raised for duplicate user ids / nicknames and for like or scrap rows that
    race past the existence check and trip a unique constraint.
    """


class ValidationError(BoardError, ValueError):
    """A required field is missing or a value is out of range."""


class PermissionDeniedError(BoardError):
    """The acting user may not perform the operation (not the owner, bad password)."""


class PreconditionError(BoardError):
    """A projection builder received an unresolved input (e.g. a post without its owner)."""


class PersistenceError(BoardError):
    """Store-level failure surfaced as a generic failure to the caller."""


__all__ = [
    "BoardError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "PermissionDeniedError",
    "PreconditionError",
    "PersistenceError",
]
