"""Protocol interfaces for dependency injection.

The service layer depends on these Protocols rather than on concrete
classes, so tests and alternative deployments can hand in their own
implementations without inheritance.

Example:
    >>> from boarddb.interfaces import IPasswordHasher
    >>> class PlainHasher:
    ...     def hash(self, password):
    ...         return password
    ...     def verify(self, password, hashed):
    ...         return password == hashed
    >>> isinstance(PlainHasher(), IPasswordHasher)  # True, structural typing
"""

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from sqlmodel import Session


@runtime_checkable
class IDatabaseManager(Protocol):
    """Database manager interface.

    Implementations own the engine and provide units of work. A unit of work
    commits when its block exits normally and rolls back otherwise.
    """

    def initialize(self) -> None:
        """Create the engine and the schema."""
        ...

    def close(self) -> None:
        """Release the engine and its connections."""
        ...

    def transaction(self, operation: str = "transaction") -> AbstractContextManager[Session]:
        """Open a unit of work labelled ``operation``.

        Raises:
            ConflictError: On integrity violations
            PersistenceError: On other store-level failures
        """
        ...

    def table_counts(self) -> dict[str, int]:
        """Row count per table."""
        ...


@runtime_checkable
class IPasswordHasher(Protocol):
    """One-way password hashing."""

    def hash(self, password: str) -> str:
        """Hash a plain-text password for storage."""
        ...

    def verify(self, password: str, hashed: str) -> bool:
        """Check a plain-text password against a stored hash."""
        ...


__all__ = ["IDatabaseManager", "IPasswordHasher"]
