"""Generic repository pattern for type-safe database operations.

This module provides a Generic Repository[T] implementation for SQLModel
entities. Repositories never commit: they flush inside the session handed to
them, and the surrounding ``DatabaseManager.transaction()`` decides whether the
unit of work is committed or rolled back.

Example:
    >>> from boarddb.repository import RepositoryFactory
    >>> from boarddb.models import PostRow
    >>>
    >>> with db.transaction() as session:
    ...     posts = RepositoryFactory(session).for_entity(PostRow)
    ...     post = posts.get_or_raise(1)
    ...     posts.increment(1, "view_count")
    ...     recent = posts.find_by(category="general", order_by=PostRow.created_date.desc())
"""

from collections.abc import Sequence
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import delete, func, inspect, update
from sqlmodel import Session, SQLModel, select

from boarddb.errors import NotFoundError

# =============================================================================
# Type Variables
# =============================================================================

T = TypeVar("T", bound=SQLModel)

EntityId = int | str


# =============================================================================
# Generic Repository
# =============================================================================


class Repository(Generic[T]):
    """Generic repository implementation for SQLModel entities.

    Provides CRUD operations, filtered lookups and atomic counter updates for
    any single-column primary key SQLModel table.

    Type Parameter:
        T: SQLModel entity type (PostRow, UserRow, CommentRow, etc.)

    Args:
        session: SQLModel Session instance (owned by the caller)
        model: SQLModel class (e.g., PostRow, UserRow)
        name: Entity name used in NotFoundError messages (defaults to the
            singular table name)

    Example:
        >>> post_repo = Repository[PostRow](session, PostRow)
        >>> post = post_repo.get(1)  # PostRow | None
        >>> post_repo.find_by(user_id="alice")
        >>> post_repo.count(category="general")
        >>> post_repo.delete_where(user_id="alice")
    """

    def __init__(self, session: Session, model: type[T], name: Optional[str] = None):
        self.session = session
        self.model = model
        self.name = name or str(model.__tablename__).removesuffix("s")
        primary_keys = inspect(model).primary_key
        if len(primary_keys) != 1:
            raise TypeError(f"{model.__name__} must have a single-column primary key")
        self._pk = primary_keys[0]

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get(self, entity_id: EntityId) -> T | None:
        """Get entity by primary key, or None if not found."""
        return self.session.get(self.model, entity_id)

    def get_or_raise(self, entity_id: EntityId) -> T:
        """Get entity by primary key.

        Raises:
            NotFoundError: If no row has this key
        """
        entity = self.get(entity_id)
        if entity is None:
            raise NotFoundError(self.name, entity_id)
        return entity

    def get_all(self, limit: int = 100, offset: int = 0) -> Sequence[T]:
        """Get entities in primary-key order with pagination."""
        stmt = select(self.model).order_by(self._pk).limit(limit).offset(offset)
        return self.session.exec(stmt).all()

    def find_by(
        self,
        order_by: Any = None,
        limit: Optional[int] = None,
        offset: int = 0,
        **filters: Any,
    ) -> Sequence[T]:
        """Find entities matching equality filters.

        A filter key ending in ``__in`` matches any value of a collection.

        Args:
            order_by: Column expression(s) to sort by (defaults to primary key)
            limit: Maximum number of rows
            offset: Number of rows to skip
            **filters: attribute=value pairs

        Example:
            >>> like_repo.find_by(user_id="alice", comment_id__in=[1, 2, 3])
        """
        stmt = self._filtered(select(self.model), filters)
        if order_by is None:
            stmt = stmt.order_by(self._pk)
        elif isinstance(order_by, (list, tuple)):
            stmt = stmt.order_by(*order_by)
        else:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset:
            stmt = stmt.offset(offset)
        return self.session.exec(stmt).all()

    def first_by(self, **filters: Any) -> T | None:
        """First entity (by primary key) matching filters, or None."""
        stmt = self._filtered(select(self.model), filters).order_by(self._pk).limit(1)
        return self.session.exec(stmt).first()

    def count(self, **filters: Any) -> int:
        """Count entities matching filters (all entities without filters)."""
        stmt = self._filtered(select(func.count()).select_from(self.model), filters)
        return self.session.exec(stmt).one()

    def exists(self, entity_id: EntityId) -> bool:
        """Check if an entity with this primary key exists."""
        return self.get(entity_id) is not None

    def exists_by(self, **filters: Any) -> bool:
        """Check if any entity matches filters."""
        return self.first_by(**filters) is not None

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, entity: T) -> T:
        """Add a new entity and flush so generated keys are populated."""
        self.session.add(entity)
        self.session.flush()
        self.session.refresh(entity)
        return entity

    def update(self, entity: T) -> T:
        """Flush pending attribute changes of an existing entity."""
        self.session.add(entity)
        self.session.flush()
        return entity

    def delete(self, entity_id: EntityId) -> bool:
        """Delete entity by primary key.

        Returns:
            True if deleted, False if not found
        """
        entity = self.get(entity_id)
        if entity is None:
            return False
        self.session.delete(entity)
        self.session.flush()
        return True

    def delete_where(self, **filters: Any) -> int:
        """Bulk delete entities matching filters.

        Returns:
            Number of rows deleted
        """
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        stmt = self._filtered(delete(self.model), filters)
        result = self.session.exec(stmt.execution_options(synchronize_session="fetch"))  # type: ignore[call-overload]
        return result.rowcount

    def update_where(self, values: dict[str, Any], **filters: Any) -> int:
        """Bulk update columns on entities matching filters.

        Returns:
            Number of rows updated
        """
        stmt = self._filtered(update(self.model), filters).values(**values)
        result = self.session.exec(stmt.execution_options(synchronize_session="fetch"))  # type: ignore[call-overload]
        return result.rowcount

    def increment(self, entity_id: EntityId, column: str, delta: int = 1) -> int | None:
        """Atomically add ``delta`` to an integer column.

        The arithmetic happens inside a single UPDATE statement so concurrent
        increments cannot lose updates. A decrement that would take the value
        below zero leaves the row unchanged.

        Returns:
            The column value after the update, or None if the row does not exist
        """
        entity = self.get(entity_id)
        if entity is None:
            return None

        target = getattr(self.model, column)
        stmt = update(self.model).where(self._pk == entity_id)
        if delta < 0:
            stmt = stmt.where(target + delta >= 0)
        stmt = stmt.values({column: target + delta})
        self.session.exec(stmt.execution_options(synchronize_session=False))  # type: ignore[call-overload]

        self.session.refresh(entity, [column])
        return getattr(entity, column)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _filtered(self, stmt: Any, filters: dict[str, Any]) -> Any:
        for key, value in filters.items():
            field, _, op = key.partition("__")
            if not hasattr(self.model, field):
                raise ValueError(f"{self.model.__name__} has no attribute {field!r}")
            column = getattr(self.model, field)
            if op == "in":
                stmt = stmt.where(column.in_(list(value)))
            elif op == "":
                stmt = stmt.where(column.is_(None) if value is None else column == value)
            else:
                raise ValueError(f"Unsupported filter operator {op!r}")
        return stmt


# =============================================================================
# Repository Factory Helper
# =============================================================================


class RepositoryFactory:
    """Factory for creating repositories bound to one session.

    Example:
        >>> repos = RepositoryFactory(session)
        >>> post_repo = repos.for_entity(PostRow)
        >>> user_repo = repos.for_entity(UserRow)
    """

    def __init__(self, session: Session):
        self.session = session
        self._cache: dict[type, Repository[Any]] = {}

    def for_entity(self, model: type[T]) -> Repository[T]:
        """Create (or reuse) the repository for a specific entity type."""
        repo = self._cache.get(model)
        if repo is None:
            repo = Repository[T](self.session, model)
            self._cache[model] = repo
        return repo


# =============================================================================
# Export Public API
# =============================================================================

__all__ = ["Repository", "RepositoryFactory"]
