"""Generic repository interface.

Provides ``IRepository[T]``, the base contract extended by each aggregate's
repository.  Services depend on these abstractions, never on the ORM.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, Optional, TypeVar

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    """Base generic repository contract for an aggregate root ``T``."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key (``None`` if missing)."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[T]:
        """Retrieve an entity holding a row-level lock."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> Iterable[T]:
        """List entities with optional ORM-style filters."""

    @abstractmethod
    def save(self, entity: T) -> T:
        """Persist an entity and flush its domain events to the outbox."""
