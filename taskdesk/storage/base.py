"""
Storage abstraction layer.

All persistence goes through these interfaces. This allows swapping
implementations (in-memory → MongoDB, in-memory cache → Redis)
without changing application code.

Filters use a small Mongo-style query language:

    {"status": "pending"}                          equality
    {"tags": "urgent"}                             array contains
    {"due_date": {"$lt": now, "$ne": None}}        comparison operators
    {"email": {"$regex": "bob", "$options": "i"}}  regular expressions
    {"$or": [{...}, {...}], "$and": [{...}]}       boolean composition

Supported operators: $eq, $ne, $in, $nin, $lt, $lte, $gt, $gte, $regex
(with $options), $exists, $or, $and.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


Filters = dict[str, Any]
SortSpec = list[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


# =============================================================================
# Storage Interfaces
# =============================================================================


class MetadataStorage(ABC):
    """
    Document storage for structured records (users, tasks).

    Each write replaces or patches a single document atomically;
    there are no multi-document transactions.
    """

    @abstractmethod
    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        """Save a document to a collection (insert or replace)."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Filters | None = None,
        limit: int = 100,
        offset: int = 0,
        sort: SortSpec | None = None,
    ) -> list[dict[str, Any]]:
        """Query documents with optional filters, sort and pagination."""
        pass

    @abstractmethod
    async def count(self, collection: str, filters: Filters | None = None) -> int:
        """Count documents matching filters."""
        pass

    @abstractmethod
    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        """Partial update of a document. Returns the updated document."""
        pass


class CacheStorage(ABC):
    """
    Fast key-value cache for tokens and other short-lived data.

    Production Implementation: Redis
    Local Implementation: In-memory dict
    """

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Set a value with optional TTL in seconds."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get a value."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at app startup with appropriate implementations.
    Services receive this and use the interfaces without knowing
    the underlying implementation.
    """

    model_config = {"arbitrary_types_allowed": True}

    metadata: MetadataStorage
    cache: CacheStorage


# =============================================================================
# Collection Names (for MetadataStorage)
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    TASKS = "tasks"
