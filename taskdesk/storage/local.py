"""
Local storage implementations for development and tests.

These are in-memory implementations that work without any
external services.
"""

from __future__ import annotations

import copy
import re
from datetime import datetime, timezone
from typing import Any

from taskdesk.storage.base import (
    CacheStorage,
    Filters,
    MetadataStorage,
    SortSpec,
    StorageProvider,
)


_MISSING = object()


# =============================================================================
# Filter evaluation
# =============================================================================


def matches(doc: dict[str, Any], filters: Filters | None) -> bool:
    """Evaluate a Mongo-style filter against a document."""
    if not filters:
        return True

    for key, condition in filters.items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif not _field_matches(doc.get(key, _MISSING), condition):
            return False

    return True


def _is_operator_dict(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(str(k).startswith("$") for k in condition)
    )


def _field_matches(value: Any, condition: Any) -> bool:
    if not _is_operator_dict(condition):
        return _equals(value, condition)

    options = condition.get("$options", "")
    for op, arg in condition.items():
        if op == "$options":
            continue
        if not _apply(op, value, arg, options):
            return False
    return True


def _equals(value: Any, target: Any) -> bool:
    if value is _MISSING:
        return target is None
    if isinstance(value, list) and not isinstance(target, list):
        return target in value
    return value == target


def _compare(value: Any, arg: Any, op: str) -> bool:
    if value is _MISSING or value is None:
        return False
    if isinstance(value, list):
        return any(_compare(v, arg, op) for v in value)
    try:
        if op == "$lt":
            return value < arg
        if op == "$lte":
            return value <= arg
        if op == "$gt":
            return value > arg
        return value >= arg
    except TypeError:
        return False


def _regex(value: Any, pattern: str, options: str) -> bool:
    if isinstance(value, list):
        return any(_regex(v, pattern, options) for v in value)
    if not isinstance(value, str):
        return False
    flags = re.IGNORECASE if "i" in options else 0
    return re.search(pattern, value, flags) is not None


def _apply(op: str, value: Any, arg: Any, options: str) -> bool:
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op == "$in":
        return any(_equals(value, a) for a in arg)
    if op == "$nin":
        return not any(_equals(value, a) for a in arg)
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op in ("$lt", "$lte", "$gt", "$gte"):
        return _compare(value, arg, op)
    if op == "$regex":
        return _regex(value, arg, options)
    raise ValueError(f"Unsupported query operator: {op}")


def _sort_documents(docs: list[dict[str, Any]], sort: SortSpec) -> list[dict[str, Any]]:
    # Stable sorts applied from the least significant key; None sorts first ascending
    for key, direction in reversed(sort):
        docs.sort(
            key=lambda d: (d.get(key) is not None, d.get(key) if d.get(key) is not None else 0),
            reverse=direction < 0,
        )
    return docs


# =============================================================================
# In-Memory Metadata Storage
# =============================================================================


class InMemoryMetadataStorage(MetadataStorage):
    """In-memory document storage for development."""

    def __init__(self):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def save(self, collection: str, id: str, data: dict[str, Any]) -> None:
        if collection not in self._data:
            self._data[collection] = {}
        self._data[collection][id] = {**copy.deepcopy(data), "_id": id}

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._data.get(collection, {}).get(id)
        return copy.deepcopy(doc) if doc is not None else None

    async def delete(self, collection: str, id: str) -> bool:
        if collection in self._data and id in self._data[collection]:
            del self._data[collection][id]
            return True
        return False

    async def query(
        self,
        collection: str,
        filters: Filters | None = None,
        limit: int = 100,
        offset: int = 0,
        sort: SortSpec | None = None,
    ) -> list[dict[str, Any]]:
        if collection not in self._data:
            return []

        results = [doc for doc in self._data[collection].values() if matches(doc, filters)]

        if sort:
            results = _sort_documents(results, sort)

        # Apply pagination
        return [copy.deepcopy(doc) for doc in results[offset:offset + limit]]

    async def count(self, collection: str, filters: Filters | None = None) -> int:
        return sum(1 for doc in self._data.get(collection, {}).values() if matches(doc, filters))

    async def update(self, collection: str, id: str, updates: dict[str, Any]) -> dict[str, Any] | None:
        if collection in self._data and id in self._data[collection]:
            self._data[collection][id].update(copy.deepcopy(updates))
            return copy.deepcopy(self._data[collection][id])
        return None


# =============================================================================
# In-Memory Cache Storage
# =============================================================================


class InMemoryCacheStorage(CacheStorage):
    """In-memory cache for development."""

    def __init__(self):
        self._cache: dict[str, tuple[Any, float | None]] = {}

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        expires_at = None
        if ttl:
            expires_at = datetime.now(timezone.utc).timestamp() + ttl
        self._cache[key] = (value, expires_at)

    async def get(self, key: str) -> Any | None:
        if key not in self._cache:
            return None

        value, expires_at = self._cache[key]
        if expires_at and datetime.now(timezone.utc).timestamp() > expires_at:
            del self._cache[key]
            return None

        return value

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


# =============================================================================
# Factory
# =============================================================================


def create_local_storage() -> StorageProvider:
    """Create a storage provider backed entirely by process memory."""
    return StorageProvider(
        metadata=InMemoryMetadataStorage(),
        cache=InMemoryCacheStorage(),
    )
