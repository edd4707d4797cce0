"""
Storage abstractions.

- MetadataStorage → document store (MongoDB in production)
- CacheStorage → key/value cache (Redis in production)
"""

from taskdesk.storage.base import (
    ASCENDING,
    DESCENDING,
    CacheStorage,
    Collections,
    MetadataStorage,
    StorageProvider,
)
from taskdesk.storage.local import create_local_storage

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "CacheStorage",
    "Collections",
    "MetadataStorage",
    "StorageProvider",
    "create_local_storage",
]
