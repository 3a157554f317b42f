"""
lib.cache_storage - Named partitions of cached HTTP responses, dood!

Core Components:
- CacheStorage: owns partitions on top of a pluggable backend
- CachePartition: key -> response snapshot mapping for one partition
- CachedResponse: immutable response snapshot
- duplicateResponse: split a single-use response into a live copy and a snapshot

Example Usage:
    >>> from lib.cache_storage import CacheStorage, duplicateResponse
    >>>
    >>> storage = CacheStorage.fromConfig({"type": "memory"})
    >>> partition = await storage.open("bw1-v1-api")
    >>>
    >>> liveResponse, snapshot = await duplicateResponse(networkResponse)
    >>> await partition.put(request, snapshot)
    >>> return liveResponse
"""

from .backends import AbstractCacheBackend, FSCacheBackend, MemoryCacheBackend, NullCacheBackend
from .exceptions import CacheBackendError, CacheConfigError, CacheKeyError, CacheStorageError
from .models import CachedResponse
from .partition import CachePartition
from .responses import duplicateResponse, readRawBody
from .storage import CacheStorage
from .utils import isCacheableMethod, makeCacheKey, normalizeUrl, sanitizePartitionName

__all__ = [
    # Storage
    "CacheStorage",
    "CachePartition",
    "CachedResponse",
    # Backends
    "AbstractCacheBackend",
    "FSCacheBackend",
    "MemoryCacheBackend",
    "NullCacheBackend",
    # Exceptions
    "CacheStorageError",
    "CacheKeyError",
    "CacheConfigError",
    "CacheBackendError",
    # Helpers
    "duplicateResponse",
    "readRawBody",
    "makeCacheKey",
    "normalizeUrl",
    "isCacheableMethod",
    "sanitizePartitionName",
]
