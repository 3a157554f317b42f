"""
Cache storage exceptions

Every error raised by lib.cache_storage derives from CacheStorageError.
"""


class CacheStorageError(Exception):
    """Base exception for all cache storage errors."""

    pass


class CacheKeyError(CacheStorageError):
    """
    Raised for an unusable partition name: empty, too long, or nothing left
    once path separators and traversal sequences are removed.
    """

    pass


class CacheConfigError(CacheStorageError):
    """Raised by CacheStorage.fromConfig() for an unknown backend type or missing backend settings."""

    pass


class CacheBackendError(CacheStorageError):
    """
    A backend could not read or write a partition or entry.

    Wraps the underlying failure (I/O error, permission problem, unreadable
    entry file) so callers only need to catch one type.

    Args:
        message: What the backend was doing
        originalError: The exception that caused it, if any
    """

    def __init__(self, message: str, originalError: Exception | None = None):
        super().__init__(message)
        self.originalError = originalError
