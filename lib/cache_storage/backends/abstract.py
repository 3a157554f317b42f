"""
Abstract cache backend interface

This module defines the abstract base class that all cache storage backends
must implement. A backend stores CachedResponse entries grouped into named
partitions.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..models import CachedResponse


class AbstractCacheBackend(ABC):
    """
    Abstract base class for cache storage backends.

    All operations are coroutines: every partition read or write is a
    suspension point for the calling handler. Implementations should wrap
    backend-specific errors in CacheBackendError.
    """

    @abstractmethod
    async def createPartition(self, name: str) -> None:
        """
        Create an empty partition if it doesn't exist yet.

        Args:
            name: Partition name

        Raises:
            CacheKeyError: If the name is invalid
            CacheBackendError: If the partition can't be created
        """
        pass

    @abstractmethod
    async def hasPartition(self, name: str) -> bool:
        """
        Check whether a partition exists.

        Args:
            name: Partition name

        Returns:
            True if the partition exists, False otherwise
        """
        pass

    @abstractmethod
    async def deletePartition(self, name: str) -> bool:
        """
        Delete a partition with all its entries.

        Args:
            name: Partition name

        Returns:
            True if the partition was deleted, False if it didn't exist

        Raises:
            CacheBackendError: If the deletion fails
        """
        pass

    @abstractmethod
    async def listPartitions(self) -> List[str]:
        """
        List partition names in creation order.

        Returns:
            List of partition names, oldest first

        Raises:
            CacheBackendError: If the listing fails
        """
        pass

    @abstractmethod
    async def getEntry(self, partition: str, key: str) -> Optional[CachedResponse]:
        """
        Retrieve an entry.

        Args:
            partition: Partition name
            key: Cache key (see makeCacheKey)

        Returns:
            The stored snapshot, or None if the partition or key is missing

        Raises:
            CacheBackendError: If the read fails (not for missing entries)
        """
        pass

    @abstractmethod
    async def putEntry(self, partition: str, key: str, entry: CachedResponse) -> None:
        """
        Store an entry, overwriting any previous entry for the same key.

        The partition is created when missing.

        Args:
            partition: Partition name
            key: Cache key
            entry: Snapshot to store

        Raises:
            CacheBackendError: If the write fails
        """
        pass

    @abstractmethod
    async def deleteEntry(self, partition: str, key: str) -> bool:
        """
        Delete an entry.

        Returns:
            True if the entry was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def listEntries(self, partition: str) -> List[str]:
        """
        List the cache keys stored in a partition.

        Returns:
            List of keys, empty if the partition doesn't exist
        """
        pass
