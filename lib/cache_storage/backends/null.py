"""
Null cache backend implementation

This module provides a no-op cache backend. Partitions exist only as names;
entries are accepted and dropped, so every lookup misses.
"""

from typing import List, Optional

from ..models import CachedResponse
from ..utils import sanitizePartitionName
from .abstract import AbstractCacheBackend


class NullCacheBackend(AbstractCacheBackend):
    """
    No-op cache backend for disabling caching or for testing.

    - createPartition() validates the name and remembers it
    - putEntry() validates the partition name and drops the entry
    - getEntry() always returns None
    - listEntries() always returns an empty list

    Partition names are tracked so that lifecycle operations (activation
    cleanup, clear-all) behave the same as with a real backend.
    """

    def __init__(self):
        self._partitions: List[str] = []

    async def createPartition(self, name: str) -> None:
        name = sanitizePartitionName(name)
        if name not in self._partitions:
            self._partitions.append(name)

    async def hasPartition(self, name: str) -> bool:
        return sanitizePartitionName(name) in self._partitions

    async def deletePartition(self, name: str) -> bool:
        name = sanitizePartitionName(name)
        if name in self._partitions:
            self._partitions.remove(name)
            return True
        return False

    async def listPartitions(self) -> List[str]:
        return list(self._partitions)

    async def getEntry(self, partition: str, key: str) -> Optional[CachedResponse]:
        sanitizePartitionName(partition)
        return None

    async def putEntry(self, partition: str, key: str, entry: CachedResponse) -> None:
        await self.createPartition(partition)

    async def deleteEntry(self, partition: str, key: str) -> bool:
        sanitizePartitionName(partition)
        return False

    async def listEntries(self, partition: str) -> List[str]:
        return []
