"""
In-memory cache backend implementation.
"""

from typing import Dict, List, Optional

from ..models import CachedResponse
from ..utils import sanitizePartitionName
from .abstract import AbstractCacheBackend


class MemoryCacheBackend(AbstractCacheBackend):
    """
    Process-local cache backend built on plain dicts.

    Partitions keep insertion order, so listPartitions() returns them in
    creation order. No locking is needed: all access happens on a single
    event loop and no operation awaits in the middle of a mutation.

    Example:
        >>> backend = MemoryCacheBackend()
        >>> await backend.createPartition("bw1-v1-static")
        >>> await backend.listPartitions()
        ['bw1-v1-static']
    """

    def __init__(self):
        self._partitions: Dict[str, Dict[str, CachedResponse]] = {}

    async def createPartition(self, name: str) -> None:
        name = sanitizePartitionName(name)
        if name not in self._partitions:
            self._partitions[name] = {}

    async def hasPartition(self, name: str) -> bool:
        return sanitizePartitionName(name) in self._partitions

    async def deletePartition(self, name: str) -> bool:
        return self._partitions.pop(sanitizePartitionName(name), None) is not None

    async def listPartitions(self) -> List[str]:
        return list(self._partitions.keys())

    async def getEntry(self, partition: str, key: str) -> Optional[CachedResponse]:
        entries = self._partitions.get(sanitizePartitionName(partition))
        if entries is None:
            return None
        return entries.get(key)

    async def putEntry(self, partition: str, key: str, entry: CachedResponse) -> None:
        name = sanitizePartitionName(partition)
        self._partitions.setdefault(name, {})[key] = entry

    async def deleteEntry(self, partition: str, key: str) -> bool:
        entries = self._partitions.get(sanitizePartitionName(partition))
        if entries is None:
            return False
        return entries.pop(key, None) is not None

    async def listEntries(self, partition: str) -> List[str]:
        return list(self._partitions.get(sanitizePartitionName(partition), {}).keys())
