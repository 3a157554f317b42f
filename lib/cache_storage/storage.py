"""
Cache storage: the set of named partitions shared by a worker.

This module provides CacheStorage, which owns partition creation and
deletion on top of a pluggable backend (memory, filesystem, null).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .backends.abstract import AbstractCacheBackend
from .backends.filesystem import FSCacheBackend
from .backends.memory import MemoryCacheBackend
from .backends.null import NullCacheBackend
from .exceptions import CacheConfigError
from .models import CachedResponse
from .partition import CachePartition
from .utils import sanitizePartitionName

logger = logging.getLogger(__name__)


class CacheStorage:
    """
    Named partitions of cached responses.

    Supported backends:
    - memory: process-local, lost on exit
    - fs: one directory per partition, survives restarts
    - null: accepts writes, never hits

    Usage:
        storage = CacheStorage.fromConfig({"type": "memory"})

        static = await storage.open("bw1-v1-static")
        await static.put(request, snapshot)

        hit = await storage.match(request)  # searches all partitions
        names = await storage.keys()
        await storage.delete("bw1-v0-static")
    """

    def __init__(self, backend: AbstractCacheBackend):
        self.backend = backend

    @classmethod
    def fromConfig(cls, config: Optional[Dict[str, Any]]) -> "CacheStorage":
        """
        Create storage with the backend described by config.

        Configuration format:
            {
                "type": "memory",  # or "fs" or "null"
                "fs": {"base-dir": "./storage/sw-cache"},
            }

        An empty or missing config selects the memory backend.

        Raises:
            CacheConfigError: If the type is unknown or backend config is missing
        """
        config = config or {}
        storageType = config.get("type", "memory")

        match storageType:
            case "memory":
                backend: AbstractCacheBackend = MemoryCacheBackend()
            case "null":
                backend = NullCacheBackend()
            case "fs":
                fsConfig = config.get("fs")
                if not fsConfig:
                    raise CacheConfigError("Filesystem cache storage configuration is missing")

                baseDir = fsConfig.get("base-dir")
                if not baseDir:
                    raise CacheConfigError("Filesystem cache storage base-dir is not specified")

                backend = FSCacheBackend(baseDir)
            case _:
                raise CacheConfigError(f"Unknown cache storage type: {storageType}")

        logger.info(f"CacheStorage initialized with {storageType} backend, dood!")
        return cls(backend)

    async def open(self, name: str) -> CachePartition:
        """
        Open a partition, creating it if it doesn't exist.

        Args:
            name: Partition name

        Returns:
            CachePartition: Handle to the partition

        Raises:
            CacheKeyError: If the name is invalid
            CacheBackendError: If the partition can't be created
        """
        await self.backend.createPartition(name)
        return CachePartition(sanitizePartitionName(name), self.backend)

    async def has(self, name: str) -> bool:
        """Check whether a partition exists."""
        return await self.backend.hasPartition(name)

    async def delete(self, name: str) -> bool:
        """
        Delete a partition and all its entries.

        Returns:
            True if the partition existed and was deleted
        """
        deleted = await self.backend.deletePartition(name)
        if deleted:
            logger.debug(f"Deleted cache partition '{name}'")
        return deleted

    async def keys(self) -> List[str]:
        """List partition names in creation order."""
        return await self.backend.listPartitions()

    async def match(self, request: httpx.Request, partitionName: Optional[str] = None) -> Optional[CachedResponse]:
        """
        Look up a request across all partitions, or in one partition.

        Partitions are searched in creation order; the first hit wins.
        Lookups never create partitions.

        Args:
            request: Request to look up
            partitionName: Restrict the lookup to this partition

        Returns:
            The first stored snapshot found, or None
        """
        if partitionName is not None:
            return await CachePartition(sanitizePartitionName(partitionName), self.backend).match(request)

        for name in await self.keys():
            entry = await CachePartition(name, self.backend).match(request)
            if entry is not None:
                return entry
        return None

    async def matchUrl(self, url: httpx.URL | str) -> Optional[CachedResponse]:
        """Look up a GET of the given URL across all partitions."""
        for name in await self.keys():
            entry = await CachePartition(name, self.backend).matchUrl(url)
            if entry is not None:
                return entry
        return None

    async def getStats(self) -> Dict[str, Any]:
        """
        Get storage statistics.

        Returns:
            Dict with backend type, partition count and per-partition entry counts
        """
        partitions = {}
        for name in await self.keys():
            partitions[name] = len(await self.backend.listEntries(name))

        return {
            "backend": type(self.backend).__name__,
            "partitions": len(partitions),
            "entries": partitions,
        }
