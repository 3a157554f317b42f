"""
Cache partition: a named key -> response snapshot mapping.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .backends.abstract import AbstractCacheBackend
from .models import CachedResponse
from .utils import isCacheableMethod, makeCacheKey

logger = logging.getLogger(__name__)


class CachePartition:
    """
    Handle to one named partition of a CacheStorage.

    Entries are keyed by request identity (method + URL). Only GET requests
    are stored; a put() with any other method is skipped and a match() with
    any other method misses. put() overwrites any previous entry for the
    same key (last write wins).

    Instances are lightweight; create them through CacheStorage.open().
    """

    def __init__(self, name: str, backend: AbstractCacheBackend):
        self.name = name
        self._backend = backend

    def __repr__(self) -> str:
        return f"CachePartition(name={self.name!r})"

    async def match(self, request: httpx.Request) -> Optional[CachedResponse]:
        """
        Look up the stored snapshot for a request.

        Args:
            request: Request to look up

        Returns:
            The stored snapshot, or None on miss
        """
        if not isCacheableMethod(request.method):
            return None
        return await self._backend.getEntry(self.name, makeCacheKey(request.method, request.url))

    async def matchUrl(self, url: httpx.URL | str) -> Optional[CachedResponse]:
        """Look up the stored snapshot for a GET of the given URL."""
        return await self._backend.getEntry(self.name, makeCacheKey("GET", url))

    async def put(self, request: httpx.Request, entry: CachedResponse) -> bool:
        """
        Store a snapshot for a request, overwriting any previous one.

        Args:
            request: Request the snapshot answers
            entry: Snapshot to store

        Returns:
            bool: True if stored, False if the request method isn't cacheable

        Raises:
            CacheBackendError: If the backend write fails
        """
        if not isCacheableMethod(request.method):
            logger.debug(f"Not storing {request.method} {request.url} in '{self.name}': method is not cacheable")
            return False

        await self._backend.putEntry(self.name, makeCacheKey(request.method, request.url), entry)
        return True

    async def delete(self, request: httpx.Request) -> bool:
        """Delete the entry for a request. Returns True if something was deleted."""
        return await self._backend.deleteEntry(self.name, makeCacheKey(request.method, request.url))

    async def keys(self) -> List[str]:
        """List the cache keys stored in this partition."""
        return await self._backend.listEntries(self.name)

    async def getStats(self) -> Dict[str, Any]:
        """Get partition statistics: name and entry count."""
        return {"name": self.name, "entries": len(await self.keys())}

    async def clear(self) -> int:
        """Delete every entry in this partition. Returns the number of deleted entries."""
        count = 0
        for key in await self.keys():
            if await self._backend.deleteEntry(self.name, key):
                count += 1
        return count
