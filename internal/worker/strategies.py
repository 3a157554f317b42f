"""
Caching strategies used by the worker's fetch handler.

Three policies, each bound to the partition it writes:
- NetworkFirstStrategy: live network result, stored copy on failure
- CacheFirstStrategy: stored copy, network (and populate) on miss
- NetworkOnlyFallbackStrategy: network, read-only cache lookup on failure
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from lib.cache_storage import CachedResponse, CacheStorage, duplicateResponse

from .types import DEFAULT_NETWORK_TIMEOUT, ResponseSource

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = "worker_source"


async def fetchFromNetwork(
    network: httpx.AsyncBaseTransport,
    request: httpx.Request,
    timeout: float = DEFAULT_NETWORK_TIMEOUT,
) -> httpx.Response:
    """
    Send a request through the network transport.

    Requests built by an httpx.AsyncClient already carry its timeout. Any
    other request gets `timeout` seconds for each of connect, read, write
    and pool, so a host that never answers fails with httpx.TimeoutException.

    Args:
        network: Transport that talks to the real network
        request: Request to send
        timeout: Timeout applied when the request has none

    Returns:
        httpx.Response: Unread response with its request attached

    Raises:
        httpx.TransportError: On connection failure or timeout
    """
    if "timeout" not in request.extensions:
        request.extensions["timeout"] = httpx.Timeout(timeout).as_dict()

    response = await network.handle_async_request(request)
    response.request = request
    response.extensions[SOURCE_EXTENSION] = ResponseSource.NETWORK.value
    return response


def responseFromCache(entry: CachedResponse, request: httpx.Request) -> httpx.Response:
    """Build a fresh response for the caller from a stored snapshot."""
    response = entry.toResponse(request)
    response.extensions[SOURCE_EXTENSION] = ResponseSource.CACHE.value
    return response


class CachingStrategy(ABC):
    """
    Base class for caching strategies.

    Args:
        storage: Cache storage holding the partitions
        network: Transport used for network fetches
        partitionName: Partition this strategy reads first and writes to
        timeout: Network timeout for requests that carry none
    """

    def __init__(
        self,
        storage: CacheStorage,
        network: httpx.AsyncBaseTransport,
        partitionName: str,
        timeout: float = DEFAULT_NETWORK_TIMEOUT,
    ):
        self.storage = storage
        self.network = network
        self.partitionName = partitionName
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"{type(self).__name__}(partition={self.partitionName!r})"

    @abstractmethod
    async def handle(self, request: httpx.Request) -> httpx.Response:
        """
        Produce a response for a request.

        Raises:
            httpx.TransportError: When neither network nor cache can answer
        """
        pass

    async def _fetch(self, request: httpx.Request) -> httpx.Response:
        return await fetchFromNetwork(self.network, request, self.timeout)

    async def _storeResponse(self, request: httpx.Request, response: httpx.Response) -> httpx.Response:
        """
        Store a network response and return an independent live copy.

        Cache storage failures are logged; the live response is returned anyway.

        Raises:
            httpx.TransportError: If the body can't be read from the network
        """
        liveResponse, snapshot = await duplicateResponse(response)
        try:
            partition = await self.storage.open(self.partitionName)
            await partition.put(request, snapshot)
            logger.debug(f"Cached {request.method} {request.url} in '{self.partitionName}'")
        except Exception as e:
            logger.warning(f"Failed to cache {request.url} in '{self.partitionName}': {e}")
        return liveResponse

    async def _matchPartition(self, request: httpx.Request) -> Optional[CachedResponse]:
        """Look up the request in this strategy's partition; storage errors count as a miss."""
        try:
            return await self.storage.match(request, partitionName=self.partitionName)
        except Exception as e:
            logger.warning(f"Cache lookup for {request.url} in '{self.partitionName}' failed: {e}")
            return None

    async def _matchAny(self, request: httpx.Request) -> Optional[CachedResponse]:
        """Look up the request across all partitions; storage errors count as a miss."""
        try:
            return await self.storage.match(request)
        except Exception as e:
            logger.warning(f"Cache lookup for {request.url} failed: {e}")
            return None


class NetworkFirstStrategy(CachingStrategy):
    """
    Network first, stored copy on network failure.

    Every completed network response is stored in the partition (overwriting
    the previous entry for the key) and a duplicate is returned. On a
    transport error, raised either by the fetch or while reading the body,
    the partition entry is returned; if there is none and a fallback URL is
    set (navigations), the fallback entry from any partition is returned.
    Otherwise the transport error propagates.

    Args:
        fallbackUrl: URL served when an offline request has no exact entry
    """

    def __init__(
        self,
        storage: CacheStorage,
        network: httpx.AsyncBaseTransport,
        partitionName: str,
        fallbackUrl: Optional[httpx.URL] = None,
        timeout: float = DEFAULT_NETWORK_TIMEOUT,
    ):
        super().__init__(storage, network, partitionName, timeout)
        self.fallbackUrl = fallbackUrl

    async def handle(self, request: httpx.Request) -> httpx.Response:
        try:
            response = await self._fetch(request)
            return await self._storeResponse(request, response)
        except httpx.TransportError as e:
            logger.info(f"Network failed for {request.url} ({type(e).__name__}), trying '{self.partitionName}'")
            cached = await self._offlineResponse(request)
            if cached is None:
                logger.warning(f"No cached response for {request.url}, request fails")
                raise
            return cached

    async def _offlineResponse(self, request: httpx.Request) -> Optional[httpx.Response]:
        entry = await self._matchPartition(request)
        if entry is not None:
            return responseFromCache(entry, request)

        if self.fallbackUrl is None:
            return None

        try:
            entry = await self.storage.matchUrl(self.fallbackUrl)
        except Exception as e:
            logger.warning(f"Fallback lookup for {self.fallbackUrl} failed: {e}")
            return None
        if entry is None:
            return None

        logger.info(f"Serving offline fallback {self.fallbackUrl} for {request.url}")
        return responseFromCache(entry, request)


class CacheFirstStrategy(CachingStrategy):
    """
    Stored copy first, network on miss.

    Lookup order: this strategy's partition, then every partition (so assets
    cached at install time are hits). A hit never touches the network and is
    never revalidated. On a miss the network response is returned, and stored
    only when its status is 2xx so failures never poison the cache.
    """

    async def handle(self, request: httpx.Request) -> httpx.Response:
        entry = await self._matchPartition(request)
        if entry is None:
            entry = await self._matchAny(request)
        if entry is not None:
            logger.debug(f"Cache hit for {request.url}")
            return responseFromCache(entry, request)

        response = await self._fetch(request)
        if not response.is_success:
            logger.debug(f"Not caching {request.url}: status {response.status_code}")
            return response

        return await self._storeResponse(request, response)


class NetworkOnlyFallbackStrategy(CachingStrategy):
    """
    Network, with a read-only cache lookup on failure.

    Nothing is ever stored by this strategy. The lookup covers this
    strategy's partition first, then every partition.
    """

    async def handle(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._fetch(request)
        except httpx.TransportError:
            entry = await self._matchPartition(request)
            if entry is None:
                entry = await self._matchAny(request)
            if entry is not None:
                logger.info(f"Network failed for {request.url}, serving cached copy")
                return responseFromCache(entry, request)
            raise
