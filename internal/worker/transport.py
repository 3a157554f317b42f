"""
httpx transport that routes a client's requests through the controlling worker.
"""

import logging

import httpx

from .registration import WorkerContainer
from .strategies import fetchFromNetwork

logger = logging.getLogger(__name__)


class WorkerTransport(httpx.AsyncBaseTransport):
    """
    Intercepts every request of an httpx.AsyncClient, dood!

    With no controlling worker, requests go straight to the network
    transport. Otherwise the controller's fetch handler answers them, which
    may serve them from cache. Responses carry extensions["worker_source"]
    ("network" or "cache").

    The network transport belongs to the container and outlives any client
    built on this transport, so closing the client leaves it open.

    Example:
        >>> network = httpx.AsyncHTTPTransport()
        >>> container = WorkerContainer(storage, network)
        >>> await container.register(loadWorkerConfig)
        >>> async with httpx.AsyncClient(transport=WorkerTransport(container)) as client:
        ...     response = await client.get("http://localhost:5173/api/listings")
    """

    def __init__(self, container: WorkerContainer):
        self.container = container

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        controller = self.container.controller
        if controller is None:
            return await fetchFromNetwork(self.container.network, request)

        return await controller.handleFetch(request)
