"""
Test utilities for offline worker tests.

This module provides helper functions and classes for building requests,
simulating the network with httpx.MockTransport and inspecting what the
worker sent to it. All functions follow camelCase naming convention.
"""

import asyncio
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from internal.worker import WorkerConfig

ORIGIN = "http://localhost:5173"

# ============================================================================
# Request Builders
# ============================================================================


def makeRequest(
    path: str,
    method: str = "GET",
    destination: Optional[str] = None,
    mode: Optional[str] = None,
    origin: str = ORIGIN,
) -> httpx.Request:
    """
    Create a request with optional fetch metadata.

    Args:
        path: Root-relative path or absolute URL
        method: HTTP method
        destination: Request destination (script, style, image, document, ...)
        mode: Request mode (navigate, cors, ...)
        origin: Origin the path is resolved against

    Returns:
        httpx.Request: Request carrying destination/mode as extensions

    Example:
        request = makeRequest("/", mode="navigate", destination="document")
    """
    url = path if "://" in path else f"{origin}{path}"
    extensions = {}
    if destination is not None:
        extensions["destination"] = destination
    if mode is not None:
        extensions["mode"] = mode
    return httpx.Request(method, url, extensions=extensions)


def makeNavigationRequest(path: str = "/") -> httpx.Request:
    """Create a top-level document navigation request."""
    return makeRequest(path, destination="document", mode="navigate")


def makeWorkerConfig(version: str = "bw1-v1", **kwargs) -> WorkerConfig:
    """Create a worker config for the test origin."""
    kwargs.setdefault("origin", ORIGIN)
    return WorkerConfig(version=version, **kwargs)


# ============================================================================
# Network Simulation
# ============================================================================


class FakeNetwork:
    """
    Controllable network built on httpx.MockTransport.

    Routes map a path to (status, body). Unknown paths answer 404. Setting
    `offline` makes every request fail with httpx.ConnectError, and paths in
    `failingPaths` fail individually. Every request that reaches the network
    is recorded, including failed ones.

    Example:
        network = FakeNetwork({"/api/listings": (200, b"[]")})
        network.offline = True
    """

    def __init__(self, routes: Optional[Dict[str, Tuple[int, bytes]]] = None):
        self.routes: Dict[str, Tuple[int, bytes]] = dict(routes or {})
        self.offline = False
        self.failingPaths: set = set()
        self.requests: List[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline or request.url.path in self.failingPaths:
            raise httpx.ConnectError("Network unreachable", request=request)

        status, body = self.routes.get(request.url.path, (404, b"not found"))
        return httpx.Response(status, content=body, headers={"Content-Type": "text/plain"})

    def setRoute(self, path: str, body: bytes, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def requestedPaths(self) -> List[str]:
        return [request.url.path for request in self.requests]

    def countRequests(self, path: str) -> int:
        return self.requestedPaths().count(path)


def makeHandlerTransport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    """Wrap a plain handler function into an httpx.MockTransport."""
    return httpx.MockTransport(handler)


class RecordingCallback:
    """Callable recording every call's arguments, usable as a sync callback."""

    def __init__(self):
        self.calls: List[tuple] = []

    def __call__(self, *args) -> None:
        self.calls.append(args)

    @property
    def callCount(self) -> int:
        return len(self.calls)


async def runPendingTasks(iterations: int = 5) -> None:
    """Let tasks scheduled with asyncio.create_task() make progress."""
    for _ in range(iterations):
        await asyncio.sleep(0)
