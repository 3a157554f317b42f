"""
Tests for ServiceWorker and WorkerEventDispatcher.

Covers the lifecycle state machine, fetch routing to the strategy of each
traffic class and control message handling.
"""

from typing import List

import httpx
import pytest

from internal.worker import (
    ControlMessage,
    ServiceWorker,
    WorkerError,
    WorkerEventDispatcher,
    WorkerEventKind,
    WorkerState,
    WorkerStateError,
)
from internal.worker.strategies import SOURCE_EXTENSION
from tests.utils import makeNavigationRequest, makeRequest, makeWorkerConfig


async def makeActiveWorker(cacheStorage, fakeNetwork, version: str = "bw1-v1") -> ServiceWorker:
    worker = ServiceWorker(makeWorkerConfig(version), cacheStorage, fakeNetwork.transport)
    await worker.install()
    await worker.activate()
    return worker


# ============================================================================
# Dispatcher
# ============================================================================


class TestWorkerEventDispatcher:
    """Test event handler registration and dispatch."""

    @pytest.mark.asyncio
    async def testDispatchCallsHandler(self):
        dispatcher = WorkerEventDispatcher()

        async def onMessage(message):
            return f"got {message}"

        dispatcher.registerHandler(WorkerEventKind.MESSAGE, onMessage)

        assert dispatcher.hasHandler(WorkerEventKind.MESSAGE)
        assert await dispatcher.dispatch(WorkerEventKind.MESSAGE, "ping") == "got ping"

    def testDuplicateRegistrationFails(self):
        dispatcher = WorkerEventDispatcher()

        async def handler():
            pass

        dispatcher.registerHandler(WorkerEventKind.INSTALL, handler)

        with pytest.raises(ValueError):
            dispatcher.registerHandler(WorkerEventKind.INSTALL, handler)

    @pytest.mark.asyncio
    async def testDispatchWithoutHandlerFails(self):
        dispatcher = WorkerEventDispatcher()

        assert not dispatcher.hasHandler(WorkerEventKind.FETCH)
        with pytest.raises(WorkerError):
            await dispatcher.dispatch(WorkerEventKind.FETCH, makeRequest("/"))


# ============================================================================
# Lifecycle
# ============================================================================


class TestWorkerLifecycle:
    """Test the worker state machine."""

    @pytest.mark.asyncio
    async def testInstallAndActivate(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)
        states: List[WorkerState] = []
        worker.onStateChange(states.append)

        report = await worker.install()
        deleted = await worker.activate()

        assert report.isComplete
        assert deleted == []
        assert worker.state == WorkerState.ACTIVATED
        assert states == [
            WorkerState.INSTALLING,
            WorkerState.INSTALLED,
            WorkerState.ACTIVATING,
            WorkerState.ACTIVATED,
        ]

    @pytest.mark.asyncio
    async def testInstallRequestsSkipWaiting(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)
        await worker.install()
        assert worker.skipWaitingRequested

        patient = ServiceWorker(makeWorkerConfig("bw1-v2", skipWaiting=False), cacheStorage, fakeNetwork.transport)
        await patient.install()
        assert not patient.skipWaitingRequested

    @pytest.mark.asyncio
    async def testInstallTwiceFails(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)
        await worker.install()

        with pytest.raises(WorkerStateError):
            await worker.install()

    @pytest.mark.asyncio
    async def testActivateBeforeInstallFails(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)

        with pytest.raises(WorkerStateError):
            await worker.activate()

    @pytest.mark.asyncio
    async def testFetchBeforeActivationFails(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)
        await worker.install()

        with pytest.raises(WorkerStateError):
            await worker.handleFetch(makeRequest("/api/listings"))

    @pytest.mark.asyncio
    async def testBrokenInstallMakesWorkerRedundant(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)

        async def brokenInstall():
            raise RuntimeError("boom")

        worker.lifecycle.install = brokenInstall

        with pytest.raises(WorkerError):
            await worker.install()
        assert worker.state == WorkerState.REDUNDANT

    @pytest.mark.asyncio
    async def testActivationEvictsOldVersion(self, cacheStorage, fakeNetwork):
        await makeActiveWorker(cacheStorage, fakeNetwork, "bw1-v1")

        worker = await makeActiveWorker(cacheStorage, fakeNetwork, "bw1-v2")

        assert await cacheStorage.keys() == ["bw1-v2-static"]
        assert worker.version == "bw1-v2"

    @pytest.mark.asyncio
    async def testStateListenerErrorsAreContained(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(), cacheStorage, fakeNetwork.transport)
        states: List[WorkerState] = []

        def brokenListener(state):
            raise RuntimeError("listener failed")

        worker.onStateChange(brokenListener)
        worker.onStateChange(states.append)
        await worker.install()

        assert states == [WorkerState.INSTALLING, WorkerState.INSTALLED]


# ============================================================================
# Fetch Routing
# ============================================================================


class TestWorkerFetch:
    """Test that each traffic class reaches its strategy and partition."""

    @pytest.mark.asyncio
    async def testApiGoesToApiPartition(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)

        response = await worker.handleFetch(makeRequest("/api/listings"))

        assert response.status_code == 200
        assert await cacheStorage.match(makeRequest("/api/listings"), partitionName="bw1-v1-api") is not None

    @pytest.mark.asyncio
    async def testStaticAssetFromInstallNeedsNoNetwork(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)
        requestsAfterInstall = len(fakeNetwork.requests)

        response = await worker.handleFetch(makeRequest("/vite.svg", destination="image"))
        await response.aread()

        assert response.content == b"<svg/>"
        assert len(fakeNetwork.requests) == requestsAfterInstall

    @pytest.mark.asyncio
    async def testStaticAssetStoredInDynamicPartition(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)

        await worker.handleFetch(makeRequest("/assets/app.js"))

        assert await cacheStorage.match(makeRequest("/assets/app.js"), partitionName="bw1-v1-dynamic") is not None

    @pytest.mark.asyncio
    async def testOfflineNavigationServesShell(self, cacheStorage, fakeNetwork):
        """Test that an offline navigation gets the pre-cached root document."""
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)
        fakeNetwork.offline = True

        response = await worker.handleFetch(makeNavigationRequest("/listings/42"))
        await response.aread()

        assert response.content == b"<html>home</html>"
        assert response.extensions[SOURCE_EXTENSION] == "cache"

    @pytest.mark.asyncio
    async def testOfflineNavigationWithoutFallbackFails(self, cacheStorage, fakeNetwork):
        config = makeWorkerConfig(navigationFallback=None)
        worker = ServiceWorker(config, cacheStorage, fakeNetwork.transport)
        await worker.install()
        await worker.activate()
        fakeNetwork.offline = True

        with pytest.raises(httpx.ConnectError):
            await worker.handleFetch(makeNavigationRequest("/listings/42"))

    @pytest.mark.asyncio
    async def testOtherRequestsAreNotStored(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)

        await worker.handleFetch(makeRequest("/manifest.json"))

        assert await cacheStorage.match(makeRequest("/manifest.json")) is None

    @pytest.mark.asyncio
    async def testIgnoredSchemeGoesToNetwork(self, cacheStorage):
        seen: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=b"ext")

        worker = ServiceWorker(
            makeWorkerConfig(staticManifest=[]), cacheStorage, httpx.MockTransport(handler)
        )
        await worker.install()
        await worker.activate()

        response = await worker.handleFetch(httpx.Request("GET", "chrome-extension://abc/script.js"))

        assert response.status_code == 200
        assert seen == ["chrome-extension://abc/script.js"]
        assert await cacheStorage.keys() == ["bw1-v1-static"]


# ============================================================================
# Control Messages
# ============================================================================


class TestWorkerMessages:
    """Test control messages posted to the worker."""

    @pytest.mark.asyncio
    async def testClearAllCaches(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)
        await cacheStorage.open("other-app-cache")

        await worker.postMessage(ControlMessage.CLEAR_ALL_CACHES.value)

        assert await cacheStorage.keys() == []

    @pytest.mark.asyncio
    async def testUnknownMessageIsIgnored(self, cacheStorage, fakeNetwork):
        worker = await makeActiveWorker(cacheStorage, fakeNetwork)

        await worker.postMessage("self-destruct")

        assert worker.state == WorkerState.ACTIVATED
        assert await cacheStorage.keys() == ["bw1-v1-static"]

    @pytest.mark.asyncio
    async def testSkipWaitWithoutRegistration(self, cacheStorage, fakeNetwork):
        worker = ServiceWorker(makeWorkerConfig(skipWaiting=False), cacheStorage, fakeNetwork.transport)
        await worker.install()

        await worker.postMessage(ControlMessage.SKIP_WAIT.value)

        assert worker.skipWaitingRequested
        assert worker.state == WorkerState.INSTALLED
