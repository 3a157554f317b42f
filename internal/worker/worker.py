"""
Service worker: one installed version of the caching policy.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Optional

import httpx

from lib.cache_storage import CacheStorage

from .dispatcher import WorkerEventDispatcher
from .exceptions import WorkerError, WorkerStateError
from .lifecycle import CacheLifecycleManager, InstallReport
from .router import classifyRequest
from .strategies import (
    CacheFirstStrategy,
    CachingStrategy,
    NetworkFirstStrategy,
    NetworkOnlyFallbackStrategy,
    fetchFromNetwork,
)
from .types import ControlMessage, StateChangeListener, TrafficClass, WorkerConfig, WorkerEventKind, WorkerState

if TYPE_CHECKING:
    from .registration import WorkerRegistration

logger = logging.getLogger(__name__)


class ServiceWorker:
    """
    One version of the worker, with its lifecycle and fetch handling, dood!

    Lifecycle: parsed -> installing -> installed -> activating -> activated,
    or redundant when replaced or when install fails. Install, activate,
    fetch and message events are routed through a WorkerEventDispatcher.

    Attributes:
        config: Worker configuration for this version
        version: Version tag (also the partition name prefix)
        lifecycle: Partition owner for this version
        strategies: Caching strategy per traffic class
        registration: Registration that owns this worker, if any
        installReport: Result of the install pass, once installed

    Example:
        >>> worker = ServiceWorker(WorkerConfig(), storage, network)
        >>> await worker.install()
        >>> await worker.activate()
        >>> response = await worker.handleFetch(httpx.Request("GET", "http://localhost:5173/api/listings"))
    """

    def __init__(self, config: WorkerConfig, storage: CacheStorage, network: httpx.AsyncBaseTransport):
        self.config = config
        self.version = config.version
        self.storage = storage
        self.network = network
        self.lifecycle = CacheLifecycleManager(config, storage, network)
        self.strategies = self._buildStrategies()
        self.registration: Optional["WorkerRegistration"] = None
        self.installReport: Optional[InstallReport] = None

        self._state = WorkerState.PARSED
        self._stateListeners: List[StateChangeListener] = []
        self.skipWaitingRequested = False

        self.dispatcher = WorkerEventDispatcher()
        self.dispatcher.registerHandler(WorkerEventKind.INSTALL, self._onInstall)
        self.dispatcher.registerHandler(WorkerEventKind.ACTIVATE, self._onActivate)
        self.dispatcher.registerHandler(WorkerEventKind.FETCH, self._onFetch)
        self.dispatcher.registerHandler(WorkerEventKind.MESSAGE, self._onMessage)

    def __repr__(self) -> str:
        return f"ServiceWorker(version={self.version!r}, state={self._state.value!r})"

    def _buildStrategies(self) -> Dict[TrafficClass, CachingStrategy]:
        partitions = self.config.partitions
        timeout = self.config.networkTimeout
        fallbackUrl = None
        if self.config.navigationFallback:
            fallbackUrl = self.config.resolve(self.config.navigationFallback)

        return {
            TrafficClass.API: NetworkFirstStrategy(self.storage, self.network, partitions.api, timeout=timeout),
            TrafficClass.STATIC_ASSET: CacheFirstStrategy(self.storage, self.network, partitions.dynamic, timeout),
            TrafficClass.NAVIGATION: NetworkFirstStrategy(
                self.storage, self.network, partitions.dynamic, fallbackUrl=fallbackUrl, timeout=timeout
            ),
            TrafficClass.OTHER: NetworkOnlyFallbackStrategy(self.storage, self.network, partitions.dynamic, timeout),
        }

    @property
    def state(self) -> WorkerState:
        return self._state

    def onStateChange(self, listener: StateChangeListener) -> None:
        """Register a listener called with the new state on every state change."""
        self._stateListeners.append(listener)

    def _setState(self, state: WorkerState) -> None:
        if state == self._state:
            return

        logger.debug(f"Worker {self.version}: {self._state} -> {state}")
        self._state = state
        for listener in list(self._stateListeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State change listener {listener} failed: {e}")

    async def install(self) -> InstallReport:
        """
        Run the install event: pre-cache the static manifest.

        When skip-waiting is configured, the worker asks to be activated
        right after install instead of waiting for old clients to go away.

        Returns:
            InstallReport: Cached and failed manifest paths

        Raises:
            WorkerStateError: If the worker was already installed
            WorkerError: If the install handler fails unexpectedly; the worker becomes redundant
        """
        if self._state != WorkerState.PARSED:
            raise WorkerStateError(f"Cannot install worker {self.version} in state {self._state}")

        self._setState(WorkerState.INSTALLING)
        try:
            self.installReport = await self.dispatcher.dispatch(WorkerEventKind.INSTALL)
        except Exception as e:
            self._setState(WorkerState.REDUNDANT)
            raise WorkerError(f"Install of {self.version} failed: {e}") from e

        if self.config.skipWaiting:
            self.skipWaitingRequested = True
        self._setState(WorkerState.INSTALLED)
        return self.installReport

    async def activate(self) -> List[str]:
        """
        Run the activate event: evict stale partitions.

        Returns:
            List[str]: Names of deleted partitions

        Raises:
            WorkerStateError: If the worker is not installed
        """
        if self._state != WorkerState.INSTALLED:
            raise WorkerStateError(f"Cannot activate worker {self.version} in state {self._state}")

        self._setState(WorkerState.ACTIVATING)
        deleted = await self.dispatcher.dispatch(WorkerEventKind.ACTIVATE)
        self._setState(WorkerState.ACTIVATED)
        return deleted

    async def handleFetch(self, request: httpx.Request) -> httpx.Response:
        """
        Run the fetch event for an intercepted request.

        Raises:
            WorkerStateError: If the worker is not activated
            httpx.TransportError: When neither network nor cache can answer
        """
        if self._state != WorkerState.ACTIVATED:
            raise WorkerStateError(f"Worker {self.version} can't handle fetches in state {self._state}")

        return await self.dispatcher.dispatch(WorkerEventKind.FETCH, request)

    async def postMessage(self, message: str) -> None:
        """Deliver a control message to the worker."""
        if self._state == WorkerState.REDUNDANT:
            logger.warning(f"Dropping message '{message}' sent to redundant worker {self.version}")
            return

        await self.dispatcher.dispatch(WorkerEventKind.MESSAGE, message)

    async def skipWaiting(self) -> None:
        """
        Ask to be activated without waiting for old clients to close.

        If the worker is already waiting in its registration, it is
        activated now; otherwise the registration activates it once
        install finishes.
        """
        self.skipWaitingRequested = True
        if self.registration is not None and self.registration.waiting is self:
            await self.registration.activateWaiting()

    async def _onInstall(self) -> InstallReport:
        return await self.lifecycle.install()

    async def _onActivate(self) -> List[str]:
        return await self.lifecycle.activate()

    async def _onFetch(self, request: httpx.Request) -> httpx.Response:
        trafficClass = classifyRequest(request, self.config)
        if trafficClass == TrafficClass.IGNORED:
            return await fetchFromNetwork(self.network, request, self.config.networkTimeout)

        strategy = self.strategies[trafficClass]
        logger.debug(f"{request.method} {request.url} -> {trafficClass} via {strategy}")
        return await strategy.handle(request)

    async def _onMessage(self, message: str) -> None:
        try:
            controlMessage = ControlMessage(message)
        except ValueError:
            logger.warning(f"Ignoring unknown control message: {message!r}")
            return

        match controlMessage:
            case ControlMessage.SKIP_WAIT:
                logger.info(f"Worker {self.version} received skip-wait, dood!")
                await self.skipWaiting()
            case ControlMessage.CLEAR_ALL_CACHES:
                logger.info(f"Worker {self.version} received clear-all-caches")
                await self.lifecycle.clearAll()
