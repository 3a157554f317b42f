"""
Worker registration and the page-side worker container.

WorkerContainer plays the page's view of the worker (which worker controls
the page, controller-change events). WorkerRegistration tracks the
installing, waiting and active versions and installs new versions on update.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, TypeAlias

import httpx

from lib.cache_storage import CacheStorage

from .exceptions import WorkerError
from .types import WorkerConfig, WorkerState
from .worker import ServiceWorker

logger = logging.getLogger(__name__)

ScriptLoader: TypeAlias = Callable[[], Awaitable[WorkerConfig]]
UpdateFoundListener: TypeAlias = Callable[["WorkerRegistration"], None]
ControllerChangeListener: TypeAlias = Callable[[ServiceWorker, Optional[ServiceWorker]], None]


class WorkerRegistration:
    """
    Tracks the worker versions for one scope, dood!

    Slots:
        installing: version currently running its install event
        waiting: installed version waiting for activation
        active: activated version (the one clients are claimed by)

    update() asks the script loader for the current configuration and
    installs a new worker when its version differs from the active and
    waiting ones. Concurrent update() calls are serialized.

    Args:
        container: Page-side container notified on claim
        scriptLoader: Coroutine returning the current WorkerConfig
    """

    def __init__(self, container: "WorkerContainer", scriptLoader: ScriptLoader):
        self.container = container
        self.scriptLoader = scriptLoader
        self.installing: Optional[ServiceWorker] = None
        self.waiting: Optional[ServiceWorker] = None
        self.active: Optional[ServiceWorker] = None
        self._updateFoundListeners: List[UpdateFoundListener] = []
        self._updateLock = asyncio.Lock()

    def onUpdateFound(self, listener: UpdateFoundListener) -> None:
        """Register a listener called when a new version starts installing."""
        self._updateFoundListeners.append(listener)

    def _fireUpdateFound(self) -> None:
        for listener in list(self._updateFoundListeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Update-found listener {listener} failed: {e}")

    async def update(self) -> Optional[ServiceWorker]:
        """
        Check for a newer version and install it.

        Returns:
            The newly installed worker, or None if there was nothing new or
            the install failed
        """
        async with self._updateLock:
            config = await self.scriptLoader()

            knownVersions = {worker.version for worker in (self.active, self.waiting) if worker is not None}
            if config.version in knownVersions:
                logger.debug(f"Worker version {config.version} is current, nothing to update")
                return None

            worker = ServiceWorker(config, self.container.storage, self.container.network)
            worker.registration = self
            self.installing = worker
            logger.info(f"Found worker version {config.version}, installing, dood!")
            self._fireUpdateFound()

            try:
                await worker.install()
            except WorkerError as e:
                logger.error(f"Worker {config.version} failed to install: {e}")
                return None
            finally:
                self.installing = None

            if self.waiting is not None:
                self.waiting._setState(WorkerState.REDUNDANT)
            self.waiting = worker

            if self.active is None or worker.skipWaitingRequested:
                await self.activateWaiting()
            else:
                logger.info(f"Worker {config.version} installed and waiting for activation")

            return worker

    async def activateWaiting(self) -> None:
        """
        Promote the waiting worker to active and let it claim the clients.

        The previous active worker becomes redundant.
        """
        worker = self.waiting
        if worker is None:
            return

        self.waiting = None
        previous = self.active
        if previous is not None:
            previous._setState(WorkerState.REDUNDANT)

        self.active = worker
        await worker.activate()
        self.container.claim(worker)

    async def unregister(self) -> bool:
        """
        Unregister: drop every version and release the page.

        Returns:
            True if there was anything to unregister
        """
        workers = [worker for worker in (self.installing, self.waiting, self.active) if worker is not None]
        for worker in workers:
            worker._setState(WorkerState.REDUNDANT)
            self.container.release(worker)

        self.installing = self.waiting = self.active = None
        if self.container.registration is self:
            self.container.registration = None

        logger.info("Worker registration removed")
        return bool(workers)


class WorkerContainer:
    """
    The page's view of its worker.

    Holds the controller (the active worker handling the page's requests)
    and fires controller-change listeners with (newController, previousController)
    whenever a worker claims the page.

    Args:
        storage: Cache storage shared by every worker version
        network: Transport the workers use for network fetches

    Example:
        >>> container = WorkerContainer(storage, httpx.AsyncHTTPTransport())
        >>> registration = await container.register(loadWorkerConfig)
        >>> container.controller
        ServiceWorker(version='bw1-v1', state='activated')
    """

    def __init__(self, storage: CacheStorage, network: httpx.AsyncBaseTransport):
        self.storage = storage
        self.network = network
        self.controller: Optional[ServiceWorker] = None
        self.registration: Optional[WorkerRegistration] = None
        self._controllerChangeListeners: List[ControllerChangeListener] = []

    async def register(self, scriptLoader: ScriptLoader) -> WorkerRegistration:
        """
        Register the worker and install the current version.

        Calling it again reuses the existing registration and runs an update check.

        Returns:
            WorkerRegistration: The registration for this container
        """
        if self.registration is None:
            self.registration = WorkerRegistration(self, scriptLoader)
            logger.info("Worker registered")
        await self.registration.update()
        return self.registration

    def onControllerChange(self, listener: ControllerChangeListener) -> None:
        """Register a listener called as listener(newController, previousController)."""
        self._controllerChangeListeners.append(listener)

    def claim(self, worker: ServiceWorker) -> None:
        """Make worker the controller immediately, without waiting for a reload."""
        previous = self.controller
        if previous is worker:
            return

        self.controller = worker
        logger.info(f"Worker {worker.version} now controls the page")
        for listener in list(self._controllerChangeListeners):
            try:
                listener(worker, previous)
            except Exception as e:
                logger.error(f"Controller change listener {listener} failed: {e}")

    def release(self, worker: ServiceWorker) -> None:
        """Drop worker as controller, if it is the controller."""
        if self.controller is worker:
            self.controller = None
