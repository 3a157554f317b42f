"""
Update Notifier Module

Page-side component that tells the user a new worker version is ready and
reloads the page once the new version takes control, dood!

State machine:
    idle -> waiting-for-activation -> notified -> dismissed | applied

- A worker reaching "installed" while another worker already controls the
  page is an upgrade: the notifier shows a prompt. First installs never prompt.
- The prompt removes itself after promptTimeout seconds (dismissed), or the
  user applies the update, which sends skip-wait to the new worker (applied).
- The page reloads exactly once, on the first controller change that
  replaces an existing controller.
- A periodic task asks the registration for updates every checkInterval
  seconds; it is created at most once.
"""

import asyncio
import logging
from typing import Optional, Set

from internal.worker import ControlMessage, ServiceWorker, WorkerContainer, WorkerRegistration, WorkerState

from .types import (
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_PROMPT_TIMEOUT,
    PromptCallback,
    ReloadCallback,
    UpdateNotifierState,
)

logger = logging.getLogger(__name__)


class UpdateNotifier:
    """
    Detects worker upgrades and drives the update prompt, dood!

    Attributes:
        container: Page-side worker container
        state: Current UpdateNotifierState
        pendingWorker: The installed worker the current prompt is about

    Args:
        container: Page-side worker container
        showPrompt: Called with the new version to show a non-blocking prompt
        hidePrompt: Called with the version to remove the prompt
        reload: Reloads the page
        checkInterval: Seconds between update checks
        promptTimeout: Seconds before an unanswered prompt is dismissed

    Example:
        >>> notifier = UpdateNotifier(container, showBanner, hideBanner, reloadPage)
        >>> notifier.attach(registration)
        >>> notifier.startUpdateChecks()
        >>> # user clicked "update"
        >>> await notifier.applyUpdate()
    """

    def __init__(
        self,
        container: WorkerContainer,
        showPrompt: PromptCallback,
        hidePrompt: PromptCallback,
        reload: ReloadCallback,
        checkInterval: float = DEFAULT_CHECK_INTERVAL,
        promptTimeout: float = DEFAULT_PROMPT_TIMEOUT,
    ):
        self.container = container
        self.showPrompt = showPrompt
        self.hidePrompt = hidePrompt
        self.reload = reload
        self.checkInterval = checkInterval
        self.promptTimeout = promptTimeout

        self.state = UpdateNotifierState.IDLE
        self.pendingWorker: Optional[ServiceWorker] = None
        self.registration: Optional[WorkerRegistration] = None

        self._notifiedVersions: Set[str] = set()
        self._dismissTask: Optional[asyncio.Task] = None
        self._updateCheckTask: Optional[asyncio.Task] = None
        self._updateChecksScheduled = False
        self._reloading = False

        self.container.onControllerChange(self._onControllerChange)

    def attach(self, registration: WorkerRegistration) -> None:
        """Start watching a registration for new versions. Attaching twice is a no-op."""
        if self.registration is registration:
            return

        self.registration = registration
        registration.onUpdateFound(self._onUpdateFound)
        logger.debug("UpdateNotifier attached to worker registration")

    def _onUpdateFound(self, registration: WorkerRegistration) -> None:
        worker = registration.installing
        if worker is None:
            return

        worker.onStateChange(lambda state: self._onWorkerStateChange(worker, state))

    def _onWorkerStateChange(self, worker: ServiceWorker, state: WorkerState) -> None:
        if state != WorkerState.INSTALLED:
            return

        controller = self.container.controller
        if controller is None or controller is worker:
            logger.debug(f"Worker {worker.version} installed for the first time, no prompt needed")
            return

        if worker.version in self._notifiedVersions:
            return

        logger.info(f"New version {worker.version} available, dood!")
        self.state = UpdateNotifierState.WAITING_FOR_ACTIVATION
        self.pendingWorker = worker
        self._notify(worker)

    def _notify(self, worker: ServiceWorker) -> None:
        self._notifiedVersions.add(worker.version)
        try:
            self.showPrompt(worker.version)
        except Exception as e:
            logger.error(f"Failed to show update prompt: {e}")
            return

        self.state = UpdateNotifierState.NOTIFIED
        self._cancelDismissTask()
        self._dismissTask = asyncio.create_task(self._dismissAfterTimeout())

    async def _dismissAfterTimeout(self) -> None:
        await asyncio.sleep(self.promptTimeout)
        self.dismiss()

    def _cancelDismissTask(self) -> None:
        if self._dismissTask is not None and not self._dismissTask.done():
            self._dismissTask.cancel()
        self._dismissTask = None

    def dismiss(self) -> None:
        """Remove the prompt without applying the update."""
        if self.state != UpdateNotifierState.NOTIFIED or self.pendingWorker is None:
            return

        self._hidePrompt(self.pendingWorker.version)
        self.state = UpdateNotifierState.DISMISSED
        logger.info(f"Update prompt for {self.pendingWorker.version} dismissed")

    def _hidePrompt(self, version: str) -> None:
        try:
            self.hidePrompt(version)
        except Exception as e:
            logger.error(f"Failed to hide update prompt: {e}")

    async def applyUpdate(self) -> bool:
        """
        Apply the pending update: tell the new worker to stop waiting.

        The page reload follows from the controller change.

        Returns:
            bool: True if a skip-wait message was sent
        """
        if self.state != UpdateNotifierState.NOTIFIED or self.pendingWorker is None:
            logger.debug(f"No update to apply in state {self.state}")
            return False

        self._cancelDismissTask()
        self._hidePrompt(self.pendingWorker.version)
        self.state = UpdateNotifierState.APPLIED
        await self.pendingWorker.postMessage(ControlMessage.SKIP_WAIT.value)
        return True

    def _onControllerChange(self, controller: ServiceWorker, previous: Optional[ServiceWorker]) -> None:
        if previous is None:
            logger.debug(f"Worker {controller.version} took control of an uncontrolled page, no reload")
            return

        if self._reloading:
            return

        self._reloading = True
        logger.info(f"Controller changed to {controller.version}, reloading page")
        self.reload()

    def startUpdateChecks(self) -> None:
        """
        Start periodic update checks on the attached registration.

        Creates the periodic task at most once, however many times it's called.

        Raises:
            RuntimeError: If no registration is attached
        """
        if self.registration is None:
            raise RuntimeError("UpdateNotifier is not attached to a registration")

        if self._updateChecksScheduled:
            logger.debug("Update checks already scheduled")
            return

        self._updateChecksScheduled = True
        self._updateCheckTask = asyncio.create_task(self._updateCheckLoop(self.registration))
        logger.info(f"Checking for worker updates every {self.checkInterval}s")

    async def _updateCheckLoop(self, registration: WorkerRegistration) -> None:
        while True:
            await asyncio.sleep(self.checkInterval)
            try:
                await registration.update()
            except Exception as e:
                logger.error(f"Worker update check failed: {e}")

    async def stopUpdateChecks(self) -> None:
        """Cancel the periodic update checks. They are not scheduled again."""
        task = self._updateCheckTask
        self._updateCheckTask = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Worker update checks stopped")

    async def stop(self) -> None:
        """Cancel the update checks and any pending dismissal."""
        tasks = [task for task in (self._updateCheckTask, self._dismissTask) if task is not None]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._updateCheckTask = None
        self._dismissTask = None
