"""
Offline worker - caching HTTP client front with versioned cache partitions,
update notifications and a backend keep-alive pinger.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Any, Coroutine, List, Optional, Set

import httpx

from internal.config.manager import ConfigManager
from internal.services.keepalive import KeepAliveService
from internal.services.update_notifier import UpdateNotifier
from internal.worker import ControlMessage, WorkerConfig, WorkerContainer, WorkerRegistration, WorkerTransport
from lib.cache_storage import CacheStorage
from lib.logging_utils import initLogging
from lib.utils import jsonDumps

# Configure basic logging first
logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", level=logging.INFO)
# set higher logging level for httpx to avoid all GET and POST requests being logged
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:3001"
BACKGROUND_TASKS_TIMEOUT = 5.0


class OfflineWorkerApp:
    """
    Main orchestrator: config -> logging -> cache storage -> worker -> update notifier -> keep-alive.

    The "page" is an httpx.AsyncClient whose transport is the worker. A page
    reload recreates the client.
    """

    def __init__(
        self,
        configPath: str = "config.toml",
        configDirs: Optional[List[str]] = None,
        enableKeepAlive: bool = True,
        network: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the application with all components."""
        self.configPath = configPath
        self.configDirs = configDirs

        self.configManager = ConfigManager(configPath, configDirs)
        initLogging(self.configManager.getLoggingConfig())

        self.storage = CacheStorage.fromConfig(self.configManager.getCacheStorageConfig())
        self.container = WorkerContainer(self.storage, network or httpx.AsyncHTTPTransport())
        self.registration: Optional[WorkerRegistration] = None

        notifierConfig = self.configManager.getUpdateNotifierConfig()
        self.autoApplyUpdates = bool(notifierConfig.get("auto-apply", False))
        self.updateNotifier = UpdateNotifier(
            self.container,
            showPrompt=self._showUpdatePrompt,
            hidePrompt=self._hideUpdatePrompt,
            reload=self._reload,
            checkInterval=notifierConfig.get("check-interval", 60),
            promptTimeout=notifierConfig.get("prompt-timeout", 10),
        )

        self.keepAlive: Optional[KeepAliveService] = None
        keepAliveConfig = self.configManager.getKeepAliveConfig()
        if enableKeepAlive and keepAliveConfig.get("enabled", True):
            self.keepAlive = KeepAliveService(
                baseUrl=keepAliveConfig.get("base-url", DEFAULT_BACKEND_URL),
                healthPath=keepAliveConfig.get("health-path", "/health"),
                interval=keepAliveConfig.get("interval", 600),
                requestTimeout=keepAliveConfig.get("request-timeout", 10),
            )

        self.backgroundTasks: Set[asyncio.Task] = set()
        self.client = self._makeClient()
        self.reloadCount = 0

    def _addBackgroundTask(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run a coroutine as a tracked background task; shutdown() waits for it."""
        task = asyncio.create_task(coro)
        self.backgroundTasks.add(task)
        task.add_done_callback(self._onBackgroundTaskDone)
        return task

    def _onBackgroundTaskDone(self, task: asyncio.Task) -> None:
        self.backgroundTasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Background task {task.get_name()} failed: {error}")

    async def _drainBackgroundTasks(self) -> None:
        """Wait for background tasks, including ones they spawn; cancel whatever outlives the timeout."""
        while self.backgroundTasks:
            _, stillPending = await asyncio.wait(set(self.backgroundTasks), timeout=BACKGROUND_TASKS_TIMEOUT)
            if stillPending:
                logger.warning(f"Cancelling {len(stillPending)} background tasks still running at shutdown")
                for task in stillPending:
                    task.cancel()
                await asyncio.gather(*stillPending, return_exceptions=True)
                return

    def _makeClient(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=WorkerTransport(self.container))

    async def _loadWorkerConfig(self) -> WorkerConfig:
        """Re-read the configuration so a version bump on disk is picked up by the next update check."""
        return ConfigManager(self.configPath, self.configDirs).getWorkerConfig()

    def _showUpdatePrompt(self, version: str) -> None:
        logger.warning(f"New version {version} is available, dood!")
        if self.autoApplyUpdates:
            self._addBackgroundTask(self.updateNotifier.applyUpdate())

    def _hideUpdatePrompt(self, version: str) -> None:
        logger.info(f"Update prompt for {version} closed")

    def _reload(self) -> None:
        """Reload the page: open a fresh client on the new controller."""
        self.reloadCount += 1
        oldClient = self.client
        self.client = self._makeClient()
        self._addBackgroundTask(oldClient.aclose())
        logger.info("Page reloaded")

    async def start(self) -> None:
        """Register the worker and attach the update notifier."""
        self.registration = await self.container.register(self._loadWorkerConfig)
        self.updateNotifier.attach(self.registration)
        controller = self.container.controller
        logger.info(f"Worker ready, controller: {controller}")

    async def fetch(self, url: str) -> httpx.Response:
        """Fetch a URL through the worker."""
        return await self.client.get(url)

    async def clearCaches(self) -> None:
        """Ask the controlling worker to delete every cache partition."""
        controller = self.container.controller
        if controller is None:
            logger.warning("No controlling worker, nothing to clear")
            return
        await controller.postMessage(ControlMessage.CLEAR_ALL_CACHES.value)

    async def runForever(self) -> None:
        """Run keep-alive pings and update checks until cancelled."""
        if self.keepAlive is not None:
            self.keepAlive.start()
        self.updateNotifier.startUpdateChecks()
        await asyncio.Event().wait()

    async def shutdown(self) -> None:
        """Stop background services, let pending background tasks finish and close the network transport."""
        if self.keepAlive is not None:
            await self.keepAlive.stop()
        await self.updateNotifier.stop()
        await self._drainBackgroundTasks()
        await self.client.aclose()
        await self.container.network.aclose()
        logger.info("Offline worker stopped, dood!")


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Offline worker - versioned response caching with update notifications, dood!"
    )
    parser.add_argument(
        "-c",
        "--config",
        default="config.toml",
        help="Path to configuration file (default: config.toml)",
    )
    parser.add_argument(
        "--config-dir",
        action="append",
        help="Directory to search for .toml config files recursively (can be specified multiple times), dood!",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Pretty-print loaded configuration and exit, dood!",
    )
    parser.add_argument(
        "--fetch",
        action="append",
        metavar="URL",
        help="Fetch URL through the worker, print status and source, then exit (can be specified multiple times)",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Delete every cache partition and exit",
    )
    parser.add_argument(
        "--no-keepalive",
        action="store_true",
        help="Don't ping the backend health endpoint",
    )
    args = parser.parse_args()
    args.config = os.path.abspath(args.config)

    if args.config_dir:
        args.config_dir = [os.path.abspath(dir_path) for dir_path in args.config_dir]

    return args


def prettyPrintConfig(configManager: ConfigManager):
    """Pretty-print the loaded configuration and exit, dood!"""
    print("=== Offline Worker Configuration ===")
    print()
    print(jsonDumps(configManager.config, indent=2))
    print()
    print("=== Configuration loaded successfully, dood! ===")


async def runApp(app: OfflineWorkerApp, args) -> None:
    """Run the requested mode and always shut the application down."""
    try:
        await app.start()

        if args.clear_cache:
            await app.clearCaches()
            print(jsonDumps(await app.storage.getStats(), indent=2))
            return

        if args.fetch:
            for url in args.fetch:
                try:
                    response = await app.fetch(url)
                except httpx.TransportError as e:
                    print(f"{url}: failed ({e})")
                    continue
                source = response.extensions.get("worker_source", "network")
                print(f"{url}: {response.status_code} from {source}, {len(response.content)} bytes")
            return

        await app.runForever()
    finally:
        await app.shutdown()


def main():
    """Main entry point."""
    args = parse_arguments()

    try:
        if args.print_config:
            configManager = ConfigManager(configPath=args.config, configDirs=args.config_dir)
            prettyPrintConfig(configManager)
            sys.exit(0)

        app = OfflineWorkerApp(
            configPath=args.config,
            configDirs=args.config_dir,
            enableKeepAlive=not args.no_keepalive,
        )
        asyncio.run(runApp(app, args))
    except KeyboardInterrupt:
        logger.info("Offline worker stopped by user")
    except Exception as e:
        logger.error(f"Offline worker crashed: {e}")
        logger.exception(e)
        sys.exit(1)


if __name__ == "__main__":
    main()
