"""
Keep-Alive Service Module

Keeps the backend awake by probing its health endpoint on a fixed interval.
The ping is best effort: failures are logged and the next tick is the retry.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from .types import DEFAULT_HEALTH_PATH, DEFAULT_PING_INTERVAL, DEFAULT_REQUEST_TIMEOUT, KeepAliveState

logger = logging.getLogger(__name__)


class KeepAliveService:
    """
    Periodic liveness ping for the backend, dood!

    Construct one instance at application start and pass it where needed.
    start() pings once immediately, then every `interval` seconds from a
    single background task. start() while running and stop() while stopped
    are both no-ops.

    Attributes:
        baseUrl: Backend base URL
        healthPath: Health endpoint path
        interval: Seconds between pings
        lastPingAt: Unix time of the last ping, or None
        lastPingOk: Outcome of the last ping, or None

    Args:
        baseUrl: Backend base URL, e.g. "https://api.example.com"
        healthPath: Health endpoint path
        interval: Seconds between pings
        requestTimeout: HTTP request timeout (seconds)
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Example:
        >>> keepAlive = KeepAliveService("http://localhost:3001")
        >>> keepAlive.start()
        >>> ...
        >>> await keepAlive.stop()
    """

    def __init__(
        self,
        baseUrl: str,
        healthPath: str = DEFAULT_HEALTH_PATH,
        interval: float = DEFAULT_PING_INTERVAL,
        requestTimeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.baseUrl = baseUrl.rstrip("/")
        self.healthPath = healthPath
        self.interval = interval
        self.requestTimeout = requestTimeout
        self.transport = transport

        self.state = KeepAliveState.STOPPED
        self.lastPingAt: Optional[float] = None
        self.lastPingOk: Optional[bool] = None
        self.pingCount = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def isRunning(self) -> bool:
        return self.state == KeepAliveState.RUNNING

    @property
    def healthUrl(self) -> str:
        return f"{self.baseUrl}{self.healthPath}"

    async def ping(self) -> bool:
        """
        Ping the health endpoint once.

        Never raises: every failure is logged as a warning.

        Returns:
            bool: True if the endpoint answered with a 2xx status
        """
        self.pingCount += 1
        self.lastPingAt = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.requestTimeout, transport=self.transport) as client:
                response = await client.get(self.healthUrl, headers={"Content-Type": "application/json"})

            if not response.is_success:
                logger.warning(f"Keep-alive ping failed: status {response.status_code}")
                self.lastPingOk = False
                return False

            data = response.json()
            timestamp = data.get("timestamp") if isinstance(data, dict) else None
            logger.info(f"Keep-alive ping successful: {timestamp}")
            self.lastPingOk = True
            return True

        except httpx.TimeoutException:
            logger.warning("Keep-alive ping failed: request timeout")
        except httpx.RequestError as e:
            logger.warning(f"Keep-alive ping failed: {e}")
        except json.JSONDecodeError as e:
            logger.warning(f"Keep-alive ping returned invalid JSON: {e}")
        except Exception as e:
            logger.warning(f"Keep-alive ping failed unexpectedly: {e}")

        self.lastPingOk = False
        return False

    async def _run(self) -> None:
        while True:
            await self.ping()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """
        Start pinging: one ping now, then one every interval.

        Must be called from a running event loop. Calling it while running
        does nothing.
        """
        if self.isRunning:
            logger.info("Keep-alive service already running")
            return

        logger.info(f"Starting keep-alive service for {self.healthUrl}, every {self.interval}s, dood!")
        self._task = asyncio.create_task(self._run())
        self.state = KeepAliveState.RUNNING

    async def stop(self) -> None:
        """Stop probing. Safe to call when already stopped."""
        if self._task is None:
            return

        task = self._task
        self._task = None
        self.state = KeepAliveState.STOPPED
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Keep-alive service stopped")

    def getStats(self) -> Dict[str, Any]:
        """
        Get keep-alive statistics.

        Returns:
            Dict with state, healthUrl, interval, pingCount, lastPingAt, lastPingOk
        """
        return {
            "state": self.state.value,
            "healthUrl": self.healthUrl,
            "interval": self.interval,
            "pingCount": self.pingCount,
            "lastPingAt": self.lastPingAt,
            "lastPingOk": self.lastPingOk,
        }
