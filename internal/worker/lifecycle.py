"""
Cache lifecycle manager: partition creation at install, eviction at activation.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import httpx

from lib.cache_storage import CacheStorage, duplicateResponse

from .strategies import fetchFromNetwork
from .types import WorkerConfig

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """
    Outcome of an install pass.

    Attributes:
        cached: Manifest paths stored in the static partition
        failed: Manifest paths that could not be fetched or stored
    """

    cached: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def isComplete(self) -> bool:
        return not self.failed


class CacheLifecycleManager:
    """
    Sole owner of partition creation and deletion for one worker version.

    - install(): pre-populate the static partition from the manifest, best effort
    - activate(): evict partitions of other versions inside our namespace
    - clearAll(): evict every partition, for manual recovery

    None of these raise for per-item failures: each failure is logged and the
    pass continues.

    Args:
        config: Worker configuration (version, namespace, manifest, origin)
        storage: Cache storage holding the partitions
        network: Transport used to fetch manifest items
    """

    def __init__(self, config: WorkerConfig, storage: CacheStorage, network: httpx.AsyncBaseTransport):
        self.config = config
        self.storage = storage
        self.network = network

    async def install(self) -> InstallReport:
        """
        Populate the static partition with every manifest path.

        Items are fetched one by one; a failed item (transport error,
        non-2xx status or storage error) is logged and skipped. Nothing is
        rolled back.

        Returns:
            InstallReport: Cached and failed manifest paths
        """
        report = InstallReport()
        partitionName = self.config.partitions.static
        logger.info(f"Installing {self.config.version}: caching {len(self.config.staticManifest)} static assets")

        try:
            partition = await self.storage.open(partitionName)
        except Exception as e:
            logger.error(f"Failed to open static partition '{partitionName}': {e}")
            report.failed.extend(self.config.staticManifest)
            return report

        for path in self.config.staticManifest:
            request = httpx.Request("GET", self.config.resolve(path))
            try:
                response = await fetchFromNetwork(self.network, request, self.config.networkTimeout)
                if not response.is_success:
                    await response.aclose()
                    logger.error(f"Failed to cache static asset {path}: status {response.status_code}")
                    report.failed.append(path)
                    continue

                _, snapshot = await duplicateResponse(response)
                await partition.put(request, snapshot)
                report.cached.append(path)
                logger.debug(f"Cached static asset {path}")
            except Exception as e:
                logger.error(f"Failed to cache static asset {path}: {e}")
                report.failed.append(path)

        logger.info(
            f"Install of {self.config.version} done: {len(report.cached)} cached, {len(report.failed)} failed, dood!"
        )
        return report

    async def activate(self) -> List[str]:
        """
        Delete stale partitions.

        A partition is stale when its name starts with our namespace but is
        not one of the current static/dynamic/api names. Partitions outside
        the namespace are left alone. Deletion failures are logged and
        activation carries on.

        Returns:
            List[str]: Names of the deleted partitions
        """
        logger.info(f"Activating {self.config.version}")
        currentNames = set(self.config.partitions.all())

        try:
            existingNames = await self.storage.keys()
        except Exception as e:
            logger.error(f"Failed to list cache partitions during activation: {e}")
            return []

        deleted: List[str] = []
        for name in existingNames:
            if not name.startswith(self.config.namespace) or name in currentNames:
                continue

            logger.info(f"Deleting old cache partition: {name}")
            try:
                if await self.storage.delete(name):
                    deleted.append(name)
            except Exception as e:
                logger.error(f"Failed to delete old cache partition '{name}': {e}")

        return deleted

    async def clearAll(self) -> List[str]:
        """
        Delete every partition regardless of its name.

        Returns:
            List[str]: Names of the deleted partitions
        """
        try:
            existingNames = await self.storage.keys()
        except Exception as e:
            logger.error(f"Failed to list cache partitions: {e}")
            return []

        deleted: List[str] = []
        for name in existingNames:
            try:
                if await self.storage.delete(name):
                    deleted.append(name)
            except Exception as e:
                logger.error(f"Failed to delete cache partition '{name}': {e}")

        logger.info(f"Cleared {len(deleted)} cache partitions, dood!")
        return deleted
