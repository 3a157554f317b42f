"""
Filesystem cache backend implementation

This module provides a durable cache backend that keeps each partition in its
own directory and each entry in its own JSON file, with atomic writes and
proper error handling.
"""

import json
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..exceptions import CacheBackendError, CacheKeyError
from ..models import CachedResponse
from ..utils import hashKey, sanitizePartitionName
from .abstract import AbstractCacheBackend

logger = logging.getLogger(__name__)

# Marker file holding partition metadata (original name, creation time)
PARTITION_META_FILE = "_partition.json"
ENTRY_SUFFIX = ".json"


class FSCacheBackend(AbstractCacheBackend):
    """
    Filesystem-based cache backend.

    Layout:
        <baseDir>/<partition>/_partition.json     partition metadata
        <baseDir>/<partition>/<sha256(key)>.json  one entry per file

    Features:
    - Automatic directory creation if baseDir doesn't exist
    - Atomic writes: temp file first, then rename over the target
    - File permissions set to 0o644
    - Errors wrapped in CacheBackendError

    File I/O is synchronous; entries are small response snapshots.

    Args:
        baseDir: Base directory path for storage (will be created if needed)

    Raises:
        CacheBackendError: If baseDir cannot be created or accessed

    Example:
        >>> backend = FSCacheBackend("/tmp/sw-cache")
        >>> await backend.putEntry("bw1-v1-static", "GET http://localhost/", snapshot)
        >>> await backend.listPartitions()
        ['bw1-v1-static']
    """

    def __init__(self, baseDir: str):
        self.baseDir = Path(baseDir)

        try:
            self.baseDir.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            raise CacheBackendError(f"Failed to create base directory '{baseDir}': {e}", originalError=e)

        if not self.baseDir.is_dir():
            raise CacheBackendError(f"Base path '{baseDir}' exists but is not a directory")

    def _getPartitionPath(self, name: str) -> Path:
        return self.baseDir / sanitizePartitionName(name)

    def _getEntryPath(self, partition: str, key: str) -> Path:
        return self._getPartitionPath(partition) / (hashKey(key) + ENTRY_SUFFIX)

    def _writeJsonAtomic(self, filePath: Path, data: Dict[str, Any]) -> None:
        """Write JSON to a temp file and rename it over the target."""
        tempPath = filePath.with_suffix(filePath.suffix + ".tmp")
        try:
            with open(tempPath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.chmod(tempPath, 0o644)
            tempPath.replace(filePath)
        except Exception as e:
            if tempPath.exists():
                try:
                    tempPath.unlink()
                except Exception:
                    pass  # Ignore cleanup errors
            raise CacheBackendError(f"Failed to write '{filePath}': {e}", originalError=e)

    def _readPartitionMeta(self, partitionPath: Path) -> Optional[Dict[str, Any]]:
        metaPath = partitionPath / PARTITION_META_FILE
        try:
            with open(metaPath, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except Exception as e:
            logger.warning(f"Unreadable partition metadata {metaPath}: {e}")
            return None

    async def createPartition(self, name: str) -> None:
        partitionPath = self._getPartitionPath(name)
        if (partitionPath / PARTITION_META_FILE).exists():
            return

        try:
            partitionPath.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            raise CacheBackendError(f"Failed to create partition '{name}': {e}", originalError=e)

        self._writeJsonAtomic(
            partitionPath / PARTITION_META_FILE,
            {"name": partitionPath.name, "createdAt": time.time()},
        )

    async def hasPartition(self, name: str) -> bool:
        try:
            return (self._getPartitionPath(name) / PARTITION_META_FILE).is_file()
        except CacheKeyError:
            raise
        except Exception as e:
            raise CacheBackendError(f"Failed to check partition '{name}': {e}", originalError=e)

    async def deletePartition(self, name: str) -> bool:
        partitionPath = self._getPartitionPath(name)
        if not partitionPath.exists():
            return False

        try:
            shutil.rmtree(partitionPath)
            return True
        except FileNotFoundError:
            # Removed concurrently
            return False
        except Exception as e:
            raise CacheBackendError(f"Failed to delete partition '{name}': {e}", originalError=e)

    async def listPartitions(self) -> List[str]:
        try:
            partitions = []
            for partitionPath in self.baseDir.iterdir():
                if not partitionPath.is_dir():
                    continue
                meta = self._readPartitionMeta(partitionPath)
                if meta is None:
                    continue
                partitions.append((float(meta.get("createdAt", 0.0)), partitionPath.name))

            # Creation order, name as tie breaker
            partitions.sort()
            return [name for _, name in partitions]
        except Exception as e:
            raise CacheBackendError(f"Failed to list partitions: {e}", originalError=e)

    async def getEntry(self, partition: str, key: str) -> Optional[CachedResponse]:
        entryPath = self._getEntryPath(partition, key)
        if not entryPath.exists():
            return None

        try:
            with open(entryPath, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            # Deleted between exists check and read
            return None
        except Exception as e:
            raise CacheBackendError(f"Failed to read entry '{key}' in '{partition}': {e}", originalError=e)

        if data.get("key") != key:
            # Digest collision or foreign file, treat as a miss
            logger.warning(f"Entry file {entryPath} holds key '{data.get('key')}', expected '{key}'")
            return None

        try:
            return CachedResponse.fromDict(data["response"])
        except Exception as e:
            raise CacheBackendError(f"Corrupted entry '{key}' in '{partition}': {e}", originalError=e)

    async def putEntry(self, partition: str, key: str, entry: CachedResponse) -> None:
        await self.createPartition(partition)
        self._writeJsonAtomic(self._getEntryPath(partition, key), {"key": key, "response": entry.toDict()})

    async def deleteEntry(self, partition: str, key: str) -> bool:
        entryPath = self._getEntryPath(partition, key)
        if not entryPath.exists():
            return False

        try:
            entryPath.unlink()
            return True
        except FileNotFoundError:
            return False
        except Exception as e:
            raise CacheBackendError(f"Failed to delete entry '{key}' in '{partition}': {e}", originalError=e)

    async def listEntries(self, partition: str) -> List[str]:
        partitionPath = self._getPartitionPath(partition)
        if not partitionPath.is_dir():
            return []

        keys = []
        try:
            for entryPath in sorted(partitionPath.glob("*" + ENTRY_SUFFIX)):
                if entryPath.name == PARTITION_META_FILE:
                    continue
                try:
                    with open(entryPath, "r", encoding="utf-8") as f:
                        keys.append(json.load(f)["key"])
                except (OSError, ValueError, KeyError) as e:
                    logger.warning(f"Skipping unreadable entry {entryPath}: {e}")
            return keys
        except Exception as e:
            raise CacheBackendError(f"Failed to list entries in '{partition}': {e}", originalError=e)
