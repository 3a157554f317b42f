"""
Configuration management for the offline worker.

Configuration is TOML: one main file plus any number of config directories
whose *.toml files are merged over it. String values may reference
environment variables as ${NAME}; a .env file is loaded first so its values
are visible to the substitution.
"""

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import tomli

import lib.utils as utils
from internal.worker import WorkerConfig

logger = logging.getLogger(__name__)

ENV_PLACEHOLDER = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_-]*)\}")
"""${NAME} placeholder; unset variables are left as is"""

KEEP_ALIVE_DURATIONS = ("interval", "request-timeout")
UPDATE_NOTIFIER_DURATIONS = ("check-interval", "prompt-timeout")


def substituteEnvVars(value: Any) -> Any:
    """
    Replace ${NAME} placeholders with environment values, recursing into dicts and lists.

    Example:
        >>> os.environ["HOST"] = "api.example.com"
        >>> substituteEnvVars({"url": "https://${HOST}/health", "retries": 3})
        {'url': 'https://api.example.com/health', 'retries': 3}
    """
    if isinstance(value, dict):
        return {key: substituteEnvVars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [substituteEnvVars(item) for item in value]
    if isinstance(value, str):
        return ENV_PLACEHOLDER.sub(lambda match: os.environ.get(match.group(1), match.group(0)), value)
    return value


def mergeTables(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Merge overlay into a copy of base. Tables merge key by key, anything else is replaced."""
    result = dict(base)
    for key, value in overlay.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = mergeTables(current, value)
        else:
            result[key] = value
    return result


def collectTomlFiles(directories: Iterable[str]) -> List[Path]:
    """
    List the *.toml files under each directory, recursively, dood!

    Files of one directory come in sorted path order, directories in the
    given order. Missing directories and plain files are skipped with a warning.
    """
    found: List[Path] = []
    for directory in directories:
        root = Path(directory)
        if not root.is_dir():
            logger.warning(f"Config directory {directory} is missing or not a directory, skipping, dood!")
            continue

        files = sorted(path for path in root.rglob("*.toml") if path.is_file())
        logger.info(f"Found {len(files)} .toml files in {directory}")
        found.extend(files)
    return found


def readToml(path: Path) -> Dict[str, Any]:
    with open(path, "rb") as f:
        return tomli.load(f)


class ConfigManager:
    """
    Loads and merges configuration and hands out per-component sections.

    Known sections: [application], [logging], [worker], [cache-storage],
    [keep-alive], [update-notifier]. None of them is required.

    Args:
        configPath: Main TOML file; may be missing when configDirs are given
        configDirs: Directories searched recursively for extra *.toml files
        dotEnvFile: .env file loaded into the environment before substitution
    """

    def __init__(
        self, configPath: str = "config.toml", configDirs: Optional[List[str]] = None, dotEnvFile: str = ".env"
    ):
        self.configPath = configPath
        self.configDirs = configDirs or []

        utils.load_dotenv(path=dotEnvFile)
        self.config: Dict[str, Any] = substituteEnvVars(self._loadConfig())

        rootDir = self.get("application", {}).get("root-dir")
        if rootDir is not None:
            os.chdir(rootDir)
            logger.info(f"Changed root directory to {rootDir}")

    def _loadConfig(self) -> Dict[str, Any]:
        """
        Read the main file, then merge every config directory file over it.

        A broken file in a config directory is logged and skipped.

        Raises:
            SystemExit: If there is neither a main file nor config directories,
                or if the main file can't be parsed
        """
        mainFile = Path(self.configPath)
        if not mainFile.exists() and not self.configDirs:
            logger.error(f"Configuration file {self.configPath} not found!")
            sys.exit(1)

        config: Dict[str, Any] = {}
        if mainFile.exists():
            try:
                config = readToml(mainFile)
            except (OSError, tomli.TOMLDecodeError) as e:
                logger.error(f"Failed to load configuration from {self.configPath}: {e}")
                sys.exit(1)
            logger.info(f"Loaded main config from {self.configPath}")

        for tomlFile in collectTomlFiles(self.configDirs):
            try:
                config = mergeTables(config, readToml(tomlFile))
            except (OSError, tomli.TOMLDecodeError) as e:
                logger.error(f"Failed to load config file {tomlFile}: {e}")
                continue
            logger.debug(f"Merged config from {tomlFile}")

        logger.info("Configuration loaded, dood!")
        return config

    def get(self, key: str, default=None) -> Any:
        """Get a top-level configuration value."""
        return self.config.get(key, default)

    def _sectionWithDurations(self, section: str, durationKeys: Iterable[str]) -> Dict[str, Any]:
        result = dict(self.get(section, {}))
        for key in durationKeys:
            if key in result:
                result[key] = utils.parseDuration(result[key])
        return result

    def getLoggingConfig(self) -> Dict[str, Any]:
        """Get the [logging] section (see lib.logging_utils)."""
        return self.get("logging", {})

    def getWorkerConfig(self) -> WorkerConfig:
        """
        Get the worker configuration.

        Built from the [worker] section; missing keys take the defaults
        (version "bw1-v1", namespace "bw1-", manifest ["/", "/index.html", "/vite.svg"]).

        Raises:
            ValueError: If the section is inconsistent (e.g. version outside the namespace)
        """
        return WorkerConfig.fromDict(self.get("worker", {}))

    def getCacheStorageConfig(self) -> Dict[str, Any]:
        """
        Get cache storage configuration.

        Returns a dictionary with the following structure:
        - type: Backend type ("memory", "fs", or "null"), "memory" if omitted
        - fs: Filesystem backend configuration (if type is "fs")
            - base-dir: Base directory for cache partitions

        Example return values:
            {"type": "fs", "fs": {"base-dir": "./storage/cache"}}
            {"type": "null"}
        """
        return self.get("cache-storage", {})

    def getKeepAliveConfig(self) -> Dict[str, Any]:
        """
        Get keep-alive configuration.

        Returns:
            Dict with keep-alive settings: enabled, base-url, health-path,
            interval, request-timeout. Durations are normalized to seconds.
        """
        return self._sectionWithDurations("keep-alive", KEEP_ALIVE_DURATIONS)

    def getUpdateNotifierConfig(self) -> Dict[str, Any]:
        """
        Get update notifier configuration.

        Returns:
            Dict with check-interval and prompt-timeout (normalized to
            seconds) and auto-apply
        """
        return self._sectionWithDurations("update-notifier", UPDATE_NOTIFIER_DURATIONS)
