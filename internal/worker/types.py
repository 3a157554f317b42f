"""
Worker types: traffic classes, lifecycle states, events and configuration.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional, TypeAlias

import httpx

from lib.utils import parseDuration

DEFAULT_VERSION = "bw1-v1"
DEFAULT_NAMESPACE = "bw1-"
DEFAULT_STATIC_MANIFEST = ["/", "/index.html", "/vite.svg"]
DEFAULT_NETWORK_TIMEOUT = 5.0


class TrafficClass(StrEnum):
    IGNORED = "ignored"
    """Non-network scheme, never intercepted"""
    API = "api"
    """Backend API call, network first"""
    STATIC_ASSET = "static-asset"
    """Script/style/image/font or assets path, cache first"""
    NAVIGATION = "navigation"
    """Full document load, network first with offline fallback"""
    OTHER = "other"
    """Everything else, network with read-only cache fallback"""


class WorkerState(StrEnum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


class WorkerEventKind(StrEnum):
    INSTALL = "install"
    ACTIVATE = "activate"
    FETCH = "fetch"
    MESSAGE = "message"


class ControlMessage(StrEnum):
    SKIP_WAIT = "skip-wait"
    """Activate a waiting worker immediately"""
    CLEAR_ALL_CACHES = "clear-all-caches"
    """Delete every partition regardless of name, for manual recovery"""


class ResponseSource(StrEnum):
    NETWORK = "network"
    CACHE = "cache"


@dataclass(frozen=True)
class PartitionNames:
    """
    Names of the three live partitions for a worker version.

    Changing the version renames all three at once, so the next activation
    evicts every partition of the previous version.
    """

    version: str

    @property
    def static(self) -> str:
        return f"{self.version}-static"

    @property
    def dynamic(self) -> str:
        return f"{self.version}-dynamic"

    @property
    def api(self) -> str:
        return f"{self.version}-api"

    def all(self) -> List[str]:
        return [self.static, self.dynamic, self.api]


@dataclass
class WorkerConfig:
    """
    Worker configuration, read from the [worker] config section.

    Attributes:
        version: Version tag appended to every partition name
        namespace: Prefix owned by this application; only partitions with
            this prefix are ever evicted on activation
        origin: Origin that root-relative paths are resolved against
        staticManifest: Root-relative paths cached at install time
        apiPrefix: Path prefix of API requests
        assetsPrefix: Path prefix of static assets
        navigationFallback: Path served to offline navigations with no exact entry
        skipWaiting: Activate right after install instead of waiting
        networkTimeout: Seconds a network fetch may take (connect, read, write
            and pool) when the request carries no timeout of its own
    """

    version: str = DEFAULT_VERSION
    namespace: str = DEFAULT_NAMESPACE
    origin: str = "http://localhost:5173"
    staticManifest: List[str] = field(default_factory=lambda: list(DEFAULT_STATIC_MANIFEST))
    apiPrefix: str = "/api/"
    assetsPrefix: str = "/assets/"
    navigationFallback: Optional[str] = "/"
    skipWaiting: bool = True
    networkTimeout: float = DEFAULT_NETWORK_TIMEOUT

    def __post_init__(self):
        """Validate configuration values"""
        if not self.version:
            raise ValueError("version must not be empty")
        if not self.version.startswith(self.namespace):
            raise ValueError(f"version '{self.version}' must start with namespace '{self.namespace}'")
        if self.networkTimeout <= 0:
            raise ValueError(f"network timeout must be positive, got {self.networkTimeout}")

    @property
    def partitions(self) -> PartitionNames:
        return PartitionNames(self.version)

    def resolve(self, path: str) -> httpx.URL:
        """Resolve a root-relative path against the origin."""
        return httpx.URL(self.origin).join(path)

    @classmethod
    def fromDict(cls, config: Dict[str, Any]) -> "WorkerConfig":
        """
        Build from a [worker] config section (kebab-case keys).

        Example:
            >>> WorkerConfig.fromDict({"version": "bw1-v2", "api-prefix": "/api/"})
        """
        kwargs: Dict[str, Any] = {}
        keyMap = {
            "version": "version",
            "namespace": "namespace",
            "origin": "origin",
            "static-manifest": "staticManifest",
            "api-prefix": "apiPrefix",
            "assets-prefix": "assetsPrefix",
            "navigation-fallback": "navigationFallback",
            "skip-waiting": "skipWaiting",
            "network-timeout": "networkTimeout",
        }
        for configKey, attrName in keyMap.items():
            if configKey in config:
                kwargs[attrName] = config[configKey]

        # Empty string disables the navigation fallback
        if kwargs.get("navigationFallback") == "":
            kwargs["navigationFallback"] = None
        if "networkTimeout" in kwargs:
            kwargs["networkTimeout"] = parseDuration(kwargs["networkTimeout"])

        return cls(**kwargs)


StateChangeListener: TypeAlias = Callable[["WorkerState"], None]
