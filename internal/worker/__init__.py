"""
Offline caching worker: request routing, caching strategies and version lifecycle.
"""

from .dispatcher import WorkerEventDispatcher
from .exceptions import WorkerError, WorkerStateError
from .lifecycle import CacheLifecycleManager, InstallReport
from .registration import WorkerContainer, WorkerRegistration
from .router import classifyRequest
from .strategies import CacheFirstStrategy, NetworkFirstStrategy, NetworkOnlyFallbackStrategy
from .transport import WorkerTransport
from .types import (
    ControlMessage,
    PartitionNames,
    ResponseSource,
    TrafficClass,
    WorkerConfig,
    WorkerEventKind,
    WorkerState,
)
from .worker import ServiceWorker

__all__ = [
    "CacheFirstStrategy",
    "CacheLifecycleManager",
    "ControlMessage",
    "InstallReport",
    "NetworkFirstStrategy",
    "NetworkOnlyFallbackStrategy",
    "PartitionNames",
    "ResponseSource",
    "ServiceWorker",
    "TrafficClass",
    "WorkerConfig",
    "WorkerContainer",
    "WorkerError",
    "WorkerEventDispatcher",
    "WorkerEventKind",
    "WorkerRegistration",
    "WorkerState",
    "WorkerStateError",
    "WorkerTransport",
    "classifyRequest",
]
