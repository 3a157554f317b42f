"""
Pytest configuration and common fixtures for offline worker tests.

This module provides shared fixtures for testing the cache storage, the
worker lifecycle and the page-side services. All fixtures follow camelCase
naming convention.
"""

import pytest

from internal.worker import WorkerContainer
from lib.cache_storage import CacheStorage, MemoryCacheBackend

# Import test utilities
from tests.utils import FakeNetwork

# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def cacheStorage() -> CacheStorage:
    """
    Provide an empty in-memory cache storage.

    Returns:
        CacheStorage: Storage backed by MemoryCacheBackend
    """
    return CacheStorage(MemoryCacheBackend())


# ============================================================================
# Network Fixtures
# ============================================================================


@pytest.fixture
def fakeNetwork() -> FakeNetwork:
    """
    Provide a network that serves the default static manifest and a small API.

    Returns:
        FakeNetwork: Controllable network (see tests.utils.FakeNetwork)

    Example:
        async def testOffline(fakeNetwork):
            fakeNetwork.offline = True
    """
    return FakeNetwork(
        {
            "/": (200, b"<html>home</html>"),
            "/index.html": (200, b"<html>index</html>"),
            "/vite.svg": (200, b"<svg/>"),
            "/assets/app.js": (200, b"console.log('app')"),
            "/api/listings": (200, b'[{"id": 1}]'),
            "/about": (200, b"<html>about</html>"),
            "/manifest.json": (200, b"{}"),
        }
    )


# ============================================================================
# Worker Fixtures
# ============================================================================


@pytest.fixture
def workerContainer(cacheStorage, fakeNetwork) -> WorkerContainer:
    """
    Provide a page-side container wired to the in-memory storage and fake network.

    Returns:
        WorkerContainer: Container with no registration yet
    """
    return WorkerContainer(cacheStorage, fakeNetwork.transport)
