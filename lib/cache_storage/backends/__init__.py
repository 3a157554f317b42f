from .abstract import AbstractCacheBackend
from .filesystem import FSCacheBackend
from .memory import MemoryCacheBackend
from .null import NullCacheBackend

__all__ = [
    "AbstractCacheBackend",
    "FSCacheBackend",
    "MemoryCacheBackend",
    "NullCacheBackend",
]
