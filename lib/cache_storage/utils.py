"""
Cache storage utility functions

Partition name sanitization and cache key construction.
"""

import hashlib
import re

import httpx

from .exceptions import CacheKeyError

# Maximum allowed partition name length
MAX_NAME_LENGTH = 255

# Regex pattern for allowed characters: alphanumeric, underscore, hyphen, dot
ALLOWED_CHARS_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.]+$")

CACHEABLE_METHODS = frozenset(["GET"])


def sanitizePartitionName(name: str) -> str:
    """
    Sanitize a partition name so it is safe to use as a directory name.

    Steps:
    1. Remove control characters
    2. Replace path separators (/, \\) with underscores
    3. Remove double-dot sequences (..)
    4. Strip leading/trailing whitespace, dots and underscores
    5. Drop any character outside [a-zA-Z0-9_-.]

    Args:
        name: The partition name to sanitize

    Returns:
        The sanitized name

    Raises:
        CacheKeyError: If the name is empty, too long or empty after sanitization

    Examples:
        >>> sanitizePartitionName("bw1-v1-static")
        'bw1-v1-static'
        >>> sanitizePartitionName("../../etc")
        'etc'
    """
    if not name or not name.strip():
        raise CacheKeyError("Partition name cannot be empty or only whitespace")

    sanitized = "".join(char for char in name if ord(char) > 31 and ord(char) != 127)
    sanitized = sanitized.replace("/", "_").replace("\\", "_")
    sanitized = sanitized.replace("..", "")
    sanitized = sanitized.strip(" ._")
    sanitized = "".join(char for char in sanitized if ALLOWED_CHARS_PATTERN.match(char))

    if not sanitized:
        raise CacheKeyError(f"Partition name is empty after sanitization. Original name: '{name}'")

    if len(sanitized) > MAX_NAME_LENGTH:
        raise CacheKeyError(
            f"Partition name exceeds maximum length of {MAX_NAME_LENGTH} characters. Length: {len(sanitized)}"
        )

    return sanitized


def normalizeUrl(url: httpx.URL | str) -> str:
    """Absolute URL without its fragment."""
    return str(httpx.URL(url)).split("#", 1)[0]


def makeCacheKey(method: str, url: httpx.URL | str) -> str:
    """
    Build the cache key for a request identity.

    Args:
        method: HTTP method
        url: Absolute request URL

    Returns:
        Key in the form "GET https://example.com/path?query"
    """
    return f"{method.upper()} {normalizeUrl(url)}"


def isCacheableMethod(method: str) -> bool:
    """Only GET requests may be stored or looked up."""
    return method.upper() in CACHEABLE_METHODS


def hashKey(key: str) -> str:
    """Filesystem-safe digest of a cache key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
