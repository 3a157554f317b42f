"""
Common utilities for the offline worker.
"""

import json
import logging
import math
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DURATION_SECTIONS = re.compile(r"(?:(\d+)d)?(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s)?")
DURATION_CLOCK = re.compile(r"(\d+):([0-5]?\d)(?::([0-5]?\d))?")
SECTION_SECONDS = (24 * 3600, 3600, 60, 1)


def parseDuration(value: int | float | str) -> float:
    """
    Parse a duration from configuration into seconds.

    Args:
        value: Number of seconds, or a string in one of formats:
            1. `DDdHHhMMmSSs` (e.g., "10m", "1h30s") - each section is optional but at least one must be present
            2. `HH:MM[:SS]` (e.g., "0:10" or "0:00:45")
            3. plain number (e.g., "60" or "0.5")

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the value doesn't match any supported format or is negative.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")

    seconds = float(value) if isinstance(value, (int, float)) else _parseDurationStr(value.strip())
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"Duration must be a finite non-negative number: {value!r}")
    return seconds


def _parseDurationStr(durationStr: str) -> float:
    try:
        return float(durationStr)
    except ValueError:
        pass

    match = DURATION_SECTIONS.fullmatch(durationStr)
    if durationStr and match is not None:
        return float(sum(int(part or 0) * unit for part, unit in zip(match.groups(), SECTION_SECONDS)))

    match = DURATION_CLOCK.fullmatch(durationStr)
    if match is not None:
        hours, minutes, seconds = match.groups()
        return float(int(hours) * 3600 + int(minutes) * 60 + int(seconds or 0))

    raise ValueError(
        f"Invalid duration format: {durationStr!r}. Expected seconds, '[DDd][HHh][MMm][SSs]' or 'HH:MM[:SS]'"
    )


def jsonDumps(data: Any, compact: Optional[bool] = None, **kwargs) -> str:
    """
    Serialize to JSON with sorted keys, non-ASCII kept and str() for unknown types.

    Compact separators unless `indent` is given (or `compact` says otherwise).
    """
    if compact is None:
        compact = "indent" not in kwargs

    options: Dict[str, Any] = {"ensure_ascii": False, "default": str, "sort_keys": True}
    if compact:
        options["separators"] = (",", ":")
    options.update(kwargs)
    return json.dumps(data, **options)


def load_dotenv(path: str = ".env", populateEnv: bool = True) -> Dict[str, str]:
    """
    Read KEY=VALUE lines from a dotenv file.

    Blank lines, comments and lines without "=" are skipped; values may be
    wrapped in double quotes. A missing file means no variables.

    Args:
        path: Path to .env file (default ".env")
        populateEnv: Also export the values to os.environ, without overriding
            variables that are already set

    Returns:
        Dictionary of key-value pairs from .env file
    """
    dotenvFile = Path(path)
    if not dotenvFile.is_file():
        logger.debug(f"No dotenv file at {path}")
        return {}

    values: Dict[str, str] = {}
    for rawLine in dotenvFile.read_text().splitlines():
        line = rawLine.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip()] = value.strip().strip('"')

    if populateEnv:
        for key, value in values.items():
            os.environ.setdefault(key, value)
    return values
