"""
Keep-alive types
"""

from enum import StrEnum

DEFAULT_PING_INTERVAL = 10 * 60
"""Seconds between liveness pings"""
DEFAULT_HEALTH_PATH = "/health"
DEFAULT_REQUEST_TIMEOUT = 10


class KeepAliveState(StrEnum):
    STOPPED = "stopped"
    RUNNING = "running"
