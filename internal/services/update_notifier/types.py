"""
Update notifier types
"""

from enum import StrEnum
from typing import Callable, TypeAlias

DEFAULT_CHECK_INTERVAL = 60
"""Seconds between update checks"""
DEFAULT_PROMPT_TIMEOUT = 10
"""Seconds before an unanswered prompt removes itself"""


class UpdateNotifierState(StrEnum):
    IDLE = "idle"
    WAITING_FOR_ACTIVATION = "waiting-for-activation"
    NOTIFIED = "notified"
    DISMISSED = "dismissed"
    APPLIED = "applied"


PromptCallback: TypeAlias = Callable[[str], None]
"""Called with the new worker version"""
ReloadCallback: TypeAlias = Callable[[], None]
