from .service import UpdateNotifier
from .types import UpdateNotifierState

__all__ = ["UpdateNotifier", "UpdateNotifierState"]
