from .service import KeepAliveService
from .types import KeepAliveState

__all__ = ["KeepAliveService", "KeepAliveState"]
