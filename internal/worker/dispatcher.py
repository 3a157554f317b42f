"""
Worker event dispatcher: one handler per event kind.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, TypeAlias

from .exceptions import WorkerError
from .types import WorkerEventKind

logger = logging.getLogger(__name__)

WorkerEventHandler: TypeAlias = Callable[..., Awaitable[Any]]


class WorkerEventDispatcher:
    """
    Routes worker events (install, activate, fetch, message) to their handler.

    Exactly one handler may be registered per event kind.

    Example:
        >>> dispatcher = WorkerEventDispatcher()
        >>> dispatcher.registerHandler(WorkerEventKind.FETCH, worker.handleFetch)
        >>> response = await dispatcher.dispatch(WorkerEventKind.FETCH, request)
    """

    def __init__(self):
        self._handlers: Dict[WorkerEventKind, WorkerEventHandler] = {}

    def registerHandler(self, kind: WorkerEventKind, handler: WorkerEventHandler) -> None:
        """
        Register the handler for an event kind.

        Raises:
            ValueError: If a handler is already registered for this kind
        """
        if kind in self._handlers:
            raise ValueError(f"Handler for '{kind}' event is already registered")

        self._handlers[kind] = handler
        logger.debug(f"Registered handler for {kind}: {handler}")

    def hasHandler(self, kind: WorkerEventKind) -> bool:
        return kind in self._handlers

    async def dispatch(self, kind: WorkerEventKind, *args: Any, **kwargs: Any) -> Any:
        """
        Invoke the handler for an event kind and return its result.

        Raises:
            WorkerError: If no handler is registered for this kind
        """
        handler = self._handlers.get(kind)
        if handler is None:
            raise WorkerError(f"No handler registered for '{kind}' event")

        return await handler(*args, **kwargs)
