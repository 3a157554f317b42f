"""
Worker exceptions
"""


class WorkerError(Exception):
    """Base exception for worker lifecycle and dispatch errors."""

    pass


class WorkerStateError(WorkerError):
    """
    Exception raised when an operation is invalid in the worker's current state.

    Example: activating a worker that never finished installing.
    """

    pass
