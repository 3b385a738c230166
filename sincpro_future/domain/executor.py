"""
Domain interface for the executors that run tasks and async stages.
"""

from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class ExecutorInterface(Protocol):
    """
    Anything that can run a callable later, on some thread.
    ``concurrent.futures.Executor`` instances satisfy this protocol as well.
    """

    def submit(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Schedule fn(*args) for execution."""
        ...
