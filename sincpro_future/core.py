"""
Core implementation of the future entry points.
"""

import logging
import threading
from typing import Any, Callable, Coroutine, Optional, TypeVar

from sincpro_future.domain.executor import ExecutorInterface
from sincpro_future.infrastructure.event_loop import EventLoop
from sincpro_future.infrastructure.future import CompletableFuture
from sincpro_future.infrastructure.worker import (
    get_default_executor,
    set_default_executor,
    shutdown_default_executor,
)

logger = logging.getLogger(__name__)
T = TypeVar("T")

_event_loop: Optional[EventLoop] = None
_event_loop_lock = threading.Lock()

__all__ = [
    "all_of",
    "any_of",
    "completed_future",
    "failed_future",
    "get_default_executor",
    "run_async",
    "run_async_task",
    "set_default_executor",
    "shutdown",
    "supply_async",
    "supply_coroutine",
]


def _run_task(future: CompletableFuture[T], task: Callable[[], T]) -> None:
    if future.is_done():
        logger.debug(f"Skipping task for already settled {future!r}")
        return
    try:
        result = task()
    except BaseException as e:
        logger.debug(f"Task failed: {e!r}")
        future.complete_exceptionally(e)
        if not isinstance(e, Exception):
            raise
    else:
        future.complete(result)


def _submit(
    future: CompletableFuture[T],
    task: Callable[[], T],
    executor: Optional[ExecutorInterface],
) -> CompletableFuture[T]:
    executor = executor or get_default_executor()
    try:
        executor.submit(_run_task, future, task)
    except Exception as e:
        logger.error(f"Executor refused task: {e}")
        future.complete_exceptionally(e)
    return future


def supply_async(
    task: Callable[[], T],
    executor: Optional[ExecutorInterface] = None,
) -> CompletableFuture[T]:
    """
    Run a value-producing task on an executor.

    Args:
        task: Zero-argument callable whose return value fulfills the future
        executor: Where to run it, the shared worker when None

    Returns:
        A future settled with the task's return value or raised error
    """
    return _submit(CompletableFuture(), task, executor)


def run_async(
    task: Callable[[], Any],
    executor: Optional[ExecutorInterface] = None,
) -> CompletableFuture[None]:
    """
    Run a side-effecting task on an executor.

    Returns:
        A future fulfilled with None once the task returns
    """

    def runnable() -> None:
        task()

    return _submit(CompletableFuture(), runnable, executor)


def _get_event_loop() -> EventLoop:
    global _event_loop

    with _event_loop_lock:
        if _event_loop is None:
            _event_loop = EventLoop()
        return _event_loop


def supply_coroutine(coro: Coroutine[Any, Any, T]) -> CompletableFuture[T]:
    """Run a coroutine on the shared event loop thread."""
    return _get_event_loop().run_coroutine(coro)


def run_async_task(
    task: Coroutine[Any, Any, T],
    timeout: Optional[float] = None,
) -> T:
    """
    Run a coroutine on the shared event loop and wait for its result.

    Args:
        task: Coroutine to execute
        timeout: Maximum time to wait for the result in seconds

    Returns:
        The result of the coroutine

    Raises:
        TimeoutError: If the operation times out; the coroutine is cancelled
        ExecutionError: If the coroutine raised
    """
    future = supply_coroutine(task)
    try:
        return future.get(timeout)
    except TimeoutError:
        future.cancel()
        raise


def completed_future(value: T) -> CompletableFuture[T]:
    """Return a future already fulfilled with value."""
    future: CompletableFuture[T] = CompletableFuture()
    future.complete(value)
    return future


def failed_future(error: BaseException) -> CompletableFuture[Any]:
    """Return a future already rejected with error."""
    future: CompletableFuture[Any] = CompletableFuture()
    future.complete_exceptionally(error)
    return future


def all_of(*futures: CompletableFuture[Any]) -> CompletableFuture[None]:
    """
    Wait for every future.

    Returns:
        A future fulfilled with None once all inputs settled, or rejected with
        the error of the first rejected input in argument order
    """
    result: CompletableFuture[None] = CompletableFuture()
    if not futures:
        result.complete(None)
        return result

    lock = threading.Lock()
    remaining = len(futures)

    def on_settled(_value: Any, _error: Optional[BaseException]) -> None:
        nonlocal remaining
        with lock:
            remaining -= 1
            if remaining:
                return
        errors = [future.exception() for future in futures]
        first_error = next((error for error in errors if error is not None), None)
        if first_error is None:
            result.complete(None)
        else:
            result.complete_exceptionally(first_error)

    for future in futures:
        future.when_complete(on_settled)
    return result


def any_of(*futures: CompletableFuture[Any]) -> CompletableFuture[Any]:
    """Settle with the outcome of whichever future settles first."""
    result: CompletableFuture[Any] = CompletableFuture()

    def on_settled(value: Any, error: Optional[BaseException]) -> None:
        if error is not None:
            result.complete_exceptionally(error)
        else:
            result.complete(value)

    for future in futures:
        future.when_complete(on_settled)
    return result


def shutdown() -> None:
    """Stop the shared worker and event loop. Both restart on next use."""
    shutdown_default_executor()
    with _event_loop_lock:
        event_loop = _event_loop
    if event_loop is not None:
        event_loop.shutdown()
