"""
EventLoop component that runs coroutine tasks on a dedicated thread.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Coroutine, Optional, TypeVar

import uvloop

from sincpro_future.domain.executor import ExecutorInterface
from sincpro_future.exceptions import FutureCancelledError, WorkerNotRunningError
from sincpro_future.infrastructure.future import CompletableFuture

logger = logging.getLogger(__name__)
T = TypeVar("T")

EVENT_LOOP_THREAD_NAME = "FutureEventLoop"


def _run_loop_forever(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    try:
        loop.run_forever()
    finally:
        try:
            _cancel_pending_tasks(loop)
        finally:
            loop.close()
            logger.debug("Event loop closed")


def _cancel_pending_tasks(loop: asyncio.AbstractEventLoop) -> None:
    pending = asyncio.all_tasks(loop)
    if not pending:
        return
    logger.debug(f"Cancelling {len(pending)} pending task(s)")
    for task in pending:
        task.cancel()
    loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))


def _copy_outcome(done: "concurrent.futures.Future[T]", future: CompletableFuture[T]) -> None:
    if done.cancelled():
        future.cancel()
        return
    error = done.exception()
    if error is not None:
        future.complete_exceptionally(error)
    else:
        future.complete(done.result())


class EventLoop(ExecutorInterface):
    """
    Owns a uvloop event loop running in its own daemon thread.
    Never reuses a loop the caller may already be running.
    """

    def __init__(self) -> None:
        """Initialize the EventLoop."""
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        logger.debug("EventLoop initialized")

    def start(self) -> None:
        """Start the event loop thread if not already running."""
        with self._lock:
            self._ensure_started()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop

        loop = uvloop.new_event_loop()
        self._thread = threading.Thread(
            target=_run_loop_forever,
            args=(loop,),
            name=EVENT_LOOP_THREAD_NAME,
            daemon=True,
        )
        self._loop = loop
        self._thread.start()
        logger.info("Started event loop in dedicated thread")
        return loop

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule fn(*args) as a callback on the loop thread."""
        with self._lock:
            loop = self._ensure_started()
        loop.call_soon_threadsafe(fn, *args)

    def run_coroutine(self, coro: Coroutine[Any, Any, T]) -> CompletableFuture[T]:
        """
        Run a coroutine on the loop thread.

        Args:
            coro: The coroutine to run

        Returns:
            A future settled with the coroutine's result or error. Cancelling
            it cancels the coroutine.
        """
        future: CompletableFuture[T] = CompletableFuture()
        try:
            with self._lock:
                loop = self._ensure_started()
            task = asyncio.run_coroutine_threadsafe(coro, loop)
        except Exception as e:
            logger.debug(f"Failed to schedule coroutine: {e!r}")
            if asyncio.iscoroutine(coro):
                coro.close()
            future.complete_exceptionally(e)
            return future

        task.add_done_callback(lambda done: _copy_outcome(done, future))

        def cancel_task(_value: Any, error: Optional[BaseException]) -> None:
            if isinstance(error, FutureCancelledError):
                task.cancel()

        future.when_complete(cancel_task)
        return future

    def get_loop(self) -> asyncio.AbstractEventLoop:
        """Get the event loop instance."""
        if not self.is_running():
            raise WorkerNotRunningError("Event loop has not been started")
        return self._loop

    def shutdown(self) -> None:
        """Stop the loop, cancel what is still pending and close it."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None:
            return

        logger.info("Shutting down event loop")
        try:
            loop.call_soon_threadsafe(loop.stop)
        except RuntimeError as e:
            logger.warning(f"Event loop already closed: {e}")

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Event loop thread did not terminate gracefully")

    def is_running(self) -> bool:
        """Check if the event loop is running."""
        return (
            self._loop is not None
            and not self._loop.is_closed()
            and self._thread is not None
            and self._thread.is_alive()
        )
