"""
Worker component that runs tasks on a pool of threads.
"""

import atexit
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

from sincpro_future.domain.executor import ExecutorInterface

logger = logging.getLogger(__name__)

WORKER_THREAD_PREFIX = "FutureWorker"


class Worker(ExecutorInterface):
    """
    Manages a pool of worker threads.
    The pool starts on first use and starts again after a shutdown.
    """

    def __init__(self, max_workers: Optional[int] = None) -> None:
        """
        Initialize the Worker component.

        Args:
            max_workers: Size of the pool, None for the ThreadPoolExecutor default
        """
        self._max_workers = max_workers
        self._pool: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        logger.debug("Worker initialized")

    def start(self) -> None:
        """Start the pool if it is not running yet."""
        with self._lock:
            self._ensure_pool()

    def _ensure_pool(self) -> ThreadPoolExecutor:
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix=WORKER_THREAD_PREFIX,
            )
            logger.info(f"Worker started with max_workers={self._max_workers or 'default'}")
        return self._pool

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """
        Schedule fn(*args) on one of the pool threads.

        Raises:
            RuntimeError: If the pool is shut down concurrently with this call
        """
        with self._lock:
            pool = self._ensure_pool()
        pool.submit(fn, *args)

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop the pool.

        Args:
            wait: Wait for queued and running tasks to finish
        """
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return

        logger.info("Stopping worker")
        pool.shutdown(wait=wait)
        logger.info("Worker stopped successfully")

    def is_running(self) -> bool:
        """Check if the worker is running."""
        return self._pool is not None


_default_executor: Optional[ExecutorInterface] = None
_default_lock = threading.Lock()


def get_default_executor() -> ExecutorInterface:
    """
    Return the executor used when none is given, creating the shared
    Worker on first use.
    """
    global _default_executor

    with _default_lock:
        if _default_executor is None:
            worker = Worker()
            # Register cleanup at process termination
            atexit.register(worker.shutdown)
            _default_executor = worker
        return _default_executor


def set_default_executor(executor: Optional[ExecutorInterface]) -> Optional[ExecutorInterface]:
    """
    Replace the default executor. Passing None goes back to a lazily
    created Worker.

    Returns:
        The previous default executor, which is not shut down
    """
    global _default_executor

    with _default_lock:
        previous, _default_executor = _default_executor, executor
    return previous


def shutdown_default_executor() -> None:
    """
    Shut down the default executor if it is a Worker. Executors set with
    set_default_executor are left to their owner.
    """
    with _default_lock:
        executor = _default_executor
    if isinstance(executor, Worker):
        executor.shutdown()
