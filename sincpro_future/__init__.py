"""
Completable futures: values that become available asynchronously, chained
stages and blocking retrieval, settled by a pool of worker threads.
"""

from sincpro_future.core import (
    all_of,
    any_of,
    completed_future,
    failed_future,
    get_default_executor,
    run_async,
    run_async_task,
    set_default_executor,
    shutdown,
    supply_async,
    supply_coroutine,
)
from sincpro_future.domain.future import FutureState
from sincpro_future.exceptions import (
    AwaitFailure,
    CompletionError,
    ExecutionError,
    FutureCancelledError,
    FutureError,
)
from sincpro_future.infrastructure.future import CompletableFuture
from sincpro_future.infrastructure.worker import Worker

__all__ = [
    "AwaitFailure",
    "CompletableFuture",
    "CompletionError",
    "ExecutionError",
    "FutureCancelledError",
    "FutureError",
    "FutureState",
    "Worker",
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
