"""
CompletableFuture: a value that becomes available asynchronously.

A future is settled exactly once, by whoever holds it: a scheduled task, an
upstream stage, or user code calling ``complete``. Chaining methods register
stages that fire once the future settles; blocking methods wait on a
condition until it does.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import Any, Callable, Generator, List, Optional, Type, TypeVar

from sincpro_future.domain.executor import ExecutorInterface
from sincpro_future.domain.future import FutureInterface, FutureState
from sincpro_future.exceptions import (
    AwaitFailure,
    CompletionError,
    ExecutionError,
    FutureCancelledError,
)
from sincpro_future.infrastructure.stage import Stage, StageAction
from sincpro_future.infrastructure.worker import get_default_executor

logger = logging.getLogger(__name__)
T = TypeVar("T")
U = TypeVar("U")

# Stages waiting to fire on the current thread, while an outer settlement drains them.
_delivery = threading.local()


def _deliver(stages: List[Stage], value: Any, error: Optional[BaseException]) -> None:
    """
    Fire stages with an outcome, one after another.

    A stage that settles its dependent only enqueues the dependent's stages
    here; the outermost call on the thread drains them in a loop, so a chain
    of any length runs with a flat stack. Every queued stage fires even if
    one lets KeyboardInterrupt or SystemExit out; the first of those is
    re-raised once the queue is empty.
    """
    queue = getattr(_delivery, "queue", None)
    if queue is not None:
        queue.extend((stage, value, error) for stage in stages)
        return

    queue = _delivery.queue = deque((stage, value, error) for stage in stages)
    interrupt: Optional[BaseException] = None
    try:
        while queue:
            stage, stage_value, stage_error = queue.popleft()
            try:
                stage.fire(stage_value, stage_error)
            except BaseException as e:
                if interrupt is None:
                    interrupt = e
    finally:
        _delivery.queue = None

    if interrupt is not None:
        raise interrupt


def _mirror(dependent: "CompletableFuture[Any]", value: Any, error: Optional[BaseException]) -> None:
    if error is not None:
        dependent.complete_exceptionally(error)
    else:
        dependent.complete(value)


class CompletableFuture(FutureInterface[T]):
    """
    A future that can be settled explicitly and composed into chains.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._state = FutureState.PENDING
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None
        self._stages: List[Stage] = []

    def __repr__(self) -> str:
        return f"<CompletableFuture at {id(self):#x} state={self._state.value}>"

    # Promise side

    @property
    def state(self) -> FutureState:
        """Current state of the future."""
        return self._state

    def is_done(self) -> bool:
        """Check if the future is settled, in any way."""
        return self._state.is_settled

    def is_cancelled(self) -> bool:
        """Check if the future was cancelled."""
        return self._state is FutureState.CANCELLED

    def is_completed_exceptionally(self) -> bool:
        """Check if the future was rejected or cancelled."""
        return self._state in (FutureState.REJECTED, FutureState.CANCELLED)

    def complete(self, value: T) -> bool:
        """
        Fulfill the future with a value.

        Returns:
            True if this call settled the future, False if it was already settled
        """
        return self._settle(FutureState.FULFILLED, value, None)

    def complete_exceptionally(self, error: BaseException) -> bool:
        """
        Reject the future with an error.

        Args:
            error: Exception instance stored as the rejection cause

        Returns:
            True if this call settled the future, False if it was already settled

        Raises:
            TypeError: If error is not an exception instance
        """
        if not isinstance(error, BaseException):
            raise TypeError(f"Expected an exception instance, got {type(error).__name__}")
        return self._settle(FutureState.REJECTED, None, error)

    def cancel(self) -> bool:
        """
        Cancel the future if it is still pending.

        A task already running for this future is not interrupted; its
        outcome is discarded. Dependents reject with the cancellation error.
        """
        return self._settle(FutureState.CANCELLED, None, FutureCancelledError("Future was cancelled"))

    def _settle(self, state: FutureState, value: Any, error: Optional[BaseException]) -> bool:
        with self._condition:
            if self._state.is_settled:
                logger.debug(f"Ignoring {state.value} outcome for {self!r}")
                return False
            self._state = state
            self._value = value
            self._error = error
            stages, self._stages = self._stages, []
            self._condition.notify_all()

        _deliver(stages, value, error)
        return True

    def _push(self, stage: Stage) -> None:
        with self._condition:
            if not self._state.is_settled:
                self._stages.append(stage)
                return
        stage.fire(self._value, self._error)

    def _chain(
        self,
        action: StageAction,
        executor: Optional[ExecutorInterface] = None,
        handles_errors: bool = False,
    ) -> "CompletableFuture[Any]":
        dependent: CompletableFuture[Any] = CompletableFuture()
        self._push(Stage(dependent, action, executor, handles_errors))
        return dependent

    # Chaining

    def then_apply(self, fn: Callable[[T], U]) -> "CompletableFuture[U]":
        """
        Transform the value with fn once it is available.

        fn runs on the thread that settles this future, or on the calling
        thread when this future is already settled.
        """
        return self._chain(lambda dependent, value, _: dependent.complete(fn(value)))

    def then_apply_async(
        self, fn: Callable[[T], U], executor: Optional[ExecutorInterface] = None
    ) -> "CompletableFuture[U]":
        """Same as then_apply, but fn runs on executor (default: the shared worker)."""
        return self._chain(
            lambda dependent, value, _: dependent.complete(fn(value)),
            executor or get_default_executor(),
        )

    def then_accept(self, fn: Callable[[T], Any]) -> "CompletableFuture[None]":
        """Pass the value to fn; the result settles to None once fn returns."""

        def accept(dependent: CompletableFuture[None], value: T, _: Any) -> None:
            fn(value)
            dependent.complete(None)

        return self._chain(accept)

    def then_accept_async(
        self, fn: Callable[[T], Any], executor: Optional[ExecutorInterface] = None
    ) -> "CompletableFuture[None]":
        """Same as then_accept, but fn runs on executor (default: the shared worker)."""

        def accept(dependent: CompletableFuture[None], value: T, _: Any) -> None:
            fn(value)
            dependent.complete(None)

        return self._chain(accept, executor or get_default_executor())

    def then_run(self, fn: Callable[[], Any]) -> "CompletableFuture[None]":
        """Run fn after this future fulfills, ignoring its value."""

        def run(dependent: CompletableFuture[None], _value: Any, _error: Any) -> None:
            fn()
            dependent.complete(None)

        return self._chain(run)

    def then_run_async(
        self, fn: Callable[[], Any], executor: Optional[ExecutorInterface] = None
    ) -> "CompletableFuture[None]":
        """Same as then_run, but fn runs on executor (default: the shared worker)."""

        def run(dependent: CompletableFuture[None], _value: Any, _error: Any) -> None:
            fn()
            dependent.complete(None)

        return self._chain(run, executor or get_default_executor())

    def then_compose(self, fn: Callable[[T], "CompletableFuture[U]"]) -> "CompletableFuture[U]":
        """
        Chain a function that itself returns a future; the result mirrors
        the outcome of that inner future.
        """

        def compose(dependent: CompletableFuture[U], value: T, _: Any) -> None:
            inner = fn(value)
            if not isinstance(inner, CompletableFuture):
                raise TypeError(
                    f"then_compose function must return a CompletableFuture, got {type(inner).__name__}"
                )
            inner._push(Stage(dependent, _mirror, handles_errors=True))

        return self._chain(compose)

    def exceptionally(self, fn: Callable[[BaseException], T]) -> "CompletableFuture[T]":
        """Recover from a rejection with fn(error); values pass through untouched."""

        def recover(dependent: CompletableFuture[T], value: T, error: Optional[BaseException]) -> None:
            if error is None:
                dependent.complete(value)
            else:
                dependent.complete(fn(error))

        return self._chain(recover, handles_errors=True)

    def handle(self, fn: Callable[[Optional[T], Optional[BaseException]], U]) -> "CompletableFuture[U]":
        """Fulfill with fn(value, error), whichever way this future settles."""
        return self._chain(
            lambda dependent, value, error: dependent.complete(fn(value, error)),
            handles_errors=True,
        )

    def when_complete(
        self, fn: Callable[[Optional[T], Optional[BaseException]], Any]
    ) -> "CompletableFuture[T]":
        """
        Call fn(value, error) and then settle with this future's own outcome.

        If fn raises on a fulfilled future the result rejects with that error;
        on a rejected future the original error is kept.
        """

        def observe(dependent: CompletableFuture[T], value: T, error: Optional[BaseException]) -> None:
            try:
                fn(value, error)
            except Exception as e:
                if error is None:
                    raise
                logger.debug(f"when_complete callback failed on rejected future: {e!r}")
            _mirror(dependent, value, error)

        return self._chain(observe, handles_errors=True)

    # Blocking retrieval

    def _wait(self, timeout: Optional[float]) -> None:
        with self._condition:
            if not self._condition.wait_for(lambda: self._state.is_settled, timeout):
                raise TimeoutError(f"Future did not settle within {timeout} seconds")

    def _cancelled_error(self) -> FutureCancelledError:
        # A fresh instance per raise; re-raising the stored one grows its traceback.
        return FutureCancelledError(str(self._error))

    def _report(self, wrapper: Type[AwaitFailure]) -> T:
        if self._state is FutureState.CANCELLED:
            raise self._cancelled_error() from self._error
        if self._state is FutureState.REJECTED:
            raise wrapper(f"Task failed: {self._error!r}", self._error) from self._error
        return self._value

    def get(self, timeout: Optional[float] = None) -> T:
        """
        Block until the future settles and return its value.

        Args:
            timeout: Maximum time to wait in seconds, None to wait forever

        Returns:
            The value the future was fulfilled with

        Raises:
            ExecutionError: If the future was rejected, wrapping the cause
            FutureCancelledError: If the future was cancelled
            TimeoutError: If the future did not settle in time
        """
        self._wait(timeout)
        return self._report(ExecutionError)

    def join(self) -> T:
        """
        Block until the future settles and return its value.

        Raises:
            CompletionError: If the future was rejected, wrapping the cause
            FutureCancelledError: If the future was cancelled
        """
        self._wait(None)
        return self._report(CompletionError)

    def get_now(self, default: T) -> T:
        """Return the value if settled, default otherwise. Fails like join()."""
        if not self.is_done():
            return default
        return self._report(CompletionError)

    def exception(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Block until settled and return the rejection cause, or None."""
        self._wait(timeout)
        return self._error

    def __await__(self) -> Generator[Any, None, T]:
        if not self.is_done():
            loop = asyncio.get_running_loop()
            waiter = loop.create_future()

            def wake(_value: Any, _error: Any) -> None:
                loop.call_soon_threadsafe(_release, waiter)

            self.when_complete(wake)
            yield from waiter.__await__()

        if self._state is FutureState.CANCELLED:
            raise self._cancelled_error() from self._error
        if self._error is not None:
            raise self._error
        return self._value


def _release(waiter: "asyncio.Future[None]") -> None:
    if not waiter.done():
        waiter.set_result(None)
