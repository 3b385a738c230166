"""
Tests for the CompletableFuture promise side and blocking retrieval.

A CompletableFuture should:
1. Settle exactly once, then never change
2. Wake every blocked waiter when it settles
3. Wrap rejections in ExecutionError (get) or CompletionError (join)
4. Return immediately when already settled
"""

import threading
import time

import pytest

from sincpro_future.domain import FutureInterface
from sincpro_future import (
    AwaitFailure,
    CompletableFuture,
    CompletionError,
    ExecutionError,
    FutureCancelledError,
    FutureState,
)


@pytest.fixture
def future():
    """Fixture that provides a pending CompletableFuture."""
    return CompletableFuture()


def test_future_should_implement_interface(future):
    """Test that CompletableFuture implements the FutureInterface."""
    assert isinstance(future, FutureInterface)


def test_future_should_start_pending(future):
    """Test that a new future is pending."""
    assert future.state is FutureState.PENDING
    assert not future.is_done()
    assert not future.is_cancelled()
    assert not future.is_completed_exceptionally()


def test_complete_should_fulfill_once(future):
    """Test that the first complete wins and later settlements are ignored."""
    assert future.complete("first") is True
    assert future.complete("second") is False
    assert future.complete_exceptionally(ValueError("late")) is False
    assert future.cancel() is False

    assert future.state is FutureState.FULFILLED
    assert future.join() == "first"


def test_complete_exceptionally_should_reject_once(future):
    """Test that a rejected future keeps its first error."""
    error = ValueError("boom")
    assert future.complete_exceptionally(error) is True
    assert future.complete("value") is False

    assert future.state is FutureState.REJECTED
    assert future.is_completed_exceptionally()
    assert future.exception() is error


def test_complete_exceptionally_should_require_an_exception(future):
    """Test that rejecting with something that is not an exception fails."""
    with pytest.raises(TypeError):
        future.complete_exceptionally("not an error")
    assert future.state is FutureState.PENDING


def test_get_should_wrap_error_in_execution_error(future):
    """Test that get() raises ExecutionError with the original cause."""
    error = ValueError("boom")
    future.complete_exceptionally(error)

    with pytest.raises(ExecutionError) as exc_info:
        future.get()

    assert exc_info.value.cause is error
    assert exc_info.value.__cause__ is error
    assert isinstance(exc_info.value, AwaitFailure)


def test_join_should_wrap_error_in_completion_error(future):
    """Test that join() raises CompletionError with the original cause."""
    error = KeyError("missing")
    future.complete_exceptionally(error)

    with pytest.raises(CompletionError) as exc_info:
        future.join()

    assert exc_info.value.cause is error
    assert isinstance(exc_info.value, AwaitFailure)


def test_get_should_time_out_on_pending_future(future):
    """Test that get() with a timeout raises TimeoutError if nothing settles it."""
    with pytest.raises(TimeoutError):
        future.get(timeout=0.05)
    assert future.state is FutureState.PENDING


def test_get_should_return_immediately_when_settled(future):
    """Test that blocking on a settled future does not wait."""
    future.complete(42)

    start_time = time.time()
    assert future.get(timeout=5.0) == 42
    assert future.join() == 42
    assert time.time() - start_time < 0.05


def test_get_should_block_until_another_thread_completes(future):
    """Test that get() waits for a completion coming from another thread."""
    timer = threading.Timer(0.1, future.complete, args=("late value",))
    timer.start()

    start_time = time.time()
    result = future.get(timeout=2.0)

    assert result == "late value"
    assert time.time() - start_time >= 0.05


def test_settlement_should_wake_every_waiter(future):
    """Test that all blocked threads are released by one settlement."""
    results = []
    lock = threading.Lock()

    def wait_for_result():
        value = future.get(timeout=2.0)
        with lock:
            results.append(value)

    threads = [threading.Thread(target=wait_for_result) for _ in range(5)]
    for thread in threads:
        thread.start()

    future.complete("done")
    for thread in threads:
        thread.join(timeout=2.0)

    assert results == ["done"] * 5


def test_concurrent_settlements_should_have_exactly_one_winner(future):
    """Test that racing threads settle the future only once."""
    barrier = threading.Barrier(8)
    wins = []

    def race(value):
        barrier.wait()
        if future.complete(value):
            wins.append(value)

    threads = [threading.Thread(target=race, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=2.0)

    assert len(wins) == 1
    assert future.join() == wins[0]


def test_get_now_should_return_default_while_pending(future):
    """Test that get_now() does not block."""
    assert future.get_now("fallback") == "fallback"
    future.complete("ready")
    assert future.get_now("fallback") == "ready"


def test_get_now_should_fail_like_join(future):
    """Test that get_now() on a rejected future raises CompletionError."""
    future.complete_exceptionally(RuntimeError("nope"))
    with pytest.raises(CompletionError):
        future.get_now(None)


def test_exception_should_be_none_when_fulfilled(future):
    """Test that exception() returns None for a fulfilled future."""
    future.complete("ok")
    assert future.exception() is None


class TestCancellation:
    """Tests for the CANCELLED terminal state."""

    def test_cancel_should_settle_pending_future(self, future):
        """Test that cancel() moves a pending future to CANCELLED."""
        assert future.cancel() is True
        assert future.state is FutureState.CANCELLED
        assert future.is_cancelled()
        assert future.is_completed_exceptionally()
        assert future.complete("too late") is False

    def test_get_should_raise_cancelled_error_unwrapped(self, future):
        """Test that get() and join() raise FutureCancelledError directly."""
        future.cancel()

        with pytest.raises(FutureCancelledError):
            future.get()
        with pytest.raises(FutureCancelledError):
            future.join()

    def test_cancelled_error_should_be_fresh_on_every_retrieval(self, future):
        """Test that each join() raises a new error chained to the stored one, which stays untouched."""
        future.cancel()
        stored = future.exception()

        raised = []
        for _ in range(3):
            with pytest.raises(FutureCancelledError) as exc_info:
                future.join()
            raised.append(exc_info.value)

        assert len({id(error) for error in raised}) == 3
        assert all(error is not stored and error.__cause__ is stored for error in raised)
        assert stored.__traceback__ is None

    def test_cancel_should_reject_dependents(self, future):
        """Test that stages chained on a cancelled future reject with the cancellation error."""
        called = []
        dependent = future.then_apply(called.append)

        future.cancel()

        assert dependent.state is FutureState.REJECTED
        assert isinstance(dependent.exception(), FutureCancelledError)
        assert called == []
